"""Clarification endpoint."""

import logging

from fastapi import APIRouter, Depends, HTTPException

from statgraph.api.dependencies import get_query_agent
from statgraph.api.models import ClarificationRequest, ClarificationResponse
from statgraph.errors import StageError
from statgraph.orchestrator.agent import QueryAgent

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/clarifications", response_model=ClarificationResponse)
async def clarifications(
    request: ClarificationRequest,
    agent: QueryAgent = Depends(get_query_agent),
) -> ClarificationResponse:
    """Suggest clarifying options for an ambiguous question."""
    try:
        result = await agent.get_clarifications(request.question)
    except StageError as e:
        logger.error("Clarification failed: %s", e)
        raise HTTPException(status_code=500, detail="Could not generate clarifications") from e
    return ClarificationResponse(clarifications=result.to_payload())
