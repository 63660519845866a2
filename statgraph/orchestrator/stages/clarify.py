"""Clarification stage: suggest refinements of an ambiguous question."""

import asyncio
import logging
from typing import Any

from statgraph.config.constants import PipelineStage
from statgraph.config.prompts import build_clarify_system_prompt, build_clarify_user_message
from statgraph.errors import ExternalServiceError, StageError
from statgraph.orchestrator.models import ClarificationResult
from statgraph.orchestrator.stages.base import StageHandlerBase, stage_failure
from statgraph.orchestrator.state import PipelineState

logger = logging.getLogger(__name__)


class ClarifyQueryHandler(StageHandlerBase):
    """Builds 4 to 7 clarification suggestions from the whole catalog."""

    async def handle(self, state: PipelineState) -> dict[str, Any]:
        try:
            statforms = await self.catalog.get_statforms()
            if not statforms:
                raise StageError(PipelineStage.CLARIFY.value, "statform list is empty")

            sections_per_statform = await asyncio.gather(
                *(self.catalog.get_sections([statform.id]) for statform in statforms)
            )
            overview = "\n".join(
                f"- [{statform.id}] {statform.name}\n"
                f"  Sections: {'; '.join(s.name for s in sections) or 'none'}"
                for statform, sections in zip(statforms, sections_per_statform)
            )

            result = await self.oracle.chat_json(
                build_clarify_system_prompt(overview),
                build_clarify_user_message(state.query),
                ClarificationResult,
                self.settings.clarify_temperature,
            )
        except (StageError, ExternalServiceError) as e:
            return stage_failure("generate clarification options", e)

        logger.info(
            "Generated %s clarification options%s",
            len(result.suggestions),
            f" | {result.reasoning}" if result.reasoning else "",
        )
        return {"clarification": result}
