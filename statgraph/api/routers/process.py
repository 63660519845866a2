"""Job submission endpoint."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import SQLAlchemyError

from statgraph.api.dependencies import get_chat_consumer, get_job_queue
from statgraph.api.models import ProcessRequest, ProcessResponse
from statgraph.infrastructure.queue.jobs import JobQueue
from statgraph.services.delivery.notifications import ChatNotificationConsumer

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/process", response_model=ProcessResponse, response_model_by_alias=True)
async def process(
    request: ProcessRequest,
    queue: JobQueue = Depends(get_job_queue),
    consumer: ChatNotificationConsumer | None = Depends(get_chat_consumer),
) -> ProcessResponse:
    """Enqueue a question for asynchronous processing."""
    try:
        job, created = await queue.submit(
            request.task_id,
            request.question,
            str(request.callback_url),
            request.chat_id,
        )
    except SQLAlchemyError as e:
        logger.error("Could not enqueue job %s: %s", request.task_id, e, exc_info=True)
        raise HTTPException(status_code=503, detail="Job queue unavailable") from e

    if created and request.chat_id and consumer is not None:
        consumer.watch(request.chat_id, job.id)

    message = "Task queued for processing" if created else "Task already submitted"
    return ProcessResponse(
        task_id=job.id,
        accepted=created,
        status=job.status.value,
        message=message,
    )
