"""Health endpoint."""

import logging
from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import SQLAlchemyError

from statgraph.api.dependencies import get_job_queue, get_notification_queue
from statgraph.api.models import HealthResponse, QueueCounts
from statgraph.config.settings import Settings, get_settings
from statgraph.infrastructure.queue.jobs import JobQueue
from statgraph.infrastructure.queue.notifications import NotificationQueue

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health(
    queue: JobQueue = Depends(get_job_queue),
    notifications: NotificationQueue = Depends(get_notification_queue),
    settings: Settings = Depends(get_settings),
) -> HealthResponse:
    """Health check with queue depths."""
    try:
        job_stats = await queue.stats()
        notification_stats = await notifications.stats()
    except SQLAlchemyError as e:
        logger.error("Queue store unreachable: %s", e)
        raise HTTPException(status_code=503, detail="Queue store unavailable") from e

    return HealthResponse(
        status="healthy",
        version=settings.app_version,
        queue=QueueCounts(**asdict(job_stats)),
        notifications=QueueCounts(**asdict(notification_stats)),
    )
