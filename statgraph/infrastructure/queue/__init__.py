"""Durable queues backed by SQLAlchemy."""

from statgraph.infrastructure.queue.database import (
    create_queue_engine,
    create_session_factory,
    init_queue_schema,
)
from statgraph.infrastructure.queue.jobs import Job, JobQueue, QueueStats
from statgraph.infrastructure.queue.notifications import (
    NotificationEvent,
    NotificationQueue,
    QueuedNotification,
)

__all__ = [
    "Job",
    "JobQueue",
    "NotificationEvent",
    "NotificationQueue",
    "QueueStats",
    "QueuedNotification",
    "create_queue_engine",
    "create_session_factory",
    "init_queue_schema",
]
