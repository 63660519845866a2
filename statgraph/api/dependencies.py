"""FastAPI dependencies.

Collaborators are built once in the application lifespan and stored on
``app.state``; these accessors hand them to the routers.
"""

from fastapi import Request

from statgraph.infrastructure.queue.jobs import JobQueue
from statgraph.infrastructure.queue.notifications import NotificationQueue
from statgraph.orchestrator.agent import QueryAgent
from statgraph.services.delivery.notifications import ChatNotificationConsumer
from statgraph.services.regions.mapper import RegionMapper


def get_job_queue(request: Request) -> JobQueue:
    return request.app.state.job_queue


def get_notification_queue(request: Request) -> NotificationQueue:
    return request.app.state.notification_queue


def get_query_agent(request: Request) -> QueryAgent:
    return request.app.state.query_agent


def get_chat_consumer(request: Request) -> ChatNotificationConsumer | None:
    return getattr(request.app.state, "chat_consumer", None)


def get_region_mapper(request: Request) -> RegionMapper:
    return request.app.state.region_mapper
