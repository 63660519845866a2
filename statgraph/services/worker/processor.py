"""Per-job processing: pipeline under a deadline, then exactly one terminal callback."""

import asyncio
import logging
from collections.abc import Awaitable

from sqlalchemy.exc import SQLAlchemyError

from statgraph.config.constants import CallbackStatus
from statgraph.errors import DeliveryError, StageError
from statgraph.infrastructure.queue.jobs import Job, JobQueue
from statgraph.infrastructure.queue.notifications import NotificationEvent, NotificationQueue
from statgraph.orchestrator.agent import QueryAgent
from statgraph.services.dashboard.models import DashboardData
from statgraph.services.delivery.callback import CallbackSender

logger = logging.getLogger(__name__)


class TaskProcessor:
    """Runs one job end to end.

    Every job gets exactly one terminal callback attempt, completed or
    failed. Jobs are never re-queued: stage execution is costly and not
    idempotent, only delivery is retried.
    """

    def __init__(
        self,
        agent: QueryAgent,
        queue: JobQueue,
        callbacks: CallbackSender,
        notifications: NotificationQueue | None = None,
        dashboard_base_url: str = "",
    ):
        self.agent = agent
        self.queue = queue
        self.callbacks = callbacks
        self.notifications = notifications
        self.dashboard_base_url = dashboard_base_url.rstrip("/")

    def dashboard_url(self, job_id: str) -> str:
        return f"{self.dashboard_base_url}/dashboard/{job_id}"

    async def process(self, job: Job) -> bool:
        """Process a claimed job. Returns True when it completed and was delivered."""
        logger.info("Processing job %s: %s", job.id, job.question)

        dashboard: DashboardData | None = None
        error: str | None = None
        try:
            dashboard = await asyncio.wait_for(
                self.agent.process_query(job.question, job_id=job.id),
                timeout=job.remaining_seconds(),
            )
        except asyncio.TimeoutError:
            error = f"Processing exceeded the {job.timeout_seconds:.0f}s deadline"
            logger.error("Job %s timed out", job.id)
        except StageError as e:
            error = e.message
            logger.error("Job %s failed: %s", job.id, error)
        except Exception as e:
            error = f"Unexpected error: {e}" if str(e) else f"Unexpected error: {type(e).__name__}"
            logger.error("Unexpected error processing job %s", job.id, exc_info=True)

        if not await self.queue.begin_delivery(job.id):
            logger.warning("Job %s is no longer active, its terminal callback was already handled", job.id)
            return False
        if dashboard is not None:
            return await self._finish_success(job, dashboard)
        await self._finish_failure(job, error or "Unknown error")
        return False

    async def report_expired(self, job: Job) -> None:
        """Send the failure callback for a job the queue expired without a live worker."""
        await self._deliver_failure(job, job.error or "Job deadline exceeded")

    async def _finish_success(self, job: Job, dashboard: DashboardData) -> bool:
        delivered, _ = await asyncio.gather(
            self._deliver_success(job, dashboard),
            self._publish(job, CallbackStatus.COMPLETED, dashboard_url=self.dashboard_url(job.id)),
        )
        if delivered:
            await self._record(job, self.queue.complete(job.id))
            logger.info("Job %s completed", job.id)
            return True
        await self._record(job, self.queue.fail(job.id, "Result callback could not be delivered"))
        return False

    async def _finish_failure(self, job: Job, error: str) -> None:
        await asyncio.gather(
            self._deliver_failure(job, error),
            self._publish(job, CallbackStatus.FAILED, error_message=error),
        )
        await self._record(job, self.queue.fail(job.id, error))

    async def _record(self, job: Job, outcome: Awaitable[bool]) -> None:
        try:
            await outcome
        except SQLAlchemyError as e:
            # The callback already went out; the row stays delivering and is never expired.
            logger.error("Could not record the outcome of job %s: %s", job.id, e)

    async def _deliver_success(self, job: Job, dashboard: DashboardData) -> bool:
        try:
            await self.callbacks.send_success(job.callback_url, dashboard.to_payload())
        except DeliveryError as e:
            logger.error("Result callback for job %s could not be delivered: %s", job.id, e)
            return False
        return True

    async def _deliver_failure(self, job: Job, error: str) -> None:
        try:
            await self.callbacks.send_failure(job.callback_url, error)
        except DeliveryError as e:
            logger.critical(
                "Job %s failed (%s) and its failure callback could not be delivered: %s",
                job.id,
                error,
                e,
            )

    async def _publish(
        self,
        job: Job,
        status: CallbackStatus,
        dashboard_url: str | None = None,
        error_message: str | None = None,
    ) -> None:
        if self.notifications is None or not job.chat_id:
            return
        event = NotificationEvent(
            chat_id=job.chat_id,
            uid=job.id,
            status=status.value,
            dashboard_url=dashboard_url,
            error_message=error_message,
        )
        try:
            await self.notifications.publish(event)
        except SQLAlchemyError as e:
            logger.error("Could not queue notification for job %s: %s", job.id, e)
