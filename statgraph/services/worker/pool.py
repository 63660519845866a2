"""Bounded pool of queue consumers plus the deadline sweeper."""

import asyncio
import datetime
import logging

from statgraph.infrastructure.queue.jobs import Job, JobQueue
from statgraph.services.worker.processor import TaskProcessor

logger = logging.getLogger(__name__)


class WorkerPool:
    """Runs ``concurrency`` workers pulling from one shared job queue."""

    def __init__(
        self,
        queue: JobQueue,
        processor: TaskProcessor,
        concurrency: int = 2,
        poll_interval: float = 1.0,
        sweep_interval: float = 15.0,
        sweep_grace: float = 0.0,
    ):
        self.queue = queue
        self.processor = processor
        self.concurrency = concurrency
        self.poll_interval = poll_interval
        self.sweep_interval = sweep_interval
        self.sweep_grace = sweep_grace
        self._tasks: list[asyncio.Task] = []

    @property
    def running(self) -> bool:
        return any(not task.done() for task in self._tasks)

    async def start(self) -> None:
        self._tasks = [
            asyncio.create_task(self._worker(index), name=f"worker-{index}")
            for index in range(self.concurrency)
        ]
        self._tasks.append(asyncio.create_task(self._sweeper(), name="deadline-sweeper"))
        logger.info("WorkerPool started with concurrency %s", self.concurrency)

    async def stop(self) -> None:
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        logger.info("WorkerPool stopped")

    async def _worker(self, index: int) -> None:
        while True:
            try:
                job = await self.queue.claim()
            except Exception as exc:
                logger.error("Worker %s could not claim a job: %s", index, exc)
                await asyncio.sleep(self.poll_interval)
                continue

            if job is None:
                await asyncio.sleep(self.poll_interval)
                continue

            try:
                await self.processor.process(job)
            except Exception:
                logger.error("Worker %s: unexpected error processing job %s", index, job.id, exc_info=True)

    async def _sweeper(self) -> None:
        while True:
            await asyncio.sleep(self.sweep_interval)
            try:
                await self.sweep_once()
            except Exception as exc:
                logger.error("Deadline sweep failed: %s", exc)

    async def sweep_once(self, now: datetime.datetime | None = None) -> list[Job]:
        """Fail overdue jobs and send their failure callbacks."""
        expired = await self.queue.expire_overdue(now, grace_seconds=self.sweep_grace)
        for job in expired:
            await self.processor.report_expired(job)
        return expired
