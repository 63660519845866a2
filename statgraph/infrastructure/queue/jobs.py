"""Durable job queue with idempotent submission and atomic claim."""

import datetime
import logging
from dataclasses import dataclass

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from statgraph.config.constants import JobStatus
from statgraph.infrastructure.queue.database import JobRecord, utcnow

logger = logging.getLogger(__name__)

_IN_FLIGHT = (JobStatus.ACTIVE.value, JobStatus.DELIVERING.value)


@dataclass(frozen=True)
class Job:
    """Snapshot of a queued job."""

    id: str
    question: str
    callback_url: str
    chat_id: str | None
    status: JobStatus
    timeout_seconds: float
    created_at: datetime.datetime
    deadline_at: datetime.datetime | None = None
    started_at: datetime.datetime | None = None
    error: str | None = None

    @classmethod
    def from_record(cls, record: JobRecord) -> "Job":
        return cls(
            id=record.id,
            question=record.question,
            callback_url=record.callback_url,
            chat_id=record.chat_id,
            status=JobStatus(record.status),
            timeout_seconds=record.timeout_seconds,
            created_at=record.created_at,
            deadline_at=record.deadline_at,
            started_at=record.started_at,
            error=record.error,
        )

    def remaining_seconds(self, now: datetime.datetime | None = None) -> float:
        """Seconds left before the deadline (the full timeout if not started)."""
        if self.deadline_at is None:
            return self.timeout_seconds
        now = now or utcnow()
        return max((self.deadline_at - now).total_seconds(), 0.0)


@dataclass(frozen=True)
class QueueStats:
    pending: int = 0
    active: int = 0
    failed: int = 0


class JobQueue:
    """Job store keyed by the caller's task id.

    Completed jobs are deleted; failed jobs stay for inspection and keep
    their id reserved, so a resubmission never starts a second run.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], job_timeout: float = 300.0):
        self._sessions = session_factory
        self.job_timeout = job_timeout

    async def submit(
        self,
        job_id: str,
        question: str,
        callback_url: str,
        chat_id: str | None = None,
    ) -> tuple[Job, bool]:
        """Enqueue a job unless the id is already known.

        Returns:
            The stored job and whether this call created it.
        """
        async with self._sessions() as session:
            existing = await session.get(JobRecord, job_id)
            if existing is not None:
                logger.info("Job %s already known (status=%s), not enqueued again", job_id, existing.status)
                return Job.from_record(existing), False

            record = JobRecord(
                id=job_id,
                question=question,
                callback_url=callback_url,
                chat_id=chat_id,
                status=JobStatus.PENDING.value,
                timeout_seconds=self.job_timeout,
                created_at=utcnow(),
            )
            session.add(record)
            try:
                await session.commit()
            except IntegrityError:
                # Lost a race against a concurrent submission of the same id.
                await session.rollback()
                existing = await session.get(JobRecord, job_id)
                if existing is None:
                    raise
                return Job.from_record(existing), False

            logger.info("Job %s enqueued", job_id)
            return Job.from_record(record), True

    async def claim(self) -> Job | None:
        """Atomically move the oldest pending job to active.

        The conditional update only matches while the row is still pending,
        so of two workers racing for the same row exactly one wins.
        """
        async with self._sessions() as session:
            while True:
                candidate = await session.scalar(
                    select(JobRecord.id)
                    .where(JobRecord.status == JobStatus.PENDING.value)
                    .order_by(JobRecord.created_at, JobRecord.id)
                    .limit(1)
                )
                if candidate is None:
                    return None

                now = utcnow()
                timeout = await session.scalar(
                    select(JobRecord.timeout_seconds).where(JobRecord.id == candidate)
                )
                result = await session.execute(
                    update(JobRecord)
                    .where(JobRecord.id == candidate, JobRecord.status == JobStatus.PENDING.value)
                    .values(
                        status=JobStatus.ACTIVE.value,
                        started_at=now,
                        deadline_at=now + datetime.timedelta(seconds=timeout or self.job_timeout),
                    )
                )
                await session.commit()
                if result.rowcount == 1:
                    record = await session.get(JobRecord, candidate, populate_existing=True)
                    logger.info("Job %s claimed", candidate)
                    return Job.from_record(record)
                logger.debug("Job %s was claimed by another worker, retrying", candidate)

    async def begin_delivery(self, job_id: str) -> bool:
        """Move an active job to delivering before its terminal callback goes out.

        The sweeper only expires active jobs, so once this returns True the
        caller owns the job's one terminal callback. False means the job was
        already expired (and reported) or finished.
        """
        async with self._sessions() as session:
            result = await session.execute(
                update(JobRecord)
                .where(JobRecord.id == job_id, JobRecord.status == JobStatus.ACTIVE.value)
                .values(status=JobStatus.DELIVERING.value)
            )
            await session.commit()
            return result.rowcount == 1

    async def complete(self, job_id: str) -> bool:
        """Remove a successfully processed job from the store."""
        async with self._sessions() as session:
            result = await session.execute(
                delete(JobRecord).where(JobRecord.id == job_id, JobRecord.status.in_(_IN_FLIGHT))
            )
            await session.commit()
            return result.rowcount == 1

    async def fail(self, job_id: str, error: str) -> bool:
        """Mark an in-flight job failed and keep it for inspection."""
        async with self._sessions() as session:
            result = await session.execute(
                update(JobRecord)
                .where(JobRecord.id == job_id, JobRecord.status.in_(_IN_FLIGHT))
                .values(status=JobStatus.FAILED.value, error=error, finished_at=utcnow())
            )
            await session.commit()
            return result.rowcount == 1

    async def expire_overdue(
        self,
        now: datetime.datetime | None = None,
        grace_seconds: float = 0.0,
    ) -> list[Job]:
        """Fail active jobs whose deadline passed more than *grace_seconds* ago.

        Jobs already delivering own their callback and are left alone.
        Expired jobs are not re-queued. Returns the jobs this call expired.
        """
        cutoff = (now or utcnow()) - datetime.timedelta(seconds=grace_seconds)
        async with self._sessions() as session:
            overdue = (
                await session.scalars(
                    select(JobRecord).where(
                        JobRecord.status == JobStatus.ACTIVE.value,
                        JobRecord.deadline_at.is_not(None),
                        JobRecord.deadline_at < cutoff,
                    )
                )
            ).all()

            expired = []
            for record in overdue:
                result = await session.execute(
                    update(JobRecord)
                    .where(JobRecord.id == record.id, JobRecord.status == JobStatus.ACTIVE.value)
                    .values(
                        status=JobStatus.FAILED.value,
                        error="Job deadline exceeded",
                        finished_at=utcnow(),
                    )
                )
                if result.rowcount == 1:
                    expired.append(record.id)
            await session.commit()

            jobs = []
            for job_id in expired:
                record = await session.get(JobRecord, job_id, populate_existing=True)
                jobs.append(Job.from_record(record))
                logger.warning("Job %s exceeded its deadline and was marked failed", job_id)
            return jobs

    async def get(self, job_id: str) -> Job | None:
        async with self._sessions() as session:
            record = await session.get(JobRecord, job_id)
            return Job.from_record(record) if record is not None else None

    async def stats(self) -> QueueStats:
        async with self._sessions() as session:
            rows = await session.execute(
                select(JobRecord.status, func.count()).group_by(JobRecord.status)
            )
            counts = {status: count for status, count in rows.all()}
        return QueueStats(
            pending=counts.get(JobStatus.PENDING.value, 0),
            active=counts.get(JobStatus.ACTIVE.value, 0) + counts.get(JobStatus.DELIVERING.value, 0),
            failed=counts.get(JobStatus.FAILED.value, 0),
        )
