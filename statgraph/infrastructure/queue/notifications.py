"""Durable notification queue with exponential redelivery backoff."""

import datetime
import logging
import time
from dataclasses import dataclass

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from statgraph.config.constants import NotificationState
from statgraph.infrastructure.queue.database import NotificationRecord, utcnow
from statgraph.infrastructure.queue.jobs import QueueStats

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NotificationEvent:
    """Completion event for the chat consumer."""

    chat_id: str
    uid: str
    status: str
    dashboard_url: str | None = None
    error_message: str | None = None

    def to_payload(self) -> dict:
        payload = {"chatId": self.chat_id, "uid": self.uid, "status": self.status}
        if self.dashboard_url is not None:
            payload["dashboardUrl"] = self.dashboard_url
        if self.error_message is not None:
            payload["errorMessage"] = self.error_message
        return payload


@dataclass(frozen=True)
class QueuedNotification:
    id: str
    event: NotificationEvent
    attempts: int


class NotificationQueue:
    """Second, independent queue for lightweight completion events.

    Delivered events are deleted; an event that fails *max_attempts* times is
    kept in the failed state for inspection.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        max_attempts: int = 3,
        backoff_base: float = 2.0,
    ):
        self._sessions = session_factory
        self.max_attempts = max_attempts
        self.backoff_base = backoff_base

    def backoff_delay(self, attempts: int) -> float:
        """Delay before the next try after *attempts* failures: 2s, 4s, 8s..."""
        return self.backoff_base * (2 ** (attempts - 1))

    async def publish(self, event: NotificationEvent) -> str:
        notification_id = f"notify-{event.uid}-{int(time.time() * 1000)}"
        now = utcnow()
        async with self._sessions() as session:
            session.add(
                NotificationRecord(
                    id=notification_id,
                    chat_id=event.chat_id,
                    uid=event.uid,
                    status=event.status,
                    dashboard_url=event.dashboard_url,
                    error_message=event.error_message,
                    state=NotificationState.PENDING.value,
                    attempts=0,
                    next_attempt_at=now,
                    created_at=now,
                )
            )
            await session.commit()
        logger.info("Notification %s queued for chat %s (job %s)", notification_id, event.chat_id, event.uid)
        return notification_id

    async def claim_due(self, now: datetime.datetime | None = None) -> QueuedNotification | None:
        """Atomically claim the oldest notification whose retry time has come."""
        now = now or utcnow()
        async with self._sessions() as session:
            while True:
                record = await session.scalar(
                    select(NotificationRecord)
                    .where(
                        NotificationRecord.state == NotificationState.PENDING.value,
                        NotificationRecord.next_attempt_at <= now,
                    )
                    .order_by(NotificationRecord.next_attempt_at, NotificationRecord.id)
                    .limit(1)
                )
                if record is None:
                    return None

                result = await session.execute(
                    update(NotificationRecord)
                    .where(
                        NotificationRecord.id == record.id,
                        NotificationRecord.state == NotificationState.PENDING.value,
                    )
                    .values(state=NotificationState.ACTIVE.value)
                )
                await session.commit()
                if result.rowcount == 1:
                    return QueuedNotification(
                        id=record.id,
                        event=NotificationEvent(
                            chat_id=record.chat_id,
                            uid=record.uid,
                            status=record.status,
                            dashboard_url=record.dashboard_url,
                            error_message=record.error_message,
                        ),
                        attempts=record.attempts,
                    )

    async def ack(self, notification_id: str) -> None:
        async with self._sessions() as session:
            await session.execute(
                delete(NotificationRecord).where(NotificationRecord.id == notification_id)
            )
            await session.commit()

    async def retry_or_fail(
        self,
        notification_id: str,
        error: str,
        now: datetime.datetime | None = None,
    ) -> NotificationState:
        """Record a failed delivery and reschedule it, or retire it after the last attempt."""
        now = now or utcnow()
        async with self._sessions() as session:
            record = await session.get(NotificationRecord, notification_id)
            if record is None:
                raise KeyError(notification_id)

            attempts = record.attempts + 1
            if attempts >= self.max_attempts:
                state = NotificationState.FAILED
                next_attempt_at = record.next_attempt_at
                logger.error(
                    "Notification %s failed after %s attempts: %s", notification_id, attempts, error
                )
            else:
                state = NotificationState.PENDING
                delay = self.backoff_delay(attempts)
                next_attempt_at = now + datetime.timedelta(seconds=delay)
                logger.warning(
                    "Notification %s attempt %s/%s failed (%s), retrying in %.1fs",
                    notification_id,
                    attempts,
                    self.max_attempts,
                    error,
                    delay,
                )

            await session.execute(
                update(NotificationRecord)
                .where(NotificationRecord.id == notification_id)
                .values(
                    attempts=attempts,
                    state=state.value,
                    next_attempt_at=next_attempt_at,
                    last_error=error,
                )
            )
            await session.commit()
            return state

    async def release_active(self) -> int:
        """Return notifications left active by a stopped dispatcher to pending."""
        async with self._sessions() as session:
            result = await session.execute(
                update(NotificationRecord)
                .where(NotificationRecord.state == NotificationState.ACTIVE.value)
                .values(state=NotificationState.PENDING.value)
            )
            await session.commit()
            return result.rowcount

    async def stats(self) -> QueueStats:
        async with self._sessions() as session:
            rows = await session.execute(
                select(NotificationRecord.state, func.count()).group_by(NotificationRecord.state)
            )
            counts = {state: count for state, count in rows.all()}
        return QueueStats(
            pending=counts.get(NotificationState.PENDING.value, 0),
            active=counts.get(NotificationState.ACTIVE.value, 0),
            failed=counts.get(NotificationState.FAILED.value, 0),
        )
