"""Notification fanout: queue dispatcher and the chat consumer."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Protocol

import httpx

from statgraph.config.constants import CallbackStatus
from statgraph.infrastructure.queue.notifications import NotificationEvent, NotificationQueue
from statgraph.utils.text_processing import truncate

logger = logging.getLogger(__name__)

TIMEOUT_NOTICE = (
    "⏱ Время ожидания истекло. Обработка запроса занимает больше времени, чем ожидалось. "
    "Пожалуйста, попробуйте еще раз позже."
)
DEFAULT_FAILURE_TEXT = "Произошла ошибка при обработке запроса. Попробуйте еще раз."
_MAX_MESSAGE_LENGTH = 4000


def success_message(dashboard_url: str) -> str:
    return f"✅ Дашборд готов!\n\n🔗 {dashboard_url}"


def failure_message(error_message: str | None) -> str:
    return f"❌ {truncate(error_message or DEFAULT_FAILURE_TEXT, _MAX_MESSAGE_LENGTH)}"


class ChatMessenger(Protocol):
    async def send_message(self, chat_id: str, text: str) -> None: ...


class TelegramMessenger:
    """Sends chat messages through the Telegram Bot API."""

    def __init__(self, client: httpx.AsyncClient, token: str, api_url: str = "https://api.telegram.org"):
        self.client = client
        self.token = token
        self.api_url = api_url.rstrip("/")

    async def send_message(self, chat_id: str, text: str) -> None:
        response = await self.client.post(
            f"{self.api_url}/bot{self.token}/sendMessage",
            json={"chat_id": chat_id, "text": text},
        )
        response.raise_for_status()


@dataclass
class ChatSession:
    chat_id: str
    job_id: str
    timer: asyncio.Task | None = None


class ChatNotificationConsumer:
    """Chat-side end of the fanout.

    Sessions are keyed by job id. A session ends on its completion event or
    on its own timeout, whichever comes first; events with no session are
    dropped, so an event arriving after the timeout notice is ignored.
    """

    def __init__(self, messenger: ChatMessenger, timeout: float = 60.0):
        self.messenger = messenger
        self.timeout = timeout
        self._sessions: dict[str, ChatSession] = {}

    def watch(self, chat_id: str, job_id: str) -> None:
        """Start waiting for a job's completion on behalf of a chat."""
        previous = self._sessions.pop(job_id, None)
        if previous is not None and previous.timer is not None:
            previous.timer.cancel()
        session = ChatSession(chat_id=chat_id, job_id=job_id)
        session.timer = asyncio.create_task(self._expire(session))
        self._sessions[job_id] = session
        logger.info("Watching job %s for chat %s (timeout %.0fs)", job_id, chat_id, self.timeout)

    def is_watching(self, job_id: str) -> bool:
        return job_id in self._sessions

    async def handle(self, event: NotificationEvent) -> bool:
        """
        Deliver an event to its chat.

        Returns:
            False when no session matches the job id and the event was dropped.

        Raises:
            Exception: the messenger failed; the session stays open so a redelivery can finish it
        """
        session = self._sessions.get(event.uid)
        if session is None:
            logger.debug("No active session for job %s, dropping notification", event.uid)
            return False

        if event.status == CallbackStatus.COMPLETED.value and event.dashboard_url:
            text = success_message(event.dashboard_url)
        else:
            text = failure_message(event.error_message)
        await self.messenger.send_message(session.chat_id, text)

        self._end(event.uid, cancel_timer=True)
        logger.info("Notification for job %s delivered to chat %s", event.uid, session.chat_id)
        return True

    async def _expire(self, session: ChatSession) -> None:
        await asyncio.sleep(self.timeout)
        if self._sessions.get(session.job_id) is not session:
            return
        self._end(session.job_id, cancel_timer=False)
        logger.info("Job %s timed out for chat %s", session.job_id, session.chat_id)
        try:
            await self.messenger.send_message(session.chat_id, TIMEOUT_NOTICE)
        except httpx.HTTPError as e:
            logger.error("Failed to send timeout notice to chat %s: %s", session.chat_id, e)

    def _end(self, job_id: str, cancel_timer: bool) -> None:
        session = self._sessions.pop(job_id, None)
        if session is not None and cancel_timer and session.timer is not None:
            session.timer.cancel()

    async def close(self) -> None:
        timers = [s.timer for s in self._sessions.values() if s.timer is not None]
        self._sessions.clear()
        for timer in timers:
            timer.cancel()
        await asyncio.gather(*timers, return_exceptions=True)


class NotificationDispatcher:
    """Background loop moving due notifications from the queue to a consumer."""

    def __init__(
        self,
        queue: NotificationQueue,
        deliver: Callable[[NotificationEvent], Awaitable[object]],
        poll_interval: float = 1.0,
        delivery_timeout: float = 10.0,
    ):
        self.queue = queue
        self.deliver = deliver
        self.poll_interval = poll_interval
        self.delivery_timeout = delivery_timeout
        self._task: asyncio.Task | None = None

    async def start(self) -> None:
        released = await self.queue.release_active()
        if released:
            logger.info("Released %s notifications left active by a previous run", released)
        self._task = asyncio.create_task(self._loop())
        logger.info("NotificationDispatcher started.")

    async def stop(self) -> None:
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    async def _loop(self) -> None:
        while True:
            try:
                processed = await self.run_once()
            except Exception as exc:
                logger.error("NotificationDispatcher iteration failed: %s", exc, exc_info=True)
                processed = False
            if not processed:
                await asyncio.sleep(self.poll_interval)

    async def run_once(self) -> bool:
        """Deliver at most one due notification. Returns whether one was claimed."""
        item = await self.queue.claim_due()
        if item is None:
            return False
        try:
            await asyncio.wait_for(self.deliver(item.event), timeout=self.delivery_timeout)
        except Exception as e:
            await self.queue.retry_or_fail(item.id, str(e) or type(e).__name__)
        else:
            await self.queue.ack(item.id)
        return True
