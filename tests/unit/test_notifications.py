"""Tests for the chat notification consumer and dispatcher."""

import asyncio

import httpx
import pytest

from statgraph.infrastructure.queue.notifications import NotificationEvent, NotificationQueue
from statgraph.services.delivery.notifications import (
    TIMEOUT_NOTICE,
    ChatNotificationConsumer,
    NotificationDispatcher,
    TelegramMessenger,
    failure_message,
    success_message,
)


class RecordingMessenger:
    def __init__(self, fail_times=0):
        self.sent = []
        self.fail_times = fail_times

    async def send_message(self, chat_id, text):
        if self.fail_times:
            self.fail_times -= 1
            raise httpx.ConnectError("chat down")
        self.sent.append((chat_id, text))


def _completed(uid="task-1"):
    return NotificationEvent(chat_id="42", uid=uid, status="completed", dashboard_url="http://d.test/task-1")


@pytest.mark.asyncio
async def test_consumer_delivers_success():
    messenger = RecordingMessenger()
    consumer = ChatNotificationConsumer(messenger, timeout=10)
    consumer.watch("42", "task-1")

    assert await consumer.handle(_completed())

    assert messenger.sent == [("42", success_message("http://d.test/task-1"))]
    assert not consumer.is_watching("task-1")
    await consumer.close()


@pytest.mark.asyncio
async def test_consumer_delivers_failure_text():
    messenger = RecordingMessenger()
    consumer = ChatNotificationConsumer(messenger, timeout=10)
    consumer.watch("42", "task-1")

    event = NotificationEvent(chat_id="42", uid="task-1", status="failed", error_message="Could not select statforms")
    await consumer.handle(event)

    assert messenger.sent == [("42", failure_message("Could not select statforms"))]
    await consumer.close()


@pytest.mark.asyncio
async def test_consumer_drops_unknown_jobs():
    messenger = RecordingMessenger()
    consumer = ChatNotificationConsumer(messenger)
    assert not await consumer.handle(_completed("other"))
    assert messenger.sent == []


@pytest.mark.asyncio
async def test_late_event_after_timeout_is_ignored():
    messenger = RecordingMessenger()
    consumer = ChatNotificationConsumer(messenger, timeout=0.01)
    consumer.watch("42", "task-1")

    await asyncio.sleep(0.05)
    assert not await consumer.handle(_completed())

    assert messenger.sent == [("42", TIMEOUT_NOTICE)]


@pytest.mark.asyncio
async def test_failed_send_keeps_session_open():
    messenger = RecordingMessenger(fail_times=1)
    consumer = ChatNotificationConsumer(messenger, timeout=10)
    consumer.watch("42", "task-1")

    with pytest.raises(httpx.ConnectError):
        await consumer.handle(_completed())
    assert consumer.is_watching("task-1")

    assert await consumer.handle(_completed())
    await consumer.close()


def test_failure_message_has_default():
    assert failure_message(None).startswith("❌ ")
    assert len(failure_message("x" * 10000)) < 4100


@pytest.mark.asyncio
async def test_telegram_messenger_posts_send_message():
    requests = []

    def handler(request):
        requests.append(request)
        return httpx.Response(200, json={"ok": True})

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    await TelegramMessenger(client, "TOKEN", "https://tg.test").send_message("42", "hi")

    assert str(requests[0].url) == "https://tg.test/botTOKEN/sendMessage"


@pytest.mark.asyncio
async def test_dispatcher_acks_delivered(session_factory):
    queue = NotificationQueue(session_factory)
    delivered = []

    async def deliver(event):
        delivered.append(event)

    await queue.publish(_completed())
    dispatcher = NotificationDispatcher(queue, deliver, poll_interval=0.01, delivery_timeout=1)

    assert await dispatcher.run_once()
    assert not await dispatcher.run_once()
    assert delivered == [_completed()]
    assert (await queue.stats()).pending == 0


@pytest.mark.asyncio
async def test_dispatcher_reschedules_failures(session_factory):
    queue = NotificationQueue(session_factory, max_attempts=3)

    async def deliver(event):
        raise httpx.ConnectError("chat down")

    await queue.publish(_completed())
    dispatcher = NotificationDispatcher(queue, deliver, delivery_timeout=1)

    assert await dispatcher.run_once()
    stats = await queue.stats()
    assert (stats.pending, stats.active) == (1, 0)
    # Not due again until the backoff elapses.
    assert not await dispatcher.run_once()


@pytest.mark.asyncio
async def test_dispatcher_loop_start_stop(session_factory):
    queue = NotificationQueue(session_factory)
    delivered = asyncio.Event()

    async def deliver(event):
        delivered.set()

    await queue.publish(_completed())
    dispatcher = NotificationDispatcher(queue, deliver, poll_interval=0.01)
    await dispatcher.start()
    await asyncio.wait_for(delivered.wait(), timeout=2)
    await dispatcher.stop()
