"""Tests for the notification queue."""

import datetime

import pytest

from statgraph.config.constants import NotificationState
from statgraph.infrastructure.queue.database import utcnow
from statgraph.infrastructure.queue.notifications import NotificationEvent, NotificationQueue

EVENT = NotificationEvent(chat_id="42", uid="task-1", status="completed", dashboard_url="http://d.test/1")


@pytest.fixture
def queue(session_factory):
    return NotificationQueue(session_factory, max_attempts=3, backoff_base=2.0)


def test_backoff_doubles():
    queue = NotificationQueue(session_factory=None)
    assert [queue.backoff_delay(n) for n in (1, 2, 3)] == [2.0, 4.0, 8.0]


def test_event_payload_uses_camel_case():
    assert EVENT.to_payload() == {
        "chatId": "42",
        "uid": "task-1",
        "status": "completed",
        "dashboardUrl": "http://d.test/1",
    }


@pytest.mark.asyncio
async def test_publish_claim_ack(queue):
    notification_id = await queue.publish(EVENT)
    assert notification_id.startswith("notify-task-1-")

    item = await queue.claim_due()
    assert item.event == EVENT
    assert await queue.claim_due() is None

    await queue.ack(item.id)
    stats = await queue.stats()
    assert (stats.pending, stats.active, stats.failed) == (0, 0, 0)


@pytest.mark.asyncio
async def test_retries_with_backoff_then_fails(queue):
    await queue.publish(EVENT)
    now = utcnow()

    item = await queue.claim_due(now)
    assert await queue.retry_or_fail(item.id, "chat down", now) == NotificationState.PENDING
    assert await queue.claim_due(now + datetime.timedelta(seconds=1.9)) is None

    item = await queue.claim_due(now + datetime.timedelta(seconds=2))
    assert item.attempts == 1
    second = now + datetime.timedelta(seconds=2)
    assert await queue.retry_or_fail(item.id, "chat down", second) == NotificationState.PENDING
    assert await queue.claim_due(second + datetime.timedelta(seconds=3.9)) is None

    item = await queue.claim_due(second + datetime.timedelta(seconds=4))
    assert await queue.retry_or_fail(item.id, "chat down") == NotificationState.FAILED

    assert await queue.claim_due(now + datetime.timedelta(hours=1)) is None
    assert (await queue.stats()).failed == 1


@pytest.mark.asyncio
async def test_release_active(queue):
    await queue.publish(EVENT)
    await queue.claim_due()

    assert await queue.release_active() == 1
    assert await queue.claim_due() is not None
