"""Tests for job processing."""

import asyncio
import datetime
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from statgraph.config.constants import JobStatus
from statgraph.errors import DeliveryError, StageError
from statgraph.infrastructure.queue.database import utcnow
from statgraph.infrastructure.queue.jobs import JobQueue
from statgraph.infrastructure.queue.notifications import NotificationQueue
from statgraph.services.dashboard.models import Dashboard, DashboardData
from statgraph.services.worker.pool import WorkerPool
from statgraph.services.worker.processor import TaskProcessor

CALLBACK = "http://caller.test/callback"
DASHBOARD = DashboardData(dashboard=Dashboard(title="q", description="d", charts=[]))


@pytest.fixture
def queue(session_factory):
    return JobQueue(session_factory, job_timeout=5)


@pytest.fixture
def notifications(session_factory):
    return NotificationQueue(session_factory)


def _callbacks(success_error=None, failure_error=None):
    callbacks = MagicMock()
    callbacks.send_success = AsyncMock(side_effect=success_error)
    callbacks.send_failure = AsyncMock(side_effect=failure_error)
    return callbacks


def _agent(result=None, error=None):
    agent = MagicMock()
    agent.process_query = AsyncMock(return_value=result, side_effect=error)
    return agent


async def _claimed(queue, chat_id=None):
    await queue.submit("task-1", "Численность", CALLBACK, chat_id=chat_id)
    return await queue.claim()


@pytest.mark.asyncio
async def test_success_sends_one_completed_callback(queue, notifications):
    callbacks = _callbacks()
    processor = TaskProcessor(_agent(DASHBOARD), queue, callbacks, notifications, "http://dash.test/")

    assert await processor.process(await _claimed(queue, chat_id="42"))

    callbacks.send_success.assert_awaited_once_with(CALLBACK, DASHBOARD.to_payload())
    callbacks.send_failure.assert_not_awaited()
    assert await queue.get("task-1") is None
    item = await notifications.claim_due()
    assert item.event.dashboard_url == "http://dash.test/dashboard/task-1"
    assert item.event.status == "completed"


@pytest.mark.asyncio
async def test_stage_failure_sends_one_failed_callback(queue, notifications):
    callbacks = _callbacks()
    agent = _agent(error=StageError("pipeline", "Could not select statforms: empty"))
    processor = TaskProcessor(agent, queue, callbacks, notifications)

    assert not await processor.process(await _claimed(queue, chat_id="42"))

    callbacks.send_failure.assert_awaited_once_with(CALLBACK, "Could not select statforms: empty")
    callbacks.send_success.assert_not_awaited()
    job = await queue.get("task-1")
    assert job.status == JobStatus.FAILED
    item = await notifications.claim_due()
    assert item.event.error_message == "Could not select statforms: empty"


@pytest.mark.asyncio
async def test_unexpected_error_has_non_empty_message(queue):
    callbacks = _callbacks()
    processor = TaskProcessor(_agent(error=RuntimeError()), queue, callbacks)

    await processor.process(await _claimed(queue))

    message = callbacks.send_failure.await_args.args[1]
    assert message == "Unexpected error: RuntimeError"


@pytest.mark.asyncio
async def test_deadline_fails_the_job(queue):
    async def slow(question, job_id=None):
        await asyncio.sleep(10)

    agent = MagicMock()
    agent.process_query = slow
    callbacks = _callbacks()
    queue.job_timeout = 0.05
    processor = TaskProcessor(agent, queue, callbacks)

    assert not await processor.process(await _claimed(queue))

    assert "deadline" in callbacks.send_failure.await_args.args[1]
    assert (await queue.get("task-1")).status == JobStatus.FAILED


@pytest.mark.asyncio
async def test_undelivered_result_fails_job_without_second_callback(queue):
    callbacks = _callbacks(success_error=DeliveryError(CALLBACK, 3, "HTTP 503"))
    processor = TaskProcessor(_agent(DASHBOARD), queue, callbacks)

    assert not await processor.process(await _claimed(queue))

    callbacks.send_failure.assert_not_awaited()
    job = await queue.get("task-1")
    assert job.status == JobStatus.FAILED
    assert job.error == "Result callback could not be delivered"


@pytest.mark.asyncio
async def test_undelivered_failure_is_logged_critical(queue, caplog):
    callbacks = _callbacks(failure_error=DeliveryError(CALLBACK, 3, "HTTP 503"))
    processor = TaskProcessor(_agent(error=StageError("pipeline", "boom")), queue, callbacks)

    await processor.process(await _claimed(queue))

    assert any(r.levelname == "CRITICAL" for r in caplog.records)
    assert (await queue.get("task-1")).status == JobStatus.FAILED


@pytest.mark.asyncio
async def test_no_notification_without_chat(queue, notifications):
    processor = TaskProcessor(_agent(DASHBOARD), queue, _callbacks(), notifications)
    await processor.process(await _claimed(queue))
    assert await notifications.claim_due() is None


@pytest.mark.asyncio
async def test_store_error_after_delivery_never_triggers_second_callback(queue):
    callbacks = _callbacks()
    processor = TaskProcessor(_agent(DASHBOARD), queue, callbacks)
    job = await _claimed(queue)
    queue.complete = AsyncMock(side_effect=OperationalError("DELETE", {}, Exception("database is locked")))

    assert await processor.process(job)

    pool = WorkerPool(queue, processor, sweep_grace=0)
    assert await pool.sweep_once(now=utcnow() + datetime.timedelta(seconds=60)) == []
    assert callbacks.send_success.await_count + callbacks.send_failure.await_count == 1
    assert (await queue.get("task-1")).status == JobStatus.DELIVERING


@pytest.mark.asyncio
async def test_job_expired_by_sweeper_gets_no_callback_from_worker(queue):
    callbacks = _callbacks()
    processor = TaskProcessor(_agent(DASHBOARD), queue, callbacks)
    job = await _claimed(queue)
    pool = WorkerPool(queue, processor, sweep_grace=0)

    expired = await pool.sweep_once(now=utcnow() + datetime.timedelta(seconds=60))
    assert not await processor.process(job)

    assert [j.id for j in expired] == ["task-1"]
    callbacks.send_success.assert_not_awaited()
    callbacks.send_failure.assert_awaited_once_with(CALLBACK, "Job deadline exceeded")
