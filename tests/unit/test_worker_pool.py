"""Tests for the worker pool."""

import asyncio
import datetime
from unittest.mock import AsyncMock, MagicMock

import pytest

from statgraph.infrastructure.queue.database import utcnow
from statgraph.infrastructure.queue.jobs import JobQueue
from statgraph.services.worker.pool import WorkerPool

CALLBACK = "http://caller.test/callback"


@pytest.mark.asyncio
async def test_workers_process_every_job_once(session_factory):
    queue = JobQueue(session_factory)
    for i in range(5):
        await queue.submit(f"task-{i}", "q", CALLBACK)

    seen = []
    done = asyncio.Event()

    async def process(job):
        seen.append(job.id)
        await queue.complete(job.id)
        if len(seen) == 5:
            done.set()

    processor = MagicMock()
    processor.process = process
    pool = WorkerPool(queue, processor, concurrency=3, poll_interval=0.01, sweep_interval=60)

    await pool.start()
    await asyncio.wait_for(done.wait(), timeout=5)
    await pool.stop()

    assert sorted(seen) == [f"task-{i}" for i in range(5)]
    assert not pool.running


@pytest.mark.asyncio
async def test_worker_survives_processor_errors(session_factory):
    queue = JobQueue(session_factory)
    await queue.submit("task-1", "q", CALLBACK)
    await queue.submit("task-2", "q", CALLBACK)

    seen = []
    done = asyncio.Event()

    async def process(job):
        seen.append(job.id)
        if len(seen) == 2:
            done.set()
        raise RuntimeError("bug")

    processor = MagicMock()
    processor.process = process
    pool = WorkerPool(queue, processor, concurrency=1, poll_interval=0.01, sweep_interval=60)

    await pool.start()
    await asyncio.wait_for(done.wait(), timeout=5)
    await pool.stop()

    assert seen == ["task-1", "task-2"]


@pytest.mark.asyncio
async def test_sweep_reports_expired_jobs(session_factory):
    queue = JobQueue(session_factory, job_timeout=10)
    await queue.submit("task-1", "q", CALLBACK)
    await queue.claim()

    processor = MagicMock()
    processor.report_expired = AsyncMock()
    pool = WorkerPool(queue, processor, sweep_grace=5)

    assert await pool.sweep_once(utcnow() + datetime.timedelta(seconds=12)) == []
    expired = await pool.sweep_once(utcnow() + datetime.timedelta(seconds=20))

    assert [job.id for job in expired] == ["task-1"]
    processor.report_expired.assert_awaited_once_with(expired[0])
