"""End-to-end job flow: submission, workers, pipeline, callback and chat notification."""

import asyncio
import json

import httpx
import pytest

from statgraph.config.constants import JobStatus
from statgraph.infrastructure.graph.source import RegionDataRow
from statgraph.infrastructure.queue.jobs import JobQueue
from statgraph.infrastructure.queue.notifications import NotificationQueue
from statgraph.orchestrator.agent import QueryAgent
from statgraph.orchestrator.models import SectionSelection, StatformSelection, ViewSelection
from statgraph.services.catalog.service import CatalogService
from statgraph.services.dashboard.generator import DashboardAssembler
from statgraph.services.delivery.callback import CallbackSender
from statgraph.services.delivery.notifications import (
    ChatNotificationConsumer,
    NotificationDispatcher,
    success_message,
)
from statgraph.services.worker.pool import WorkerPool
from statgraph.services.worker.processor import TaskProcessor

CALLBACK = "https://x.test/cb"
QUESTION = "How many students in 2022?"

ANSWERS = {
    StatformSelection: {"statformIds": [12]},
    SectionSelection: {"sectionId": 101, "sectionName": "Студенты"},
    ViewSelection: {
        "viewIds": [201, 202],
        "cellCoordinates": {"colIndex": 2, "rowIndex": 1},
        "metadata": {"viewNames": ["Очная", "Заочная"], "sectionName": "Студенты", "statformName": "ВПО-1"},
    },
}


@pytest.fixture
def source(make_source, make_table):
    return make_source(
        query_results={
            "СТАТФОРМА": [{"id": 12, "name": "ВПО-1", "description": "Высшее образование"}],
            "$statformIds": [{"id": 101, "name": "Студенты", "fullName": "Раздел 2. Студенты"}],
            "$sectionId": [
                {"id": 201, "name": "Очная", "viewType": ""},
                {"id": 202, "name": "Заочная", "viewType": ""},
            ],
        },
        years={201: [2021, 2022], 202: [2022, 2023]},
        federal={201: {2021: make_table(1), 2022: make_table(100)}, 202: {2022: make_table(50)}},
        regional={
            201: [RegionDataRow("RU-MOW", "Москва", "ЦФО", {2022: make_table(30)})],
            202: [RegionDataRow("RU-MOW", "Москва", "ЦФО", {2022: make_table(20)})],
        },
    )


class CallbackRecorder:
    def __init__(self, statuses=None):
        self.requests = []
        self.statuses = list(statuses or [])
        self.received = asyncio.Event()

    def __call__(self, request):
        self.requests.append(request)
        status = self.statuses.pop(0) if self.statuses else 200
        if status < 500 or not self.statuses:
            self.received.set()
        return httpx.Response(status)

    @property
    def bodies(self):
        return [json.loads(r.content) for r in self.requests]


def _processor(session_factory, settings, source, oracle, recorder, notifications=None):
    queue = JobQueue(session_factory, job_timeout=settings.job_timeout)
    agent = QueryAgent(oracle, CatalogService(source), DashboardAssembler(source), settings)
    client = httpx.AsyncClient(transport=httpx.MockTransport(recorder))
    callbacks = CallbackSender(client, settings.callback_api_key, max_attempts=3, retry_delay=0, timeout=1)
    processor = TaskProcessor(agent, queue, callbacks, notifications, settings.dashboard_base_url)
    return queue, processor


@pytest.mark.asyncio
async def test_question_to_completed_callback(session_factory, settings, source, make_oracle):
    recorder = CallbackRecorder()
    queue, processor = _processor(session_factory, settings, source, make_oracle(ANSWERS), recorder)
    pool = WorkerPool(queue, processor, concurrency=2, poll_interval=0.01, sweep_interval=60)

    _, created = await queue.submit("task-1", QUESTION, CALLBACK)
    await pool.start()
    await asyncio.wait_for(recorder.received.wait(), timeout=5)
    await pool.stop()

    assert created
    assert len(recorder.requests) == 1
    assert str(recorder.requests[0].url) == CALLBACK
    body = recorder.bodies[0]
    assert body["status"] == "completed"
    dashboard = body["result"]["dashboard"]
    assert dashboard["title"] == QUESTION
    linear, russia_map = dashboard["charts"]
    assert linear["type"] == "linear"
    assert linear["data"]["years"][0]["points"] == [{"x": 2022, "y": 150.0}]
    assert russia_map["type"] == "russia_map"
    assert russia_map["data"]["years"][0]["regions"] == [{"regionCode": "RU-MOW", "value": 50.0}]
    assert await queue.get("task-1") is None


@pytest.mark.asyncio
async def test_view_without_years_fails_with_message(session_factory, settings, source, make_oracle):
    source.years = {201: [], 202: []}
    oracle = make_oracle(ANSWERS)
    recorder = CallbackRecorder()
    queue, processor = _processor(session_factory, settings, source, oracle, recorder)

    await queue.submit("task-1", QUESTION, CALLBACK)
    assert not await processor.process(await queue.claim())

    assert len(recorder.requests) == 1
    body = recorder.bodies[0]
    assert body["status"] == "failed"
    assert "No data available for view 201" in body["error"]
    # The view selection prompt was never sent, so no later stage ran.
    assert "ViewSelection" not in [call[0] for call in oracle.calls]
    assert (await queue.get("task-1")).status == JobStatus.FAILED


@pytest.mark.asyncio
async def test_callback_server_errors_fail_job_without_requeue(session_factory, settings, source, make_oracle):
    recorder = CallbackRecorder(statuses=[500, 500, 500])
    queue, processor = _processor(session_factory, settings, source, make_oracle(ANSWERS), recorder)

    await queue.submit("task-1", QUESTION, CALLBACK)
    assert not await processor.process(await queue.claim())

    assert len(recorder.requests) == 3
    assert all(body["status"] == "completed" for body in recorder.bodies)
    assert (await queue.get("task-1")).status == JobStatus.FAILED
    assert await queue.claim() is None


@pytest.mark.asyncio
async def test_chat_is_notified_of_completion(session_factory, settings, source, make_oracle):
    sent = []
    delivered = asyncio.Event()

    class Messenger:
        async def send_message(self, chat_id, text):
            sent.append((chat_id, text))
            delivered.set()

    notifications = NotificationQueue(session_factory)
    consumer = ChatNotificationConsumer(Messenger(), timeout=30)
    dispatcher = NotificationDispatcher(notifications, consumer.handle, poll_interval=0.01)
    queue, processor = _processor(
        session_factory, settings, source, make_oracle(ANSWERS), CallbackRecorder(), notifications
    )

    await queue.submit("task-1", QUESTION, CALLBACK, chat_id="42")
    consumer.watch("42", "task-1")
    await dispatcher.start()
    await processor.process(await queue.claim())
    await asyncio.wait_for(delivered.wait(), timeout=5)
    await dispatcher.stop()
    await consumer.close()

    expected_url = f"{settings.dashboard_base_url}/dashboard/task-1"
    assert sent == [("42", success_message(expected_url))]
