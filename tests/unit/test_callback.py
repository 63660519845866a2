"""Tests for callback delivery."""

import json

import httpx
import pytest

from statgraph.config.settings import Settings
from statgraph.errors import DeliveryError
from statgraph.services.delivery.callback import API_KEY_HEADER, CallbackSender

URL = "http://caller.test/callback"


def _sender(handler, max_attempts=3):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return CallbackSender(client, "secret", max_attempts=max_attempts, retry_delay=0, timeout=1)


@pytest.mark.asyncio
async def test_success_payload_and_api_key():
    requests = []

    def handler(request):
        requests.append(request)
        return httpx.Response(200)

    await _sender(handler).send_success(URL, {"dashboard": {"title": "t"}})

    assert len(requests) == 1
    assert requests[0].headers[API_KEY_HEADER] == "secret"
    assert json.loads(requests[0].content) == {"status": "completed", "result": {"dashboard": {"title": "t"}}}


@pytest.mark.asyncio
async def test_failure_payload():
    bodies = []

    def handler(request):
        bodies.append(json.loads(request.content))
        return httpx.Response(204)

    await _sender(handler).send_failure(URL, "Could not select statforms")
    assert bodies == [{"status": "failed", "error": "Could not select statforms"}]


@pytest.mark.asyncio
async def test_retries_transient_errors_until_success():
    responses = iter([httpx.Response(503), httpx.Response(502), httpx.Response(200)])
    calls = []

    def handler(request):
        calls.append(request)
        return next(responses)

    await _sender(handler).send_success(URL, {})
    assert len(calls) == 3


@pytest.mark.asyncio
async def test_gives_up_after_max_attempts(caplog):
    calls = []

    def handler(request):
        calls.append(request)
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(DeliveryError) as exc_info:
        await _sender(handler).send_failure(URL, "boom")

    assert len(calls) == 3
    assert exc_info.value.attempts == 3
    assert "Payload for manual recovery" in caplog.text


@pytest.mark.asyncio
async def test_client_errors_are_not_retried():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(401)

    with pytest.raises(DeliveryError, match="HTTP 401"):
        await _sender(handler).send_success(URL, {})
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_too_many_requests_is_retried():
    responses = iter([httpx.Response(429), httpx.Response(200)])
    await _sender(lambda request: next(responses)).send_success(URL, {})


@pytest.mark.asyncio
async def test_retries_are_spaced_by_a_fixed_delay(monkeypatch):
    sleeps = []

    async def fake_sleep(delay):
        sleeps.append(delay)

    monkeypatch.setattr("statgraph.utils.retry.asyncio.sleep", fake_sleep)
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(500)

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    sender = CallbackSender(client, "secret", timeout=1)

    with pytest.raises(DeliveryError):
        await sender.send_success(URL, {})

    assert len(calls) == 3
    assert sleeps == [2.0, 2.0]


def test_default_retry_delay_is_two_seconds():
    assert Settings(_env_file=None).callback_retry_delay == 2.0
