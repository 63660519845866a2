"""Signed HTTP callback delivery of terminal job results."""

import asyncio
import json
import logging
from typing import Any

import httpx

from statgraph.config.constants import CallbackStatus
from statgraph.errors import DeliveryError
from statgraph.utils.retry import is_transient_http_error, run_with_retry

logger = logging.getLogger(__name__)

API_KEY_HEADER = "X-API-Key"


class CallbackSender:
    """POSTs ``{status, result | error}`` to the caller's URL.

    Transport failures, timeouts, 5xx, 408 and 429 are retried with a fixed
    delay; any other 4xx is a rejection and fails at once.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        api_key: str,
        max_attempts: int = 3,
        retry_delay: float = 2.0,
        timeout: float = 10.0,
    ):
        self.client = client
        self.api_key = api_key
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay
        self.timeout = timeout

    async def send_success(self, url: str, result: dict[str, Any]) -> None:
        await self.send_result(url, {"status": CallbackStatus.COMPLETED.value, "result": result})

    async def send_failure(self, url: str, error: str) -> None:
        await self.send_result(url, {"status": CallbackStatus.FAILED.value, "error": error})

    async def send_result(self, url: str, payload: dict[str, Any]) -> None:
        """
        Deliver a payload.

        Raises:
            DeliveryError: rejected by the receiver, or retries exhausted
        """
        attempts = 0

        async def _post() -> None:
            nonlocal attempts
            attempts += 1
            response = await self.client.post(
                url,
                json=payload,
                headers={API_KEY_HEADER: self.api_key},
                timeout=self.timeout,
            )
            response.raise_for_status()

        try:
            await run_with_retry(
                _post,
                max_attempts=self.max_attempts,
                initial_delay=self.retry_delay,
                backoff_factor=1.0,
                should_retry=is_transient_http_error,
                operation=f"callback to {url}",
            )
        except (httpx.HTTPError, asyncio.TimeoutError) as e:
            reason = _describe(e)
            if is_transient_http_error(e):
                logger.error(
                    "Callback delivery to %s failed after %s attempts (%s). Payload for manual recovery: %s",
                    url,
                    attempts,
                    reason,
                    json.dumps(payload, ensure_ascii=False, default=str),
                )
            else:
                logger.error("Callback to %s was rejected (%s), not retrying", url, reason)
            raise DeliveryError(url, attempts, reason) from e

        logger.info("Callback delivered to %s (status=%s)", url, payload.get("status"))


def _describe(error: BaseException) -> str:
    if isinstance(error, httpx.HTTPStatusError):
        return f"HTTP {error.response.status_code}"
    return str(error) or type(error).__name__
