"""
Retry utilities for transient delivery errors.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

import httpx

logger = logging.getLogger(__name__)

# HTTP statuses that signal a transport-level problem worth retrying.
# Any other 4xx is an application-level rejection and is permanent.
_RETRYABLE_STATUS_CODES: frozenset[int] = frozenset({408, 429})


def is_transient_http_error(exception: BaseException) -> bool:
    """Check if an httpx error is transient and worth retrying.

    Transport errors (connect, read, timeouts) and 5xx responses are
    transient, as are 408 and 429. Other 4xx responses are not.
    """
    if isinstance(exception, (httpx.TransportError, TimeoutError, asyncio.TimeoutError)):
        return True
    if isinstance(exception, httpx.HTTPStatusError):
        status = exception.response.status_code
        return status >= 500 or status in _RETRYABLE_STATUS_CODES
    return False


async def run_with_retry(
    func: Callable[[], Awaitable[Any]],
    max_attempts: int = 3,
    initial_delay: float = 2.0,
    backoff_factor: float = 1.0,
    should_retry: Callable[[BaseException], bool] = is_transient_http_error,
    operation: str = "operation",
) -> Any:
    """
    Execute an async function, retrying on transient errors.

    Args:
        func: Async function to execute (no parameters)
        max_attempts: Total number of attempts, including the first
        initial_delay: Delay in seconds before the second attempt
        backoff_factor: Multiplier for the delay between attempts (1.0 = fixed delay)
        should_retry: Predicate deciding whether an error is transient
        operation: Name used in log messages

    Returns:
        Result from the function

    Raises:
        Exception: The last error once attempts are exhausted, or the first
        non-retryable error
    """
    for attempt in range(1, max_attempts + 1):
        try:
            return await func()
        except Exception as e:
            if not should_retry(e) or attempt >= max_attempts:
                raise

            wait_time = initial_delay * (backoff_factor ** (attempt - 1))
            logger.warning(
                "Transient error in %s (%s). Attempt %s/%s. Waiting %.1f seconds before retry...",
                operation,
                e,
                attempt,
                max_attempts,
                wait_time,
            )
            await asyncio.sleep(wait_time)

    raise RuntimeError(f"{operation}: max_attempts must be at least 1")
