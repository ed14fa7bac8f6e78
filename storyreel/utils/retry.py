"""
Bounded exponential-backoff retry for provider calls.

Errors are classified as retryable (DNS/connect failures, timeouts,
HTTP 429, HTTP 5xx) or fatal (everything else: validation, malformed
JSON, auth). Fatal errors propagate on first occurrence.
"""

import asyncio
import random
import time
from typing import Awaitable, Callable, Optional, TypeVar

import httpx

from storyreel.errors import (
    FatalProviderError,
    ProviderError,
    TransientProviderError,
)
from storyreel.utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

_NETWORK_MARKERS = (
    "enotfound",
    "getaddrinfo",
    "name or service not known",
    "cannot connect",
    "connection refused",
    "connection reset",
    "connection error",
    "timed out",
    "timeout",
)
_RATE_LIMIT_MARKERS = ("rate limit", "too many requests", "429")
_SERVER_ERROR_MARKERS = ("500", "502", "503", "504")


def _status_code_of(error: BaseException) -> Optional[int]:
    """Pull an HTTP status code off httpx or SDK exceptions, if present."""
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code
    status = getattr(error, "status_code", None)
    if isinstance(status, int):
        return status
    response = getattr(error, "response", None)
    status = getattr(response, "status_code", None)
    return status if isinstance(status, int) else None


def is_retryable_error(error: BaseException) -> bool:
    """Return True for network, timeout, rate-limit and 5xx failures."""
    if isinstance(error, TransientProviderError):
        return True
    if isinstance(error, FatalProviderError):
        return False
    if isinstance(error, ProviderError) and error.original_error is not None:
        return is_retryable_error(error.original_error)
    if isinstance(error, (httpx.TransportError, asyncio.TimeoutError, ConnectionError)):
        return True

    status = _status_code_of(error)
    if status is not None:
        return status == 429 or status >= 500

    message = str(error).lower()
    return any(
        marker in message
        for marker in _NETWORK_MARKERS + _RATE_LIMIT_MARKERS + _SERVER_ERROR_MARKERS
    )


def to_provider_error(error: BaseException, message: str) -> ProviderError:
    """Wrap an arbitrary provider failure in the engine's error taxonomy."""
    if isinstance(error, ProviderError):
        return error
    if is_retryable_error(error):
        return TransientProviderError(f"{message}: {error}", original_error=error)
    return FatalProviderError(f"{message}: {error}", original_error=error)


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int = 3,
    base_delay: float = 1.0,
    operation_name: str = "operation",
    jitter: float = 0.0,
) -> T:
    """
    Run ``operation`` with bounded exponential backoff.

    Args:
        operation: Zero-argument coroutine factory, called once per attempt
        max_attempts: Total number of tries including the first
        base_delay: Delay in seconds before the second attempt; doubles each retry
        operation_name: Label used in log lines
        jitter: Optional uniform jitter as a fraction of the delay

    Returns:
        The operation's result

    Raises:
        The last error, once attempts are exhausted or the error is fatal
    """
    for attempt in range(1, max_attempts + 1):
        start_time = time.time()
        try:
            return await operation()
        except Exception as e:
            duration_ms = round((time.time() - start_time) * 1000, 2)
            retryable = is_retryable_error(e)

            if attempt == max_attempts or not retryable:
                logger.warning(
                    f"[Retry] {operation_name} failed on attempt {attempt}/{max_attempts}, giving up: {e}",
                    extra={
                        "component": "Retry",
                        "operation": operation_name,
                        "attempt": attempt,
                        "max_attempts": max_attempts,
                        "retryable": retryable,
                        "duration_ms": duration_ms,
                        "error_type": type(e).__name__,
                        "error": str(e)[:300],
                    },
                )
                raise

            delay = base_delay * (2 ** (attempt - 1))
            if jitter > 0:
                delay = max(0.0, delay + (random.random() * 2 - 1) * jitter * delay)

            logger.info(
                f"[Retry] {operation_name} attempt {attempt}/{max_attempts} failed, retrying in {delay:.2f}s",
                extra={
                    "component": "Retry",
                    "operation": operation_name,
                    "attempt": attempt,
                    "max_attempts": max_attempts,
                    "delay_seconds": delay,
                    "duration_ms": duration_ms,
                    "error_type": type(e).__name__,
                    "error": str(e)[:300],
                },
            )
            await asyncio.sleep(delay)

    # max_attempts < 1
    raise ValueError("max_attempts must be at least 1")
