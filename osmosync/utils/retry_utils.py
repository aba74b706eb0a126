"""Retry utilities for remote calls that may fail transiently.

Only reads are retried here. Writes to the remote document go through the
store's own version-token loop instead, so a retry can never commit twice.
"""

from __future__ import annotations

import asyncio
import logging
import random
from typing import TYPE_CHECKING, TypeVar

import httpx

from osmosync.domain.exceptions import OsmosyncError, RemoteNetworkError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

T = TypeVar("T")

# HTTP status codes that should trigger a retry
RETRYABLE_STATUS_CODES = frozenset({408, 429, 500, 502, 503, 504})

DEFAULT_MAX_RETRIES = 2
DEFAULT_BASE_DELAY = 0.5  # seconds
DEFAULT_MAX_DELAY = 8.0  # seconds
DEFAULT_JITTER = 0.1  # 10% jitter


def is_transient_error(error: BaseException) -> bool:
    """Determine if an error is transient and worth retrying.

    Transient errors include:
    - transport failures (connection, timeout, protocol)
    - rate limiting and temporary server errors
    - ``RemoteNetworkError`` raised by our own clients
    """
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code in RETRYABLE_STATUS_CODES
    if isinstance(error, (httpx.TransportError, RemoteNetworkError)):
        return True
    # our own errors are already classified
    if isinstance(error, OsmosyncError):
        return False

    error_str = str(error).lower()
    transient_keywords = (
        "timeout",
        "timed out",
        "connection",
        "rate limit",
        "temporarily",
        "unavailable",
    )
    return any(keyword in error_str for keyword in transient_keywords)


def _calculate_delay(attempt: int, base_delay: float, max_delay: float, jitter: float) -> float:
    delay = min(base_delay * (2**attempt), max_delay)
    return delay + delay * jitter * random.random()


async def retry_with_backoff(
    func: Callable[[], Awaitable[T]],
    *,
    max_retries: int = DEFAULT_MAX_RETRIES,
    base_delay: float = DEFAULT_BASE_DELAY,
    max_delay: float = DEFAULT_MAX_DELAY,
    jitter: float = DEFAULT_JITTER,
    operation_name: str = "operation",
) -> T:
    """Execute an async function with exponential backoff retry.

    Args:
        func: Async function to execute
        max_retries: Maximum number of retry attempts
        base_delay: Base delay between retries in seconds
        max_delay: Maximum delay between retries
        jitter: Random jitter factor to add to delay
        operation_name: Name of operation for logging

    Returns:
        Result of the function

    Raises:
        The last exception, once it is not transient or retries are exhausted.
    """
    attempt = 0
    while True:
        try:
            return await func()
        except Exception as exc:
            if not is_transient_error(exc) or attempt >= max_retries:
                if attempt:
                    logger.warning(
                        "retry_exhausted",
                        extra={
                            "operation": operation_name,
                            "attempts": attempt + 1,
                            "error": str(exc),
                        },
                    )
                raise

            delay = _calculate_delay(attempt, base_delay, max_delay, jitter)
            logger.debug(
                "retrying_after_transient_error",
                extra={
                    "operation": operation_name,
                    "attempt": attempt + 1,
                    "max_retries": max_retries,
                    "delay_seconds": round(delay, 2),
                    "error": str(exc),
                },
            )
            await asyncio.sleep(delay)
            attempt += 1
