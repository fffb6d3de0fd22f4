"""Bounded retry with a flat delay for fallible async operations.

Only transient failures (connection errors, timeouts, 5xx) are retried.
Anything else is considered terminal and re-raised on the spot, so a
malformed upstream payload costs one request, not three.
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

import aiohttp

from wednesday.exceptions import RetryExhaustedError, TransientFetchError
from wednesday.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

TRANSIENT_ERRORS: tuple[type[BaseException], ...] = (
    TransientFetchError,
    aiohttp.ClientConnectionError,
    asyncio.TimeoutError,
)


@dataclass(frozen=True)
class RetryPolicy:
    """How many times to try and how long to wait in between (seconds)."""

    attempts: int = 3
    delay: float = 1.0

    def __post_init__(self) -> None:
        if self.attempts < 1:
            raise ValueError("attempts must be >= 1")
        if self.delay < 0:
            raise ValueError("delay must be >= 0")


DEFAULT_POLICY = RetryPolicy(attempts=3, delay=1.0)
SINGLE_ATTEMPT = RetryPolicy(attempts=1, delay=0.0)


async def retry(
    operation: Callable[[], Awaitable[T]],
    *,
    attempts: int = 3,
    delay: float = 1.0,
    transient: tuple[type[BaseException], ...] = TRANSIENT_ERRORS,
) -> T:
    """Run ``operation`` until it succeeds or the attempts are used up.

    Args:
        operation: Zero-argument callable returning a fresh awaitable per call.
        attempts: Total number of invocations allowed (1 = no retry).
        delay: Seconds to sleep between attempts.
        transient: Exception types worth another attempt.

    Returns:
        Whatever ``operation`` returns on its first successful call.

    Raises:
        RetryExhaustedError: every attempt failed transiently.
        Exception: any non-transient error, unchanged, from the attempt that hit it.
    """
    if attempts < 1:
        raise ValueError("attempts must be >= 1")

    last_error: BaseException | None = None
    for attempt in range(1, attempts + 1):
        try:
            return await operation()
        except transient as e:
            last_error = e
            if attempt == attempts:
                break
            logger.warning(
                "transient_failure_retrying",
                attempt=attempt,
                max_attempts=attempts,
                delay=delay,
                error=str(e) or type(e).__name__,
            )
            await asyncio.sleep(delay)

    assert last_error is not None
    logger.error(
        "retry_exhausted",
        attempts=attempts,
        error=str(last_error) or type(last_error).__name__,
    )
    raise RetryExhaustedError(attempts, last_error) from last_error


async def retry_with_policy(
    operation: Callable[[], Awaitable[T]], policy: RetryPolicy
) -> T:
    """Shorthand for ``retry`` driven by a RetryPolicy."""
    return await retry(operation, attempts=policy.attempts, delay=policy.delay)
