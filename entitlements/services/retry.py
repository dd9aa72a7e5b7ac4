"""
Bounded retry with backoff.

A pure higher-order helper: the operation, the delay strategy and the sleep
function are all injected, so tests never touch real timers.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

from structlog import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

DelayStrategy = Callable[[int], float]
Sleep = Callable[[float], Awaitable[None]]


def linear_backoff(base_seconds: float) -> DelayStrategy:
    """Delay after attempt n is base_seconds * n."""

    def delay(attempt: int) -> float:
        return base_seconds * attempt

    return delay


async def retry_async(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int = 3,
    delay: DelayStrategy = linear_backoff(1.0),
    sleep: Sleep = asyncio.sleep,
    retry_on: tuple[type[BaseException], ...] = (Exception,),
) -> T:
    """
    Run operation until it succeeds or max_attempts is reached.

    Only the final attempt's error is raised; earlier errors are logged.
    There is no sleep after the final attempt.
    """
    if max_attempts < 1:
        raise ValueError(f"max_attempts must be at least 1: {max_attempts}")

    for attempt in range(1, max_attempts + 1):
        try:
            return await operation()
        except retry_on as exc:
            if attempt == max_attempts:
                raise
            wait = delay(attempt)
            logger.warning(
                "retrying_after_error",
                attempt=attempt,
                max_attempts=max_attempts,
                delay_seconds=wait,
                error=str(exc),
            )
            await sleep(wait)

    raise AssertionError("unreachable")
