"""
Provider Retries
================
Exponential backoff for transient transport failures when talking to
delivery providers.

Store operations are never retried here; a ``concurrent-update`` outcome is
returned to the caller, which owns that retry policy.
"""

import asyncio
import random
from typing import Awaitable, Callable, Optional, Tuple, Type, TypeVar

import structlog

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class RetryExhausted(Exception):
    """Every attempt failed with a retryable error."""

    def __init__(self, message: str, last_exception: Optional[BaseException] = None):
        super().__init__(message)
        self.last_exception = last_exception


def backoff_delay(attempt: int, base_delay: float, max_delay: float, jitter: bool = True) -> float:
    """Delay before retry number ``attempt`` (1-based), doubling up to ``max_delay``."""
    delay = min(base_delay * 2 ** (attempt - 1), max_delay)
    if jitter:
        delay *= 0.5 + random.random()
    return delay


async def retry_with_backoff(
    func: Callable[..., Awaitable[T]],
    *args,
    max_attempts: int = 3,
    base_delay: float = 0.5,
    max_delay: float = 5.0,
    jitter: bool = True,
    retryable_exceptions: Tuple[Type[BaseException], ...] = (Exception,),
    **kwargs,
) -> T:
    """
    Await ``func(*args, **kwargs)``, retrying on ``retryable_exceptions``.

    Other exceptions propagate immediately.

    Raises:
        RetryExhausted: After ``max_attempts`` retryable failures
    """
    name = getattr(func, "__name__", repr(func))
    attempt = 0
    while True:
        attempt += 1
        try:
            return await func(*args, **kwargs)
        except retryable_exceptions as e:
            if attempt >= max_attempts:
                logger.error("Provider call failed, giving up", func=name, attempts=attempt, error=str(e))
                raise RetryExhausted(f"Failed after {attempt} attempts: {e}", last_exception=e) from e
            delay = backoff_delay(attempt, base_delay, max_delay, jitter)
            logger.warning(
                "Provider call failed, retrying",
                func=name,
                attempt=attempt,
                delay=round(delay, 3),
                error=str(e),
            )
            await asyncio.sleep(delay)
