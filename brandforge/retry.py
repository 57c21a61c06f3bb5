import asyncio
import logging
import random
from typing import Awaitable, Callable, Optional, TypeVar

from brandforge.errors import ErrorKind, GenerationError

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_ATTEMPTS = 3
DEFAULT_BASE_DELAY = 0.8
DEFAULT_JITTER = 0.2


def is_retryable(error: GenerationError, allow_resource_exhausted: bool = True) -> bool:
    if error.kind == ErrorKind.TRANSIENT:
        return True
    if error.kind == ErrorKind.RATE_LIMITED:
        return allow_resource_exhausted
    return False


def backoff_delay(
    attempt: int,
    base_delay: float = DEFAULT_BASE_DELAY,
    jitter: float = DEFAULT_JITTER,
) -> float:
    """Seconds to wait after the given zero-based failed attempt."""
    return base_delay * (2 ** attempt) + random.uniform(0, jitter)


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    attempts: int = DEFAULT_ATTEMPTS,
    base_delay: Optional[float] = None,
    allow_resource_exhausted: bool = True,
    jitter: Optional[float] = None,
) -> T:
    """
    Await ``operation()`` with bounded exponential backoff.

    Only GenerationErrors of a retryable kind are retried; anything else, and
    the last error once attempts run out, propagates unchanged.
    """
    attempts = max(1, attempts)
    if base_delay is None:
        base_delay = DEFAULT_BASE_DELAY
    if jitter is None:
        jitter = DEFAULT_JITTER

    for attempt in range(attempts - 1):
        try:
            return await operation()
        except GenerationError as e:
            if not is_retryable(e, allow_resource_exhausted):
                raise

            delay = backoff_delay(attempt, base_delay, jitter)
            logger.warning(
                f"Gemini call failed ({e.kind.value}, attempt {attempt + 1}/{attempts}): "
                f"{e.message}. Retrying in {delay:.2f}s"
            )
            await asyncio.sleep(delay)

    return await operation()
