"""
retry.py — Bounded retry with exponential backoff for async operations.

    result = await retry_with_backoff(lambda: call_model(...))

The operation is any zero-argument callable returning an awaitable.  It is
called up to `attempts` times; after a failed attempt i (0-based) the helper
sleeps base_delay * multiplier ** i seconds.  No jitter.  When the last attempt
fails, its exception is re-raised unchanged.

`sleep` is injectable so tests can record delays instead of waiting.
"""

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

T = TypeVar('T')
logger = logging.getLogger(__name__)

DEFAULT_ATTEMPTS   = 3
DEFAULT_BASE_DELAY = 1.0   # seconds
DEFAULT_MULTIPLIER = 2


def backoff_delays(attempts: int = DEFAULT_ATTEMPTS,
                   base_delay: float = DEFAULT_BASE_DELAY,
                   multiplier: float = DEFAULT_MULTIPLIER) -> list[float]:
    """Delays slept between attempts: attempts - 1 entries."""
    return [base_delay * multiplier ** i for i in range(max(attempts - 1, 0))]


async def retry_with_backoff(
    operation: Callable[[], Awaitable[T]],
    attempts: int = DEFAULT_ATTEMPTS,
    base_delay: float = DEFAULT_BASE_DELAY,
    multiplier: float = DEFAULT_MULTIPLIER,
    retry_on: tuple[type[BaseException], ...] = (Exception,),
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    label: str = 'operation',
) -> T:
    if attempts < 1:
        raise ValueError('attempts must be >= 1')

    delays = backoff_delays(attempts, base_delay, multiplier)
    for attempt in range(attempts):
        try:
            return await operation()
        except retry_on as exc:
            if attempt == attempts - 1:
                logger.error('%s: attempt %d/%d failed — giving up: %s',
                             label, attempt + 1, attempts, exc)
                raise
            delay = delays[attempt]
            logger.warning('%s: attempt %d/%d failed (%s) — retrying in %.1fs',
                           label, attempt + 1, attempts, exc, delay)
            await sleep(delay)

    raise AssertionError('unreachable')  # pragma: no cover
