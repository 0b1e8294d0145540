"""Bounded retry with exponential backoff for async operations."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from vrt.errors import BaselineNotFoundError, RetryExhaustedError, SecurityError

logger = logging.getLogger(__name__)

T = TypeVar("T")

NON_RETRIABLE: tuple[type[BaseException], ...] = (SecurityError, BaselineNotFoundError)


def compute_backoff(attempt: int, base_delay: float = 1.0, max_delay: float = 5.0) -> float:
    """Delay in seconds before the retry following ``attempt`` (0-based)."""
    return min(base_delay * (2 ** attempt), max_delay)


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 5.0,
    non_retriable: tuple[type[BaseException], ...] = NON_RETRIABLE,
) -> T:
    """Run ``operation`` up to ``retries + 1`` times.

    Errors listed in ``non_retriable`` propagate on first occurrence. Any
    other failure is retried after ``min(base_delay * 2**attempt, max_delay)``
    seconds; when all attempts fail a ``RetryExhaustedError`` chained to the
    last error is raised.
    """
    retries = max(0, retries)
    last_error: Exception | None = None

    for attempt in range(retries + 1):
        try:
            return await operation()
        except non_retriable:
            raise
        except Exception as e:
            last_error = e
            logger.warning("Attempt %d/%d failed: %s", attempt + 1, retries + 1, e)
            if attempt < retries:
                delay = compute_backoff(attempt, base_delay, max_delay)
                logger.info("Waiting %.1fs before retry...", delay)
                await asyncio.sleep(delay)

    raise RetryExhaustedError(retries + 1, last_error) from last_error
