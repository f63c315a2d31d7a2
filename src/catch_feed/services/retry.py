"""Retry helper for transient store failures."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from catch_feed.errors import CatchFeedError

T = TypeVar("T")

_logger = logging.getLogger(__name__)


async def call_with_retry(
    func: Callable[[], Awaitable[T]],
    *,
    action: str,
    attempts: int = 2,
    delay_seconds: float = 0.3,
    max_delay_seconds: float = 5.0,
) -> T:
    """Call an async function, retrying retryable errors with backoff."""
    attempt = 0
    while True:
        try:
            return await func()
        except CatchFeedError as exc:
            attempt += 1
            if not getattr(exc, "retryable", False) or attempt > attempts:
                raise
            wait = min(delay_seconds * 2 ** (attempt - 1), max_delay_seconds)
            _logger.warning(
                "Store %s failed (attempt %s/%s), retrying in %.2fs: %s",
                action,
                attempt,
                attempts + 1,
                wait,
                exc,
            )
            await asyncio.sleep(wait)
