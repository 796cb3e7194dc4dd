"""Async helpers for chunked batch processing and retries."""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable, Sequence
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


async def batch_process(
    items: Sequence[T],
    processor: Callable[[T, int], Awaitable[R]],
    on_progress: Callable[[int, int], None] | None = None,
    batch_size: int = 10,
) -> list[R]:
    """Run ``processor`` over items, ``batch_size`` at a time.

    Items within a chunk run concurrently; chunks run one after another.
    Results keep the input order. ``on_progress(done, total)`` is called
    after every chunk.
    """
    if batch_size < 1:
        raise ValueError("batch_size must be at least 1")

    results: list[R] = []
    total = len(items)
    for offset in range(0, total, batch_size):
        chunk = items[offset : offset + batch_size]
        results.extend(
            await asyncio.gather(*(processor(item, offset + i) for i, item in enumerate(chunk)))
        )
        if on_progress:
            on_progress(min(offset + batch_size, total), total)
    return results


async def retry_with_backoff(
    operation: Callable[[], Awaitable[T]],
    max_retries: int = 3,
    base_delay: float = 1.0,
    jitter: float = 1.0,
) -> T:
    """Await ``operation`` until it succeeds, at most ``max_retries + 1`` times.

    Waits ``base_delay * 2**attempt`` plus up to ``jitter`` seconds between
    attempts and re-raises the last error once retries are exhausted.
    """
    if max_retries < 0:
        raise ValueError("max_retries must be non-negative")

    attempt = 0
    while True:
        try:
            return await operation()
        except Exception as e:
            if attempt >= max_retries:
                raise
            delay = base_delay * 2**attempt + random.random() * jitter
            logger.debug("Attempt %d failed (%s), retrying in %.2fs", attempt + 1, e, delay)
            await asyncio.sleep(delay)
            attempt += 1
