"""
Bounded-concurrency execution of async operations.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Dict, Hashable, Iterable, Optional, TypeVar


logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
T = TypeVar("T")


async def run_bounded(
    items: Iterable[K],
    operation: Callable[[K], Awaitable[T]],
    on_item_done: Optional[Callable[[K], None]],
    fallback: T,
    limit: int,
) -> Dict[K, T]:
    """Run ``operation`` over ``items`` with at most ``limit`` in flight.

    A pool of ``limit`` workers drains a shared queue; each worker awaits one
    operation at a time, so a slot is refilled as soon as an operation
    settles. An operation that raises yields ``fallback`` for its key.
    ``on_item_done`` is called once per key in completion order.

    Args:
        items: Keys to process, in submission order.
        operation: Coroutine function producing the result for a key.
        on_item_done: Optional callback invoked with each settled key.
        fallback: Result recorded for keys whose operation failed.
        limit: Maximum number of concurrent operations (values below 1
            are treated as 1).

    Returns:
        Mapping of every key to its result or ``fallback``.
    """
    keys = list(items)
    if not keys:
        return {}

    limit = max(1, limit)
    queue: asyncio.Queue = asyncio.Queue()
    for key in keys:
        queue.put_nowait(key)

    results: Dict[K, T] = {}

    async def worker() -> None:
        while True:
            try:
                key = queue.get_nowait()
            except asyncio.QueueEmpty:
                return
            try:
                results[key] = await operation(key)
            except Exception as e:
                logger.debug("Operation failed for %s, using fallback: %s", key, e)
                results[key] = fallback
            if on_item_done is not None:
                on_item_done(key)

    workers = min(limit, len(keys))
    await asyncio.gather(*(worker() for _ in range(workers)))
    return results
