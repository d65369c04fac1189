"""
Bounded-concurrency batch runner.
"""
import asyncio
from typing import Awaitable, Callable, List, Sequence, TypeVar

T = TypeVar("T")
R = TypeVar("R")


async def process_batch(
    items: Sequence[T],
    processor: Callable[[T, int], Awaitable[R]],
    batch_size: int,
) -> List[R]:
    """Run ``processor`` over ``items`` in fixed-size concurrent batches.

    Each batch runs concurrently and is awaited in full before the next one
    starts. Results keep the order of ``items``; the processor receives the
    item and its index in ``items``.
    """
    if batch_size < 1:
        raise ValueError("batch_size must be at least 1")

    results: List[R] = []
    for start in range(0, len(items), batch_size):
        batch = items[start:start + batch_size]
        batch_results = await asyncio.gather(
            *(processor(item, start + offset) for offset, item in enumerate(batch))
        )
        results.extend(batch_results)
    return results
