"""
Unit tests for crawler.utils.batch.
"""
import asyncio

import pytest

from crawler.utils.batch import process_batch


class TestProcessBatch:

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_results_keep_item_order(self):
        async def processor(item, index):
            await asyncio.sleep(0.01 * (5 - item))
            return (item * 10, index)

        results = await process_batch([1, 2, 3, 4, 5], processor, 2)

        assert results == [(10, 0), (20, 1), (30, 2), (40, 3), (50, 4)]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_concurrency_is_bounded_by_batch_size(self):
        running = 0
        peak = 0

        async def processor(item, index):
            nonlocal running, peak
            running += 1
            peak = max(peak, running)
            await asyncio.sleep(0.01)
            running -= 1
            return item

        await process_batch(list(range(7)), processor, 3)

        assert peak == 3

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_batch_completes_before_next_starts(self):
        events = []

        async def processor(item, index):
            events.append(("start", item))
            await asyncio.sleep(0.01)
            events.append(("end", item))

        await process_batch([0, 1, 2, 3], processor, 2)

        assert events.index(("start", 2)) > events.index(("end", 0))
        assert events.index(("start", 2)) > events.index(("end", 1))

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_empty_input(self):
        async def processor(item, index):
            return item

        assert await process_batch([], processor, 3) == []

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_invalid_batch_size(self):
        async def processor(item, index):
            return item

        with pytest.raises(ValueError):
            await process_batch([1], processor, 0)
