"""Tests for chunked execution."""

from __future__ import annotations

import asyncio
import math

import pytest

from host_relay.errors import NotFoundError, ValidationError
from host_relay.host import ProgressReporter, partition, run_chunked
from host_relay.protocol import ProgressStatus


async def identity(item: int) -> int:
    return item


def reporter() -> ProgressReporter:
    return ProgressReporter(None, "cmd_1", "test")


class TestPartition:
    """Tests for splitting items into chunks."""

    def test_consecutive_groups(self) -> None:
        assert partition(list(range(1, 8)), 3) == [[1, 2, 3], [4, 5, 6], [7]]

    def test_empty(self) -> None:
        assert partition([], 3) == []

    def test_invalid_size(self) -> None:
        with pytest.raises(ValidationError):
            partition([1], 0)


class TestRunChunked:
    """Tests for the chunked engine."""

    @pytest.mark.asyncio
    async def test_twenty_five_items_in_chunks_of_ten(self) -> None:
        """25 items with chunk size 10 run as 10, 10, 5."""
        rep = reporter()

        result = await run_chunked(list(range(1, 26)), identity, reporter=rep, chunk_size=10, chunk_delay=0)

        assert result.chunks == 3
        assert result.processed == 25
        assert [o.value for o in result.outcomes] == list(range(1, 26))

        chunk_events = [e for e in rep.history if e.status == ProgressStatus.IN_PROGRESS]
        assert [e.processed_items for e in chunk_events] == [10, 20, 25]
        assert [e.current_chunk for e in chunk_events] == [1, 2, 3]
        assert rep.history[-1].status == ProgressStatus.COMPLETED
        assert rep.history[-1].processed_items == 25

    @pytest.mark.asyncio
    @pytest.mark.parametrize(("count", "size"), [(1, 1), (7, 3), (10, 10), (11, 10), (30, 4)])
    async def test_one_event_per_chunk(self, count: int, size: int) -> None:
        """Exactly ceil(N/C) chunk events between started and completed."""
        rep = reporter()

        await run_chunked(list(range(count)), identity, reporter=rep, chunk_size=size, chunk_delay=0)

        statuses = [e.status for e in rep.history]
        assert statuses[0] == ProgressStatus.STARTED
        assert statuses[-1] == ProgressStatus.COMPLETED
        assert statuses.count(ProgressStatus.IN_PROGRESS) == math.ceil(count / size)

    @pytest.mark.asyncio
    async def test_progress_formula_and_monotonic(self) -> None:
        """Chunk progress is round(5 + chunks_done/total_chunks * 90), ending at 100."""
        rep = reporter()

        await run_chunked(list(range(25)), identity, reporter=rep, chunk_size=10, chunk_delay=0)

        values = [e.progress for e in rep.history]
        assert values == [0, 35, 65, 95, 100]
        assert values == sorted(values)

    @pytest.mark.asyncio
    async def test_failing_item_is_isolated(self) -> None:
        """One failing item yields one failure and N-1 successes."""

        async def work(item: int) -> int:
            if item == 3:
                raise NotFoundError(f"node not found: {item}")
            return item * 2

        result = await run_chunked(list(range(6)), work, reporter=reporter(), chunk_size=2, chunk_delay=0)

        assert len(result.failed) == 1
        assert len(result.succeeded) == 5
        failure = result.failed[0]
        assert failure.item_id == "3"
        assert failure.error == "NotFoundError: node not found: 3"

    @pytest.mark.asyncio
    async def test_items_in_chunk_run_concurrently(self) -> None:
        """All items of a chunk are in flight together, chunks do not overlap."""
        in_flight = 0
        peak = 0

        async def work(item: int) -> int:
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.01)
            in_flight -= 1
            return item

        await run_chunked(list(range(9)), work, reporter=reporter(), chunk_size=3, chunk_delay=0)

        assert peak == 3

    @pytest.mark.asyncio
    async def test_empty_input(self) -> None:
        """Empty input emits only started and completed."""
        rep = reporter()

        result = await run_chunked([], identity, reporter=rep, chunk_size=5, chunk_delay=0)

        assert result.chunks == 0
        assert [e.status for e in rep.history] == [ProgressStatus.STARTED, ProgressStatus.COMPLETED]

    @pytest.mark.asyncio
    async def test_invalid_chunk_size(self) -> None:
        with pytest.raises(ValidationError):
            await run_chunked([1], identity, reporter=reporter(), chunk_size=0)

    @pytest.mark.asyncio
    async def test_custom_item_id(self) -> None:
        result = await run_chunked(
            [{"node_id": "1:2"}], _fail, reporter=reporter(), chunk_delay=0, item_id=lambda item: item["node_id"]
        )

        assert result.failed[0].item_id == "1:2"

    @pytest.mark.asyncio
    async def test_to_dict(self) -> None:
        result = await run_chunked([1, 2], identity, reporter=reporter(), chunk_size=1, chunk_delay=0)

        data = result.to_dict()

        assert data["processed"] == 2
        assert data["succeeded"] == 2
        assert data["failed"] == 0
        assert data["chunks"] == 2
        assert data["outcomes"][0] == {"item_id": "1", "success": True, "value": 1}


async def _fail(item: object) -> None:
    raise ValueError("bad item")
