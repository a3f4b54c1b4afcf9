"""Tests for the progress reporter."""

from __future__ import annotations

import pytest

from host_relay.host import ProgressReporter
from host_relay.protocol import ProgressEvent, ProgressStatus


class Collector:
    def __init__(self) -> None:
        self.events: list[ProgressEvent] = []

    async def __call__(self, event: ProgressEvent) -> None:
        self.events.append(event)


class TestProgressReporter:
    """Tests for well-formed progress streams."""

    @pytest.mark.asyncio
    async def test_lifecycle(self) -> None:
        collector = Collector()
        reporter = ProgressReporter(collector, "cmd_1", "scan_text_nodes")

        await reporter.started("go", total_items=4)
        await reporter.update(50, "half", processed_items=2)
        await reporter.completed("done", processed_items=4)

        statuses = [e.status for e in collector.events]
        assert statuses == [ProgressStatus.STARTED, ProgressStatus.IN_PROGRESS, ProgressStatus.COMPLETED]
        assert [e.progress for e in collector.events] == [0, 50, 100]
        assert collector.events[1].total_items == 4
        assert collector.events[-1].processed_items == 4
        assert reporter.history == collector.events

    @pytest.mark.asyncio
    async def test_clamped(self) -> None:
        reporter = ProgressReporter(None, "cmd_1", "x")

        event = await reporter.update(250)

        assert event is not None
        assert event.progress == 100

    @pytest.mark.asyncio
    async def test_never_decreases(self) -> None:
        """A lower value than already reported is raised to the previous one."""
        reporter = ProgressReporter(None, "cmd_1", "x")

        await reporter.update(40)
        event = await reporter.update(10)

        assert event is not None
        assert event.progress == 40

    @pytest.mark.asyncio
    async def test_nothing_after_terminal(self) -> None:
        collector = Collector()
        reporter = ProgressReporter(collector, "cmd_1", "x")

        await reporter.completed()
        assert await reporter.update(50) is None
        assert await reporter.error("late") is None

        assert len(collector.events) == 1
        assert reporter.finished

    @pytest.mark.asyncio
    async def test_error_keeps_progress(self) -> None:
        reporter = ProgressReporter(None, "cmd_1", "x")
        await reporter.update(30)

        event = await reporter.error("boom")

        assert event is not None
        assert event.status == ProgressStatus.ERROR
        assert event.progress == 30

    @pytest.mark.asyncio
    async def test_send_failure_is_swallowed(self) -> None:
        """Progress is advisory: a failing send never reaches the handler."""

        async def broken(event: ProgressEvent) -> None:
            raise ConnectionError("relay gone")

        reporter = ProgressReporter(broken, "cmd_1", "x")

        event = await reporter.update(10)

        assert event is not None
        assert len(reporter.history) == 1

    @pytest.mark.asyncio
    async def test_chunk_fields(self) -> None:
        reporter = ProgressReporter(None, "cmd_1", "x")

        event = await reporter.update(41, current_chunk=1, total_chunks=3, chunk_size=10)

        assert event is not None
        assert (event.current_chunk, event.total_chunks, event.chunk_size) == (1, 3, 10)
