"""Chunked execution of per-item work with progress.

Items are split into consecutive chunks. Items inside a chunk run
concurrently, chunks run one after another with a cooperative pause in
between, and one progress event is emitted per finished chunk:

    started (0) -> in_progress per chunk -> completed (100)

Chunk progress is ``round(low + chunks_done / total_chunks * span)``, so with the
defaults the values move through 5..95 and the bracket events sit at the
ends.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import Any, TypeVar

from ..errors import ValidationError, describe_exception
from .progress import ProgressReporter

logger = logging.getLogger(__name__)

T = TypeVar("T")


def partition(items: Sequence[T], size: int) -> list[list[T]]:
    """Split ``items`` into consecutive groups of at most ``size``.

    Raises:
        ValidationError: if size < 1
    """
    if size < 1:
        raise ValidationError(f"chunk_size must be at least 1, got {size}", identifier="chunk_size")
    return [list(items[i : i + size]) for i in range(0, len(items), size)]


@dataclass
class ItemOutcome:
    """Result of the per-item work for a single item."""

    item_id: str
    success: bool
    value: Any = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"item_id": self.item_id, "success": self.success}
        if self.success:
            data["value"] = self.value
        else:
            data["error"] = self.error
        return data


@dataclass
class ChunkedResult:
    """Aggregate of a chunked run."""

    outcomes: list[ItemOutcome] = field(default_factory=list)
    chunks: int = 0

    @property
    def processed(self) -> int:
        return len(self.outcomes)

    @property
    def succeeded(self) -> list[ItemOutcome]:
        return [o for o in self.outcomes if o.success]

    @property
    def failed(self) -> list[ItemOutcome]:
        return [o for o in self.outcomes if not o.success]

    def to_dict(self) -> dict[str, Any]:
        return {
            "processed": self.processed,
            "succeeded": len(self.succeeded),
            "failed": len(self.failed),
            "chunks": self.chunks,
            "outcomes": [o.to_dict() for o in self.outcomes],
        }


async def run_chunked(
    items: Sequence[T],
    per_item_work: Callable[[T], Awaitable[Any]],
    *,
    reporter: ProgressReporter,
    chunk_size: int = 10,
    chunk_delay: float = 0.05,
    item_id: Callable[[T], str] = str,
    low: int = 5,
    span: int = 90,
    label: str = "items",
) -> ChunkedResult:
    """Run ``per_item_work`` over ``items`` in chunks.

    A failing item is recorded as a failed ItemOutcome; it never aborts
    the chunk or the run.

    Args:
        items: Items to process, in order
        per_item_work: Async work for one item
        reporter: Progress reporter of the current command
        chunk_size: Items per chunk
        chunk_delay: Seconds to yield between chunks (not after the last)
        item_id: Maps an item to the id reported in its outcome
        low: Progress value at the start of the chunk phase
        span: Progress range covered by the chunk phase
        label: Noun used in progress messages

    Raises:
        ValidationError: if chunk_size < 1
    """
    chunks = partition(items, chunk_size)
    total = len(items)
    total_chunks = len(chunks)
    result: ChunkedResult = ChunkedResult()

    await reporter.started(
        f"Processing {total} {label} in {total_chunks} chunk(s)",
        total_items=total,
        total_chunks=total_chunks,
        chunk_size=chunk_size,
    )

    async def run_item(item: T) -> ItemOutcome:
        identifier = item_id(item)
        try:
            value = await per_item_work(item)
        except Exception as e:
            message, _ = describe_exception(e)
            logger.debug(f"Item {identifier} failed: {message}")
            return ItemOutcome(item_id=identifier, success=False, error=message)
        return ItemOutcome(item_id=identifier, success=True, value=value)

    for index, chunk in enumerate(chunks, start=1):
        outcomes = await asyncio.gather(*(run_item(item) for item in chunk))
        result.outcomes.extend(outcomes)
        result.chunks = index

        done = result.processed
        await reporter.update(
            low + index / total_chunks * span,
            f"Processed chunk {index}/{total_chunks} ({done}/{total} {label})",
            processed_items=done,
            total_items=total,
            current_chunk=index,
            total_chunks=total_chunks,
            chunk_size=chunk_size,
        )

        if index < total_chunks:
            await asyncio.sleep(chunk_delay)

    failed = len(result.failed)
    await reporter.completed(
        f"Processed {total} {label}, {failed} failed",
        processed_items=result.processed,
        total_items=total,
        total_chunks=total_chunks,
        chunk_size=chunk_size,
    )
    return result
