"""Progress reporting for long-running commands.

Progress is advisory: a failed send is logged and forgotten, never surfaced
to the handler. The reporter keeps the stream well-formed on its own side:
values are clamped to [0, 100], never decrease, and nothing is emitted after
a terminal status.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Any

from ..protocol.envelopes import ProgressEvent, ProgressStatus

logger = logging.getLogger(__name__)

ProgressSender = Callable[[ProgressEvent], Awaitable[None]]


class ProgressReporter:
    """Emits ProgressEvents for one command id."""

    def __init__(self, send: ProgressSender | None, command_id: str, command_type: str) -> None:
        self._send = send
        self.command_id = command_id
        self.command_type = command_type
        self.history: list[ProgressEvent] = []
        self._progress = 0
        self._total_items = 0
        self._processed_items = 0
        self._finished = False

    @property
    def progress(self) -> int:
        return self._progress

    @property
    def finished(self) -> bool:
        return self._finished

    async def started(self, message: str = "", *, total_items: int = 0, **fields: Any) -> ProgressEvent | None:
        return await self._emit(ProgressStatus.STARTED, 0, message, total_items=total_items, **fields)

    async def update(
        self,
        progress: float,
        message: str = "",
        *,
        processed_items: int | None = None,
        total_items: int | None = None,
        **fields: Any,
    ) -> ProgressEvent | None:
        return await self._emit(
            ProgressStatus.IN_PROGRESS,
            progress,
            message,
            processed_items=processed_items,
            total_items=total_items,
            **fields,
        )

    async def completed(
        self,
        message: str = "",
        *,
        processed_items: int | None = None,
        total_items: int | None = None,
        **fields: Any,
    ) -> ProgressEvent | None:
        return await self._emit(
            ProgressStatus.COMPLETED,
            100,
            message,
            processed_items=processed_items,
            total_items=total_items,
            **fields,
        )

    async def error(self, message: str, **fields: Any) -> ProgressEvent | None:
        return await self._emit(ProgressStatus.ERROR, self._progress, message, **fields)

    async def _emit(
        self,
        status: ProgressStatus,
        progress: float,
        message: str,
        *,
        processed_items: int | None = None,
        total_items: int | None = None,
        **fields: Any,
    ) -> ProgressEvent | None:
        if self._finished:
            logger.debug(f"Dropping {status.value} progress for finished command {self.command_id}")
            return None

        self._progress = max(self._progress, min(100, max(0, round(progress))))
        if total_items is not None:
            self._total_items = max(0, total_items)
        if processed_items is not None:
            self._processed_items = max(self._processed_items, processed_items)
        self._finished = status.is_terminal

        event = ProgressEvent(
            command_id=self.command_id,
            command_type=self.command_type,
            status=status,
            progress=self._progress,
            total_items=self._total_items,
            processed_items=self._processed_items,
            message=message,
            **fields,
        )
        self.history.append(event)

        if self._send is not None:
            try:
                await self._send(event)
            except Exception as e:
                logger.warning(f"Failed to send progress for {self.command_id}: {e}")
        return event
