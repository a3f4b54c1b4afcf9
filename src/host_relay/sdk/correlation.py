"""Correlation of outstanding requests with their responses.

Each request id maps to one pending future plus its timeout timer. Whichever
of {response, timeout, failure} arrives first settles the future; the entry
is removed before settling so every later arrival is a no-op.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any

from ..errors import RequestTimeoutError, ValidationError

logger = logging.getLogger(__name__)


@dataclass
class PendingRequest:
    """An outstanding request awaiting its response."""

    id: str
    command: str
    timeout: float
    future: asyncio.Future[Any]
    started_at: float = field(default_factory=time.monotonic)
    timeout_handle: asyncio.TimerHandle | None = None

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self.started_at


class CorrelationTable:
    """Table of pending requests keyed by command id.

    Usage:
        table = CorrelationTable()
        future = table.register("cmd_1", "ping", timeout=5.0)
        ...
        table.resolve("cmd_1", {"pong": True})
        result = await future
    """

    def __init__(self) -> None:
        self._pending: dict[str, PendingRequest] = {}

    def register(self, request_id: str, command: str, timeout: float) -> asyncio.Future[Any]:
        """Register a request and arm its timeout.

        Raises:
            ValidationError: if the id is already pending or timeout is not positive
        """
        if request_id in self._pending:
            raise ValidationError(f"request id '{request_id}' is already pending", identifier=request_id)
        if timeout <= 0:
            raise ValidationError(f"timeout must be positive, got {timeout}", identifier=request_id)

        loop = asyncio.get_running_loop()
        pending = PendingRequest(
            id=request_id,
            command=command,
            timeout=timeout,
            future=loop.create_future(),
        )
        pending.timeout_handle = loop.call_later(timeout, self._expire, request_id)
        self._pending[request_id] = pending
        return pending.future

    def resolve(self, request_id: str, result: Any) -> bool:
        """Settle a request with its result. Returns False if nothing was pending."""
        pending = self._take(request_id)
        if pending is None:
            return False
        if not pending.future.done():
            pending.future.set_result(result)
        return True

    def reject(self, request_id: str, error: BaseException) -> bool:
        """Settle a request with an error. Returns False if nothing was pending."""
        pending = self._take(request_id)
        if pending is None:
            return False
        if not pending.future.done():
            pending.future.set_exception(error)
        return True

    def extend(self, request_id: str) -> bool:
        """Re-arm the timer of a pending request so it expires ``timeout`` from now."""
        pending = self._pending.get(request_id)
        if pending is None:
            return False
        if pending.timeout_handle is not None:
            pending.timeout_handle.cancel()
        loop = asyncio.get_running_loop()
        pending.timeout_handle = loop.call_later(pending.timeout, self._expire, request_id)
        return True

    def discard(self, request_id: str) -> bool:
        """Forget a request without settling it (caller abandoned the wait)."""
        pending = self._take(request_id)
        if pending is None:
            return False
        if not pending.future.done():
            pending.future.cancel()
        return True

    def fail_all(self, error: BaseException) -> int:
        """Reject every pending request. Returns how many were failed."""
        ids = list(self._pending)
        return sum(1 for request_id in ids if self.reject(request_id, error))

    def get(self, request_id: str) -> PendingRequest | None:
        return self._pending.get(request_id)

    def __contains__(self, request_id: object) -> bool:
        return request_id in self._pending

    def __len__(self) -> int:
        return len(self._pending)

    def _take(self, request_id: str) -> PendingRequest | None:
        pending = self._pending.pop(request_id, None)
        if pending is not None and pending.timeout_handle is not None:
            pending.timeout_handle.cancel()
        return pending

    def _expire(self, request_id: str) -> None:
        pending = self._pending.get(request_id)
        if pending is None:
            return
        logger.warning(f"Request {request_id} ({pending.command}) timed out after {pending.timeout}s")
        self.reject(
            request_id,
            RequestTimeoutError(
                f"request timed out: {pending.command} after {pending.timeout}s",
                identifier=request_id,
            ),
        )
