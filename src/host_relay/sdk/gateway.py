"""Command gateway for automation clients.

The gateway turns a (command, params) call into a command envelope, sends
it through a peer transport and waits for the correlated response. Progress
events for in-flight requests are fanned out to listeners; they never
settle a request.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from ..errors import RelayError, TransportError, error_from_code
from ..protocol.envelopes import (
    CommandEnvelope,
    ErrorEnvelope,
    Message,
    Notification,
    ProgressEvent,
    ResultEnvelope,
)
from ..transport.base import BaseClientTransport
from .correlation import CorrelationTable

logger = logging.getLogger(__name__)

ProgressListener = Callable[[ProgressEvent], Awaitable[None] | None]
NotificationListener = Callable[[Notification], Awaitable[None] | None]

DEFAULT_TIMEOUT = 30.0

# Client-side budgets in seconds. Each sits above the host-side ceiling so
# the host reports its own timeout before the client gives up waiting.
DEFAULT_COMMAND_TIMEOUTS: dict[str, float] = {
    "ping": 5.0,
    "echo": 5.0,
    "get_document_info": 10.0,
    "get_node_info": 10.0,
    "get_nodes_info": 15.0,
    "set_text_content": 10.0,
    "scan_text_nodes": 60.0,
    "set_multiple_text_contents": 60.0,
}


class Gateway:
    """Sends commands and correlates their responses.

    Usage:
        gateway = Gateway(transport)
        await gateway.start()
        result = await gateway.invoke("echo", {"text": "hi"})
    """

    def __init__(
        self,
        transport: BaseClientTransport,
        *,
        default_timeout: float = DEFAULT_TIMEOUT,
        timeouts: dict[str, float] | None = None,
        extend_on_progress: bool = False,
    ) -> None:
        self.transport = transport
        self.default_timeout = default_timeout
        self.timeouts = {**DEFAULT_COMMAND_TIMEOUTS, **(timeouts or {})}
        self.extend_on_progress = extend_on_progress

        self._pending = CorrelationTable()
        self._progress_listeners: list[ProgressListener] = []
        self._request_listeners: dict[str, ProgressListener] = {}
        self._notification_listeners: list[NotificationListener] = []
        self._detach: list[Callable[[], None]] = []

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    async def start(self) -> None:
        """Attach to the transport. Idempotent."""
        if self._detach:
            return
        self._detach = [
            self.transport.add_message_handler(self._on_message),
            self.transport.add_connection_lost_handler(self._on_connection_lost),
        ]

    async def stop(self) -> None:
        """Detach from the transport and fail anything still pending."""
        for remove in self._detach:
            remove()
        self._detach = []
        self._pending.fail_all(TransportError("gateway stopped"))

    def timeout_for(self, command: str, timeout: float | None = None) -> float:
        """Resolve the budget: explicit argument, per-command table, default."""
        if timeout is not None:
            return timeout
        return self.timeouts.get(command, self.default_timeout)

    async def invoke(
        self,
        command: str,
        params: dict[str, Any] | None = None,
        *,
        timeout: float | None = None,
        on_progress: ProgressListener | None = None,
    ) -> Any:
        """Send a command and wait for its result.

        Raises:
            RelayError: the error reported by the host, rebuilt from its code
            RequestTimeoutError: if no response arrived within the budget
            TransportError: if the connection dropped while waiting
        """
        await self.start()

        envelope = CommandEnvelope.create(command, params)
        budget = self.timeout_for(command, timeout)
        future = self._pending.register(envelope.id, command, budget)
        if on_progress is not None:
            self._request_listeners[envelope.id] = on_progress

        logger.debug(f"Invoking {command} as {envelope.id} (timeout {budget}s)")
        try:
            await self.transport.send_message(envelope)
        except RelayError as e:
            self._pending.reject(envelope.id, e)

        try:
            return await future
        finally:
            self._request_listeners.pop(envelope.id, None)
            # Cancelled waits leave nothing behind in the table
            self._pending.discard(envelope.id)

    def on_progress(self, listener: ProgressListener) -> Callable[[], None]:
        """Subscribe to progress events of every request.

        Returns:
            Unsubscribe function
        """
        self._progress_listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._progress_listeners:
                self._progress_listeners.remove(listener)

        return unsubscribe

    def on_notification(self, listener: NotificationListener) -> Callable[[], None]:
        """Subscribe to uncorrelated host notifications."""
        self._notification_listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._notification_listeners:
                self._notification_listeners.remove(listener)

        return unsubscribe

    async def _on_message(self, message: Message) -> None:
        match message:
            case ResultEnvelope(id=request_id, result=result):
                if not self._pending.resolve(request_id, result):
                    logger.debug(f"Dropping late or unknown result for {request_id}")

            case ErrorEnvelope(id=request_id, error=error, code=code):
                if not self._pending.reject(request_id, error_from_code(code, error)):
                    logger.debug(f"Dropping late or unknown error for {request_id}")

            case ProgressEvent(command_id=request_id):
                if self.extend_on_progress and not message.is_terminal():
                    self._pending.extend(request_id)
                listener = self._request_listeners.get(request_id)
                listeners = [*self._progress_listeners, *([listener] if listener else [])]
                for callback in listeners:
                    await _notify(callback, message)

            case Notification():
                for callback in list(self._notification_listeners):
                    await _notify(callback, message)

            case CommandEnvelope(command=command):
                logger.debug(f"Ignoring command envelope {command}: gateways do not execute commands")

    async def _on_connection_lost(self, error: TransportError) -> None:
        failed = self._pending.fail_all(error)
        if failed:
            logger.warning(f"Failed {failed} pending request(s): {error}")


async def _notify(callback: Callable[[Any], Awaitable[None] | None], message: Message) -> None:
    try:
        result = callback(message)
        if asyncio.iscoroutine(result):
            await result
    except Exception:
        logger.exception(f"Error in {message.type} listener")
