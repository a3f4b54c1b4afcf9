"""Host runtime: executes commands arriving on a channel.

The runtime joins a channel as a peer, queues every command envelope it
receives and dispatches them one at a time, in arrival order. Each command
produces exactly one response envelope sent back on the same channel;
progress events for it go out on the way.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable

from ..errors import RelayError, TransportError
from ..protocol.envelopes import CommandEnvelope, Message, Notification, ProgressEvent
from ..transport.base import BaseClientTransport, TransportState
from .context import HostSession
from .dispatcher import CommandDispatcher
from .handlers import default_registry
from .registry import CommandRegistry

logger = logging.getLogger(__name__)


class HostRuntime:
    """Runs a command registry behind a relay channel.

    Usage:
        runtime = HostRuntime(transport, default_registry(), HostSession(document=doc))
        await runtime.start("design-1")
        ...
        await runtime.stop()
    """

    def __init__(
        self,
        transport: BaseClientTransport,
        registry: CommandRegistry | None = None,
        session: HostSession | None = None,
    ) -> None:
        self.transport = transport
        self.registry = registry or default_registry()
        self.session = session or HostSession()
        self.dispatcher = CommandDispatcher(self.registry)

        self._queue: asyncio.Queue[CommandEnvelope] = asyncio.Queue()
        self._worker: asyncio.Task[None] | None = None
        self._detach: list[Callable[[], None]] = []
        self._stopped = asyncio.Event()
        self.processed = 0

    @property
    def is_running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    @property
    def pending(self) -> int:
        """Commands queued but not yet dispatched."""
        return self._queue.qsize()

    async def start(self, channel_id: str) -> None:
        """Connect, join ``channel_id`` and start processing commands."""
        if self.is_running:
            return

        self._stopped.clear()
        self._detach = [
            self.transport.add_message_handler(self._on_message),
            self.transport.add_connection_lost_handler(self._on_connection_lost),
        ]
        await self.transport.connect()
        await self.transport.join(channel_id)

        self._worker = asyncio.create_task(self._process_commands())
        logger.info(f"Host runtime {self.session.session_id} serving channel {channel_id}")

    async def stop(self) -> None:
        """Stop processing, leave the channel and disconnect."""
        for remove in self._detach:
            remove()
        self._detach = []

        if self._worker is not None:
            self._worker.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._worker
            self._worker = None

        await self.transport.disconnect()
        self._stopped.set()
        logger.info(f"Host runtime {self.session.session_id} stopped after {self.processed} command(s)")

    async def run_forever(self, channel_id: str) -> None:
        """Serve ``channel_id`` until stopped or the connection is lost for good."""
        await self.start(channel_id)
        try:
            await self._stopped.wait()
        finally:
            if self.is_running:
                await self.stop()

    async def notify(self, message: str, level: str = "info") -> None:
        """Send an uncorrelated notification to the channel."""
        await self._send(Notification(message=message, level=level))

    async def _on_message(self, message: Message) -> None:
        if isinstance(message, CommandEnvelope):
            logger.debug(f"Queued {message.command} ({message.id})")
            await self._queue.put(message)

    async def _on_connection_lost(self, error: TransportError) -> None:
        # Still RECONNECTING means the transport is retrying on its own
        if self.transport.state != TransportState.RECONNECTING:
            logger.error(f"Host runtime lost its connection: {error}")
            self._stopped.set()

    async def _process_commands(self) -> None:
        while True:
            envelope = await self._queue.get()
            try:
                response = await self.dispatcher.dispatch(envelope, self.session, self._send_progress)
                await self._send(response)
                self.processed += 1
            except Exception:
                logger.exception(f"Failed to process {envelope.command} ({envelope.id})")
            finally:
                self._queue.task_done()

    async def _send_progress(self, event: ProgressEvent) -> None:
        await self.transport.send_message(event)

    async def _send(self, message: Message) -> None:
        try:
            await self.transport.send_message(message)
        except RelayError as e:
            logger.warning(f"Failed to send {message.type} envelope: {e}")
