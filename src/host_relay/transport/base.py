"""Peer-side transport abstraction.

Both ends of a channel (the automation client and the host runtime) are
peers of the relay. A transport owns one duplex connection to the relay and:
- manages the connection state machine and reconnection
- joins/leaves channels and awaits the relay's acknowledgement
- wraps outbound envelopes in relay frames
- runs a background reader that hands inbound envelopes to handlers

Implementations only provide the wire-specific ``_do_*`` hooks.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import uuid
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from ..errors import RelayError, TransportError, ValidationError, error_from_code
from ..protocol.envelopes import Message, dump_message, parse_message
from ..protocol.frames import (
    ErrorFrame,
    JoinFrame,
    LeaveFrame,
    RelayFrame,
    SystemFrame,
    dump_frame,
    parse_frame,
)

logger = logging.getLogger(__name__)

MessageHandler = Callable[[Message], Awaitable[None]]
ConnectionLostHandler = Callable[[TransportError], Awaitable[None]]


class TransportState(str, Enum):
    """Connection state machine."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"
    CLOSED = "closed"


@dataclass
class ClientTransportConfig:
    """Configuration for peer transports."""

    url: str = "ws://127.0.0.1:3055/ws"
    connect_timeout: float = 10.0

    # Reconnection
    auto_reconnect: bool = False
    reconnect_delay: float = 1.0
    max_reconnect_delay: float = 30.0
    reconnect_backoff: float = 2.0
    max_reconnect_attempts: int | None = None  # None retries forever


class BaseClientTransport(ABC):
    """Base class for peer transports with common functionality.

    Provides:
    - State management
    - Channel join/leave with relay acknowledgement
    - Envelope routing to registered handlers
    - Background reader task and reconnection
    """

    def __init__(self, config: ClientTransportConfig | None = None) -> None:
        self.config = config or ClientTransportConfig()
        self._state = TransportState.DISCONNECTED
        self._channel_id: str | None = None
        self._reader_task: asyncio.Task[None] | None = None
        self._lock = asyncio.Lock()
        self._acks: dict[str, asyncio.Future[SystemFrame]] = {}
        self._message_handlers: list[MessageHandler] = []
        self._connection_lost_handlers: list[ConnectionLostHandler] = []

    @property
    def state(self) -> TransportState:
        """Current connection state."""
        return self._state

    @property
    def is_connected(self) -> bool:
        """Check if transport is connected."""
        return self._state == TransportState.CONNECTED

    @property
    def channel_id(self) -> str | None:
        """Channel this transport has joined, if any."""
        return self._channel_id

    def add_message_handler(self, handler: MessageHandler) -> Callable[[], None]:
        """Register a callback for inbound envelopes.

        Returns:
            Function that removes the handler
        """
        self._message_handlers.append(handler)

        def remove() -> None:
            if handler in self._message_handlers:
                self._message_handlers.remove(handler)

        return remove

    def add_connection_lost_handler(self, handler: ConnectionLostHandler) -> Callable[[], None]:
        """Register a callback fired whenever the connection drops unexpectedly."""
        self._connection_lost_handlers.append(handler)

        def remove() -> None:
            if handler in self._connection_lost_handlers:
                self._connection_lost_handlers.remove(handler)

        return remove

    async def connect(self) -> None:
        """Establish the connection to the relay."""
        async with self._lock:
            if self._state == TransportState.CONNECTED:
                return

            self._state = TransportState.CONNECTING
            try:
                await asyncio.wait_for(self._do_connect(), timeout=self.config.connect_timeout)
            except Exception as e:
                self._state = TransportState.DISCONNECTED
                raise TransportError(f"failed to connect to {self.config.url}: {e}") from e

            self._state = TransportState.CONNECTED
            self._reader_task = asyncio.create_task(self._read_loop())
            logger.info(f"{self.__class__.__name__} connected")

    async def disconnect(self) -> None:
        """Close the connection."""
        async with self._lock:
            if self._state in (TransportState.DISCONNECTED, TransportState.CLOSED):
                return

            self._state = TransportState.CLOSED

            if self._reader_task and self._reader_task is not asyncio.current_task():
                self._reader_task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await self._reader_task
            self._reader_task = None

            self._fail_acks(TransportError("transport disconnected"))
            self._channel_id = None

            await self._do_disconnect()
            self._state = TransportState.DISCONNECTED
            logger.info(f"{self.__class__.__name__} disconnected")

    async def join(self, channel_id: str) -> None:
        """Join ``channel_id``, leaving the current channel first if different.

        Raises:
            TransportError: if not connected or the relay does not answer
            ChannelMembershipError: if the relay refuses the membership
        """
        if self._channel_id == channel_id:
            return
        if self._channel_id is not None:
            await self.leave()

        frame_id = f"join_{uuid.uuid4().hex[:8]}"
        await self._request_ack(frame_id, JoinFrame(channel_id=channel_id, id=frame_id))
        self._channel_id = channel_id
        logger.info(f"Joined channel {channel_id}")

    async def leave(self) -> None:
        """Leave the current channel."""
        if self._channel_id is None:
            return
        frame_id = f"leave_{uuid.uuid4().hex[:8]}"
        await self._request_ack(frame_id, LeaveFrame(id=frame_id))
        logger.info(f"Left channel {self._channel_id}")
        self._channel_id = None

    async def send_message(self, message: Message) -> None:
        """Send an envelope to the other peers of the joined channel.

        Raises:
            TransportError: if not connected or not in a channel
        """
        if not self.is_connected:
            raise TransportError("transport not connected")
        if self._channel_id is None:
            raise TransportError("must join a channel before sending messages")

        try:
            frame = RelayFrame(message=dump_message(message))
            await self._do_send(dump_frame(frame))
        except RelayError:
            raise
        except Exception as e:
            raise TransportError(f"failed to send message: {e}") from e

    async def _request_ack(self, frame_id: str, frame: JoinFrame | LeaveFrame) -> SystemFrame:
        if not self.is_connected:
            raise TransportError("transport not connected")

        ack: asyncio.Future[SystemFrame] = asyncio.get_running_loop().create_future()
        self._acks[frame_id] = ack
        try:
            await self._do_send(dump_frame(frame))
            return await asyncio.wait_for(ack, timeout=self.config.connect_timeout)
        except TimeoutError as e:
            raise TransportError(f"relay did not acknowledge {frame.type}", identifier=frame_id) from e
        finally:
            self._acks.pop(frame_id, None)

    def _fail_acks(self, error: Exception) -> None:
        for ack in self._acks.values():
            if not ack.done():
                ack.set_exception(error)
        self._acks.clear()

    async def _read_loop(self) -> None:
        """Background task reading frames and routing them."""
        error: TransportError | None = None
        try:
            async for raw in self._receive_frames():
                await self._route(raw)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Read loop error: {e}")
            error = TransportError(f"connection error: {e}")

        if self._state == TransportState.CLOSED:
            return
        await self._connection_lost(error or TransportError("connection closed by relay"))

    async def _route(self, raw: dict[str, Any]) -> None:
        try:
            frame = parse_frame(raw)
        except ValidationError as e:
            logger.warning(f"Dropping invalid frame: {e}")
            return

        match frame:
            case RelayFrame(message=message):
                try:
                    envelope = parse_message(message)
                except ValidationError as e:
                    logger.warning(f"Dropping invalid message: {e}")
                    return
                for handler in list(self._message_handlers):
                    try:
                        await handler(envelope)
                    except Exception:
                        logger.exception(f"Error in message handler for {envelope.type}")

            case SystemFrame(id=frame_id) if frame_id in self._acks:
                ack = self._acks[frame_id]
                if not ack.done():
                    ack.set_result(frame)

            case ErrorFrame(id=frame_id, code=code, message=text) if frame_id in self._acks:
                ack = self._acks[frame_id]
                if not ack.done():
                    ack.set_exception(error_from_code(code, text))

            case ErrorFrame(code=code, message=text):
                logger.warning(f"Relay error ({code}): {text}")

            case SystemFrame(message=text):
                logger.debug(f"Relay: {text}")

            case _:
                logger.debug(f"Ignoring {frame.type} frame")

    async def _connection_lost(self, error: TransportError) -> None:
        logger.warning(f"{self.__class__.__name__} lost connection: {error}")
        self._fail_acks(error)
        channel_id = self._channel_id
        self._channel_id = None
        self._state = (
            TransportState.RECONNECTING
            if self.config.auto_reconnect
            else TransportState.DISCONNECTED
        )

        await self._notify_connection_lost(error)

        if self._state == TransportState.RECONNECTING:
            await self._reconnect(channel_id)

    async def _notify_connection_lost(self, error: TransportError) -> None:
        for handler in list(self._connection_lost_handlers):
            try:
                await handler(error)
            except Exception:
                logger.exception("Error in connection-lost handler")

    async def _reconnect(self, channel_id: str | None) -> None:
        """Reconnect with exponential backoff and rejoin the previous channel."""
        delay = self.config.reconnect_delay
        attempt = 0

        while self._state == TransportState.RECONNECTING:
            attempt += 1
            max_attempts = self.config.max_reconnect_attempts
            if max_attempts is not None and attempt > max_attempts:
                logger.error(f"Giving up reconnecting after {max_attempts} attempts")
                self._state = TransportState.DISCONNECTED
                # State is already DISCONNECTED when handlers run
                await self._notify_connection_lost(
                    TransportError(f"gave up reconnecting to {self.config.url} after {max_attempts} attempts")
                )
                return

            logger.info(f"Reconnecting in {delay:.1f}s (attempt {attempt})")
            await asyncio.sleep(delay)
            if self._state != TransportState.RECONNECTING:
                return

            try:
                await asyncio.wait_for(self._do_connect(), timeout=self.config.connect_timeout)
            except Exception as e:
                logger.warning(f"Reconnect attempt {attempt} failed: {e}")
                delay = min(delay * self.config.reconnect_backoff, self.config.max_reconnect_delay)
                continue

            self._state = TransportState.CONNECTED
            self._reader_task = asyncio.create_task(self._read_loop())
            logger.info(f"{self.__class__.__name__} reconnected")

            if channel_id is not None:
                try:
                    await self.join(channel_id)
                except RelayError as e:
                    logger.error(f"Failed to rejoin channel {channel_id}: {e}")
            return

    # Abstract methods for subclasses
    @abstractmethod
    async def _do_connect(self) -> None:
        """Open the connection and consume the relay greeting."""
        ...

    @abstractmethod
    async def _do_disconnect(self) -> None:
        """Close the connection."""
        ...

    @abstractmethod
    async def _do_send(self, frame: dict[str, Any]) -> None:
        """Write one frame to the wire."""
        ...

    @abstractmethod
    def _receive_frames(self) -> AsyncIterator[dict[str, Any]]:
        """Yield decoded frames until the connection closes. Must be an async generator."""
        ...

    async def __aenter__(self) -> BaseClientTransport:
        await self.connect()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.disconnect()
