"""WebSocket transport implementation.

Full-duplex transport between peers and the relay:
- WebSocketPeer: relay-side adapter around a starlette websocket
- WebSocketClientTransport: peer-side connection using ``websockets``

Wire format: one JSON frame per text message (see ``protocol.frames``).
"""

from __future__ import annotations

import asyncio
import json
import logging
import uuid
from collections.abc import AsyncIterator
from typing import Any

import websockets
from starlette.websockets import WebSocket, WebSocketState
from websockets.exceptions import ConnectionClosed

from ..errors import TransportError
from ..protocol.frames import SystemFrame, parse_frame
from .base import BaseClientTransport, ClientTransportConfig

logger = logging.getLogger(__name__)


class WebSocketPeer:
    """Relay-side peer wrapping an accepted starlette websocket.

    Sends are serialized so concurrent broadcasts never interleave frames.
    """

    def __init__(self, websocket: WebSocket, peer_id: str | None = None) -> None:
        self._websocket = websocket
        self.peer_id = peer_id or f"ws_{uuid.uuid4().hex[:8]}"
        self._send_lock = asyncio.Lock()

    @property
    def is_connected(self) -> bool:
        """Check if the WebSocket is connected."""
        return self._websocket.client_state == WebSocketState.CONNECTED

    async def send(self, frame: dict[str, Any]) -> None:
        """Send one frame to the remote peer."""
        async with self._send_lock:
            if not self.is_connected:
                raise TransportError(f"peer '{self.peer_id}' is not connected", identifier=self.peer_id)
            await self._websocket.send_text(json.dumps(frame))


class WebSocketClientTransport(BaseClientTransport):
    """Peer-side transport over a websocket connection to the relay.

    The relay greets every connection with a ``system`` frame; connect
    completes once that greeting has been received.
    """

    def __init__(self, config: ClientTransportConfig | None = None) -> None:
        super().__init__(config)
        self._ws: Any = None  # websockets client connection

    async def _do_connect(self) -> None:
        ws = await websockets.connect(
            self.config.url,
            ping_interval=30,
            ping_timeout=10,
        )

        greeting = parse_frame(await ws.recv())
        if not isinstance(greeting, SystemFrame):
            await ws.close()
            raise TransportError(f"unexpected greeting: {greeting.type}")

        self._ws = ws
        logger.info(f"WebSocket connected to {self.config.url}")

    async def _do_disconnect(self) -> None:
        if self._ws is not None:
            await self._ws.close()
            self._ws = None

    async def _do_send(self, frame: dict[str, Any]) -> None:
        if self._ws is None:
            raise TransportError("websocket not connected")
        try:
            await self._ws.send(json.dumps(frame))
        except ConnectionClosed as e:
            raise TransportError(f"websocket closed: {e}") from e

    async def _receive_frames(self) -> AsyncIterator[dict[str, Any]]:
        ws = self._ws
        if ws is None:
            raise TransportError("websocket not connected")

        async for data in ws:
            try:
                frame = json.loads(data)
            except json.JSONDecodeError as e:
                logger.warning(f"Invalid frame from relay: {e}")
                continue
            if isinstance(frame, dict):
                yield frame


def create_websocket_transport(
    url: str = "ws://127.0.0.1:3055/ws",
    *,
    auto_reconnect: bool = False,
    connect_timeout: float = 10.0,
) -> WebSocketClientTransport:
    """Create a websocket transport for a relay endpoint.

    Args:
        url: Relay websocket URL
        auto_reconnect: Reconnect and rejoin after the connection drops
        connect_timeout: Seconds to wait for the connection and acknowledgements

    Returns:
        WebSocketClientTransport ready to connect
    """
    config = ClientTransportConfig(
        url=url,
        auto_reconnect=auto_reconnect,
        connect_timeout=connect_timeout,
    )
    return WebSocketClientTransport(config)
