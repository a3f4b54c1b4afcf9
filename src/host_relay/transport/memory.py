"""In-process transport attached directly to a RelayHub.

Used for embedded mode (relay, host runtime and client in one process) and
for tests. Frames still go through a JSON round trip so nothing that could
not cross a real socket slips through.
"""

from __future__ import annotations

import asyncio
import json
import logging
import uuid
from collections.abc import AsyncIterator
from typing import Any

from ..errors import TransportError
from ..relay import RelayHub
from .base import BaseClientTransport, ClientTransportConfig

logger = logging.getLogger(__name__)


class MemoryPeer:
    """Relay-side peer whose frames land in an asyncio queue."""

    def __init__(self, peer_id: str | None = None) -> None:
        self.peer_id = peer_id or f"mem_{uuid.uuid4().hex[:8]}"
        self.inbox: asyncio.Queue[dict[str, Any] | None] = asyncio.Queue()
        self.closed = False

    async def send(self, frame: dict[str, Any]) -> None:
        if self.closed:
            raise TransportError(f"peer '{self.peer_id}' is closed", identifier=self.peer_id)
        await self.inbox.put(json.loads(json.dumps(frame)))

    def close(self) -> None:
        self.closed = True
        self.inbox.put_nowait(None)


class MemoryClientTransport(BaseClientTransport):
    """Transport that talks to a RelayHub in the same event loop.

    Usage:
        hub = RelayHub()
        transport = MemoryClientTransport(hub)
        await transport.connect()
        await transport.join("design-1")
    """

    def __init__(
        self,
        hub: RelayHub,
        config: ClientTransportConfig | None = None,
        peer_id: str | None = None,
    ) -> None:
        super().__init__(config or ClientTransportConfig(url="memory://"))
        self._hub = hub
        self._peer_id = peer_id
        self._peer: MemoryPeer | None = None

    @property
    def peer(self) -> MemoryPeer | None:
        return self._peer

    async def _do_connect(self) -> None:
        peer = MemoryPeer(self._peer_id)
        await self._hub.connect(peer)

        greeting = await peer.inbox.get()
        if not greeting or greeting.get("type") != "system":
            raise TransportError(f"unexpected greeting: {greeting}")
        self._peer = peer

    async def _do_disconnect(self) -> None:
        if self._peer is not None:
            self._hub.disconnect(self._peer)
            self._peer.close()
            self._peer = None

    async def _do_send(self, frame: dict[str, Any]) -> None:
        if self._peer is None or self._peer.closed:
            raise TransportError("memory peer not connected")
        await self._hub.handle(self._peer, json.dumps(frame))

    async def _receive_frames(self) -> AsyncIterator[dict[str, Any]]:
        peer = self._peer
        if peer is None:
            raise TransportError("memory peer not connected")
        while True:
            frame = await peer.inbox.get()
            if frame is None:
                return
            yield frame

    def drop_connection(self) -> None:
        """Simulate the relay side dropping this peer."""
        if self._peer is not None:
            self._hub.disconnect(self._peer)
            self._peer.close()
            self._peer = None
