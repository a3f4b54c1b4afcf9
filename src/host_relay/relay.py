"""Relay hub - transport-agnostic frame handling.

All peer transports (websocket, in-memory) delegate frame processing here,
so channel semantics are identical regardless of how a peer is connected.
The hub has no business logic: it manages membership and forwards opaque
relay frames.
"""

from __future__ import annotations

import logging
from typing import Any

from .channels import ChannelRegistry, Peer
from .errors import RelayError, TransportError, ValidationError
from .protocol.frames import (
    ErrorFrame,
    JoinFrame,
    LeaveFrame,
    RelayFrame,
    SystemFrame,
    dump_frame,
    parse_frame,
)

logger = logging.getLogger(__name__)


class RelayHub:
    """Handles frames from connected peers.

    Usage:
        hub = RelayHub()

        # For every inbound frame
        await hub.handle(peer, raw_text)

        # When the peer goes away
        hub.disconnect(peer)
    """

    def __init__(self, registry: ChannelRegistry | None = None) -> None:
        self.registry = registry or ChannelRegistry()

    async def connect(self, peer: Peer) -> None:
        """Greet a newly connected peer."""
        await self._send_system(peer, "connected")

    async def handle(self, peer: Peer, raw: str | bytes | dict[str, Any]) -> None:
        """Process one inbound frame from ``peer``.

        Failures are reported back to the sender as error frames; they never
        propagate to the transport loop.
        """
        try:
            frame = parse_frame(raw)
        except ValidationError as e:
            logger.warning(f"Invalid frame from peer {peer.peer_id}: {e}")
            await self._send_error(peer, e)
            return

        try:
            match frame:
                case JoinFrame(channel_id=channel_id, id=frame_id):
                    self.registry.join(peer, channel_id)
                    await self._send_system(
                        peer, f"Joined channel: {channel_id}", channel_id, frame_id
                    )

                case LeaveFrame(id=frame_id):
                    left = self.registry.leave(peer)
                    message = f"Left channel: {left}" if left else "Not in a channel"
                    await self._send_system(peer, message, left, frame_id)

                case RelayFrame(message=message):
                    channel_id = self.registry.channel_of(peer)
                    if channel_id is None:
                        raise TransportError(
                            "must join a channel before sending messages",
                            identifier=peer.peer_id,
                        )
                    outbound = dump_frame(RelayFrame(channel_id=channel_id, message=message))
                    await self.registry.broadcast(peer, outbound)

                case _:
                    raise ValidationError(
                        f"frame type '{frame.type}' cannot be sent by peers",
                        identifier=frame.type,
                    )

        except RelayError as e:
            logger.warning(f"Rejected {frame.type} frame from peer {peer.peer_id}: {e}")
            await self._send_error(peer, e, getattr(frame, "id", None))

    def disconnect(self, peer: Peer) -> None:
        """Forget a peer that went away."""
        self.registry.leave(peer)

    async def _send_system(
        self,
        peer: Peer,
        message: str,
        channel_id: str | None = None,
        frame_id: str | None = None,
    ) -> None:
        frame = SystemFrame(message=message, channel_id=channel_id, id=frame_id)
        await self._safe_send(peer, dump_frame(frame))

    async def _send_error(self, peer: Peer, error: RelayError, frame_id: str | None = None) -> None:
        code = "not_joined" if isinstance(error, TransportError) else error.code
        frame = ErrorFrame(message=str(error), code=code, id=frame_id)
        await self._safe_send(peer, dump_frame(frame))

    async def _safe_send(self, peer: Peer, frame: dict[str, Any]) -> None:
        try:
            await peer.send(frame)
        except Exception:
            logger.exception(f"Failed to send frame to peer {peer.peer_id}")
