"""Channel Registry - named multiplexing groups of peers.

Each channel joins an automation client with a host runtime. Frames sent by
one peer are delivered to every other peer of the same channel and never
to peers of other channels.

Membership is exclusive: a peer belongs to at most one channel and must
leave it before joining another one (or call :meth:`ChannelRegistry.move`).
"""

from __future__ import annotations

import logging
from typing import Any, Protocol, runtime_checkable

from .errors import ChannelMembershipError, TransportError

logger = logging.getLogger(__name__)


@runtime_checkable
class Peer(Protocol):
    """A connected endpoint that can receive frames."""

    @property
    def peer_id(self) -> str: ...

    async def send(self, frame: dict[str, Any]) -> None: ...


class ChannelRegistry:
    """Tracks channel membership and routes frames between peers.

    Channels are created lazily on first join and dropped as soon as their
    last peer leaves. Mutation only happens on the event loop thread, so no
    lock is needed around the membership maps.
    """

    def __init__(self) -> None:
        self._channels: dict[str, set[Peer]] = {}
        self._membership: dict[Peer, str] = {}

    def join(self, peer: Peer, channel_id: str) -> None:
        """Add ``peer`` to ``channel_id``, creating the channel if needed.

        Joining the channel the peer is already in is a no-op.

        Raises:
            ChannelMembershipError: if the peer is a member of another channel
        """
        if not channel_id:
            raise ChannelMembershipError("channel id cannot be empty")

        current = self._membership.get(peer)
        if current == channel_id:
            return
        if current is not None:
            raise ChannelMembershipError(
                f"peer '{peer.peer_id}' is already in channel '{current}'; leave it first",
                identifier=peer.peer_id,
            )

        if channel_id not in self._channels:
            self._channels[channel_id] = set()
            logger.info(f"Created channel: {channel_id}")
        self._channels[channel_id].add(peer)
        self._membership[peer] = channel_id
        logger.info(f"Peer {peer.peer_id} joined channel {channel_id}")

    def leave(self, peer: Peer) -> str | None:
        """Remove ``peer`` from its channel.

        Returns:
            The channel the peer left, or None if it was not in one
        """
        channel_id = self._membership.pop(peer, None)
        if channel_id is None:
            return None

        members = self._channels.get(channel_id)
        if members is not None:
            members.discard(peer)
            if not members:
                del self._channels[channel_id]
                logger.info(f"Removed empty channel: {channel_id}")
        logger.info(f"Peer {peer.peer_id} left channel {channel_id}")
        return channel_id

    def move(self, peer: Peer, channel_id: str) -> str | None:
        """Explicitly leave the current channel and join ``channel_id``.

        Returns:
            The channel the peer left, if any
        """
        previous = self._membership.get(peer)
        if previous == channel_id:
            return None
        self.leave(peer)
        self.join(peer, channel_id)
        return previous

    def channel_of(self, peer: Peer) -> str | None:
        """Channel the peer currently belongs to."""
        return self._membership.get(peer)

    def peers(self, channel_id: str) -> list[Peer]:
        """Snapshot of the peers in a channel."""
        return list(self._channels.get(channel_id, ()))

    def channels(self) -> list[str]:
        """Names of all live channels."""
        return list(self._channels.keys())

    @property
    def channel_count(self) -> int:
        return len(self._channels)

    async def broadcast(self, sender: Peer, frame: dict[str, Any]) -> int:
        """Deliver ``frame`` to every other peer of the sender's channel.

        Delivery is best-effort: a peer whose send fails is logged and
        skipped, the remaining peers still receive the frame.

        Returns:
            Number of peers the frame was delivered to

        Raises:
            TransportError: if the sender is not in a channel
        """
        channel_id = self._membership.get(sender)
        if channel_id is None:
            raise TransportError(
                f"peer '{sender.peer_id}' must join a channel before sending",
                identifier=sender.peer_id,
            )

        # Copy so a peer leaving mid-broadcast does not mutate the iteration
        recipients = [p for p in self._channels.get(channel_id, ()) if p is not sender]

        delivered = 0
        for peer in recipients:
            try:
                await peer.send(frame)
                delivered += 1
            except Exception:
                logger.exception(f"Failed to deliver frame to peer {peer.peer_id} in {channel_id}")
        return delivered
