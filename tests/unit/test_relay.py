"""Tests for the relay hub frame handling."""

from __future__ import annotations

import json
from typing import Any

import pytest

from host_relay.relay import RelayHub


class RecordingPeer:
    def __init__(self, peer_id: str) -> None:
        self.peer_id = peer_id
        self.frames: list[dict[str, Any]] = []

    async def send(self, frame: dict[str, Any]) -> None:
        self.frames.append(frame)

    @property
    def last(self) -> dict[str, Any]:
        return self.frames[-1]


@pytest.fixture
def hub() -> RelayHub:
    return RelayHub()


class TestRelayHub:
    """Tests for join, leave and relay handling."""

    @pytest.mark.asyncio
    async def test_connect_greets_peer(self, hub: RelayHub) -> None:
        peer = RecordingPeer("a")

        await hub.connect(peer)

        assert peer.last == {"type": "system", "message": "connected"}

    @pytest.mark.asyncio
    async def test_join_acknowledged(self, hub: RelayHub) -> None:
        """Join replies with a system frame echoing the frame id."""
        peer = RecordingPeer("a")

        await hub.handle(peer, json.dumps({"type": "join", "channel_id": "design-1", "id": "join_1"}))

        assert peer.last == {
            "type": "system",
            "message": "Joined channel: design-1",
            "channel_id": "design-1",
            "id": "join_1",
        }
        assert hub.registry.channel_of(peer) == "design-1"

    @pytest.mark.asyncio
    async def test_join_second_channel_rejected(self, hub: RelayHub) -> None:
        peer = RecordingPeer("a")
        await hub.handle(peer, {"type": "join", "channel_id": "A"})

        await hub.handle(peer, {"type": "join", "channel_id": "B", "id": "join_2"})

        assert peer.last["type"] == "error"
        assert peer.last["code"] == "channel_membership"
        assert peer.last["id"] == "join_2"
        assert hub.registry.channel_of(peer) == "A"

    @pytest.mark.asyncio
    async def test_leave(self, hub: RelayHub) -> None:
        peer = RecordingPeer("a")
        await hub.handle(peer, {"type": "join", "channel_id": "A"})

        await hub.handle(peer, {"type": "leave", "id": "leave_1"})

        assert peer.last["message"] == "Left channel: A"
        assert peer.last["id"] == "leave_1"
        assert hub.registry.channel_of(peer) is None

    @pytest.mark.asyncio
    async def test_leave_without_channel(self, hub: RelayHub) -> None:
        peer = RecordingPeer("a")

        await hub.handle(peer, {"type": "leave"})

        assert peer.last["message"] == "Not in a channel"

    @pytest.mark.asyncio
    async def test_relay_stamps_channel(self, hub: RelayHub) -> None:
        """Relayed frames carry the sender's channel, whatever it claimed."""
        a, b = RecordingPeer("a"), RecordingPeer("b")
        await hub.handle(a, {"type": "join", "channel_id": "A"})
        await hub.handle(b, {"type": "join", "channel_id": "A"})

        message = {"type": "notify", "message": "hi"}
        await hub.handle(a, {"type": "relay", "channel_id": "spoofed", "message": message})

        assert b.last == {"type": "relay", "channel_id": "A", "message": message}

    @pytest.mark.asyncio
    async def test_relay_before_join(self, hub: RelayHub) -> None:
        peer = RecordingPeer("a")

        await hub.handle(peer, {"type": "relay", "message": {"type": "notify", "message": "x"}})

        assert peer.last["type"] == "error"
        assert peer.last["code"] == "not_joined"

    @pytest.mark.asyncio
    async def test_invalid_frame_reported(self, hub: RelayHub) -> None:
        """Garbage is answered with an error frame, never an exception."""
        peer = RecordingPeer("a")

        await hub.handle(peer, "not json")

        assert peer.last["type"] == "error"
        assert peer.last["code"] == "validation_error"

    @pytest.mark.asyncio
    async def test_peer_cannot_send_system_frames(self, hub: RelayHub) -> None:
        peer = RecordingPeer("a")

        await hub.handle(peer, {"type": "system", "message": "fake"})

        assert peer.last["type"] == "error"

    @pytest.mark.asyncio
    async def test_disconnect_forgets_peer(self, hub: RelayHub) -> None:
        peer = RecordingPeer("a")
        await hub.handle(peer, {"type": "join", "channel_id": "A"})

        hub.disconnect(peer)

        assert hub.registry.channel_count == 0
