"""Tests for the relay's HTTP and websocket routes."""

from __future__ import annotations

from typing import Any

from starlette.testclient import TestClient, WebSocketTestSession

from host_relay.app import create_app


def join(ws: WebSocketTestSession, channel_id: str, frame_id: str) -> dict[str, Any]:
    ws.send_json({"type": "join", "channel_id": channel_id, "id": frame_id})
    return ws.receive_json()


class TestHealth:
    def test_health(self) -> None:
        with TestClient(create_app()) as client:
            response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok", "channels": 0}


class TestRelayEndpoint:
    """Tests for /ws."""

    def test_greeting_and_join(self) -> None:
        app = create_app()
        with TestClient(app) as client, client.websocket_connect("/ws") as ws:
            greeting = ws.receive_json()
            ack = join(ws, "design-1", "j1")

            assert greeting["type"] == "system"
            assert ack == {
                "type": "system",
                "message": "Joined channel: design-1",
                "channel_id": "design-1",
                "id": "j1",
            }
            assert client.get("/health").json()["channels"] == 1

    def test_relays_to_other_members(self) -> None:
        with (
            TestClient(create_app()) as client,
            client.websocket_connect("/ws") as sender,
            client.websocket_connect("/ws") as receiver,
        ):
            sender.receive_json()
            receiver.receive_json()
            join(sender, "design-1", "j1")
            join(receiver, "design-1", "j2")

            message = {"type": "command", "id": "cmd_1", "command": "ping", "params": {}}
            sender.send_json({"type": "relay", "channel_id": "ignored", "message": message})
            delivered = receiver.receive_json()

        assert delivered == {"type": "relay", "channel_id": "design-1", "message": message}

    def test_relay_before_join(self) -> None:
        with TestClient(create_app()) as client, client.websocket_connect("/ws") as ws:
            ws.receive_json()
            ws.send_json({"type": "relay", "message": {"type": "notify", "message": "hi"}})
            error = ws.receive_json()

        assert error["type"] == "error"
        assert error["code"] == "not_joined"

    def test_invalid_frame(self) -> None:
        with TestClient(create_app()) as client, client.websocket_connect("/ws") as ws:
            ws.receive_json()
            ws.send_text("not json")
            error = ws.receive_json()

        assert error["type"] == "error"
        assert error["code"] == "validation_error"

    def test_leave(self) -> None:
        with TestClient(create_app()) as client, client.websocket_connect("/ws") as ws:
            ws.receive_json()
            join(ws, "design-1", "j1")
            ws.send_json({"type": "leave", "id": "l1"})
            ack = ws.receive_json()

            assert ack["message"] == "Left channel: design-1"
            assert client.get("/health").json()["channels"] == 0
