"""WebSocket endpoint where peers attach to the relay.

Every connection becomes one relay peer. Inbound text frames are handed to
the app's RelayHub; outbound frames go through WebSocketPeer.
"""

from __future__ import annotations

import logging

from starlette.routing import WebSocketRoute
from starlette.websockets import WebSocket, WebSocketDisconnect

from ..relay import RelayHub
from ..transport.websocket import WebSocketPeer

logger = logging.getLogger(__name__)


async def relay_endpoint(websocket: WebSocket) -> None:
    """Relay WebSocket endpoint.

    URL: /ws

    Protocol:
    1. Peer connects, relay sends a ``system`` "connected" frame
    2. Peer sends ``join`` with a channel id and waits for the system ack
    3. ``relay`` frames are forwarded to every other member of the channel
    4. ``leave`` or disconnecting drops the membership
    """
    hub: RelayHub = websocket.app.state.hub
    await websocket.accept()

    peer = WebSocketPeer(websocket)
    logger.info(f"Peer {peer.peer_id} connected")

    try:
        await hub.connect(peer)
        while True:
            text = await websocket.receive_text()
            await hub.handle(peer, text)

    except WebSocketDisconnect:
        logger.info(f"Peer {peer.peer_id} disconnected")
    except Exception as e:
        logger.exception(f"WebSocket error for peer {peer.peer_id}: {e}")
    finally:
        hub.disconnect(peer)


websocket_routes = [
    WebSocketRoute("/ws", relay_endpoint),
]
