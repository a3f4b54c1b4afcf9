"""Transport abstraction layer.

Every endpoint (automation client or host runtime) is a peer of the relay.
Transports hide how a peer reaches the relay:
- WebSocket - the production duplex transport
- Memory - in-process peer for embedded mode and tests
"""

from .base import (
    BaseClientTransport,
    ClientTransportConfig,
    TransportState,
)
from .memory import MemoryClientTransport, MemoryPeer
from .websocket import WebSocketClientTransport, WebSocketPeer, create_websocket_transport

__all__ = [
    # Base abstractions
    "BaseClientTransport",
    "ClientTransportConfig",
    "TransportState",
    # In-memory implementation
    "MemoryClientTransport",
    "MemoryPeer",
    # WebSocket implementation
    "WebSocketClientTransport",
    "WebSocketPeer",
    "create_websocket_transport",
]
