"""host-relay: command relay between automation clients and a host runtime.

Layers:
- relay: channel registry and the websocket relay server
- sdk: gateway, correlation table and typed client for automation clients
- host: command registry, dispatcher, chunked execution and host runtime
"""

from .errors import (
    ChannelMembershipError,
    NotFoundError,
    RelayError,
    RemoteError,
    RequestTimeoutError,
    RetryExhaustedError,
    TransportError,
    UnknownCommandError,
    UnsupportedError,
    ValidationError,
)

__version__ = "0.1.0"

__all__ = [
    "ChannelMembershipError",
    "NotFoundError",
    "RelayError",
    "RemoteError",
    "RequestTimeoutError",
    "RetryExhaustedError",
    "TransportError",
    "UnknownCommandError",
    "UnsupportedError",
    "ValidationError",
    "__version__",
]
