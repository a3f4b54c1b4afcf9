"""Client SDK for driving a host through the relay.

Example:
    from host_relay.sdk import connect_websocket

    async with connect_websocket("ws://127.0.0.1:3055/ws", "design-1") as client:
        await client.ping()
        result = await client.scan_text_nodes("0:1", on_progress=print)
"""

from .client import RelayClient, connect_memory, connect_websocket
from .correlation import CorrelationTable, PendingRequest
from .gateway import DEFAULT_COMMAND_TIMEOUTS, DEFAULT_TIMEOUT, Gateway
from .retry import retryable, with_retry

__all__ = [
    # Client
    "RelayClient",
    "connect_memory",
    "connect_websocket",
    # Gateway
    "DEFAULT_COMMAND_TIMEOUTS",
    "DEFAULT_TIMEOUT",
    "Gateway",
    # Correlation
    "CorrelationTable",
    "PendingRequest",
    # Retry
    "retryable",
    "with_retry",
]
