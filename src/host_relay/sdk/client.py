"""Typed client for the bundled host commands.

RelayClient is a thin facade over the Gateway: one method per command,
keyword arguments in, plain dicts out.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from ..relay import RelayHub
from ..transport.base import BaseClientTransport
from ..transport.memory import MemoryClientTransport
from ..transport.websocket import create_websocket_transport
from .gateway import DEFAULT_TIMEOUT, Gateway, ProgressListener


@dataclass
class RelayClient:
    """Automation client bound to one channel.

    Usage:
        async with connect_websocket("ws://127.0.0.1:3055/ws", "design-1") as client:
            info = await client.get_document_info()
    """

    _transport: BaseClientTransport
    channel_id: str
    default_timeout: float = DEFAULT_TIMEOUT
    extend_on_progress: bool = False
    _owns_transport: bool = True
    _gateway: Gateway | None = field(default=None, init=False, repr=False)

    @property
    def transport(self) -> BaseClientTransport:
        """Access the underlying transport."""
        return self._transport

    @property
    def gateway(self) -> Gateway:
        if self._gateway is None:
            self._gateway = Gateway(
                self._transport,
                default_timeout=self.default_timeout,
                extend_on_progress=self.extend_on_progress,
            )
        return self._gateway

    @property
    def is_connected(self) -> bool:
        return self._transport.is_connected

    async def connect(self) -> None:
        """Connect the transport and join the channel."""
        await self._transport.connect()
        await self._transport.join(self.channel_id)
        await self.gateway.start()

    async def disconnect(self) -> None:
        """Stop the gateway and, if owned, disconnect the transport."""
        await self.gateway.stop()
        if self._owns_transport:
            await self._transport.disconnect()

    async def invoke(
        self,
        command: str,
        params: dict[str, Any] | None = None,
        *,
        timeout: float | None = None,
        on_progress: ProgressListener | None = None,
    ) -> Any:
        """Send any command by name."""
        return await self.gateway.invoke(command, params, timeout=timeout, on_progress=on_progress)

    async def ping(self) -> dict[str, Any]:
        return await self.invoke("ping")

    async def echo(self, **payload: Any) -> dict[str, Any]:
        return await self.invoke("echo", payload)

    async def get_document_info(self) -> dict[str, Any]:
        return await self.invoke("get_document_info")

    async def get_node_info(self, node_id: str) -> dict[str, Any]:
        return await self.invoke("get_node_info", {"node_id": node_id})

    async def get_nodes_info(self, node_ids: list[str]) -> list[dict[str, Any]]:
        result = await self.invoke("get_nodes_info", {"node_ids": node_ids})
        return result.get("nodes", [])

    async def set_text_content(self, node_id: str, text: str) -> dict[str, Any]:
        return await self.invoke("set_text_content", {"node_id": node_id, "text": text})

    async def scan_text_nodes(
        self,
        node_id: str,
        *,
        use_chunking: bool = True,
        chunk_size: int = 10,
        highlight: bool | None = None,
        timeout: float | None = None,
        on_progress: ProgressListener | None = None,
    ) -> dict[str, Any]:
        """Scan the subtree of ``node_id`` for text nodes.

        Progress events arrive once per chunk while the scan runs.
        """
        params: dict[str, Any] = {
            "node_id": node_id,
            "use_chunking": use_chunking,
            "chunk_size": chunk_size,
        }
        if highlight is not None:
            params["highlight"] = highlight
        return await self.invoke("scan_text_nodes", params, timeout=timeout, on_progress=on_progress)

    async def set_multiple_text_contents(
        self,
        node_id: str,
        text: list[dict[str, str]],
        *,
        chunk_size: int = 5,
        timeout: float | None = None,
        on_progress: ProgressListener | None = None,
    ) -> dict[str, Any]:
        """Replace the characters of several text nodes.

        Args:
            node_id: Parent node the replacements belong to
            text: Items of the form ``{"node_id": ..., "text": ...}``
            chunk_size: Replacements applied concurrently per chunk
        """
        params = {"node_id": node_id, "text": text, "chunk_size": chunk_size}
        return await self.invoke(
            "set_multiple_text_contents", params, timeout=timeout, on_progress=on_progress
        )

    async def __aenter__(self) -> RelayClient:
        await self.connect()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.disconnect()


# Factory functions


def connect_websocket(
    url: str,
    channel_id: str,
    *,
    default_timeout: float = DEFAULT_TIMEOUT,
    auto_reconnect: bool = False,
    extend_on_progress: bool = False,
) -> RelayClient:
    """Create a client that reaches the relay over a websocket.

    The returned client is not connected yet; use it as an async context
    manager or call ``connect()``.
    """
    transport = create_websocket_transport(url, auto_reconnect=auto_reconnect)
    return RelayClient(
        _transport=transport,
        channel_id=channel_id,
        default_timeout=default_timeout,
        extend_on_progress=extend_on_progress,
    )


def connect_memory(
    hub: RelayHub,
    channel_id: str,
    *,
    default_timeout: float = DEFAULT_TIMEOUT,
    extend_on_progress: bool = False,
) -> RelayClient:
    """Create a client attached in-process to ``hub`` (embedded mode and tests)."""
    return RelayClient(
        _transport=MemoryClientTransport(hub),
        channel_id=channel_id,
        default_timeout=default_timeout,
        extend_on_progress=extend_on_progress,
    )
