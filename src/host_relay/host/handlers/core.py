"""Basic query handlers: connectivity checks and read-only document access."""

from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from ...protocol.envelopes import utc_now
from ..context import CommandContext
from ..registry import CommandRegistry, CommandSpec, NoParams

logger = logging.getLogger(__name__)

_LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


class EchoParams(BaseModel):
    """Any parameters; they are returned unchanged."""

    model_config = ConfigDict(extra="allow")


class NodeParams(BaseModel):
    node_id: str = Field(min_length=1)


class NodesParams(BaseModel):
    node_ids: list[str]


class NotifyParams(BaseModel):
    message: str
    level: str = "info"


async def ping(params: NoParams, ctx: CommandContext) -> dict[str, Any]:
    """Check that the host is alive."""
    return {"pong": True, "session_id": ctx.session.session_id, "timestamp": utc_now()}


async def echo(params: EchoParams, ctx: CommandContext) -> dict[str, Any]:
    """Return the parameters unchanged."""
    return params.model_dump()


async def get_document_info(params: NoParams, ctx: CommandContext) -> dict[str, Any]:
    """Describe the current page and its top-level nodes."""
    return ctx.document.info()


async def get_node_info(params: NodeParams, ctx: CommandContext) -> dict[str, Any]:
    """Return the full description of one node."""
    return ctx.document.require(params.node_id).info()


async def get_nodes_info(params: NodesParams, ctx: CommandContext) -> dict[str, Any]:
    """Describe several nodes. Unknown ids are skipped."""
    document = ctx.document
    nodes = []
    for node_id in params.node_ids:
        node = document.get(node_id)
        if node is None:
            logger.debug(f"get_nodes_info: skipping unknown node {node_id}")
            continue
        nodes.append({"node_id": node.id, "document": node.info()})
    return {"nodes": nodes}


async def notify(params: NotifyParams, ctx: CommandContext) -> dict[str, Any]:
    """Record a user-facing notification on the host."""
    logger.log(_LOG_LEVELS.get(params.level, logging.INFO), f"Notification: {params.message}")
    ctx.session.state.setdefault("notifications", []).append(params.message)
    return {"delivered": True}


def register_core_handlers(registry: CommandRegistry) -> None:
    for spec in (
        CommandSpec("ping", ping, NoParams, "Check that the host is alive"),
        CommandSpec("echo", echo, EchoParams, "Return the parameters unchanged"),
        CommandSpec("get_document_info", get_document_info, NoParams, "Describe the current page"),
        CommandSpec("get_node_info", get_node_info, NodeParams, "Describe one node"),
        CommandSpec("get_nodes_info", get_nodes_info, NodesParams, "Describe several nodes"),
        CommandSpec("notify", notify, NotifyParams, "Show a notification on the host"),
    ):
        registry.register(spec)
