"""Text handlers: single edits, scans and bulk replacements.

Scans and bulk replacements go through the chunked engine so the client
sees one progress event per chunk while the host stays responsive.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from pydantic import BaseModel, Field

from ...errors import UnsupportedError
from ..chunked import run_chunked
from ..context import CommandContext
from ..document import Node, NodeVisit, highlight, walk
from ..registry import CommandRegistry, CommandSpec

logger = logging.getLogger(__name__)


class SetTextParams(BaseModel):
    node_id: str = Field(min_length=1)
    text: str


class ScanTextParams(BaseModel):
    node_id: str = Field(min_length=1)
    use_chunking: bool = True
    chunk_size: int = Field(default=10, ge=1)
    highlight: bool | None = None


class TextReplacement(BaseModel):
    node_id: str = Field(min_length=1)
    text: str


class SetMultipleTextParams(BaseModel):
    node_id: str = Field(min_length=1)
    text: list[TextReplacement] = Field(min_length=1)
    chunk_size: int = Field(default=5, ge=1)


def _require_text(node: Node) -> Node:
    if not node.is_text:
        raise UnsupportedError(f"node is not a text node: {node.id}", identifier=node.id)
    return node


async def set_text_content(params: SetTextParams, ctx: CommandContext) -> dict[str, Any]:
    """Replace the characters of one text node."""
    node = _require_text(ctx.document.require(params.node_id))
    node.characters = params.text
    return {
        "id": node.id,
        "name": node.name,
        "characters": node.characters,
        "font_family": node.font_family,
        "font_style": node.font_style,
    }


async def scan_text_nodes(params: ScanTextParams, ctx: CommandContext) -> dict[str, Any]:
    """Collect every visible text node under ``node_id``.

    With chunking the visible subtree is collected first, then inspected
    in chunks of ``chunk_size`` with progress after each chunk.
    """
    root = ctx.document.require(params.node_id)
    settings = ctx.settings
    should_highlight = settings.highlight if params.highlight is None else params.highlight

    async def inspect(visit: NodeVisit) -> dict[str, Any] | None:
        if not visit.node.is_text:
            return None
        if should_highlight:
            await highlight(visit.node, settings.highlight_delay)
        if settings.item_delay:
            await asyncio.sleep(settings.item_delay)
        return visit.text_info()

    if not params.use_chunking:
        await ctx.reporter.started(f"Scanning {root.display_name!r} without chunking", total_items=1)
        text_nodes = []
        for visit in walk(root):
            info = await inspect(visit)
            if info is not None:
                text_nodes.append(info)
        await ctx.reporter.completed(
            f"Scan complete. Found {len(text_nodes)} text nodes.",
            processed_items=len(text_nodes),
            total_items=len(text_nodes),
        )
        return {
            "success": True,
            "message": f"Scanned {len(text_nodes)} text nodes.",
            "count": len(text_nodes),
            "text_nodes": text_nodes,
            "command_id": ctx.command_id,
        }

    visits = list(walk(root))
    logger.debug(f"scan_text_nodes: {len(visits)} visible nodes under {root.id}")
    result = await run_chunked(
        visits,
        inspect,
        reporter=ctx.reporter,
        chunk_size=params.chunk_size,
        chunk_delay=settings.chunk_delay,
        item_id=lambda visit: visit.node.id,
        label="nodes",
    )
    text_nodes = [outcome.value for outcome in result.succeeded if outcome.value is not None]
    return {
        "success": True,
        "message": f"Chunked scan complete. Found {len(text_nodes)} text nodes.",
        "count": len(text_nodes),
        "total_nodes": len(visits),
        "processed_nodes": result.processed,
        "chunks": result.chunks,
        "text_nodes": text_nodes,
        "command_id": ctx.command_id,
    }


async def set_multiple_text_contents(params: SetMultipleTextParams, ctx: CommandContext) -> dict[str, Any]:
    """Apply several text replacements in chunks.

    A missing or non-text node fails only its own replacement.
    """
    document = ctx.document
    settings = ctx.settings

    async def replace(item: TextReplacement) -> dict[str, Any]:
        node = _require_text(document.require(item.node_id))
        node.characters = item.text
        if settings.item_delay:
            await asyncio.sleep(settings.item_delay)
        return {"node_id": node.id, "characters": node.characters}

    result = await run_chunked(
        params.text,
        replace,
        reporter=ctx.reporter,
        chunk_size=params.chunk_size,
        chunk_delay=settings.chunk_delay,
        item_id=lambda item: item.node_id,
        label="replacements",
    )

    applied = len(result.succeeded)
    failed = len(result.failed)
    logger.info(f"set_multiple_text_contents on {params.node_id}: {applied} applied, {failed} failed")
    return {
        "success": applied > 0,
        "node_id": params.node_id,
        "replacements_applied": applied,
        "replacements_failed": failed,
        "total_replacements": len(params.text),
        "completed_in_chunks": result.chunks,
        "results": [
            {"success": o.success, "node_id": o.item_id, **({"error": o.error} if o.error else {})}
            for o in result.outcomes
        ],
        "command_id": ctx.command_id,
    }


def register_text_handlers(registry: CommandRegistry) -> None:
    for spec in (
        CommandSpec("set_text_content", set_text_content, SetTextParams, "Set the characters of a text node"),
        CommandSpec(
            "scan_text_nodes",
            scan_text_nodes,
            ScanTextParams,
            "Find all visible text nodes under a node",
            timeout=50.0,
        ),
        CommandSpec(
            "set_multiple_text_contents",
            set_multiple_text_contents,
            SetMultipleTextParams,
            "Replace the text of several nodes",
            timeout=50.0,
        ),
    ):
        registry.register(spec)
