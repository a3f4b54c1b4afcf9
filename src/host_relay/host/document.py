"""In-memory host document.

A tree of nodes indexed by id. Traversal is a pure generator; anything
that touches the nodes visibly (highlighting) is a separate step.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from ..errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

HIGHLIGHT_FILL: dict[str, Any] = {
    "type": "SOLID",
    "color": {"r": 1.0, "g": 0.5, "b": 0.0},
    "opacity": 0.3,
}


class Node(BaseModel):
    """A document node. Only ``TEXT`` nodes carry characters and font fields."""

    id: str
    name: str = ""
    type: str = "FRAME"
    visible: bool = True

    characters: str | None = None
    font_family: str | None = None
    font_style: str | None = None
    font_size: float | None = None

    x: float = 0
    y: float = 0
    width: float = 0
    height: float = 0
    fills: list[dict[str, Any]] = Field(default_factory=list)

    children: list[Node] = Field(default_factory=list)

    @property
    def is_text(self) -> bool:
        return self.type == "TEXT"

    @property
    def display_name(self) -> str:
        return self.name or f"Unnamed {self.type}"

    def summary(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "type": self.type}

    def info(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


@dataclass(frozen=True)
class NodeVisit:
    """A node reached by :func:`walk` with its ancestry."""

    node: Node
    path: tuple[str, ...]
    depth: int

    def text_info(self) -> dict[str, Any]:
        node = self.node
        return {
            "id": node.id,
            "name": node.name or "Text",
            "type": node.type,
            "characters": node.characters or "",
            "font_size": node.font_size or 0,
            "font_family": node.font_family or "",
            "font_style": node.font_style or "",
            "x": node.x,
            "y": node.y,
            "width": node.width,
            "height": node.height,
            "path": " > ".join(self.path),
            "depth": self.depth,
        }


def walk(node: Node, path: tuple[str, ...] = (), depth: int = 0) -> Iterator[NodeVisit]:
    """Yield ``node`` and its descendants depth-first, skipping invisible subtrees."""
    if not node.visible:
        return
    node_path = (*path, node.display_name)
    yield NodeVisit(node=node, path=node_path, depth=depth)
    for child in node.children:
        yield from walk(child, node_path, depth + 1)


async def highlight(node: Node, delay: float = 0.1) -> None:
    """Flash ``node`` by swapping its fills for ``delay`` seconds."""
    original = [dict(fill) for fill in node.fills]
    node.fills = [dict(HIGHLIGHT_FILL)]
    try:
        await asyncio.sleep(delay)
    finally:
        node.fills = original


class Document:
    """A page of nodes with an id index."""

    def __init__(self, root: Node) -> None:
        self.root = root
        self._index: dict[str, Node] = {}
        self.reindex()

    @property
    def id(self) -> str:
        return self.root.id

    @property
    def name(self) -> str:
        return self.root.name

    def reindex(self) -> None:
        self._index.clear()
        stack = [self.root]
        while stack:
            node = stack.pop()
            self._index[node.id] = node
            stack.extend(node.children)

    def get(self, node_id: str) -> Node | None:
        return self._index.get(node_id)

    def require(self, node_id: str) -> Node:
        """Look up a node.

        Raises:
            NotFoundError: if no node has that id
        """
        node = self._index.get(node_id)
        if node is None:
            raise NotFoundError(f"node not found: {node_id}", identifier=node_id)
        return node

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._index

    def __len__(self) -> int:
        return len(self._index)

    def info(self) -> dict[str, Any]:
        return {
            "id": self.root.id,
            "name": self.root.name,
            "type": self.root.type,
            "children": [child.summary() for child in self.root.children],
            "current_page": {
                "id": self.root.id,
                "name": self.root.name,
                "child_count": len(self.root.children),
            },
            "node_count": len(self),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Document:
        """Build a document from its JSON form.

        Raises:
            ValidationError: if the data is not a valid node tree
        """
        try:
            root = Node.model_validate(data)
        except ValueError as e:
            raise ValidationError(f"invalid document: {e}") from e
        return cls(root)

    @classmethod
    def load(cls, path: str | Path) -> Document:
        """Load a document from a JSON file."""
        path = Path(path)
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ValidationError(f"{path} is not valid JSON: {e.msg}", identifier=str(path)) from e
        except OSError as e:
            raise NotFoundError(f"cannot read document {path}: {e}", identifier=str(path)) from e
        document = cls.from_dict(data)
        logger.info(f"Loaded document {document.name!r} with {len(document)} nodes from {path}")
        return document

    @classmethod
    def empty(cls, name: str = "Page 1") -> Document:
        return cls(Node(id="0:1", name=name, type="PAGE"))
