"""Tests for the in-memory host document."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import pytest

from host_relay.errors import NotFoundError, ValidationError
from host_relay.host import Document, Node, highlight, walk
from host_relay.host.document import HIGHLIGHT_FILL


class TestDocument:
    """Tests for lookup and loading."""

    def test_index_covers_all_nodes(self, document: Document) -> None:
        assert len(document) == 8
        assert "2:2" in document

    def test_get_and_require(self, document: Document) -> None:
        assert document.get("1:2").characters == "Hello"  # type: ignore[union-attr]
        assert document.get("nope") is None

        with pytest.raises(NotFoundError, match="node not found: nope"):
            document.require("nope")

    def test_info(self, document: Document) -> None:
        info = document.info()

        assert info["name"] == "Page 1"
        assert [child["id"] for child in info["children"]] == ["1:1", "2:1", "3:1", "4:1"]
        assert info["current_page"]["child_count"] == 4

    def test_from_dict_invalid(self) -> None:
        with pytest.raises(ValidationError, match="invalid document"):
            Document.from_dict({"name": "no id"})

    def test_load(self, tmp_path: Path) -> None:
        path = tmp_path / "page.json"
        path.write_text(json.dumps({"id": "0:1", "name": "Loaded", "children": [{"id": "1:1", "type": "TEXT"}]}))

        document = Document.load(path)

        assert document.name == "Loaded"
        assert document.require("1:1").is_text

    def test_load_bad_json(self, tmp_path: Path) -> None:
        path = tmp_path / "page.json"
        path.write_text("{")

        with pytest.raises(ValidationError):
            Document.load(path)

    def test_load_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(NotFoundError):
            Document.load(tmp_path / "missing.json")

    def test_empty(self) -> None:
        document = Document.empty()

        assert len(document) == 1
        assert document.root.type == "PAGE"


class TestWalk:
    """Tests for traversal."""

    def test_depth_first_skipping_invisible(self, document: Document) -> None:
        """Invisible subtrees are skipped entirely."""
        visits = list(walk(document.root))

        assert [v.node.id for v in visits] == ["0:1", "1:1", "1:2", "1:3", "3:1", "4:1"]
        assert [v.depth for v in visits] == [0, 1, 2, 2, 1, 1]

    def test_paths(self, document: Document) -> None:
        visit = next(v for v in walk(document.root) if v.node.id == "1:2")

        assert visit.path == ("Page 1", "Header", "Title")
        assert visit.text_info()["path"] == "Page 1 > Header > Title"
        assert visit.text_info()["font_family"] == "Inter"

    def test_unnamed_nodes(self) -> None:
        root = Node(id="1", children=[Node(id="2", type="TEXT")])

        paths = [v.path for v in walk(root)]

        assert paths[-1] == ("Unnamed FRAME", "Unnamed TEXT")

    def test_is_lazy(self, document: Document) -> None:
        iterator = walk(document.root)

        assert next(iterator).node.id == "0:1"

    def test_invisible_root(self) -> None:
        assert list(walk(Node(id="1", visible=False))) == []


class TestHighlight:
    """Tests for the highlight side effect."""

    @pytest.mark.asyncio
    async def test_restores_fills(self) -> None:
        fills = [{"type": "SOLID", "color": {"r": 0, "g": 0, "b": 0}}]
        node = Node(id="1", type="TEXT", fills=fills)

        await highlight(node, delay=0)

        assert node.fills == fills

    @pytest.mark.asyncio
    async def test_swaps_while_active(self) -> None:
        node = Node(id="1", type="TEXT")
        task = asyncio.create_task(highlight(node, delay=0.05))
        await asyncio.sleep(0.01)

        assert node.fills == [HIGHLIGHT_FILL]
        await task
        assert node.fills == []
