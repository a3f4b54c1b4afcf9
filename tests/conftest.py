"""Pytest configuration and shared fixtures."""

from __future__ import annotations

from typing import Any

import pytest

from host_relay.host import Document, HostSession, HostSettings


def sample_tree() -> dict[str, Any]:
    """A small page: a header frame with two texts, a hidden frame, a rectangle and a footer text."""
    return {
        "id": "0:1",
        "name": "Page 1",
        "type": "PAGE",
        "children": [
            {
                "id": "1:1",
                "name": "Header",
                "type": "FRAME",
                "children": [
                    {
                        "id": "1:2",
                        "name": "Title",
                        "type": "TEXT",
                        "characters": "Hello",
                        "font_family": "Inter",
                        "font_style": "Bold",
                        "font_size": 24,
                    },
                    {"id": "1:3", "name": "Subtitle", "type": "TEXT", "characters": "World"},
                ],
            },
            {
                "id": "2:1",
                "name": "Hidden",
                "type": "FRAME",
                "visible": False,
                "children": [{"id": "2:2", "name": "Secret", "type": "TEXT", "characters": "x"}],
            },
            {"id": "3:1", "name": "Box", "type": "RECTANGLE"},
            {"id": "4:1", "name": "Footer", "type": "TEXT", "characters": "Bye"},
        ],
    }


@pytest.fixture
def document() -> Document:
    return Document.from_dict(sample_tree())


@pytest.fixture
def fast_settings() -> HostSettings:
    """Settings without cooperative delays."""
    return HostSettings(chunk_delay=0, item_delay=0, highlight=False, highlight_delay=0)


@pytest.fixture
def session(document: Document, fast_settings: HostSettings) -> HostSession:
    return HostSession(session_id="host_test", settings=fast_settings, document=document)
