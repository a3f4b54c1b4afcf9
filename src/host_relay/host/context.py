"""State passed to command handlers.

A HostSession lives as long as one runtime activation and owns everything
that would otherwise be process-global: settings, the host document and a
free-form state dict. Each command gets its own CommandContext on top.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from ..errors import UnsupportedError

if TYPE_CHECKING:
    from .document import Document
    from .progress import ProgressReporter


@dataclass
class HostSettings:
    """Tunables for long-running handlers.

    Attributes:
        chunk_size: Default number of items processed concurrently per chunk
        chunk_delay: Seconds to yield between chunks
        item_delay: Seconds to yield after each item inside a chunk
        highlight: Flash scanned nodes while scanning
        highlight_delay: Seconds a highlight stays visible
    """

    chunk_size: int = 10
    chunk_delay: float = 0.05
    item_delay: float = 0.0
    highlight: bool = False
    highlight_delay: float = 0.1


@dataclass
class HostSession:
    """One activation of the host runtime."""

    session_id: str = field(default_factory=lambda: f"host_{uuid.uuid4().hex[:8]}")
    settings: HostSettings = field(default_factory=HostSettings)
    document: Document | None = None
    state: dict[str, Any] = field(default_factory=dict)


@dataclass
class CommandContext:
    """Per-command context handed to every handler."""

    session: HostSession
    command_id: str
    command: str
    reporter: ProgressReporter

    @property
    def settings(self) -> HostSettings:
        return self.session.settings

    @property
    def document(self) -> Document:
        """The session document.

        Raises:
            UnsupportedError: if the host has no document loaded
        """
        if self.session.document is None:
            raise UnsupportedError("host has no document loaded", identifier=self.command)
        return self.session.document
