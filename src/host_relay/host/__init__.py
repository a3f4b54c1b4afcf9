"""Host side: command registry, dispatcher, chunked execution and runtime."""

from .chunked import ChunkedResult, ItemOutcome, partition, run_chunked
from .context import CommandContext, HostSession, HostSettings
from .dispatcher import CommandDispatcher, DispatchState
from .document import Document, Node, NodeVisit, highlight, walk
from .handlers import default_registry
from .progress import ProgressReporter
from .registry import CommandRegistry, CommandSpec, NoParams, command
from .runtime import HostRuntime

__all__ = [
    # Context
    "CommandContext",
    "HostSession",
    "HostSettings",
    # Registry and dispatch
    "CommandDispatcher",
    "CommandRegistry",
    "CommandSpec",
    "DispatchState",
    "NoParams",
    "command",
    "default_registry",
    # Chunked execution
    "ChunkedResult",
    "ItemOutcome",
    "ProgressReporter",
    "partition",
    "run_chunked",
    # Document
    "Document",
    "Node",
    "NodeVisit",
    "highlight",
    "walk",
    # Runtime
    "HostRuntime",
]
