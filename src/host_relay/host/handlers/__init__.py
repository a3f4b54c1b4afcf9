"""Bundled command handlers."""

from ..registry import CommandRegistry
from .core import register_core_handlers
from .text import register_text_handlers


def default_registry() -> CommandRegistry:
    """Create a registry with every bundled handler registered."""
    registry = CommandRegistry()
    register_core_handlers(registry)
    register_text_handlers(registry)
    return registry


__all__ = [
    "default_registry",
    "register_core_handlers",
    "register_text_handlers",
]
