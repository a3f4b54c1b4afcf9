"""Registry of host command handlers.

Maps a command name to a CommandSpec: the parameter schema (a pydantic
model) plus the async handler. The dispatcher only ever looks commands up
here, so handlers can be added, replaced or tested without touching it.

Usage:
    registry = CommandRegistry()

    class EchoParams(BaseModel):
        text: str

    @command("echo", EchoParams, registry=registry)
    async def echo(params: EchoParams, ctx: CommandContext) -> dict:
        return {"text": params.text}
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict

from ..errors import ValidationError
from .context import CommandContext

logger = logging.getLogger(__name__)

CommandHandler = Callable[[Any, CommandContext], Awaitable[Any]]


class NoParams(BaseModel):
    """Parameter model for commands that take no parameters."""

    model_config = ConfigDict(extra="ignore")


@dataclass
class CommandSpec:
    """Definition of a host command.

    Attributes:
        name: Command name used on the wire
        handler: Async function ``(params, ctx) -> result``
        params_model: Pydantic model validating the raw params
        description: Human-readable summary
        timeout: Host-side ceiling in seconds, None for no ceiling
    """

    name: str
    handler: CommandHandler
    params_model: type[BaseModel] = NoParams
    description: str = ""
    timeout: float | None = None

    def __post_init__(self) -> None:
        if not self.name:
            raise ValidationError("command name cannot be empty")
        if not callable(self.handler):
            raise ValidationError(f"handler for '{self.name}' must be callable", identifier=self.name)
        if self.timeout is not None and self.timeout <= 0:
            raise ValidationError(f"timeout for '{self.name}' must be positive", identifier=self.name)

    def describe(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "timeout": self.timeout,
            "params": self.params_model.model_json_schema(),
        }


class CommandRegistry:
    """Central registry for command specs."""

    def __init__(self) -> None:
        self._commands: dict[str, CommandSpec] = {}

    def register(self, spec: CommandSpec) -> None:
        """Register a command.

        Raises:
            ValidationError: If a command with the same name is already registered
        """
        if spec.name in self._commands:
            raise ValidationError(f"command '{spec.name}' already registered", identifier=spec.name)
        self._commands[spec.name] = spec
        logger.debug(f"Registered command: {spec.name}")

    def register_or_replace(self, spec: CommandSpec) -> bool:
        """Register a command, replacing any existing one with the same name.

        Returns:
            True if an existing command was replaced
        """
        replaced = spec.name in self._commands
        self._commands[spec.name] = spec
        action = "Replaced" if replaced else "Registered"
        logger.debug(f"{action} command: {spec.name}")
        return replaced

    def unregister(self, name: str) -> bool:
        if name in self._commands:
            del self._commands[name]
            logger.debug(f"Unregistered command: {name}")
            return True
        return False

    def get(self, name: str) -> CommandSpec | None:
        return self._commands.get(name)

    def list_names(self) -> list[str]:
        return sorted(self._commands)

    def describe(self) -> list[dict[str, Any]]:
        """Describe every command, including its schema and timeout ceiling."""
        return [self._commands[name].describe() for name in self.list_names()]

    def __contains__(self, name: object) -> bool:
        return name in self._commands

    def __len__(self) -> int:
        return len(self._commands)


def command(
    name: str,
    params_model: type[BaseModel] = NoParams,
    *,
    description: str = "",
    timeout: float | None = None,
    registry: CommandRegistry,
) -> Callable[[CommandHandler], CommandHandler]:
    """Decorator registering an async handler under ``name``.

    The first line of the handler's docstring is used as the description
    when none is given.
    """

    def decorator(func: CommandHandler) -> CommandHandler:
        summary = description or (func.__doc__ or "").strip().split("\n")[0]
        registry.register(
            CommandSpec(
                name=name,
                handler=func,
                params_model=params_model,
                description=summary,
                timeout=timeout,
            )
        )
        return func

    return decorator
