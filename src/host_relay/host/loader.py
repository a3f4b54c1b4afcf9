"""Load extra host commands from a YAML file or a Python module.

YAML format:

    commands:
      - name: shout
        module: myapp.commands
        function: shout
        params_model: ShoutParams   # optional, class in the same module
        description: Upper-case a string
        timeout: 5

A module may register commands itself by defining
``setup_commands(registry)`` (sync or async).
"""

from __future__ import annotations

import asyncio
import importlib
import logging
from pathlib import Path
from typing import Any

import yaml

from ..errors import ValidationError
from .registry import CommandRegistry, CommandSpec, NoParams

logger = logging.getLogger(__name__)


def load_commands_file(path: str | Path, registry: CommandRegistry) -> list[str]:
    """Register every command listed in a YAML file.

    Incomplete or unimportable entries are skipped with a warning.

    Returns:
        Names of the commands registered
    """
    with open(path, encoding="utf-8") as f:
        config = yaml.safe_load(f) or {}

    if not isinstance(config, dict):
        raise ValidationError(f"{path}: expected a mapping with a 'commands' list", identifier=str(path))

    registered: list[str] = []
    for entry in config.get("commands", []):
        name = entry.get("name")
        module_path = entry.get("module")
        function_name = entry.get("function")
        if not all([name, module_path, function_name]):
            logger.warning(f"Skipping incomplete command definition: {entry}")
            continue

        try:
            module = importlib.import_module(module_path)
            handler = getattr(module, function_name)
            params_model = NoParams
            if entry.get("params_model"):
                params_model = getattr(module, entry["params_model"])
            registry.register_or_replace(
                CommandSpec(
                    name=name,
                    handler=handler,
                    params_model=params_model,
                    description=entry.get("description", ""),
                    timeout=entry.get("timeout"),
                )
            )
        except (ImportError, AttributeError, ValidationError) as e:
            logger.warning(f"Failed to load command {name}: {e}")
            continue

        registered.append(name)
        logger.info(f"Registered command {name} from {module_path}.{function_name}")

    return registered


def load_commands_module(module_name: str, registry: CommandRegistry) -> int:
    """Import a module and let its ``setup_commands`` hook register commands.

    Returns:
        Number of commands the module added
    """
    before = len(registry)
    module = importlib.import_module(module_name)

    setup: Any = getattr(module, "setup_commands", None)
    if setup is None:
        logger.warning(f"Module {module_name} has no setup_commands(registry) hook")
        return 0

    if asyncio.iscoroutinefunction(setup):
        asyncio.run(setup(registry))
    else:
        setup(registry)

    added = len(registry) - before
    logger.info(f"Module {module_name} registered {added} command(s)")
    return added
