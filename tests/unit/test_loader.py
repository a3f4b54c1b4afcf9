"""Tests for loading extra commands from YAML files and modules."""

from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from host_relay.errors import ValidationError
from host_relay.host import CommandRegistry
from host_relay.host.handlers.core import NodeParams, get_node_info, ping
from host_relay.host.loader import load_commands_file, load_commands_module


def write(path: Path, text: str) -> Path:
    path.write_text(textwrap.dedent(text))
    return path


class TestLoadCommandsFile:
    """Tests for YAML command definitions."""

    def test_registers_commands(self, tmp_path: Path) -> None:
        path = write(
            tmp_path / "commands.yaml",
            """
            commands:
              - name: alive
                module: host_relay.host.handlers.core
                function: ping
                description: Liveness check
                timeout: 2
              - name: node
                module: host_relay.host.handlers.core
                function: get_node_info
                params_model: NodeParams
            """,
        )
        registry = CommandRegistry()

        names = load_commands_file(path, registry)

        assert names == ["alive", "node"]
        alive = registry.get("alive")
        assert alive is not None
        assert alive.handler is ping
        assert alive.timeout == 2
        assert alive.description == "Liveness check"
        node = registry.get("node")
        assert node is not None
        assert node.handler is get_node_info
        assert node.params_model is NodeParams

    def test_skips_bad_entries(self, tmp_path: Path) -> None:
        """Incomplete and unimportable entries are skipped, the rest load."""
        path = write(
            tmp_path / "commands.yaml",
            """
            commands:
              - name: incomplete
                module: host_relay.host.handlers.core
              - name: missing_module
                module: host_relay.does_not_exist
                function: ping
              - name: missing_function
                module: host_relay.host.handlers.core
                function: nope
              - name: alive
                module: host_relay.host.handlers.core
                function: ping
            """,
        )
        registry = CommandRegistry()

        assert load_commands_file(path, registry) == ["alive"]
        assert registry.list_names() == ["alive"]

    def test_replaces_existing(self, tmp_path: Path) -> None:
        path = write(
            tmp_path / "commands.yaml",
            """
            commands:
              - name: alive
                module: host_relay.host.handlers.core
                function: ping
                description: replaced
            """,
        )
        registry = CommandRegistry()
        load_commands_file(path, registry)

        load_commands_file(path, registry)

        assert len(registry) == 1

    def test_empty_file(self, tmp_path: Path) -> None:
        path = write(tmp_path / "commands.yaml", "")

        assert load_commands_file(path, CommandRegistry()) == []

    def test_rejects_non_mapping(self, tmp_path: Path) -> None:
        path = write(tmp_path / "commands.yaml", "- just\n- a list\n")

        with pytest.raises(ValidationError):
            load_commands_file(path, CommandRegistry())


class TestLoadCommandsModule:
    """Tests for setup_commands hooks."""

    def test_sync_hook(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        write(
            tmp_path / "extra_commands_sync.py",
            """
            from host_relay.host import CommandSpec
            from host_relay.host.handlers.core import ping


            def setup_commands(registry):
                registry.register(CommandSpec("extra_ping", ping))
            """,
        )
        monkeypatch.syspath_prepend(str(tmp_path))
        registry = CommandRegistry()

        assert load_commands_module("extra_commands_sync", registry) == 1
        assert "extra_ping" in registry

    def test_async_hook(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        write(
            tmp_path / "extra_commands_async.py",
            """
            from host_relay.host import CommandSpec
            from host_relay.host.handlers.core import ping


            async def setup_commands(registry):
                registry.register(CommandSpec("async_ping", ping))
            """,
        )
        monkeypatch.syspath_prepend(str(tmp_path))
        registry = CommandRegistry()

        assert load_commands_module("extra_commands_async", registry) == 1

    def test_module_without_hook(self) -> None:
        assert load_commands_module("host_relay.host.handlers.core", CommandRegistry()) == 0

    def test_missing_module(self) -> None:
        with pytest.raises(ImportError):
            load_commands_module("host_relay.does_not_exist", CommandRegistry())
