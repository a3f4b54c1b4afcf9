"""Runtime configuration.

Defaults can be overridden with ``HOST_RELAY_*`` environment variables;
CLI options override both.

    HOST_RELAY_HOST              relay bind address / client target host
    HOST_RELAY_PORT              relay port
    HOST_RELAY_CHANNEL           default channel id
    HOST_RELAY_CHUNK_SIZE        default host chunk size
    HOST_RELAY_CHUNK_DELAY       seconds between chunks
    HOST_RELAY_TIMEOUT           default client timeout in seconds
    HOST_RELAY_AUTO_RECONNECT    1/true/yes to reconnect dropped peers
    HOST_RELAY_RECONNECT_DELAY   initial reconnect delay in seconds
    HOST_RELAY_MAX_RECONNECT_DELAY
    HOST_RELAY_LOG_LEVEL         DEBUG, INFO, WARNING, ...
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, fields
from typing import Any

from .errors import ValidationError

ENV_PREFIX = "HOST_RELAY_"

_ENV_NAMES = {
    "host": "HOST",
    "port": "PORT",
    "channel_id": "CHANNEL",
    "chunk_size": "CHUNK_SIZE",
    "chunk_delay": "CHUNK_DELAY",
    "default_timeout": "TIMEOUT",
    "auto_reconnect": "AUTO_RECONNECT",
    "reconnect_delay": "RECONNECT_DELAY",
    "max_reconnect_delay": "MAX_RECONNECT_DELAY",
    "log_level": "LOG_LEVEL",
}


@dataclass
class RelayConfig:
    """Settings shared by the relay server, host runtime and client CLI."""

    host: str = "127.0.0.1"
    port: int = 3055
    channel_id: str | None = None
    chunk_size: int = 10
    chunk_delay: float = 0.05
    default_timeout: float = 30.0
    auto_reconnect: bool = False
    reconnect_delay: float = 1.0
    max_reconnect_delay: float = 30.0
    log_level: str = "INFO"

    @property
    def ws_url(self) -> str:
        return f"ws://{self.host}:{self.port}/ws"

    @property
    def http_url(self) -> str:
        return f"http://{self.host}:{self.port}"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> RelayConfig:
        """Build a config from ``HOST_RELAY_*`` variables.

        Raises:
            ValidationError: if a variable cannot be converted
        """
        environ = os.environ if environ is None else environ
        values: dict[str, Any] = {}
        for f in fields(cls):
            name = ENV_PREFIX + _ENV_NAMES[f.name]
            raw = environ.get(name)
            if raw is None or raw == "":
                continue
            values[f.name] = _convert(name, raw, f.type)
        return cls(**values)


def _convert(name: str, raw: str, annotation: Any) -> Any:
    kind = str(annotation)
    try:
        if kind == "bool":
            return raw.strip().lower() in ("1", "true", "yes", "on")
        if kind == "int":
            return int(raw)
        if kind == "float":
            return float(raw)
    except ValueError as e:
        raise ValidationError(f"{name} must be a {kind}, got {raw!r}", identifier=name) from e
    if name.endswith("LOG_LEVEL"):
        return raw.upper()
    return raw
