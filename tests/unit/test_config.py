"""Tests for environment-driven configuration."""

from __future__ import annotations

import pytest

from host_relay.config import RelayConfig
from host_relay.errors import ValidationError


class TestRelayConfig:
    def test_defaults(self) -> None:
        config = RelayConfig.from_env({})

        assert config.port == 3055
        assert config.channel_id is None
        assert config.ws_url == "ws://127.0.0.1:3055/ws"
        assert config.http_url == "http://127.0.0.1:3055"

    def test_overrides(self) -> None:
        config = RelayConfig.from_env(
            {
                "HOST_RELAY_HOST": "0.0.0.0",
                "HOST_RELAY_PORT": "4000",
                "HOST_RELAY_CHANNEL": "design-1",
                "HOST_RELAY_CHUNK_DELAY": "0.2",
                "HOST_RELAY_TIMEOUT": "12.5",
                "HOST_RELAY_AUTO_RECONNECT": "yes",
                "HOST_RELAY_LOG_LEVEL": "debug",
            }
        )

        assert config.ws_url == "ws://0.0.0.0:4000/ws"
        assert config.channel_id == "design-1"
        assert config.chunk_delay == 0.2
        assert config.default_timeout == 12.5
        assert config.auto_reconnect is True
        assert config.log_level == "DEBUG"

    def test_empty_values_ignored(self) -> None:
        assert RelayConfig.from_env({"HOST_RELAY_PORT": ""}).port == 3055

    def test_false_flag(self) -> None:
        assert RelayConfig.from_env({"HOST_RELAY_AUTO_RECONNECT": "0"}).auto_reconnect is False

    def test_invalid_number(self) -> None:
        with pytest.raises(ValidationError, match="HOST_RELAY_PORT"):
            RelayConfig.from_env({"HOST_RELAY_PORT": "abc"})
