"""host-relay CLI.

Usage:
    host-relay serve                         # Run the relay on 127.0.0.1:3055
    host-relay serve --port 4000 --reload    # Custom port, auto-reload
    host-relay host --channel design-1       # Serve bundled commands on a channel
    host-relay host --channel design-1 --document page.json --commands extra.yaml
    host-relay call ping --channel design-1  # Invoke a command, print JSON result
    host-relay call scan_text_nodes --channel design-1 --params '{"node_id": "0:1"}'
    host-relay commands                      # Describe bundled commands
    host-relay health                        # Check relay health

Logs go to stderr so stdout carries only command output.
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from typing import Any

import click
import httpx

from .config import RelayConfig
from .errors import RelayError, ValidationError

logger = logging.getLogger(__name__)


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@click.group()
@click.option("--log-level", default=None, help="Logging level (default: HOST_RELAY_LOG_LEVEL or INFO)")
@click.pass_context
def main(ctx: click.Context, log_level: str | None) -> None:
    """host-relay - relay commands from automation clients to a host runtime."""
    try:
        config = RelayConfig.from_env()
    except ValidationError as e:
        raise click.UsageError(str(e)) from e

    if log_level:
        config.log_level = log_level.upper()
    _configure_logging(config.log_level)
    ctx.obj = config


@main.command()
@click.option("--host", default=None, help="Host to bind to")
@click.option("--port", default=None, type=int, help="Port to bind to")
@click.option("--reload", is_flag=True, help="Enable auto-reload for development")
@click.pass_obj
def serve(config: RelayConfig, host: str | None, port: int | None, reload: bool) -> None:
    """Run the relay server."""
    import uvicorn

    host = host or config.host
    port = port or config.port
    click.echo(f"Starting relay on ws://{host}:{port}/ws", err=True)
    click.echo("Press Ctrl+C to stop", err=True)

    uvicorn.run(
        "host_relay.app:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_level=config.log_level.lower(),
    )


@main.command()
@click.option("--url", default=None, help="Relay websocket URL")
@click.option("--channel", "channel_id", default=None, help="Channel to serve")
@click.option("--document", "document_path", type=click.Path(exists=True), help="JSON document to serve")
@click.option("--commands", "commands_path", type=click.Path(exists=True), help="YAML file of extra commands")
@click.option("--commands-module", help="Python module with a setup_commands(registry) hook")
@click.option("--chunk-size", type=int, default=None, help="Default chunk size")
@click.option("--highlight", is_flag=True, help="Highlight nodes while scanning")
@click.option("--reconnect/--no-reconnect", default=None, help="Reconnect when the relay drops")
@click.pass_obj
def host(
    config: RelayConfig,
    url: str | None,
    channel_id: str | None,
    document_path: str | None,
    commands_path: str | None,
    commands_module: str | None,
    chunk_size: int | None,
    highlight: bool,
    reconnect: bool | None,
) -> None:
    """Run a host runtime serving commands on a channel."""
    from .host import Document, HostRuntime, HostSession, HostSettings, default_registry
    from .host.loader import load_commands_file, load_commands_module
    from .transport import ClientTransportConfig, WebSocketClientTransport

    channel_id = _require_channel(channel_id, config)
    registry = default_registry()
    try:
        if commands_path:
            names = load_commands_file(commands_path, registry)
            click.echo(f"Loaded {len(names)} command(s) from {commands_path}", err=True)
        if commands_module:
            load_commands_module(commands_module, registry)
        document = Document.load(document_path) if document_path else Document.empty()
    except (RelayError, ImportError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    settings = HostSettings(
        chunk_size=chunk_size or config.chunk_size,
        chunk_delay=config.chunk_delay,
        highlight=highlight,
    )
    transport = WebSocketClientTransport(
        ClientTransportConfig(
            url=url or config.ws_url,
            auto_reconnect=config.auto_reconnect if reconnect is None else reconnect,
            reconnect_delay=config.reconnect_delay,
            max_reconnect_delay=config.max_reconnect_delay,
        )
    )
    runtime = HostRuntime(transport, registry, HostSession(settings=settings, document=document))

    click.echo(f"Serving {len(registry)} command(s) on channel {channel_id}", err=True)
    try:
        asyncio.run(runtime.run_forever(channel_id))
    except KeyboardInterrupt:
        click.echo("\nShutting down", err=True)
    except RelayError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


@main.command()
@click.argument("command_name")
@click.option("--url", default=None, help="Relay websocket URL")
@click.option("--channel", "channel_id", default=None, help="Channel the host serves")
@click.option("--params", "params_json", default="{}", help="Command parameters as a JSON object")
@click.option("--timeout", type=float, default=None, help="Seconds to wait for the response")
@click.option("--retries", type=int, default=1, help="Attempts in total (requires --idempotent when > 1)")
@click.option("--idempotent", is_flag=True, help="Declare the command safe to repeat")
@click.option("--extend-on-progress", is_flag=True, help="Restart the timeout on every progress event")
@click.pass_obj
def call(
    config: RelayConfig,
    command_name: str,
    url: str | None,
    channel_id: str | None,
    params_json: str,
    timeout: float | None,
    retries: int,
    idempotent: bool,
    extend_on_progress: bool,
) -> None:
    """Invoke COMMAND_NAME on the host and print its JSON result."""
    from .protocol import ProgressEvent
    from .sdk import connect_websocket, with_retry

    channel_id = _require_channel(channel_id, config)
    try:
        params = json.loads(params_json)
    except json.JSONDecodeError as e:
        raise click.BadParameter(f"not valid JSON: {e.msg}", param_hint="--params") from e
    if not isinstance(params, dict):
        raise click.BadParameter("must be a JSON object", param_hint="--params")
    if retries > 1 and not idempotent:
        raise click.UsageError("--retries above 1 requires --idempotent")

    def show_progress(event: ProgressEvent) -> None:
        click.echo(f"[{event.progress:3d}%] {event.status.value}: {event.message}", err=True)

    async def run() -> Any:
        client = connect_websocket(
            url or config.ws_url,
            channel_id,
            default_timeout=config.default_timeout,
            extend_on_progress=extend_on_progress,
        )
        async with client:
            async def once() -> Any:
                return await client.invoke(command_name, params, timeout=timeout, on_progress=show_progress)

            if retries > 1:
                return await with_retry(once, retries, idempotent=True)
            return await once()

    try:
        result = asyncio.run(run())
    except RelayError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo(json.dumps(result, indent=2))


@main.command("commands")
def list_commands() -> None:
    """Describe the bundled host commands as JSON."""
    from .host import default_registry

    click.echo(json.dumps(default_registry().describe(), indent=2))


@main.command()
@click.option("--url", default=None, help="Relay base URL")
@click.pass_obj
def health(config: RelayConfig, url: str | None) -> None:
    """Check relay health."""
    url = url or config.http_url

    async def check() -> None:
        try:
            async with httpx.AsyncClient() as client:
                response = await client.get(f"{url}/health")
                if response.status_code == 200:
                    data = response.json()
                    click.echo(f"Relay is healthy: {data}")
                else:
                    click.echo(f"Relay returned {response.status_code}", err=True)
                    sys.exit(1)
        except httpx.ConnectError:
            click.echo(f"Cannot connect to relay at {url}", err=True)
            sys.exit(1)

    asyncio.run(check())


def _require_channel(channel_id: str | None, config: RelayConfig) -> str:
    channel_id = channel_id or config.channel_id
    if not channel_id:
        raise click.UsageError("a channel is required (--channel or HOST_RELAY_CHANNEL)")
    return channel_id


if __name__ == "__main__":
    main()
