"""Relay server application.

Creates the Starlette ASGI application with all routes.

Routes:
- /health - Health check with channel count
- /ws - WebSocket relay endpoint for automation clients and host runtimes
"""

from __future__ import annotations

from starlette.applications import Starlette
from starlette.routing import BaseRoute

from .relay import RelayHub
from .routes import health_routes, websocket_routes


def create_app(hub: RelayHub | None = None) -> Starlette:
    """Create the relay application.

    Args:
        hub: Relay hub to serve; a fresh one is created when omitted

    Returns:
        Configured Starlette application
    """
    routes: list[BaseRoute] = []
    routes.extend(health_routes)
    routes.extend(websocket_routes)

    app = Starlette(routes=routes)
    app.state.hub = hub or RelayHub()
    return app
