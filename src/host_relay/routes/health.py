"""Health check endpoint."""

from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route


async def health_check(request: Request) -> JSONResponse:
    """Health check endpoint.

    Reports the number of channels that currently have members.
    """
    hub = request.app.state.hub
    return JSONResponse({"status": "ok", "channels": hub.registry.channel_count})


health_routes = [
    Route("/health", health_check, methods=["GET"]),
]
