# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Starlette ASGI application for the searchwire HTTP MCP server.

The MCP endpoint uses the SDK's streamable HTTP session manager, so
elicitation and progress notifications work the same as over stdio.
"""

from __future__ import annotations

import logging
from contextlib import AsyncExitStack, asynccontextmanager
from typing import Any

from mcp.server.streamable_http_manager import StreamableHTTPSessionManager
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route
from starlette.types import Receive, Scope, Send

from .. import __version__
from ..core.config import SearchwireSettings, get_config
from ..core.health import run_health_check
from ..core.logging import configure_logging
from ..mcp_server import create_server, open_executor
from ..pipeline.executor import ToolExecutor

logger = logging.getLogger(__name__)


class MCPEndpoint:
    """ASGI app handing requests to the session manager started by the lifespan."""

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        manager: StreamableHTTPSessionManager = scope["app"].state.session_manager
        await manager.handle_request(scope, receive, send)


async def health_endpoint(request: Request) -> JSONResponse:
    """Health check endpoint."""
    settings: SearchwireSettings = request.app.state.settings
    executor: ToolExecutor = request.app.state.executor
    status = await run_health_check(settings, client=executor.client)

    health_data: dict[str, Any] = {
        "status": "healthy" if status.healthy else "degraded",
        "server": settings.server_name,
        "version": __version__,
        **status.to_dict(),
    }
    return JSONResponse(health_data, status_code=200 if status.healthy else 503)


def create_app(settings: SearchwireSettings | None = None, executor: ToolExecutor | None = None) -> Starlette:
    """Create the Starlette ASGI application.

    Args:
        settings: Settings; the global config when None.
        executor: Prebuilt executor. When None the lifespan builds one and
            closes its upstream clients on shutdown.
    """
    settings = settings or get_config()

    @asynccontextmanager
    async def lifespan(app: Starlette):
        """Application lifespan handler."""
        logger.info(f"Starting searchwire MCP server on {settings.host}:{settings.port}")
        async with AsyncExitStack() as stack:
            active = executor or await stack.enter_async_context(open_executor(settings))
            manager = StreamableHTTPSessionManager(app=create_server(active, settings))
            app.state.executor = active
            app.state.session_manager = manager
            await stack.enter_async_context(manager.run())
            yield
        logger.info("searchwire MCP server shutting down")

    routes = [
        Route("/health", health_endpoint, methods=["GET"]),
        Route("/mcp", MCPEndpoint()),
    ]

    middleware = [
        Middleware(
            CORSMiddleware,
            allow_origins=settings.allowed_origins,
            allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
            allow_headers=["Content-Type", "Mcp-Session-Id", "Mcp-Protocol-Version", "Last-Event-ID"],
            expose_headers=["Mcp-Session-Id"],
        ),
    ]

    app = Starlette(routes=routes, middleware=middleware, lifespan=lifespan)
    app.state.settings = settings
    return app


# Global app instance for uvicorn
app = create_app()


def run() -> None:
    """Run the server using uvicorn."""
    import uvicorn

    settings = get_config()
    configure_logging(settings)

    logger.info(f"Starting searchwire HTTP MCP server on {settings.host}:{settings.port}")

    uvicorn.run(
        "searchwire.server.app:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
