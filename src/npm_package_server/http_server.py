# SPDX-License-Identifier: GPL-3.0-only OR MIT
"""
HTTP Server for MCP.

Serves the streamable HTTP transport on /mcp, the SSE transport on /sse and
/messages for older clients, and a /health check. When AUTH_TOKEN is set,
every route requires a bearer token.
"""

import contextlib
import json
import logging
import secrets
from typing import Any, Optional

import uvicorn
from mcp.server.sse import SseServerTransport
from mcp.server.streamable_http_manager import StreamableHTTPSessionManager
from starlette.applications import Starlette
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Mount, Route

from . import __version__
from .config import ServerConfig, get_config
from .server import server

logger = logging.getLogger(__name__)

SERVICE_NAME = "npm-package-mcp-server"


def is_auth_valid(auth_header: Optional[str], auth_token: Optional[str]) -> bool:
    """
    Check an Authorization header against the configured token.

    Accepts both "Bearer TOKEN" and a bare "TOKEN". Always valid when no
    token is configured.
    """
    if not auth_token:
        return True
    if not auth_header:
        return False

    token = auth_header[len("Bearer "):] if auth_header.startswith("Bearer ") else auth_header
    return secrets.compare_digest(token.encode("utf-8"), auth_token.encode("utf-8"))


class BearerAuthMiddleware:
    """Raw ASGI middleware rejecting HTTP requests without a valid token."""

    def __init__(self, app: Any, auth_token: Optional[str]):
        self.app = app
        self.auth_token = auth_token

    async def __call__(self, scope: dict, receive: Any, send: Any) -> None:
        if scope["type"] != "http" or not self.auth_token:
            await self.app(scope, receive, send)
            return

        headers = dict(scope.get("headers") or [])
        auth_header = headers.get(b"authorization")
        if auth_header is not None:
            auth_header = auth_header.decode("latin-1")

        if not is_auth_valid(auth_header, self.auth_token):
            logger.warning(f"Rejected unauthenticated request: {scope.get('method')} {scope.get('path')}")
            await send({
                "type": "http.response.start",
                "status": 401,
                "headers": [[b"content-type", b"application/json"]],
            })
            await send({
                "type": "http.response.body",
                "body": json.dumps(
                    {"error": "Unauthorized: Invalid or missing authentication token"}
                ).encode("utf-8"),
            })
            return

        await self.app(scope, receive, send)


class StreamableHTTPEndpoint:
    """ASGI app forwarding /mcp requests to the streamable HTTP session manager."""

    def __init__(self, session_manager: StreamableHTTPSessionManager):
        self.session_manager = session_manager

    async def __call__(self, scope: dict, receive: Any, send: Any) -> None:
        try:
            await self.session_manager.handle_request(scope, receive, send)
        except Exception as e:
            logger.error(f"Error handling MCP request: {e}", exc_info=True)
            raise


async def handle_health(request: Request) -> JSONResponse:
    """Liveness check."""
    return JSONResponse({
        "status": "healthy",
        "service": SERVICE_NAME,
        "version": __version__,
    })


def create_app(config: Optional[ServerConfig] = None) -> Starlette:
    """
    Create Starlette application with MCP endpoints.

    Args:
        config: Server configuration (defaults to the process config)

    Returns:
        Starlette application instance
    """
    config = config or get_config()

    session_manager = StreamableHTTPSessionManager(app=server)
    sse = SseServerTransport("/messages/")

    async def handle_sse(request: Request) -> Response:
        logger.info("New SSE connection established")
        async with sse.connect_sse(request.scope, request.receive, request._send) as streams:
            await server.run(
                streams[0],
                streams[1],
                server.create_initialization_options()
            )
        return Response()

    @contextlib.asynccontextmanager
    async def lifespan(app: Starlette):
        async with session_manager.run():
            logger.info("MCP streamable HTTP session manager started")
            yield

    # - /mcp: streamable HTTP (GET/POST/DELETE)
    # - /sse and /messages/: SSE transport for older clients
    routes = [
        Route("/health", endpoint=handle_health, methods=["GET"]),
        Route("/mcp", endpoint=StreamableHTTPEndpoint(session_manager)),
        Route("/sse", endpoint=handle_sse, methods=["GET"]),
        Mount("/messages/", app=sse.handle_post_message),
    ]

    app = Starlette(
        debug=False,
        routes=routes,
        lifespan=lifespan,
    )

    # Middleware added last runs first: CORS answers preflight before auth
    app.add_middleware(BearerAuthMiddleware, auth_token=config.auth_token)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "Mcp-Session-Id"],
        expose_headers=["Mcp-Session-Id"],
    )

    logger.info("MCP HTTP Server initialized")
    logger.info("Endpoints: /mcp (streamable HTTP), GET /sse, POST /messages/, GET /health")
    if config.auth_token:
        logger.info("Bearer token authentication enabled")

    return app


async def run_http_server(config: Optional[ServerConfig] = None) -> None:
    """
    Run MCP server with HTTP transport.

    Args:
        config: Server configuration (host, port, auth token)
    """
    config = config or get_config()

    logger.info(f"Starting NPM Package MCP server in HTTP mode on {config.host}:{config.port}")
    logger.info(f"MCP endpoint: http://localhost:{config.port}/mcp")
    logger.info(f"Health check: http://localhost:{config.port}/health")

    app = create_app(config)

    uvicorn_config = uvicorn.Config(
        app=app,
        host=config.host,
        port=config.port,
        log_level=config.log_level.lower(),
        access_log=True,
    )

    server_instance = uvicorn.Server(uvicorn_config)
    await server_instance.serve()
