"""FastAPI server for the Polaris gateway.

This module builds the HTTP side of the gateway:
- GET /message, /broadcast, /redirect and / (notify) routed to GatewayHandlers
- GET /health for liveness and GET /ready for WebSocket session readiness
- A lifespan that starts the SessionManager on startup and stops it on shutdown

Example:
    >>> from polaris_rest.transport.server import create_app
    >>> app = create_app(settings)
    >>>
    >>> # Run with: uvicorn --factory polaris_rest.transport.server:create_app --port 3000
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response

from polaris_rest import __version__
from polaris_rest.config import GatewaySettings
from polaris_rest.models.enums import SessionState
from polaris_rest.observability import get_logger, is_debug_mode
from polaris_rest.transport.handlers import GatewayHandlers
from polaris_rest.transport.session import SessionManager

logger = get_logger(__name__)

__all__ = ["create_app"]


def create_app(
    settings: GatewaySettings | None = None,
    session_manager: SessionManager | None = None,
) -> FastAPI:
    """Create the gateway FastAPI application.

    Args:
        settings: Resolved settings; read from the environment when omitted.
        session_manager: Session manager to serve through; built from
            ``settings`` when omitted.

    Returns:
        FastAPI app whose lifespan owns the session manager.

    Raises:
        ConfigurationError: If settings are read from an invalid environment.
    """
    if settings is None:
        settings = GatewaySettings.from_env()
    if session_manager is None:
        session_manager = SessionManager.from_settings(settings)

    handlers = GatewayHandlers(session_manager, settings)

    @asynccontextmanager
    async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info(
            "polaris.server.starting",
            platform=settings.platform,
            server_url=session_manager.url,
        )
        await session_manager.start()
        try:
            yield
        finally:
            await session_manager.stop()
            logger.info("polaris.server.stopped")

    # Swagger UI (/docs) and ReDoc (/redoc) only when POLARIS_DEBUG=true
    _docs_url = "/docs" if is_debug_mode() else None
    _redoc_url = "/redoc" if is_debug_mode() else None
    _openapi_url = "/openapi.json" if is_debug_mode() else None

    app = FastAPI(
        title="Polaris REST Gateway",
        description=f"HTTP gateway to the Polaris platform ({settings.platform})",
        version=__version__,
        docs_url=_docs_url,
        redoc_url=_redoc_url,
        openapi_url=_openapi_url,
        lifespan=_lifespan,
    )
    app.state.settings = settings
    app.state.session_manager = session_manager
    app.state.handlers = handlers

    @app.get("/health")
    async def health() -> JSONResponse:
        """Liveness check: always OK if the process is running."""
        return JSONResponse(status_code=200, content={"status": "ok"})

    @app.get("/ready")
    async def ready() -> JSONResponse:
        """Readiness check: OK only while the WebSocket session is open.

        Returns:
            200 with the session state when open, 503 otherwise
        """
        state = session_manager.state
        if state is SessionState.OPEN:
            return JSONResponse(status_code=200, content={"status": "ok", "session": state.value})
        return JSONResponse(
            status_code=503,
            content={"status": "unavailable", "session": state.value},
        )

    @app.get("/message")
    async def message(request: Request) -> Response:
        return await handlers.message(request.query_params)

    @app.get("/broadcast")
    async def broadcast(request: Request) -> Response:
        return await handlers.broadcast(request.query_params)

    @app.get("/redirect")
    async def redirect(request: Request) -> Response:
        return await handlers.redirect(request.query_params)

    @app.get("/")
    async def notify(request: Request) -> Response:
        return await handlers.notify(request.query_params)

    return app
