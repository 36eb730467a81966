"""
FastAPI application factory for the Figma for Jira app server.

Uses lifespan handler for startup/shutdown with async resource management.
"""

import uuid
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request

from figma_for_jira.api.container import build_container, create_http_client
from figma_for_jira.api.errors import register_exception_handlers
from figma_for_jira.config import settings
from figma_for_jira.db.session import close_db, init_db
from figma_for_jira.logging_config import configure_logging, get_logger

from .health import router as health_router

logger = get_logger(__name__)

VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Application lifespan handler for startup and shutdown."""
    # Startup
    configure_logging(json_logs=settings.json_logs, log_level=settings.log_level)
    logger.info("Starting Figma for Jira app server", version=VERSION, base_url=settings.app.base_url)

    await init_db()
    logger.info("Database initialized")

    http = create_http_client(settings)
    # Tests install their own container before the app starts.
    if getattr(app.state, "container", None) is None:
        app.state.container = build_container(settings, http)
    logger.info("Components initialized")

    yield

    # Shutdown
    logger.info("Shutting down Figma for Jira app server")
    await http.aclose()
    await close_db()


def create_application() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Figma for Jira",
        description="Atlassian Connect app linking Figma designs to Jira issues",
        version=VERSION,
        lifespan=lifespan,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
    )
    app.state.container = None

    # Request ID middleware
    @app.middleware("http")
    async def add_request_id(request: Request, call_next):  # type: ignore[no-untyped-def]
        """Ensure every request has a request ID for logging correlation."""
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        structlog.contextvars.bind_contextvars(request_id=request_id)

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        structlog.contextvars.unbind_contextvars("request_id")

        return response

    register_exception_handlers(app)

    # Health endpoints (no prefix)
    app.include_router(health_router)

    # Connect lifecycle callbacks
    from figma_for_jira.api.routers.lifecycle import router as lifecycle_router

    app.include_router(lifecycle_router)

    # Per-user Figma authorization
    from figma_for_jira.api.routers.auth import router as auth_router

    app.include_router(auth_router)

    # Design association
    from figma_for_jira.api.routers.entities import router as entities_router

    app.include_router(entities_router)

    # Figma team configuration
    from figma_for_jira.api.routers.teams import router as teams_router

    app.include_router(teams_router)

    # Admin page
    from figma_for_jira.api.routers.admin import router as admin_router

    app.include_router(admin_router)

    # Figma webhooks and OAuth2 callback
    from figma_for_jira.api.routers.figma import router as figma_router

    app.include_router(figma_router)

    return app


app = create_application()
