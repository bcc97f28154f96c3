"""FastAPI application factory.

Creates the app with logging middleware, CORS, the TatApiError handler,
lifespan events that build and close the service container, and the v1
API router.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from collections.abc import AsyncGenerator

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.tat_api.api.middleware.logging import LoggingMiddleware, configure_structlog
from src.tat_api.api.v1.router import router as v1_router
from src.tat_api.config import get_settings
from src.tat_api.container import ServiceContainer
from src.tat_api.errors import ExpectedBusinessError, TatApiError

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Build the service container on startup unless one was injected."""
    configure_structlog()
    owns_container = getattr(app.state, "container", None) is None
    if owns_container:
        app.state.container = ServiceContainer.build(get_settings())
    logger.info("app.started")

    yield

    if owns_container:
        await app.state.container.aclose()
    logger.info("app.stopped")


async def handle_tat_api_error(request: Request, exc: TatApiError) -> JSONResponse:
    """Render a TatApiError as ``{"message", "errorCode"?}`` with its status."""
    if isinstance(exc, ExpectedBusinessError):
        logger.info("request.expected_error", path=request.url.path, error_code=exc.error_code)
    else:
        logger.error(
            "request.failed",
            path=request.url.path,
            status_code=exc.status_code,
            error=exc.message,
            error_type=type(exc).__name__,
        )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def create_app(container: ServiceContainer | None = None) -> FastAPI:
    """Create the FastAPI application.

    Args:
        container: Pre-built services, used by tests; built from settings otherwise.
    """
    settings = get_settings()

    app = FastAPI(
        title="TAT App API",
        description="Salesforce-backed API for the TAT volunteer app",
        version="0.1.0",
        lifespan=lifespan,
    )
    if container is not None:
        app.state.container = container

    app.add_middleware(LoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[origin.strip() for origin in settings.CORS_ALLOWED_ORIGINS.split(",")],
        allow_methods=["GET", "POST", "HEAD", "OPTIONS"],
        allow_headers=["*"],
    )
    app.add_exception_handler(TatApiError, handle_tat_api_error)
    app.include_router(v1_router, prefix="/api/v1")

    return app
