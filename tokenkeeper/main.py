"""
FastAPI application entrypoint for the token keeper service.

The lifespan builds the service container, runs an initial health check so
operators see the current state immediately, and keeps the refresh scheduler
running for as long as the application is up.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from http import HTTPStatus
from typing import AsyncIterator, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from tokenkeeper.api.routes import router as api_router
from tokenkeeper.core.config import AppSettings, get_settings
from tokenkeeper.core.errors import ConfigurationError, NotConfiguredError
from tokenkeeper.core.logging import configure_logging
from tokenkeeper.dependencies import ServiceContainer, build_container

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[AppSettings] = None,
    *,
    container: Optional[ServiceContainer] = None,
) -> FastAPI:
    """Factory for the FastAPI application."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if getattr(app.state, "container", None) is None:
            resolved = settings or get_settings()
            configure_logging(resolved.log_level)
            resolved.validate_runtime()
            app.state.container = build_container(resolved)

        scheduler = app.state.container.scheduler
        await scheduler.run_health_check_once()
        scheduler.start_all()
        logger.info("Token keeper service is running")
        try:
            yield
        finally:
            logger.info("Shutting down token keeper service")
            await scheduler.shutdown()

    app = FastAPI(
        title="Token Keeper",
        version="0.1.0",
        description="Keeps a single OAuth2 credential set refreshed and encrypted at rest.",
        lifespan=lifespan,
    )
    app.state.container = container
    app.include_router(api_router, prefix="/api")

    @app.exception_handler(ConfigurationError)
    async def _configuration_error_handler(
        request: Request, exc: ConfigurationError
    ) -> JSONResponse:
        logger.error("Configuration error handling %s: %s", request.url.path, exc)
        return JSONResponse(
            status_code=HTTPStatus.INTERNAL_SERVER_ERROR,
            content={"detail": f"Service misconfigured: {exc}"},
        )

    @app.exception_handler(NotConfiguredError)
    async def _not_configured_handler(
        request: Request, exc: NotConfiguredError
    ) -> JSONResponse:
        return JSONResponse(status_code=HTTPStatus.NOT_FOUND, content={"detail": str(exc)})

    return app


app = create_app()

__all__ = ["app", "create_app"]
