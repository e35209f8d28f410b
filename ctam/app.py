"""CTAM+ Assessment Portal: FastAPI application factory."""

from __future__ import annotations

from fastapi import FastAPI

from ctam.config import Settings, get_settings
from ctam.middleware import (
    configure_cors,
    configure_error_handlers,
    configure_rate_limiting,
    lifespan,
    logging_middleware,
)
from ctam.routers import admin, assessments, auth, health, reference, reports


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    if settings is None:
        settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Hospital cybersecurity self-assessment and multi-level approval portal",
        version=settings.app_version,
        debug=settings.debug,
        lifespan=lifespan,
    )

    # Store settings on app state
    app.state.settings = settings

    # Middleware
    app.middleware("http")(logging_middleware)
    configure_rate_limiting(app, settings)
    configure_cors(app, settings)
    configure_error_handlers(app)

    # Routers; health checks stay unprefixed for the orchestrator
    app.include_router(health.router)
    for module in (auth, reference, assessments, reports, admin):
        app.include_router(module.router, prefix=settings.api_prefix)

    return app


# Default app instance for uvicorn
app = create_app()
