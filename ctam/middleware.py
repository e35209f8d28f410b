"""Application middleware: rate limiting, CORS, logging, errors, shutdown."""

from __future__ import annotations

import logging
import signal
import sys
import time
import uuid
from contextlib import asynccontextmanager
from typing import Any

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address

from ctam.config import Settings
from ctam.errors import (
    ConcurrentModification,
    NotAuthorized,
    NotFound,
    PortalError,
    TransitionRejected,
    ValidationFailed,
)
from ctam.store import data_store

logger = structlog.get_logger()

ERROR_STATUS_CODES: dict[type[PortalError], int] = {
    ValidationFailed: 422,
    NotAuthorized: 403,
    NotFound: 404,
    TransitionRejected: 409,
    ConcurrentModification: 409,
}


def get_limiter(settings: Settings) -> Limiter:
    """Per-client limiter applying the default limit to every route."""
    return Limiter(key_func=get_remote_address, default_limits=[settings.rate_limit_default])


def configure_cors(app: FastAPI, settings: Settings) -> None:
    """Add CORS middleware to the application."""
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins_list,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "X-RateLimit-Remaining"],
    )


def configure_rate_limiting(app: FastAPI, settings: Settings) -> None:
    """Apply the default rate limit to every route."""
    limiter = get_limiter(settings)
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)


async def portal_error_handler(request: Request, exc: PortalError) -> JSONResponse:
    """Translate domain errors into JSON error responses."""
    status_code = next((ERROR_STATUS_CODES[t] for t in type(exc).__mro__ if t in ERROR_STATUS_CODES), 400)
    logger.info(
        "request_rejected",
        path=request.url.path,
        error=type(exc).__name__,
        status_code=status_code,
    )
    return JSONResponse(status_code=status_code, content={"detail": exc.message})


def configure_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(PortalError, portal_error_handler)


async def logging_middleware(request: Request, call_next) -> Response:
    """Bind a request id for the duration of the request and log its outcome.

    The id is taken from an incoming ``X-Request-ID`` header when present so
    a portal client retry can be traced across attempts.
    """
    request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(request_id=request_id)

    started = time.monotonic()
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id

    logger.info(
        "http_request",
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
        duration_ms=round((time.monotonic() - started) * 1000, 2),
        client_ip=request.client.host if request.client else "unknown",
    )
    return response


def configure_structured_logging(settings: Settings) -> None:
    """Route structlog through stdlib logging at ``log_level``, rendered as JSON or console text."""
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=settings.log_level.upper(), force=True)

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if settings.log_format == "json":
        processors.append(structlog.processors.JSONRenderer(ensure_ascii=False))
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


_shutdown_requested = False


def is_shutdown_requested() -> bool:
    """Check if graceful shutdown has been requested."""
    return _shutdown_requested


def _request_shutdown(signum, frame) -> None:
    global _shutdown_requested
    _shutdown_requested = True
    logger.info("shutdown_signal_received", signal=signum)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup logging and graceful shutdown on SIGTERM or SIGINT."""
    global _shutdown_requested

    settings = app.state.settings
    configure_structured_logging(settings)
    logger.info(
        "application_starting",
        version=settings.app_version,
        environment=settings.environment,
        health_regions=len(data_store.health_regions),
        categories=len(data_store.categories),
    )
    if not data_store.categories:
        logger.warning("reference_data_missing", detail="quantitative scores stay at zero until categories load")

    signal.signal(signal.SIGTERM, _request_shutdown)
    signal.signal(signal.SIGINT, _request_shutdown)

    yield

    logger.info("application_shutting_down", open_sessions=len(data_store.sessions))
    _shutdown_requested = True
