"""Health check endpoints for production monitoring."""

from __future__ import annotations

import time

from fastapi import APIRouter, Request

from ctam.schemas.health import HealthResponse, ServiceHealth
from ctam.store import data_store

router = APIRouter(tags=["health"])


async def _check_service(name: str, check_fn) -> ServiceHealth:
    """Time ``check_fn``; any exception marks the service unhealthy."""
    start = time.monotonic()
    try:
        await check_fn()
    except Exception as exc:
        status, details = "unhealthy", str(exc)[:200]
    else:
        status, details = "healthy", None
    latency = round((time.monotonic() - start) * 1000, 2)
    return ServiceHealth(service=name, status=status, latency_ms=latency, details=details)


async def _check_app() -> None:
    """The process answered; nothing else to verify."""


async def _check_reference_data() -> None:
    """Assessments cannot be scored until the CTAM+ categories are loaded."""
    if not data_store.categories:
        raise RuntimeError("CTAM+ categories not loaded")
    if not data_store.health_regions:
        raise RuntimeError("Health regions not loaded")


def _reference_counts() -> dict[str, int]:
    return {
        "health_regions": len(data_store.health_regions),
        "provinces": len(data_store.provinces),
        "hospitals": len(data_store.hospitals),
        "health_offices": len(data_store.health_offices),
        "categories": len(data_store.categories),
    }


def _response(
    request: Request,
    services: list[ServiceHealth],
    failed_status: str,
    reference_data: dict[str, int] | None = None,
) -> HealthResponse:
    settings = request.app.state.settings
    overall = "healthy" if all(s.status == "healthy" for s in services) else failed_status
    return HealthResponse(
        status=overall,
        version=settings.app_version,
        environment=settings.environment,
        services=services,
        reference_data=reference_data,
    )


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request) -> HealthResponse:
    """Is the API answering at all?"""
    return _response(request, [await _check_service("app", _check_app)], "degraded")


@router.get("/health/ready", response_model=HealthResponse)
async def readiness_check(request: Request) -> HealthResponse:
    """Ready once the reference data needed for scoring and reports is loaded."""
    services = [
        await _check_service("app", _check_app),
        await _check_service("reference_data", _check_reference_data),
    ]
    return _response(request, services, "unhealthy", _reference_counts())


@router.get("/health/live")
async def liveness_check() -> dict[str, str]:
    return {"status": "alive"}
