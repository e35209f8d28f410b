"""Schemas for health check endpoints."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel


class ServiceHealth(BaseModel):
    """Outcome of one named check."""

    service: str
    status: Literal["healthy", "unhealthy"]
    latency_ms: float | None = None
    details: str | None = None


class HealthResponse(BaseModel):
    """Overall portal health, with reference table sizes on readiness checks."""

    status: Literal["healthy", "degraded", "unhealthy"]
    version: str
    environment: str
    services: list[ServiceHealth]
    reference_data: dict[str, int] | None = None
