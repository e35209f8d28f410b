"""Schemas for administrative batch operations."""

from __future__ import annotations

from pydantic import BaseModel, Field


class ProvisionRequest(BaseModel):
    health_region_id: str | None = None


class HospitalProvisionRequest(BaseModel):
    province_id: str | None = None


class ProvincialProvisionRequest(BaseModel):
    health_region_id: str


class SupervisorCreateRequest(BaseModel):
    email: str = Field(..., pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    password: str = Field(..., min_length=1)
    full_name: str | None = None


class ProvisionResult(BaseModel):
    unit_code: str
    unit_name: str
    email: str
    status: str
    message: str


class ProvisionResponse(BaseModel):
    success: bool = True
    total_units: int
    results: list[ProvisionResult]
