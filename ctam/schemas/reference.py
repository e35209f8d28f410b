"""Schemas for organisational reference data."""

from __future__ import annotations

from pydantic import BaseModel


class HealthRegionResponse(BaseModel):
    id: str
    name: str
    region_number: int


class ProvinceResponse(BaseModel):
    id: str
    name: str
    code: str | None = None
    health_region_id: str


class HospitalResponse(BaseModel):
    id: str
    name: str
    code: str
    hospital_type: str | None = None
    province_id: str


class HealthOfficeResponse(BaseModel):
    """Provincial or regional health office; regional offices have no province."""

    id: str
    name: str
    code: str
    office_type: str | None = None
    province_id: str | None = None
    health_region_id: str


class CategoryResponse(BaseModel):
    id: str
    code: str
    name_th: str
    name_en: str | None = None
    description: str | None = None
    order_number: int
