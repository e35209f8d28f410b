"""Schemas for reporting and report access policy endpoints."""

from __future__ import annotations

from pydantic import BaseModel, Field

DRILL_PATTERN = r"^(all|own_region|own_province|none)$"


class AreaSummary(BaseModel):
    """Roll-up of the latest assessments in one region or province."""

    id: str
    name: str
    unit_count: int
    assessed_count: int
    approved_count: int
    average_score: float | None = None
    can_drill: bool = True


class RegionOverviewResponse(BaseModel):
    report_type: str
    regions: list[AreaSummary]


class ProvinceBreakdownResponse(BaseModel):
    health_region_id: str
    provinces: list[AreaSummary]


class HospitalRow(BaseModel):
    hospital_id: str
    code: str
    name: str
    assessment_id: str | None = None
    fiscal_year: int | None = None
    status: str | None = None
    quantitative_score: float | None = None
    qualitative_score: float | None = None
    impact_score: float | None = None
    total_score: float | None = None


class HospitalBreakdownResponse(BaseModel):
    province_id: str
    hospitals: list[HospitalRow]


class ReportPolicyRequest(BaseModel):
    role: str
    report_type: str = Field(..., pattern=r"^(overview|quantitative|impact)$")
    view_region: bool = True
    drill_to_province: str = Field(default="all", pattern=DRILL_PATTERN)
    drill_to_hospital: str = Field(default="all", pattern=DRILL_PATTERN)
    view_same_province_hospitals: bool = False


class ReportPolicyResponse(ReportPolicyRequest):
    id: str
