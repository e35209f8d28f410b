"""Schemas for assessment and approval workflow endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class AssessmentCreateRequest(BaseModel):
    fiscal_year: int = Field(..., ge=2000, le=2200, description="Gregorian fiscal year")
    assessment_period: str = Field(default="1", min_length=1, max_length=20)


class AssessmentResponse(BaseModel):
    """An assessment with its stamps and the caller's allowed actions."""

    id: str
    hospital_id: str | None = None
    health_office_id: str | None = None
    province_id: str | None = None
    health_region_id: str | None = None
    fiscal_year: int
    fiscal_year_be: int
    assessment_period: str
    status: str
    quantitative_score: float
    qualitative_score: float
    impact_score: float
    total_score: float
    submitted_by: str | None = None
    submitted_at: datetime | None = None
    quantitative_approved_by: str | None = None
    quantitative_approved_at: datetime | None = None
    qualitative_approved_by: str | None = None
    qualitative_approved_at: datetime | None = None
    impact_approved_by: str | None = None
    impact_approved_at: datetime | None = None
    provincial_approved_by: str | None = None
    provincial_approved_at: datetime | None = None
    provincial_comment: str | None = None
    regional_approved_by: str | None = None
    regional_approved_at: datetime | None = None
    regional_comment: str | None = None
    version: int
    created_at: datetime
    updated_at: datetime
    allowed_actions: list[str] = []


class SectionActionRequest(BaseModel):
    """Comment and optional optimistic-lock version for a section action."""

    comment: str | None = None
    expected_version: int | None = None


class TransitionResponse(BaseModel):
    action: str
    from_status: str
    to_status: str
    status_changed: bool
    assessment: AssessmentResponse


class QualitativeRequest(BaseModel):
    has_ciso: bool = False
    has_dpo: bool = False
    has_it_security_team: bool = False
    annual_training_count: int = 0
    uses_opensource: bool = False
    uses_freeware: bool = False
    comment: str | None = None


class QualitativeResponse(QualitativeRequest):
    id: str
    assessment_id: str
    leadership_score: float
    sustainable_score: float
    total_score: float
    updated_at: datetime


class ImpactRequest(BaseModel):
    had_incident: bool = False
    incident_recovery_hours: float = 0
    had_data_breach: bool = False
    breach_severity: str = "none"
    comment: str | None = None


class ImpactResponse(ImpactRequest):
    id: str
    assessment_id: str
    incident_score: float
    breach_score: float
    total_score: float
    updated_at: datetime


class ItemRequest(BaseModel):
    status: str = Field(..., description="'pass', 'fail', 'partial' or 'not_applicable'")
    description: str | None = None


class ItemResponse(BaseModel):
    id: str
    assessment_id: str
    category_id: str
    status: str
    score: float
    description: str | None = None


class HistoryEntry(BaseModel):
    id: str
    assessment_id: str
    from_status: str
    to_status: str
    action: str
    performed_by: str
    comment: str | None = None
    created_at: datetime
