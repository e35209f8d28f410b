"""Assessment models: per-period self-assessments and their sections."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ctam.models.base import Base


class Assessment(Base):
    """One facility's assessment for a fiscal year and period."""

    __tablename__ = "assessments"
    __table_args__ = (
        UniqueConstraint(
            "hospital_id", "health_office_id", "fiscal_year", "assessment_period",
            name="uq_assessment_unit_period",
        ),
    )

    hospital_id: Mapped[str | None] = mapped_column(String(36), ForeignKey("hospitals.id"), nullable=True, index=True)
    health_office_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("health_offices.id"), nullable=True, index=True
    )
    # Denormalised unit scope, resolved at creation
    province_id: Mapped[str | None] = mapped_column(String(36), ForeignKey("provinces.id"), nullable=True, index=True)
    health_region_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("health_regions.id"), nullable=True, index=True
    )
    fiscal_year: Mapped[int] = mapped_column(Integer, nullable=False)
    assessment_period: Mapped[str] = mapped_column(String(20), nullable=False, default="1")
    status: Mapped[str] = mapped_column(String(30), nullable=False, default="draft")
    created_by: Mapped[str] = mapped_column(String(36), nullable=False)

    # Section scores
    quantitative_score: Mapped[float] = mapped_column(Float, default=0.0)
    qualitative_score: Mapped[float] = mapped_column(Float, default=0.0)
    impact_score: Mapped[float] = mapped_column(Float, default=0.0)
    total_score: Mapped[float] = mapped_column(Float, default=0.0)

    # Submission
    submitted_by: Mapped[str | None] = mapped_column(String(36), nullable=True)
    submitted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Section approval stamps (set and cleared in pairs)
    quantitative_approved_by: Mapped[str | None] = mapped_column(String(36), nullable=True)
    quantitative_approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    qualitative_approved_by: Mapped[str | None] = mapped_column(String(36), nullable=True)
    qualitative_approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    impact_approved_by: Mapped[str | None] = mapped_column(String(36), nullable=True)
    impact_approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Level approval stamps
    provincial_approved_by: Mapped[str | None] = mapped_column(String(36), nullable=True)
    provincial_approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    provincial_comment: Mapped[str | None] = mapped_column(Text, nullable=True)
    regional_approved_by: Mapped[str | None] = mapped_column(String(36), nullable=True)
    regional_approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    regional_comment: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Bumped on every write; conditional updates compare against it
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    def __repr__(self) -> str:
        return f"<Assessment {self.id[:8]} {self.fiscal_year}/{self.assessment_period} {self.status}>"


class AssessmentItem(Base):
    """Quantitative result for one CTAM+ category."""

    __tablename__ = "assessment_items"
    __table_args__ = (UniqueConstraint("assessment_id", "category_id", name="uq_item_assessment_category"),)

    assessment_id: Mapped[str] = mapped_column(String(36), ForeignKey("assessments.id"), nullable=False, index=True)
    category_id: Mapped[str] = mapped_column(String(36), ForeignKey("ctam_categories.id"), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="fail")
    score: Mapped[float] = mapped_column(Float, default=0.0)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)


class QualitativeScore(Base):
    """Leadership and sustainability answers for an assessment."""

    __tablename__ = "qualitative_scores"

    assessment_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("assessments.id"), nullable=False, unique=True, index=True
    )
    has_ciso: Mapped[bool] = mapped_column(Boolean, default=False)
    has_dpo: Mapped[bool] = mapped_column(Boolean, default=False)
    has_it_security_team: Mapped[bool] = mapped_column(Boolean, default=False)
    annual_training_count: Mapped[int] = mapped_column(Integer, default=0)
    uses_opensource: Mapped[bool] = mapped_column(Boolean, default=False)
    uses_freeware: Mapped[bool] = mapped_column(Boolean, default=False)
    leadership_score: Mapped[float] = mapped_column(Float, default=0.0)
    sustainable_score: Mapped[float] = mapped_column(Float, default=0.0)
    total_score: Mapped[float] = mapped_column(Float, default=0.0)
    comment: Mapped[str | None] = mapped_column(Text, nullable=True)
    evaluated_by: Mapped[str | None] = mapped_column(String(36), nullable=True)


class ImpactScore(Base):
    """Incident and data-breach penalties for an assessment."""

    __tablename__ = "impact_scores"

    assessment_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("assessments.id"), nullable=False, unique=True, index=True
    )
    had_incident: Mapped[bool] = mapped_column(Boolean, default=False)
    incident_recovery_hours: Mapped[float] = mapped_column(Float, default=0.0)
    incident_score: Mapped[float] = mapped_column(Float, default=0.0)
    had_data_breach: Mapped[bool] = mapped_column(Boolean, default=False)
    breach_severity: Mapped[str] = mapped_column(String(20), default="none")
    breach_score: Mapped[float] = mapped_column(Float, default=0.0)
    total_score: Mapped[float] = mapped_column(Float, default=15.0)
    comment: Mapped[str | None] = mapped_column(Text, nullable=True)
    evaluated_by: Mapped[str | None] = mapped_column(String(36), nullable=True)


class ApprovalHistory(Base):
    """Append-only audit entry for one workflow action."""

    __tablename__ = "approval_history"

    assessment_id: Mapped[str] = mapped_column(String(36), ForeignKey("assessments.id"), nullable=False, index=True)
    from_status: Mapped[str] = mapped_column(String(30), nullable=False)
    to_status: Mapped[str] = mapped_column(String(30), nullable=False)
    action: Mapped[str] = mapped_column(String(50), nullable=False)
    performed_by: Mapped[str] = mapped_column(String(36), nullable=False)
    comment: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<ApprovalHistory {self.action} {self.from_status}->{self.to_status}>"
