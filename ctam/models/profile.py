"""User profiles and report access policies."""

from __future__ import annotations

from sqlalchemy import Boolean, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ctam.models.base import Base


class Profile(Base):
    """Portal identity: role, activation flag and organisational scope."""

    __tablename__ = "profiles"

    user_id: Mapped[str] = mapped_column(String(36), nullable=False, unique=True, index=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    full_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(20), nullable=True)
    role: Mapped[str] = mapped_column(String(30), nullable=False, default="hospital_it")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    hospital_id: Mapped[str | None] = mapped_column(String(36), ForeignKey("hospitals.id"), nullable=True)
    health_office_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("health_offices.id"), nullable=True
    )
    province_id: Mapped[str | None] = mapped_column(String(36), ForeignKey("provinces.id"), nullable=True)
    health_region_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("health_regions.id"), nullable=True
    )

    def __repr__(self) -> str:
        return f"<Profile {self.email} role={self.role}>"


class ReportAccessPolicy(Base):
    """Drill-down permissions for one role on one report type."""

    __tablename__ = "report_access_policies"
    __table_args__ = (UniqueConstraint("role", "report_type", name="uq_report_access_role_type"),)

    role: Mapped[str] = mapped_column(String(30), nullable=False)
    report_type: Mapped[str] = mapped_column(String(30), nullable=False)
    view_region: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    drill_to_province: Mapped[str] = mapped_column(String(20), nullable=False, default="all")
    drill_to_hospital: Mapped[str] = mapped_column(String(20), nullable=False, default="all")
    view_same_province_hospitals: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    def __repr__(self) -> str:
        return f"<ReportAccessPolicy {self.role}/{self.report_type}>"
