"""Organisational reference data: regions, provinces and facilities."""

from __future__ import annotations

from sqlalchemy import ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from ctam.models.base import Base


class HealthRegion(Base):
    """One of the thirteen health regions (เขตสุขภาพ)."""

    __tablename__ = "health_regions"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    region_number: Mapped[int] = mapped_column(Integer, nullable=False, unique=True)

    def __repr__(self) -> str:
        return f"<HealthRegion {self.region_number}>"


class Province(Base):
    """A province, belonging to exactly one health region."""

    __tablename__ = "provinces"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    code: Mapped[str] = mapped_column(String(10), nullable=False, unique=True)
    health_region_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("health_regions.id"), nullable=False, index=True
    )

    def __repr__(self) -> str:
        return f"<Province {self.code}>"


class Hospital(Base):
    """A hospital submitting self-assessments."""

    __tablename__ = "hospitals"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    code: Mapped[str] = mapped_column(String(20), nullable=False, unique=True, index=True)
    hospital_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    province_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("provinces.id"), nullable=False, index=True
    )

    def __repr__(self) -> str:
        return f"<Hospital {self.code}>"


class HealthOffice(Base):
    """A regional or provincial health office that also self-assesses."""

    __tablename__ = "health_offices"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    code: Mapped[str] = mapped_column(String(20), nullable=False, unique=True, index=True)
    office_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    province_id: Mapped[str | None] = mapped_column(String(36), ForeignKey("provinces.id"), nullable=True)
    health_region_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("health_regions.id"), nullable=False, index=True
    )

    def __repr__(self) -> str:
        return f"<HealthOffice {self.code}>"


class CtamCategory(Base):
    """A CTAM+ control category scored in the quantitative section."""

    __tablename__ = "ctam_categories"

    code: Mapped[str] = mapped_column(String(20), nullable=False, unique=True)
    name_th: Mapped[str] = mapped_column(String(255), nullable=False)
    name_en: Mapped[str | None] = mapped_column(String(255), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    order_number: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<CtamCategory {self.code}>"
