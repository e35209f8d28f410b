"""Database models for the CTAM+ assessment portal."""

from ctam.models.base import Base
from ctam.models.organisation import CtamCategory, HealthOffice, HealthRegion, Hospital, Province
from ctam.models.profile import Profile, ReportAccessPolicy
from ctam.models.assessment import (
    ApprovalHistory,
    Assessment,
    AssessmentItem,
    ImpactScore,
    QualitativeScore,
)

__all__ = [
    "Base",
    "HealthRegion",
    "Province",
    "Hospital",
    "HealthOffice",
    "CtamCategory",
    "Profile",
    "ReportAccessPolicy",
    "Assessment",
    "AssessmentItem",
    "QualitativeScore",
    "ImpactScore",
    "ApprovalHistory",
]
