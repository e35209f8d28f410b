"""Approval workflow: statuses, authorization policy and transition planning.

An assessment moves ``draft -> submitted -> approved_provincial ->
approved_regional -> completed``. Reviewers approve the three sections
one by one; once all three carry a stamp the assessment advances one
level. Returning any section sends the whole assessment back to the
facility and discards every section approval at the current level.

The ``plan_*`` functions are pure. They validate an action against the
current assessment row and describe the resulting field changes and
history rows; ``DataStore.transition_assessment`` applies a plan
atomically against the row it was computed from.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from ctam.errors import NotAuthorized, TransitionRejected, ValidationFailed


class AssessmentStatus(str, Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"
    RETURNED = "returned"
    APPROVED_PROVINCIAL = "approved_provincial"
    APPROVED_REGIONAL = "approved_regional"
    COMPLETED = "completed"


class Role(str, Enum):
    HOSPITAL_IT = "hospital_it"
    HEALTH_OFFICE = "health_office"
    PROVINCIAL = "provincial"
    REGIONAL = "regional"
    CENTRAL_ADMIN = "central_admin"
    SUPERVISOR = "supervisor"
    CEO = "ceo"


class Section(str, Enum):
    QUANTITATIVE = "quantitative"
    QUALITATIVE = "qualitative"
    IMPACT = "impact"

    @property
    def stamp_fields(self) -> tuple[str, str]:
        return SECTION_STAMP_FIELDS[self]

    @property
    def label(self) -> str:
        return SECTION_LABELS[self]


SECTION_STAMP_FIELDS: dict[Section, tuple[str, str]] = {
    Section.QUANTITATIVE: ("quantitative_approved_by", "quantitative_approved_at"),
    Section.QUALITATIVE: ("qualitative_approved_by", "qualitative_approved_at"),
    Section.IMPACT: ("impact_approved_by", "impact_approved_at"),
}

SECTION_LABELS: dict[Section, str] = {
    Section.QUANTITATIVE: "เชิงปริมาณ",
    Section.QUALITATIVE: "เชิงคุณภาพ",
    Section.IMPACT: "ผลกระทบ",
}

# (approved_by, approved_at, comment) stamped when a level signs off
LEVEL_STAMP_FIELDS: dict[Role, tuple[str, str, str]] = {
    Role.PROVINCIAL: ("provincial_approved_by", "provincial_approved_at", "provincial_comment"),
    Role.REGIONAL: ("regional_approved_by", "regional_approved_at", "regional_comment"),
}

EDITABLE_STATUSES = frozenset({AssessmentStatus.DRAFT, AssessmentStatus.RETURNED})
APPROVED_STATUSES = frozenset({AssessmentStatus.APPROVED_REGIONAL, AssessmentStatus.COMPLETED})
FACILITY_ROLES = frozenset({Role.HOSPITAL_IT, Role.HEALTH_OFFICE})
READ_ALL_ROLES = frozenset({Role.CENTRAL_ADMIN})

# The only status each level reviewer may act on
REVIEW_STATUS: dict[Role, AssessmentStatus] = {
    Role.PROVINCIAL: AssessmentStatus.SUBMITTED,
    Role.REGIONAL: AssessmentStatus.APPROVED_PROVINCIAL,
}

NEXT_STATUS: dict[Role, AssessmentStatus] = {
    Role.PROVINCIAL: AssessmentStatus.APPROVED_PROVINCIAL,
    Role.REGIONAL: AssessmentStatus.APPROVED_REGIONAL,
}

ALL_SECTIONS_APPROVED_COMMENT = "อนุมัติครบทุกส่วน"


@dataclass
class Transition:
    """Field changes and history rows produced by one workflow action."""

    action: str
    from_status: AssessmentStatus
    to_status: AssessmentStatus
    changes: dict[str, Any] = field(default_factory=dict)
    history: list[dict[str, Any]] = field(default_factory=list)

    @property
    def status_changed(self) -> bool:
        return self.from_status != self.to_status


def _role(profile: dict[str, Any]) -> Role | None:
    try:
        return Role(profile.get("role"))
    except ValueError:
        return None


def _status(assessment: dict[str, Any]) -> AssessmentStatus:
    return AssessmentStatus(assessment["status"])


# ─── Authorization policy ────────────────────────────────────────────────────


def owns_assessment(profile: dict[str, Any], assessment: dict[str, Any]) -> bool:
    """True when the profile belongs to the facility that the assessment is for."""
    role = _role(profile)
    if role == Role.HOSPITAL_IT:
        return bool(assessment.get("hospital_id")) and profile.get("hospital_id") == assessment.get("hospital_id")
    if role == Role.HEALTH_OFFICE:
        return (
            bool(assessment.get("health_office_id"))
            and profile.get("health_office_id") == assessment.get("health_office_id")
        )
    return False


def in_review_scope(profile: dict[str, Any], assessment: dict[str, Any]) -> bool:
    """True when the assessment's unit lies inside the reviewer's province or region."""
    role = _role(profile)
    if role == Role.PROVINCIAL:
        return bool(profile.get("province_id")) and profile.get("province_id") == assessment.get("province_id")
    if role == Role.REGIONAL:
        return (
            bool(profile.get("health_region_id"))
            and profile.get("health_region_id") == assessment.get("health_region_id")
        )
    return role == Role.CENTRAL_ADMIN


def _same(profile: dict[str, Any], assessment: dict[str, Any], key: str) -> bool:
    return bool(profile.get(key)) and profile.get(key) == assessment.get(key)


def in_read_scope(profile: dict[str, Any], assessment: dict[str, Any]) -> bool:
    """Read-only visibility beyond the owning facility and the reviewers.

    Expects ``province_id`` and ``health_region_id`` already resolved on the
    profile (``assessments.resolve_viewer``).
    """
    role = _role(profile)
    is_hospital = bool(assessment.get("hospital_id"))
    if role == Role.SUPERVISOR:
        return _same(profile, assessment, "health_region_id")
    if role == Role.CEO:
        own_hospital = is_hospital and _same(profile, assessment, "hospital_id")
        return (
            own_hospital
            or _same(profile, assessment, "province_id")
            or (bool(profile.get("province_id")) and _same(profile, assessment, "health_region_id"))
        )
    if role == Role.HEALTH_OFFICE:
        return is_hospital and _same(profile, assessment, "province_id")
    if role == Role.HOSPITAL_IT:
        return (
            bool(profile.get("view_same_province_hospitals"))
            and is_hospital
            and _same(profile, assessment, "province_id")
        )
    return False


def can_view(profile: dict[str, Any], assessment: dict[str, Any]) -> bool:
    if _role(profile) in READ_ALL_ROLES:
        return True
    return (
        owns_assessment(profile, assessment)
        or in_review_scope(profile, assessment)
        or in_read_scope(profile, assessment)
    )


def can_edit(profile: dict[str, Any], assessment: dict[str, Any]) -> bool:
    """Facility owners edit section data only while the assessment is draft or returned."""
    return _status(assessment) in EDITABLE_STATUSES and owns_assessment(profile, assessment)


def can_submit(profile: dict[str, Any], assessment: dict[str, Any]) -> bool:
    return can_edit(profile, assessment)


def can_review(profile: dict[str, Any], assessment: dict[str, Any]) -> bool:
    """Reviewers act on one status each; central admins on anything not yet completed."""
    role = _role(profile)
    status = _status(assessment)
    if role == Role.CENTRAL_ADMIN:
        return status != AssessmentStatus.COMPLETED
    if role in REVIEW_STATUS:
        return status == REVIEW_STATUS[role] and in_review_scope(profile, assessment)
    return False


def can_export_certificate(profile: dict[str, Any], assessment: dict[str, Any]) -> bool:
    return _status(assessment) in APPROVED_STATUSES and can_view(profile, assessment)


def allowed_actions(profile: dict[str, Any], assessment: dict[str, Any]) -> list[str]:
    """Actions the profile may take on the assessment, as shown to the client."""
    actions = []
    if can_edit(profile, assessment):
        actions.extend(["edit", "submit"])
    if can_review(profile, assessment):
        actions.extend(["approve_section", "return_section"])
    if can_export_certificate(profile, assessment):
        actions.append("export_certificate")
    return actions


# ─── Section bookkeeping ─────────────────────────────────────────────────────


def is_section_approved(assessment: dict[str, Any], section: Section) -> bool:
    approved_by, approved_at = section.stamp_fields
    return assessment.get(approved_by) is not None and assessment.get(approved_at) is not None


def approved_sections(assessment: dict[str, Any]) -> list[Section]:
    return [section for section in Section if is_section_approved(assessment, section)]


def cleared_section_stamps() -> dict[str, None]:
    changes: dict[str, None] = {}
    for approved_by, approved_at in SECTION_STAMP_FIELDS.values():
        changes[approved_by] = None
        changes[approved_at] = None
    return changes


def _history_row(
    action: str,
    from_status: AssessmentStatus,
    to_status: AssessmentStatus,
    performed_by: str,
    comment: str | None,
) -> dict[str, Any]:
    return {
        "action": action,
        "from_status": from_status.value,
        "to_status": to_status.value,
        "performed_by": performed_by,
        "comment": comment,
    }


# ─── Transition planning ─────────────────────────────────────────────────────


def plan_submit(profile: dict[str, Any], assessment: dict[str, Any], now: datetime) -> Transition:
    """Facility sends a draft or returned assessment for provincial review."""
    status = _status(assessment)
    if status not in EDITABLE_STATUSES:
        raise TransitionRejected(f"ไม่สามารถส่งแบบประเมินในสถานะ '{status.value}' ได้")
    if not owns_assessment(profile, assessment):
        raise NotAuthorized("เฉพาะหน่วยงานเจ้าของแบบประเมินเท่านั้นที่ส่งได้")

    to_status = AssessmentStatus.SUBMITTED
    return Transition(
        action="submit",
        from_status=status,
        to_status=to_status,
        changes={"status": to_status.value, "submitted_by": profile["id"], "submitted_at": now},
        history=[_history_row("submit", status, to_status, profile["id"], None)],
    )


def _require_reviewer(profile: dict[str, Any], assessment: dict[str, Any]) -> AssessmentStatus:
    status = _status(assessment)
    role = _role(profile)
    if role != Role.CENTRAL_ADMIN and role not in REVIEW_STATUS:
        raise NotAuthorized("บทบาทนี้ไม่มีสิทธิ์ตรวจสอบแบบประเมิน")
    if status == AssessmentStatus.COMPLETED:
        raise TransitionRejected("แบบประเมินเสร็จสมบูรณ์แล้ว")
    if role in REVIEW_STATUS and status != REVIEW_STATUS[role]:
        raise TransitionRejected(f"ไม่สามารถตรวจสอบแบบประเมินในสถานะ '{status.value}' ได้")
    if not in_review_scope(profile, assessment):
        raise NotAuthorized("แบบประเมินนี้อยู่นอกพื้นที่รับผิดชอบ")
    return status


def plan_section_approval(
    profile: dict[str, Any],
    assessment: dict[str, Any],
    section: Section,
    now: datetime,
    comment: str | None = None,
) -> Transition:
    """Stamp one section and, when all three are approved, advance one level.

    Moving to an intermediate level clears the section stamps so the next
    level reviews from scratch and records the level sign-off. Completing
    the assessment keeps the stamps of the final review.
    """
    status = _require_reviewer(profile, assessment)
    role = _role(profile)
    comment = (comment or "").strip() or None
    approved_by, approved_at = section.stamp_fields

    changes: dict[str, Any] = {approved_by: profile["id"], approved_at: now}
    history = [
        _history_row(
            f"approve_{section.value}",
            status,
            status,
            profile["id"],
            comment or f"อนุมัติส่วน{section.label}",
        )
    ]

    stamped = {**assessment, **changes}
    if not all(is_section_approved(stamped, s) for s in Section):
        return Transition(f"approve_{section.value}", status, status, changes, history)

    to_status = NEXT_STATUS.get(role, AssessmentStatus.COMPLETED)
    if to_status != AssessmentStatus.COMPLETED:
        changes.update(cleared_section_stamps())
    if role in LEVEL_STAMP_FIELDS:
        level_by, level_at, level_comment = LEVEL_STAMP_FIELDS[role]
        changes.update({level_by: profile["id"], level_at: now, level_comment: comment})

    changes["status"] = to_status.value
    history.append(_history_row("approve", status, to_status, profile["id"], ALL_SECTIONS_APPROVED_COMMENT))
    return Transition("approve", status, to_status, changes, history)


def plan_section_return(
    profile: dict[str, Any],
    assessment: dict[str, Any],
    section: Section,
    comment: str | None,
) -> Transition:
    """Send the assessment back to the facility, discarding every section approval."""
    comment = (comment or "").strip()
    if not comment:
        raise ValidationFailed("กรุณาระบุเหตุผลการตีกลับ")
    status = _require_reviewer(profile, assessment)

    to_status = AssessmentStatus.RETURNED
    changes: dict[str, Any] = {"status": to_status.value, **cleared_section_stamps()}
    history = [
        _history_row(
            f"return_{section.value}",
            status,
            to_status,
            profile["id"],
            f"ตีกลับส่วน{section.label}: {comment}",
        )
    ]
    return Transition(f"return_{section.value}", status, to_status, changes, history)
