"""Assessment service: creation, section edits and workflow actions.

Every function takes the acting profile and enforces the same policy the
client uses to decide which buttons to show (``workflow.allowed_actions``).
"""

from __future__ import annotations

from typing import Any

import structlog

from ctam.errors import NotAuthorized, ValidationFailed
from ctam.models.base import utcnow
from ctam.services import scoring
from ctam.services.access_scope import ReportType, find_policy, resolve_user_scope
from ctam.services.workflow import (
    READ_ALL_ROLES,
    Role,
    Section,
    Transition,
    can_edit,
    can_view,
    plan_section_approval,
    plan_section_return,
    plan_submit,
)
from ctam.store import DataStore

logger = structlog.get_logger()

BUDDHIST_ERA_OFFSET = 543

QUALITATIVE_FIELDS = (
    "has_ciso",
    "has_dpo",
    "has_it_security_team",
    "annual_training_count",
    "uses_opensource",
    "uses_freeware",
    "comment",
)
IMPACT_FIELDS = (
    "had_incident",
    "incident_recovery_hours",
    "had_data_breach",
    "breach_severity",
    "comment",
)


def to_buddhist_year(fiscal_year: int) -> int:
    return fiscal_year + BUDDHIST_ERA_OFFSET


def create_assessment(
    store: DataStore,
    profile: dict[str, Any],
    fiscal_year: int,
    assessment_period: str,
) -> dict[str, Any]:
    """Open a draft assessment for the caller's own hospital or health office."""
    role = profile.get("role")
    if role == Role.HOSPITAL_IT.value and profile.get("hospital_id"):
        unit = {"hospital_id": profile["hospital_id"], "health_office_id": None}
    elif role == Role.HEALTH_OFFICE.value and profile.get("health_office_id"):
        unit = {"hospital_id": None, "health_office_id": profile["health_office_id"]}
    else:
        raise NotAuthorized("เฉพาะหน่วยบริการเท่านั้นที่สร้างแบบประเมินได้")

    scope = store.unit_scope(unit["hospital_id"], unit["health_office_id"])
    assessment = store.create_assessment({
        **unit,
        **scope,
        "fiscal_year": fiscal_year,
        "assessment_period": assessment_period,
        "created_by": profile["id"],
    })
    logger.info(
        "assessment_created",
        assessment_id=assessment["id"],
        fiscal_year=fiscal_year,
        period=assessment_period,
        created_by=profile["id"],
    )
    return assessment


def resolve_viewer(store: DataStore, profile: dict[str, Any]) -> dict[str, Any]:
    """Copy of ``profile`` with its province, region and read flags filled in.

    A hospital user's province comes from the hospital. Hospital IT staff see
    other hospitals in their province only when the ``hospital_it`` overview
    policy sets ``view_same_province_hospitals``.
    """
    viewer = dict(profile)
    hospital = store.hospitals.get(profile.get("hospital_id") or "")
    if not viewer.get("province_id") and hospital:
        viewer["province_id"] = hospital.get("province_id")
    viewer.update(
        {k: v for k, v in resolve_user_scope(viewer, store.provinces, store.health_offices).items() if v}
    )
    if profile.get("role") == Role.HOSPITAL_IT.value:
        policy = find_policy(store.list_report_policies(), Role.HOSPITAL_IT.value, ReportType.OVERVIEW)
        viewer["view_same_province_hospitals"] = bool(policy and policy.get("view_same_province_hospitals"))
    return viewer


def list_visible_assessments(store: DataStore, profile: dict[str, Any]) -> list[dict[str, Any]]:
    if profile.get("role") in {r.value for r in READ_ALL_ROLES}:
        return store.list_assessments()
    viewer = resolve_viewer(store, profile)
    return store.list_assessments(lambda a: can_view(viewer, a))


def get_assessment(store: DataStore, profile: dict[str, Any], assessment_id: str) -> dict[str, Any]:
    assessment = store.get_assessment(assessment_id)
    if not can_view(resolve_viewer(store, profile), assessment):
        raise NotAuthorized("ไม่มีสิทธิ์เข้าถึงแบบประเมินนี้")
    return assessment


def _require_editor(store: DataStore, profile: dict[str, Any], assessment_id: str) -> dict[str, Any]:
    assessment = get_assessment(store, profile, assessment_id)
    if not can_edit(profile, assessment):
        raise NotAuthorized("ไม่สามารถแก้ไขแบบประเมินนี้ได้")
    return assessment


# ─── Section edits ───────────────────────────────────────────────────────────


def recompute_scores(store: DataStore, assessment_id: str) -> dict[str, Any]:
    """Refresh the stored section and summary scores from the section rows."""
    items = store.get_items(assessment_id)
    quantitative = scoring.score_quantitative(items, len(store.categories))
    qualitative = store.qualitative_scores.get(assessment_id)
    impact = store.impact_scores.get(assessment_id)
    summary = scoring.summary_score(
        quantitative,
        qualitative["total_score"] if qualitative else None,
        impact["total_score"] if impact else None,
    )
    return store.update_assessment_scores(assessment_id, summary)


def save_qualitative(
    store: DataStore,
    profile: dict[str, Any],
    assessment_id: str,
    fields: dict[str, Any],
) -> dict[str, Any]:
    """Score and upsert the qualitative answers of an editable assessment."""
    _require_editor(store, profile, assessment_id)
    values = {key: fields.get(key) for key in QUALITATIVE_FIELDS}
    values["annual_training_count"] = max(0, int(values.get("annual_training_count") or 0))
    values.update(scoring.score_qualitative(values))
    values["evaluated_by"] = profile["id"]

    row = store.upsert_section_row("qualitative_scores", assessment_id, values)
    recompute_scores(store, assessment_id)
    logger.info("qualitative_score_saved", assessment_id=assessment_id, total_score=row["total_score"])
    return row


def save_impact(
    store: DataStore,
    profile: dict[str, Any],
    assessment_id: str,
    fields: dict[str, Any],
) -> dict[str, Any]:
    _require_editor(store, profile, assessment_id)
    values = {key: fields.get(key) for key in IMPACT_FIELDS}
    if values.get("breach_severity") not in scoring.BREACH_PENALTIES:
        raise ValidationFailed("ระดับความรุนแรงของข้อมูลรั่วไหลไม่ถูกต้อง")
    values["incident_recovery_hours"] = max(0.0, float(values.get("incident_recovery_hours") or 0))
    values.update(scoring.score_impact(values))
    values["evaluated_by"] = profile["id"]

    row = store.upsert_section_row("impact_scores", assessment_id, values)
    recompute_scores(store, assessment_id)
    logger.info("impact_score_saved", assessment_id=assessment_id, total_score=row["total_score"])
    return row


def save_item(
    store: DataStore,
    profile: dict[str, Any],
    assessment_id: str,
    category_id: str,
    status: str,
    description: str | None = None,
) -> dict[str, Any]:
    """Record the quantitative result for one CTAM+ category."""
    _require_editor(store, profile, assessment_id)
    if status not in scoring.ITEM_STATUSES:
        raise ValidationFailed(f"สถานะ '{status}' ไม่ถูกต้อง")
    item = store.upsert_item(
        assessment_id,
        category_id,
        {"status": status, "score": 1.0 if status == "pass" else 0.0, "description": description},
    )
    recompute_scores(store, assessment_id)
    return item


# ─── Workflow actions ────────────────────────────────────────────────────────


def submit(store: DataStore, profile: dict[str, Any], assessment_id: str) -> tuple[dict[str, Any], Transition]:
    """Send an assessment for provincial review."""
    get_assessment(store, profile, assessment_id)
    now = utcnow()
    assessment, transition = store.transition_assessment(
        assessment_id, lambda current: plan_submit(profile, current, now)
    )
    logger.info(
        "assessment_submitted",
        assessment_id=assessment_id,
        from_status=transition.from_status.value,
        submitted_by=profile["id"],
    )
    return assessment, transition


def approve_section(
    store: DataStore,
    profile: dict[str, Any],
    assessment_id: str,
    section: Section,
    comment: str | None = None,
    expected_version: int | None = None,
) -> tuple[dict[str, Any], Transition]:
    """Approve one section; the last of the three advances the assessment a level."""
    get_assessment(store, profile, assessment_id)
    now = utcnow()
    assessment, transition = store.transition_assessment(
        assessment_id,
        lambda current: plan_section_approval(profile, current, section, now, comment),
        expected_version=expected_version,
    )
    logger.info(
        "section_approved",
        assessment_id=assessment_id,
        section=section.value,
        role=profile["role"],
        approved_by=profile["id"],
    )
    if transition.status_changed:
        logger.info(
            "assessment_level_approved",
            assessment_id=assessment_id,
            from_status=transition.from_status.value,
            to_status=transition.to_status.value,
        )
    return assessment, transition


def return_section(
    store: DataStore,
    profile: dict[str, Any],
    assessment_id: str,
    section: Section,
    comment: str | None,
    expected_version: int | None = None,
) -> tuple[dict[str, Any], Transition]:
    """Return the assessment to the facility for rework."""
    get_assessment(store, profile, assessment_id)
    assessment, transition = store.transition_assessment(
        assessment_id,
        lambda current: plan_section_return(profile, current, section, comment),
        expected_version=expected_version,
    )
    logger.info(
        "assessment_returned",
        assessment_id=assessment_id,
        section=section.value,
        from_status=transition.from_status.value,
        returned_by=profile["id"],
    )
    return assessment, transition


def get_history(store: DataStore, profile: dict[str, Any], assessment_id: str) -> list[dict[str, Any]]:
    get_assessment(store, profile, assessment_id)
    return store.get_history(assessment_id)
