"""Assessment API endpoints: section data, approval workflow, certificate."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Response

from ctam.config import Settings
from ctam.dependencies import get_app_settings, get_current_profile, get_store
from ctam.schemas.assessment import (
    AssessmentCreateRequest,
    AssessmentResponse,
    HistoryEntry,
    ImpactRequest,
    ImpactResponse,
    ItemRequest,
    ItemResponse,
    QualitativeRequest,
    QualitativeResponse,
    SectionActionRequest,
    TransitionResponse,
)
from ctam.services import assessments as service
from ctam.services.certificate import render_certificate
from ctam.services.workflow import Section, Transition, allowed_actions
from ctam.store import DataStore

router = APIRouter(prefix="/assessments", tags=["assessments"])


def _to_response(profile: dict[str, Any], assessment: dict[str, Any]) -> AssessmentResponse:
    return AssessmentResponse(
        **assessment,
        fiscal_year_be=service.to_buddhist_year(assessment["fiscal_year"]),
        allowed_actions=allowed_actions(profile, assessment),
    )


def _transition_response(
    profile: dict[str, Any],
    assessment: dict[str, Any],
    transition: Transition,
) -> TransitionResponse:
    return TransitionResponse(
        action=transition.action,
        from_status=transition.from_status.value,
        to_status=transition.to_status.value,
        status_changed=transition.status_changed,
        assessment=_to_response(profile, assessment),
    )


@router.post("", response_model=AssessmentResponse, status_code=201)
async def create_assessment(
    body: AssessmentCreateRequest,
    profile: dict[str, Any] = Depends(get_current_profile),
    store: DataStore = Depends(get_store),
) -> AssessmentResponse:
    """Open a draft assessment for the caller's own unit."""
    assessment = service.create_assessment(store, profile, body.fiscal_year, body.assessment_period)
    return _to_response(profile, assessment)


@router.get("", response_model=list[AssessmentResponse])
async def list_assessments(
    profile: dict[str, Any] = Depends(get_current_profile),
    store: DataStore = Depends(get_store),
) -> list[AssessmentResponse]:
    """Assessments inside the caller's scope, newest first."""
    viewer = service.resolve_viewer(store, profile)
    return [_to_response(viewer, a) for a in service.list_visible_assessments(store, profile)]


@router.get("/{assessment_id}", response_model=AssessmentResponse)
async def get_assessment(
    assessment_id: str,
    profile: dict[str, Any] = Depends(get_current_profile),
    store: DataStore = Depends(get_store),
) -> AssessmentResponse:
    assessment = service.get_assessment(store, profile, assessment_id)
    return _to_response(service.resolve_viewer(store, profile), assessment)


# ─── Workflow ────────────────────────────────────────────────────────────────


@router.post("/{assessment_id}/submit", response_model=TransitionResponse)
async def submit_assessment(
    assessment_id: str,
    profile: dict[str, Any] = Depends(get_current_profile),
    store: DataStore = Depends(get_store),
) -> TransitionResponse:
    assessment, transition = service.submit(store, profile, assessment_id)
    return _transition_response(profile, assessment, transition)


@router.post("/{assessment_id}/sections/{section}/approve", response_model=TransitionResponse)
async def approve_section(
    assessment_id: str,
    section: Section,
    body: SectionActionRequest | None = None,
    profile: dict[str, Any] = Depends(get_current_profile),
    store: DataStore = Depends(get_store),
) -> TransitionResponse:
    """Approve one section; approving the last pending one advances the level."""
    body = body or SectionActionRequest()
    assessment, transition = service.approve_section(
        store, profile, assessment_id, section, body.comment, body.expected_version
    )
    return _transition_response(profile, assessment, transition)


@router.post("/{assessment_id}/sections/{section}/return", response_model=TransitionResponse)
async def return_section(
    assessment_id: str,
    section: Section,
    body: SectionActionRequest,
    profile: dict[str, Any] = Depends(get_current_profile),
    store: DataStore = Depends(get_store),
) -> TransitionResponse:
    """Return the assessment to the facility; a comment is required."""
    assessment, transition = service.return_section(
        store, profile, assessment_id, section, body.comment, body.expected_version
    )
    return _transition_response(profile, assessment, transition)


@router.get("/{assessment_id}/history", response_model=list[HistoryEntry])
async def get_history(
    assessment_id: str,
    profile: dict[str, Any] = Depends(get_current_profile),
    store: DataStore = Depends(get_store),
) -> list[HistoryEntry]:
    return [HistoryEntry(**h) for h in service.get_history(store, profile, assessment_id)]


# ─── Section data ────────────────────────────────────────────────────────────


@router.get("/{assessment_id}/qualitative", response_model=QualitativeResponse)
async def get_qualitative(
    assessment_id: str,
    profile: dict[str, Any] = Depends(get_current_profile),
    store: DataStore = Depends(get_store),
) -> QualitativeResponse:
    service.get_assessment(store, profile, assessment_id)
    row = store.qualitative_scores.get(assessment_id)
    if row is None:
        raise HTTPException(status_code=404, detail="ยังไม่มีข้อมูลการประเมินเชิงคุณภาพ")
    return QualitativeResponse(**row)


@router.put("/{assessment_id}/qualitative", response_model=QualitativeResponse)
async def save_qualitative(
    assessment_id: str,
    body: QualitativeRequest,
    profile: dict[str, Any] = Depends(get_current_profile),
    store: DataStore = Depends(get_store),
) -> QualitativeResponse:
    """Auto-save target for the qualitative form."""
    row = service.save_qualitative(store, profile, assessment_id, body.model_dump())
    return QualitativeResponse(**row)


@router.get("/{assessment_id}/impact", response_model=ImpactResponse)
async def get_impact(
    assessment_id: str,
    profile: dict[str, Any] = Depends(get_current_profile),
    store: DataStore = Depends(get_store),
) -> ImpactResponse:
    service.get_assessment(store, profile, assessment_id)
    row = store.impact_scores.get(assessment_id)
    if row is None:
        raise HTTPException(status_code=404, detail="ยังไม่มีข้อมูลการประเมินผลกระทบ")
    return ImpactResponse(**row)


@router.put("/{assessment_id}/impact", response_model=ImpactResponse)
async def save_impact(
    assessment_id: str,
    body: ImpactRequest,
    profile: dict[str, Any] = Depends(get_current_profile),
    store: DataStore = Depends(get_store),
) -> ImpactResponse:
    row = service.save_impact(store, profile, assessment_id, body.model_dump())
    return ImpactResponse(**row)


@router.get("/{assessment_id}/items", response_model=list[ItemResponse])
async def list_items(
    assessment_id: str,
    profile: dict[str, Any] = Depends(get_current_profile),
    store: DataStore = Depends(get_store),
) -> list[ItemResponse]:
    service.get_assessment(store, profile, assessment_id)
    return [ItemResponse(**item) for item in store.get_items(assessment_id)]


@router.put("/{assessment_id}/items/{category_id}", response_model=ItemResponse)
async def save_item(
    assessment_id: str,
    category_id: str,
    body: ItemRequest,
    profile: dict[str, Any] = Depends(get_current_profile),
    store: DataStore = Depends(get_store),
) -> ItemResponse:
    """Record the quantitative result of one CTAM+ category."""
    item = service.save_item(store, profile, assessment_id, category_id, body.status, body.description)
    return ItemResponse(**item)


# ─── Certificate ─────────────────────────────────────────────────────────────


@router.get("/{assessment_id}/certificate")
async def export_certificate(
    assessment_id: str,
    profile: dict[str, Any] = Depends(get_current_profile),
    store: DataStore = Depends(get_store),
    settings: Settings = Depends(get_app_settings),
) -> Response:
    """Download the PDF certificate of a regionally approved assessment."""
    assessment = service.get_assessment(store, profile, assessment_id)
    if assessment.get("hospital_id"):
        unit = store.hospitals.get(assessment["hospital_id"], {})
    else:
        unit = store.health_offices.get(assessment.get("health_office_id") or "", {})

    pdf = render_certificate(assessment, unit.get("name", "-"), settings.certificate_font_path)
    filename = f"ctam-certificate-{unit.get('code', assessment_id)}-{assessment['fiscal_year']}.pdf"
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
