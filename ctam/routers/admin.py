"""Central administration endpoints: users, provisioning, report policies."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from ctam.config import Settings
from ctam.dependencies import get_app_settings, get_current_profile, get_store, require_roles
from ctam.errors import ValidationFailed
from ctam.schemas.admin import (
    HospitalProvisionRequest,
    ProvincialProvisionRequest,
    ProvisionRequest,
    ProvisionResponse,
    ProvisionResult,
    SupervisorCreateRequest,
)
from ctam.schemas.auth import AdminProfileUpdateRequest, ProfileResponse
from ctam.schemas.report import ReportPolicyRequest, ReportPolicyResponse
from ctam.services.auth import admin_update_profile
from ctam.services.provisioning import (
    create_supervisor_account,
    provision_health_office_users,
    provision_hospital_users,
    provision_provincial_users,
    provision_regional_office_users,
)
from ctam.services.workflow import Role
from ctam.store import DataStore

router = APIRouter(prefix="/admin", tags=["admin"])

require_central_admin = require_roles(Role.CENTRAL_ADMIN)


# ─── Users ───────────────────────────────────────────────────────────────────


@router.get("/users", response_model=list[ProfileResponse])
async def list_users(
    is_active: bool | None = None,
    _: dict[str, Any] = Depends(require_central_admin),
    store: DataStore = Depends(get_store),
) -> list[ProfileResponse]:
    """All profiles, optionally only active or only pending ones."""
    profiles = [p for p in store.profiles.values() if is_active is None or bool(p.get("is_active")) == is_active]
    return [ProfileResponse(**p) for p in sorted(profiles, key=lambda p: p["email"])]


@router.patch("/users/{profile_id}", response_model=ProfileResponse)
async def update_user(
    profile_id: str,
    body: AdminProfileUpdateRequest,
    admin: dict[str, Any] = Depends(require_central_admin),
    store: DataStore = Depends(get_store),
) -> ProfileResponse:
    """Activate a user or change their role and organisational scope."""
    profile = admin_update_profile(store, admin, profile_id, body.model_dump(exclude_unset=True))
    return ProfileResponse(**profile)


# ─── Provisioning ────────────────────────────────────────────────────────────
#
# Callers come from get_current_profile only; each service re-checks the
# stored role and scope of the caller.


def _provision_response(result: dict[str, Any]) -> ProvisionResponse:
    return ProvisionResponse(
        total_units=result["total_units"],
        results=[ProvisionResult(**r) for r in result["results"]],
    )


@router.post("/provision/hospitals", response_model=ProvisionResponse)
async def provision_hospitals(
    body: HospitalProvisionRequest,
    caller: dict[str, Any] = Depends(get_current_profile),
    store: DataStore = Depends(get_store),
    settings: Settings = Depends(get_app_settings),
) -> ProvisionResponse:
    """Pending hospital IT accounts for one province."""
    return _provision_response(provision_hospital_users(store, settings, caller["id"], body.province_id))


@router.post("/provision/health-offices", response_model=ProvisionResponse)
async def provision_health_offices(
    body: ProvisionRequest,
    caller: dict[str, Any] = Depends(get_current_profile),
    store: DataStore = Depends(get_store),
    settings: Settings = Depends(get_app_settings),
) -> ProvisionResponse:
    """Pending accounts for the health offices of a region, or of a provincial caller's province."""
    return _provision_response(provision_health_office_users(store, settings, caller["id"], body.health_region_id))


@router.post("/provision/provincial", response_model=ProvisionResponse)
async def provision_provincial(
    body: ProvincialProvisionRequest,
    caller: dict[str, Any] = Depends(get_current_profile),
    store: DataStore = Depends(get_store),
    settings: Settings = Depends(get_app_settings),
) -> ProvisionResponse:
    return _provision_response(provision_provincial_users(store, settings, caller["id"], body.health_region_id))


@router.post("/provision/regional-offices", response_model=ProvisionResponse)
async def provision_regional_offices(
    body: ProvisionRequest,
    caller: dict[str, Any] = Depends(get_current_profile),
    store: DataStore = Depends(get_store),
    settings: Settings = Depends(get_app_settings),
) -> ProvisionResponse:
    """Active accounts for regional health offices."""
    return _provision_response(provision_regional_office_users(store, settings, caller["id"], body.health_region_id))


@router.post("/provision/supervisors", response_model=ProfileResponse, status_code=201)
async def create_supervisor(
    body: SupervisorCreateRequest,
    caller: dict[str, Any] = Depends(get_current_profile),
    store: DataStore = Depends(get_store),
    settings: Settings = Depends(get_app_settings),
) -> ProfileResponse:
    """A regional reviewer adds a supervisor for their region."""
    profile = create_supervisor_account(store, settings, caller["id"], body.email, body.password, body.full_name)
    return ProfileResponse(**profile)


# ─── Report access policies ──────────────────────────────────────────────────


@router.get("/report-policies", response_model=list[ReportPolicyResponse])
async def list_report_policies(
    _: dict[str, Any] = Depends(require_central_admin),
    store: DataStore = Depends(get_store),
) -> list[ReportPolicyResponse]:
    policies = sorted(store.list_report_policies(), key=lambda p: (p["role"], p["report_type"]))
    return [ReportPolicyResponse(**p) for p in policies]


@router.put("/report-policies", response_model=ReportPolicyResponse)
async def upsert_report_policy(
    body: ReportPolicyRequest,
    _: dict[str, Any] = Depends(require_central_admin),
    store: DataStore = Depends(get_store),
) -> ReportPolicyResponse:
    """Create or replace the policy for one role and report type."""
    try:
        Role(body.role)
    except ValueError:
        raise ValidationFailed(f"บทบาท '{body.role}' ไม่ถูกต้อง") from None
    return ReportPolicyResponse(**store.upsert_report_policy(body.model_dump()))


@router.delete("/report-policies/{policy_id}", status_code=204)
async def delete_report_policy(
    policy_id: str,
    _: dict[str, Any] = Depends(require_central_admin),
    store: DataStore = Depends(get_store),
) -> None:
    store.delete_report_policy(policy_id)
