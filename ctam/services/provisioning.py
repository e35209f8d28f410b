"""Batch provisioning of facility and reviewer login accounts.

Each batch walks one kind of organisational unit (hospital, health office,
province, regional office) and creates one account per unit from a fixed
template. The caller's role is always re-read from the store rather than
taken from the request.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

import structlog

from ctam.config import Settings
from ctam.errors import NotAuthorized, NotFound, PortalError, ValidationFailed
from ctam.services.auth import create_account, validate_password
from ctam.services.workflow import Role
from ctam.store import DataStore

logger = structlog.get_logger()


@dataclass(frozen=True)
class AccountTemplate:
    """How a unit's account is named, scoped and whether it starts active."""

    role: Role
    email_local: str
    password: str
    full_name: str
    scope: Callable[[dict[str, Any]], dict[str, Any]]
    active: bool = False

    def fields(self, unit: dict[str, Any]) -> dict[str, Any]:
        return {
            "role": self.role.value,
            "full_name": self.full_name.format(**unit),
            "is_active": self.active,
            **self.scope(unit),
        }


HOSPITAL_ACCOUNT = AccountTemplate(
    role=Role.HOSPITAL_IT,
    email_local="{code}",
    password="{code}",
    full_name="IT {name}",
    scope=lambda h: {"hospital_id": h["id"], "province_id": h["province_id"]},
)

HEALTH_OFFICE_ACCOUNT = AccountTemplate(
    role=Role.HEALTH_OFFICE,
    email_local="{code}",
    password="{code}",
    full_name="ผู้ใช้ {name}",
    scope=lambda o: {
        "health_office_id": o["id"],
        "province_id": o.get("province_id"),
        "health_region_id": o.get("health_region_id"),
    },
)

PROVINCIAL_ACCOUNT = AccountTemplate(
    role=Role.PROVINCIAL,
    email_local="provincial.{code}",
    password="prov{code}",
    full_name="ผู้ประเมิน {name}",
    scope=lambda p: {"province_id": p["id"], "health_region_id": p.get("health_region_id")},
)

# Regional offices are created ready to use
REGIONAL_OFFICE_ACCOUNT = AccountTemplate(
    role=Role.HEALTH_OFFICE,
    email_local="{code}",
    password="{code}",
    full_name="IT {name}",
    scope=lambda o: {"health_office_id": o["id"], "province_id": None, "health_region_id": o.get("health_region_id")},
    active=True,
)


def _require_caller(store: DataStore, caller_profile_id: str, *roles: Role) -> dict[str, Any]:
    caller = store.profiles.get(caller_profile_id)
    allowed = {r.value for r in roles}
    if caller is None or caller.get("role") not in allowed or not caller.get("is_active"):
        raise NotAuthorized(f"Unauthorized: {' or '.join(sorted(allowed))} role required")
    return caller


def _caller_province(caller: dict[str, Any], province_id: str | None) -> str:
    """Provincial callers may only provision their own province."""
    own = caller.get("province_id")
    if not own:
        raise ValidationFailed("Provincial user has no province assigned")
    if province_id and province_id != own:
        raise NotAuthorized("Provincial users can only provision their own province")
    return own


def _provision(
    store: DataStore,
    settings: Settings,
    template: AccountTemplate,
    units: list[dict[str, Any]],
    **log_context: Any,
) -> dict[str, Any]:
    """Create one account per unit, skipping units that already have one."""
    results = []
    for unit in units:
        email = f"{template.email_local.format(**unit)}@{settings.account_email_domain}".lower()
        base = {"unit_code": unit["code"], "unit_name": unit["name"], "email": email}
        fields = template.fields(unit)

        existing = store.get_profile_by_email(email)
        if existing or store.get_credential(email):
            message = "User already exists"
            if existing and not existing.get("province_id") and fields.get("province_id"):
                store.update_profile(existing["id"], {"province_id": fields["province_id"]})
                message = "User already exists (province updated)"
            results.append({**base, "status": "skipped", "message": message})
            continue

        try:
            create_account(store, settings, email, template.password.format(**unit), fields)
        except PortalError as exc:
            results.append({**base, "status": "error", "message": exc.message})
            logger.warning("account_provision_failed", role=template.role.value, unit_code=unit["code"], error=exc.message)
            continue

        message = "User created successfully" if template.active else "User created successfully (pending approval)"
        results.append({**base, "status": "success", "message": message})
        logger.info("account_provisioned", role=template.role.value, unit_code=unit["code"], **log_context)

    return {"total_units": len(units), "results": results}


def provision_hospital_users(
    store: DataStore,
    settings: Settings,
    caller_profile_id: str,
    province_id: str | None = None,
) -> dict[str, Any]:
    """One pending hospital IT account per hospital of a province.

    Central admins name the province; provincial reviewers always get
    their own.
    """
    caller = _require_caller(store, caller_profile_id, Role.CENTRAL_ADMIN, Role.PROVINCIAL)
    if caller["role"] == Role.PROVINCIAL.value:
        province_id = _caller_province(caller, province_id)
    if not province_id:
        raise ValidationFailed("province_id is required")
    if province_id not in store.provinces:
        raise NotFound(f"Province '{province_id}' not found")

    hospitals = store.get_hospitals_in_province(province_id)
    return _provision(store, settings, HOSPITAL_ACCOUNT, hospitals, province_id=province_id)


def provision_health_office_users(
    store: DataStore,
    settings: Settings,
    caller_profile_id: str,
    health_region_id: str | None = None,
) -> dict[str, Any]:
    """One pending account per health office.

    Central admins provision every office of a region. Provincial
    reviewers provision the offices of their own province.
    """
    caller = _require_caller(store, caller_profile_id, Role.CENTRAL_ADMIN, Role.PROVINCIAL)
    if caller["role"] == Role.PROVINCIAL.value:
        offices = store.get_health_offices_in_province(_caller_province(caller, None))
        return _provision(store, settings, HEALTH_OFFICE_ACCOUNT, offices, province_id=caller["province_id"])

    if not health_region_id:
        raise ValidationFailed("health_region_id is required")
    if health_region_id not in store.health_regions:
        raise NotFound(f"Health region '{health_region_id}' not found")
    offices = store.get_health_offices_in_region(health_region_id)
    return _provision(store, settings, HEALTH_OFFICE_ACCOUNT, offices, health_region_id=health_region_id)


def provision_provincial_users(
    store: DataStore,
    settings: Settings,
    caller_profile_id: str,
    health_region_id: str,
) -> dict[str, Any]:
    """One pending provincial reviewer account per province of a region."""
    caller = _require_caller(store, caller_profile_id, Role.CENTRAL_ADMIN, Role.REGIONAL)
    if caller["role"] == Role.REGIONAL.value and caller.get("health_region_id") != health_region_id:
        raise NotAuthorized("Regional users can only provision their own health region")
    if health_region_id not in store.health_regions:
        raise NotFound(f"Health region '{health_region_id}' not found")

    provinces = store.get_provinces_in_region(health_region_id)
    return _provision(store, settings, PROVINCIAL_ACCOUNT, provinces, health_region_id=health_region_id)


def provision_regional_office_users(
    store: DataStore,
    settings: Settings,
    caller_profile_id: str,
    health_region_id: str | None = None,
) -> dict[str, Any]:
    """Active accounts for the regional health offices, optionally one region's only."""
    _require_caller(store, caller_profile_id, Role.CENTRAL_ADMIN)
    if health_region_id and health_region_id not in store.health_regions:
        raise NotFound(f"Health region '{health_region_id}' not found")

    offices = store.get_regional_offices(health_region_id)
    return _provision(store, settings, REGIONAL_OFFICE_ACCOUNT, offices, health_region_id=health_region_id)


def create_supervisor_account(
    store: DataStore,
    settings: Settings,
    caller_profile_id: str,
    email: str,
    password: str,
    full_name: str | None = None,
) -> dict[str, Any]:
    """A regional reviewer adds an active supervisor for their own region."""
    caller = _require_caller(store, caller_profile_id, Role.REGIONAL)
    region_id = caller.get("health_region_id")
    if not region_id:
        raise ValidationFailed("Regional user has no health region assigned")
    validate_password(password)

    region = store.health_regions.get(region_id, {})
    profile = create_account(
        store,
        settings,
        email,
        password,
        {
            "role": Role.SUPERVISOR.value,
            "full_name": full_name or f"ผู้นิเทศเขต {region.get('region_number', '')}".strip(),
            "health_region_id": region_id,
            "is_active": True,
        },
    )
    logger.info("supervisor_account_created", profile_id=profile["id"], health_region_id=region_id, created_by=caller["id"])
    return profile
