"""Report access scope: where a user sits and how far they may drill down."""

from __future__ import annotations

from enum import Enum
from typing import Any


class ReportType(str, Enum):
    OVERVIEW = "overview"
    QUANTITATIVE = "quantitative"
    IMPACT = "impact"


class DrillPermission(str, Enum):
    ALL = "all"
    OWN_REGION = "own_region"
    OWN_PROVINCE = "own_province"
    NONE = "none"


def resolve_user_scope(
    profile: dict[str, Any] | None,
    provinces: dict[str, dict[str, Any]],
    health_offices: dict[str, dict[str, Any]],
) -> dict[str, str | None]:
    """Derive the province and health region a profile belongs to.

    Direct fields on the profile win. Otherwise the scope is walked one hop
    at a time: health office -> province -> health region.
    """
    if not profile:
        return {"province_id": None, "health_region_id": None}

    office = health_offices.get(profile.get("health_office_id") or "")

    province_id = profile.get("province_id")
    if not province_id and office:
        province_id = office.get("province_id")

    region_id = profile.get("health_region_id")
    if not region_id and province_id:
        region_id = provinces.get(province_id, {}).get("health_region_id")
    if not region_id and office:
        region_id = office.get("health_region_id")

    return {"province_id": province_id or None, "health_region_id": region_id or None}


def find_policy(
    policies: list[dict[str, Any]],
    role: str | None,
    report_type: ReportType | str,
) -> dict[str, Any] | None:
    report_type = ReportType(report_type).value
    for policy in policies:
        if policy["role"] == role and policy["report_type"] == report_type:
            return policy
    return None


class ReportAccess:
    """Drill-down checks for one user on one report type.

    Without a configured policy every drill-down is allowed.
    """

    def __init__(
        self,
        policy: dict[str, Any] | None,
        scope: dict[str, str | None],
        provinces: dict[str, dict[str, Any]],
    ) -> None:
        self.policy = policy
        self.user_province_id = scope.get("province_id")
        self.user_region_id = scope.get("health_region_id")
        self._provinces = provinces

    @classmethod
    def for_profile(
        cls,
        profile: dict[str, Any],
        report_type: ReportType | str,
        policies: list[dict[str, Any]],
        provinces: dict[str, dict[str, Any]],
        health_offices: dict[str, dict[str, Any]],
    ) -> "ReportAccess":
        policy = find_policy(policies, profile.get("role"), report_type)
        scope = resolve_user_scope(profile, provinces, health_offices)
        return cls(policy, scope, provinces)

    @property
    def can_view_region(self) -> bool:
        if self.policy is None:
            return True
        return bool(self.policy.get("view_region", True))

    def can_drill_to_province(self, region_id: str) -> bool:
        if self.policy is None:
            return True
        permission = self.policy.get("drill_to_province")
        if permission == DrillPermission.NONE.value:
            return False
        if permission == DrillPermission.OWN_REGION.value:
            return self.user_region_id is not None and self.user_region_id == region_id
        return True

    def can_drill_to_hospital(self, province_id: str) -> bool:
        if self.policy is None:
            return True
        permission = self.policy.get("drill_to_hospital")
        if permission == DrillPermission.NONE.value:
            return False
        if permission == DrillPermission.OWN_PROVINCE.value:
            return self.user_province_id is not None and self.user_province_id == province_id
        if permission == DrillPermission.OWN_REGION.value:
            province = self._provinces.get(province_id)
            return (
                province is not None
                and self.user_region_id is not None
                and province.get("health_region_id") == self.user_region_id
            )
        return True
