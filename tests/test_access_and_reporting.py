"""Tests for report access scope and report aggregation."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from ctam.services.access_scope import ReportAccess, find_policy, resolve_user_scope
from ctam.services.reporting import (
    hospital_breakdown,
    is_approved_status,
    latest_by_unit,
    province_breakdown,
    recency_key,
    region_overview,
)

PROVINCES = {
    "p-1": {"id": "p-1", "name": "Chiang Mai", "code": "50", "health_region_id": "r-1"},
    "p-2": {"id": "p-2", "name": "Lamphun", "code": "51", "health_region_id": "r-1"},
    "p-3": {"id": "p-3", "name": "Phitsanulok", "code": "65", "health_region_id": "r-2"},
}
OFFICES = {
    "o-1": {"id": "o-1", "code": "00050", "name": "CM PHO", "province_id": "p-1", "health_region_id": "r-1"},
    "o-2": {"id": "o-2", "code": "00001", "name": "Region 1", "province_id": None, "health_region_id": "r-1"},
}
REGIONS = {
    "r-2": {"id": "r-2", "name": "Region 2", "region_number": 2},
    "r-1": {"id": "r-1", "name": "Region 1", "region_number": 1},
}
HOSPITALS = {
    "h-1": {"id": "h-1", "code": "10713", "name": "Nakornping", "province_id": "p-1"},
    "h-2": {"id": "h-2", "code": "11119", "name": "Sanpatong", "province_id": "p-1"},
    "h-3": {"id": "h-3", "code": "10676", "name": "Buddhachinaraj", "province_id": "p-3"},
}

T0 = datetime(2025, 1, 1, tzinfo=timezone.utc)


def _assessment(unit: str, year: int, period: str, status: str, score: float, created_offset: int = 0) -> dict:
    return {
        "id": f"{unit}-{year}-{period}-{created_offset}",
        "hospital_id": unit if unit.startswith("h-") else None,
        "health_office_id": unit if unit.startswith("o-") else None,
        "fiscal_year": year,
        "assessment_period": period,
        "status": status,
        "quantitative_score": score,
        "qualitative_score": 0.0,
        "impact_score": 0.0,
        "total_score": score,
        "created_at": T0 + timedelta(days=created_offset),
    }


# ─── Scope resolution ────────────────────────────────────────────────────────

class TestResolveUserScope:
    """Province and region derivation for a profile."""

    def test_direct_fields_win(self):
        """Province and region set on the profile are used as is."""
        scope = resolve_user_scope({"province_id": "p-3", "health_region_id": "r-9"}, PROVINCES, OFFICES)
        assert scope == {"province_id": "p-3", "health_region_id": "r-9"}

    def test_region_from_province(self):
        """The region follows from the profile's province."""
        scope = resolve_user_scope({"province_id": "p-2"}, PROVINCES, OFFICES)
        assert scope == {"province_id": "p-2", "health_region_id": "r-1"}

    def test_walks_from_health_office(self):
        """Office staff inherit the office's province and region."""
        scope = resolve_user_scope({"health_office_id": "o-1"}, PROVINCES, OFFICES)
        assert scope == {"province_id": "p-1", "health_region_id": "r-1"}

    def test_regional_office_has_no_province(self):
        """Regional office staff get a region but no province."""
        scope = resolve_user_scope({"health_office_id": "o-2"}, PROVINCES, OFFICES)
        assert scope == {"province_id": None, "health_region_id": "r-1"}

    def test_no_profile(self):
        assert resolve_user_scope(None, PROVINCES, OFFICES) == {"province_id": None, "health_region_id": None}


class TestReportAccess:
    """Drill-down permissions."""

    def test_no_policy_allows_everything(self):
        """Without a policy every drill-down is allowed."""
        access = ReportAccess(None, {"province_id": None, "health_region_id": None}, PROVINCES)
        assert access.can_view_region
        assert access.can_drill_to_province("r-2")
        assert access.can_drill_to_hospital("p-3")

    def test_none_denies(self):
        """A "none" policy blocks the region view and both drill-downs."""
        policy = {"view_region": False, "drill_to_province": "none", "drill_to_hospital": "none"}
        access = ReportAccess(policy, {"province_id": "p-1", "health_region_id": "r-1"}, PROVINCES)
        assert not access.can_view_region
        assert not access.can_drill_to_province("r-1")
        assert not access.can_drill_to_hospital("p-1")

    def test_own_region(self):
        """own_region limits drill-downs to the user's region."""
        policy = {"drill_to_province": "own_region", "drill_to_hospital": "own_region"}
        access = ReportAccess(policy, {"province_id": "p-1", "health_region_id": "r-1"}, PROVINCES)
        assert access.can_drill_to_province("r-1")
        assert not access.can_drill_to_province("r-2")
        assert access.can_drill_to_hospital("p-2")
        assert not access.can_drill_to_hospital("p-3")
        assert not access.can_drill_to_hospital("unknown")

    def test_own_province(self):
        """own_province limits hospital drill-downs to the user's province."""
        policy = {"drill_to_province": "all", "drill_to_hospital": "own_province"}
        access = ReportAccess(policy, {"province_id": "p-1", "health_region_id": "r-1"}, PROVINCES)
        assert access.can_drill_to_hospital("p-1")
        assert not access.can_drill_to_hospital("p-2")

    def test_own_scope_without_scope_denies(self):
        """Scoped policies deny users with no resolved scope."""
        policy = {"drill_to_province": "own_region", "drill_to_hospital": "own_province"}
        access = ReportAccess(policy, {"province_id": None, "health_region_id": None}, PROVINCES)
        assert not access.can_drill_to_province("r-1")
        assert not access.can_drill_to_hospital("p-1")

    def test_find_policy_matches_role_and_type(self):
        policies = [
            {"role": "provincial", "report_type": "overview"},
            {"role": "provincial", "report_type": "impact"},
        ]
        assert find_policy(policies, "provincial", "impact") is policies[1]
        assert find_policy(policies, "regional", "impact") is None

    def test_for_profile_uses_derived_scope(self):
        """The region of a regional office user is derived before checking."""
        policies = [{"role": "health_office", "report_type": "overview", "drill_to_province": "own_region"}]
        access = ReportAccess.for_profile(
            {"role": "health_office", "health_office_id": "o-2"}, "overview", policies, PROVINCES, OFFICES
        )
        assert access.can_drill_to_province("r-1")
        assert not access.can_drill_to_province("r-2")


# ─── Aggregation ─────────────────────────────────────────────────────────────

class TestLatestByUnit:
    """Most recent assessment per hospital or office."""

    def test_fiscal_year_first(self):
        """A later fiscal year wins over a later period."""
        latest = latest_by_unit([
            _assessment("h-1", 2024, "2", "completed", 9.0),
            _assessment("h-1", 2025, "1", "draft", 2.0),
        ])
        assert latest["h-1"]["fiscal_year"] == 2025

    def test_numeric_period_beats_string_order(self):
        """Period "10" sorts after "9"."""
        latest = latest_by_unit([
            _assessment("h-1", 2025, "10", "draft", 1.0),
            _assessment("h-1", 2025, "9", "draft", 2.0),
        ])
        assert latest["h-1"]["assessment_period"] == "10"

    def test_created_at_breaks_ties(self):
        """Same year and period: the newest row wins."""
        latest = latest_by_unit([
            _assessment("h-1", 2025, "1", "draft", 1.0, created_offset=5),
            _assessment("h-1", 2025, "1", "submitted", 2.0, created_offset=1),
        ])
        assert latest["h-1"]["status"] == "draft"

    def test_recency_key_without_numeric_period(self):
        assert recency_key(_assessment("h-1", 2025, "Q", "draft", 0))[1] == -1

    def test_approved_statuses(self):
        """Only regional approval and completion count as approved."""
        assert is_approved_status("approved_regional")
        assert is_approved_status("completed")
        assert not is_approved_status("approved_provincial")
        assert not is_approved_status(None)


class TestRollups:
    """Region, province and hospital roll-ups."""

    ASSESSMENTS = [
        _assessment("h-1", 2025, "1", "completed", 8.0),
        _assessment("h-2", 2025, "1", "submitted", 4.0),
        _assessment("h-3", 2025, "1", "approved_regional", 6.0),
        _assessment("o-2", 2025, "1", "completed", 9.0),
    ]

    def test_region_overview(self):
        """Averages use approved assessments only."""
        rows = region_overview(REGIONS, PROVINCES, HOSPITALS, OFFICES, self.ASSESSMENTS)
        assert [r["id"] for r in rows] == ["r-1", "r-2"]
        region1 = rows[0]
        assert region1["unit_count"] == 4
        assert region1["assessed_count"] == 3
        assert region1["approved_count"] == 2
        assert region1["average_score"] == 8.5
        assert rows[1]["average_score"] == 6.0

    def test_region_without_approvals_has_no_average(self):
        rows = region_overview(REGIONS, PROVINCES, HOSPITALS, OFFICES, [])
        assert all(r["average_score"] is None for r in rows)

    def test_province_breakdown(self):
        """Offices count toward their province; empty provinces still appear."""
        rows = province_breakdown("r-1", PROVINCES, HOSPITALS, OFFICES, self.ASSESSMENTS)
        assert [r["id"] for r in rows] == ["p-1", "p-2"]
        assert rows[0]["unit_count"] == 3
        assert rows[0]["approved_count"] == 1
        assert rows[1]["unit_count"] == 0

    def test_hospital_breakdown(self):
        rows = hospital_breakdown("p-1", HOSPITALS, self.ASSESSMENTS)
        assert [r["code"] for r in rows] == ["10713", "11119"]
        assert rows[0]["status"] == "completed"
        assert rows[1]["total_score"] == 4.0

    def test_hospital_without_assessment(self):
        """Hospitals never assessed are listed with empty fields."""
        rows = hospital_breakdown("p-1", HOSPITALS, [])
        assert rows[0]["assessment_id"] is None
        assert rows[0]["status"] is None
