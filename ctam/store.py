"""In-memory data store for the CTAM+ assessment portal.

Provides a simple data store used during development and testing.
In production, this would be backed by PostgreSQL. Rows are plain
dicts shaped like the SQLAlchemy models in ``ctam.models``.
"""

from __future__ import annotations

import threading
from typing import Any, Callable

from ctam.errors import ConcurrentModification, NotFound, TransitionRejected, ValidationFailed
from ctam.models.base import new_id, utcnow
from ctam.services.workflow import EDITABLE_STATUSES, Transition


class DataStore:
    """Thread-safe in-memory data store for development and testing."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        # Reference data
        self.health_regions: dict[str, dict[str, Any]] = {}
        self.provinces: dict[str, dict[str, Any]] = {}
        self.hospitals: dict[str, dict[str, Any]] = {}
        self.health_offices: dict[str, dict[str, Any]] = {}
        self.categories: dict[str, dict[str, Any]] = {}
        # Identity
        self.profiles: dict[str, dict[str, Any]] = {}
        self.credentials: dict[str, dict[str, Any]] = {}  # email -> {user_id, password_hash}
        self.sessions: dict[str, dict[str, Any]] = {}  # access_token -> session
        self.refresh_tokens: dict[str, dict[str, Any]] = {}  # refresh_token -> session
        # Assessments
        self.assessments: dict[str, dict[str, Any]] = {}
        self.assessment_items: dict[str, dict[str, dict[str, Any]]] = {}  # assessment_id -> category_id -> item
        self.qualitative_scores: dict[str, dict[str, Any]] = {}  # assessment_id -> row
        self.impact_scores: dict[str, dict[str, Any]] = {}  # assessment_id -> row
        self.approval_history: list[dict[str, Any]] = []
        self.report_policies: dict[str, dict[str, Any]] = {}

    def reset(self) -> None:
        """Clear all data. Used in tests."""
        self.__init__()

    # ─── Reference data ──────────────────────────────────────────────────────

    def add_health_region(self, region: dict[str, Any]) -> dict[str, Any]:
        region.setdefault("id", new_id())
        self.health_regions[region["id"]] = region
        return region

    def add_province(self, province: dict[str, Any]) -> dict[str, Any]:
        province.setdefault("id", new_id())
        self.provinces[province["id"]] = province
        return province

    def add_hospital(self, hospital: dict[str, Any]) -> dict[str, Any]:
        hospital.setdefault("id", new_id())
        self.hospitals[hospital["id"]] = hospital
        return hospital

    def add_health_office(self, office: dict[str, Any]) -> dict[str, Any]:
        office.setdefault("id", new_id())
        office.setdefault("province_id", None)
        self.health_offices[office["id"]] = office
        return office

    def add_category(self, category: dict[str, Any]) -> dict[str, Any]:
        category.setdefault("id", new_id())
        self.categories[category["id"]] = category
        return category

    def list_categories(self) -> list[dict[str, Any]]:
        return sorted(self.categories.values(), key=lambda c: c.get("order_number", 0))

    def get_health_offices_in_region(self, health_region_id: str) -> list[dict[str, Any]]:
        """Health offices of one region, ordered by office code."""
        offices = [o for o in self.health_offices.values() if o.get("health_region_id") == health_region_id]
        return sorted(offices, key=lambda o: o.get("code", ""))

    def get_health_offices_in_province(self, province_id: str) -> list[dict[str, Any]]:
        offices = [o for o in self.health_offices.values() if o.get("province_id") == province_id]
        return sorted(offices, key=lambda o: o.get("code", ""))

    def get_regional_offices(self, health_region_id: str | None = None) -> list[dict[str, Any]]:
        """Health offices with no province: the regional health offices."""
        offices = [
            o for o in self.health_offices.values()
            if o.get("province_id") is None and health_region_id in (None, o.get("health_region_id"))
        ]
        return sorted(offices, key=lambda o: o.get("code", ""))

    def get_hospitals_in_province(self, province_id: str) -> list[dict[str, Any]]:
        hospitals = [h for h in self.hospitals.values() if h.get("province_id") == province_id]
        return sorted(hospitals, key=lambda h: h.get("code", ""))

    def get_provinces_in_region(self, health_region_id: str) -> list[dict[str, Any]]:
        provinces = [p for p in self.provinces.values() if p.get("health_region_id") == health_region_id]
        return sorted(provinces, key=lambda p: p.get("code", ""))

    def unit_scope(self, hospital_id: str | None, health_office_id: str | None) -> dict[str, str | None]:
        """Resolve the province and region a hospital or health office belongs to."""
        if hospital_id:
            hospital = self.hospitals.get(hospital_id)
            if hospital is None:
                raise NotFound(f"Hospital '{hospital_id}' not found")
            province = self.provinces.get(hospital["province_id"], {})
            return {"province_id": hospital["province_id"], "health_region_id": province.get("health_region_id")}
        if health_office_id:
            office = self.health_offices.get(health_office_id)
            if office is None:
                raise NotFound(f"Health office '{health_office_id}' not found")
            return {"province_id": office.get("province_id"), "health_region_id": office.get("health_region_id")}
        raise ValidationFailed("An assessment needs a hospital or a health office")

    # ─── Identity ────────────────────────────────────────────────────────────

    def add_profile(self, profile: dict[str, Any]) -> dict[str, Any]:
        profile.setdefault("id", new_id())
        profile.setdefault("user_id", new_id())
        for key in ("full_name", "phone", "hospital_id", "health_office_id", "province_id", "health_region_id"):
            profile.setdefault(key, None)
        profile.setdefault("is_active", False)
        profile.setdefault("created_at", utcnow())
        self.profiles[profile["id"]] = profile
        return profile

    def get_profile_by_user_id(self, user_id: str) -> dict[str, Any] | None:
        for profile in self.profiles.values():
            if profile["user_id"] == user_id:
                return profile
        return None

    def get_profile_by_email(self, email: str) -> dict[str, Any] | None:
        email = email.lower()
        for profile in self.profiles.values():
            if profile["email"].lower() == email:
                return profile
        return None

    def update_profile(self, profile_id: str, changes: dict[str, Any]) -> dict[str, Any]:
        with self._lock:
            profile = self.profiles.get(profile_id)
            if profile is None:
                raise NotFound(f"Profile '{profile_id}' not found")
            profile.update(changes)
            profile["updated_at"] = utcnow()
            return profile

    def add_credential(self, email: str, user_id: str, password_hash: str) -> None:
        with self._lock:
            key = email.lower()
            if key in self.credentials:
                raise ValidationFailed("อีเมลนี้ถูกใช้งานแล้ว")
            self.credentials[key] = {"user_id": user_id, "password_hash": password_hash}

    def get_credential(self, email: str) -> dict[str, Any] | None:
        return self.credentials.get(email.lower())

    def add_session(self, session: dict[str, Any]) -> None:
        with self._lock:
            self.sessions[session["access_token"]] = session
            self.refresh_tokens[session["refresh_token"]] = session

    def get_session(self, access_token: str) -> dict[str, Any] | None:
        return self.sessions.get(access_token)

    def pop_refresh_session(self, refresh_token: str) -> dict[str, Any] | None:
        """Consume a refresh token; the old access token stops working too."""
        with self._lock:
            session = self.refresh_tokens.pop(refresh_token, None)
            if session is not None:
                self.sessions.pop(session["access_token"], None)
            return session

    def remove_session(self, access_token: str) -> None:
        with self._lock:
            session = self.sessions.pop(access_token, None)
            if session is not None:
                self.refresh_tokens.pop(session["refresh_token"], None)

    # ─── Assessments ─────────────────────────────────────────────────────────

    def create_assessment(self, assessment: dict[str, Any]) -> dict[str, Any]:
        """Insert a new draft assessment; one per unit, fiscal year and period."""
        with self._lock:
            for existing in self.assessments.values():
                if (
                    existing.get("hospital_id") == assessment.get("hospital_id")
                    and existing.get("health_office_id") == assessment.get("health_office_id")
                    and existing["fiscal_year"] == assessment["fiscal_year"]
                    and existing["assessment_period"] == assessment["assessment_period"]
                ):
                    raise ValidationFailed("มีแบบประเมินของรอบนี้อยู่แล้ว")
            now = utcnow()
            row = {
                "id": new_id(),
                "status": "draft",
                "quantitative_score": 0.0,
                "qualitative_score": 0.0,
                "impact_score": 0.0,
                "total_score": 0.0,
                "submitted_by": None,
                "submitted_at": None,
                "quantitative_approved_by": None,
                "quantitative_approved_at": None,
                "qualitative_approved_by": None,
                "qualitative_approved_at": None,
                "impact_approved_by": None,
                "impact_approved_at": None,
                "provincial_approved_by": None,
                "provincial_approved_at": None,
                "provincial_comment": None,
                "regional_approved_by": None,
                "regional_approved_at": None,
                "regional_comment": None,
                "version": 1,
                "created_at": now,
                "updated_at": now,
                **assessment,
            }
            self.assessments[row["id"]] = row
            return dict(row)

    def get_assessment(self, assessment_id: str) -> dict[str, Any]:
        """Return a snapshot copy of an assessment row."""
        with self._lock:
            row = self.assessments.get(assessment_id)
            if row is None:
                raise NotFound(f"Assessment '{assessment_id}' not found")
            return dict(row)

    def list_assessments(self, predicate: Callable[[dict[str, Any]], bool] | None = None) -> list[dict[str, Any]]:
        with self._lock:
            rows = [dict(a) for a in self.assessments.values()]
        if predicate is not None:
            rows = [r for r in rows if predicate(r)]
        return sorted(rows, key=lambda r: (r["fiscal_year"], r["assessment_period"], r["created_at"]), reverse=True)

    def transition_assessment(
        self,
        assessment_id: str,
        plan: Callable[[dict[str, Any]], Transition],
        expected_version: int | None = None,
    ) -> tuple[dict[str, Any], Transition]:
        """Compute and apply a workflow transition as one atomic step.

        ``plan`` sees the current row under the store lock, so the
        "are all sections approved" check and the level change it triggers
        cannot interleave with another reviewer's write. When
        ``expected_version`` is given the update only applies if the row is
        still at that version.
        """
        with self._lock:
            row = self.assessments.get(assessment_id)
            if row is None:
                raise NotFound(f"Assessment '{assessment_id}' not found")
            if expected_version is not None and row["version"] != expected_version:
                raise ConcurrentModification("แบบประเมินถูกแก้ไขโดยผู้ใช้อื่น กรุณาโหลดข้อมูลใหม่")

            transition = plan(dict(row))
            now = utcnow()
            row.update(transition.changes)
            row["version"] += 1
            row["updated_at"] = now
            for entry in transition.history:
                self.approval_history.append({"id": new_id(), "assessment_id": assessment_id, "created_at": now, **entry})
            return dict(row), transition

    def update_assessment_scores(self, assessment_id: str, scores: dict[str, Any]) -> dict[str, Any]:
        with self._lock:
            row = self.assessments.get(assessment_id)
            if row is None:
                raise NotFound(f"Assessment '{assessment_id}' not found")
            row.update(scores)
            row["version"] += 1
            row["updated_at"] = utcnow()
            return dict(row)

    def _require_editable(self, assessment_id: str) -> dict[str, Any]:
        row = self.assessments.get(assessment_id)
        if row is None:
            raise NotFound(f"Assessment '{assessment_id}' not found")
        if row["status"] not in {s.value for s in EDITABLE_STATUSES}:
            raise TransitionRejected("แบบประเมินนี้ถูกส่งแล้ว ไม่สามารถแก้ไขได้")
        return row

    def upsert_section_row(self, table: str, assessment_id: str, values: dict[str, Any]) -> dict[str, Any]:
        """Insert or overwrite the qualitative/impact row of an editable assessment.

        Last write wins: concurrent saves from the same facility replace
        each other rather than merge.
        """
        rows: dict[str, dict[str, Any]] = getattr(self, table)
        with self._lock:
            self._require_editable(assessment_id)
            now = utcnow()
            existing = rows.get(assessment_id)
            row = {
                "id": existing["id"] if existing else new_id(),
                "assessment_id": assessment_id,
                "created_at": existing["created_at"] if existing else now,
                **values,
                "updated_at": now,
            }
            rows[assessment_id] = row
            return dict(row)

    def upsert_item(self, assessment_id: str, category_id: str, values: dict[str, Any]) -> dict[str, Any]:
        with self._lock:
            self._require_editable(assessment_id)
            if category_id not in self.categories:
                raise NotFound(f"Category '{category_id}' not found")
            items = self.assessment_items.setdefault(assessment_id, {})
            existing = items.get(category_id)
            now = utcnow()
            item = {
                "id": existing["id"] if existing else new_id(),
                "assessment_id": assessment_id,
                "category_id": category_id,
                "created_at": existing["created_at"] if existing else now,
                **values,
                "updated_at": now,
            }
            items[category_id] = item
            return dict(item)

    def get_items(self, assessment_id: str) -> list[dict[str, Any]]:
        return list(self.assessment_items.get(assessment_id, {}).values())

    def get_history(self, assessment_id: str) -> list[dict[str, Any]]:
        """Approval history of one assessment, oldest first."""
        return [dict(h) for h in self.approval_history if h["assessment_id"] == assessment_id]

    # ─── Report access policies ──────────────────────────────────────────────

    def list_report_policies(self) -> list[dict[str, Any]]:
        return list(self.report_policies.values())

    def upsert_report_policy(self, policy: dict[str, Any]) -> dict[str, Any]:
        """Insert or replace the policy for a (role, report_type) pair."""
        with self._lock:
            for existing in self.report_policies.values():
                if existing["role"] == policy["role"] and existing["report_type"] == policy["report_type"]:
                    existing.update(policy, updated_at=utcnow())
                    return dict(existing)
            row = {"id": new_id(), "created_at": utcnow(), "view_same_province_hospitals": False, **policy}
            self.report_policies[row["id"]] = row
            return dict(row)

    def delete_report_policy(self, policy_id: str) -> None:
        with self._lock:
            if self.report_policies.pop(policy_id, None) is None:
                raise NotFound(f"Report access policy '{policy_id}' not found")


# Global singleton, reset between tests
data_store = DataStore()
