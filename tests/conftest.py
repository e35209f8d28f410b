"""Shared test fixtures for the CTAM+ portal test suite."""

from __future__ import annotations

from typing import Any

import pytest
from fastapi.testclient import TestClient

from ctam.app import create_app
from ctam.config import Settings
from ctam.services import assessments as assessment_service
from ctam.services.auth import create_account, sign_in
from ctam.store import data_store

PASSWORD = "secret-pass"


def _test_settings() -> Settings:
    """Return settings suitable for testing."""
    return Settings(
        environment="development",
        debug=True,
        log_format="console",
        rate_limit_default="1000/minute",
        allowed_origins="http://localhost:5173,http://localhost:3000",
        password_hash_rounds=4,
    )


@pytest.fixture
def settings():
    """Test settings."""
    return _test_settings()


@pytest.fixture
def app(settings):
    """Create a fresh FastAPI app for testing."""
    return create_app(settings)


@pytest.fixture
def client(app):
    """HTTP test client."""
    return TestClient(app)


@pytest.fixture(autouse=True)
def reset_store():
    """Reset the global data store before each test."""
    data_store.reset()
    yield
    data_store.reset()


@pytest.fixture
def seed(reset_store) -> dict[str, str]:
    """Two health regions with provinces, hospitals, offices and four categories."""
    ids: dict[str, str] = {}
    ids["region1"] = data_store.add_health_region({"name": "เขตสุขภาพที่ 1", "region_number": 1})["id"]
    ids["region2"] = data_store.add_health_region({"name": "เขตสุขภาพที่ 2", "region_number": 2})["id"]

    ids["province_cm"] = data_store.add_province(
        {"name": "เชียงใหม่", "code": "50", "health_region_id": ids["region1"]}
    )["id"]
    ids["province_lp"] = data_store.add_province(
        {"name": "ลำพูน", "code": "51", "health_region_id": ids["region1"]}
    )["id"]
    ids["province_pl"] = data_store.add_province(
        {"name": "พิษณุโลก", "code": "65", "health_region_id": ids["region2"]}
    )["id"]

    ids["hospital_a"] = data_store.add_hospital({
        "name": "Nakornping Hospital", "code": "10713", "hospital_type": "general", "province_id": ids["province_cm"],
    })["id"]
    ids["hospital_b"] = data_store.add_hospital({
        "name": "Sanpatong Hospital", "code": "11119", "hospital_type": "community", "province_id": ids["province_cm"],
    })["id"]
    ids["hospital_c"] = data_store.add_hospital({
        "name": "Buddhachinaraj Hospital", "code": "10676", "hospital_type": "regional", "province_id": ids["province_pl"],
    })["id"]

    ids["office_provincial"] = data_store.add_health_office({
        "name": "สำนักงานสาธารณสุขจังหวัดเชียงใหม่",
        "code": "00050",
        "office_type": "provincial",
        "province_id": ids["province_cm"],
        "health_region_id": ids["region1"],
    })["id"]
    ids["office_regional"] = data_store.add_health_office({
        "name": "สำนักงานเขตสุขภาพที่ 1",
        "code": "00001",
        "office_type": "regional",
        "province_id": None,
        "health_region_id": ids["region1"],
    })["id"]

    for number, code in enumerate(["GOV", "NET", "END", "BAK"], start=1):
        ids[f"category_{code.lower()}"] = data_store.add_category({
            "code": code,
            "name_th": f"หมวด {code}",
            "name_en": code,
            "order_number": number,
        })["id"]
    return ids


@pytest.fixture
def make_user(settings):
    """Factory creating an account, optionally active, and signing it in."""

    def _make(email: str, role: str, active: bool = True, **scope: Any) -> dict[str, Any]:
        profile = create_account(data_store, settings, email, PASSWORD, {"role": role, "full_name": email, **scope})
        if active:
            data_store.update_profile(profile["id"], {"is_active": True})
        session = sign_in(data_store, settings, email, PASSWORD)
        return {
            "profile": profile,
            "session": session,
            "headers": {"Authorization": f"Bearer {session['access_token']}"},
        }

    return _make


@pytest.fixture
def users(seed, make_user) -> dict[str, dict[str, Any]]:
    """One active user per role, scoped to region 1 unless named otherwise."""
    return {
        "hospital": make_user("it@nakornping.test", "hospital_it", hospital_id=seed["hospital_a"]),
        "other_hospital": make_user("it@buddhachinaraj.test", "hospital_it", hospital_id=seed["hospital_c"]),
        "health_office": make_user(
            "it@cmpho.test",
            "health_office",
            health_office_id=seed["office_provincial"],
            province_id=seed["province_cm"],
            health_region_id=seed["region1"],
        ),
        "provincial": make_user("review@cmpho.test", "provincial", province_id=seed["province_cm"]),
        "other_provincial": make_user("review@plkpho.test", "provincial", province_id=seed["province_pl"]),
        "regional": make_user("review@region1.test", "regional", health_region_id=seed["region1"]),
        "other_regional": make_user("review@region2.test", "regional", health_region_id=seed["region2"]),
        "admin": make_user("admin@moph.test", "central_admin"),
        "supervisor": make_user("supervisor@region1.test", "supervisor", health_region_id=seed["region1"]),
        "pending": make_user("new@nakornping.test", "hospital_it", active=False, hospital_id=seed["hospital_a"]),
    }


@pytest.fixture
def draft_assessment(users) -> dict[str, Any]:
    """A draft assessment of hospital A for fiscal year 2025, period 1."""
    return assessment_service.create_assessment(data_store, users["hospital"]["profile"], 2025, "1")


@pytest.fixture
def submitted_assessment(users, draft_assessment) -> dict[str, Any]:
    assessment, _ = assessment_service.submit(data_store, users["hospital"]["profile"], draft_assessment["id"])
    return assessment
