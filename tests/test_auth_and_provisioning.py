"""Tests for authentication, profile management and account provisioning."""

from __future__ import annotations

from datetime import timedelta

import pytest

from ctam.errors import NotAuthorized, NotFound, ValidationFailed
from ctam.models.base import utcnow
from ctam.services.auth import (
    admin_update_profile,
    hash_password,
    normalize_thai_mobile,
    refresh_session,
    register,
    resolve_session,
    sign_in,
    sign_out,
    update_own_profile,
    validate_password,
    verify_password,
)
from ctam.services.provisioning import (
    create_supervisor_account,
    provision_health_office_users,
    provision_hospital_users,
    provision_provincial_users,
    provision_regional_office_users,
)
from ctam.store import data_store


class TestPasswords:
    """bcrypt hashing and password rules."""

    def test_hash_and_verify(self):
        """bcrypt hashes verify only the original password."""
        hashed = hash_password("correct horse", rounds=4)
        assert hashed != "correct horse"
        assert verify_password("correct horse", hashed)
        assert not verify_password("wrong", hashed)

    def test_empty_hash_never_verifies(self):
        """A missing hash never matches."""
        assert not verify_password("anything", "")

    def test_minimum_length(self):
        """Passwords need at least six characters."""
        with pytest.raises(ValidationFailed):
            validate_password("12345", "12345")
        validate_password("123456", "123456")

    def test_confirmation_must_match(self):
        """Confirmation mismatches are rejected."""
        with pytest.raises(ValidationFailed, match="ไม่ตรงกัน"):
            validate_password("abcdef", "abcdeg")


class TestThaiMobile:
    """Phone normalisation."""

    @pytest.mark.parametrize("raw,expected", [
        ("081-234-5678", "0812345678"),
        ("09 1234 5678", "0912345678"),
        ("+66 61 234 5678", "0612345678"),
        ("(086) 123.4567", "0861234567"),
    ])
    def test_valid_numbers(self, raw, expected):
        """Separators are stripped from valid mobiles."""
        assert normalize_thai_mobile(raw) == expected

    @pytest.mark.parametrize("raw", ["02-123-4567", "0812345", "08123456789", "abc"])
    def test_invalid_numbers(self, raw):
        """Landlines and malformed numbers are rejected."""
        with pytest.raises(ValidationFailed):
            normalize_thai_mobile(raw)

    def test_empty_means_no_phone(self):
        assert normalize_thai_mobile(None) is None
        assert normalize_thai_mobile("  ") is None


class TestRegistrationAndSessions:
    """Register, sign in, refresh and sign out."""

    def test_register_creates_inactive_hospital_user(self, settings):
        """Registration waits for admin approval."""
        profile = register(data_store, settings, "New@Hospital.test", "pass1234", "pass1234", "Somchai", "0812345678")
        assert profile["role"] == "hospital_it"
        assert profile["is_active"] is False
        assert profile["email"] == "new@hospital.test"
        assert profile["phone"] == "0812345678"

    def test_register_duplicate_email(self, settings):
        """Each email registers once."""
        register(data_store, settings, "dup@hospital.test", "pass1234", "pass1234", "A")
        with pytest.raises(ValidationFailed):
            register(data_store, settings, "DUP@hospital.test", "pass1234", "pass1234", "B")

    def test_sign_in_wrong_password(self, settings):
        register(data_store, settings, "a@hospital.test", "pass1234", "pass1234", "A")
        with pytest.raises(NotAuthorized):
            sign_in(data_store, settings, "a@hospital.test", "nope")

    def test_sign_in_unknown_email(self, settings):
        with pytest.raises(NotAuthorized):
            sign_in(data_store, settings, "ghost@hospital.test", "whatever")

    def test_session_lifecycle(self, settings):
        """Sign-in, refresh and sign-out move the session along."""
        register(data_store, settings, "a@hospital.test", "pass1234", "pass1234", "A")
        session = sign_in(data_store, settings, "a@hospital.test", "pass1234")
        assert resolve_session(data_store, session["access_token"]) is not None

        renewed = refresh_session(data_store, settings, session["refresh_token"])
        assert renewed["access_token"] != session["access_token"]
        assert resolve_session(data_store, session["access_token"]) is None
        with pytest.raises(NotAuthorized):
            refresh_session(data_store, settings, session["refresh_token"])

        sign_out(data_store, renewed["access_token"])
        assert resolve_session(data_store, renewed["access_token"]) is None

    def test_expired_session_not_resolved(self, settings):
        """Expired access tokens resolve to nothing."""
        register(data_store, settings, "a@hospital.test", "pass1234", "pass1234", "A")
        session = sign_in(data_store, settings, "a@hospital.test", "pass1234")
        later = utcnow() + timedelta(seconds=settings.access_token_ttl_seconds + 1)
        assert resolve_session(data_store, session["access_token"], now=later) is None


class TestProfileUpdates:
    """Own profile settings and central admin management."""

    def test_update_own_profile(self, users):
        """Users change their own name and phone."""
        profile = users["hospital"]["profile"]
        updated = update_own_profile(data_store, profile, "  สมชาย ใจดี ", "089-999-8888")
        assert updated["full_name"] == "สมชาย ใจดี"
        assert updated["phone"] == "0899998888"

    def test_blank_name_rejected(self, users):
        """A blank name is refused."""
        with pytest.raises(ValidationFailed):
            update_own_profile(data_store, users["hospital"]["profile"], "   ", None)

    def test_admin_activates_user(self, users):
        """Central admins activate pending users."""
        pending = users["pending"]["profile"]
        updated = admin_update_profile(data_store, users["admin"]["profile"], pending["id"], {"is_active": True})
        assert updated["is_active"] is True

    def test_admin_cannot_set_unknown_role(self, users):
        """Roles must be known."""
        with pytest.raises(ValidationFailed):
            admin_update_profile(data_store, users["admin"]["profile"], users["pending"]["profile"]["id"], {"role": "root"})

    def test_admin_ignores_non_editable_fields(self, users):
        """Email is not editable through the admin update."""
        pending = users["pending"]["profile"]
        updated = admin_update_profile(
            data_store, users["admin"]["profile"], pending["id"], {"email": "x@y.test", "role": "provincial"}
        )
        assert updated["email"] == "new@nakornping.test"
        assert updated["role"] == "provincial"

    def test_non_admin_rejected(self, users):
        """Only central admins update other profiles."""
        with pytest.raises(NotAuthorized):
            admin_update_profile(data_store, users["regional"]["profile"], users["pending"]["profile"]["id"], {})


# ─── Provisioning ────────────────────────────────────────────────────────────

class TestHealthOfficeProvisioning:
    """Batch creation of health-office accounts."""

    def test_creates_one_inactive_account_per_office(self, settings, users, seed):
        """Every office of the region gets a pending account named after its code."""
        result = provision_health_office_users(data_store, settings, users["admin"]["profile"]["id"], seed["region1"])

        assert result["total_units"] == 2
        assert [r["unit_code"] for r in result["results"]] == ["00001", "00050"]
        assert all(r["status"] == "success" for r in result["results"])

        profile = data_store.get_profile_by_email("00050@ctam.moph")
        assert profile["role"] == "health_office"
        assert profile["is_active"] is False
        assert profile["health_office_id"] == seed["office_provincial"]
        assert profile["province_id"] == seed["province_cm"]
        assert profile["health_region_id"] == seed["region1"]
        assert sign_in(data_store, settings, "00050@ctam.moph", "00050")

    def test_existing_accounts_are_skipped(self, settings, users, seed):
        """A second run skips every existing account."""
        caller = users["admin"]["profile"]["id"]
        provision_health_office_users(data_store, settings, caller, seed["region1"])
        second = provision_health_office_users(data_store, settings, caller, seed["region1"])
        assert [r["status"] for r in second["results"]] == ["skipped", "skipped"]

    def test_results_never_contain_passwords(self, settings, users, seed):
        result = provision_health_office_users(data_store, settings, users["admin"]["profile"]["id"], seed["region1"])
        assert all("password" not in r for r in result["results"])

    def test_region_without_offices(self, settings, users, seed):
        """A region with no offices yields an empty batch."""
        result = provision_health_office_users(data_store, settings, users["admin"]["profile"]["id"], seed["region2"])
        assert result == {"total_units": 0, "results": []}

    def test_non_admin_rejected(self, settings, users, seed):
        """Regional reviewers cannot run the region-wide office batch."""
        with pytest.raises(NotAuthorized):
            provision_health_office_users(data_store, settings, users["regional"]["profile"]["id"], seed["region1"])

    def test_deactivated_admin_rejected(self, settings, users, seed):
        """The stored profile decides, not the caller's session."""
        admin_id = users["admin"]["profile"]["id"]
        data_store.update_profile(admin_id, {"is_active": False})
        with pytest.raises(NotAuthorized):
            provision_health_office_users(data_store, settings, admin_id, seed["region1"])

    def test_unknown_region(self, settings, users):
        with pytest.raises(NotFound):
            provision_health_office_users(data_store, settings, users["admin"]["profile"]["id"], "missing")

    def test_admin_must_name_region(self, settings, users):
        with pytest.raises(ValidationFailed):
            provision_health_office_users(data_store, settings, users["admin"]["profile"]["id"])

    def test_provincial_gets_own_province_offices(self, settings, users, seed):
        """A provincial reviewer provisions only the offices of their province."""
        result = provision_health_office_users(data_store, settings, users["provincial"]["profile"]["id"])
        assert [r["unit_code"] for r in result["results"]] == ["00050"]

    def test_existing_account_gets_province_backfilled(self, settings, users, seed):
        """An office account created without a province picks it up on the next run."""
        caller = users["admin"]["profile"]["id"]
        provision_health_office_users(data_store, settings, caller, seed["region1"])
        profile = data_store.get_profile_by_email("00050@ctam.moph")
        data_store.update_profile(profile["id"], {"province_id": None})

        result = provision_health_office_users(data_store, settings, users["provincial"]["profile"]["id"])
        assert result["results"][0]["status"] == "skipped"
        assert data_store.get_profile_by_email("00050@ctam.moph")["province_id"] == seed["province_cm"]


class TestHospitalProvisioning:
    """Hospital IT accounts per province."""

    def test_admin_provisions_named_province(self, settings, users, seed):
        """Hospital accounts are pending and scoped to hospital and province."""
        result = provision_hospital_users(data_store, settings, users["admin"]["profile"]["id"], seed["province_cm"])
        assert [r["unit_code"] for r in result["results"]] == ["10713", "11119"]

        profile = data_store.get_profile_by_email("11119@ctam.moph")
        assert profile["role"] == "hospital_it"
        assert profile["hospital_id"] == seed["hospital_b"]
        assert profile["province_id"] == seed["province_cm"]
        assert profile["full_name"] == "IT Sanpatong Hospital"
        assert profile["is_active"] is False

    def test_provincial_uses_own_province(self, settings, users, seed):
        """The request's province is ignored in favour of the caller's."""
        result = provision_hospital_users(data_store, settings, users["other_provincial"]["profile"]["id"])
        assert [r["unit_code"] for r in result["results"]] == ["10676"]

    def test_provincial_cannot_name_another_province(self, settings, users, seed):
        """Provincial callers cannot reach another province."""
        with pytest.raises(NotAuthorized):
            provision_hospital_users(
                data_store, settings, users["provincial"]["profile"]["id"], seed["province_pl"]
            )

    def test_provincial_without_province(self, settings, make_user, seed):
        """A provincial caller with no province cannot provision."""
        caller = make_user("review@nowhere.test", "provincial")
        with pytest.raises(ValidationFailed):
            provision_hospital_users(data_store, settings, caller["profile"]["id"])

    def test_admin_must_name_province(self, settings, users):
        with pytest.raises(ValidationFailed):
            provision_hospital_users(data_store, settings, users["admin"]["profile"]["id"])

    def test_regional_rejected(self, settings, users, seed):
        """Regional reviewers do not provision hospitals."""
        with pytest.raises(NotAuthorized):
            provision_hospital_users(data_store, settings, users["regional"]["profile"]["id"], seed["province_cm"])


class TestReviewerProvisioning:
    """Provincial, regional-office and supervisor accounts."""

    def test_provincial_accounts_per_province(self, settings, users, seed):
        """Provinces of the region get provincial.<code> accounts with a prov<code> password."""
        result = provision_provincial_users(data_store, settings, users["admin"]["profile"]["id"], seed["region1"])
        assert [r["email"] for r in result["results"]] == ["provincial.50@ctam.moph", "provincial.51@ctam.moph"]

        profile = data_store.get_profile_by_email("provincial.51@ctam.moph")
        assert profile["role"] == "provincial"
        assert profile["province_id"] == seed["province_lp"]
        assert profile["is_active"] is False
        data_store.update_profile(profile["id"], {"is_active": True})
        assert sign_in(data_store, settings, "provincial.51@ctam.moph", "prov51")

    def test_regional_provisions_own_region_only(self, settings, users, seed):
        """Regional reviewers provision their own region only."""
        caller = users["regional"]["profile"]["id"]
        assert provision_provincial_users(data_store, settings, caller, seed["region1"])["total_units"] == 2
        with pytest.raises(NotAuthorized):
            provision_provincial_users(data_store, settings, caller, seed["region2"])

    def test_regional_offices_start_active(self, settings, users, seed):
        """Only offices without a province are regional offices."""
        result = provision_regional_office_users(data_store, settings, users["admin"]["profile"]["id"])
        assert [r["unit_code"] for r in result["results"]] == ["00001"]

        profile = data_store.get_profile_by_email("00001@ctam.moph")
        assert profile["is_active"] is True
        assert profile["province_id"] is None
        assert profile["health_office_id"] == seed["office_regional"]

    def test_regional_offices_need_central_admin(self, settings, users):
        with pytest.raises(NotAuthorized):
            provision_regional_office_users(data_store, settings, users["regional"]["profile"]["id"])

    def test_supervisor_inherits_caller_region(self, settings, users, seed):
        """Supervisors are active and copy the caller's region."""
        profile = create_supervisor_account(
            data_store, settings, users["regional"]["profile"]["id"], "watch@region1.test", "watch-pass"
        )
        assert profile["role"] == "supervisor"
        assert profile["is_active"] is True
        assert profile["health_region_id"] == seed["region1"]
        assert profile["full_name"] == "ผู้นิเทศเขต 1"

    def test_supervisor_rules(self, settings, users):
        """Short passwords, taken emails and non-regional callers are refused."""
        caller = users["regional"]["profile"]["id"]
        with pytest.raises(ValidationFailed):
            create_supervisor_account(data_store, settings, caller, "watch@region1.test", "123")
        with pytest.raises(ValidationFailed):
            create_supervisor_account(data_store, settings, caller, "review@cmpho.test", "watch-pass")
        with pytest.raises(NotAuthorized):
            create_supervisor_account(
                data_store, settings, users["admin"]["profile"]["id"], "watch@region1.test", "watch-pass"
            )
