"""Authentication: credentials, sessions and profile validation."""

from __future__ import annotations

import re
import secrets
from datetime import datetime, timedelta
from typing import Any

import bcrypt
import structlog

from ctam.config import Settings
from ctam.errors import NotAuthorized, ValidationFailed
from ctam.models.base import new_id, utcnow
from ctam.services.workflow import Role
from ctam.store import DataStore

logger = structlog.get_logger()

MIN_PASSWORD_LENGTH = 6
THAI_MOBILE = re.compile(r"^0[689]\d{8}$")
_PHONE_SEPARATORS = re.compile(r"[\s\-().]")


def hash_password(plain_password: str, rounds: int = 12) -> str:
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(plain_password.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain_password: str, password_hash: str) -> bool:
    if not password_hash:
        return False
    return bcrypt.checkpw(plain_password.encode("utf-8"), password_hash.encode("utf-8"))


def normalize_thai_mobile(phone: str | None) -> str | None:
    """Strip separators and validate a Thai mobile number; empty input means no phone."""
    if phone is None or not phone.strip():
        return None
    digits = _PHONE_SEPARATORS.sub("", phone.strip())
    if digits.startswith("+66"):
        digits = "0" + digits[3:]
    if not THAI_MOBILE.match(digits):
        raise ValidationFailed("เบอร์โทรศัพท์มือถือไม่ถูกต้อง (เช่น 081-234-5678)")
    return digits


def validate_password(password: str, confirm_password: str | None = None) -> None:
    if confirm_password is not None and password != confirm_password:
        raise ValidationFailed("รหัสผ่านไม่ตรงกัน")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationFailed(f"รหัสผ่านต้องมีอย่างน้อย {MIN_PASSWORD_LENGTH} ตัวอักษร")


def create_account(
    store: DataStore,
    settings: Settings,
    email: str,
    password: str,
    profile_fields: dict[str, Any],
) -> dict[str, Any]:
    """Store a credential and its profile. New accounts start inactive."""
    user_id = new_id()
    store.add_credential(email, user_id, hash_password(password, settings.password_hash_rounds))
    return store.add_profile({
        "user_id": user_id,
        "email": email.lower(),
        "is_active": False,
        **profile_fields,
    })


def register(
    store: DataStore,
    settings: Settings,
    email: str,
    password: str,
    confirm_password: str,
    full_name: str,
    phone: str | None = None,
) -> dict[str, Any]:
    validate_password(password, confirm_password)
    profile = create_account(
        store,
        settings,
        email,
        password,
        {"full_name": full_name, "phone": normalize_thai_mobile(phone), "role": Role.HOSPITAL_IT.value},
    )
    logger.info("user_registered", profile_id=profile["id"])
    return profile


def _issue_session(store: DataStore, settings: Settings, user_id: str) -> dict[str, Any]:
    now = utcnow()
    session = {
        "access_token": secrets.token_urlsafe(32),
        "refresh_token": secrets.token_urlsafe(32),
        "user_id": user_id,
        "expires_at": now + timedelta(seconds=settings.access_token_ttl_seconds),
        "refresh_expires_at": now + timedelta(seconds=settings.refresh_token_ttl_seconds),
    }
    store.add_session(session)
    return session


def sign_in(store: DataStore, settings: Settings, email: str, password: str) -> dict[str, Any]:
    credential = store.get_credential(email)
    if credential is None or not verify_password(password, credential["password_hash"]):
        logger.info("sign_in_failed")
        raise NotAuthorized("อีเมลหรือรหัสผ่านไม่ถูกต้อง")
    session = _issue_session(store, settings, credential["user_id"])
    logger.info("sign_in_succeeded", user_id=credential["user_id"])
    return session


def refresh_session(store: DataStore, settings: Settings, refresh_token: str) -> dict[str, Any]:
    """Exchange a refresh token for a new session (refresh tokens are single use)."""
    session = store.pop_refresh_session(refresh_token)
    if session is None or session["refresh_expires_at"] <= utcnow():
        raise NotAuthorized("เซสชันหมดอายุ กรุณาเข้าสู่ระบบใหม่")
    return _issue_session(store, settings, session["user_id"])


def sign_out(store: DataStore, access_token: str) -> None:
    store.remove_session(access_token)


def resolve_session(store: DataStore, access_token: str, now: datetime | None = None) -> dict[str, Any] | None:
    """Return the live session for a bearer token, or None when unknown or expired."""
    session = store.get_session(access_token)
    if session is None:
        return None
    if session["expires_at"] <= (now or utcnow()):
        return None
    return session


def update_own_profile(
    store: DataStore,
    profile: dict[str, Any],
    full_name: str | None,
    phone: str | None,
) -> dict[str, Any]:
    changes: dict[str, Any] = {"phone": normalize_thai_mobile(phone)}
    if full_name is not None:
        if not full_name.strip():
            raise ValidationFailed("กรุณาระบุชื่อ-นามสกุล")
        changes["full_name"] = full_name.strip()
    return store.update_profile(profile["id"], changes)


ADMIN_EDITABLE_FIELDS = (
    "role",
    "is_active",
    "hospital_id",
    "health_office_id",
    "province_id",
    "health_region_id",
)


def admin_update_profile(
    store: DataStore,
    admin: dict[str, Any],
    profile_id: str,
    changes: dict[str, Any],
) -> dict[str, Any]:
    """Central admin activates users and assigns their role and scope."""
    if admin.get("role") != Role.CENTRAL_ADMIN.value:
        raise NotAuthorized("ต้องเป็นผู้ดูแลระบบส่วนกลาง")
    update = {k: v for k, v in changes.items() if k in ADMIN_EDITABLE_FIELDS}
    if "role" in update:
        try:
            Role(update["role"])
        except ValueError:
            raise ValidationFailed(f"บทบาท '{update['role']}' ไม่ถูกต้อง") from None
    profile = store.update_profile(profile_id, update)
    logger.info("profile_updated_by_admin", profile_id=profile_id, admin_id=admin["id"], fields=sorted(update))
    return profile
