"""FastAPI dependencies: data store access and the session gate."""

from __future__ import annotations

from typing import Any, Callable

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ctam.config import Settings
from ctam.services.auth import resolve_session
from ctam.store import DataStore, data_store

bearer_scheme = HTTPBearer(auto_error=False)


def get_store() -> DataStore:
    return data_store


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_access_token(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> str:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise HTTPException(status_code=401, detail="กรุณาเข้าสู่ระบบ", headers={"WWW-Authenticate": "Bearer"})
    return credentials.credentials


def get_session_profile(
    access_token: str = Depends(get_access_token),
    store: DataStore = Depends(get_store),
) -> dict[str, Any]:
    """Resolve the bearer token to a profile without checking activation."""
    session = resolve_session(store, access_token)
    if session is None:
        raise HTTPException(
            status_code=401,
            detail="เซสชันหมดอายุ กรุณาเข้าสู่ระบบใหม่",
            headers={"WWW-Authenticate": "Bearer"},
        )
    profile = store.get_profile_by_user_id(session["user_id"])
    if profile is None:
        raise HTTPException(status_code=401, detail="ไม่พบข้อมูลผู้ใช้")
    return profile


def get_current_profile(profile: dict[str, Any] = Depends(get_session_profile)) -> dict[str, Any]:
    """Active profile of the caller; inactive accounts wait for admin approval."""
    if not profile.get("is_active"):
        raise HTTPException(status_code=403, detail="บัญชีของท่านอยู่ระหว่างรอการอนุมัติจากผู้ดูแลระบบ")
    return profile


def require_roles(*roles: str) -> Callable[..., dict[str, Any]]:
    """Dependency factory restricting a route to an allow-list of roles."""
    allowed = {getattr(r, "value", r) for r in roles}

    def _dependency(profile: dict[str, Any] = Depends(get_current_profile)) -> dict[str, Any]:
        if profile.get("role") not in allowed:
            raise HTTPException(status_code=403, detail="ไม่มีสิทธิ์เข้าถึง")
        return profile

    return _dependency
