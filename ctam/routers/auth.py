"""Authentication and profile settings endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException

from ctam.config import Settings
from ctam.dependencies import (
    get_access_token,
    get_app_settings,
    get_current_profile,
    get_session_profile,
    get_store,
)
from ctam.errors import NotAuthorized
from ctam.schemas.auth import (
    LoginRequest,
    ProfileResponse,
    ProfileUpdateRequest,
    RefreshRequest,
    RegisterRequest,
    SessionResponse,
)
from ctam.services import auth
from ctam.store import DataStore

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=ProfileResponse, status_code=201)
async def register(
    body: RegisterRequest,
    store: DataStore = Depends(get_store),
    settings: Settings = Depends(get_app_settings),
) -> ProfileResponse:
    """Self-register; the new account stays inactive until a central admin approves it."""
    profile = auth.register(
        store,
        settings,
        body.email,
        body.password,
        body.confirm_password,
        body.full_name,
        body.phone,
    )
    return ProfileResponse(**profile)


@router.post("/login", response_model=SessionResponse)
async def login(
    body: LoginRequest,
    store: DataStore = Depends(get_store),
    settings: Settings = Depends(get_app_settings),
) -> SessionResponse:
    try:
        session = auth.sign_in(store, settings, body.email, body.password)
    except NotAuthorized as exc:
        raise HTTPException(status_code=401, detail=exc.message) from exc
    return SessionResponse(**session)


@router.post("/refresh", response_model=SessionResponse)
async def refresh(
    body: RefreshRequest,
    store: DataStore = Depends(get_store),
    settings: Settings = Depends(get_app_settings),
) -> SessionResponse:
    """Exchange a refresh token for a new session."""
    try:
        session = auth.refresh_session(store, settings, body.refresh_token)
    except NotAuthorized as exc:
        raise HTTPException(status_code=401, detail=exc.message) from exc
    return SessionResponse(**session)


@router.post("/logout")
async def logout(
    access_token: str = Depends(get_access_token),
    store: DataStore = Depends(get_store),
) -> dict[str, str]:
    auth.sign_out(store, access_token)
    return {"status": "signed_out"}


@router.get("/me", response_model=ProfileResponse)
async def get_me(profile: dict[str, Any] = Depends(get_session_profile)) -> ProfileResponse:
    """Current profile; inactive users can read it to see their approval state."""
    return ProfileResponse(**profile)


@router.put("/me", response_model=ProfileResponse)
async def update_me(
    body: ProfileUpdateRequest,
    profile: dict[str, Any] = Depends(get_current_profile),
    store: DataStore = Depends(get_store),
) -> ProfileResponse:
    updated = auth.update_own_profile(store, profile, body.full_name, body.phone)
    return ProfileResponse(**updated)
