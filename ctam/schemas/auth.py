"""Schemas for authentication and profile endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
    email: str
    password: str


class RefreshRequest(BaseModel):
    refresh_token: str


class RegisterRequest(BaseModel):
    """Self-registration; the account waits for admin activation."""

    email: str = Field(..., pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    password: str
    confirm_password: str
    full_name: str = Field(..., min_length=1, max_length=255)
    phone: str | None = None


class SessionResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_at: datetime


class ProfileResponse(BaseModel):
    """A user profile with its organisational scope."""

    id: str
    user_id: str
    email: str
    full_name: str | None = None
    phone: str | None = None
    role: str
    is_active: bool
    hospital_id: str | None = None
    health_office_id: str | None = None
    province_id: str | None = None
    health_region_id: str | None = None


class ProfileUpdateRequest(BaseModel):
    full_name: str | None = None
    phone: str | None = None


class AdminProfileUpdateRequest(BaseModel):
    """Fields a central admin may change on another user's profile."""

    role: str | None = None
    is_active: bool | None = None
    hospital_id: str | None = None
    health_office_id: str | None = None
    province_id: str | None = None
    health_region_id: str | None = None
