"""API tests for authentication, the session gate and profile settings."""

from __future__ import annotations

from ctam.store import data_store

PASSWORD = "secret-pass"


# ─── Registration ────────────────────────────────────────────────────────────

class TestRegisterEndpoint:
    """POST /api/auth/register."""

    def test_register_pending_account(self, client):
        """Self-registration creates an inactive hospital IT account."""
        response = client.post("/api/auth/register", json={
            "email": "nurse@hospital.test",
            "password": "abc123",
            "confirm_password": "abc123",
            "full_name": "Nurse Joy",
            "phone": "081-234-5678",
        })
        assert response.status_code == 201
        data = response.json()
        assert data["is_active"] is False
        assert data["role"] == "hospital_it"
        assert data["phone"] == "0812345678"

    def test_short_password(self, client):
        """Passwords under six characters are rejected."""
        response = client.post("/api/auth/register", json={
            "email": "nurse@hospital.test",
            "password": "abc",
            "confirm_password": "abc",
            "full_name": "Nurse Joy",
        })
        assert response.status_code == 422

    def test_mismatched_confirmation(self, client):
        """The confirmation must match the password."""
        response = client.post("/api/auth/register", json={
            "email": "nurse@hospital.test",
            "password": "abc123",
            "confirm_password": "abc124",
            "full_name": "Nurse Joy",
        })
        assert response.status_code == 422
        assert response.json()["detail"] == "รหัสผ่านไม่ตรงกัน"

    def test_invalid_email(self, client):
        response = client.post("/api/auth/register", json={
            "email": "not-an-email",
            "password": "abc123",
            "confirm_password": "abc123",
            "full_name": "Nurse Joy",
        })
        assert response.status_code == 422

    def test_bad_phone(self, client):
        """Phone numbers must be Thai mobiles."""
        response = client.post("/api/auth/register", json={
            "email": "nurse@hospital.test",
            "password": "abc123",
            "confirm_password": "abc123",
            "full_name": "Nurse Joy",
            "phone": "02-123-4567",
        })
        assert response.status_code == 422


# ─── Sessions ────────────────────────────────────────────────────────────────

class TestSessionEndpoints:
    """Login, refresh and logout."""

    def test_login(self, client, users):
        """Login returns a bearer session."""
        response = client.post("/api/auth/login", json={"email": "admin@moph.test", "password": PASSWORD})
        assert response.status_code == 200
        data = response.json()
        assert data["token_type"] == "bearer"
        assert data["access_token"]
        assert data["refresh_token"]
        assert data["expires_at"]

    def test_login_wrong_password(self, client, users):
        response = client.post("/api/auth/login", json={"email": "admin@moph.test", "password": "nope"})
        assert response.status_code == 401

    def test_refresh(self, client, users):
        """Refreshing retires the previous access token."""
        refresh_token = users["admin"]["session"]["refresh_token"]
        response = client.post("/api/auth/refresh", json={"refresh_token": refresh_token})
        assert response.status_code == 200
        new_headers = {"Authorization": f"Bearer {response.json()['access_token']}"}
        assert client.get("/api/auth/me", headers=new_headers).status_code == 200
        assert client.get("/api/auth/me", headers=users["admin"]["headers"]).status_code == 401

    def test_refresh_unknown_token(self, client):
        response = client.post("/api/auth/refresh", json={"refresh_token": "bogus"})
        assert response.status_code == 401

    def test_logout(self, client, users):
        """Signing out invalidates the token."""
        headers = users["supervisor"]["headers"]
        assert client.post("/api/auth/logout", headers=headers).status_code == 200
        assert client.get("/api/auth/me", headers=headers).status_code == 401


# ─── Session gate ────────────────────────────────────────────────────────────

class TestSessionGate:
    """Bearer token and activation checks."""

    def test_missing_token(self, client, users):
        """Requests without a bearer token get 401."""
        response = client.get("/api/assessments")
        assert response.status_code == 401

    def test_unknown_token(self, client, users):
        response = client.get("/api/assessments", headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401

    def test_inactive_user_blocked(self, client, users):
        """Pending accounts cannot use the portal."""
        response = client.get("/api/assessments", headers=users["pending"]["headers"])
        assert response.status_code == 403
        assert "รอการอนุมัติ" in response.json()["detail"]

    def test_inactive_user_can_read_own_profile(self, client, users):
        """Pending accounts can still see their own profile."""
        response = client.get("/api/auth/me", headers=users["pending"]["headers"])
        assert response.status_code == 200
        assert response.json()["is_active"] is False

    def test_admin_route_rejects_other_roles(self, client, users):
        """Admin routes refuse every other role."""
        response = client.get("/api/admin/users", headers=users["regional"]["headers"])
        assert response.status_code == 403


# ─── Profile settings ────────────────────────────────────────────────────────

class TestProfileSettings:
    """PUT /api/auth/me."""

    def test_update_name_and_phone(self, client, users):
        """Users edit their own name and phone."""
        response = client.put(
            "/api/auth/me",
            json={"full_name": "สมหญิง รักดี", "phone": "0899998888"},
            headers=users["hospital"]["headers"],
        )
        assert response.status_code == 200
        assert response.json()["full_name"] == "สมหญิง รักดี"
        assert data_store.profiles[users["hospital"]["profile"]["id"]]["phone"] == "0899998888"

    def test_invalid_phone(self, client, users):
        response = client.put("/api/auth/me", json={"phone": "12345"}, headers=users["hospital"]["headers"])
        assert response.status_code == 422

    def test_role_cannot_be_self_assigned(self, client, users):
        """Role changes through the profile endpoint are ignored."""
        response = client.put(
            "/api/auth/me",
            json={"full_name": "X", "role": "central_admin"},
            headers=users["hospital"]["headers"],
        )
        assert response.status_code == 200
        assert response.json()["role"] == "hospital_it"
