"""Async client for the CTAM+ portal API.

Keeps the bearer session fresh, retries transient gateway failures with
jittered exponential backoff and stops calling a backend that keeps
failing through a ``CircuitBreaker``.
"""

from __future__ import annotations

import asyncio
import random
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, TypeVar

import httpx
import structlog

from ctam.services.circuit_breaker import CircuitBreaker, is_retriable_backend_error

logger = structlog.get_logger()

T = TypeVar("T")

UNAVAILABLE_MESSAGE = "ระบบไม่สามารถเชื่อมต่อฐานข้อมูลได้ชั่วคราว กรุณาลองใหม่อีกครั้ง"
SESSION_EXPIRED_MESSAGE = "เซสชันหมดอายุ กรุณาเข้าสู่ระบบใหม่"


class PortalClientError(Exception):
    """Raised when portal API communication fails."""

    def __init__(self, message: str, status_code: int | None = None, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code


class BackendUnavailable(PortalClientError):
    """Transient failures persisted through every retry attempt."""


class CircuitOpen(PortalClientError):
    """The circuit breaker is open; no request was sent."""


class SessionExpired(PortalClientError):
    """No session, or the refresh token was rejected."""


def backoff_delay(attempt: int, base_ms: int, max_ms: int, rng: random.Random | None = None) -> float:
    """Seconds to wait before retry ``attempt`` (1-based), with jitter."""
    ceiling = min(max_ms, base_ms * 2 ** (attempt - 1))
    jitter = (rng or random).uniform(0.5, 1.0)
    return ceiling * jitter / 1000


def _error_from_response(response: httpx.Response) -> PortalClientError:
    code = None
    message = response.text
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        code = body.get("code")
        detail = body.get("detail") or body.get("message")
        if isinstance(detail, str):
            message = detail
    return PortalClientError(message or f"HTTP {response.status_code}", response.status_code, code)


class PortalClient:
    """HTTP client for the portal REST API."""

    def __init__(
        self,
        base_url: str,
        *,
        breaker: CircuitBreaker | None = None,
        max_attempts: int = 3,
        base_delay_ms: int = 1000,
        max_delay_ms: int = 8000,
        refresh_margin_seconds: int = 60,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        now: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
        rng: random.Random | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.breaker = breaker or CircuitBreaker()
        self.max_attempts = max_attempts
        self.base_delay_ms = base_delay_ms
        self.max_delay_ms = max_delay_ms
        self.refresh_margin = timedelta(seconds=refresh_margin_seconds)
        self._transport = transport
        self._sleep = sleep
        self._now = now
        self._rng = rng
        self.session: dict[str, Any] | None = None

    @classmethod
    def from_settings(cls, settings, **kwargs) -> "PortalClient":
        return cls(
            settings.backend_url,
            breaker=CircuitBreaker(settings.circuit_initial_cooldown_ms, settings.circuit_max_cooldown_ms),
            max_attempts=settings.retry_max_attempts,
            base_delay_ms=settings.retry_base_delay_ms,
            max_delay_ms=settings.retry_max_delay_ms,
            refresh_margin_seconds=settings.session_refresh_margin_seconds,
            **kwargs,
        )

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self.base_url, transport=self._transport)

    async def _send(
        self,
        method: str,
        path: str,
        json: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        async with self._client() as client:
            response = await client.request(method, path, json=json, headers=headers)
        if response.status_code >= 400:
            raise _error_from_response(response)
        if not response.content:
            return None
        if response.headers.get("content-type", "").startswith("application/json"):
            return response.json()
        return response.content

    # ─── Session handling ────────────────────────────────────────────────

    def _store_session(self, data: dict[str, Any]) -> dict[str, Any]:
        data["expires_at"] = datetime.fromisoformat(data["expires_at"])
        self.session = data
        return data

    async def sign_in(self, email: str, password: str) -> dict[str, Any]:
        data = await self._send("POST", "/api/auth/login", json={"email": email, "password": password})
        return self._store_session(data)

    async def sign_out(self) -> None:
        if self.session is None:
            return
        headers = {"Authorization": f"Bearer {self.session['access_token']}"}
        try:
            await self._send("POST", "/api/auth/logout", headers=headers)
        finally:
            self.session = None

    async def ensure_valid_session(self) -> dict[str, Any] | None:
        """Return the current session, refreshing it when it expires within the margin.

        A rejected refresh token clears the session and returns None.
        """
        if self.session is None:
            return None
        if self.session["expires_at"] - self._now() >= self.refresh_margin:
            return self.session

        logger.info("session_refreshing")
        try:
            data = await self._send(
                "POST", "/api/auth/refresh", json={"refresh_token": self.session["refresh_token"]}
            )
        except PortalClientError as exc:
            if exc.status_code in (400, 401, 403):
                logger.warning("session_refresh_rejected", status_code=exc.status_code)
                self.session = None
                return None
            raise
        return self._store_session(data)

    async def _headers(self) -> dict[str, str]:
        session = await self.ensure_valid_session()
        if session is None:
            raise SessionExpired(SESSION_EXPIRED_MESSAGE, 401)
        return {"Authorization": f"Bearer {session['access_token']}"}

    # ─── Requests ────────────────────────────────────────────────────────

    async def request(self, method: str, path: str, json: dict[str, Any] | None = None) -> Any:
        """Authenticated single-shot request."""
        if not self.breaker.can_request():
            raise CircuitOpen(UNAVAILABLE_MESSAGE, 503)
        try:
            result = await self._send(method, path, json=json, headers=await self._headers())
        except PortalClientError as exc:
            if self.breaker.report_failure(exc):
                logger.warning("circuit_opened", path=path, cooldown_ms=self.breaker.last_cooldown_ms)
            raise
        self.breaker.report_success()
        return result

    async def with_retry(self, operation: Callable[[], Awaitable[T]], label: str = "request") -> T:
        """Run ``operation`` with bounded retries on transient failures.

        Permanent errors propagate immediately. When every attempt fails
        transiently the breaker opens and ``BackendUnavailable`` is raised.
        """
        if not self.breaker.can_request():
            raise CircuitOpen(UNAVAILABLE_MESSAGE, 503)

        last_error: Exception | None = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                result = await operation()
            except PortalClientError as exc:
                if not is_retriable_backend_error(exc):
                    raise
                last_error = exc
            except httpx.TransportError as exc:
                last_error = exc
            else:
                self.breaker.report_success()
                return result

            if attempt < self.max_attempts:
                delay = backoff_delay(attempt, self.base_delay_ms, self.max_delay_ms, self._rng)
                logger.warning("backend_retry", operation=label, attempt=attempt, delay_s=round(delay, 3))
                await self._sleep(delay)

        if self.breaker.report_failure(last_error):
            logger.warning("circuit_opened", operation=label, cooldown_ms=self.breaker.last_cooldown_ms)
        status_code = getattr(last_error, "status_code", None)
        raise BackendUnavailable(UNAVAILABLE_MESSAGE, status_code, getattr(last_error, "code", None)) from last_error

    async def _send_authenticated(self, method: str, path: str, json: dict[str, Any] | None = None) -> Any:
        return await self._send(method, path, json=json, headers=await self._headers())

    # ─── Portal operations ───────────────────────────────────────────────

    async def get_profile(self) -> dict[str, Any]:
        return await self.with_retry(lambda: self._send_authenticated("GET", "/api/auth/me"), "get_profile")

    async def list_assessments(self) -> list[dict[str, Any]]:
        return await self.with_retry(lambda: self._send_authenticated("GET", "/api/assessments"), "list_assessments")

    async def get_assessment(self, assessment_id: str) -> dict[str, Any]:
        return await self.with_retry(
            lambda: self._send_authenticated("GET", f"/api/assessments/{assessment_id}"), "get_assessment"
        )

    async def submit(self, assessment_id: str) -> dict[str, Any]:
        return await self.request("POST", f"/api/assessments/{assessment_id}/submit")

    async def approve_section(self, assessment_id: str, section: str, comment: str | None = None) -> dict[str, Any]:
        """Approve one section, retrying transient failures.

        Re-approving a section within the same level only re-stamps it, so a
        retry after a lost response leaves the status unchanged. The exception is the last
        section of a level: if that approval committed before the failure,
        the level has already advanced and the retry comes back as a 409.
        Callers seeing a 409 here should re-read the assessment.
        """
        return await self.with_retry(
            lambda: self._send_authenticated(
                "POST",
                f"/api/assessments/{assessment_id}/sections/{section}/approve",
                json={"comment": comment},
            ),
            "approve_section",
        )

    async def return_section(self, assessment_id: str, section: str, comment: str) -> dict[str, Any]:
        return await self.request(
            "POST", f"/api/assessments/{assessment_id}/sections/{section}/return", json={"comment": comment}
        )

    async def save_qualitative(self, assessment_id: str, fields: dict[str, Any]) -> dict[str, Any]:
        return await self.request("PUT", f"/api/assessments/{assessment_id}/qualitative", json=fields)

    async def provision_health_office_users(self, health_region_id: str | None = None) -> dict[str, Any]:
        return await self.request(
            "POST", "/api/admin/provision/health-offices", json={"health_region_id": health_region_id}
        )

    async def provision_hospital_users(self, province_id: str | None = None) -> dict[str, Any]:
        return await self.request("POST", "/api/admin/provision/hospitals", json={"province_id": province_id})

    async def provision_provincial_users(self, health_region_id: str) -> dict[str, Any]:
        return await self.request(
            "POST", "/api/admin/provision/provincial", json={"health_region_id": health_region_id}
        )

    async def provision_regional_office_users(self, health_region_id: str | None = None) -> dict[str, Any]:
        return await self.request(
            "POST", "/api/admin/provision/regional-offices", json={"health_region_id": health_region_id}
        )

    async def create_supervisor(self, email: str, password: str, full_name: str | None = None) -> dict[str, Any]:
        return await self.request(
            "POST",
            "/api/admin/provision/supervisors",
            json={"email": email, "password": password, "full_name": full_name},
        )
