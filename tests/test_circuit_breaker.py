"""Tests for the backend circuit breaker."""

from __future__ import annotations

import pytest

from ctam.services.circuit_breaker import CircuitBreaker, is_retriable_backend_error
from ctam.services.portal_client import PortalClientError


class FakeClock:
    def __init__(self) -> None:
        self.ms = 100_000

    def __call__(self) -> float:
        return self.ms / 1000

    def advance_ms(self, ms: int) -> None:
        self.ms += ms


def _gateway_error() -> PortalClientError:
    return PortalClientError("Bad gateway", status_code=502)


class TestRetriableErrors:
    """Classification of transient backend failures."""

    @pytest.mark.parametrize("status", [502, 503, 504])
    def test_gateway_statuses(self, status):
        """Gateway statuses 502 to 504 are transient."""
        assert is_retriable_backend_error(PortalClientError("x", status_code=status))

    def test_schema_cache_code(self):
        """The schema cache error code is transient whatever the status."""
        assert is_retriable_backend_error(PortalClientError("x", status_code=500, code="PGRST002"))

    @pytest.mark.parametrize("status", [400, 401, 403, 404, 409, 422, 500])
    def test_permanent_statuses(self, status):
        """Client errors and plain 500s are not retried."""
        assert not is_retriable_backend_error(PortalClientError("x", status_code=status))

    def test_plain_exception(self):
        """Exceptions without a status are never retriable."""
        assert not is_retriable_backend_error(ValueError("boom"))


class TestCircuitBreaker:
    """Cooldown growth and reset."""

    def test_closed_initially(self):
        """A new breaker lets requests through."""
        breaker = CircuitBreaker(clock=FakeClock())
        assert breaker.can_request()
        assert breaker.remaining_ms() == 0

    def test_first_failure_opens_for_initial_cooldown(self):
        """The first failure blocks requests for exactly the initial cooldown."""
        clock = FakeClock()
        breaker = CircuitBreaker(clock=clock)
        assert breaker.report_failure(_gateway_error())
        assert not breaker.can_request()
        assert breaker.remaining_ms() == pytest.approx(4000)

        clock.advance_ms(3999)
        assert not breaker.can_request()
        clock.advance_ms(1)
        assert breaker.can_request()

    def test_consecutive_failures_double_up_to_cap(self):
        """Each further failure doubles the cooldown until the cap."""
        breaker = CircuitBreaker(clock=FakeClock())
        cooldowns = []
        for _ in range(6):
            breaker.report_failure(_gateway_error())
            cooldowns.append(breaker.last_cooldown_ms)
        assert cooldowns == [4000, 8000, 16000, 30000, 30000, 30000]

    def test_success_resets_cooldown(self):
        """A success closes the breaker and restarts growth from the initial cooldown."""
        breaker = CircuitBreaker(clock=FakeClock())
        breaker.report_failure(_gateway_error())
        breaker.report_failure(_gateway_error())
        breaker.report_success()
        assert breaker.can_request()
        breaker.report_failure(_gateway_error())
        assert breaker.last_cooldown_ms == 4000

    def test_permanent_error_does_not_open(self):
        """Permanent errors leave the breaker closed."""
        breaker = CircuitBreaker(clock=FakeClock())
        assert not breaker.report_failure(PortalClientError("Not found", status_code=404))
        assert breaker.can_request()

    def test_independent_instances(self):
        """Breakers do not share state."""
        first = CircuitBreaker(clock=FakeClock())
        second = CircuitBreaker(clock=FakeClock())
        first.report_failure(_gateway_error())
        assert not first.can_request()
        assert second.can_request()

    def test_custom_limits(self):
        """Configured cooldowns replace the defaults."""
        breaker = CircuitBreaker(initial_cooldown_ms=100, max_cooldown_ms=250, clock=FakeClock())
        for _ in range(3):
            breaker.report_failure(_gateway_error())
        assert breaker.last_cooldown_ms == 250
