"""Backend circuit breaker: cooldown after transient gateway failures."""

from __future__ import annotations

import time
from typing import Any, Callable

RETRIABLE_STATUS_CODES = frozenset({502, 503, 504})
# PostgREST: schema cache not ready / gateway timeout
RETRIABLE_ERROR_CODES = frozenset({"PGRST002"})


def is_retriable_backend_error(error: Any) -> bool:
    """True for 502/503/504 responses and the gateway-timeout error code."""
    status = getattr(error, "status_code", None)
    code = getattr(error, "code", None)
    return status in RETRIABLE_STATUS_CODES or code in RETRIABLE_ERROR_CODES


class CircuitBreaker:
    """Suppresses new backend calls for a cooldown window after a transient failure.

    The cooldown starts at ``initial_cooldown_ms`` and at least doubles on
    each consecutive failure, capped at ``max_cooldown_ms``. Any success
    closes the breaker and resets the cooldown.
    """

    def __init__(
        self,
        initial_cooldown_ms: int = 4000,
        max_cooldown_ms: int = 30000,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.initial_cooldown_ms = initial_cooldown_ms
        self.max_cooldown_ms = max_cooldown_ms
        self._clock = clock
        self._disabled_until = 0.0
        self.last_cooldown_ms = 0

    def _now_ms(self) -> float:
        return self._clock() * 1000

    def can_request(self) -> bool:
        return self._now_ms() >= self._disabled_until

    def remaining_ms(self) -> float:
        return max(0.0, self._disabled_until - self._now_ms())

    def report_failure(self, error: Any) -> bool:
        """Open the breaker for a retriable error. Returns True when it opened."""
        if not is_retriable_backend_error(error):
            return False
        if self.last_cooldown_ms:
            cooldown = min(max(self.last_cooldown_ms * 2, self.initial_cooldown_ms), self.max_cooldown_ms)
        else:
            cooldown = self.initial_cooldown_ms
        self.last_cooldown_ms = cooldown
        self._disabled_until = self._now_ms() + cooldown
        return True

    def report_success(self) -> None:
        self.last_cooldown_ms = 0
        self._disabled_until = 0.0
