"""
Circuit breaker guarding Redis event publishing.

While Redis is down, change notifications are dropped immediately instead
of each request waiting out the socket timeout and retries. After
recovery_timeout a limited number of probe publishes is let through; one
success closes the circuit, one failure opens it again.
"""

from __future__ import annotations

import random
import threading
import time
from collections.abc import Callable
from enum import Enum

from shared.config.settings import settings
from shared.config.logging import get_logger

logger = get_logger(__name__)


class CircuitState(Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class EventCircuitBreaker:
    """Thread-safe failure counter with open / half-open / closed states."""

    def __init__(
        self,
        failure_threshold: int = 5,
        recovery_timeout: float = 30.0,
        half_open_max_calls: int = 3,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.half_open_max_calls = half_open_max_calls
        self._clock = clock
        self._lock = threading.Lock()

        self._state = CircuitState.CLOSED
        self._failures = 0
        self._opened_at = 0.0
        self._probes = 0
        self._rejected = 0

    @property
    def state(self) -> CircuitState:
        return self._state

    def _open(self) -> None:
        self._state = CircuitState.OPEN
        self._opened_at = self._clock()

    def can_execute(self) -> bool:
        """Whether a publish may be attempted now."""
        with self._lock:
            if (
                self._state == CircuitState.OPEN
                and self._clock() - self._opened_at >= self.recovery_timeout
            ):
                self._state = CircuitState.HALF_OPEN
                self._probes = 0
                logger.info("Event circuit half-open, probing Redis")

            allowed = self._state == CircuitState.CLOSED or (
                self._state == CircuitState.HALF_OPEN
                and self._probes < self.half_open_max_calls
            )
            if not allowed:
                self._rejected += 1
            elif self._state == CircuitState.HALF_OPEN:
                self._probes += 1
            return allowed

    def record_failure(self) -> None:
        with self._lock:
            self._failures += 1
            if self._state == CircuitState.HALF_OPEN:
                self._open()
                logger.error("Event circuit re-opened, probe failed")
            elif self._state == CircuitState.CLOSED and self._failures >= self.failure_threshold:
                self._open()
                logger.error(
                    "Event circuit opened",
                    failures=self._failures,
                    threshold=self.failure_threshold,
                )
            else:
                self._opened_at = self._clock()

    def record_success(self) -> None:
        with self._lock:
            if self._state != CircuitState.CLOSED:
                logger.info("Event circuit closed, Redis reachable again")
            self._state = CircuitState.CLOSED
            self._failures = 0

    def get_stats(self) -> dict:
        with self._lock:
            return {
                "state": self._state.value,
                "failure_count": self._failures,
                "rejected_count": self._rejected,
                "last_failure_time": self._opened_at,
            }


_breaker: EventCircuitBreaker | None = None
_breaker_lock = threading.Lock()


def get_event_circuit_breaker() -> EventCircuitBreaker:
    """Process-wide breaker; opens after a couple of fully retried failures."""
    global _breaker
    if _breaker is None:
        with _breaker_lock:
            if _breaker is None:
                _breaker = EventCircuitBreaker(
                    failure_threshold=settings.redis_publish_max_retries + 2,
                )
    return _breaker


def calculate_retry_delay_with_jitter(attempt: int, base_delay: float = 0.5) -> float:
    """
    Jittered exponential backoff for 0-indexed attempt numbers.

    The delay is drawn between base_delay and base_delay * 2**attempt,
    capped at 10 seconds.
    """
    ceiling = min(base_delay * (2 ** attempt), 10.0)
    return random.uniform(base_delay, ceiling)
