"""Circuit breaker guarding event bus sends."""

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from termpilot.utils.logging import get_logger

logger = get_logger(__name__)


class CircuitState(str, Enum):
    """Circuit breaker states."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


@dataclass
class CircuitStats:
    """Snapshot of a breaker's counters."""

    state: CircuitState
    failure_count: int
    last_failure_time: float | None


class CircuitBreaker:
    """Failure-tripped gate with lazy half-open retry.

    The breaker opens after ``max_failures`` consecutive failures. Once
    ``reset_timeout`` seconds have passed since the last failure, the next
    ``is_open()`` check moves it to half-open so one attempt can go through; a
    success closes it again, a failure re-opens it.
    """

    def __init__(
        self,
        max_failures: int = 5,
        reset_timeout: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize circuit breaker.

        Args:
            max_failures: Consecutive failures before the breaker opens
            reset_timeout: Seconds after the last failure before a retry is allowed
            clock: Monotonic time source, replaceable in tests
        """
        if max_failures < 1:
            raise ValueError("max_failures must be at least 1")

        self.max_failures = max_failures
        self.reset_timeout = reset_timeout
        self._clock = clock
        self._lock = threading.Lock()
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._last_failure_time: float | None = None

    @property
    def state(self) -> CircuitState:
        with self._lock:
            return self._state

    @property
    def failure_count(self) -> int:
        with self._lock:
            return self._failure_count

    def is_open(self) -> bool:
        """Return True while sends must be rejected."""
        with self._lock:
            if self._state == CircuitState.OPEN and self._last_failure_time is not None:
                if self._clock() - self._last_failure_time >= self.reset_timeout:
                    self._state = CircuitState.HALF_OPEN
                    logger.info("Circuit breaker half-open, allowing a trial send")
            return self._state == CircuitState.OPEN

    def record_success(self) -> None:
        with self._lock:
            if self._state != CircuitState.CLOSED:
                logger.info("Circuit breaker closed after successful send")
            self._failure_count = 0
            self._state = CircuitState.CLOSED

    def record_failure(self) -> None:
        with self._lock:
            self._failure_count += 1
            self._last_failure_time = self._clock()

            if self._state == CircuitState.HALF_OPEN or self._failure_count >= self.max_failures:
                if self._state != CircuitState.OPEN:
                    logger.warning(f"Circuit breaker opened after {self._failure_count} consecutive failures")
                self._state = CircuitState.OPEN

    def stats(self) -> CircuitStats:
        with self._lock:
            return CircuitStats(
                state=self._state,
                failure_count=self._failure_count,
                last_failure_time=self._last_failure_time,
            )
