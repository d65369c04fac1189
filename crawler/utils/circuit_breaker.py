"""
Circuit breaker guarding one vendor against cascading failures.
"""
import time
from typing import Any, Callable, Dict, Optional

from loguru import logger


class CircuitState:
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreaker:
    """Rejects calls to a vendor after repeated failures.

    Opens after ``failure_threshold`` failures, moves to half-open once
    ``reset_timeout_seconds`` have passed since the last failure, and closes
    again after ``half_open_successes`` successes.
    """

    def __init__(
        self,
        name: str,
        failure_threshold: int = 5,
        reset_timeout_seconds: float = 30.0,
        half_open_successes: int = 3,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.name = name
        self.failure_threshold = failure_threshold
        self.reset_timeout_seconds = reset_timeout_seconds
        self.half_open_successes = half_open_successes
        self._clock = clock

        self.state = CircuitState.CLOSED
        self.failures = 0
        self.successes = 0
        self.last_failure_time: Optional[float] = None

    def _refresh(self) -> None:
        if self.state == CircuitState.OPEN and self.last_failure_time is not None:
            if self._clock() - self.last_failure_time > self.reset_timeout_seconds:
                self.state = CircuitState.HALF_OPEN
                self.successes = 0
                logger.info(f"[CircuitBreaker] {self.name}: half-open, testing...")

    def can_call(self) -> bool:
        """Whether the vendor may be called right now."""
        self._refresh()
        if self.state == CircuitState.OPEN:
            logger.warning(f"[CircuitBreaker] {self.name}: call rejected (circuit open)")
            return False
        return True

    def record_success(self) -> None:
        self.successes += 1
        if self.state == CircuitState.HALF_OPEN and self.successes >= self.half_open_successes:
            self.state = CircuitState.CLOSED
            self.failures = 0
            logger.info(f"[CircuitBreaker] {self.name}: closed, recovered")
        elif self.state == CircuitState.CLOSED:
            self.failures = max(0, self.failures - 1)

    def record_failure(self) -> None:
        self.failures += 1
        self.last_failure_time = self._clock()
        if self.state == CircuitState.HALF_OPEN or (
            self.state == CircuitState.CLOSED and self.failures >= self.failure_threshold
        ):
            self.state = CircuitState.OPEN
            logger.warning(f"[CircuitBreaker] {self.name}: opened after {self.failures} failures")

    def reset(self) -> None:
        self.state = CircuitState.CLOSED
        self.failures = 0
        self.successes = 0
        self.last_failure_time = None

    def get_statistics(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "state": self.state,
            "failures": self.failures,
            "successes": self.successes,
        }
