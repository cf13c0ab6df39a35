"""
Circuit breaker for external dependencies (embedding providers, vector stores).

States:
- CLOSED: calls pass through
- OPEN: calls are rejected until the cool-down has elapsed
- HALF_OPEN: a single probe call decides between CLOSED and OPEN
"""

import logging
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional, Tuple

from experience_recall.errors import CircuitOpenError

logger = logging.getLogger(__name__)


class CircuitState(Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


@dataclass
class CircuitBreakerConfig:
    failure_threshold: int = 3
    reset_timeout_seconds: float = 30.0
    half_open_max_calls: int = 1


class CircuitBreaker:
    """
    Thread-safe circuit breaker.

    Consecutive failures up to failure_threshold open the circuit; after
    reset_timeout_seconds one probe is let through.
    """

    def __init__(
        self,
        name: str,
        config: Optional[CircuitBreakerConfig] = None,
        clock: Callable[[], float] = time.monotonic
    ):
        self.name = name
        self.config = config or CircuitBreakerConfig()
        self._clock = clock
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._opened_at = 0.0
        self._half_open_calls = 0
        self._lock = threading.Lock()

    @property
    def state(self) -> CircuitState:
        with self._lock:
            self._check_state_transition()
            return self._state

    @property
    def failure_count(self) -> int:
        with self._lock:
            return self._failure_count

    def _check_state_transition(self) -> None:
        if self._state == CircuitState.OPEN:
            if self._clock() - self._opened_at >= self.config.reset_timeout_seconds:
                self._transition_to(CircuitState.HALF_OPEN)

    def _transition_to(self, new_state: CircuitState) -> None:
        if self._state == new_state:
            return
        old_state = self._state
        self._state = new_state
        if new_state == CircuitState.OPEN:
            self._opened_at = self._clock()
        elif new_state == CircuitState.HALF_OPEN:
            self._half_open_calls = 0
        elif new_state == CircuitState.CLOSED:
            self._failure_count = 0
        logger.info(f"Circuit breaker '{self.name}': {old_state.value} -> {new_state.value}")

    def _try_acquire(self) -> Tuple[bool, bool]:
        """Return (allowed, probe_slot_taken) atomically."""
        with self._lock:
            self._check_state_transition()
            if self._state == CircuitState.CLOSED:
                return True, False
            if self._state == CircuitState.OPEN:
                return False, False
            if self._half_open_calls < self.config.half_open_max_calls:
                self._half_open_calls += 1
                return True, True
            return False, False

    def allow_request(self) -> bool:
        with self._lock:
            self._check_state_transition()
            if self._state == CircuitState.CLOSED:
                return True
            if self._state == CircuitState.OPEN:
                return False
            return self._half_open_calls < self.config.half_open_max_calls

    def record_success(self) -> None:
        with self._lock:
            self._check_state_transition()
            self._failure_count = 0
            if self._state == CircuitState.HALF_OPEN:
                self._transition_to(CircuitState.CLOSED)

    def record_failure(self) -> None:
        with self._lock:
            self._check_state_transition()
            self._failure_count += 1
            if self._state == CircuitState.HALF_OPEN:
                self._transition_to(CircuitState.OPEN)
                logger.warning(f"Circuit breaker '{self.name}' probe failed, reopening")
            elif (self._state == CircuitState.CLOSED
                  and self._failure_count >= self.config.failure_threshold):
                self._transition_to(CircuitState.OPEN)
                logger.warning(
                    f"Circuit breaker '{self.name}' opened after {self._failure_count} failures"
                )

    def reset(self) -> None:
        with self._lock:
            self._transition_to(CircuitState.CLOSED)
            self._failure_count = 0
            self._half_open_calls = 0

    def execute(self, func: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        """
        Run func under circuit protection.

        Raises:
            CircuitOpenError: If the circuit rejects the call
            Exception: Whatever func raises (recorded as a failure)
        """
        allowed, _ = self._try_acquire()
        if not allowed:
            raise CircuitOpenError(f"Circuit breaker '{self.name}' is open")

        try:
            result = func(*args, **kwargs)
        except Exception:
            self.record_failure()
            raise
        self.record_success()
        return result
