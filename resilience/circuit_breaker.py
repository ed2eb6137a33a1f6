"""Per-service circuit breakers kept in process memory."""

from __future__ import annotations

import logging
import threading
import time
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Deque, Dict, Optional

from mirror_app.logging_config import get_logger, log_event

LOGGER = get_logger(__name__)


class CircuitState(str, Enum):
    CLOSED = "CLOSED"
    OPEN = "OPEN"
    HALF_OPEN = "HALF_OPEN"


@dataclass(frozen=True)
class CircuitSnapshot:
    service_key: str
    state: CircuitState
    failure_count: int
    last_failure_at: Optional[float]
    next_retry_at: Optional[float]

    def to_dict(self) -> Dict[str, object]:
        return {
            "service_key": self.service_key,
            "state": self.state.value,
            "failure_count": self.failure_count,
            "last_failure_at": self.last_failure_at,
            "next_retry_at": self.next_retry_at,
        }


class CircuitBreaker:
    """Breaker for one service key.

    Failures inside ``window`` seconds accumulate until ``failure_threshold`` is
    reached; any success clears them. While OPEN every request is refused until
    ``cooldown`` elapses, after which a single HALF_OPEN trial is admitted.
    """

    def __init__(
        self,
        service_key: str,
        failure_threshold: int = 5,
        window: float = 60.0,
        cooldown: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.service_key = service_key
        self.failure_threshold = failure_threshold
        self.window = window
        self.cooldown = cooldown
        self._clock = clock
        self._lock = threading.Lock()
        self._state = CircuitState.CLOSED
        self._failures: Deque[float] = deque()
        self._last_failure_at: Optional[float] = None
        self._next_retry_at: Optional[float] = None
        self._trial_in_flight = False

    @property
    def state(self) -> CircuitState:
        return self._state

    def retry_in(self) -> float:
        if self._next_retry_at is None:
            return 0.0
        return max(0.0, self._next_retry_at - self._clock())

    def allow_request(self) -> bool:
        """Return True when a live call may be attempted now."""

        if self._state is CircuitState.CLOSED:
            return True
        with self._lock:
            if self._state is CircuitState.CLOSED:
                return True
            if self._state is CircuitState.OPEN:
                if self._next_retry_at is not None and self._clock() >= self._next_retry_at:
                    self._transition(CircuitState.HALF_OPEN)
                    self._trial_in_flight = True
                    return True
                return False
            # HALF_OPEN: only the single trial already admitted may run
            return False

    def record_success(self) -> None:
        with self._lock:
            self._failures.clear()
            self._trial_in_flight = False
            if self._state is not CircuitState.CLOSED:
                self._next_retry_at = None
                self._transition(CircuitState.CLOSED)

    def record_failure(self) -> None:
        with self._lock:
            now = self._clock()
            self._last_failure_at = now
            self._failures.append(now)
            while self._failures and now - self._failures[0] > self.window:
                self._failures.popleft()

            if self._state is CircuitState.HALF_OPEN:
                self._trial_in_flight = False
                self._open(now)
            elif self._state is CircuitState.CLOSED and len(self._failures) >= self.failure_threshold:
                self._open(now)

    def release_trial(self) -> None:
        """Give back a HALF_OPEN trial slot that ended without a verdict."""

        with self._lock:
            if self._state is CircuitState.HALF_OPEN and self._trial_in_flight:
                self._trial_in_flight = False
                self._next_retry_at = self._clock()
                self._transition(CircuitState.OPEN)

    def snapshot(self) -> CircuitSnapshot:
        with self._lock:
            return CircuitSnapshot(
                service_key=self.service_key,
                state=self._state,
                failure_count=len(self._failures),
                last_failure_at=self._last_failure_at,
                next_retry_at=self._next_retry_at,
            )

    def _open(self, now: float) -> None:
        self._next_retry_at = now + self.cooldown
        self._transition(CircuitState.OPEN)

    def _transition(self, new_state: CircuitState) -> None:
        previous = self._state
        self._state = new_state
        if previous is not new_state:
            log_event(
                LOGGER,
                logging.WARNING if new_state is CircuitState.OPEN else logging.INFO,
                "circuit_state_changed",
                service_key=self.service_key,
                previous_state=previous.value,
                new_state=new_state.value,
                failure_count=len(self._failures),
            )


class CircuitBreakerRegistry:
    """Lazily creates one breaker per service key."""

    def __init__(
        self,
        failure_threshold: int = 5,
        window: float = 60.0,
        cooldown: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.failure_threshold = failure_threshold
        self.window = window
        self.cooldown = cooldown
        self._clock = clock
        self._breakers: Dict[str, CircuitBreaker] = {}
        self._lock = threading.Lock()

    def get(self, service_key: str) -> CircuitBreaker:
        breaker = self._breakers.get(service_key)
        if breaker is not None:
            return breaker
        with self._lock:
            breaker = self._breakers.get(service_key)
            if breaker is None:
                breaker = CircuitBreaker(
                    service_key,
                    failure_threshold=self.failure_threshold,
                    window=self.window,
                    cooldown=self.cooldown,
                    clock=self._clock,
                )
                self._breakers[service_key] = breaker
            return breaker

    def snapshots(self) -> Dict[str, CircuitSnapshot]:
        with self._lock:
            breakers = list(self._breakers.values())
        return {breaker.service_key: breaker.snapshot() for breaker in breakers}


__all__ = ["CircuitState", "CircuitSnapshot", "CircuitBreaker", "CircuitBreakerRegistry"]
