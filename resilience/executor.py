"""Timeout, retry, circuit-breaking and fallback execution for external calls."""

from __future__ import annotations

import contextvars
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Sequence

import requests

from mirror_app.logging_config import get_logger, log_event
from models.context import DegradationLevel
from resilience.circuit_breaker import CircuitBreaker, CircuitBreakerRegistry, CircuitSnapshot
from resilience.errors import (
    CircuitOpenError,
    FallbackExhaustedError,
    InputValidationError,
    TransientDependencyError,
)
from resilience.fallback import FallbackTier
from resilience.metrics import TierUsageCounters
from resilience.options import ResilienceOptions, backoff_delay

LOGGER = get_logger(__name__)

TRANSIENT = "transient"
VALIDATION = "validation"
PERMANENT = "permanent"


def classify_exception(exc: BaseException) -> str:
    """Sort a failure into the retry policy's three buckets."""

    if isinstance(exc, InputValidationError):
        return VALIDATION
    if isinstance(exc, (TransientDependencyError, TimeoutError, ConnectionError)):
        return TRANSIENT
    if isinstance(exc, (requests.Timeout, requests.ConnectionError)):
        return TRANSIENT
    if isinstance(exc, requests.HTTPError):
        status = getattr(exc.response, "status_code", None)
        if status is None or status >= 500 or status == 429:
            return TRANSIENT
    return PERMANENT


@dataclass(frozen=True)
class ExecutionResult:
    value: Any
    degradation_level: DegradationLevel
    tier: str = "live"
    attempts: int = 0


class ResilientExecutor:
    """Runs named external calls behind a breaker with an ordered fallback chain.

    ``execute`` never raises for a chain whose last tier always succeeds. The
    two exceptions that escape are :class:`InputValidationError` from the
    operation itself and :class:`FallbackExhaustedError` when every tier failed.
    """

    def __init__(
        self,
        options: ResilienceOptions | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
        counters: TierUsageCounters | None = None,
        max_workers: int = 32,
    ) -> None:
        self.options = options or ResilienceOptions()
        self.counters = counters or TierUsageCounters()
        self._sleep = sleep
        self._registry = CircuitBreakerRegistry(
            failure_threshold=self.options.circuit_failure_threshold,
            window=self.options.circuit_window,
            cooldown=self.options.circuit_cooldown,
            clock=clock,
        )
        self._pool = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="resilient-call")

    def breaker(self, service_key: str) -> CircuitBreaker:
        return self._registry.get(service_key)

    def circuit_snapshot(self) -> Dict[str, CircuitSnapshot]:
        return self._registry.snapshots()

    def execute(
        self,
        service_key: str,
        operation: Callable[[], Any],
        fallback_chain: Sequence[FallbackTier] = (),
        options: ResilienceOptions | None = None,
    ) -> ExecutionResult:
        opts = options or self.options
        breaker = self._registry.get(service_key)

        if not breaker.allow_request():
            self.counters.record_short_circuit(service_key)
            log_event(
                LOGGER,
                logging.WARNING,
                "call_short_circuited",
                service_key=service_key,
                retry_in=round(breaker.retry_in(), 3),
            )
            return self.run_fallbacks(
                service_key, fallback_chain, CircuitOpenError(service_key, breaker.retry_in())
            )

        attempt = 0
        last_error: Optional[BaseException] = None
        while True:
            start = time.perf_counter()
            try:
                value = self._call_with_timeout(service_key, operation, opts.per_call_timeout)
            except InputValidationError:
                breaker.release_trial()
                log_event(LOGGER, logging.WARNING, "call_rejected_invalid_input", service_key=service_key)
                raise
            except Exception as exc:  # noqa: BLE001
                breaker.record_failure()
                last_error = exc
                kind = classify_exception(exc)
                log_event(
                    LOGGER,
                    logging.WARNING,
                    "call_attempt_failed",
                    service_key=service_key,
                    attempt=attempt + 1,
                    failure_kind=kind,
                    error=repr(exc),
                    duration_ms=round((time.perf_counter() - start) * 1000, 2),
                )
                if kind != TRANSIENT or attempt >= opts.max_retries:
                    break
                attempt += 1
                if not breaker.allow_request():
                    self.counters.record_short_circuit(service_key)
                    log_event(LOGGER, logging.WARNING, "retry_stopped_circuit_open", service_key=service_key)
                    break
                delay = backoff_delay(attempt, opts.base_delay, opts.max_delay)
                self.counters.record_retry(service_key)
                log_event(
                    LOGGER, logging.INFO, "call_retry_scheduled", service_key=service_key, attempt=attempt, delay=delay
                )
                self._sleep(delay)
                continue

            breaker.record_success()
            self.counters.record_tier(service_key, DegradationLevel.LIVE)
            log_event(
                LOGGER,
                logging.INFO,
                "call_completed",
                service_key=service_key,
                tier="live",
                attempts=attempt + 1,
                duration_ms=round((time.perf_counter() - start) * 1000, 2),
            )
            return ExecutionResult(value=value, degradation_level=DegradationLevel.LIVE, attempts=attempt + 1)

        return self.run_fallbacks(service_key, fallback_chain, last_error)

    def run_fallbacks(
        self,
        service_key: str,
        fallback_chain: Sequence[FallbackTier],
        last_error: Optional[BaseException] = None,
    ) -> ExecutionResult:
        """Try each tier in order, returning the first value produced."""

        attempted = []
        for tier in fallback_chain:
            attempted.append(tier.name)
            try:
                value = tier.produce()
            except Exception as exc:  # noqa: BLE001
                last_error = exc
                log_event(
                    LOGGER, logging.WARNING, "fallback_tier_failed", service_key=service_key, tier=tier.name, error=repr(exc)
                )
                continue
            if value is None:
                log_event(LOGGER, logging.INFO, "fallback_tier_miss", service_key=service_key, tier=tier.name)
                continue
            self.counters.record_tier(service_key, tier.level)
            log_event(
                LOGGER,
                logging.WARNING,
                "fallback_tier_used",
                service_key=service_key,
                tier=tier.name,
                degradation_level=tier.level.value,
            )
            return ExecutionResult(value=value, degradation_level=tier.level, tier=tier.name)

        self.counters.record_exhausted(service_key)
        log_event(
            LOGGER,
            logging.ERROR,
            "fallback_chain_exhausted",
            service_key=service_key,
            attempted=attempted,
            error=repr(last_error) if last_error else None,
        )
        raise FallbackExhaustedError(service_key, attempted, last_error)

    def close(self) -> None:
        self._pool.shutdown(wait=False)

    def _call_with_timeout(self, service_key: str, operation: Callable[[], Any], timeout: Optional[float]) -> Any:
        if timeout is None:
            return operation()
        context = contextvars.copy_context()
        future = self._pool.submit(context.run, operation)
        try:
            return future.result(timeout=timeout)
        except FutureTimeoutError:
            # the worker keeps running; its result is discarded
            future.cancel()
            raise TransientDependencyError(
                f"'{service_key}' call exceeded {timeout:.2f}s", service_key=service_key
            ) from None


__all__ = ["ExecutionResult", "ResilientExecutor", "classify_exception", "TRANSIENT", "VALIDATION", "PERMANENT"]
