"""Resilience layer wrapping every external dependency call.

Provides:
- Retry with exponential backoff
- Per-service circuit breakers
- Per-call timeouts
- Ordered fallback chains reporting a degradation level
"""

from resilience.circuit_breaker import CircuitBreaker, CircuitSnapshot, CircuitState
from resilience.errors import (
    CircuitOpenError,
    FallbackExhaustedError,
    InputValidationError,
    InsufficientWardrobeError,
    MirrorError,
    TransientDependencyError,
    WardrobeUnavailableError,
)
from resilience.executor import ExecutionResult, ResilientExecutor, classify_exception
from resilience.fallback import FallbackTier, cached_tier, degraded_tier, static_factory_tier, static_tier
from resilience.metrics import TierUsageCounters
from resilience.options import ResilienceOptions, backoff_delay

__all__ = [
    "CircuitBreaker",
    "CircuitSnapshot",
    "CircuitState",
    "CircuitOpenError",
    "FallbackExhaustedError",
    "InputValidationError",
    "InsufficientWardrobeError",
    "MirrorError",
    "TransientDependencyError",
    "WardrobeUnavailableError",
    "ExecutionResult",
    "ResilientExecutor",
    "classify_exception",
    "FallbackTier",
    "cached_tier",
    "degraded_tier",
    "static_factory_tier",
    "static_tier",
    "TierUsageCounters",
    "ResilienceOptions",
    "backoff_delay",
]
