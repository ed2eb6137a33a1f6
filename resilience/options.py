"""Retry, timeout and circuit options for a resilient call."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class ResilienceOptions:
    max_retries: int = 3
    base_delay: float = 0.25
    max_delay: float = 10.0
    per_call_timeout: Optional[float] = 0.75
    circuit_failure_threshold: int = 5
    circuit_window: float = 60.0
    circuit_cooldown: float = 30.0

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError("max_retries cannot be negative")
        if self.base_delay < 0 or self.max_delay < 0:
            raise ValueError("backoff delays cannot be negative")
        if self.per_call_timeout is not None and self.per_call_timeout <= 0:
            raise ValueError("per_call_timeout must be positive or None")
        if self.circuit_failure_threshold < 1:
            raise ValueError("circuit_failure_threshold must be at least 1")


def backoff_delay(attempt: int, base: float, cap: float) -> float:
    """Delay before retry ``attempt`` (1-based): base doubled per attempt, capped."""

    if attempt < 1:
        return 0.0
    return min(base * (2 ** (attempt - 1)), cap)


__all__ = ["ResilienceOptions", "backoff_delay"]
