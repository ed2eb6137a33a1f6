"""Error taxonomy shared by the resilience layer and its callers."""

from __future__ import annotations

from typing import List, Optional


class MirrorError(Exception):
    """Base class for errors raised by the recommendation core."""


class TransientDependencyError(MirrorError):
    """A dependency failed in a way worth retrying (timeout, reset, 5xx)."""

    def __init__(self, message: str, service_key: Optional[str] = None) -> None:
        super().__init__(message)
        self.service_key = service_key


class InputValidationError(MirrorError, ValueError):
    """Malformed caller input. Surfaced immediately and never retried."""


class CircuitOpenError(MirrorError):
    """Raised when a call is short-circuited by an open breaker."""

    def __init__(self, service_key: str, retry_in: float) -> None:
        super().__init__(f"Circuit for '{service_key}' is open; retry in {retry_in:.1f}s")
        self.service_key = service_key
        self.retry_in = retry_in


class FallbackExhaustedError(MirrorError):
    """Every tier of a fallback chain failed."""

    def __init__(self, service_key: str, attempted: List[str], last_error: Optional[BaseException] = None) -> None:
        super().__init__(
            f"All fallback tiers exhausted for '{service_key}' (attempted: {', '.join(attempted) or 'none'})"
        )
        self.service_key = service_key
        self.attempted = attempted
        self.last_error = last_error


class WardrobeUnavailableError(FallbackExhaustedError):
    """The wardrobe could not be read live or from cache."""


class InsufficientWardrobeError(MirrorError):
    """The wardrobe cannot fill the required outfit slots."""

    def __init__(self, missing_slots: List[str]) -> None:
        super().__init__(f"Insufficient items for slots: {', '.join(missing_slots)}")
        self.missing_slots = missing_slots


__all__ = [
    "MirrorError",
    "TransientDependencyError",
    "InputValidationError",
    "CircuitOpenError",
    "FallbackExhaustedError",
    "WardrobeUnavailableError",
    "InsufficientWardrobeError",
]
