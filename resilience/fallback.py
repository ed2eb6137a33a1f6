"""Fallback tiers tried in order when a live call cannot produce a value."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Optional

from models.context import DegradationLevel


@dataclass(frozen=True)
class FallbackTier:
    """One degraded way of producing a value.

    A producer returning ``None`` signals a miss (for example an empty cache)
    and the next tier is tried.
    """

    name: str
    level: DegradationLevel
    producer: Callable[[], Any]

    def produce(self) -> Optional[Any]:
        return self.producer()


def cached_tier(name: str, producer: Callable[[], Any]) -> FallbackTier:
    return FallbackTier(name=name, level=DegradationLevel.CACHED, producer=producer)


def degraded_tier(name: str, producer: Callable[[], Any]) -> FallbackTier:
    return FallbackTier(name=name, level=DegradationLevel.DEGRADED, producer=producer)


def static_tier(name: str, value: Any) -> FallbackTier:
    """Final tier that always succeeds with a fixed value."""

    return FallbackTier(name=name, level=DegradationLevel.STATIC_DEFAULT, producer=lambda: value)


def static_factory_tier(name: str, factory: Callable[[], Any]) -> FallbackTier:
    return FallbackTier(name=name, level=DegradationLevel.STATIC_DEFAULT, producer=factory)


__all__ = [
    "FallbackTier",
    "cached_tier",
    "degraded_tier",
    "static_tier",
    "static_factory_tier",
]
