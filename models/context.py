"""Weather, calendar and aggregated recommendation context records."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Dict, List, Optional, Tuple

from models.style_profile import StyleProfile
from models.taxonomy import FormalityLevel, WeatherCondition
from models.wardrobe_item import WardrobeItem, as_utc


class DegradationLevel(str, Enum):
    """Which fallback tier produced a piece of context data."""

    LIVE = "LIVE"
    CACHED = "CACHED"
    DEGRADED = "DEGRADED"
    STATIC_DEFAULT = "STATIC_DEFAULT"


@dataclass(frozen=True)
class WeatherContext:
    """Immutable weather snapshot for one date and location."""

    temperature_c: float
    condition: WeatherCondition
    humidity: float = 50.0
    wind_speed: float = 0.0
    location: str = ""
    observed_at: Optional[datetime] = None

    def describe(self) -> str:
        return f"{self.temperature_c:.0f}°C and {self.condition.value}"


@dataclass(frozen=True)
class CalendarEvent:
    """Minimal calendar event payload safe for logs and memory."""

    title: str
    start_time: datetime
    end_time: datetime
    formality: FormalityLevel = FormalityLevel.CASUAL
    location: Optional[str] = None


def select_primary_event(events: List[CalendarEvent]) -> Optional[CalendarEvent]:
    """Highest formality first, earliest start on ties. Naive starts count as UTC."""

    if not events:
        return None
    return sorted(events, key=lambda event: (-int(event.formality), as_utc(event.start_time)))[0]


@dataclass(frozen=True)
class CalendarContext:
    events: Tuple[CalendarEvent, ...] = ()

    @property
    def primary_event(self) -> Optional[CalendarEvent]:
        return select_primary_event(list(self.events))

    @property
    def formality_level(self) -> FormalityLevel:
        if not self.events:
            return FormalityLevel.CASUAL
        return max(event.formality for event in self.events)

    @classmethod
    def empty(cls) -> "CalendarContext":
        return cls(events=())


@dataclass
class RecommendationContext:
    """Everything the engine needs for one user and date."""

    user_id: str
    target_date: date
    location: str
    weather: WeatherContext
    calendar: CalendarContext
    profile: StyleProfile
    wardrobe: List[WardrobeItem] = field(default_factory=list)
    degradation: Dict[str, DegradationLevel] = field(default_factory=dict)

    @property
    def formality_level(self) -> FormalityLevel:
        return self.calendar.formality_level

    @property
    def occasion(self) -> Optional[str]:
        primary = self.calendar.primary_event
        return primary.title if primary else None


__all__ = [
    "DegradationLevel",
    "WeatherContext",
    "CalendarEvent",
    "CalendarContext",
    "RecommendationContext",
    "select_primary_event",
]
