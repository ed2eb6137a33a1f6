"""Strategy interface for everything the recommendation core reads or writes.

The live implementation composes real providers and stores; the in-memory one
is injected by tests and local demos and can simulate outages per source.
"""

from __future__ import annotations

import logging
import threading
import time
from abc import ABC, abstractmethod
from datetime import date
from typing import Dict, List, Optional

from memory.profile_store import InMemoryProfileStore, ProfileStore
from models.context import CalendarEvent, WeatherContext
from models.style_profile import StyleProfile
from models.wardrobe_item import WardrobeItem
from resilience.errors import TransientDependencyError
from tools.calendar_provider import CalendarProvider
from tools.wardrobe_store import InMemoryWardrobeStore, WardrobeStore
from tools.weather_provider import WeatherProvider

LOGGER = logging.getLogger(__name__)


class RecommendationDataSource(ABC):
    @abstractmethod
    def get_wardrobe(self, user_id: str) -> List[WardrobeItem]:
        """Current wardrobe snapshot for the user."""

    @abstractmethod
    def get_weather(self, location: str, target_date: date) -> WeatherContext:
        """Weather for the location and date."""

    @abstractmethod
    def get_events(self, user_id: str, target_date: date) -> List[CalendarEvent]:
        """Calendar events on the date."""

    @abstractmethod
    def load_profile(self, user_id: str) -> Optional[StyleProfile]:
        """Persisted style profile, ``None`` for a user without one."""

    @abstractmethod
    def save_profile(self, user_id: str, profile: StyleProfile) -> None:
        """Persist a style profile."""


class LiveDataSource(RecommendationDataSource):
    def __init__(
        self,
        wardrobe_store: WardrobeStore,
        weather_provider: WeatherProvider,
        calendar_provider: CalendarProvider,
        profile_store: ProfileStore,
    ) -> None:
        self.wardrobe_store = wardrobe_store
        self.weather_provider = weather_provider
        self.calendar_provider = calendar_provider
        self.profile_store = profile_store

    def get_wardrobe(self, user_id: str) -> List[WardrobeItem]:
        return self.wardrobe_store.list_items_for_user(user_id)

    def get_weather(self, location: str, target_date: date) -> WeatherContext:
        return self.weather_provider.get_weather(location, target_date)

    def get_events(self, user_id: str, target_date: date) -> List[CalendarEvent]:
        return self.calendar_provider.get_events(user_id, target_date)

    def load_profile(self, user_id: str) -> Optional[StyleProfile]:
        return self.profile_store.load_profile(user_id)

    def save_profile(self, user_id: str, profile: StyleProfile) -> None:
        self.profile_store.save_profile(user_id, profile)


class InMemoryDataSource(RecommendationDataSource):
    """Deterministic data source with switchable per-source outages.

    ``fail`` marks a source (``wardrobe``, ``weather``, ``calendar``,
    ``profile`` or ``profile_save``) as down; ``delays`` adds latency in seconds.
    Call counters let tests assert whether a live call was attempted.
    """

    SOURCES = ("wardrobe", "weather", "calendar", "profile", "profile_save")

    def __init__(
        self,
        wardrobe: Dict[str, List[dict]] | None = None,
        weather: WeatherContext | None = None,
        events: List[CalendarEvent] | None = None,
        profiles: Dict[str, StyleProfile] | None = None,
    ) -> None:
        self.wardrobe_store = InMemoryWardrobeStore(wardrobe or {})
        self.weather = weather
        self.events = list(events or [])
        self.profile_store = InMemoryProfileStore()
        for user_id, profile in (profiles or {}).items():
            self.profile_store.save_profile(user_id, profile)
        self.failing: set = set()
        self.delays: Dict[str, float] = {}
        self.calls: Dict[str, int] = {source: 0 for source in self.SOURCES}
        self._lock = threading.Lock()

    def fail(self, *sources: str) -> "InMemoryDataSource":
        unknown = set(sources) - set(self.SOURCES)
        if unknown:
            raise ValueError(f"Unknown sources: {sorted(unknown)}")
        self.failing.update(sources)
        return self

    def recover(self, *sources: str) -> "InMemoryDataSource":
        self.failing.difference_update(sources or self.SOURCES)
        return self

    def _enter(self, source: str) -> None:
        with self._lock:
            self.calls[source] += 1
        delay = self.delays.get(source)
        if delay:
            time.sleep(delay)
        if source in self.failing:
            LOGGER.info("Simulated outage for %s", source)
            raise TransientDependencyError(f"{source} unavailable", service_key=source)

    def get_wardrobe(self, user_id: str) -> List[WardrobeItem]:
        self._enter("wardrobe")
        return self.wardrobe_store.list_items_for_user(user_id)

    def get_weather(self, location: str, target_date: date) -> WeatherContext:
        self._enter("weather")
        if self.weather is None:
            raise TransientDependencyError("no weather configured", service_key="weather")
        return self.weather

    def get_events(self, user_id: str, target_date: date) -> List[CalendarEvent]:
        self._enter("calendar")
        return [event for event in self.events if event.start_time.date() == target_date]

    def load_profile(self, user_id: str) -> Optional[StyleProfile]:
        self._enter("profile")
        return self.profile_store.load_profile(user_id)

    def save_profile(self, user_id: str, profile: StyleProfile) -> None:
        self._enter("profile_save")
        self.profile_store.save_profile(user_id, profile)


__all__ = ["RecommendationDataSource", "LiveDataSource", "InMemoryDataSource"]
