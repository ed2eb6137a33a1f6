"""Assembles the recommendation context from wardrobe, weather, calendar and profile.

Each source goes through the resilience layer under its own service key. The
wardrobe is read first because it has no safe default; the other three fan out
concurrently and are cut off at a soft deadline, after which any unresolved
source is produced from its fallback tiers alone.
"""

from __future__ import annotations

import contextvars
import logging
import time
from concurrent.futures import ThreadPoolExecutor, wait
from datetime import date
from typing import Callable, Dict, List, Optional

from memory.cache import TTLCache
from mirror_app.logging_config import get_logger, log_event, operation_context
from models.context import (
    CalendarContext,
    RecommendationContext,
    WeatherContext,
)
from models.style_profile import StyleProfile
from models.taxonomy import WeatherCondition
from models.wardrobe_item import WardrobeItem
from resilience.errors import FallbackExhaustedError, InputValidationError, WardrobeUnavailableError
from resilience.executor import ExecutionResult, ResilientExecutor
from resilience.fallback import FallbackTier, cached_tier, static_factory_tier, static_tier
from tools.data_source import RecommendationDataSource

LOGGER = get_logger(__name__)

WEATHER_KEY = "weather"
CALENDAR_KEY = "calendar"
PROFILE_KEY = "profile"
WARDROBE_KEY = "wardrobe"

# northern hemisphere meteorological seasons
SEASONAL_WEATHER = {
    "winter": (8.0, WeatherCondition.CLOUDY),
    "spring": (17.0, WeatherCondition.SUNNY),
    "summer": (28.0, WeatherCondition.SUNNY),
    "autumn": (14.0, WeatherCondition.CLOUDY),
}
_SEASON_BY_MONTH = {
    12: "winter", 1: "winter", 2: "winter",
    3: "spring", 4: "spring", 5: "spring",
    6: "summer", 7: "summer", 8: "summer",
    9: "autumn", 10: "autumn", 11: "autumn",
}


def season_for(target_date: date) -> str:
    return _SEASON_BY_MONTH[target_date.month]


def seasonal_weather(target_date: date, location: str = "") -> WeatherContext:
    """Static weather estimate for the month, used when nothing better is available."""

    temperature, condition = SEASONAL_WEATHER[season_for(target_date)]
    return WeatherContext(temperature_c=temperature, condition=condition, location=location)


class ContextAggregator:
    """Builds :class:`RecommendationContext` objects for one user and date."""

    def __init__(
        self,
        data_source: RecommendationDataSource,
        executor: ResilientExecutor,
        weather_cache: TTLCache | None = None,
        wardrobe_cache: TTLCache | None = None,
        profile_cache: TTLCache | None = None,
        soft_deadline: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.data_source = data_source
        self.executor = executor
        self.weather_cache = weather_cache or TTLCache(2 * 60 * 60)
        self.wardrobe_cache = wardrobe_cache or TTLCache(7 * 24 * 60 * 60)
        self.profile_cache = profile_cache or TTLCache(24 * 60 * 60)
        self.soft_deadline = soft_deadline
        self._clock = clock

    def build_context(self, user_id: str, target_date: date, location: str) -> RecommendationContext:
        """Gather every input the engine needs.

        Only an unreadable wardrobe is fatal; every other source degrades to a
        safe default and reports its degradation level.
        """

        if not user_id or not str(user_id).strip():
            raise InputValidationError("user_id is required")
        if not isinstance(target_date, date):
            raise InputValidationError("date must be a calendar date")
        location = (location or "").strip()

        with operation_context("build_context"):
            started = self._clock()
            wardrobe_result = self.fetch_wardrobe(user_id)
            fan_out_started = self._clock()

            plans = {
                WEATHER_KEY: (
                    lambda: self._live_weather(location, target_date),
                    self._weather_chain(location, target_date),
                ),
                CALENDAR_KEY: (
                    lambda: self._live_calendar(user_id, target_date),
                    [static_factory_tier("empty_calendar", CalendarContext.empty)],
                ),
                PROFILE_KEY: (
                    lambda: self._live_profile(user_id),
                    self._profile_chain(user_id),
                ),
            }
            # one pool per build so concurrent requests never queue behind each other
            pool = ThreadPoolExecutor(max_workers=len(plans), thread_name_prefix="context-fetch")
            try:
                futures = {
                    key: pool.submit(contextvars.copy_context().run, self.executor.execute, key, operation, chain)
                    for key, (operation, chain) in plans.items()
                }
                remaining = max(0.0, self.soft_deadline - (self._clock() - fan_out_started))
                wait(list(futures.values()), timeout=remaining)
            finally:
                pool.shutdown(wait=False)

            results: Dict[str, ExecutionResult] = {}
            for key, future in futures.items():
                if future.done():
                    results[key] = future.result()
                else:
                    log_event(LOGGER, logging.WARNING, "soft_deadline_exceeded", service_key=key)
                    results[key] = self.executor.run_fallbacks(key, plans[key][1])

            degradation = {key: result.degradation_level for key, result in results.items()}
            degradation[WARDROBE_KEY] = wardrobe_result.degradation_level
            context = RecommendationContext(
                user_id=user_id,
                target_date=target_date,
                location=location,
                weather=results[WEATHER_KEY].value,
                calendar=results[CALENDAR_KEY].value,
                profile=results[PROFILE_KEY].value,
                wardrobe=list(wardrobe_result.value),
                degradation=degradation,
            )
            log_event(
                LOGGER,
                logging.INFO,
                "context_built",
                degradation={key: level.value for key, level in degradation.items()},
                item_count=len(context.wardrobe),
                event_count=len(context.calendar.events),
                duration_ms=round((self._clock() - started) * 1000, 2),
            )
            return context

    def fetch_wardrobe(self, user_id: str) -> ExecutionResult:
        """Wardrobe snapshot, live or cached; raises :class:`WardrobeUnavailableError` otherwise."""

        def live() -> List[WardrobeItem]:
            items = self.data_source.get_wardrobe(user_id)
            self.wardrobe_cache.put(user_id, list(items))
            return items

        chain = [cached_tier("cached_wardrobe", lambda: self.wardrobe_cache.get(user_id))]
        try:
            return self.executor.execute(WARDROBE_KEY, live, chain)
        except FallbackExhaustedError as exc:
            raise WardrobeUnavailableError(WARDROBE_KEY, exc.attempted, exc.last_error) from exc

    def _live_weather(self, location: str, target_date: date) -> WeatherContext:
        weather = self.data_source.get_weather(location, target_date)
        self.weather_cache.put((location, target_date), weather)
        return weather

    def _weather_chain(self, location: str, target_date: date) -> List[FallbackTier]:
        return [
            cached_tier("cached_weather", lambda: self.weather_cache.get((location, target_date))),
            static_tier("seasonal_weather", seasonal_weather(target_date, location)),
        ]

    def _live_calendar(self, user_id: str, target_date: date) -> CalendarContext:
        events = self.data_source.get_events(user_id, target_date)
        return CalendarContext(events=tuple(events))

    def _live_profile(self, user_id: str) -> StyleProfile:
        profile = self.data_source.load_profile(user_id)
        if profile is None:
            profile = StyleProfile.default(user_id)
        self.profile_cache.put(user_id, profile)
        return profile

    def _profile_chain(self, user_id: str) -> List[FallbackTier]:
        return [
            cached_tier("cached_profile", lambda: self._cached_profile(user_id)),
            static_factory_tier("default_profile", lambda: StyleProfile.default(user_id)),
        ]

    def fetch_profile(self, user_id: str) -> ExecutionResult:
        """Profile lookup outside a full context build, with the same fallback chain."""

        return self.executor.execute(PROFILE_KEY, lambda: self._live_profile(user_id), self._profile_chain(user_id))

    def _cached_profile(self, user_id: str) -> Optional[StyleProfile]:
        cached = self.profile_cache.get(user_id)
        return cached.copy() if cached is not None else None

    def remember_profile(self, profile: StyleProfile) -> None:
        """Refresh the profile cache after the learner produced a newer version."""

        self.profile_cache.put(profile.user_id, profile)


__all__ = [
    "ContextAggregator",
    "SEASONAL_WEATHER",
    "season_for",
    "seasonal_weather",
    "WEATHER_KEY",
    "CALENDAR_KEY",
    "PROFILE_KEY",
    "WARDROBE_KEY",
]
