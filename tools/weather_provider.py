"""Weather provider abstractions and implementations."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import date, datetime, timezone
from typing import List, Optional

import requests
from pydantic import BaseModel

from models.context import WeatherContext
from models.taxonomy import WeatherCondition
from resilience.errors import InputValidationError, MirrorError, TransientDependencyError


LOGGER = logging.getLogger(__name__)

_CONDITION_KEYWORDS = (
    ("thunder", WeatherCondition.STORMY),
    ("storm", WeatherCondition.STORMY),
    ("snow", WeatherCondition.SNOWY),
    ("sleet", WeatherCondition.SNOWY),
    ("rain", WeatherCondition.RAINY),
    ("drizzle", WeatherCondition.RAINY),
    ("shower", WeatherCondition.RAINY),
    ("cloud", WeatherCondition.CLOUDY),
    ("overcast", WeatherCondition.CLOUDY),
    ("mist", WeatherCondition.CLOUDY),
    ("fog", WeatherCondition.CLOUDY),
    ("clear", WeatherCondition.SUNNY),
    ("sun", WeatherCondition.SUNNY),
)
WINDY_THRESHOLD_MS = 10.0


class _WeatherCondition(BaseModel):
    description: str = "unknown"


class _Wind(BaseModel):
    speed: float = 0.0


class _Main(BaseModel):
    temp: Optional[float] = None
    temp_min: float
    temp_max: float
    humidity: float = 50.0


class _ForecastEntry(BaseModel):
    dt_txt: str
    main: _Main
    wind: _Wind = _Wind()
    weather: List[_WeatherCondition] = []


class _ForecastResponse(BaseModel):
    list: List[_ForecastEntry] = []


def condition_from_description(description: str, wind_speed: float = 0.0) -> WeatherCondition:
    """Map a provider description onto the condition enum."""

    lowered = description.lower()
    for keyword, condition in _CONDITION_KEYWORDS:
        if keyword in lowered:
            if condition in {WeatherCondition.SUNNY, WeatherCondition.CLOUDY} and wind_speed >= WINDY_THRESHOLD_MS:
                return WeatherCondition.WINDY
            return condition
    if wind_speed >= WINDY_THRESHOLD_MS:
        return WeatherCondition.WINDY
    return WeatherCondition.CLOUDY


class WeatherProvider(ABC):
    """Abstract weather provider interface."""

    @abstractmethod
    def get_weather(self, location: str, target_date: date) -> WeatherContext:
        """Return a weather snapshot for the location and date."""


class OpenWeatherProvider(WeatherProvider):
    """OpenWeather forecast client with schema validation.

    Failures are raised rather than papered over; the resilience layer owns the
    decision of which fallback tier to use.
    """

    url = "https://api.openweathermap.org/data/2.5/forecast"

    def __init__(
        self,
        api_key: str | None = None,
        timeout_seconds: float = 5.0,
        units: str = "metric",
        session: requests.Session | None = None,
    ) -> None:
        self.api_key = api_key
        self.timeout_seconds = timeout_seconds
        self.units = units
        self.session = session or requests.Session()

    def _choose_entry(self, entries: List[_ForecastEntry], target_date: date) -> _ForecastEntry | None:
        target_day = target_date.isoformat()
        midday = [entry for entry in entries if entry.dt_txt.startswith(f"{target_day} 12")]
        if midday:
            return midday[0]
        for entry in entries:
            if entry.dt_txt.startswith(target_day):
                return entry
        return entries[0] if entries else None

    def get_weather(self, location: str, target_date: date) -> WeatherContext:
        if not location:
            raise InputValidationError("location is required for weather lookups")
        if not self.api_key:
            raise MirrorError("OpenWeather API key is not configured")

        LOGGER.info("Fetching weather forecast", extra={"location": location, "date": str(target_date)})
        params = {"q": location, "appid": self.api_key, "units": self.units}
        try:
            response = self.session.get(self.url, params=params, timeout=self.timeout_seconds)
            response.raise_for_status()
        except requests.Timeout as exc:
            raise TransientDependencyError("Weather API timed out", service_key="weather") from exc
        except requests.ConnectionError as exc:
            raise TransientDependencyError("Weather API unreachable", service_key="weather") from exc

        parsed = _ForecastResponse.model_validate(response.json())
        entry = self._choose_entry(parsed.list, target_date)
        if entry is None:
            raise MirrorError("Weather API returned no forecast entries")

        temperature = entry.main.temp
        if temperature is None:
            temperature = (entry.main.temp_min + entry.main.temp_max) / 2
        description = entry.weather[0].description if entry.weather else "unknown"
        return WeatherContext(
            temperature_c=float(temperature),
            condition=condition_from_description(description, entry.wind.speed),
            humidity=entry.main.humidity,
            wind_speed=entry.wind.speed,
            location=location,
            observed_at=datetime.now(timezone.utc),
        )


class MockWeatherProvider(WeatherProvider):
    """Offline deterministic weather provider for tests."""

    def __init__(self, weather: WeatherContext | None = None) -> None:
        self.weather = weather or WeatherContext(
            temperature_c=18.0,
            condition=WeatherCondition.SUNNY,
            humidity=45.0,
            wind_speed=3.0,
        )

    def get_weather(self, location: str, target_date: date) -> WeatherContext:
        LOGGER.info("Returning mock forecast", extra={"location": location, "date": str(target_date)})
        return self.weather


__all__ = [
    "WeatherProvider",
    "OpenWeatherProvider",
    "MockWeatherProvider",
    "condition_from_description",
]
