"""Hard weather and formality gates applied before candidate generation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List

from models.context import WeatherContext
from models.taxonomy import (
    HEAVY_OUTERWEAR_TAGS,
    SHORT_SLEEVE_TAGS,
    WET_SENSITIVE_TAGS,
    Category,
    FormalityLevel,
)
from models.wardrobe_item import WardrobeItem

WEATHER_GATE = "weather"
FORMALITY_GATE = "formality"


@dataclass(frozen=True)
class FilteringResult:
    """Captures the outcome of a single gate."""

    items: List[WardrobeItem]
    removed: Dict[str, str]
    debug: Dict[str, object]


def _weather_rejection(
    item: WardrobeItem,
    weather: WeatherContext,
    short_sleeve_min_temp: float,
    heavy_outerwear_max_temp: float,
) -> str | None:
    temperature = weather.temperature_c
    if item.category in {Category.TOP, Category.BOTTOM} and temperature < short_sleeve_min_temp:
        if item.has_any_tag(SHORT_SLEEVE_TAGS):
            return f"too light for {temperature:.0f}°C"
    if item.category is Category.OUTERWEAR and temperature > heavy_outerwear_max_temp:
        if item.has_any_tag(HEAVY_OUTERWEAR_TAGS):
            return f"too heavy for {temperature:.0f}°C"
    if item.category is Category.SHOES and weather.condition.is_wet:
        if item.has_any_tag(WET_SENSITIVE_TAGS):
            return f"not suitable for {weather.condition.value} weather"
    return None


def filter_by_weather(
    items: List[WardrobeItem],
    weather: WeatherContext,
    short_sleeve_min_temp: float = 12.0,
    heavy_outerwear_max_temp: float = 18.0,
) -> FilteringResult:
    """Drop items the weather rules out: short sleeves in the cold, heavy coats in
    the warmth and delicate shoes in rain, snow or storms."""

    removed: Dict[str, str] = {}
    kept: List[WardrobeItem] = []
    for item in items:
        reason = _weather_rejection(item, weather, short_sleeve_min_temp, heavy_outerwear_max_temp)
        if reason:
            removed[item.item_id] = reason
        else:
            kept.append(item)

    debug = {
        "input_count": len(items),
        "kept_count": len(kept),
        "removed_count": len(removed),
        "temperature_c": weather.temperature_c,
        "condition": weather.condition.value,
    }
    return FilteringResult(items=kept, removed=removed, debug=debug)


def filter_by_formality(
    items: List[WardrobeItem], required: FormalityLevel, tolerance: int = 0
) -> FilteringResult:
    """Keep items whose declared formality reaches the occasion.

    Items without any formality tag are neutral and always pass.
    """

    minimum = max(int(FormalityLevel.CASUAL), int(required) - tolerance)
    removed: Dict[str, str] = {}
    kept: List[WardrobeItem] = []
    for item in items:
        level = item.formality
        if level is not None and level < minimum:
            removed[item.item_id] = f"{level.label} is below {FormalityLevel(minimum).label}"
        else:
            kept.append(item)

    debug = {
        "input_count": len(items),
        "kept_count": len(kept),
        "removed_count": len(removed),
        "required": required.label,
        "tolerance": tolerance,
    }
    return FilteringResult(items=kept, removed=removed, debug=debug)


__all__ = ["FilteringResult", "filter_by_weather", "filter_by_formality", "WEATHER_GATE", "FORMALITY_GATE"]
