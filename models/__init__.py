"""Model package exports."""

from models.taxonomy import *  # noqa: F401,F403
from models.wardrobe_item import UsageStats, WardrobeItem, from_raw_metadata
from models.style_profile import ConfidencePattern, EmotionalResponse, StyleProfile, pair_key
from models.context import (
    CalendarContext,
    CalendarEvent,
    DegradationLevel,
    RecommendationContext,
    WeatherContext,
)
from models.outfit import DailyRecommendations, OutfitCandidate, OutfitRecommendation

__all__ = [
    "UsageStats",
    "WardrobeItem",
    "from_raw_metadata",
    "ConfidencePattern",
    "EmotionalResponse",
    "StyleProfile",
    "pair_key",
    "CalendarContext",
    "CalendarEvent",
    "DegradationLevel",
    "RecommendationContext",
    "WeatherContext",
    "DailyRecommendations",
    "OutfitCandidate",
    "OutfitRecommendation",
]
