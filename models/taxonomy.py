"""Canonical taxonomy definitions for wardrobe items and recommendation context.

This module centralises the enums shared by the context aggregator, the
recommendation engine and the feedback learner. Helper functions keep tag
normalisation and formality inference consistent across providers and models.
"""

from enum import Enum, IntEnum
from typing import Dict, Iterable, List, Optional


def _normalize_key(value: str) -> str:
    """Normalise a free-form string into a taxonomy key."""

    return value.strip().lower().replace(" ", "_").replace("-", "_")


class Category(str, Enum):
    TOP = "top"
    BOTTOM = "bottom"
    OUTERWEAR = "outerwear"
    SHOES = "shoes"
    ACCESSORY = "accessory"

    @classmethod
    def parse(cls, value: "str | Category") -> "Category":
        """Validate and normalise a category value.

        Raises a :class:`ValueError` if the category is not part of the canonical
        taxonomy.
        """

        if isinstance(value, Category):
            return value
        key = _normalize_key(str(value))
        key = CATEGORY_ALIASES.get(key, key)
        try:
            return cls(key)
        except ValueError:
            raise ValueError(
                f"Unsupported category '{value}'. Allowed: {[c.value for c in cls]}"
            ) from None


CATEGORY_ALIASES = {
    "tops": "top",
    "bottoms": "bottom",
    "shoe": "shoes",
    "footwear": "shoes",
    "accessories": "accessory",
    "jacket": "outerwear",
    "coat": "outerwear",
}


class WeatherCondition(str, Enum):
    SUNNY = "sunny"
    CLOUDY = "cloudy"
    RAINY = "rainy"
    SNOWY = "snowy"
    WINDY = "windy"
    STORMY = "stormy"

    @property
    def is_wet(self) -> bool:
        return self in {WeatherCondition.RAINY, WeatherCondition.SNOWY, WeatherCondition.STORMY}


class FormalityLevel(IntEnum):
    """Ordered occasion formality, casual is the lowest."""

    CASUAL = 0
    BUSINESS_CASUAL = 1
    BUSINESS = 2
    FORMAL = 3
    BLACK_TIE = 4

    @property
    def label(self) -> str:
        return self.name.lower().replace("_", "-")

    @classmethod
    def parse(cls, value: "str | int | FormalityLevel") -> "FormalityLevel":
        if isinstance(value, FormalityLevel):
            return value
        if isinstance(value, int):
            return cls(value)
        level = formality_from_tag(str(value))
        if level is None:
            raise ValueError(f"Unsupported formality level '{value}'")
        return level


class NoteStyle(str, Enum):
    ENCOURAGING = "encouraging"
    WITTY = "witty"
    POETIC = "poetic"

    @classmethod
    def parse(cls, value: "str | NoteStyle") -> "NoteStyle":
        if isinstance(value, NoteStyle):
            return value
        try:
            return cls(_normalize_key(str(value)))
        except ValueError:
            raise ValueError(
                f"Unsupported note style '{value}'. Allowed: {[s.value for s in cls]}"
            ) from None


class EmotionalState(str, Enum):
    CONFIDENT = "confident"
    COMFORTABLE = "comfortable"
    STYLISH = "stylish"
    POWERFUL = "powerful"
    CREATIVE = "creative"
    ELEGANT = "elegant"
    PLAYFUL = "playful"


FORMALITY_TAGS: Dict[str, FormalityLevel] = {
    "casual": FormalityLevel.CASUAL,
    "informal": FormalityLevel.CASUAL,
    "sporty": FormalityLevel.CASUAL,
    "street": FormalityLevel.CASUAL,
    "business_casual": FormalityLevel.BUSINESS_CASUAL,
    "smart_casual": FormalityLevel.BUSINESS_CASUAL,
    "smart": FormalityLevel.BUSINESS_CASUAL,
    "business": FormalityLevel.BUSINESS,
    "work": FormalityLevel.BUSINESS,
    "formal": FormalityLevel.FORMAL,
    "black_tie": FormalityLevel.BLACK_TIE,
    "gala": FormalityLevel.BLACK_TIE,
}

SHORT_SLEEVE_TAGS = {"short_sleeve", "t_shirt", "tee", "tank", "sleeveless", "shorts"}
HEAVY_OUTERWEAR_TAGS = {"heavy", "winter", "puffer", "parka", "down", "wool_coat"}
WET_SENSITIVE_TAGS = {"suede", "canvas"}
SINGLE_PIECE_TAGS = {"dress", "jumpsuit", "one_piece", "single_piece"}

NEUTRAL_COLORS = {"black", "white", "gray", "navy", "beige", "brown"}

COLOR_MAP = {
    "navy blue": "navy",
    "navy": "navy",
    "light blue": "blue",
    "sky blue": "blue",
    "blue": "blue",
    "black": "black",
    "white": "white",
    "off white": "white",
    "cream": "beige",
    "beige": "beige",
    "tan": "beige",
    "camel": "beige",
    "brown": "brown",
    "gray": "gray",
    "grey": "gray",
    "charcoal": "gray",
    "green": "green",
    "olive": "green",
    "red": "red",
    "burgundy": "red",
    "pink": "pink",
    "yellow": "yellow",
    "orange": "orange",
    "purple": "purple",
}


def normalize_color_name(raw_string: str) -> str:
    """Map a raw color string to a canonical color name."""

    key = raw_string.strip().lower().replace("-", " ")
    return COLOR_MAP.get(key, key)


def normalise_tags(values: Iterable[str]) -> List[str]:
    """Normalise and deduplicate free-form tags, preserving first-seen order."""

    normalised = []
    seen = set()
    for value in values:
        key = _normalize_key(str(value))
        if key and key not in seen:
            normalised.append(key)
            seen.add(key)
    return normalised


def formality_from_tag(tag: str) -> Optional[FormalityLevel]:
    return FORMALITY_TAGS.get(_normalize_key(tag))


def formality_of_tags(tags: Iterable[str]) -> Optional[FormalityLevel]:
    """Highest formality any tag declares, ``None`` when no tag carries one."""

    levels = [level for level in (formality_from_tag(tag) for tag in tags) if level is not None]
    return max(levels) if levels else None


__all__ = [
    "Category",
    "WeatherCondition",
    "FormalityLevel",
    "NoteStyle",
    "EmotionalState",
    "FORMALITY_TAGS",
    "SHORT_SLEEVE_TAGS",
    "HEAVY_OUTERWEAR_TAGS",
    "WET_SENSITIVE_TAGS",
    "SINGLE_PIECE_TAGS",
    "NEUTRAL_COLORS",
    "normalize_color_name",
    "normalise_tags",
    "formality_from_tag",
    "formality_of_tags",
]
