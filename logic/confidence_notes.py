"""Short confidence notes attached to each recommendation.

Every note names something concrete about the outfit (a piece, the weather or
the occasion). Template choice is a checksum of the outfit, never random.
"""

from __future__ import annotations

import logging
import zlib
from typing import Dict, List, Optional, Sequence

from models.context import WeatherContext
from models.taxonomy import NoteStyle
from models.wardrobe_item import WardrobeItem

logger = logging.getLogger(__name__)

TEMPLATES: Dict[NoteStyle, List[str]] = {
    NoteStyle.ENCOURAGING: [
        "Your {item} is a great anchor for {weather}.",
        "You'll feel ready for anything in your {item} today.",
        "Trust your {item}: it's made for {weather}.",
    ],
    NoteStyle.WITTY: [
        "The forecast says {weather}; your {item} says 'I've got this.'",
        "Your {item} called. It wants out of the closet today.",
        "{weather}? Your {item} has seen worse.",
    ],
    NoteStyle.POETIC: [
        "Beneath {weather}, your {item} tells a quiet story.",
        "Your {item} carries the calm of {weather}.",
        "Let your {item} set the rhythm of the day.",
    ],
}

OCCASION_TEMPLATES: Dict[NoteStyle, List[str]] = {
    NoteStyle.ENCOURAGING: [
        "Your {item} is a confident choice for {occasion}.",
        "Walk into {occasion} knowing your {item} has you covered.",
    ],
    NoteStyle.WITTY: [
        "{occasion} won't know what hit it once your {item} walks in.",
        "Your {item} already RSVP'd to {occasion}.",
    ],
    NoteStyle.POETIC: [
        "For {occasion}, your {item} speaks before you do.",
        "Your {item} and {occasion}: a meeting written in thread.",
    ],
}

GENERIC_NOTES = {"looks good", "great outfit", "nice", "you look great", "good choice"}


def _feature_item(items: Sequence[WardrobeItem], seed: int) -> WardrobeItem:
    return items[seed % len(items)]


def mentions_outfit(note: str, items: Sequence[WardrobeItem], weather: Optional[WeatherContext], occasion: Optional[str]) -> bool:
    """True when the note names an item, the weather or the occasion."""

    lowered = note.strip().lower()
    if not lowered or lowered.rstrip(".!") in GENERIC_NOTES:
        return False
    anchors = [item.display_name.lower() for item in items]
    if weather is not None:
        anchors.extend([weather.condition.value, f"{weather.temperature_c:.0f}°c"])
    if occasion:
        anchors.append(occasion.lower())
    return any(anchor and anchor in lowered for anchor in anchors)


def fallback_note(items: Sequence[WardrobeItem], weather: Optional[WeatherContext]) -> str:
    item = items[0].display_name
    if weather is not None:
        return f"Your {item} is a solid pick for {weather.describe()}."
    return f"Your {item} is a solid pick for today."


def compose_note(
    style: NoteStyle,
    items: Sequence[WardrobeItem],
    weather: Optional[WeatherContext],
    occasion: Optional[str] = None,
) -> str:
    """Pick a template in ``style`` and fill it with concrete outfit details."""

    if not items:
        raise ValueError("A confidence note needs at least one item")
    seed = zlib.crc32("|".join(sorted(item.item_id for item in items)).encode("utf-8"))
    item = _feature_item(items, seed)
    if occasion:
        templates = OCCASION_TEMPLATES[style]
    else:
        templates = TEMPLATES[style]
    template = templates[seed % len(templates)]
    note = template.format(
        item=item.display_name,
        weather=weather.describe() if weather is not None else "today",
        occasion=occasion or "",
    )
    note = note[0].upper() + note[1:]
    if not mentions_outfit(note, items, weather, occasion):
        logger.warning("Rejected generic confidence note; using fallback")
        note = fallback_note(items, weather)
    return note


def confidence_level(score: float) -> str:
    if score >= 0.8:
        return "High"
    if score >= 0.6:
        return "Medium"
    return "Building"


def shareable_outfit(items: Sequence[WardrobeItem], confidence_note: str, score: float) -> Dict[str, str]:
    """Title and description for sharing an outfit outside the app.

    Only item names, the note and a confidence level are included; the
    location and calendar details stay out of shared text.
    """

    if not items:
        raise ValueError("A shared outfit needs at least one item")
    pieces = ", ".join(item.display_name for item in items)
    description = f"Feeling confident in my {pieces}!"
    if confidence_note:
        description = f"{description} {confidence_note}"
    return {
        "title": "My Outfit Look",
        "description": f"{description} Confidence level: {confidence_level(score)}.",
    }


__all__ = [
    "compose_note",
    "confidence_level",
    "fallback_note",
    "mentions_outfit",
    "shareable_outfit",
    "TEMPLATES",
    "OCCASION_TEMPLATES",
]
