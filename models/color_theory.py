"""Lightweight color harmony helpers for deterministic outfit scoring."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from itertools import permutations
from typing import Iterable, List, Sequence

from models.taxonomy import NEUTRAL_COLORS, normalize_color_name

logger = logging.getLogger(__name__)

_COMPLEMENTARY_PAIRS = {
    ("red", "green"),
    ("blue", "orange"),
    ("yellow", "purple"),
    ("pink", "green"),
    ("black", "white"),
}

_ANALOGOUS_CHAINS: List[Sequence[str]] = [
    ("red", "orange", "yellow"),
    ("orange", "yellow", "green"),
    ("yellow", "green", "blue"),
    ("green", "blue", "purple"),
    ("blue", "purple", "pink"),
    ("purple", "pink", "red"),
]

HARMONY_SCORES = {
    "monochrome": 1.0,
    "neutral_palette": 0.9,
    "neutral_with_accent": 0.85,
    "complementary": 0.8,
    "analogous": 0.75,
    "mixed": 0.5,
    "clashing": 0.35,
    "none": 0.5,
}


@dataclass(frozen=True)
class HarmonyResult:
    """Represents the outcome of a harmony evaluation."""

    colors: List[str]
    rule_used: str
    score: float


def _normalise_colors(colors: Iterable[str]) -> List[str]:
    return [normalize_color_name(color) for color in colors if color]


def monochrome(color_list: Iterable[str]) -> bool:
    """Return True when all provided colors collapse to a single tone."""

    normalized = _normalise_colors(color_list)
    unique_colors = {color for color in normalized if color}
    result = len(unique_colors) <= 1
    logger.debug("monochrome check %s -> %s", unique_colors, result)
    return result


def complementary(color1: str, color2: str) -> bool:
    """Return True when the colors form a complementary pair."""

    c1, c2 = normalize_color_name(color1), normalize_color_name(color2)
    if c1 == c2:
        return False
    result = (c1, c2) in _COMPLEMENTARY_PAIRS or (c2, c1) in _COMPLEMENTARY_PAIRS
    logger.debug("complementary check (%s, %s) -> %s", c1, c2, result)
    return result


def analogous_triplet(colors: Sequence[str]) -> bool:
    """Return True when three colors sit next to each other on a simple wheel, in any order."""

    normalized = _normalise_colors(colors)
    if len(set(normalized)) != 3:
        return False
    result = any(tuple(order) in _ANALOGOUS_CHAINS for order in permutations(sorted(set(normalized))))
    logger.debug("analogous check %s -> %s", normalized, result)
    return result


def evaluate_harmony(colors: Iterable[str]) -> HarmonyResult:
    """Classify an outfit palette and return its harmony score.

    Neutrals (black, white, gray, navy, beige, brown) pair with anything, so
    only the accent colors are checked against the complementary and
    analogous rules.
    """

    palette = sorted(set(_normalise_colors(colors)))
    if not palette:
        rule = "none"
    elif monochrome(palette):
        rule = "monochrome"
    else:
        accents = [color for color in palette if color not in NEUTRAL_COLORS]
        if not accents:
            rule = "neutral_palette"
        elif len(accents) == 1:
            rule = "neutral_with_accent"
        elif len(accents) == 2 and complementary(accents[0], accents[1]):
            rule = "complementary"
        elif len(accents) == 3 and analogous_triplet(accents):
            rule = "analogous"
        else:
            rule = "mixed" if len(accents) <= 2 else "clashing"
    return HarmonyResult(colors=palette, rule_used=rule, score=HARMONY_SCORES[rule])


__all__ = [
    "monochrome",
    "complementary",
    "analogous_triplet",
    "evaluate_harmony",
    "HarmonyResult",
    "HARMONY_SCORES",
]
