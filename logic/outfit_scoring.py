"""Deterministic scoring for candidate outfits."""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from datetime import date
from itertools import combinations
from typing import Dict, List, Optional

from models.color_theory import evaluate_harmony
from models.style_profile import StyleProfile
from models.wardrobe_item import WardrobeItem

WEIGHTS = {
    "compatibility": 0.35,
    "color": 0.25,
    "neglect": 0.15,
    "confidence": 0.25,
}

NEUTRAL_COMPATIBILITY = 0.6
NEUTRAL_CONFIDENCE = 0.6
PREFERRED_COLOR_BONUS = 0.03
DISLIKED_PATTERN_PENALTY = 0.15


@dataclass(frozen=True)
class ScoreResult:
    score: float
    breakdown: Dict[str, float] = field(default_factory=dict)
    harmony_rule: str = "none"


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, value))


def pair_compatibility(first: WardrobeItem, second: WardrobeItem, profile: StyleProfile) -> float:
    """Learned weight first, then the items' own maps, then the neutral score."""

    learned = profile.compatibility_for(first.item_id, second.item_id)
    if learned is not None:
        return learned
    declared = [
        value
        for value in (
            first.style_compatibility.get(second.item_id),
            second.style_compatibility.get(first.item_id),
        )
        if value is not None
    ]
    if declared:
        return sum(declared) / len(declared)
    return NEUTRAL_COMPATIBILITY


def compatibility_score(items: List[WardrobeItem], profile: StyleProfile) -> float:
    pairs = list(combinations(items, 2))
    if not pairs:
        return NEUTRAL_COMPATIBILITY
    return sum(pair_compatibility(a, b, profile) for a, b in pairs) / len(pairs)


def is_neglected(item: WardrobeItem, today: date, neglect_days: int) -> bool:
    days = item.usage.days_since_worn(today)
    return days is None or days > neglect_days


def neglect_score(items: List[WardrobeItem], today: date, neglect_days: int = 30) -> float:
    """Share of the outfit that has sat unworn past the recency threshold."""

    if not items:
        return 0.0
    return sum(1 for item in items if is_neglected(item, today, neglect_days)) / len(items)


def confidence_score(items: List[WardrobeItem], profile: StyleProfile) -> float:
    """Historical rating of this or similar combinations, scaled to 0..1."""

    ids = {item.item_id for item in items}
    exact = profile.pattern_for(ids)
    if exact is not None:
        return _clamp(exact.average_rating / 5.0)

    similar = [pattern for pattern in profile.confidence_patterns if len(ids.intersection(pattern.item_ids)) >= 2]
    if similar:
        total = sum(pattern.count for pattern in similar)
        weighted = sum(pattern.average_rating * pattern.count for pattern in similar)
        return _clamp(weighted / total / 5.0)

    ratings = [item.usage.average_rating for item in items if item.usage.average_rating > 0]
    if ratings:
        return _clamp(sum(ratings) / len(ratings) / 5.0)
    return NEUTRAL_CONFIDENCE


def variety_jitter(item_ids: List[str], seed: Optional[int], weight: float) -> float:
    if seed is None or weight <= 0:
        return 0.0
    rng = random.Random(f"{seed}:{'|'.join(sorted(item_ids))}")
    return rng.random() * weight


def score_outfit(
    items: List[WardrobeItem],
    profile: StyleProfile,
    today: date,
    neglect_days: int = 30,
    variety_seed: Optional[int] = None,
    variety_weight: float = 0.0,
) -> ScoreResult:
    """Weighted sum of compatibility, color harmony, neglect and confidence.

    Preferred colors nudge the total up; a disliked tag combination contained
    in the outfit pulls it down. Variety jitter only applies with an explicit
    seed so identical inputs always produce identical scores.
    """

    harmony = evaluate_harmony(color for item in items for color in item.colors)
    sub_scores = {
        "compatibility": compatibility_score(items, profile),
        "color": harmony.score,
        "neglect": neglect_score(items, today, neglect_days),
        "confidence": confidence_score(items, profile),
    }
    composite = sum(sub_scores[key] * weight for key, weight in WEIGHTS.items())

    adjustments = 0.0
    colors = {color for item in items for color in item.colors}
    if colors.intersection(profile.preferred_colors):
        adjustments += PREFERRED_COLOR_BONUS
    tags = {tag for item in items for tag in item.tags}
    disliked = sum(1 for pattern in profile.disliked_tag_sets() if pattern and pattern <= tags)
    adjustments -= DISLIKED_PATTERN_PENALTY * disliked
    adjustments += variety_jitter([item.item_id for item in items], variety_seed, variety_weight)

    breakdown = {key: round(value, 6) for key, value in sub_scores.items()}
    breakdown["adjustments"] = round(adjustments, 6)
    return ScoreResult(
        score=round(_clamp(composite + adjustments), 6),
        breakdown=breakdown,
        harmony_rule=harmony.rule_used,
    )


__all__ = [
    "score_outfit",
    "ScoreResult",
    "WEIGHTS",
    "NEUTRAL_COMPATIBILITY",
    "NEUTRAL_CONFIDENCE",
    "pair_compatibility",
    "compatibility_score",
    "neglect_score",
    "confidence_score",
    "is_neglected",
]
