"""Per-user style profile learned from outfit feedback."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

from models.taxonomy import EmotionalState, NoteStyle

COMPATIBILITY_MIN = 0.0
COMPATIBILITY_MAX = 1.0


def pair_key(first_id: str, second_id: str) -> str:
    """Order-independent key for an item pair."""

    a, b = sorted((str(first_id), str(second_id)))
    return f"{a}|{b}"


def combination_key(item_ids: Iterable[str]) -> Tuple[str, ...]:
    return tuple(sorted(set(item_ids)))


@dataclass(frozen=True)
class EmotionalResponse:
    """How an outfit made the user feel; intensity runs from 1 to 10."""

    primary: EmotionalState
    intensity: int = 5

    def __post_init__(self) -> None:
        object.__setattr__(self, "primary", EmotionalState(self.primary))
        if not 1 <= int(self.intensity) <= 10:
            raise ValueError("intensity must be between 1 and 10")


@dataclass
class ConfidencePattern:
    """Historical rating of one item combination."""

    item_ids: Tuple[str, ...]
    average_rating: float
    count: int = 1
    emotions: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "item_ids": list(self.item_ids),
            "average_rating": self.average_rating,
            "count": self.count,
            "emotions": list(self.emotions),
        }

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "ConfidencePattern":
        return cls(
            item_ids=combination_key(payload.get("item_ids", [])),
            average_rating=float(payload.get("average_rating", 0.0)),
            count=int(payload.get("count", 1)),
            emotions=list(payload.get("emotions", [])),
        )


@dataclass
class StyleProfile:
    """Learned preferences. Only the feedback learner mutates a profile."""

    user_id: str
    confidence_threshold: float = 0.5
    preferred_colors: List[str] = field(default_factory=list)
    preferred_brands: List[str] = field(default_factory=list)
    preferred_styles: List[str] = field(default_factory=list)
    note_style: Optional[NoteStyle] = None
    compatibility_weights: Dict[str, float] = field(default_factory=dict)
    confidence_patterns: List[ConfidencePattern] = field(default_factory=list)
    low_rating_counts: Dict[str, int] = field(default_factory=dict)
    disliked_patterns: Dict[str, int] = field(default_factory=dict)
    feedback_cycle: int = 0
    last_updated: Optional[datetime] = None

    @classmethod
    def default(cls, user_id: str) -> "StyleProfile":
        return cls(user_id=user_id)

    def copy(self) -> "StyleProfile":
        return copy.deepcopy(self)

    def compatibility_for(self, first_id: str, second_id: str) -> Optional[float]:
        return self.compatibility_weights.get(pair_key(first_id, second_id))

    def pattern_for(self, item_ids: Iterable[str]) -> Optional[ConfidencePattern]:
        key = combination_key(item_ids)
        for pattern in self.confidence_patterns:
            if pattern.item_ids == key:
                return pattern
        return None

    def disliked_tag_sets(self) -> List[frozenset]:
        return [frozenset(pattern.split("+")) for pattern in self.disliked_patterns]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "confidence_threshold": self.confidence_threshold,
            "preferred_colors": list(self.preferred_colors),
            "preferred_brands": list(self.preferred_brands),
            "preferred_styles": list(self.preferred_styles),
            "note_style": self.note_style.value if self.note_style else None,
            "compatibility_weights": dict(self.compatibility_weights),
            "confidence_patterns": [pattern.to_dict() for pattern in self.confidence_patterns],
            "low_rating_counts": dict(self.low_rating_counts),
            "disliked_patterns": dict(self.disliked_patterns),
            "feedback_cycle": self.feedback_cycle,
            "last_updated": self.last_updated.isoformat() if self.last_updated else None,
        }

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "StyleProfile":
        if not payload.get("user_id"):
            raise ValueError("StyleProfile payload is missing user_id")
        note_style = payload.get("note_style")
        last_updated = payload.get("last_updated")
        return cls(
            user_id=str(payload["user_id"]),
            confidence_threshold=float(payload.get("confidence_threshold", 0.5)),
            preferred_colors=list(payload.get("preferred_colors", [])),
            preferred_brands=list(payload.get("preferred_brands", [])),
            preferred_styles=list(payload.get("preferred_styles", [])),
            note_style=NoteStyle.parse(note_style) if note_style else None,
            compatibility_weights={
                str(key): float(value) for key, value in payload.get("compatibility_weights", {}).items()
            },
            confidence_patterns=[
                ConfidencePattern.from_dict(item) for item in payload.get("confidence_patterns", [])
            ],
            low_rating_counts={str(k): int(v) for k, v in payload.get("low_rating_counts", {}).items()},
            disliked_patterns={str(k): int(v) for k, v in payload.get("disliked_patterns", {}).items()},
            feedback_cycle=int(payload.get("feedback_cycle", 0)),
            last_updated=datetime.fromisoformat(last_updated) if last_updated else None,
        )


__all__ = [
    "COMPATIBILITY_MIN",
    "COMPATIBILITY_MAX",
    "ConfidencePattern",
    "EmotionalResponse",
    "StyleProfile",
    "pair_key",
    "combination_key",
]
