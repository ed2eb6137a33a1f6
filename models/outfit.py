"""Outfit candidate and recommendation schemas."""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from models.context import DegradationLevel

STATUS_OK = "ok"
STATUS_INSUFFICIENT_ITEMS = "insufficient_items"
STATUS_UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class OutfitCandidate:
    """Item ids per slot, in slot order. Generated per request, never stored."""

    slots: Tuple[Tuple[str, str], ...]

    @property
    def item_ids(self) -> Tuple[str, ...]:
        return tuple(item_id for _, item_id in self.slots)

    def item_for(self, slot: str) -> Optional[str]:
        for name, item_id in self.slots:
            if name == slot:
                return item_id
        return None

    def shared_items(self, other: "OutfitCandidate") -> int:
        return len(set(self.item_ids).intersection(other.item_ids))


@dataclass
class OutfitRecommendation:
    candidate: OutfitCandidate
    rank: int
    score: float
    style_match: int
    confidence_note: str
    breakdown: Dict[str, float] = field(default_factory=dict)
    alternatives: List[OutfitCandidate] = field(default_factory=list)
    relaxed_gates: List[str] = field(default_factory=list)

    @property
    def item_ids(self) -> Tuple[str, ...]:
        return self.candidate.item_ids

    def to_dict(self) -> Dict[str, object]:
        return {
            "rank": self.rank,
            "item_ids": list(self.item_ids),
            "slots": dict(self.candidate.slots),
            "score": self.score,
            "style_match": self.style_match,
            "confidence_note": self.confidence_note,
            "breakdown": dict(self.breakdown),
            "alternatives": [list(alt.item_ids) for alt in self.alternatives],
            "relaxed_gates": list(self.relaxed_gates),
        }


@dataclass
class DailyRecommendations:
    """What the presentation layer receives for one user and day."""

    status: str
    user_id: str
    recommendations: List[OutfitRecommendation] = field(default_factory=list)
    degradation: Dict[str, DegradationLevel] = field(default_factory=dict)
    message: Optional[str] = None

    def to_dict(self) -> Dict[str, object]:
        return {
            "status": self.status,
            "recommendations": [rec.to_dict() for rec in self.recommendations],
            "degradation": {source: level.value for source, level in self.degradation.items()},
            "message": self.message,
        }
