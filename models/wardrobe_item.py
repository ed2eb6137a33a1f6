"""Wardrobe item data model and helpers."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from models.taxonomy import (
    SINGLE_PIECE_TAGS,
    Category,
    FormalityLevel,
    formality_of_tags,
    normalize_color_name,
    normalise_tags,
)


def _ensure_list(value: Any) -> List[Any]:
    """Coerce a scalar or iterable into a list."""

    if value is None:
        return []
    if isinstance(value, (list, tuple, set, frozenset)):
        return list(value)
    return [value]


def _normalise_colors(values: Iterable[str]) -> List[str]:
    """Normalise color names using the canonical taxonomy mapping."""

    normalised = []
    seen = set()
    for value in values:
        key = normalize_color_name(str(value))
        if key and key not in seen:
            normalised.append(key)
            seen.add(key)
    return normalised


def _parse_date(value: Any) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00")).date()


def as_utc(value: datetime) -> datetime:
    """Aware UTC copy of ``value``; naive values are taken to be UTC already."""

    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _parse_datetime(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return as_utc(value)
    if isinstance(value, date):
        return datetime.combine(value, datetime.min.time(), tzinfo=timezone.utc)
    return as_utc(datetime.fromisoformat(str(value).replace("Z", "+00:00")))


@dataclass
class UsageStats:
    """Wear history for a single item. ``average_rating`` of 0 means unrated."""

    total_wears: int = 0
    last_worn: Optional[date] = None
    average_rating: float = 0.0
    cost_per_wear: float = 0.0

    def days_since_worn(self, today: date) -> Optional[int]:
        if self.last_worn is None:
            return None
        return (today - self.last_worn).days

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_wears": self.total_wears,
            "last_worn": self.last_worn.isoformat() if self.last_worn else None,
            "average_rating": self.average_rating,
            "cost_per_wear": self.cost_per_wear,
        }


@dataclass
class WardrobeItem:
    """Represents an item in the user's wardrobe."""

    item_id: str
    category: Category
    colors: List[str] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)
    usage: UsageStats = field(default_factory=UsageStats)
    style_compatibility: Dict[str, float] = field(default_factory=dict)
    name: Optional[str] = None
    brand: Optional[str] = None
    user_id: Optional[str] = None
    created_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if not self.item_id:
            raise ValueError("WardrobeItem requires an item_id")
        self.category = Category.parse(self.category)
        self.colors = _normalise_colors(self.colors)
        self.tags = normalise_tags(self.tags)
        self.style_compatibility = {
            str(key): min(1.0, max(0.0, float(value))) for key, value in self.style_compatibility.items()
        }

    @property
    def display_name(self) -> str:
        if self.name:
            return self.name
        return self.item_id.replace("-", " ").replace("_", " ")

    @property
    def formality(self) -> Optional[FormalityLevel]:
        """Formality declared by tags, ``None`` for formality-neutral items."""

        return formality_of_tags(self.tags)

    @property
    def is_single_piece(self) -> bool:
        return self.category is Category.TOP and bool(SINGLE_PIECE_TAGS.intersection(self.tags))

    def has_any_tag(self, tags: Iterable[str]) -> bool:
        return bool(set(tags).intersection(self.tags))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "item_id": self.item_id,
            "user_id": self.user_id,
            "category": self.category.value,
            "colors": list(self.colors),
            "tags": list(self.tags),
            "usage": self.usage.to_dict(),
            "style_compatibility": dict(self.style_compatibility),
            "name": self.name,
            "brand": self.brand,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


def from_raw_metadata(metadata: Dict[str, Any]) -> WardrobeItem:
    """Factory to build a :class:`WardrobeItem` from a loose store record."""

    required_fields = ["item_id", "category"]
    missing = [field for field in required_fields if not metadata.get(field)]
    if missing:
        raise ValueError(f"Missing required fields for WardrobeItem: {missing}")

    raw_usage = metadata.get("usage") or metadata.get("usage_stats") or {}
    usage = UsageStats(
        total_wears=int(raw_usage.get("total_wears", 0) or 0),
        last_worn=_parse_date(raw_usage.get("last_worn") or metadata.get("last_worn")),
        average_rating=float(raw_usage.get("average_rating", 0.0) or 0.0),
        cost_per_wear=float(raw_usage.get("cost_per_wear", 0.0) or 0.0),
    )

    return WardrobeItem(
        item_id=str(metadata["item_id"]),
        category=str(metadata["category"]),
        colors=_ensure_list(metadata.get("colors")),
        tags=_ensure_list(metadata.get("tags")),
        usage=usage,
        style_compatibility=dict(metadata.get("style_compatibility") or {}),
        name=metadata.get("name"),
        brand=metadata.get("brand"),
        user_id=metadata.get("user_id"),
        created_at=_parse_datetime(metadata.get("created_at")),
    )


__all__ = ["UsageStats", "WardrobeItem", "as_utc", "from_raw_metadata"]
