"""Wardrobe taxonomy, item parsing and storage tests."""

from __future__ import annotations

from datetime import date
from typing import Dict

import pytest

from memory.profile_store import InMemoryProfileStore, JSONProfileStore
from models import taxonomy
from models.style_profile import ConfidencePattern, StyleProfile
from models.taxonomy import Category, FormalityLevel, NoteStyle
from models.wardrobe_item import WardrobeItem, from_raw_metadata
from tools.wardrobe_store import InMemoryWardrobeStore, SQLiteWardrobeStore, favorite_key


@pytest.fixture()
def sample_metadata() -> Dict[str, object]:
    return {
        "item_id": "item-1",
        "user_id": "user-123",
        "category": "Tops",
        "colors": ["navy blue", "White", "navy"],
        "tags": ["Business", "Short-Sleeve"],
        "brand": "Example",
        "usage": {"total_wears": 4, "last_worn": "2025-05-01", "average_rating": 4.5, "cost_per_wear": 12.5},
        "style_compatibility": {"item-2": 1.4, "item-3": 0.3},
        "created_at": "2025-01-10T09:00:00Z",
    }


def test_taxonomy_normalisation() -> None:
    assert Category.parse("Footwear") is Category.SHOES
    assert Category.parse("coat") is Category.OUTERWEAR
    with pytest.raises(ValueError):
        Category.parse("hat rack")

    assert taxonomy.normalize_color_name("Charcoal") == "gray"
    assert taxonomy.normalise_tags(["Smart Casual", "smart-casual", " "]) == ["smart_casual"]
    assert taxonomy.formality_of_tags(["casual", "business"]) is FormalityLevel.BUSINESS
    assert taxonomy.formality_of_tags(["knit"]) is None
    assert FormalityLevel.parse("black tie") is FormalityLevel.BLACK_TIE
    assert NoteStyle.parse("Witty") is NoteStyle.WITTY


def test_from_raw_metadata_normalises_fields(sample_metadata: Dict[str, object]) -> None:
    item = from_raw_metadata(sample_metadata)

    assert isinstance(item, WardrobeItem)
    assert item.category is Category.TOP
    assert item.colors == ["navy", "white"]
    assert item.tags == ["business", "short_sleeve"]
    assert item.formality is FormalityLevel.BUSINESS
    assert item.usage.total_wears == 4
    assert item.usage.last_worn == date(2025, 5, 1)
    assert item.usage.days_since_worn(date(2025, 5, 31)) == 30
    assert item.style_compatibility == {"item-2": 1.0, "item-3": 0.3}
    assert item.created_at is not None and item.created_at.year == 2025
    assert item.display_name == "item 1"


def test_from_raw_metadata_requires_id_and_category() -> None:
    with pytest.raises(ValueError):
        from_raw_metadata({"item_id": "x"})
    with pytest.raises(ValueError):
        from_raw_metadata({"category": "top"})


def test_single_piece_detection() -> None:
    dress = from_raw_metadata({"item_id": "d", "category": "top", "tags": ["Dress"]})
    shirt = from_raw_metadata({"item_id": "s", "category": "top", "tags": ["oxford"]})
    assert dress.is_single_piece is True
    assert shirt.is_single_piece is False


def test_sqlite_store_round_trip(tmp_path, sample_metadata: Dict[str, object]) -> None:
    store = SQLiteWardrobeStore(tmp_path / "nested" / "wardrobe.db")
    store.save_record("user-123", sample_metadata)
    store.save_item("user-123", from_raw_metadata({"item_id": "item-0", "category": "shoes", "colors": ["tan"]}))
    store.save_record("user-123", {"item_id": "broken", "category": "spaceship"})
    store.save_record("someone-else", {"item_id": "item-9", "category": "top"})

    items = store.list_items_for_user("user-123")

    assert [item.item_id for item in items] == ["item-0", "item-1"]
    assert items[0].colors == ["beige"]
    assert items[1].usage.average_rating == 4.5


def test_sqlite_store_records_wear(tmp_path, sample_metadata: Dict[str, object]) -> None:
    store = SQLiteWardrobeStore(tmp_path / "wardrobe.db")
    store.save_record("user-123", sample_metadata)

    assert store.record_wear("user-123", "item-1", date(2025, 6, 2)) is True
    assert store.record_wear("user-123", "missing", date(2025, 6, 2)) is False

    item = store.list_items_for_user("user-123")[0]
    assert item.usage.total_wears == 5
    assert item.usage.last_worn == date(2025, 6, 2)
    assert item.usage.cost_per_wear == 10.0


def test_in_memory_store_sets_cost_per_wear_from_price() -> None:
    store = InMemoryWardrobeStore({"u": [{"item_id": "coat", "category": "outerwear"}]})

    store.record_wear("u", "coat", date(2025, 1, 5), purchase_price=200.0)
    store.record_wear("u", "coat", date(2025, 1, 6), purchase_price=200.0)

    usage = store.list_items_for_user("u")[0].usage
    assert usage.total_wears == 2
    assert usage.cost_per_wear == 100.0



@pytest.mark.parametrize("backend", ["sqlite", "memory"])
def test_saving_a_favorite_again_replaces_it(tmp_path, backend: str) -> None:
    store = SQLiteWardrobeStore(tmp_path / "wardrobe.db") if backend == "sqlite" else InMemoryWardrobeStore()
    first = {"item_ids": ["shirt", "chinos"], "confidence_note": "Easy.", "score": 0.6, "saved_at": "2025-06-02T08:00:00+00:00"}
    other = {"item_ids": ["dress"], "confidence_note": "", "score": 0.5, "saved_at": "2025-06-01T08:00:00+00:00"}
    again = dict(first, item_ids=["chinos", "shirt"], score=0.9, saved_at="2025-06-03T08:00:00+00:00")

    store.save_favorite("u", first)
    store.save_favorite("u", other)
    store.save_favorite("u", again)

    assert favorite_key(first) == favorite_key(again) == "chinos|shirt"
    assert store.list_favorites("u") == [other, again]
    assert store.list_favorites("someone-else") == []


def _learned_profile() -> StyleProfile:
    profile = StyleProfile.default("user-123")
    profile.note_style = NoteStyle.POETIC
    profile.preferred_colors = ["navy"]
    profile.compatibility_weights["a|b"] = 0.82
    profile.confidence_patterns.append(ConfidencePattern(item_ids=("a", "b"), average_rating=4.5, count=2))
    profile.disliked_patterns["casual+graphic"] = 7
    profile.feedback_cycle = 9
    return profile


def test_json_profile_store_round_trip(tmp_path) -> None:
    store = JSONProfileStore(tmp_path / "profiles")
    profile = _learned_profile()

    assert store.load_profile("user-123") is None
    store.save_profile("user-123", profile)

    assert store.load_profile("user-123") == profile
    assert store.delete_profile("user-123") is True
    assert store.delete_profile("user-123") is False


def test_in_memory_profile_store_returns_copies() -> None:
    store = InMemoryProfileStore()
    profile = _learned_profile()
    store.save_profile("user-123", profile)

    loaded = store.load_profile("user-123")
    loaded.preferred_colors.append("red")

    assert store.load_profile("user-123").preferred_colors == ["navy"]


def test_profile_from_dict_requires_user_id() -> None:
    with pytest.raises(ValueError):
        StyleProfile.from_dict({"feedback_cycle": 3})
