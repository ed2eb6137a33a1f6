"""Combinatorial outfit candidate generation."""
from __future__ import annotations

import logging
from itertools import product
from typing import Dict, List, Optional, Sequence

from models.outfit import OutfitCandidate
from models.taxonomy import Category
from models.wardrobe_item import WardrobeItem

logger = logging.getLogger(__name__)

REQUIRED_SLOTS = ("top", "bottom", "shoes")
DEFAULT_MAX_CANDIDATES = 200


def group_by_category(items: Sequence[WardrobeItem]) -> Dict[Category, List[WardrobeItem]]:
    """Bucket items per category, sorted by id, dropping duplicate ids."""

    grouped: Dict[Category, List[WardrobeItem]] = {category: [] for category in Category}
    seen = set()
    for item in items:
        if item.item_id in seen:
            logger.warning("Skipping duplicate wardrobe item id %s", item.item_id)
            continue
        seen.add(item.item_id)
        grouped[item.category].append(item)
    for values in grouped.values():
        values.sort(key=lambda i: i.item_id)
    return grouped


def missing_slots(items: Sequence[WardrobeItem]) -> List[str]:
    """Required slots the items cannot fill; a single-piece top covers the bottom."""

    grouped = group_by_category(items)
    missing = []
    if not grouped[Category.TOP]:
        missing.append("top")
    has_single_piece = any(item.is_single_piece for item in grouped[Category.TOP])
    if not grouped[Category.BOTTOM] and not has_single_piece:
        missing.append("bottom")
    if not grouped[Category.SHOES]:
        missing.append("shoes")
    return missing


def generate_candidates(
    items: Sequence[WardrobeItem],
    temperature_c: float,
    outerwear_min_temp: float = 15.0,
    max_candidates: int = DEFAULT_MAX_CANDIDATES,
) -> List[OutfitCandidate]:
    """Pair one item per slot in a fixed order.

    Outerwear joins every candidate when it is colder than
    ``outerwear_min_temp`` and any outerwear is available; accessories are
    optional variants.
    """

    grouped = group_by_category(items)
    tops = grouped[Category.TOP]
    shoes = grouped[Category.SHOES]
    if not tops or not shoes:
        return []

    layers: List[Optional[WardrobeItem]] = [None]
    if temperature_c < outerwear_min_temp and grouped[Category.OUTERWEAR]:
        layers = list(grouped[Category.OUTERWEAR])
    accessories: List[Optional[WardrobeItem]] = [None] + list(grouped[Category.ACCESSORY])

    candidates: List[OutfitCandidate] = []
    for top in tops:
        bottoms: List[Optional[WardrobeItem]] = [None] if top.is_single_piece else list(grouped[Category.BOTTOM])
        for bottom, layer, pair, accessory in product(bottoms, layers, shoes, accessories):
            slots = [("top", top.item_id)]
            if bottom is not None:
                slots.append(("bottom", bottom.item_id))
            if layer is not None:
                slots.append(("outerwear", layer.item_id))
            slots.append(("shoes", pair.item_id))
            if accessory is not None:
                slots.append(("accessory", accessory.item_id))
            candidates.append(OutfitCandidate(slots=tuple(slots)))
            if len(candidates) >= max_candidates:
                logger.info("Candidate generation capped at %s", max_candidates)
                return candidates
    return candidates


__all__ = ["generate_candidates", "missing_slots", "group_by_category", "REQUIRED_SLOTS"]
