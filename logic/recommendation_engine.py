"""Builds, scores, ranks and annotates daily outfit recommendations.

The engine performs no I/O: everything it needs arrives in the
:class:`RecommendationContext`, so it is safe to run in parallel across
requests and identical inputs always produce identical output.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from logic.candidates import DEFAULT_MAX_CANDIDATES, generate_candidates, missing_slots
from logic.confidence_notes import compose_note
from logic.gates import FORMALITY_GATE, WEATHER_GATE, filter_by_formality, filter_by_weather
from logic.outfit_scoring import ScoreResult, score_outfit
from mirror_app.logging_config import get_logger, log_event
from models.context import RecommendationContext
from models.outfit import OutfitCandidate, OutfitRecommendation
from models.taxonomy import NoteStyle
from models.wardrobe_item import WardrobeItem, as_utc
from resilience.errors import InsufficientWardrobeError

LOGGER = get_logger(__name__)

MAX_RESULTS = 3
DIVERSITY_MIN_WARDROBE = 4
MAX_SHARED_ITEMS = 1


@dataclass(frozen=True)
class EngineSettings:
    short_sleeve_min_temp: float = 12.0
    heavy_outerwear_max_temp: float = 18.0
    outerwear_min_temp: float = 15.0
    formality_tolerance: int = 0
    note_style: NoteStyle = NoteStyle.ENCOURAGING
    neglect_days: int = 30
    variety_seed: Optional[int] = None
    variety_weight: float = 0.0
    max_candidates: int = DEFAULT_MAX_CANDIDATES
    max_results: int = MAX_RESULTS

    def __post_init__(self) -> None:
        if not 1 <= self.max_results <= MAX_RESULTS:
            raise ValueError(f"max_results must be between 1 and {MAX_RESULTS}")
        if self.max_candidates < 1:
            raise ValueError("max_candidates must be positive")


@dataclass(frozen=True)
class _Scored:
    candidate: OutfitCandidate
    result: ScoreResult
    sort_key: Tuple


class RecommendationEngine:
    def __init__(self, settings: EngineSettings | None = None) -> None:
        self.settings = settings or EngineSettings()

    def recommend(
        self, context: RecommendationContext, wardrobe: Sequence[WardrobeItem] | None = None
    ) -> List[OutfitRecommendation]:
        """Return one to three ranked recommendations.

        When a gate had to be relaxed only the single best outfit is returned.
        Raises :class:`InsufficientWardrobeError` when the wardrobe cannot
        fill the required slots even with every gate relaxed.
        """

        items = list(context.wardrobe if wardrobe is None else wardrobe)
        missing = missing_slots(items)
        if missing:
            log_event(LOGGER, logging.WARNING, "wardrobe_insufficient", missing_slots=missing, item_count=len(items))
            raise InsufficientWardrobeError(missing)

        candidates, relaxed = self._gated_candidates(context, items)
        by_id: Dict[str, WardrobeItem] = {}
        for item in items:
            # first occurrence wins, matching candidate generation
            by_id.setdefault(item.item_id, item)
        scored = [self._score(candidate, by_id, context) for candidate in candidates]
        scored.sort(key=lambda entry: entry.sort_key)

        selected = self._select_diverse(scored, len(by_id), context.profile.confidence_threshold)
        if relaxed:
            # a relaxed gate yields one safe default, not a full set
            selected = selected[:1]
        style = context.profile.note_style or self.settings.note_style
        recommendations = []
        for rank, entry in enumerate(selected, start=1):
            outfit_items = [by_id[item_id] for item_id in entry.candidate.item_ids]
            recommendations.append(
                OutfitRecommendation(
                    candidate=entry.candidate,
                    rank=rank,
                    score=entry.result.score,
                    style_match=int(round(entry.result.score * 100)),
                    confidence_note=compose_note(style, outfit_items, context.weather, context.occasion),
                    breakdown=dict(entry.result.breakdown),
                    alternatives=[other.candidate for other in selected if other is not entry],
                    relaxed_gates=list(relaxed),
                )
            )

        log_event(
            LOGGER,
            logging.INFO,
            "recommendations_ranked",
            candidate_count=len(candidates),
            returned=len(recommendations),
            top_score=recommendations[0].score,
            relaxed_gates=relaxed,
        )
        return recommendations

    def _gated_candidates(
        self, context: RecommendationContext, items: List[WardrobeItem]
    ) -> Tuple[List[OutfitCandidate], List[str]]:
        """Apply both gates, relaxing formality first and then weather when nothing survives."""

        settings = self.settings
        relaxed: List[str] = []
        for relax in ([], [FORMALITY_GATE], [FORMALITY_GATE, WEATHER_GATE]):
            if relax and relax[-1] not in relaxed:
                relaxed.append(relax[-1])
                log_event(LOGGER, logging.WARNING, "gate_relaxed", gate=relax[-1])
            survivors = items
            if WEATHER_GATE not in relax:
                survivors = filter_by_weather(
                    survivors,
                    context.weather,
                    settings.short_sleeve_min_temp,
                    settings.heavy_outerwear_max_temp,
                ).items
            if FORMALITY_GATE not in relax:
                survivors = filter_by_formality(
                    survivors, context.formality_level, settings.formality_tolerance
                ).items
            if missing_slots(survivors):
                continue
            candidates = generate_candidates(
                survivors,
                context.weather.temperature_c,
                settings.outerwear_min_temp,
                settings.max_candidates,
            )
            if candidates:
                return candidates, relaxed
        raise InsufficientWardrobeError(missing_slots(items) or ["top", "bottom", "shoes"])

    def _score(self, candidate: OutfitCandidate, by_id: Dict[str, WardrobeItem], context: RecommendationContext) -> _Scored:
        outfit_items = [by_id[item_id] for item_id in candidate.item_ids]
        result = score_outfit(
            outfit_items,
            context.profile,
            context.target_date,
            neglect_days=self.settings.neglect_days,
            variety_seed=self.settings.variety_seed,
            variety_weight=self.settings.variety_weight,
        )
        total_cost = round(sum(item.usage.cost_per_wear for item in outfit_items), 6)
        newest = max(
            (as_utc(item.created_at).timestamp() for item in outfit_items if item.created_at is not None),
            default=float("-inf"),
        )
        # score desc, cheaper per wear, most recently added, then ids
        sort_key = (-result.score, total_cost, -newest, candidate.item_ids)
        return _Scored(candidate=candidate, result=result, sort_key=sort_key)

    def _select_diverse(self, scored: List[_Scored], wardrobe_size: int, threshold: float) -> List[_Scored]:
        enforce_diversity = wardrobe_size >= DIVERSITY_MIN_WARDROBE
        selected = [scored[0]]
        for entry in scored[1:]:
            if len(selected) >= self.settings.max_results:
                break
            if entry.result.score < threshold:
                continue
            if enforce_diversity and any(
                entry.candidate.shared_items(chosen.candidate) > MAX_SHARED_ITEMS for chosen in selected
            ):
                continue
            selected.append(entry)
        return selected


__all__ = ["RecommendationEngine", "EngineSettings", "MAX_RESULTS"]
