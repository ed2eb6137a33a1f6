"""Online style-profile updates driven by outfit ratings.

The learner never mutates the profile it is given. It returns an updated copy
together with how the copy was persisted; a failed save queues the profile and
the queue is drained on the next write opportunity.
"""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime, timezone
from itertools import combinations
from typing import Callable, Dict, List, Optional, Sequence

from logic.outfit_scoring import NEUTRAL_COMPATIBILITY, pair_compatibility
from mirror_app.logging_config import get_logger, log_event
from models.context import DegradationLevel
from models.outfit import OutfitRecommendation
from models.style_profile import (
    COMPATIBILITY_MAX,
    COMPATIBILITY_MIN,
    ConfidencePattern,
    EmotionalResponse,
    StyleProfile,
    combination_key,
    pair_key,
)
from models.wardrobe_item import WardrobeItem
from resilience.errors import FallbackExhaustedError, InputValidationError
from resilience.executor import ResilientExecutor
from resilience.fallback import degraded_tier
from tools.data_source import RecommendationDataSource

LOGGER = get_logger(__name__)

PROFILE_KEY = "profile"
MAX_RATING = 5
MAX_EMOTIONS_PER_PATTERN = 10


@dataclass(frozen=True)
class LearnerSettings:
    learning_rate: float = 0.2
    low_rating_threshold: float = 3.0
    disliked_pattern_occurrences: int = 3
    disliked_decay_cycles: int = 10
    preference_intensity: int = 7
    preference_min_rating: int = 4

    def __post_init__(self) -> None:
        if not 0.0 < self.learning_rate <= 1.0:
            raise ValueError("learning_rate must be in (0, 1]")
        if self.disliked_pattern_occurrences < 1:
            raise ValueError("disliked_pattern_occurrences must be at least 1")
        if self.disliked_decay_cycles < 1:
            raise ValueError("disliked_decay_cycles must be at least 1")


@dataclass(frozen=True)
class FeedbackOutcome:
    profile: StyleProfile
    persistence_level: DegradationLevel

    @property
    def persisted(self) -> bool:
        return self.persistence_level is DegradationLevel.LIVE


def tag_pattern(items: Sequence[WardrobeItem]) -> Optional[str]:
    """Key describing an outfit by its tags, ``None`` when it has none."""

    tags = sorted({tag for item in items for tag in item.tags})
    return "+".join(tags) if tags else None


def ewma(previous: float, target: float, alpha: float) -> float:
    value = previous * (1 - alpha) + target * alpha
    return max(COMPATIBILITY_MIN, min(COMPATIBILITY_MAX, value))


class FeedbackLearner:
    def __init__(
        self,
        data_source: RecommendationDataSource,
        executor: ResilientExecutor,
        settings: LearnerSettings | None = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self.data_source = data_source
        self.executor = executor
        self.settings = settings or LearnerSettings()
        self._clock = clock
        self._pending: "OrderedDict[str, StyleProfile]" = OrderedDict()
        self._lock = threading.Lock()

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._pending)

    def apply_feedback(
        self,
        profile: StyleProfile,
        recommendation: OutfitRecommendation,
        rating: int | float,
        emotional_response: EmotionalResponse | None = None,
        wardrobe: Sequence[WardrobeItem] | None = None,
    ) -> FeedbackOutcome:
        """Fold one rating into a copy of ``profile`` and persist it.

        ``wardrobe`` lets the learner see tags and colors of the rated items;
        without it only pairwise weights and confidence patterns are updated.
        """

        if isinstance(rating, bool) or not isinstance(rating, (int, float)) or not 1 <= rating <= MAX_RATING:
            raise InputValidationError(f"rating must be between 1 and {MAX_RATING}")
        item_ids = list(recommendation.item_ids)
        if not item_ids:
            raise InputValidationError("recommendation has no items")

        by_id: Dict[str, WardrobeItem] = {item.item_id: item for item in wardrobe or []}
        items = [by_id[item_id] for item_id in item_ids if item_id in by_id]

        updated = profile.copy()
        updated.feedback_cycle += 1
        self._update_compatibility(updated, item_ids, by_id, float(rating))
        self._update_confidence_pattern(updated, item_ids, float(rating), emotional_response)
        pattern = tag_pattern(items)
        if pattern is not None:
            self._update_disliked(updated, pattern, float(rating))
        self._decay_disliked(updated)
        if emotional_response is not None and items:
            self._promote_colors(updated, items, float(rating), emotional_response)
        updated.last_updated = self._clock()

        level = self._persist(updated)
        log_event(
            LOGGER,
            logging.INFO,
            "feedback_applied",
            rating=rating,
            cycle=updated.feedback_cycle,
            persistence_level=level.value,
            disliked_patterns=len(updated.disliked_patterns),
        )
        return FeedbackOutcome(profile=updated, persistence_level=level)

    def _update_compatibility(
        self, profile: StyleProfile, item_ids: List[str], by_id: Dict[str, WardrobeItem], rating: float
    ) -> None:
        target = rating / MAX_RATING
        alpha = self.settings.learning_rate
        for first, second in combinations(sorted(set(item_ids)), 2):
            if first in by_id and second in by_id:
                previous = pair_compatibility(by_id[first], by_id[second], profile)
            else:
                previous = profile.compatibility_for(first, second)
                if previous is None:
                    previous = NEUTRAL_COMPATIBILITY
            profile.compatibility_weights[pair_key(first, second)] = round(ewma(previous, target, alpha), 6)

    def _update_confidence_pattern(
        self,
        profile: StyleProfile,
        item_ids: List[str],
        rating: float,
        emotional_response: EmotionalResponse | None,
    ) -> None:
        pattern = profile.pattern_for(item_ids)
        if pattern is None:
            pattern = ConfidencePattern(item_ids=combination_key(item_ids), average_rating=rating)
            profile.confidence_patterns.append(pattern)
        else:
            pattern.average_rating = (pattern.average_rating * pattern.count + rating) / (pattern.count + 1)
            pattern.count += 1
        if emotional_response is not None:
            pattern.emotions.append(emotional_response.primary.value)
            del pattern.emotions[:-MAX_EMOTIONS_PER_PATTERN]

    def _update_disliked(self, profile: StyleProfile, pattern: str, rating: float) -> None:
        settings = self.settings
        if rating >= settings.low_rating_threshold:
            return
        count = profile.low_rating_counts.get(pattern, 0) + 1
        profile.low_rating_counts[pattern] = count
        if count >= settings.disliked_pattern_occurrences:
            if pattern not in profile.disliked_patterns:
                log_event(LOGGER, logging.INFO, "disliked_pattern_added", pattern=pattern, occurrences=count)
            profile.disliked_patterns[pattern] = profile.feedback_cycle

    def _decay_disliked(self, profile: StyleProfile) -> None:
        horizon = self.settings.disliked_decay_cycles
        for pattern, reinforced_at in list(profile.disliked_patterns.items()):
            if profile.feedback_cycle - reinforced_at >= horizon:
                del profile.disliked_patterns[pattern]
                profile.low_rating_counts.pop(pattern, None)
                log_event(LOGGER, logging.INFO, "disliked_pattern_decayed", pattern=pattern)

    def _promote_colors(
        self,
        profile: StyleProfile,
        items: List[WardrobeItem],
        rating: float,
        emotional_response: EmotionalResponse,
    ) -> None:
        if emotional_response.intensity < self.settings.preference_intensity:
            return
        if rating < self.settings.preference_min_rating:
            return
        for item in items:
            for color in item.colors:
                if color not in profile.preferred_colors:
                    profile.preferred_colors.append(color)

    def _persist(self, profile: StyleProfile) -> DegradationLevel:
        self.flush_pending()
        with self._lock:
            # a newer version supersedes anything still queued for this user
            self._pending.pop(profile.user_id, None)

        result = self.executor.execute(
            PROFILE_KEY,
            lambda: self.data_source.save_profile(profile.user_id, profile) or True,
            [degraded_tier("queue_for_retry", lambda: self._enqueue(profile))],
        )
        return result.degradation_level

    def _enqueue(self, profile: StyleProfile) -> bool:
        with self._lock:
            self._pending[profile.user_id] = profile
        log_event(LOGGER, logging.WARNING, "profile_save_queued", cycle=profile.feedback_cycle)
        return True

    def flush_pending(self) -> int:
        """Retry queued saves in order; returns how many were written."""

        with self._lock:
            queued = list(self._pending.items())
        flushed = 0
        for user_id, profile in queued:
            try:
                self.executor.execute(
                    PROFILE_KEY,
                    lambda user_id=user_id, profile=profile: self.data_source.save_profile(user_id, profile) or True,
                )
            except FallbackExhaustedError:
                log_event(LOGGER, logging.WARNING, "profile_flush_deferred", remaining=len(queued) - flushed)
                break
            with self._lock:
                if self._pending.get(user_id) is profile:
                    del self._pending[user_id]
            flushed += 1
        if flushed:
            log_event(LOGGER, logging.INFO, "profile_queue_flushed", flushed=flushed)
        return flushed


__all__ = [
    "FeedbackLearner",
    "FeedbackOutcome",
    "LearnerSettings",
    "tag_pattern",
    "ewma",
]
