"""Online profile learning from ratings and deferred persistence."""

from __future__ import annotations

from typing import Iterable, List

import pytest

from logic.feedback_learner import FeedbackLearner, LearnerSettings, ewma, tag_pattern
from models.context import DegradationLevel
from models.outfit import OutfitCandidate, OutfitRecommendation
from models.style_profile import EmotionalResponse, StyleProfile, pair_key
from models.taxonomy import EmotionalState
from models.wardrobe_item import WardrobeItem, from_raw_metadata
from resilience.errors import InputValidationError
from resilience.executor import ResilientExecutor
from resilience.options import ResilienceOptions
from tools.data_source import InMemoryDataSource


def _item(item_id: str, category: str, colors: Iterable[str] = (), tags: Iterable[str] = ()) -> WardrobeItem:
    return from_raw_metadata({"item_id": item_id, "category": category, "colors": list(colors), "tags": list(tags)})


def _recommendation(*item_ids: str) -> OutfitRecommendation:
    return OutfitRecommendation(
        candidate=OutfitCandidate(slots=tuple(("item", item_id) for item_id in item_ids)),
        rank=1,
        score=0.7,
        style_match=70,
        confidence_note="",
    )


def _learner(data_source: InMemoryDataSource | None = None, **settings) -> FeedbackLearner:
    executor = ResilientExecutor(
        ResilienceOptions(max_retries=0, per_call_timeout=None, circuit_failure_threshold=50), sleep=lambda _: None
    )
    return FeedbackLearner(data_source or InMemoryDataSource(), executor, LearnerSettings(**settings))


WARDROBE: List[WardrobeItem] = [
    _item("graphic-tee", "top", ["red"], ["casual", "graphic"]),
    _item("cargo-shorts", "bottom", ["green"], ["casual", "shorts"]),
    _item("sneakers", "shoes", ["white"], ["casual"]),
    _item("silk-blouse", "top", ["navy"], ["business"]),
]


def test_ewma_moves_toward_target_and_clamps() -> None:
    assert ewma(0.6, 1.0, 0.2) == pytest.approx(0.68)
    assert ewma(0.6, 0.2, 0.2) == pytest.approx(0.52)
    assert ewma(1.0, 1.0, 1.0) == 1.0


def test_tag_pattern_is_sorted_and_unique() -> None:
    assert tag_pattern(WARDROBE[:3]) == "casual+graphic+shorts"
    assert tag_pattern([_item("plain", "top")]) is None


def test_repeated_high_ratings_converge_toward_one() -> None:
    learner = _learner()
    profile = StyleProfile.default("user-1")
    recommendation = _recommendation("graphic-tee", "sneakers")

    weights = []
    for _ in range(25):
        profile = learner.apply_feedback(profile, recommendation, 5, wardrobe=WARDROBE).profile
        weights.append(profile.compatibility_for("graphic-tee", "sneakers"))

    assert weights == sorted(weights)
    assert weights[0] == pytest.approx(0.68)
    assert weights[-1] > 0.99
    assert weights[-1] <= 1.0


def test_repeated_low_ratings_converge_toward_rating_target() -> None:
    learner = _learner()
    profile = StyleProfile.default("user-1")
    recommendation = _recommendation("graphic-tee", "sneakers")

    for _ in range(30):
        profile = learner.apply_feedback(profile, recommendation, 1).profile

    assert profile.compatibility_for("graphic-tee", "sneakers") == pytest.approx(0.2, abs=0.01)


def test_input_profile_is_never_mutated() -> None:
    learner = _learner()
    profile = StyleProfile.default("user-1")
    before = profile.to_dict()

    outcome = learner.apply_feedback(
        profile, _recommendation("graphic-tee", "cargo-shorts"), 2, EmotionalResponse(EmotionalState.PLAYFUL, 8), WARDROBE
    )

    assert profile.to_dict() == before
    assert outcome.profile is not profile
    assert outcome.profile.feedback_cycle == 1
    assert outcome.profile.last_updated is not None


def test_confidence_pattern_tracks_running_average_and_emotions() -> None:
    learner = _learner()
    profile = StyleProfile.default("user-1")
    recommendation = _recommendation("silk-blouse", "sneakers")

    profile = learner.apply_feedback(profile, recommendation, 5, EmotionalResponse("confident", 6)).profile
    profile = learner.apply_feedback(profile, recommendation, 3, EmotionalResponse("comfortable", 4)).profile

    pattern = profile.pattern_for(["sneakers", "silk-blouse"])
    assert pattern is not None
    assert pattern.count == 2
    assert pattern.average_rating == pytest.approx(4.0)
    assert pattern.emotions == ["confident", "comfortable"]


def test_three_low_ratings_mark_tag_pattern_disliked() -> None:
    learner = _learner()
    profile = StyleProfile.default("user-1")
    recommendation = _recommendation("graphic-tee", "cargo-shorts", "sneakers")

    for cycle in range(1, 4):
        profile = learner.apply_feedback(profile, recommendation, 2, wardrobe=WARDROBE).profile
        if cycle < 3:
            assert profile.disliked_patterns == {}

    assert profile.low_rating_counts["casual+graphic+shorts"] == 3
    assert profile.disliked_patterns == {"casual+graphic+shorts": 3}


def test_mid_ratings_do_not_count_as_low() -> None:
    learner = _learner()
    profile = StyleProfile.default("user-1")
    for _ in range(5):
        profile = learner.apply_feedback(profile, _recommendation("graphic-tee", "sneakers"), 3, wardrobe=WARDROBE).profile
    assert profile.low_rating_counts == {}
    assert profile.disliked_patterns == {}


def test_disliked_pattern_decays_without_reinforcement() -> None:
    learner = _learner()
    profile = StyleProfile.default("user-1")
    disliked = _recommendation("graphic-tee", "cargo-shorts", "sneakers")
    for _ in range(3):
        profile = learner.apply_feedback(profile, disliked, 1, wardrobe=WARDROBE).profile
    assert "casual+graphic+shorts" in profile.disliked_patterns

    liked = _recommendation("silk-blouse", "sneakers")
    for _ in range(9):
        profile = learner.apply_feedback(profile, liked, 4).profile
    assert profile.feedback_cycle == 12
    assert "casual+graphic+shorts" in profile.disliked_patterns

    profile = learner.apply_feedback(profile, liked, 4).profile
    assert profile.feedback_cycle == 13
    assert profile.disliked_patterns == {}
    assert "casual+graphic+shorts" not in profile.low_rating_counts


def test_strong_positive_emotion_promotes_colors() -> None:
    learner = _learner()
    profile = StyleProfile.default("user-1")
    recommendation = _recommendation("silk-blouse", "sneakers")

    mild = learner.apply_feedback(profile, recommendation, 5, EmotionalResponse("elegant", 5), WARDROBE).profile
    strong = learner.apply_feedback(profile, recommendation, 5, EmotionalResponse("elegant", 9), WARDROBE).profile
    unhappy = learner.apply_feedback(profile, recommendation, 2, EmotionalResponse("elegant", 9), WARDROBE).profile

    assert mild.preferred_colors == []
    assert strong.preferred_colors == ["navy", "white"]
    assert unhappy.preferred_colors == []


@pytest.mark.parametrize("rating", [0, 6, 4.5 + 1, True, "5"])
def test_out_of_range_rating_is_rejected(rating) -> None:
    learner = _learner()
    with pytest.raises(InputValidationError):
        learner.apply_feedback(StyleProfile.default("user-1"), _recommendation("sneakers"), rating)


def test_emotional_response_intensity_is_bounded() -> None:
    with pytest.raises(ValueError):
        EmotionalResponse(EmotionalState.CONFIDENT, 11)
    with pytest.raises(ValueError):
        EmotionalResponse("bored", 5)


def test_successful_save_is_reported_live() -> None:
    data_source = InMemoryDataSource()
    learner = _learner(data_source)

    outcome = learner.apply_feedback(StyleProfile.default("user-1"), _recommendation("silk-blouse", "sneakers"), 4)

    assert outcome.persisted is True
    assert outcome.persistence_level is DegradationLevel.LIVE
    stored = data_source.profile_store.load_profile("user-1")
    assert stored is not None
    assert stored.feedback_cycle == 1


def test_failed_save_is_queued_and_flushed_later() -> None:
    data_source = InMemoryDataSource().fail("profile_save")
    learner = _learner(data_source)
    recommendation = _recommendation("silk-blouse", "sneakers")

    outcome = learner.apply_feedback(StyleProfile.default("user-1"), recommendation, 5)

    assert outcome.persisted is False
    assert outcome.persistence_level is DegradationLevel.DEGRADED
    assert outcome.profile.compatibility_weights[pair_key("silk-blouse", "sneakers")] > 0.6
    assert learner.pending_count == 1
    assert data_source.profile_store.load_profile("user-1") is None

    assert learner.flush_pending() == 0
    assert learner.pending_count == 1

    data_source.recover("profile_save")
    assert learner.flush_pending() == 1
    assert learner.pending_count == 0
    assert data_source.profile_store.load_profile("user-1").feedback_cycle == 1


def test_newer_profile_supersedes_queued_copy() -> None:
    data_source = InMemoryDataSource().fail("profile_save")
    learner = _learner(data_source)
    recommendation = _recommendation("silk-blouse", "sneakers")

    first = learner.apply_feedback(StyleProfile.default("user-1"), recommendation, 5).profile
    learner.apply_feedback(first, recommendation, 4)

    assert learner.pending_count == 1

    data_source.recover()
    third = learner.apply_feedback(first, recommendation, 3)

    assert third.persisted is True
    assert learner.pending_count == 0
    assert data_source.profile_store.load_profile("user-1").feedback_cycle == 2
