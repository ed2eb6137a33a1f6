"""End-to-end daily recommendation and feedback flows through the service."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import List

import pytest

from mirror_app.app import DailyMirrorService, disclosure_message
from mirror_app.config import MirrorConfig
from models.context import DegradationLevel, WeatherContext
from models.taxonomy import WeatherCondition
from resilience.errors import InputValidationError, MirrorError
from tools.data_source import InMemoryDataSource
from tools.notification_dispatcher import DispatchState, NotificationDispatcher, RecommendationReady

TODAY = date(2025, 6, 2)
BUSINESS_WARDROBE = [
    {"item_id": "white-shirt", "category": "top", "colors": ["white"], "tags": ["business"]},
    {"item_id": "navy-trousers", "category": "bottom", "colors": ["navy"], "tags": ["business"]},
    {"item_id": "brown-shoes", "category": "shoes", "colors": ["brown"]},
]


def _service(data_source: InMemoryDataSource, dispatcher: NotificationDispatcher | None = None) -> DailyMirrorService:
    config = MirrorConfig(max_retries=0, per_call_timeout_seconds=None, soft_deadline_seconds=2.0)
    return DailyMirrorService.from_data_source(data_source, config, dispatcher=dispatcher)


def _data_source(wardrobe: List[dict] | None = None) -> InMemoryDataSource:
    return InMemoryDataSource(
        wardrobe={"user-1": BUSINESS_WARDROBE if wardrobe is None else wardrobe},
        weather=WeatherContext(temperature_c=22.0, condition=WeatherCondition.SUNNY, location="Lisbon"),
    )


def test_daily_recommendations_when_everything_is_live() -> None:
    service = _service(_data_source())
    try:
        result = service.generate_daily_recommendations("user-1", TODAY, "Lisbon")
    finally:
        service.close()

    assert result.status == "ok"
    assert len(result.recommendations) == 1
    assert result.recommendations[0].style_match >= 70
    assert set(result.degradation.values()) == {DegradationLevel.LIVE}
    assert result.message is None
    payload = result.to_dict()
    assert payload["degradation"]["weather"] == "LIVE"
    assert payload["recommendations"][0]["rank"] == 1


def test_optional_sources_down_still_returns_an_outfit() -> None:
    data_source = _data_source().fail("weather", "calendar", "profile")
    service = _service(data_source)
    try:
        result = service.generate_daily_recommendations("user-1", "2025-06-02", "Lisbon")
    finally:
        service.close()

    assert result.status == "ok"
    assert len(result.recommendations) == 1
    assert result.degradation["weather"] is DegradationLevel.STATIC_DEFAULT
    assert result.degradation["calendar"] is DegradationLevel.STATIC_DEFAULT
    assert result.degradation["profile"] is DegradationLevel.STATIC_DEFAULT
    assert "seasonal weather estimate" in result.message
    assert "Calendar unavailable" in result.message


def test_wardrobe_outage_reports_unavailable() -> None:
    service = _service(_data_source().fail("wardrobe"))
    try:
        result = service.generate_daily_recommendations("user-1", TODAY, "Lisbon")
    finally:
        service.close()

    assert result.status == "unavailable"
    assert result.recommendations == []
    assert result.message


def test_incomplete_wardrobe_reports_missing_slots() -> None:
    service = _service(_data_source(wardrobe=BUSINESS_WARDROBE[:1]))
    try:
        result = service.generate_daily_recommendations("user-1", TODAY, "Lisbon")
    finally:
        service.close()

    assert result.status == "insufficient_items"
    assert result.recommendations == []
    assert "bottom" in result.message
    assert "shoes" in result.message


@pytest.mark.parametrize(
    "user_id, target_date",
    [("", TODAY), ("   ", TODAY), ("user-1", "not-a-date"), ("user-1", "2025-02-30")],
)
def test_invalid_request_raises_validation_error(user_id, target_date) -> None:
    data_source = _data_source()
    service = _service(data_source)
    try:
        with pytest.raises(InputValidationError) as excinfo:
            service.generate_daily_recommendations(user_id, target_date, "Lisbon")
    finally:
        service.close()

    assert excinfo.value.details
    assert data_source.calls["wardrobe"] == 0


def test_feedback_raises_future_scores() -> None:
    data_source = _data_source()
    service = _service(data_source)
    try:
        before = service.generate_daily_recommendations("user-1", TODAY, "Lisbon").recommendations[0]
        outcome = service.submit_feedback(
            "user-1",
            list(before.item_ids),
            5,
            {"primary": "confident", "intensity": 8},
        )
        after = service.generate_daily_recommendations("user-1", TODAY, "Lisbon").recommendations[0]
    finally:
        service.close()

    assert outcome.persisted is True
    assert outcome.profile.feedback_cycle == 1
    assert set(outcome.profile.preferred_colors) == {"white", "navy", "brown"}
    assert data_source.profile_store.load_profile("user-1").feedback_cycle == 1
    assert after.item_ids == before.item_ids
    assert after.score > before.score


def test_feedback_with_profile_store_down_is_deferred() -> None:
    data_source = _data_source().fail("profile_save")
    service = _service(data_source)
    try:
        outcome = service.submit_feedback("user-1", ["white-shirt", "navy-trousers"], 4)
        pending = service.learner.pending_count
    finally:
        service.close()

    assert outcome.persisted is False
    assert outcome.persistence_level is DegradationLevel.DEGRADED
    assert pending == 1


@pytest.mark.parametrize(
    "payload",
    [
        {"item_ids": ["white-shirt"], "rating": 0},
        {"item_ids": ["white-shirt"], "rating": 6},
        {"item_ids": [], "rating": 4},
        {"item_ids": ["white-shirt", "white-shirt"], "rating": 4},
        {"item_ids": ["white-shirt"], "rating": 4, "emotional_response": {"primary": "bored"}},
        {"item_ids": ["white-shirt"], "rating": 4, "emotional_response": {"primary": "confident", "intensity": 11}},
    ],
)
def test_invalid_feedback_is_rejected(payload) -> None:
    data_source = _data_source()
    service = _service(data_source)
    try:
        with pytest.raises(InputValidationError):
            service.submit_feedback("user-1", **payload)
    finally:
        service.close()

    assert data_source.calls["profile_save"] == 0


def test_logging_a_worn_outfit_updates_usage() -> None:
    data_source = _data_source()
    service = _service(data_source)
    try:
        first = service.generate_daily_recommendations("user-1", TODAY, "Lisbon").recommendations[0]
        updated = service.log_outfit_worn("user-1", ["white-shirt", "missing-item"], worn_on=TODAY)
        second = service.generate_daily_recommendations("user-1", TODAY, "Lisbon").recommendations[0]
    finally:
        service.close()

    assert updated == 1
    shirt = next(item for item in data_source.get_wardrobe("user-1") if item.item_id == "white-shirt")
    assert shirt.usage.total_wears == 1
    assert shirt.usage.last_worn == TODAY
    assert first.breakdown["neglect"] == 1.0
    assert second.breakdown["neglect"] == pytest.approx(2 / 3, abs=1e-6)


def test_ready_notification_is_queued_for_every_outcome() -> None:
    delivered: List[RecommendationReady] = []
    dispatcher = NotificationDispatcher(delivered.append)
    service = _service(_data_source(), dispatcher=dispatcher)
    try:
        service.generate_daily_recommendations("user-1", TODAY, "Lisbon")
        service.generate_daily_recommendations("user-2", TODAY, "Lisbon")
    finally:
        service.close()

    assert dispatcher.state is DispatchState.PENDING
    assert dispatcher.drain() == 2
    assert [(message.user_id, message.status) for message in delivered] == [
        ("user-1", "ok"),
        ("user-2", "insufficient_items"),
    ]
    assert delivered[0].recommendation_count == 1
    assert dispatcher.state is DispatchState.DISPATCHED


def test_circuit_status_lists_called_services() -> None:
    service = _service(_data_source())
    try:
        service.generate_daily_recommendations("user-1", TODAY, "Lisbon")
        status = service.circuit_status()
    finally:
        service.close()

    assert set(status) == {"wardrobe", "weather", "calendar", "profile"}
    assert all(entry["state"] == "CLOSED" for entry in status.values())


def test_disclosure_message_is_empty_when_all_live() -> None:
    assert disclosure_message({"weather": DegradationLevel.LIVE}) is None
    assert disclosure_message({"weather": DegradationLevel.CACHED}) == "Using a recent weather reading."


def test_favorites_are_saved_once_per_outfit() -> None:
    service = _service(_data_source())
    try:
        service.save_outfit_to_favorites(
            "user-1", ["white-shirt", "navy-trousers"], "Sharp and ready.", 0.7,
            saved_at=datetime(2025, 6, 2, 8, 0, tzinfo=timezone.utc),
        )
        refreshed = service.save_outfit_to_favorites(
            "user-1", ["navy-trousers", "white-shirt"], "Even sharper.", 0.9,
            saved_at=datetime(2025, 6, 3, 8, 0, tzinfo=timezone.utc),
        )
        favorites = service.favorite_outfits("user-1")
    finally:
        service.close()

    assert favorites == [refreshed]
    assert refreshed["confidence_note"] == "Even sharper."
    assert refreshed["saved_at"] == "2025-06-03T08:00:00+00:00"
    assert service.favorite_outfits("user-2") == []


@pytest.mark.parametrize("item_ids", [[], ["white-shirt", "white-shirt"]])
def test_invalid_favorites_are_rejected(item_ids) -> None:
    service = _service(_data_source())
    try:
        with pytest.raises(InputValidationError):
            service.save_outfit_to_favorites("user-1", item_ids)
    finally:
        service.close()


def test_share_outfit_names_known_pieces_only() -> None:
    service = _service(_data_source())
    try:
        shared = service.share_outfit("user-1", ["white-shirt", "ghost-item"], "Crisp for the office.", 0.85)
        with pytest.raises(InputValidationError):
            service.share_outfit("user-1", ["ghost-item"])
    finally:
        service.close()

    assert shared["title"] == "My Outfit Look"
    assert shared["description"] == (
        "Feeling confident in my white shirt! Crisp for the office. Confidence level: High."
    )
    assert "ghost" not in shared["description"]


def test_due_sessions_run_and_book_the_next_morning() -> None:
    dispatcher = NotificationDispatcher(lambda message: None)
    service = _service(_data_source(), dispatcher=dispatcher)
    evening = datetime(2025, 6, 1, 21, 0, tzinfo=timezone.utc)
    morning = datetime(2025, 6, 2, 6, 30, tzinfo=timezone.utc)
    try:
        booked = service.schedule_next_session("user-1", evening)
        assert service.run_due_sessions(evening) == {}
        results = service.run_due_sessions(morning)
    finally:
        service.close()

    assert booked == datetime(2025, 6, 2, 6, 0, tzinfo=timezone.utc)
    assert list(results) == ["user-1"]
    assert results["user-1"].status == "ok"
    assert dispatcher.scheduled_session("user-1") == datetime(2025, 6, 3, 6, 0, tzinfo=timezone.utc)
    assert dispatcher.backlog == 1


def test_scheduling_needs_a_dispatcher() -> None:
    service = _service(_data_source())
    try:
        with pytest.raises(MirrorError):
            service.schedule_next_session("user-1")
        assert service.run_due_sessions() == {}
    finally:
        service.close()
