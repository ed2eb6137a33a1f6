"""Composition root wiring the recommendation core to its collaborators."""

from __future__ import annotations

import logging
from datetime import date as dt_date, datetime, time, timezone
from typing import Any, Dict, List, Optional

from logic.confidence_notes import shareable_outfit
from logic.context_aggregator import CALENDAR_KEY, PROFILE_KEY, WARDROBE_KEY, WEATHER_KEY, ContextAggregator
from logic.feedback_learner import FeedbackLearner, FeedbackOutcome
from logic.recommendation_engine import RecommendationEngine
from logic.validation import FeedbackRequest, RecommendationRequest, SavedOutfitRequest, parse_request
from memory.cache import TTLCache
from memory.profile_store import JSONProfileStore
from mirror_app.config import MirrorConfig
from mirror_app.logging_config import configure_logging, get_logger, log_event, operation_context
from models.context import DegradationLevel
from models.outfit import (
    STATUS_INSUFFICIENT_ITEMS,
    STATUS_OK,
    STATUS_UNAVAILABLE,
    DailyRecommendations,
    OutfitCandidate,
    OutfitRecommendation,
)
from models.style_profile import EmotionalResponse
from models.wardrobe_item import WardrobeItem
from resilience.errors import FallbackExhaustedError, InputValidationError, InsufficientWardrobeError, MirrorError
from resilience.executor import ResilientExecutor
from tools.calendar_provider import CalendarProvider, GoogleCalendarProvider, MockCalendarProvider
from tools.data_source import LiveDataSource, RecommendationDataSource
from tools.notification_dispatcher import (
    DEFAULT_SESSION_TIME,
    NotificationDispatcher,
    RecommendationReady,
    next_session_at,
)
from tools.wardrobe_store import SQLiteWardrobeStore, WardrobeStore
from tools.weather_provider import OpenWeatherProvider

LOGGER = get_logger(__name__)

DISCLOSURES = {
    (WEATHER_KEY, DegradationLevel.CACHED): "Using a recent weather reading.",
    (WEATHER_KEY, DegradationLevel.STATIC_DEFAULT): "Using an offline seasonal weather estimate.",
    (CALENDAR_KEY, DegradationLevel.STATIC_DEFAULT): "Calendar unavailable; assuming a casual day.",
    (PROFILE_KEY, DegradationLevel.CACHED): "Using your recently saved style preferences.",
    (PROFILE_KEY, DegradationLevel.STATIC_DEFAULT): "Style preferences unavailable; using defaults.",
    (WARDROBE_KEY, DegradationLevel.CACHED): "Showing your wardrobe as of the last sync.",
}

UNAVAILABLE_MESSAGE = "We couldn't put together today's outfits right now. Please try again shortly."
INSUFFICIENT_MESSAGE = "Add a few more pieces to your wardrobe so we can suggest a complete outfit."


def disclosure_message(degradation: Dict[str, DegradationLevel]) -> Optional[str]:
    """User-facing summary of degraded sources, ``None`` when everything was live."""

    notes = [
        DISCLOSURES[(source, level)]
        for source, level in sorted(degradation.items())
        if (source, level) in DISCLOSURES
    ]
    return " ".join(notes) or None


class DailyMirrorService:
    """Runs the daily recommendation flow and routes feedback to the learner."""

    def __init__(
        self,
        data_source: RecommendationDataSource,
        executor: ResilientExecutor,
        aggregator: ContextAggregator,
        engine: RecommendationEngine,
        learner: FeedbackLearner,
        dispatcher: NotificationDispatcher | None = None,
        default_location: str = "",
        session_time: time = DEFAULT_SESSION_TIME,
        session_weekends: bool = True,
    ) -> None:
        self.data_source = data_source
        self.executor = executor
        self.aggregator = aggregator
        self.engine = engine
        self.learner = learner
        self.dispatcher = dispatcher
        self.default_location = default_location
        self.session_time = session_time
        self.session_weekends = session_weekends

    @classmethod
    def from_data_source(
        cls,
        data_source: RecommendationDataSource,
        config: MirrorConfig | None = None,
        executor: ResilientExecutor | None = None,
        dispatcher: NotificationDispatcher | None = None,
    ) -> "DailyMirrorService":
        """Wire every component around one data source using ``config`` tunables."""

        config = config or MirrorConfig()
        executor = executor or ResilientExecutor(config.resilience_options())
        aggregator = ContextAggregator(
            data_source,
            executor,
            weather_cache=TTLCache(config.weather_cache_ttl_seconds),
            wardrobe_cache=TTLCache(config.wardrobe_cache_ttl_seconds),
            profile_cache=TTLCache(config.profile_cache_ttl_seconds),
            soft_deadline=config.soft_deadline_seconds,
        )
        return cls(
            data_source=data_source,
            executor=executor,
            aggregator=aggregator,
            engine=RecommendationEngine(config.engine_settings()),
            learner=FeedbackLearner(data_source, executor, config.learner_settings()),
            dispatcher=dispatcher,
            default_location=config.default_location or "",
            session_time=config.session_clock(),
            session_weekends=config.session_weekends,
        )

    def generate_daily_recommendations(
        self, user_id: str, date: str | dt_date, location: str | None = None
    ) -> DailyRecommendations:
        """Build context, rank outfits and report any degradation as metadata.

        Invalid input raises :class:`InputValidationError`; every other failure
        becomes an explicit status on the returned result.
        """

        request = parse_request(
            RecommendationRequest,
            {"user_id": user_id, "date": date, "location": location or self.default_location},
        )
        with operation_context("generate_daily_recommendations"):
            log_event(LOGGER, logging.INFO, "recommendation_requested", user_id=request.user_id)
            try:
                context = self.aggregator.build_context(request.user_id, request.date, request.location)
            except FallbackExhaustedError as exc:
                log_event(LOGGER, logging.ERROR, "recommendation_unavailable", service_key=exc.service_key)
                result = DailyRecommendations(
                    status=STATUS_UNAVAILABLE, user_id=request.user_id, message=UNAVAILABLE_MESSAGE
                )
                self._notify(result, request.date)
                return result

            try:
                recommendations = self.engine.recommend(context)
            except InsufficientWardrobeError as exc:
                result = DailyRecommendations(
                    status=STATUS_INSUFFICIENT_ITEMS,
                    user_id=request.user_id,
                    degradation=dict(context.degradation),
                    message=f"{INSUFFICIENT_MESSAGE} Missing: {', '.join(exc.missing_slots)}.",
                )
                self._notify(result, request.date)
                return result

            result = DailyRecommendations(
                status=STATUS_OK,
                user_id=request.user_id,
                recommendations=recommendations,
                degradation=dict(context.degradation),
                message=disclosure_message(context.degradation),
            )
            self._notify(result, request.date)
            return result

    def submit_feedback(
        self,
        user_id: str,
        item_ids: List[str],
        rating: int,
        emotional_response: Dict[str, Any] | None = None,
    ) -> FeedbackOutcome:
        """Rate an outfit and update the user's style profile."""

        request = parse_request(
            FeedbackRequest,
            {
                "user_id": user_id,
                "item_ids": item_ids,
                "rating": rating,
                "emotional_response": emotional_response,
            },
        )
        with operation_context("submit_feedback"):
            profile = self.aggregator.fetch_profile(request.user_id).value
            wardrobe = self._wardrobe_snapshot(request.user_id)
            recommendation = OutfitRecommendation(
                candidate=OutfitCandidate(slots=tuple(("item", item_id) for item_id in request.item_ids)),
                rank=1,
                score=0.0,
                style_match=0,
                confidence_note="",
            )
            response = None
            if request.emotional_response is not None:
                response = EmotionalResponse(
                    primary=request.emotional_response.primary,
                    intensity=request.emotional_response.intensity,
                )
            outcome = self.learner.apply_feedback(profile, recommendation, request.rating, response, wardrobe)
            self.aggregator.remember_profile(outcome.profile)
            return outcome

    def log_outfit_worn(self, user_id: str, item_ids: List[str], worn_on: dt_date | None = None) -> int:
        """Record a wear event on each item; returns how many items were updated."""

        store = self._wardrobe_store()
        if store is None:
            return 0
        worn_on = worn_on or dt_date.today()
        updated = sum(1 for item_id in item_ids if store.record_wear(user_id, item_id, worn_on))
        self.aggregator.wardrobe_cache.invalidate(user_id)
        log_event(LOGGER, logging.INFO, "outfit_worn_logged", updated=updated)
        return updated

    def save_outfit_to_favorites(
        self,
        user_id: str,
        item_ids: List[str],
        confidence_note: str = "",
        score: float = 0.0,
        saved_at: datetime | None = None,
    ) -> Dict[str, Any]:
        """Keep an outfit the user liked; saving the same items again refreshes it."""

        request = parse_request(
            SavedOutfitRequest,
            {"user_id": user_id, "item_ids": item_ids, "confidence_note": confidence_note, "score": score},
        )
        store = self._wardrobe_store()
        if store is None:
            raise MirrorError("favorites need a wardrobe store")
        record = {
            "item_ids": list(request.item_ids),
            "confidence_note": request.confidence_note,
            "score": request.score,
            "saved_at": (saved_at or datetime.now(timezone.utc)).isoformat(),
        }
        store.save_favorite(request.user_id, record)
        log_event(LOGGER, logging.INFO, "outfit_favorited", item_count=len(record["item_ids"]))
        return record

    def favorite_outfits(self, user_id: str) -> List[Dict[str, Any]]:
        store = self._wardrobe_store()
        return store.list_favorites(user_id) if store is not None else []

    def share_outfit(
        self, user_id: str, item_ids: List[str], confidence_note: str = "", score: float = 0.0
    ) -> Dict[str, str]:
        """Shareable title and description naming the outfit's pieces."""

        request = parse_request(
            SavedOutfitRequest,
            {"user_id": user_id, "item_ids": item_ids, "confidence_note": confidence_note, "score": score},
        )
        by_id = {item.item_id: item for item in self._wardrobe_snapshot(request.user_id)}
        items = [by_id[item_id] for item_id in request.item_ids if item_id in by_id]
        if not items:
            raise InputValidationError("none of the outfit's items are in the wardrobe")
        return shareable_outfit(items, request.confidence_note, request.score)

    def schedule_next_session(self, user_id: str, now: datetime | None = None) -> datetime:
        """Book the user's next morning session on the dispatcher and return its time."""

        if not user_id:
            raise InputValidationError("user_id is required")
        if self.dispatcher is None:
            raise MirrorError("scheduling needs a notification dispatcher")
        now = now or datetime.now(timezone.utc)
        at = next_session_at(now, self.session_time, self.session_weekends)
        self.dispatcher.schedule_session(user_id, at)
        return at

    def run_due_sessions(self, now: datetime | None = None) -> Dict[str, DailyRecommendations]:
        """Generate recommendations for every session that has come due, then book the next one."""

        if self.dispatcher is None:
            return {}
        now = now or datetime.now(timezone.utc)
        results: Dict[str, DailyRecommendations] = {}
        for user_id in self.dispatcher.due_sessions(now):
            results[user_id] = self.generate_daily_recommendations(user_id, now.date())
            self.schedule_next_session(user_id, now)
        return results

    def circuit_status(self) -> Dict[str, Dict[str, object]]:
        return {key: snapshot.to_dict() for key, snapshot in self.executor.circuit_snapshot().items()}

    def close(self) -> None:
        self.executor.close()

    def _wardrobe_snapshot(self, user_id: str) -> List[WardrobeItem]:
        try:
            return self.aggregator.fetch_wardrobe(user_id).value
        except FallbackExhaustedError:
            log_event(LOGGER, logging.WARNING, "feedback_without_wardrobe")
            return []

    def _wardrobe_store(self) -> WardrobeStore | None:
        return getattr(self.data_source, "wardrobe_store", None)

    def _notify(self, result: DailyRecommendations, target_date: dt_date) -> None:
        if self.dispatcher is None:
            return
        self.dispatcher.notify_ready(
            RecommendationReady(
                user_id=result.user_id,
                target_date=target_date,
                status=result.status,
                recommendation_count=len(result.recommendations),
            )
        )


def build_service(config: MirrorConfig | None = None) -> DailyMirrorService:
    """Wire the live providers and stores described by ``config``."""

    config = config or MirrorConfig.from_env()
    configure_logging()
    calendar_provider: CalendarProvider
    if config.calendar_project_id:
        calendar_provider = GoogleCalendarProvider(
            project_id=config.calendar_project_id,
            calendar_id=config.calendar_id,
            credentials_path=config.google_credentials_path,
        )
    else:
        calendar_provider = MockCalendarProvider()
    data_source = LiveDataSource(
        wardrobe_store=SQLiteWardrobeStore(config.wardrobe_db_path),
        weather_provider=OpenWeatherProvider(api_key=config.weather_api_key),
        calendar_provider=calendar_provider,
        profile_store=JSONProfileStore(config.profile_store_path),
    )
    return DailyMirrorService.from_data_source(data_source, config)


__all__ = ["DailyMirrorService", "build_service", "disclosure_message"]
