"""FastAPI server exposing the daily recommendation endpoints."""

from __future__ import annotations

from datetime import date as dt_date
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from mirror_app.app import DailyMirrorService, build_service
from mirror_app.logging_config import configure_logging
from resilience.errors import InputValidationError


class RecommendationPayload(BaseModel):
    """Request payload for a daily recommendation run."""

    user_id: str = Field(..., description="Unique user identifier")
    date: dt_date
    location: Optional[str] = Field(None, description="City or 'lat,lon'; falls back to the configured default")


class FeedbackPayload(BaseModel):
    """Request payload for rating a recommended outfit."""

    user_id: str
    item_ids: List[str]
    rating: int
    emotional_response: Optional[Dict[str, Any]] = None


class SavedOutfitPayload(BaseModel):
    """Request payload for saving or sharing an outfit."""

    user_id: str
    item_ids: List[str]
    confidence_note: str = ""
    score: float = 0.0


def _validation_error(exc: InputValidationError) -> HTTPException:
    detail = getattr(exc, "details", None) or str(exc)
    return HTTPException(status_code=422, detail=detail)


def create_app(service: DailyMirrorService | None = None) -> FastAPI:
    """Build the ASGI app; the service is wired from the environment on first use when not given."""

    app = FastAPI(title="Daily Mirror", version="0.1.0")
    holder: Dict[str, DailyMirrorService] = {}
    if service is not None:
        holder["service"] = service

    def get_service() -> DailyMirrorService:
        if "service" not in holder:
            holder["service"] = build_service()
        return holder["service"]

    @app.get("/healthz")
    async def healthcheck() -> dict:
        """Lightweight readiness check."""

        return {"status": "ok", "service": "daily-mirror"}

    @app.post("/recommendations")
    def recommendations(request: RecommendationPayload) -> dict:
        """Generate today's ranked outfits plus per-source degradation metadata."""

        try:
            result = get_service().generate_daily_recommendations(
                user_id=request.user_id, date=request.date, location=request.location
            )
        except InputValidationError as exc:
            raise _validation_error(exc) from exc
        return result.to_dict()

    @app.post("/feedback")
    def feedback(request: FeedbackPayload) -> dict:
        """Rate an outfit; the updated profile is applied even when saving is deferred."""

        try:
            outcome = get_service().submit_feedback(
                user_id=request.user_id,
                item_ids=request.item_ids,
                rating=request.rating,
                emotional_response=request.emotional_response,
            )
        except InputValidationError as exc:
            raise _validation_error(exc) from exc
        return {
            "status": "ok",
            "persisted": outcome.persisted,
            "persistence_level": outcome.persistence_level.value,
            "feedback_cycle": outcome.profile.feedback_cycle,
        }

    @app.post("/favorites")
    def save_favorite(request: SavedOutfitPayload) -> dict:
        try:
            record = get_service().save_outfit_to_favorites(
                request.user_id, request.item_ids, request.confidence_note, request.score
            )
        except InputValidationError as exc:
            raise _validation_error(exc) from exc
        return {"status": "ok", "favorite": record}

    @app.get("/favorites/{user_id}")
    def list_favorites(user_id: str) -> dict:
        return {"favorites": get_service().favorite_outfits(user_id)}

    @app.post("/share")
    def share(request: SavedOutfitPayload) -> dict:
        """Shareable text for an outfit; only item names and the note leave the app."""

        try:
            return get_service().share_outfit(
                request.user_id, request.item_ids, request.confidence_note, request.score
            )
        except InputValidationError as exc:
            raise _validation_error(exc) from exc

    @app.get("/circuits")
    async def circuits() -> dict:
        """Current breaker state per external service key."""

        return {"circuits": get_service().circuit_status()}

    return app


configure_logging()
app = create_app()


def get_app() -> FastAPI:
    """Expose the FastAPI instance for ASGI servers."""

    return app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("server.api:app", host="0.0.0.0", port=int("8080"), reload=False)
