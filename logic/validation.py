"""Pydantic schemas for validating request payloads at the service boundary."""

from __future__ import annotations

from datetime import date as dt_date
from typing import Any, Dict, List, Literal, Optional, Type, TypeVar

from pydantic import BaseModel, Field, ValidationError, field_validator

from models.taxonomy import EmotionalState
from resilience.errors import InputValidationError

ModelT = TypeVar("ModelT", bound=BaseModel)


class RecommendationRequest(BaseModel):
    """Input contract for a daily recommendation run."""

    user_id: str = Field(min_length=1)
    date: dt_date
    location: str = ""

    @field_validator("user_id")
    @classmethod
    def _strip_user_id(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("user_id cannot be blank")
        return value.strip()


class EmotionalResponsePayload(BaseModel):
    primary: EmotionalState
    intensity: int = Field(default=5, ge=1, le=10)


class OutfitReference(BaseModel):
    """A user and the items of one outfit, as sent back by the presentation layer."""

    user_id: str = Field(min_length=1)
    item_ids: List[str] = Field(min_length=1)

    @field_validator("item_ids")
    @classmethod
    def _unique_items(cls, value: List[str]) -> List[str]:
        cleaned = [item_id.strip() for item_id in value if item_id and item_id.strip()]
        if len(cleaned) < 1:
            raise ValueError("item_ids must contain at least one id")
        if len(set(cleaned)) != len(cleaned):
            raise ValueError("item_ids must be unique")
        return cleaned


class FeedbackRequest(OutfitReference):
    """Input contract for rating a recommended outfit."""

    rating: int = Field(ge=1, le=5)
    emotional_response: Optional[EmotionalResponsePayload] = None


class SavedOutfitRequest(OutfitReference):
    """Input contract for saving or sharing an outfit."""

    confidence_note: str = ""
    score: float = Field(default=0.0, ge=0.0, le=1.0)


class ValidationResult(BaseModel):
    """Wrapper returned to callers when validation fails."""

    status: Literal["invalid_request"] = "invalid_request"
    message: str
    details: List[Dict[str, Any]]


def validation_failure(message: str, exc: ValidationError) -> Dict[str, Any]:
    """Translate Pydantic errors into a consistent review payload."""

    details = [{"loc": list(error["loc"]), "msg": error["msg"]} for error in exc.errors()]
    return ValidationResult(message=message, details=details).model_dump()


def parse_request(model: Type[ModelT], payload: Dict[str, Any]) -> ModelT:
    """Validate ``payload`` or raise :class:`InputValidationError` carrying the details."""

    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        error = InputValidationError(f"Invalid {model.__name__}")
        error.details = validation_failure(f"Invalid {model.__name__}", exc)["details"]
        raise error from exc


__all__ = [
    "RecommendationRequest",
    "EmotionalResponsePayload",
    "OutfitReference",
    "FeedbackRequest",
    "SavedOutfitRequest",
    "ValidationResult",
    "validation_failure",
    "parse_request",
]
