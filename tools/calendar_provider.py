"""Calendar provider abstractions and implementations."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import date, datetime
from typing import Dict, List, Tuple

import google.auth
from google.auth.transport.requests import Request
import requests

from models.context import CalendarEvent
from models.taxonomy import FormalityLevel
from models.wardrobe_item import as_utc
from resilience.errors import InputValidationError, TransientDependencyError


LOGGER = logging.getLogger(__name__)
SCOPES = ["https://www.googleapis.com/auth/calendar.readonly"]

# checked from most to least formal, first match wins
FORMALITY_KEYWORDS: Tuple[Tuple[FormalityLevel, Tuple[str, ...]], ...] = (
    (FormalityLevel.BLACK_TIE, ("black tie", "black-tie", "gala", "opera", "ball")),
    (FormalityLevel.FORMAL, ("wedding", "ceremony", "funeral", "awards", "formal")),
    (FormalityLevel.BUSINESS, ("interview", "board", "client", "presentation", "pitch", "conference")),
    (FormalityLevel.BUSINESS_CASUAL, ("meeting", "sync", "office", "work", "standup", "1:1", "lunch")),
)


def infer_formality(title: str) -> FormalityLevel:
    """Keyword mapping from an event title to a formality level."""

    lowered = title.lower()
    for level, keywords in FORMALITY_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return level
    return FormalityLevel.CASUAL


class CalendarProvider(ABC):
    """Abstract calendar provider interface."""

    @abstractmethod
    def get_events(self, user_id: str, target_date: date) -> List[CalendarEvent]:
        """Fetch calendar events for the user on the given day."""


class GoogleCalendarProvider(CalendarProvider):
    """Google Calendar provider with OAuth/ADC support and input validation."""

    def __init__(
        self,
        project_id: str,
        calendar_id: str | None = None,
        credentials_path: str | None = None,
        timeout_seconds: float = 5.0,
    ) -> None:
        if not project_id:
            raise ValueError("project_id is required for Google Calendar provider")
        self.project_id = project_id
        self.calendar_id = calendar_id or "primary"
        self.credentials_path = credentials_path
        self.timeout_seconds = timeout_seconds

    def _get_credentials(self):
        if self.credentials_path:
            credentials, _ = google.auth.load_credentials_from_file(
                self.credentials_path, scopes=SCOPES
            )
        else:
            credentials, _ = google.auth.default(scopes=SCOPES)

        if not credentials.valid:
            credentials.refresh(Request())

        return credentials

    def _parse_datetime(self, raw: str | None) -> datetime:
        if not raw:
            raise ValueError("Missing datetime value from calendar event")
        # all-day events carry a bare date; both forms end up aware UTC
        cleaned = raw.replace("Z", "+00:00")
        return as_utc(datetime.fromisoformat(cleaned))

    def _coerce_event(self, payload: Dict) -> CalendarEvent:
        start_info = payload.get("start", {})
        end_info = payload.get("end", {})
        start_raw = start_info.get("dateTime") or start_info.get("date")
        end_raw = end_info.get("dateTime") or end_info.get("date")
        title = payload.get("summary") or "Untitled event"
        private = payload.get("extendedProperties", {}).get("private", {})
        declared = private.get("formality")
        formality = FormalityLevel.parse(declared) if declared else infer_formality(title)
        return CalendarEvent(
            title=title,
            start_time=self._parse_datetime(start_raw),
            end_time=self._parse_datetime(end_raw),
            formality=formality,
            location=payload.get("location"),
        )

    def get_events(self, user_id: str, target_date: date) -> List[CalendarEvent]:
        if not user_id:
            raise InputValidationError("user_id is required")

        LOGGER.info("Fetching calendar events", extra={"user_id": user_id, "date": str(target_date)})
        credentials = self._get_credentials()

        time_min = datetime.combine(target_date, datetime.min.time()).isoformat() + "Z"
        time_max = datetime.combine(target_date, datetime.max.time()).isoformat() + "Z"
        params = {
            "timeMin": time_min,
            "timeMax": time_max,
            "singleEvents": "true",
            "orderBy": "startTime",
            "maxResults": 50,
        }
        headers = {"Authorization": f"Bearer {credentials.token}"}
        url = f"https://www.googleapis.com/calendar/v3/calendars/{self.calendar_id}/events"

        try:
            response = requests.get(url, headers=headers, params=params, timeout=self.timeout_seconds)
            response.raise_for_status()
        except requests.Timeout as exc:
            raise TransientDependencyError("Google Calendar request timed out", service_key="calendar") from exc
        except requests.ConnectionError as exc:
            raise TransientDependencyError("Calendar API unreachable", service_key="calendar") from exc

        events: List[CalendarEvent] = []
        for item in response.json().get("items", []):
            try:
                events.append(self._coerce_event(item))
            except ValueError as exc:
                LOGGER.warning("Skipping malformed calendar event", exc_info=exc)
        return events


class MockCalendarProvider(CalendarProvider):
    """Offline deterministic calendar provider for tests."""

    def __init__(self, events: List[CalendarEvent] | None = None) -> None:
        self._events = events or []

    def get_events(self, user_id: str, target_date: date) -> List[CalendarEvent]:
        LOGGER.info("Returning mock calendar events", extra={"user_id": user_id, "date": str(target_date)})
        return [event for event in self._events if event.start_time.date() == target_date]


__all__ = [
    "CalendarProvider",
    "GoogleCalendarProvider",
    "MockCalendarProvider",
    "infer_formality",
    "FORMALITY_KEYWORDS",
]
