"""Hands "recommendations ready" messages to the notification collaborator.

A small state machine (IDLE -> PENDING -> DISPATCHED) fed by a queue replaces
timer callbacks. Delivery mechanics belong to the collaborator; a failed
delivery puts the message back and leaves the dispatcher PENDING. The
dispatcher also keeps each user's next morning session time.
"""

from __future__ import annotations

import logging
import queue
import threading
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import Callable, Dict, List, Optional

from mirror_app.logging_config import get_logger, log_event

LOGGER = get_logger(__name__)

DEFAULT_SESSION_TIME = time(6, 0)


class DispatchState(str, Enum):
    IDLE = "idle"
    PENDING = "pending"
    DISPATCHED = "dispatched"


@dataclass(frozen=True)
class RecommendationReady:
    user_id: str
    target_date: date
    status: str
    recommendation_count: int


def next_session_at(now: datetime, session_time: time = DEFAULT_SESSION_TIME, include_weekends: bool = True) -> datetime:
    """First ``session_time`` strictly after ``now``, in ``now``'s timezone.

    With ``include_weekends`` off, Saturday and Sunday are skipped.
    """

    candidate = datetime.combine(now.date(), session_time, tzinfo=now.tzinfo)
    if candidate <= now:
        candidate += timedelta(days=1)
    while not include_weekends and candidate.weekday() >= 5:
        candidate += timedelta(days=1)
    return candidate


class NotificationDispatcher:
    def __init__(
        self,
        deliver: Callable[[RecommendationReady], None],
        messages: "queue.Queue[RecommendationReady] | None" = None,
    ) -> None:
        self._deliver = deliver
        self._messages: "queue.Queue[RecommendationReady]" = messages or queue.Queue()
        self._state = DispatchState.IDLE
        self._lock = threading.Lock()
        self._sessions: Dict[str, datetime] = {}

    @property
    def state(self) -> DispatchState:
        return self._state

    @property
    def backlog(self) -> int:
        return self._messages.qsize()

    def notify_ready(self, message: RecommendationReady) -> None:
        """Ready-callback handed to the recommendation flow."""

        self._messages.put(message)
        with self._lock:
            self._transition(DispatchState.PENDING)

    def dispatch_next(self) -> bool:
        """Deliver one queued message. Returns False when nothing was delivered."""

        try:
            message = self._messages.get_nowait()
        except queue.Empty:
            return False
        try:
            self._deliver(message)
        except Exception as exc:  # noqa: BLE001
            self._messages.put(message)
            with self._lock:
                self._transition(DispatchState.PENDING)
            log_event(LOGGER, logging.WARNING, "notification_delivery_failed", error=repr(exc), backlog=self.backlog)
            return False
        finally:
            self._messages.task_done()

        with self._lock:
            self._transition(DispatchState.DISPATCHED if self._messages.empty() else DispatchState.PENDING)
        log_event(LOGGER, logging.INFO, "notification_dispatched", status=message.status)
        return True

    def drain(self, limit: Optional[int] = None) -> int:
        """Deliver queued messages until the queue is empty, a delivery fails or ``limit`` is hit."""

        delivered = 0
        while limit is None or delivered < limit:
            if not self.dispatch_next():
                break
            delivered += 1
        return delivered

    def schedule_session(self, user_id: str, at: datetime) -> None:
        """Book the next mirror session; a later booking replaces the earlier one."""

        with self._lock:
            self._sessions[user_id] = at
        log_event(LOGGER, logging.INFO, "session_scheduled", user_id=user_id, at=at.isoformat())

    def scheduled_session(self, user_id: str) -> Optional[datetime]:
        with self._lock:
            return self._sessions.get(user_id)

    def due_sessions(self, now: datetime) -> List[str]:
        """Pop and return the users whose session time has arrived, earliest first."""

        with self._lock:
            due = sorted((at, user_id) for user_id, at in self._sessions.items() if at <= now)
            for _, user_id in due:
                del self._sessions[user_id]
        return [user_id for _, user_id in due]

    def acknowledge(self) -> None:
        """Return to IDLE once the collaborator has shown the dispatched messages."""

        with self._lock:
            if self._state is DispatchState.DISPATCHED:
                self._transition(DispatchState.IDLE)

    def _transition(self, new_state: DispatchState) -> None:
        previous = self._state
        self._state = new_state
        if previous is not new_state:
            log_event(
                LOGGER,
                logging.INFO,
                "dispatcher_state_changed",
                previous_state=previous.value,
                new_state=new_state.value,
            )


__all__ = [
    "DEFAULT_SESSION_TIME",
    "DispatchState",
    "NotificationDispatcher",
    "RecommendationReady",
    "next_session_at",
]
