"""Calendar collaborator and practice-session booking."""

from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date, datetime, timedelta, tzinfo
from threading import Lock

from sagecore.config.settings import settings
from sagecore.observability.logging import log_event
from sagecore.scheduling.free_slots import BusyEvent, FreeInterval, day_window, find_free_slots
from sagecore.util.logger import get_logger

SESSION_NOTES = "Scheduled by Sage"

logger = get_logger("scheduling")


class CalendarProvider(ABC):
    @abstractmethod
    def events_between(self, start: datetime, end: datetime) -> list[BusyEvent]:
        """Events overlapping ``[start, end)``."""
        pass

    @abstractmethod
    def create_event(self, title: str, start: datetime, end: datetime, notes: str | None = None) -> str | None:
        """Create an event and return its identifier, or None if it was not saved."""
        pass


@dataclass(slots=True)
class CalendarEvent:
    id: str
    title: str
    start: datetime
    end: datetime
    notes: str | None = None
    all_day: bool = False


class InMemoryCalendar(CalendarProvider):
    def __init__(self) -> None:
        self._lock = Lock()
        self._events: dict[str, CalendarEvent] = {}

    def add_busy(self, start: datetime, end: datetime, *, all_day: bool = False, title: str = "busy") -> str:
        event_id = uuid.uuid4().hex
        with self._lock:
            self._events[event_id] = CalendarEvent(event_id, title, start, end, all_day=all_day)
        return event_id

    def get(self, event_id: str) -> CalendarEvent | None:
        with self._lock:
            return self._events.get(event_id)

    def events_between(self, start: datetime, end: datetime) -> list[BusyEvent]:
        with self._lock:
            matching = [event for event in self._events.values() if event.start < end and event.end > start]
        return [BusyEvent(event.start, event.end, all_day=event.all_day, title=event.title) for event in matching]

    def create_event(self, title: str, start: datetime, end: datetime, notes: str | None = None) -> str | None:
        event_id = uuid.uuid4().hex
        with self._lock:
            self._events[event_id] = CalendarEvent(event_id, title, start, end, notes=notes)
        return event_id


class SessionScheduler:
    def __init__(
        self,
        calendar: CalendarProvider,
        *,
        start_hour: int | None = None,
        end_hour: int | None = None,
        tz: tzinfo | None = None,
    ) -> None:
        self.calendar = calendar
        self.start_hour = settings.schedule_start_hour if start_hour is None else start_hour
        self.end_hour = settings.schedule_end_hour if end_hour is None else end_hour
        self.tz = tz

    def free_slots(self, day: date, min_duration: timedelta | float | int | None = None) -> list[FreeInterval]:
        if min_duration is None:
            min_duration = timedelta(minutes=settings.default_session_minutes)
        window_start, window_end = day_window(day, self.start_hour, self.end_hour, self.tz)
        events = self.calendar.events_between(window_start, window_end)
        return find_free_slots(events, window_start, window_end, min_duration)

    def schedule_session(self, skill_name: str, start: datetime, duration: timedelta) -> str | None:
        end = start + duration
        try:
            event_id = self.calendar.create_event(f"Practice {skill_name}", start, end, notes=SESSION_NOTES)
        except Exception as exc:
            logger.warning("schedule_session failed skill=%s error=%s", skill_name, exc)
            return None
        log_event("calendar.session_scheduled", skill=skill_name, start=start.isoformat(), event_id=event_id)
        return event_id
