"""In-process calendar store used for local development and tests."""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from threading import Lock
from typing import Dict, Iterable, List, Optional, Set
from uuid import uuid4

from anchor.core.clock import utcnow
from anchor.services.calendar.base import CalendarInfo, CalendarProvider, CalendarProviderError, CreatedEvent

logger = logging.getLogger(__name__)

DEFAULT_CALENDARS = (
    CalendarInfo(id="personal", display_name="Personal", color="#4A90E2"),
    CalendarInfo(id="work", display_name="Work", color="#E2574A"),
)


@dataclass(frozen=True)
class StoredEvent:
    event_id: str
    calendar_id: str
    title: str
    notes: Optional[str]
    start: datetime
    end: datetime
    last_modified: datetime


class InMemoryCalendarProvider(CalendarProvider):
    """Thread-safe dictionary-backed calendar.

    ``fail_operations`` names operations ("create", "update", "delete",
    "exists", "list") that raise CalendarProviderError, to simulate outages.
    """

    def __init__(self, calendars: Iterable[CalendarInfo] = DEFAULT_CALENDARS):
        self._calendars: Dict[str, CalendarInfo] = {calendar.id: calendar for calendar in calendars}
        self._events: Dict[str, StoredEvent] = {}
        self._lock = Lock()
        self.fail_operations: Set[str] = set()

    def _check(self, operation: str) -> None:
        if operation in self.fail_operations:
            raise CalendarProviderError(f"calendar {operation} unavailable")

    def create_event(self, *, calendar_id, title, notes, start, end) -> CreatedEvent:
        self._check("create")
        with self._lock:
            if calendar_id not in self._calendars:
                raise CalendarProviderError(f"Calendar {calendar_id} not found")
            event = StoredEvent(
                event_id=uuid4().hex,
                calendar_id=calendar_id,
                title=title,
                notes=notes,
                start=start,
                end=end,
                last_modified=utcnow(),
            )
            self._events[event.event_id] = event
        logger.debug("Created event %s in calendar %s", event.event_id, calendar_id)
        return CreatedEvent(event_id=event.event_id, last_modified=event.last_modified)

    def update_event(self, *, event_id, title, notes, start, end) -> Optional[datetime]:
        self._check("update")
        with self._lock:
            existing = self._events.get(event_id)
            if existing is None:
                raise CalendarProviderError(f"Event {event_id} not found")
            updated = replace(existing, title=title, notes=notes, start=start, end=end, last_modified=utcnow())
            self._events[event_id] = updated
        return updated.last_modified

    def delete_event(self, event_id: str) -> None:
        self._check("delete")
        with self._lock:
            self._events.pop(event_id, None)

    def event_exists(self, event_id: str) -> bool:
        self._check("exists")
        with self._lock:
            return event_id in self._events

    def list_calendars(self) -> List[CalendarInfo]:
        self._check("list")
        return list(self._calendars.values())

    def get_event(self, event_id: str) -> Optional[StoredEvent]:
        with self._lock:
            return self._events.get(event_id)
