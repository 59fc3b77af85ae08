"""External calendar provider interface."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional


class CalendarProviderError(Exception):
    """Raised by providers when the external store rejects or fails a call."""


@dataclass(frozen=True)
class CalendarInfo:
    id: str
    display_name: str
    color: str


@dataclass(frozen=True)
class CreatedEvent:
    event_id: str
    last_modified: Optional[datetime]


class CalendarProvider:
    """Narrow contract with a calendar store the user also edits elsewhere.

    ``delete_event`` on an unknown id is a no-op, not an error.
    """

    def create_event(
        self,
        *,
        calendar_id: str,
        title: str,
        notes: Optional[str],
        start: datetime,
        end: datetime,
    ) -> CreatedEvent:
        raise NotImplementedError

    def update_event(
        self,
        *,
        event_id: str,
        title: str,
        notes: Optional[str],
        start: datetime,
        end: datetime,
    ) -> Optional[datetime]:
        raise NotImplementedError

    def delete_event(self, event_id: str) -> None:
        raise NotImplementedError

    def event_exists(self, event_id: str) -> bool:
        raise NotImplementedError

    def list_calendars(self) -> List[CalendarInfo]:
        raise NotImplementedError
