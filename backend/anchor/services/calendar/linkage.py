"""External-calendar linkage as a closed union.

A block is either Unlinked, PendingLink (an external create is in flight and
nothing has been written locally yet) or Linked with all three identifiers.
Only Linked is ever persisted with values; PendingLink and Unlinked both store
three NULLs, so a partially populated row cannot be expressed.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Tuple, Union


@dataclass(frozen=True)
class Unlinked:
    state = "unlinked"


@dataclass(frozen=True)
class PendingLink:
    calendar_id: str
    state = "pending"


@dataclass(frozen=True)
class Linked:
    event_id: str
    calendar_id: str
    last_modified: datetime
    state = "linked"


CalendarLinkage = Union[Unlinked, PendingLink, Linked]

UNLINKED = Unlinked()

LinkageColumns = Tuple[Optional[str], Optional[str], Optional[datetime]]


def linkage_from_columns(event_id: Optional[str], calendar_id: Optional[str], last_modified: Optional[datetime]) -> CalendarLinkage:
    if event_id and calendar_id and last_modified is not None:
        return Linked(event_id=event_id, calendar_id=calendar_id, last_modified=last_modified)
    return UNLINKED


def linkage_to_columns(linkage: CalendarLinkage) -> LinkageColumns:
    if isinstance(linkage, Linked):
        return linkage.event_id, linkage.calendar_id, linkage.last_modified
    return None, None, None
