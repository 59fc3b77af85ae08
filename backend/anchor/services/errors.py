"""Scheduling error taxonomy.

Validation and conflict errors are raised before anything is written. Calendar
errors never escape ScheduleService; they become warnings on the outcome.
"""
from __future__ import annotations

from datetime import tzinfo
from typing import TYPE_CHECKING, List, Optional, Sequence
from uuid import UUID

from anchor.core.clock import local_timezone

if TYPE_CHECKING:  # pragma: no cover - typing helper
    from anchor.db.models.time_block import TimeBlock


class SchedulingError(Exception):
    """Base class for errors surfaced to ScheduleService callers."""


class ValidationError(SchedulingError):
    def __init__(self, errors: Sequence[str]):
        self.errors: List[str] = list(errors)
        super().__init__("; ".join(self.errors))


class ConflictError(SchedulingError):
    def __init__(self, conflicts: Sequence["TimeBlock"], tz: Optional[tzinfo] = None):
        self.conflicts = list(conflicts)
        self.tz = tz
        described = ", ".join(describe_block(block, tz) for block in self.conflicts)
        super().__init__(f"Time block conflicts with existing blocks: {described}")


class PersistenceError(SchedulingError):
    pass


class BlockNotFoundError(SchedulingError):
    def __init__(self, block_id: UUID):
        self.block_id = block_id
        super().__init__(f"Time block {block_id} not found")


class ExternalCalendarError(Exception):
    """Failure or timeout talking to the external calendar; always non-fatal."""


def describe_block(block: "TimeBlock", tz: Optional[tzinfo] = None) -> str:
    zone = tz or local_timezone()
    start = block.start_time.astimezone(zone)
    end = block.end_time.astimezone(zone)
    return f"'{block.title}' ({start:%H:%M}-{end:%H:%M})"
