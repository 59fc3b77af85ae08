"""Reminder rescheduling interface."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Sequence

from anchor.db.models.time_block import TimeBlock


@dataclass
class ReminderResult:
    status: str
    reason: str
    scheduled: int = 0


class ReminderService:
    """Replace-all reminder scheduling for one day.

    Implementations discard every reminder previously scheduled for ``day`` and
    schedule fresh ones for ``blocks``; calling twice with the same input is
    harmless.
    """

    def reschedule_all(
        self,
        *,
        day: date,
        blocks: Sequence[TimeBlock],
        request_id: str | None,
    ) -> ReminderResult:
        raise NotImplementedError
