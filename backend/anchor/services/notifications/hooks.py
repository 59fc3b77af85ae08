"""Reminder rescheduling hook run after every change to a day's blocks."""
from __future__ import annotations

import logging
from datetime import date
from time import perf_counter
from typing import Optional, Sequence

from sqlalchemy.orm import Session

from anchor.core.config import settings
from anchor.db.models.time_block import TimeBlock
from anchor.observability.metrics import log_metric
from anchor.observability.tracing import trace
from anchor.services import block_store
from anchor.services.errors import PersistenceError
from anchor.services.notifications.base import ReminderResult, ReminderService
from anchor.services.notifications.factory import get_reminder_service

logger = logging.getLogger(__name__)


def reschedule_day_reminders(
    db: Session,
    day: date,
    blocks: Sequence[TimeBlock],
    *,
    request_id: Optional[str] = None,
    service: Optional[ReminderService] = None,
) -> ReminderResult:
    """Hand the day's complete block set to the reminder service.

    Reminder failures never undo the schedule change that triggered them.
    """
    if not settings.notifications_enabled:
        result = ReminderResult(status="skipped", reason="notifications disabled")
        _record(db, day, result, len(blocks))
        return result

    provider = service or get_reminder_service()
    start = perf_counter()
    with trace(
        "reminders.reschedule",
        metadata={"blocks": len(blocks), "provider": settings.notifications_provider},
        day=day.isoformat(),
        request_id=request_id,
    ):
        try:
            result = provider.reschedule_all(day=day, blocks=list(blocks), request_id=request_id)
        except Exception as exc:
            logger.exception("Reminder rescheduling failed for %s", day)
            result = ReminderResult(status="failed", reason=str(exc))

    duration_ms = (perf_counter() - start) * 1000
    log_metric("reminders.rescheduled", 1 if result.status != "failed" else 0, metadata={"day": day.isoformat()})
    log_metric("reminders.duration_ms", duration_ms, metadata={"provider": settings.notifications_provider})
    _record(db, day, result, len(blocks))
    return result


def _record(db: Session, day: date, result: ReminderResult, block_count: int) -> None:
    if result.status == "skipped":
        log_metric("reminders.skipped", 1, metadata={"day": day.isoformat()})
    entry = block_store.action_log(
        "reminders_skipped" if result.status == "skipped" else "reminders_rescheduled",
        day=day,
        payload={
            "provider": settings.notifications_provider,
            "result": result.__dict__,
            "blocks": block_count,
        },
        reason="Reminders replaced" if result.status != "skipped" else "Reminders skipped",
    )
    try:
        with block_store.persistence_guard(db, "record reminder log"):
            db.add(entry)
            db.commit()
    except PersistenceError:
        logger.warning("Reminder log for %s was not recorded", day)
