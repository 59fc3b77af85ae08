"""Batch job runners for the calendar sweep and the status tick."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from sqlalchemy.orm import Session

from anchor.core.clock import local_day, utcnow
from anchor.observability.metrics import log_metric
from anchor.services.calendar.sync import CalendarSyncCoordinator
from anchor.services.errors import PersistenceError
from anchor.services.schedule_service import ScheduleService


logger = logging.getLogger(__name__)


@dataclass
class ReconcileJobResult:
    checked: int
    cleared: int
    errors: int = 0
    skipped: bool = False


@dataclass
class StatusTickResult:
    day: date
    blocks_started: int
    failed: bool = False


def run_reconcile_sweep(db: Session, *, coordinator: Optional[CalendarSyncCoordinator] = None) -> ReconcileJobResult:
    service = ScheduleService(db, calendar=coordinator)
    result = service.reconcile_calendar()
    if result.skipped:
        logger.debug("Calendar reconcile skipped; sync disabled")
    return ReconcileJobResult(
        checked=result.checked,
        cleared=result.cleared,
        errors=result.errors,
        skipped=result.skipped,
    )


def run_status_tick(db: Session, *, now: Optional[datetime] = None) -> StatusTickResult:
    """Persist not_started -> in_progress for blocks whose interval has begun today."""
    now = now or utcnow()
    day = local_day(now)
    service = ScheduleService(db, clock=lambda: now)
    try:
        started = service.refresh_statuses(day, now=now)
    except PersistenceError:
        logger.exception("Status tick failed for %s", day)
        return StatusTickResult(day=day, blocks_started=0, failed=True)
    if started:
        log_metric("blocks.auto_started", started, metadata={"day": day.isoformat()})
    return StatusTickResult(day=day, blocks_started=started)
