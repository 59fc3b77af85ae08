"""Persistence for time blocks, daily progress and the action log.

Every write commits on its own; failures roll the session back and surface as
PersistenceError so callers never see a half-written day.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import date
from typing import Any, Dict, Iterator, List, Optional
from uuid import UUID

from sqlalchemy import asc
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from anchor.core.clock import utcnow
from anchor.db.models.daily_progress import DailyProgress
from anchor.db.models.schedule_action_log import ScheduleActionLog
from anchor.db.models.time_block import TimeBlock
from anchor.services.errors import PersistenceError

logger = logging.getLogger(__name__)


@contextmanager
def persistence_guard(db: Session, action: str) -> Iterator[None]:
    """Roll back and translate database errors raised inside the block."""
    try:
        yield
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Persistence failure during %s", action)
        raise PersistenceError(f"Failed to {action}: {exc}") from exc


def load_blocks_for_day(db: Session, day: date) -> List[TimeBlock]:
    with persistence_guard(db, "load time blocks"):
        return (
            db.query(TimeBlock)
            .filter(TimeBlock.scheduled_day == day)
            .order_by(asc(TimeBlock.start_time), asc(TimeBlock.title))
            .all()
        )


def load_blocks_between(db: Session, start_day: date, end_day: date) -> List[TimeBlock]:
    """Blocks scheduled on any day in the inclusive range."""
    with persistence_guard(db, "load time blocks for range"):
        return (
            db.query(TimeBlock)
            .filter(TimeBlock.scheduled_day >= start_day, TimeBlock.scheduled_day <= end_day)
            .order_by(asc(TimeBlock.start_time), asc(TimeBlock.title))
            .all()
        )


def load_linked_blocks(db: Session) -> List[TimeBlock]:
    with persistence_guard(db, "load calendar-linked blocks"):
        return (
            db.query(TimeBlock)
            .filter(TimeBlock.calendar_event_id.isnot(None))
            .order_by(asc(TimeBlock.start_time))
            .all()
        )


def get_block(db: Session, block_id: UUID) -> Optional[TimeBlock]:
    with persistence_guard(db, "load time block"):
        return db.get(TimeBlock, block_id)


def save_block(db: Session, block: TimeBlock, *, log: Optional[ScheduleActionLog] = None) -> TimeBlock:
    with persistence_guard(db, "save time block"):
        db.add(block)
        if log is not None:
            db.add(log)
        db.commit()
        db.refresh(block)
    return block


def save_blocks(db: Session, blocks: List[TimeBlock], *, logs: Optional[List[ScheduleActionLog]] = None) -> None:
    """Commit several blocks in one transaction."""
    with persistence_guard(db, "save time blocks"):
        db.add_all(blocks)
        if logs:
            db.add_all(logs)
        db.commit()


def delete_blocks(db: Session, blocks: List[TimeBlock], *, logs: Optional[List[ScheduleActionLog]] = None) -> None:
    with persistence_guard(db, "delete time blocks"):
        for block in blocks:
            db.delete(block)
        if logs:
            db.add_all(logs)
        db.commit()


def load_progress(db: Session, day: date) -> Optional[DailyProgress]:
    with persistence_guard(db, "load daily progress"):
        return db.query(DailyProgress).filter(DailyProgress.date == day).one_or_none()


def load_progress_between(db: Session, start_day: date, end_day: date) -> List[DailyProgress]:
    with persistence_guard(db, "load daily progress range"):
        return (
            db.query(DailyProgress)
            .filter(DailyProgress.date >= start_day, DailyProgress.date <= end_day)
            .order_by(asc(DailyProgress.date))
            .all()
        )


def load_or_create_progress(db: Session, day: date) -> DailyProgress:
    """Return the day's record, creating an empty (uncommitted) one on first use."""
    progress = load_progress(db, day)
    if progress is not None:
        return progress
    now = utcnow()
    progress = DailyProgress(
        date=day,
        total_blocks=0,
        completed_blocks=0,
        skipped_blocks=0,
        in_progress_blocks=0,
        total_planned_minutes=0,
        completed_minutes=0,
        summary_viewed=False,
        created_at=now,
        updated_at=now,
    )
    db.add(progress)
    return progress


def save_progress(db: Session, progress: DailyProgress) -> DailyProgress:
    with persistence_guard(db, "save daily progress"):
        db.add(progress)
        db.commit()
        db.refresh(progress)
    return progress


def action_log(
    action_type: str,
    *,
    block: Optional[TimeBlock] = None,
    day: Optional[date] = None,
    payload: Optional[Dict[str, Any]] = None,
    reason: Optional[str] = None,
) -> ScheduleActionLog:
    """Build (not persist) an action log entry to commit alongside a change."""
    entry_payload: Dict[str, Any] = {}
    if block is not None:
        entry_payload.update(
            {
                "title": block.title,
                "start_time": block.start_time.isoformat() if block.start_time else None,
                "end_time": block.end_time.isoformat() if block.end_time else None,
                "status": block.status_value,
            }
        )
    entry_payload.update(payload or {})
    return ScheduleActionLog(
        block_id=block.id if block is not None else None,
        day=day or (block.scheduled_day if block is not None else None),
        action_type=action_type,
        action_payload=entry_payload,
        reason=reason,
        created_at=utcnow(),
    )
