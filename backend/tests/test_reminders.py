from __future__ import annotations

from datetime import date, datetime, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from anchor.core.config import settings
from anchor.db.models.daily_progress import DailyProgress
from anchor.db.models.schedule_action_log import ScheduleActionLog
from anchor.db.models.time_block import TimeBlock
from anchor.services.block_status import BlockStatus
from anchor.services.calendar.memory import InMemoryCalendarProvider
from anchor.services.calendar.sync import CalendarSyncCoordinator
from anchor.services.notifications.base import ReminderResult, ReminderService
from anchor.services.notifications.hooks import reschedule_day_reminders
from anchor.services.notifications.noop import NoopReminderService
from anchor.services.schedule_service import ScheduleService

DAY = date(2024, 1, 1)


def _at(hour: int) -> datetime:
    return datetime(DAY.year, DAY.month, DAY.day, hour, tzinfo=timezone.utc)


class _RecordingReminders(ReminderService):
    def __init__(self):
        self.calls = []

    def reschedule_all(self, *, day, blocks, request_id):
        self.calls.append((day, [block.title for block in blocks]))
        return ReminderResult(status="sent", reason="scheduled", scheduled=len(blocks))


class _BrokenReminders(ReminderService):
    def reschedule_all(self, *, day, blocks, request_id):
        raise RuntimeError("push service down")


class _LogBreakingReminders(ReminderService):
    """Schedules fine, then makes the commit of its own log row fail once."""

    def __init__(self, db):
        self.db = db

    def reschedule_all(self, *, day, blocks, request_id):
        def failing_commit():
            del self.db.commit
            raise SQLAlchemyError("database is locked")

        self.db.commit = failing_commit
        return ReminderResult(status="sent", reason="scheduled", scheduled=len(blocks))


@pytest.fixture()
def db():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    TestingSession = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    TimeBlock.__table__.create(bind=engine)
    DailyProgress.__table__.create(bind=engine)
    ScheduleActionLog.__table__.create(bind=engine)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()


def _service(db, reminders) -> ScheduleService:
    coordinator = CalendarSyncCoordinator(db, InMemoryCalendarProvider(), timeout=1.0, clock=lambda: _at(7))
    return ScheduleService(db, calendar=coordinator, reminders=reminders, clock=lambda: _at(7), tz=timezone.utc)


def _actions(db, action_type):
    return db.query(ScheduleActionLog).filter(ScheduleActionLog.action_type == action_type).all()


def test_reminders_are_skipped_when_disabled(db, monkeypatch) -> None:
    monkeypatch.setattr(settings, "notifications_enabled", False)
    reminders = _RecordingReminders()

    outcome = _service(db, reminders).add_block("Focus", _at(9), _at(10))

    assert outcome.reminders.status == "skipped"
    assert reminders.calls == []
    assert len(_actions(db, "reminders_skipped")) == 1


def test_every_change_hands_over_the_full_day(db, monkeypatch) -> None:
    monkeypatch.setattr(settings, "notifications_enabled", True)
    reminders = _RecordingReminders()
    service = _service(db, reminders)

    service.add_block("Focus", _at(9), _at(10))
    walk = service.add_block("Walk", _at(11), _at(12)).block
    service.update_block(walk, {"title": "Long walk"})
    service.delete_block(walk)

    assert reminders.calls == [
        (DAY, ["Focus"]),
        (DAY, ["Focus", "Walk"]),
        (DAY, ["Focus", "Long walk"]),
        (DAY, ["Focus"]),
    ]
    assert len(_actions(db, "reminders_rescheduled")) == 4


def test_reminder_failure_does_not_undo_the_change(db, monkeypatch) -> None:
    monkeypatch.setattr(settings, "notifications_enabled", True)

    outcome = _service(db, _BrokenReminders()).add_block("Focus", _at(9), _at(10))

    assert outcome.reminders.status == "failed"
    assert "push service down" in outcome.reminders.reason
    assert db.query(TimeBlock).count() == 1


def test_noop_provider_counts_pending_blocks(db) -> None:
    service = _service(db, None)
    first = service.add_block("Focus", _at(9), _at(10)).block
    service.add_block("Walk", _at(11), _at(12))
    service.transition_status(first, BlockStatus.COMPLETED)

    result = NoopReminderService().reschedule_all(day=DAY, blocks=service.blocks_for_day(DAY), request_id=None)

    assert result.status == "noop"
    assert result.scheduled == 1


def test_hook_records_outcome_with_block_count(db, monkeypatch) -> None:
    monkeypatch.setattr(settings, "notifications_enabled", True)

    result = reschedule_day_reminders(db, DAY, [], service=_RecordingReminders())

    assert result.status == "sent"
    (entry,) = _actions(db, "reminders_rescheduled")
    assert entry.day == DAY
    assert entry.action_payload["blocks"] == 0


def test_reminder_log_is_committed_after_the_change_it_follows(db, monkeypatch) -> None:
    monkeypatch.setattr(settings, "notifications_enabled", True)

    outcome = _service(db, _LogBreakingReminders(db)).add_block("Focus", _at(9), _at(10))

    assert outcome.reminders.status == "sent"
    assert db.query(TimeBlock).count() == 1
    assert len(_actions(db, "block_created")) == 1
    assert _actions(db, "reminders_rescheduled") == []
