from datetime import date, datetime, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from anchor.db.base import Base
from anchor.db import models  # noqa: F401  ensure models are loaded
from anchor.db.models.daily_progress import DailyProgress
from anchor.db.models.time_block import TimeBlock
from anchor.services.calendar.linkage import UNLINKED, Linked, PendingLink


def _at(hour: int, minute: int = 0) -> datetime:
    return datetime(2024, 1, 1, hour, minute, tzinfo=timezone.utc)


def _block(**kwargs) -> TimeBlock:
    values = dict(title="Focus", start_time=_at(9), end_time=_at(10), scheduled_day=date(2024, 1, 1))
    values.update(kwargs)
    return TimeBlock(**values)


def _session():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(bind=engine)
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)()


def test_metadata_contains_core_tables() -> None:
    table_names = set(Base.metadata.tables.keys())

    assert {"time_blocks", "daily_progress", "schedule_actions_log"}.issubset(table_names)


def test_times_round_trip_as_utc() -> None:
    session = _session()
    try:
        block = _block()
        session.add(block)
        session.commit()
        session.expire_all()

        loaded = session.get(TimeBlock, block.id)
        assert loaded.start_time == _at(9)
        assert loaded.start_time.tzinfo is not None
    finally:
        session.close()


def test_linkage_columns_are_all_or_none() -> None:
    session = _session()
    try:
        session.add(_block(calendar_event_id="E1"))
        with pytest.raises(IntegrityError):
            session.commit()
    finally:
        session.close()


def test_linkage_setter_writes_every_column() -> None:
    block = _block()

    block.linkage = Linked(event_id="E1", calendar_id="work", last_modified=_at(8))
    assert (block.calendar_event_id, block.calendar_id, block.calendar_last_modified) == ("E1", "work", _at(8))
    assert block.is_linked is True

    block.linkage = PendingLink(calendar_id="work")
    assert block.linkage == UNLINKED
    assert (block.calendar_event_id, block.calendar_id, block.calendar_last_modified) == (None, None, None)


def test_derived_block_attributes() -> None:
    block = _block(end_time=_at(10, 30))

    assert block.duration_minutes == 90
    assert block.is_future(_at(8)) is True
    assert block.is_active(_at(9)) is True
    assert block.is_active(_at(10, 30)) is False
    assert block.is_past(_at(10, 30)) is True
    assert block.current_progress(_at(9, 45)) == pytest.approx(0.5)
    assert block.remaining_minutes(_at(10)) == 30
    assert block.remaining_minutes(_at(11)) is None


def test_daily_progress_validation() -> None:
    progress = DailyProgress(
        date=date(2024, 1, 1),
        total_blocks=2,
        completed_blocks=1,
        skipped_blocks=0,
        in_progress_blocks=0,
        total_planned_minutes=60,
        completed_minutes=30,
        day_rating=6,
    )

    assert progress.validation_errors() == ["day rating must be between 1 and 5"]
