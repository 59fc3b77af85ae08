from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest

from anchor.db.models.time_block import TimeBlock
from anchor.services.block_status import BlockStatus
from anchor.services.progress_aggregator import ProgressSnapshot, aggregate, aggregate_week
from anchor.services.progress_metrics import PerformanceLevel

DAY = date(2024, 1, 1)


def _block(hour: int, minutes: int, status: BlockStatus, day: date = DAY) -> TimeBlock:
    start = datetime(day.year, day.month, day.day, hour, tzinfo=timezone.utc)
    block = TimeBlock(
        title=f"Block {hour}",
        start_time=start,
        end_time=start + timedelta(minutes=minutes),
        scheduled_day=day,
    )
    block.status = status
    return block


def test_empty_day_has_zero_completion() -> None:
    snapshot = aggregate(DAY, [])

    assert snapshot.total_blocks == 0
    assert snapshot.completion_percentage == 0.0
    assert snapshot.skip_rate == 0.0
    assert snapshot.performance_level == PerformanceLevel.NONE
    assert snapshot.is_day_complete is False


def test_statuses_are_partitioned_and_minutes_totalled() -> None:
    blocks = [
        _block(9, 60, BlockStatus.COMPLETED),
        _block(11, 30, BlockStatus.COMPLETED),
        _block(13, 45, BlockStatus.SKIPPED),
    ]

    snapshot = aggregate(DAY, blocks)

    assert snapshot.total_blocks == 3
    assert snapshot.completed_blocks == 2
    assert snapshot.skipped_blocks == 1
    assert snapshot.completion_percentage == pytest.approx(0.667, abs=1e-3)
    assert snapshot.performance_level == PerformanceLevel.GOOD
    assert snapshot.total_planned_minutes == 135
    assert snapshot.completed_minutes == 90
    assert snapshot.is_day_complete is True
    assert snapshot.is_good_day is False
    assert snapshot.counter_errors() == []


def test_in_progress_and_not_started_blocks_are_counted_separately() -> None:
    snapshot = aggregate(DAY, [_block(9, 60, BlockStatus.IN_PROGRESS), _block(11, 60, BlockStatus.NOT_STARTED)])

    assert snapshot.in_progress_blocks == 1
    assert snapshot.not_started_blocks == 1
    assert snapshot.completed_minutes == 0


def test_blocks_from_other_days_are_ignored() -> None:
    snapshot = aggregate(DAY, [_block(9, 60, BlockStatus.COMPLETED, day=DAY + timedelta(days=1))])

    assert snapshot.total_blocks == 0


@pytest.mark.parametrize(
    ("completed", "expected"),
    [
        (0, PerformanceLevel.POOR),
        (2, PerformanceLevel.POOR),
        (3, PerformanceLevel.FAIR),
        (6, PerformanceLevel.GOOD),
        (8, PerformanceLevel.EXCELLENT),
        (10, PerformanceLevel.EXCELLENT),
    ],
)
def test_performance_level_bands(completed, expected) -> None:
    snapshot = ProgressSnapshot(date=DAY, total_blocks=10, completed_blocks=completed)

    assert snapshot.performance_level == expected


def test_counter_errors_flag_inconsistent_counts() -> None:
    snapshot = ProgressSnapshot(date=DAY, total_blocks=1, completed_blocks=1, skipped_blocks=1)

    assert "sum of block statuses cannot exceed total blocks" in snapshot.counter_errors()


def test_week_rollup_ignores_days_without_blocks() -> None:
    monday = date(2024, 1, 1)
    progress = {
        monday: ProgressSnapshot(date=monday, total_blocks=4, completed_blocks=3, skipped_blocks=1, total_planned_minutes=240, completed_minutes=180),
        monday + timedelta(days=2): ProgressSnapshot(date=monday + timedelta(days=2), total_blocks=2, completed_blocks=0, total_planned_minutes=60),
        monday + timedelta(days=3): ProgressSnapshot(date=monday + timedelta(days=3)),
    }

    stats = aggregate_week(monday, progress)

    assert stats.week_end == date(2024, 1, 7)
    assert stats.days_with_data == 2
    assert stats.average_completion == pytest.approx(0.375)
    assert stats.good_days == 1
    assert stats.completed_days == 1
    assert stats.total_blocks == 6
    assert stats.completed_minutes == 180
