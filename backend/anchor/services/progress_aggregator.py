"""Daily and weekly progress aggregation over time blocks."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable, Mapping, Optional

from anchor.core.clock import local_day, utcnow
from anchor.db.models.daily_progress import DailyProgress
from anchor.db.models.time_block import TimeBlock
from anchor.services.block_status import BlockStatus
from anchor.services.progress_metrics import ProgressMetrics


@dataclass(frozen=True)
class ProgressSnapshot(ProgressMetrics):
    """Counters for one day, computed from its blocks and nothing else."""

    date: date
    total_blocks: int = 0
    completed_blocks: int = 0
    skipped_blocks: int = 0
    in_progress_blocks: int = 0
    total_planned_minutes: int = 0
    completed_minutes: int = 0


@dataclass(frozen=True)
class WeeklyStats:
    week_start: date
    week_end: date
    days_with_data: int
    good_days: int
    completed_days: int
    average_completion: float
    total_blocks: int
    completed_blocks: int
    skipped_blocks: int
    total_planned_minutes: int
    completed_minutes: int


def _block_day(block: TimeBlock) -> date:
    return block.scheduled_day or local_day(block.start_time)


def aggregate(day: date, blocks: Iterable[TimeBlock]) -> ProgressSnapshot:
    """Partition the day's blocks by status and total their durations.

    Blocks scheduled on other days are ignored.
    """
    total = completed = skipped = in_progress = 0
    planned_minutes = completed_minutes = 0
    for block in blocks:
        if _block_day(block) != day:
            continue
        total += 1
        minutes = block.duration_minutes
        planned_minutes += minutes
        status = block.status
        if status == BlockStatus.COMPLETED:
            completed += 1
            completed_minutes += minutes
        elif status == BlockStatus.SKIPPED:
            skipped += 1
        elif status == BlockStatus.IN_PROGRESS:
            in_progress += 1

    return ProgressSnapshot(
        date=day,
        total_blocks=total,
        completed_blocks=completed,
        skipped_blocks=skipped,
        in_progress_blocks=in_progress,
        total_planned_minutes=planned_minutes,
        completed_minutes=completed_minutes,
    )


def apply_snapshot(progress: DailyProgress, snapshot: ProgressSnapshot) -> DailyProgress:
    """Overwrite the derived counters of a stored record, keeping rating, notes and viewed flag."""
    progress.total_blocks = snapshot.total_blocks
    progress.completed_blocks = snapshot.completed_blocks
    progress.skipped_blocks = snapshot.skipped_blocks
    progress.in_progress_blocks = snapshot.in_progress_blocks
    progress.total_planned_minutes = snapshot.total_planned_minutes
    progress.completed_minutes = snapshot.completed_minutes
    progress.updated_at = utcnow()
    return progress


def aggregate_week(week_start: date, progress_by_date: Mapping[date, ProgressMetrics]) -> WeeklyStats:
    """Roll up the seven days starting at ``week_start``.

    Days without blocks are left out of the completion average; a "good day"
    reaches the good-day completion threshold.
    """
    days = [week_start + timedelta(days=offset) for offset in range(7)]
    with_data = [progress_by_date[day] for day in days if _has_data(progress_by_date.get(day))]

    average = sum(entry.completion_percentage for entry in with_data) / len(with_data) if with_data else 0.0
    return WeeklyStats(
        week_start=week_start,
        week_end=days[-1],
        days_with_data=len(with_data),
        good_days=sum(1 for entry in with_data if entry.is_good_day),
        completed_days=sum(1 for entry in with_data if entry.is_day_complete),
        average_completion=average,
        total_blocks=sum(entry.total_blocks for entry in with_data),
        completed_blocks=sum(entry.completed_blocks for entry in with_data),
        skipped_blocks=sum(entry.skipped_blocks for entry in with_data),
        total_planned_minutes=sum(entry.total_planned_minutes for entry in with_data),
        completed_minutes=sum(entry.completed_minutes for entry in with_data),
    )


def _has_data(entry: Optional[ProgressMetrics]) -> bool:
    return entry is not None and entry.total_blocks > 0
