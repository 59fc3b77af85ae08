"""Performance thresholds and ratios derived from a day's block counts."""
from __future__ import annotations

from enum import Enum
from typing import List

# Lower bound (inclusive) of each level's completion band.
FAIR_THRESHOLD = 0.3
GOOD_THRESHOLD = 0.6
EXCELLENT_THRESHOLD = 0.8
GOOD_DAY_THRESHOLD = 0.7


class PerformanceLevel(str, Enum):
    NONE = "none"
    POOR = "poor"
    FAIR = "fair"
    GOOD = "good"
    EXCELLENT = "excellent"

    @property
    def rank(self) -> int:
        return _RANK[self]

    @classmethod
    def from_completion(cls, completion: float, total_blocks: int) -> "PerformanceLevel":
        if total_blocks == 0:
            return cls.NONE
        if completion >= EXCELLENT_THRESHOLD:
            return cls.EXCELLENT
        if completion >= GOOD_THRESHOLD:
            return cls.GOOD
        if completion >= FAIR_THRESHOLD:
            return cls.FAIR
        return cls.POOR


_RANK = {level: index for index, level in enumerate(PerformanceLevel)}


class ProgressMetrics:
    """Derived ratios shared by the stored DailyProgress row and in-memory snapshots.

    Subclasses provide total_blocks, completed_blocks, skipped_blocks,
    in_progress_blocks, total_planned_minutes and completed_minutes.
    """

    @property
    def not_started_blocks(self) -> int:
        return self.total_blocks - self.completed_blocks - self.skipped_blocks - self.in_progress_blocks

    @property
    def completion_percentage(self) -> float:
        # Block-count based: a 5 minute block weighs the same as a 3 hour one.
        if not self.total_blocks:
            return 0.0
        return self.completed_blocks / self.total_blocks

    @property
    def skip_rate(self) -> float:
        if not self.total_blocks:
            return 0.0
        return self.skipped_blocks / self.total_blocks

    @property
    def time_completion_percentage(self) -> float:
        if not self.total_planned_minutes:
            return 0.0
        return self.completed_minutes / self.total_planned_minutes

    @property
    def is_day_complete(self) -> bool:
        return self.total_blocks > 0 and self.completed_blocks + self.skipped_blocks == self.total_blocks

    @property
    def is_good_day(self) -> bool:
        return self.total_blocks > 0 and self.completion_percentage >= GOOD_DAY_THRESHOLD

    @property
    def performance_level(self) -> PerformanceLevel:
        return PerformanceLevel.from_completion(self.completion_percentage, self.total_blocks)

    def counter_errors(self) -> List[str]:
        errors: List[str] = []
        for name in (
            "total_blocks",
            "completed_blocks",
            "skipped_blocks",
            "in_progress_blocks",
            "total_planned_minutes",
            "completed_minutes",
        ):
            if (getattr(self, name) or 0) < 0:
                errors.append(f"{name} cannot be negative")
        if self.completed_blocks + self.skipped_blocks + self.in_progress_blocks > self.total_blocks:
            errors.append("sum of block statuses cannot exceed total blocks")
        if self.completed_minutes > self.total_planned_minutes:
            errors.append("completed minutes cannot exceed planned minutes")
        return errors
