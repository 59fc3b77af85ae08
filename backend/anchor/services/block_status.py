"""Block status state machine.

States: not_started -> in_progress -> completed | skipped. Completed and skipped
are terminal for single-block edits; only a day-wide reset sends them back to
not_started.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import FrozenSet


class BlockStatus(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    SKIPPED = "skipped"

    @property
    def is_terminal(self) -> bool:
        return self in (BlockStatus.COMPLETED, BlockStatus.SKIPPED)

    @property
    def sort_priority(self) -> int:
        """Higher sorts first within the same start time."""
        return _SORT_PRIORITY[self]

    @property
    def available_transitions(self) -> FrozenSet["BlockStatus"]:
        return _TRANSITIONS[self]


_SORT_PRIORITY = {
    BlockStatus.IN_PROGRESS: 3,
    BlockStatus.NOT_STARTED: 2,
    BlockStatus.COMPLETED: 1,
    BlockStatus.SKIPPED: 0,
}

# Terminal states may swap with each other (correcting a mis-tap) but never
# step back to not_started or in_progress through a single-block edit.
_TRANSITIONS = {
    BlockStatus.NOT_STARTED: frozenset({BlockStatus.IN_PROGRESS, BlockStatus.COMPLETED, BlockStatus.SKIPPED}),
    BlockStatus.IN_PROGRESS: frozenset({BlockStatus.COMPLETED, BlockStatus.SKIPPED}),
    BlockStatus.COMPLETED: frozenset({BlockStatus.SKIPPED}),
    BlockStatus.SKIPPED: frozenset({BlockStatus.COMPLETED}),
}


@dataclass(frozen=True)
class TransitionDecision:
    allowed: bool
    target: BlockStatus
    reason: str | None = None


def decide_transition(
    current: BlockStatus,
    target: BlockStatus,
    *,
    start_time: datetime,
    end_time: datetime,
    now: datetime,
    force: bool = False,
) -> TransitionDecision:
    """Decide whether ``current -> target`` is a legal single-block transition.

    ``force`` lets operator tooling start a block outside its interval; it does
    not unlock any other edge.
    """
    if current == target:
        return TransitionDecision(False, target, "status unchanged")
    if target not in current.available_transitions:
        if target == BlockStatus.NOT_STARTED:
            return TransitionDecision(False, target, "only a day reset can return a block to not_started")
        return TransitionDecision(False, target, f"cannot move from {current.value} to {target.value}")
    if target == BlockStatus.IN_PROGRESS and not force and not (start_time <= now < end_time):
        return TransitionDecision(False, target, "block can only be started while its interval is running")
    return TransitionDecision(True, target)


def automatic_status(current: BlockStatus, *, start_time: datetime, end_time: datetime, now: datetime) -> BlockStatus:
    """Status implied by the wall clock; never overrides a terminal or running block."""
    if current == BlockStatus.NOT_STARTED and start_time <= now < end_time:
        return BlockStatus.IN_PROGRESS
    return current
