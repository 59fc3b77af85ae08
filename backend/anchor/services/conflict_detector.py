"""Interval conflict detection for blocks sharing a calendar day.

Pure functions: no I/O, no mutation, deterministic for a given input.
"""
from __future__ import annotations

from datetime import datetime, tzinfo
from typing import Iterable, List, Optional, Protocol
from uuid import UUID

from anchor.core.clock import local_day


class Interval(Protocol):
    id: UUID
    start_time: datetime
    end_time: datetime


def intervals_overlap(start1: datetime, end1: datetime, start2: datetime, end2: datetime) -> bool:
    """Half-open overlap: back-to-back intervals do not overlap."""
    return start1 < end2 and start2 < end1


def find_conflicts(
    candidate_start: datetime,
    candidate_end: datetime,
    existing_blocks: Iterable[Interval],
    exclude_id: Optional[UUID] = None,
    *,
    tz: tzinfo | None = None,
) -> List[Interval]:
    """Return every existing block on the candidate's day that overlaps it.

    ``exclude_id`` drops the block being edited so it is not compared with its
    own previous interval. Result order follows the input order.
    """
    candidate_day = local_day(candidate_start, tz)
    conflicts: List[Interval] = []
    for block in existing_blocks:
        if exclude_id is not None and block.id == exclude_id:
            continue
        if local_day(block.start_time, tz) != candidate_day:
            continue
        if intervals_overlap(candidate_start, candidate_end, block.start_time, block.end_time):
            conflicts.append(block)
    return conflicts


def has_conflict(
    candidate_start: datetime,
    candidate_end: datetime,
    existing_blocks: Iterable[Interval],
    exclude_id: Optional[UUID] = None,
    *,
    tz: tzinfo | None = None,
) -> bool:
    return bool(find_conflicts(candidate_start, candidate_end, existing_blocks, exclude_id, tz=tz))
