from __future__ import annotations

from datetime import datetime, timezone
from types import SimpleNamespace
from uuid import uuid4
from zoneinfo import ZoneInfo

from anchor.services.conflict_detector import find_conflicts, has_conflict, intervals_overlap


def _at(hour: int, minute: int = 0, day: int = 1) -> datetime:
    return datetime(2024, 1, day, hour, minute, tzinfo=timezone.utc)


def _block(title: str, start: datetime, end: datetime) -> SimpleNamespace:
    return SimpleNamespace(id=uuid4(), title=title, start_time=start, end_time=end)


def test_overlapping_block_is_reported() -> None:
    focus = _block("Focus", _at(9), _at(10, 30))

    conflicts = find_conflicts(_at(10), _at(10, 15), [focus], tz=timezone.utc)

    assert conflicts == [focus]


def test_overlap_is_symmetric() -> None:
    pairs = [
        ((_at(9), _at(10)), (_at(9, 30), _at(11))),
        ((_at(9), _at(12)), (_at(10), _at(11))),
        ((_at(9), _at(10)), (_at(10), _at(11))),
    ]
    for (s1, e1), (s2, e2) in pairs:
        assert intervals_overlap(s1, e1, s2, e2) == intervals_overlap(s2, e2, s1, e1)


def test_back_to_back_blocks_do_not_conflict() -> None:
    morning = _block("Morning", _at(9), _at(10))

    assert find_conflicts(_at(10), _at(11), [morning], tz=timezone.utc) == []
    assert find_conflicts(_at(8), _at(9), [morning], tz=timezone.utc) == []


def test_blocks_on_other_days_never_conflict() -> None:
    tomorrow = _block("Tomorrow", _at(9, day=2), _at(10, day=2))

    assert has_conflict(_at(9), _at(10), [tomorrow], tz=timezone.utc) is False


def test_excluded_block_is_ignored() -> None:
    editing = _block("Editing", _at(9), _at(10))
    other = _block("Other", _at(10), _at(11))

    conflicts = find_conflicts(_at(9, 30), _at(10, 30), [editing, other], editing.id, tz=timezone.utc)

    assert conflicts == [other]


def test_every_conflict_is_listed_in_input_order() -> None:
    first = _block("First", _at(9), _at(10))
    second = _block("Second", _at(10), _at(11))
    outside = _block("Outside", _at(13), _at(14))

    conflicts = find_conflicts(_at(8), _at(12), [first, outside, second], tz=timezone.utc)

    assert [block.title for block in conflicts] == ["First", "Second"]


def test_day_follows_the_local_timezone() -> None:
    new_york = ZoneInfo("America/New_York")
    # 02:00 UTC on Jan 2 is still Jan 1 in New York.
    late = _block("Late", _at(2, day=2), _at(3, day=2))

    assert has_conflict(_at(2, 30, day=2), _at(2, 45, day=2), [late], tz=new_york) is True
    assert has_conflict(_at(23), _at(23, 30), [late], tz=new_york) is False
