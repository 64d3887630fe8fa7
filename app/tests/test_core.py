from __future__ import annotations

from datetime import date, datetime

import pytest

from app.core import Interval, expand_occurrences, intersects_any, merge_intervals, overlaps, parse_hhmm, weekday_index
from app.errors import ValidationError


def _dt(day: int, hour: int, minute: int = 0, month: int = 3) -> datetime:
    return datetime(2026, month, day, hour, minute)


def test_abutting_intervals_do_not_overlap() -> None:
    assert not overlaps(_dt(2, 9), _dt(2, 10), _dt(2, 10), _dt(2, 11))
    assert overlaps(_dt(2, 9), _dt(2, 10, 1), _dt(2, 10), _dt(2, 11))


def test_merge_intervals_sorts_and_coalesces_but_keeps_abutting_apart() -> None:
    merged = merge_intervals([
        Interval(_dt(2, 13), _dt(2, 14)),
        Interval(_dt(2, 9), _dt(2, 10)),
        Interval(_dt(2, 9, 30), _dt(2, 11)),
        Interval(_dt(2, 11), _dt(2, 12)),
    ])

    assert merged == [
        Interval(_dt(2, 9), _dt(2, 11)),
        Interval(_dt(2, 11), _dt(2, 12)),
        Interval(_dt(2, 13), _dt(2, 14)),
    ]


def test_intersects_any() -> None:
    busy = merge_intervals([Interval(_dt(2, 10), _dt(2, 11)), Interval(_dt(2, 14), _dt(2, 15))])

    assert intersects_any(Interval(_dt(2, 10, 30), _dt(2, 11, 30)), busy)
    assert not intersects_any(Interval(_dt(2, 11), _dt(2, 14)), busy)


def test_parse_hhmm_rejects_garbage() -> None:
    assert parse_hhmm("09:30").hour == 9
    with pytest.raises(ValidationError):
        parse_hhmm("9h30")


def test_weekday_index_is_sunday_based() -> None:
    assert weekday_index(date(2026, 3, 1)) == 0  # Sunday
    assert weekday_index(date(2026, 3, 2)) == 1  # Monday
    assert weekday_index(date(2026, 3, 7)) == 6  # Saturday


def test_one_off_block_only_when_in_window() -> None:
    start, end = _dt(2, 12), _dt(2, 13)

    assert expand_occurrences(start, end, _dt(2, 0), _dt(3, 0)) == [Interval(start, end)]
    assert expand_occurrences(start, end, _dt(3, 0), _dt(4, 0)) == []


def test_daily_block_repeats_on_later_dates_only() -> None:
    start, end = _dt(2, 12), _dt(2, 13)

    assert expand_occurrences(start, end, _dt(20, 0), _dt(21, 0), "daily") == [Interval(_dt(20, 12), _dt(20, 13))]
    assert expand_occurrences(start, end, _dt(1, 0), _dt(2, 0), "daily") == []


def test_weekly_block_hits_same_weekday() -> None:
    start, end = _dt(2, 12), _dt(2, 13)  # Monday

    assert expand_occurrences(start, end, _dt(9, 0), _dt(10, 0), "weekly") == [Interval(_dt(9, 12), _dt(9, 13))]
    assert expand_occurrences(start, end, _dt(10, 0), _dt(11, 0), "weekly") == []


def test_monthly_block_skips_months_without_the_day() -> None:
    start, end = datetime(2026, 1, 31, 12), datetime(2026, 1, 31, 13)

    feb = expand_occurrences(start, end, datetime(2026, 2, 1), datetime(2026, 3, 1), "monthly")
    march = expand_occurrences(start, end, datetime(2026, 3, 31), datetime(2026, 4, 1), "monthly")

    assert feb == []
    assert march == [Interval(datetime(2026, 3, 31, 12), datetime(2026, 3, 31, 13))]


def test_recurring_end_date_is_exclusive() -> None:
    start, end = _dt(2, 12), _dt(2, 13)

    last_day = expand_occurrences(start, end, _dt(9, 0), _dt(10, 0), "daily", recurring_end_date=date(2026, 3, 10))
    end_day = expand_occurrences(start, end, _dt(10, 0), _dt(11, 0), "daily", recurring_end_date=date(2026, 3, 10))

    assert len(last_day) == 1
    assert end_day == []


def test_overnight_daily_block_spills_into_next_day() -> None:
    start, end = _dt(2, 22), _dt(3, 2)

    found = expand_occurrences(start, end, _dt(5, 0), _dt(6, 0), "daily")

    assert Interval(_dt(4, 22), _dt(5, 2)) in found
    assert Interval(_dt(5, 22), _dt(6, 2)) in found


def test_invalid_blocks_are_rejected() -> None:
    with pytest.raises(ValidationError):
        expand_occurrences(_dt(2, 13), _dt(2, 12), _dt(2, 0), _dt(3, 0))
    with pytest.raises(ValidationError):
        expand_occurrences(_dt(2, 12), _dt(2, 13), _dt(3, 0), _dt(4, 0), "hourly")
