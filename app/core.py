# app/core.py

from datetime import date, datetime, time, timedelta
from typing import Iterable, List, NamedTuple, Optional

from app.errors import ValidationError

RECURRING_PATTERNS = ("daily", "weekly", "monthly")


class Interval(NamedTuple):
    start: datetime
    end: datetime


def overlaps(start_a, end_a, start_b, end_b) -> bool:
    # half-open: [a, b) touching [b, c) is not an overlap
    return start_a < end_b and start_b < end_a


def merge_intervals(intervals: Iterable[Interval]) -> List[Interval]:
    """Sort and coalesce overlapping intervals. Abutting intervals stay separate."""
    merged: List[Interval] = []
    for current in sorted(intervals):
        if merged and current.start < merged[-1].end:
            last = merged[-1]
            merged[-1] = Interval(last.start, max(last.end, current.end))
        else:
            merged.append(current)
    return merged


def intersects_any(candidate: Interval, busy: List[Interval]) -> bool:
    for b in busy:
        if b.start >= candidate.end:
            # busy is sorted, nothing later can overlap
            break
        if overlaps(candidate.start, candidate.end, b.start, b.end):
            return True
    return False


def parse_hhmm(value: str) -> time:
    try:
        hours, minutes = value.split(":")
        return time(int(hours), int(minutes))
    except (ValueError, AttributeError) as e:
        raise ValidationError(f"Invalid time {value!r}, expected HH:MM") from e


def weekday_index(day: date) -> int:
    """0=Sunday ... 6=Saturday."""
    return (day.weekday() + 1) % 7


def _is_occurrence(day: date, base: date, pattern: str) -> bool:
    if pattern == "daily":
        return True
    if pattern == "weekly":
        return (day - base).days % 7 == 0
    if pattern == "monthly":
        # months without the base day have no occurrence
        return day.day == base.day
    raise ValidationError(f"Unknown recurring pattern {pattern!r}")


def expand_occurrences(
    start: datetime,
    end: datetime,
    window_start: datetime,
    window_end: datetime,
    pattern: Optional[str] = None,
    recurring_end_date: Optional[date] = None,
) -> List[Interval]:
    """Occurrences of a (possibly recurring) block that intersect the window.

    Recurrences are anchored on the block's own start date; recurring_end_date
    is exclusive.
    """
    if end <= start:
        raise ValidationError("Blocked time must end after it starts")

    if pattern is None:
        if overlaps(start, end, window_start, window_end):
            return [Interval(start, end)]
        return []

    span = end - start
    base = start.date()
    day = max(base, (window_start - span).date())
    last = window_end.date()

    found: List[Interval] = []
    while day <= last:
        if recurring_end_date is not None and day >= recurring_end_date:
            break
        if _is_occurrence(day, base, pattern):
            occ_start = datetime.combine(day, start.time())
            occ_end = occ_start + span
            if overlaps(occ_start, occ_end, window_start, window_end):
                found.append(Interval(occ_start, occ_end))
        day += timedelta(days=1)
    return found
