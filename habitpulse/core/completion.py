"""Completion rate: distinct `done` days over the inclusive day count of a range."""

from typing import Iterable, Optional, Set

from habitpulse.models.checkin import CheckIn
from habitpulse.utils.datetime_utils import DateLike, to_date


def total_days_between(start: DateLike, end: DateLike) -> int:
    """Inclusive day count; 0 when the range is empty."""
    return max((to_date(end) - to_date(start)).days + 1, 0)


def completed_date_keys(check_ins: Iterable[CheckIn], start: Optional[DateLike] = None,
                        end: Optional[DateLike] = None) -> Set[str]:
    first = to_date(start) if start is not None else None
    last = to_date(end) if end is not None else None

    keys = set()
    for check_in in check_ins:
        if not check_in.is_done:
            continue
        day = check_in.day
        if first is not None and day < first:
            continue
        if last is not None and day > last:
            continue
        keys.add(check_in.date_key)
    return keys


def rate_from_counts(completed: int, total: int) -> float:
    if total <= 0:
        return 0.0
    if completed >= total:
        return 100.0
    return round(completed / total * 100, 2)


def completion_rate(check_ins: Iterable[CheckIn], start_date: DateLike, end_date_key: DateLike) -> float:
    """Percentage (0-100, two decimals) of days in [start, end] with a `done` record."""
    total = total_days_between(start_date, end_date_key)
    completed = len(completed_date_keys(check_ins, start_date, end_date_key))
    return rate_from_counts(completed, total)
