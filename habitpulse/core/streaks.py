"""
Streak calculation over a habit's check-in log.

Date keys are treated as calendar dates. Only `done` records extend a
streak; `not_done` records and days without a record both end it.
"""

import logging
from datetime import timedelta
from typing import Iterable, Set

from habitpulse.models.checkin import CheckIn
from habitpulse.utils.datetime_utils import parse_date_key, to_date_key

logger = logging.getLogger(__name__)


def done_date_keys(check_ins: Iterable[CheckIn]) -> Set[str]:
    return {check_in.date_key for check_in in check_ins if check_in.is_done}


def current_streak(check_ins: Iterable[CheckIn], reference_date_key: str) -> int:
    """Consecutive `done` days ending on the reference date (0 if that day is not done)."""
    done = done_date_keys(check_ins)
    if not done:
        return 0

    streak = 0
    day = parse_date_key(reference_date_key)
    while to_date_key(day) in done:
        streak += 1
        day -= timedelta(days=1)

    logger.debug(f"current streak up to {reference_date_key}: {streak}")
    return streak


def longest_streak(check_ins: Iterable[CheckIn]) -> int:
    """Longest run of calendar-consecutive `done` days anywhere in the log."""
    days = sorted(parse_date_key(key) for key in done_date_keys(check_ins))
    if not days:
        return 0

    best = run = 1
    for previous, day in zip(days, days[1:]):
        if (day - previous).days == 1:
            run += 1
            best = max(best, run)
        else:
            run = 1
    return best
