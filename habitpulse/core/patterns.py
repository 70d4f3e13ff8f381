"""
Intermediate aggregates for insight detection.

- Per-weekday completion rates over the scheduled days of a date range
- Completion counts per hour of day, with peak hours
"""

import logging
from typing import Dict, Iterable, List, Optional

from habitpulse.models.analytics import DayOfWeekStats, DayStats, TimeDistribution
from habitpulse.models.checkin import CheckIn
from habitpulse.models.enums import Weekday
from habitpulse.models.habit import Daily, Schedule, is_scheduled
from habitpulse.utils.datetime_utils import DateLike, iter_dates, localize, to_date

logger = logging.getLogger(__name__)

PEAK_HOURS_LIMIT = 3


def calculate_day_of_week_stats(check_ins: Iterable[CheckIn], schedule: Optional[Schedule] = None,
                                start: Optional[DateLike] = None,
                                end: Optional[DateLike] = None) -> DayOfWeekStats:
    """Completion rate per weekday.

    Every scheduled calendar day between `start` and `end` (by default the
    first and last recorded days) counts once towards its weekday; a `done`
    record on that day counts as a completion.
    """
    schedule = schedule or Daily()
    check_ins = list(check_ins)
    counters = {day: {"completed": 0, "scheduled": 0} for day in Weekday}

    if check_ins or (start is not None and end is not None):
        recorded = sorted(check_in.day for check_in in check_ins)
        first = to_date(start) if start is not None else recorded[0]
        last = to_date(end) if end is not None else recorded[-1]
        done_days = {check_in.day for check_in in check_ins if check_in.is_done}

        for day in iter_dates(first, last):
            if not is_scheduled(schedule, day):
                continue
            weekday = Weekday.from_date(day)
            counters[weekday]["scheduled"] += 1
            if day in done_days:
                counters[weekday]["completed"] += 1

    days: Dict[Weekday, DayStats] = {}
    for weekday, counts in counters.items():
        scheduled = counts["scheduled"]
        rate = counts["completed"] / scheduled * 100 if scheduled else 0.0
        days[weekday] = DayStats(
            completion_rate=rate,
            total_completions=counts["completed"],
            total_scheduled=scheduled,
        )

    best_day = worst_day = None
    highest, lowest = -1.0, 101.0
    for weekday in Weekday:
        stats = days[weekday]
        if stats.total_scheduled == 0:
            continue
        if stats.completion_rate > highest:
            highest, best_day = stats.completion_rate, weekday
        if stats.completion_rate < lowest:
            lowest, worst_day = stats.completion_rate, weekday

    return DayOfWeekStats(days=days, best_day=best_day, worst_day=worst_day)


def calculate_time_of_day_distribution(check_ins: Iterable[CheckIn],
                                       tz_name: Optional[str] = None) -> TimeDistribution:
    """Count `done` completions by hour of their timestamp.

    Timestamps are read in `tz_name` when given, otherwise as stored.
    """
    hourly = {hour: 0 for hour in range(24)}
    for check_in in check_ins:
        if not check_in.is_done or check_in.completed_at is None:
            continue
        completed_at = check_in.completed_at
        if tz_name:
            completed_at = localize(completed_at, tz_name)
        hourly[completed_at.hour] += 1

    ranked = sorted((hour for hour in hourly if hourly[hour] > 0), key=lambda hour: -hourly[hour])
    peak_hours = ranked[:PEAK_HOURS_LIMIT]

    reminder_times: List[int] = []
    for hour in peak_hours:
        reminder = (hour - 1) % 24
        if reminder not in reminder_times:
            reminder_times.append(reminder)

    return TimeDistribution(
        hourly_distribution=hourly,
        peak_hours=peak_hours,
        optimal_reminder_times=reminder_times,
    )
