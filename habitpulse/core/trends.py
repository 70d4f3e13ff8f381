"""Trend and month-over-month comparison over a habit's history."""

import calendar
import logging
from datetime import date, timedelta
from typing import Iterable, Optional

from habitpulse.core.completion import completion_rate, total_days_between
from habitpulse.models.analytics import DataPoint, MonthComparison, MonthStats, TrendData
from habitpulse.models.checkin import CheckIn
from habitpulse.models.enums import TimePeriod, TrendDirection
from habitpulse.utils.datetime_utils import DateLike, iter_dates, to_date, to_date_key

logger = logging.getLogger(__name__)

# records needed in the current window before a trend is reported
MINIMUM_DATA_POINTS = {
    TimePeriod.FOUR_WEEKS: 7,
    TimePeriod.THREE_MONTHS: 14,
    TimePeriod.SIX_MONTHS: 30,
    TimePeriod.ONE_YEAR: 60,
}

STABLE_CHANGE_LIMIT = 5
SIGNIFICANT_MONTH_CHANGE = 20


def subtract_months(day: date, months: int) -> date:
    month_index = day.year * 12 + day.month - 1 - months
    year, month = divmod(month_index, 12)
    month += 1
    return date(year, month, min(day.day, calendar.monthrange(year, month)[1]))


def period_start(reference: date, period: TimePeriod, periods_back: int = 1) -> date:
    if period == TimePeriod.FOUR_WEEKS:
        return reference - timedelta(weeks=4 * periods_back)
    months = {TimePeriod.THREE_MONTHS: 3, TimePeriod.SIX_MONTHS: 6, TimePeriod.ONE_YEAR: 12}[period]
    return subtract_months(reference, months * periods_back)


def percentage_change(current: float, previous: float) -> float:
    if previous == 0:
        return 100.0 if current > 0 else 0.0
    return (current - previous) / previous * 100


def calculate_trend(check_ins: Iterable[CheckIn], period: TimePeriod,
                    reference: DateLike) -> Optional[TrendData]:
    """Completion trend for the period ending on `reference`, None if data is too thin."""
    period = TimePeriod(period)
    check_ins = list(check_ins)
    end = to_date(reference)
    start = period_start(end, period)
    previous_start = period_start(end, period, periods_back=2)

    current = [c for c in check_ins if start <= c.day <= end]
    if len(current) < MINIMUM_DATA_POINTS[period]:
        logger.debug(f"not enough data for {period.value} trend: {len(current)} records")
        return None

    previous_end = start - timedelta(days=1)
    previous = [c for c in check_ins if previous_start <= c.day <= previous_end]

    rate = completion_rate(current, start, end)
    previous_rate = completion_rate(previous, previous_start, previous_end) if previous else 0.0
    change = percentage_change(rate, previous_rate)

    direction = TrendDirection.STABLE
    if abs(change) > STABLE_CHANGE_LIMIT:
        direction = TrendDirection.UP if change > 0 else TrendDirection.DOWN

    progress_values = [c.progress_value for c in current if c.progress_value is not None]
    average_progress = None
    if progress_values:
        average_progress = sum(progress_values) / total_days_between(start, end)

    done_days = {c.date_key for c in check_ins if c.is_done}
    data_points = [
        DataPoint(date=to_date_key(day), value=1 if to_date_key(day) in done_days else 0)
        for day in iter_dates(start, end)
    ]

    return TrendData(
        period=period,
        completion_rate=rate,
        previous_rate=previous_rate,
        percentage_change=change,
        direction=direction,
        data_points=data_points,
        average_progress=average_progress,
    )


def _month_stats(check_ins) -> MonthStats:
    scheduled = len(check_ins)
    completed = sum(1 for c in check_ins if c.is_done)
    return MonthStats(
        completion_rate=completed / scheduled * 100 if scheduled else 0.0,
        total_completions=completed,
        total_scheduled=scheduled,
    )


def calculate_month_comparison(check_ins: Iterable[CheckIn], reference: DateLike) -> MonthComparison:
    """Reference month against the month before it, over recorded days."""
    check_ins = list(check_ins)
    end = to_date(reference)
    previous = subtract_months(end, 1)

    current_month = _month_stats([c for c in check_ins if (c.day.year, c.day.month) == (end.year, end.month)])
    previous_month = _month_stats(
        [c for c in check_ins if (c.day.year, c.day.month) == (previous.year, previous.month)]
    )
    change = percentage_change(current_month.completion_rate, previous_month.completion_rate)

    return MonthComparison(
        current_month=current_month,
        previous_month=previous_month,
        percentage_change=change,
        is_significant=abs(change) > SIGNIFICANT_MONTH_CHANGE,
    )
