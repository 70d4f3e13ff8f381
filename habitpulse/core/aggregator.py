import logging
from datetime import datetime
from typing import Iterable, Optional

from habitpulse.core.completion import completed_date_keys, rate_from_counts, total_days_between
from habitpulse.core.streaks import current_streak, longest_streak
from habitpulse.models.analytics import Analytics
from habitpulse.models.checkin import CheckIn
from habitpulse.utils.datetime_utils import Clock, DateLike, today_key, utc_now

logger = logging.getLogger(__name__)


def calculate_analytics(check_ins: Iterable[CheckIn], start_date: DateLike,
                        reference_date_key: Optional[str] = None, *,
                        clock: Optional[Clock] = None, tz_name: str = "UTC",
                        computed_at: Optional[datetime] = None) -> Analytics:
    """Full analytics summary for one habit's log.

    Pure: reads nothing but its arguments. When no reference date is given,
    "today" is taken from `clock` in the `tz_name` timezone.
    """
    check_ins = list(check_ins)
    reference = reference_date_key or today_key(clock, tz_name)

    total = total_days_between(start_date, reference)
    completed = len(completed_date_keys(check_ins, start_date, reference))

    analytics = Analytics(
        current_streak=current_streak(check_ins, reference),
        longest_streak=longest_streak(check_ins),
        completion_rate=rate_from_counts(completed, total),
        total_days=total,
        completed_days=completed,
        last_computed=computed_at or (clock or utc_now)(),
    )
    logger.debug(
        f"analytics up to {reference}: streak={analytics.current_streak} "
        f"best={analytics.longest_streak} rate={analytics.completion_rate}"
    )
    return analytics
