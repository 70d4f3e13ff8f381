"""
Insight generation.

Detects behavioural patterns in a habit's check-in history and turns them
into actionable messages. Nothing is produced until the history covers the
configured minimum number of distinct days; past that gate every detector
runs independently and fires only when its threshold is strictly exceeded.
"""

import logging
from statistics import mean
from typing import Iterable, List, Optional

from habitpulse.config import InsightConfig
from habitpulse.core.patterns import calculate_day_of_week_stats, calculate_time_of_day_distribution
from habitpulse.models.analytics import DayOfWeekStats, Insight, TimeDistribution
from habitpulse.models.checkin import CheckIn
from habitpulse.models.enums import ConfidenceLevel, InsightType
from habitpulse.models.habit import Schedule
from habitpulse.utils.datetime_utils import DateLike, format_hour, localize, to_date_key

logger = logging.getLogger(__name__)

# float noise must not push a value sitting exactly on a threshold over it
_PRECISION = 9


def _strength(value: float) -> float:
    return round(value, _PRECISION)


class InsightGenerator:
    """
    Pattern detectors over one habit's history.

    Detectors:
    - day-of-week: spread between the best and worst weekday rates
    - time-of-day: share of completions in the busiest hour
    - weekend-behavior: weekend vs weekday average rate
    - timing-impact: share of completions made before noon
    """

    def __init__(self, config: Optional[InsightConfig] = None, tz_name: Optional[str] = None):
        self.config = config or InsightConfig()
        self.tz_name = tz_name

    def generate_insights(self, check_ins: Iterable[CheckIn], schedule: Optional[Schedule] = None,
                          start: Optional[DateLike] = None,
                          reference: Optional[DateLike] = None) -> List[Insight]:
        """All insights that apply, or [] when the history is too short."""
        check_ins = list(check_ins)
        distinct_days = len({check_in.date_key for check_in in check_ins})
        if distinct_days < self.config.min_days:
            logger.debug(f"insufficient data for insights: {distinct_days}/{self.config.min_days} days")
            return []

        reference_key = to_date_key(reference) if reference is not None else max(c.date_key for c in check_ins)
        stats = calculate_day_of_week_stats(check_ins, schedule, start=start, end=reference_key)
        distribution = calculate_time_of_day_distribution(check_ins, self.tz_name)

        candidates = [
            self.detect_day_of_week_pattern(stats, distinct_days, reference_key),
            self.detect_time_of_day_pattern(distribution, distinct_days, reference_key),
            self.detect_weekend_behavior(stats, distinct_days, reference_key),
            self.detect_early_day_correlation(check_ins, reference_key),
        ]
        insights = [insight for insight in candidates if insight is not None]
        logger.debug(f"{len(insights)} insights from {distinct_days} days of history")
        return insights

    # ===== DETECTORS =====

    def detect_day_of_week_pattern(self, stats: DayOfWeekStats, data_points: int,
                                   reference_key: str = "") -> Optional[Insight]:
        if len(stats.scheduled_days()) < 2:
            return None

        best, worst = stats.best_day, stats.worst_day
        best_rate = stats[best].completion_rate
        worst_rate = stats[worst].completion_rate
        variance = _strength(best_rate - worst_rate)
        if variance <= self.config.day_variance_threshold:
            return None

        return Insight(
            id=f"day-pattern-{reference_key}",
            type=InsightType.DAY_OF_WEEK_PATTERN,
            message=(
                f"You complete this habit {best_rate:.0f}% of the time on {best.label}s "
                f"but only {worst_rate:.0f}% on {worst.label}s."
            ),
            actionable=True,
            recommendation=(
                f"Consider scheduling important tasks on {best.label}s when you're most consistent, "
                f"and add extra reminders on {worst.label}s."
            ),
            confidence=self.calculate_confidence_level(data_points, variance),
            data_support=data_points,
        )

    def detect_time_of_day_pattern(self, distribution: TimeDistribution, data_points: int,
                                   reference_key: str = "") -> Optional[Insight]:
        total = distribution.total_completions
        if total == 0 or not distribution.peak_hours:
            return None

        peak = distribution.peak_hours[0]
        share = _strength(distribution.hourly_distribution[peak] / total * 100)
        if share <= self.config.peak_hour_threshold:
            return None

        return Insight(
            id=f"time-pattern-{reference_key}",
            type=InsightType.TIME_OF_DAY_PATTERN,
            message=(
                f"You complete this habit most often around {format_hour(peak)}, "
                f"accounting for {share:.0f}% of your completions."
            ),
            actionable=True,
            recommendation=f"Set your reminders for {format_hour((peak - 1) % 24)} to align with your natural rhythm.",
            confidence=self.calculate_confidence_level(data_points, share),
            data_support=data_points,
        )

    def detect_weekend_behavior(self, stats: DayOfWeekStats, data_points: int,
                                reference_key: str = "") -> Optional[Insight]:
        scheduled = stats.scheduled_days()
        weekday_rates = [stats[day].completion_rate for day in scheduled if not day.is_weekend]
        weekend_rates = [stats[day].completion_rate for day in scheduled if day.is_weekend]
        if not weekday_rates or not weekend_rates:
            return None

        weekday_avg = mean(weekday_rates)
        weekend_avg = mean(weekend_rates)
        difference = _strength(abs(weekend_avg - weekday_avg))
        if difference <= self.config.weekend_diff_threshold:
            return None

        if weekend_avg > weekday_avg:
            better, worse, better_rate, worse_rate = "weekends", "weekdays", weekend_avg, weekday_avg
        else:
            better, worse, better_rate, worse_rate = "weekdays", "weekends", weekday_avg, weekend_avg

        return Insight(
            id=f"weekend-pattern-{reference_key}",
            type=InsightType.WEEKEND_BEHAVIOR,
            message=(
                f"Your completion rate is {difference:.0f} points higher on {better} "
                f"({better_rate:.0f}%) compared to {worse} ({worse_rate:.0f}%)."
            ),
            actionable=True,
            recommendation=f"Focus extra attention on {worse} by setting additional reminders or adjusting your routine.",
            confidence=self.calculate_confidence_level(data_points, difference),
            data_support=data_points,
        )

    def detect_early_day_correlation(self, check_ins: Iterable[CheckIn],
                                     reference_key: str = "") -> Optional[Insight]:
        timestamps = [c.completed_at for c in check_ins if c.is_done and c.completed_at is not None]
        if len(timestamps) < self.config.early_day_min_completions:
            return None

        if self.tz_name:
            timestamps = [localize(ts, self.tz_name) for ts in timestamps]
        early = sum(1 for ts in timestamps if ts.hour < 12)
        share = _strength(early / len(timestamps) * 100)
        if share <= self.config.early_day_threshold:
            return None

        return Insight(
            id=f"timing-impact-{reference_key}",
            type=InsightType.TIMING_IMPACT,
            message=(
                f"You complete this habit {share:.0f}% of the time before noon, "
                f"suggesting morning completion works best for you."
            ),
            actionable=True,
            recommendation="Try to complete this habit in the morning when you're most likely to succeed.",
            confidence=self.calculate_confidence_level(len(timestamps), share),
            data_support=len(timestamps),
        )

    @staticmethod
    def calculate_confidence_level(data_points: int, pattern_strength: float) -> ConfidenceLevel:
        if data_points >= 56 and pattern_strength >= 30:
            return ConfidenceLevel.HIGH
        if data_points >= 28 and pattern_strength >= 20:
            return ConfidenceLevel.MEDIUM
        return ConfidenceLevel.LOW


def generate_insights(check_ins: Iterable[CheckIn], schedule: Optional[Schedule] = None,
                      start: Optional[DateLike] = None, reference: Optional[DateLike] = None,
                      config: Optional[InsightConfig] = None) -> List[Insight]:
    return InsightGenerator(config).generate_insights(check_ins, schedule, start=start, reference=reference)
