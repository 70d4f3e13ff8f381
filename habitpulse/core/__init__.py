"""
Core analytics for habitpulse: streaks, completion rates, the analytics
summary, weekday/hour aggregates, trends and insights. Everything here is
pure and never raises for a well-formed check-in log.
"""

from .streaks import current_streak, longest_streak
from .completion import completion_rate, completed_date_keys, total_days_between
from .aggregator import calculate_analytics
from .patterns import calculate_day_of_week_stats, calculate_time_of_day_distribution
from .trends import calculate_trend, calculate_month_comparison
from .insights import InsightGenerator, generate_insights

__all__ = [
    'current_streak',
    'longest_streak',
    'completion_rate',
    'completed_date_keys',
    'total_days_between',
    'calculate_analytics',
    'calculate_day_of_week_stats',
    'calculate_time_of_day_distribution',
    'calculate_trend',
    'calculate_month_comparison',
    'InsightGenerator',
    'generate_insights'
]
