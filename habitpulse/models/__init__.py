"""
habitpulse - Models Package
Habits, check-ins and the derived analytics records
"""

from .enums import (
    CheckInStatus,
    TrackingMode,
    Weekday,
    InsightType,
    ConfidenceLevel,
    TrendDirection,
    TimePeriod,
    MutationKind,
    next_status
)

from .habit import (
    Daily,
    SpecificDays,
    Schedule,
    Habit,
    is_scheduled,
    schedule_from_frequency,
    schedule_to_frequency
)

from .checkin import (
    CheckIn,
    CheckInLog,
    index_by_date
)

from .analytics import (
    Analytics,
    DayStats,
    DayOfWeekStats,
    TimeDistribution,
    Insight,
    DataPoint,
    TrendData,
    MonthStats,
    MonthComparison
)

__all__ = [
    # Enums
    'CheckInStatus',
    'TrackingMode',
    'Weekday',
    'InsightType',
    'ConfidenceLevel',
    'TrendDirection',
    'TimePeriod',
    'MutationKind',
    'next_status',

    # Habit models
    'Daily',
    'SpecificDays',
    'Schedule',
    'Habit',
    'is_scheduled',
    'schedule_from_frequency',
    'schedule_to_frequency',

    # Check-in models
    'CheckIn',
    'CheckInLog',
    'index_by_date',

    # Analytics models
    'Analytics',
    'DayStats',
    'DayOfWeekStats',
    'TimeDistribution',
    'Insight',
    'DataPoint',
    'TrendData',
    'MonthStats',
    'MonthComparison'
]
