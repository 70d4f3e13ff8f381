# models/enums.py

from enum import Enum


class CheckInStatus(Enum):
    """Status of a date for one habit; SKIP means there is no record."""
    SKIP = "skip"
    DONE = "done"
    NOT_DONE = "not_done"


_STATUS_CYCLE = {
    CheckInStatus.SKIP: CheckInStatus.DONE,
    CheckInStatus.DONE: CheckInStatus.NOT_DONE,
    CheckInStatus.NOT_DONE: CheckInStatus.SKIP,
}


def next_status(status: CheckInStatus) -> CheckInStatus:
    """skip -> done -> not_done -> skip"""
    return _STATUS_CYCLE[status]


class TrackingMode(Enum):
    SIMPLE = "simple"
    COUNT = "count"
    TIME = "time"


class Weekday(Enum):
    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"

    @classmethod
    def from_date(cls, value) -> "Weekday":
        return list(cls)[value.weekday()]

    @property
    def is_weekend(self) -> bool:
        return self in (Weekday.SATURDAY, Weekday.SUNDAY)

    @property
    def label(self) -> str:
        return self.value.capitalize()


class InsightType(Enum):
    DAY_OF_WEEK_PATTERN = "day-of-week-pattern"
    TIME_OF_DAY_PATTERN = "time-of-day-pattern"
    WEEKEND_BEHAVIOR = "weekend-behavior"
    TIMING_IMPACT = "timing-impact"


class ConfidenceLevel(Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class TrendDirection(Enum):
    UP = "up"
    DOWN = "down"
    STABLE = "stable"


class TimePeriod(Enum):
    FOUR_WEEKS = "4W"
    THREE_MONTHS = "3M"
    SIX_MONTHS = "6M"
    ONE_YEAR = "1Y"


class MutationKind(Enum):
    """Actions the UI can apply to one date of a habit."""
    CHECK_IN = "check-in"
    UNDO = "undo"
    TOGGLE_STATUS = "toggle-status"
    UPDATE_PROGRESS = "update-progress"
