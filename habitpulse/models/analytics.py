# models/analytics.py

from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Any, Dict, List, Optional

from habitpulse.models.enums import ConfidenceLevel, InsightType, TimePeriod, TrendDirection, Weekday
from habitpulse.utils.datetime_utils import utc_now


@dataclass
class Analytics:
    """Derived per-habit summary; always recomputed as a whole."""
    current_streak: int = 0
    longest_streak: int = 0
    completion_rate: float = 0.0  # 0-100, two decimals
    total_days: int = 0
    completed_days: int = 0
    last_computed: datetime = field(default_factory=utc_now, compare=False)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["last_computed"] = self.last_computed.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Analytics":
        last_computed = data.get("last_computed")
        if isinstance(last_computed, str):
            last_computed = datetime.fromisoformat(last_computed)
        return cls(
            current_streak=data.get("current_streak", 0),
            longest_streak=data.get("longest_streak", 0),
            completion_rate=data.get("completion_rate", 0.0),
            total_days=data.get("total_days", 0),
            completed_days=data.get("completed_days", 0),
            last_computed=last_computed or utc_now(),
        )


@dataclass
class DayStats:
    completion_rate: float = 0.0
    total_completions: int = 0
    total_scheduled: int = 0


@dataclass
class DayOfWeekStats:
    days: Dict[Weekday, DayStats]
    best_day: Optional[Weekday] = None
    worst_day: Optional[Weekday] = None

    def __getitem__(self, day: Weekday) -> DayStats:
        return self.days[day]

    def scheduled_days(self) -> List[Weekday]:
        """Weekdays with at least one scheduled occurrence, Monday first."""
        return [day for day in Weekday if self.days[day].total_scheduled > 0]


@dataclass
class TimeDistribution:
    hourly_distribution: Dict[int, int]  # hour 0-23 -> completions
    peak_hours: List[int] = field(default_factory=list)
    optimal_reminder_times: List[int] = field(default_factory=list)

    @property
    def total_completions(self) -> int:
        return sum(self.hourly_distribution.values())


@dataclass
class Insight:
    type: InsightType
    message: str
    actionable: bool = True
    recommendation: Optional[str] = None
    confidence: ConfidenceLevel = ConfidenceLevel.LOW
    data_support: int = 0
    id: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "message": self.message,
            "actionable": self.actionable,
            "recommendation": self.recommendation,
            "confidence": self.confidence.value,
            "data_support": self.data_support,
        }


@dataclass
class DataPoint:
    date: str  # YYYY-MM-DD
    value: int


@dataclass
class TrendData:
    period: TimePeriod
    completion_rate: float
    previous_rate: float
    percentage_change: float
    direction: TrendDirection
    data_points: List[DataPoint] = field(default_factory=list)
    average_progress: Optional[float] = None


@dataclass
class MonthStats:
    completion_rate: float = 0.0
    total_completions: int = 0
    total_scheduled: int = 0


@dataclass
class MonthComparison:
    current_month: MonthStats
    previous_month: MonthStats
    percentage_change: float
    is_significant: bool
