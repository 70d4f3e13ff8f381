# models/habit.py

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, FrozenSet, List, Optional, Union

from habitpulse.exceptions import ValidationError
from habitpulse.models.enums import TrackingMode, Weekday
from habitpulse.utils.datetime_utils import DateLike, to_date
from habitpulse.utils.validators import (
    validate_date_key,
    validate_frequency,
    validate_habit_id,
    validate_habit_name,
    validate_reminder_time,
)

# ===== SCHEDULE =====


@dataclass(frozen=True)
class Daily:
    """Scheduled on every calendar day."""


@dataclass(frozen=True)
class SpecificDays:
    """Scheduled only on the listed weekdays."""
    days: FrozenSet[Weekday]


Schedule = Union[Daily, SpecificDays]


def is_scheduled(schedule: Schedule, day: DateLike) -> bool:
    if isinstance(schedule, Daily):
        return True
    if isinstance(schedule, SpecificDays):
        return Weekday.from_date(to_date(day)) in schedule.days
    raise TypeError(f"Unknown schedule: {schedule!r}")


def schedule_from_frequency(frequency: Union[str, List[str]]) -> Schedule:
    """Build a schedule from the stored form: "daily" or a list of weekday names."""
    frequency = validate_frequency(frequency)
    if frequency == "daily":
        return Daily()
    return SpecificDays(frozenset(Weekday(day) for day in frequency))


def schedule_to_frequency(schedule: Schedule) -> Union[str, List[str]]:
    if isinstance(schedule, Daily):
        return "daily"
    order = list(Weekday)
    return [day.value for day in sorted(schedule.days, key=order.index)]


# ===== HABIT =====


@dataclass
class Habit:
    """A recurring habit; start_date cannot change once set."""
    habit_id: str
    name: str
    start_date: str  # YYYY-MM-DD
    schedule: Schedule = field(default_factory=Daily)
    tracking_mode: TrackingMode = TrackingMode.SIMPLE
    target_value: Optional[float] = None
    target_unit: Optional[str] = None
    reminder_time: Optional[str] = None
    is_active: bool = True

    def __post_init__(self):
        validate_habit_id(self.habit_id)
        self.name = validate_habit_name(self.name)
        validate_date_key(self.start_date)
        self.reminder_time = validate_reminder_time(self.reminder_time)

        if not isinstance(self.tracking_mode, TrackingMode):
            self.tracking_mode = TrackingMode(self.tracking_mode)

        if self.target_value is not None and self.target_value <= 0:
            raise ValidationError("target_value must be a positive number")

    def __setattr__(self, name, value):
        if name == "start_date" and "start_date" in self.__dict__ and self.__dict__["start_date"] != value:
            raise ValidationError("Habit start date cannot be changed once set")
        super().__setattr__(name, value)

    @property
    def start(self) -> date:
        return to_date(self.start_date)

    @property
    def tracks_progress(self) -> bool:
        return self.tracking_mode in (TrackingMode.COUNT, TrackingMode.TIME)

    @property
    def effective_target(self) -> float:
        return self.target_value or 1

    def is_scheduled_on(self, day: DateLike) -> bool:
        return is_scheduled(self.schedule, day)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "habit_id": self.habit_id,
            "name": self.name,
            "start_date": self.start_date,
            "frequency": schedule_to_frequency(self.schedule),
            "tracking_mode": self.tracking_mode.value,
            "target_value": self.target_value,
            "target_unit": self.target_unit,
            "reminder_time": self.reminder_time,
            "is_active": self.is_active,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Habit":
        return cls(
            habit_id=data["habit_id"],
            name=data["name"],
            start_date=data["start_date"],
            schedule=schedule_from_frequency(data.get("frequency", "daily")),
            tracking_mode=TrackingMode(data.get("tracking_mode", TrackingMode.SIMPLE.value)),
            target_value=data.get("target_value"),
            target_unit=data.get("target_unit"),
            reminder_time=data.get("reminder_time"),
            is_active=data.get("is_active", True),
        )
