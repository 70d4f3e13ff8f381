"""
Mutations of a single check-in record.

`apply_action` is pure: given a habit, the record currently stored for the
target date and the requested action, it returns the record to store (None
for "no record") and the remote operation that persists it. Every
validation failure is raised here, before anything is written anywhere.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, Tuple

from habitpulse.config import ProgressConfig
from habitpulse.exceptions import DuplicateCheckInError, ProgressOutOfRangeError, ValidationError
from habitpulse.models.checkin import CheckIn
from habitpulse.models.enums import CheckInStatus, MutationKind, TrackingMode, next_status
from habitpulse.models.habit import Habit
from habitpulse.utils.validators import validate_date_key


class RemoteOp(Enum):
    WRITE = "write"
    DELETE = "delete"


@dataclass(frozen=True)
class MutationAction:
    """What the user asked for; date_key None means today."""
    kind: MutationKind
    date_key: Optional[str] = None
    value: Optional[float] = None

    @classmethod
    def check_in(cls, date_key: Optional[str] = None) -> "MutationAction":
        return cls(MutationKind.CHECK_IN, date_key)

    @classmethod
    def undo(cls, date_key: Optional[str] = None) -> "MutationAction":
        return cls(MutationKind.UNDO, date_key)

    @classmethod
    def toggle_status(cls, date_key: Optional[str] = None) -> "MutationAction":
        return cls(MutationKind.TOGGLE_STATUS, date_key)

    @classmethod
    def update_progress(cls, value: float, date_key: Optional[str] = None) -> "MutationAction":
        return cls(MutationKind.UPDATE_PROGRESS, date_key, value)

    def for_date(self, date_key: str) -> "MutationAction":
        return MutationAction(self.kind, date_key, self.value)


def progress_bounds(habit: Habit, limits: ProgressConfig) -> Tuple[float, float]:
    if habit.tracking_mode == TrackingMode.TIME:
        return 0, limits.max_time
    return 0, limits.max_count


def _done_record(habit: Habit, date_key: str, now: datetime) -> CheckIn:
    if habit.tracks_progress:
        return CheckIn(
            habit_id=habit.habit_id,
            date_key=date_key,
            status=CheckInStatus.DONE,
            completed_at=now,
            progress_value=habit.effective_target,
            target_reached=True,
        )
    return CheckIn(habit_id=habit.habit_id, date_key=date_key, status=CheckInStatus.DONE, completed_at=now)


def apply_action(habit: Habit, current: Optional[CheckIn], action: MutationAction,
                 now: datetime, limits: Optional[ProgressConfig] = None) -> Tuple[Optional[CheckIn], RemoteOp]:
    """New record for the target date and how to persist it."""
    if action.date_key is None:
        raise ValidationError("A mutation needs a target date")
    date_key = validate_date_key(action.date_key)

    if not habit.is_active:
        raise ValidationError(f"Habit {habit.name} is not active")

    if action.kind == MutationKind.CHECK_IN:
        if current is not None and current.is_done:
            raise DuplicateCheckInError(habit.habit_id, date_key)
        return _done_record(habit, date_key, now), RemoteOp.WRITE

    if action.kind == MutationKind.UNDO:
        if current is None:
            raise ValidationError(f"Nothing to undo for {date_key}")
        return None, RemoteOp.DELETE

    if action.kind == MutationKind.TOGGLE_STATUS:
        status = next_status(current.status if current else CheckInStatus.SKIP)
        if status == CheckInStatus.SKIP:
            return None, RemoteOp.DELETE
        if status == CheckInStatus.DONE:
            return _done_record(habit, date_key, now), RemoteOp.WRITE
        record = CheckIn(
            habit_id=habit.habit_id,
            date_key=date_key,
            status=CheckInStatus.NOT_DONE,
            target_reached=False if habit.tracks_progress else None,
        )
        return record, RemoteOp.WRITE

    if action.kind == MutationKind.UPDATE_PROGRESS:
        if not habit.tracks_progress:
            raise ValidationError("Progress can only be recorded for count or time habits")
        if action.value is None:
            raise ValidationError("A progress value is required")
        minimum, maximum = progress_bounds(habit, limits or ProgressConfig())
        if not minimum <= action.value <= maximum:
            raise ProgressOutOfRangeError(action.value, minimum, maximum)
        reached = action.value >= habit.effective_target
        record = CheckIn.progress(
            habit.habit_id, date_key, action.value, habit.effective_target,
            completed_at=now if reached else None,
        )
        return record, RemoteOp.WRITE

    raise ValidationError(f"Unknown mutation: {action.kind}")
