# models/checkin.py

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterable, Optional

from habitpulse.exceptions import ValidationError
from habitpulse.models.enums import CheckInStatus
from habitpulse.utils.datetime_utils import parse_date_key
from habitpulse.utils.validators import validate_date_key

# date key -> record, at most one record per date key
CheckInLog = Dict[str, "CheckIn"]


@dataclass(frozen=True)
class CheckIn:
    """One habit's record for one calendar date."""
    habit_id: str
    date_key: str  # YYYY-MM-DD
    status: CheckInStatus = CheckInStatus.DONE
    completed_at: Optional[datetime] = None
    progress_value: Optional[float] = None
    target_reached: Optional[bool] = None

    def __post_init__(self):
        validate_date_key(self.date_key)
        if not isinstance(self.status, CheckInStatus):
            object.__setattr__(self, "status", CheckInStatus(self.status))
        if self.status == CheckInStatus.SKIP:
            raise ValidationError("A skipped day is stored as the absence of a record")
        if self.progress_value is not None and self.progress_value < 0:
            raise ValidationError("progress_value cannot be negative")

    @property
    def is_done(self) -> bool:
        return self.status == CheckInStatus.DONE

    @property
    def day(self):
        return parse_date_key(self.date_key)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "habit_id": self.habit_id,
            "date_key": self.date_key,
            "status": self.status.value,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "progress_value": self.progress_value,
            "target_reached": self.target_reached,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CheckIn":
        completed_at = data.get("completed_at")
        if isinstance(completed_at, str):
            completed_at = datetime.fromisoformat(completed_at)
        return cls(
            habit_id=data["habit_id"],
            date_key=data["date_key"],
            # records written before statuses existed count as done
            status=CheckInStatus(data.get("status") or CheckInStatus.DONE.value),
            completed_at=completed_at,
            progress_value=data.get("progress_value"),
            target_reached=data.get("target_reached"),
        )

    @classmethod
    def progress(cls, habit_id: str, date_key: str, value: float, target: float,
                 completed_at: Optional[datetime] = None) -> "CheckIn":
        reached = value >= target
        return cls(
            habit_id=habit_id,
            date_key=date_key,
            status=CheckInStatus.DONE if reached else CheckInStatus.NOT_DONE,
            completed_at=completed_at,
            progress_value=value,
            target_reached=reached,
        )


def index_by_date(check_ins: Iterable[CheckIn]) -> CheckInLog:
    """Key records by date; a later record for the same date key wins."""
    return {check_in.date_key: check_in for check_in in check_ins}
