# services/repository.py

import logging
import threading
from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Optional, Tuple

from habitpulse.exceptions import NotFoundError
from habitpulse.models.analytics import Analytics
from habitpulse.models.checkin import CheckIn
from habitpulse.models.habit import Habit

logger = logging.getLogger(__name__)

DateRange = Tuple[str, str]  # inclusive (start_key, end_key)


class HabitRepository(ABC):
    """
    Persistence collaborator contract.

    Every call may raise AuthorizationError, AvailabilityError, NotFoundError
    or UnknownError. The coordinator decides what to retry or roll back.
    """

    # True when the backend keeps writes made while offline and replays them later
    supports_queued_writes: bool = False

    @abstractmethod
    async def read_check_ins(self, habit_id: str, date_range: Optional[DateRange] = None) -> List[CheckIn]:
        ...

    @abstractmethod
    async def read_habit(self, habit_id: str) -> Habit:
        ...

    @abstractmethod
    async def write_check_in(self, habit_id: str, date_key: str, record: CheckIn) -> None:
        ...

    @abstractmethod
    async def delete_check_in(self, habit_id: str, date_key: str) -> None:
        ...

    @abstractmethod
    async def write_analytics_summary(self, habit_id: str, analytics: Analytics) -> None:
        """Denormalised summary; never treated as the source of truth."""
        ...


class InMemoryHabitRepository(HabitRepository):
    """Dictionary-backed repository, used as the local reference collaborator."""

    def __init__(self, habits: Iterable[Habit] = (), check_ins: Iterable[CheckIn] = (),
                 supports_queued_writes: bool = False):
        self.habits: Dict[str, Habit] = {}
        self.check_ins: Dict[str, Dict[str, CheckIn]] = {}
        self.summaries: Dict[str, Analytics] = {}
        self.supports_queued_writes = supports_queued_writes
        self.lock = threading.RLock()

        for habit in habits:
            self.add_habit(habit)
        for check_in in check_ins:
            self.check_ins.setdefault(check_in.habit_id, {})[check_in.date_key] = check_in

    def add_habit(self, habit: Habit) -> None:
        with self.lock:
            self.habits[habit.habit_id] = habit
            self.check_ins.setdefault(habit.habit_id, {})

    def _require_habit(self, habit_id: str) -> None:
        if habit_id not in self.habits:
            raise NotFoundError(f"Habit {habit_id} not found")

    async def read_check_ins(self, habit_id: str, date_range: Optional[DateRange] = None) -> List[CheckIn]:
        with self.lock:
            self._require_habit(habit_id)
            records = sorted(self.check_ins.get(habit_id, {}).values(), key=lambda c: c.date_key)

        if date_range is not None:
            start_key, end_key = date_range
            records = [c for c in records if start_key <= c.date_key <= end_key]
        return records

    async def read_habit(self, habit_id: str) -> Habit:
        with self.lock:
            self._require_habit(habit_id)
            return self.habits[habit_id]

    async def write_check_in(self, habit_id: str, date_key: str, record: CheckIn) -> None:
        with self.lock:
            self._require_habit(habit_id)
            self.check_ins.setdefault(habit_id, {})[date_key] = record
        logger.debug(f"💾 {habit_id}/{date_key} saved as {record.status.value}")

    async def delete_check_in(self, habit_id: str, date_key: str) -> None:
        with self.lock:
            self._require_habit(habit_id)
            self.check_ins.get(habit_id, {}).pop(date_key, None)
        logger.debug(f"🗑️ {habit_id}/{date_key} removed")

    async def write_analytics_summary(self, habit_id: str, analytics: Analytics) -> None:
        with self.lock:
            self._require_habit(habit_id)
            self.summaries[habit_id] = analytics
