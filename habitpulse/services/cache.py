"""
Per-habit cache arena.

Each habit owns one CacheEntry holding its Analytics and its check-in log
together. Entries are replaced whole, so analytics and log can never drift
apart. Versions only ever grow, restores included.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Dict, Iterator, List, Optional

from habitpulse.models.analytics import Analytics
from habitpulse.models.checkin import CheckIn, CheckInLog
from habitpulse.models.habit import Habit

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    habit: Habit
    analytics: Analytics
    check_ins: CheckInLog = field(default_factory=dict)
    version: int = 0

    def records(self) -> List[CheckIn]:
        """Records sorted by date key."""
        return [self.check_ins[key] for key in sorted(self.check_ins)]

    def record_for(self, date_key: str) -> Optional[CheckIn]:
        return self.check_ins.get(date_key)


class AnalyticsCache:
    """Arena keyed by habit id."""

    def __init__(self):
        self._entries: Dict[str, CacheEntry] = {}
        self._versions: Dict[str, int] = {}

    def _next_version(self, habit_id: str) -> int:
        self._versions[habit_id] = self._versions.get(habit_id, 0) + 1
        return self._versions[habit_id]

    def get(self, habit_id: str) -> Optional[CacheEntry]:
        return self._entries.get(habit_id)

    def version(self, habit_id: str) -> int:
        entry = self._entries.get(habit_id)
        return entry.version if entry else 0

    def put(self, habit_id: str, habit: Habit, analytics: Analytics, check_ins: CheckInLog) -> CacheEntry:
        """Store a new entry under a fresh version."""
        entry = CacheEntry(
            habit=habit,
            analytics=analytics,
            check_ins=dict(check_ins),
            version=self._next_version(habit_id),
        )
        self._entries[habit_id] = entry
        logger.debug(f"cache {habit_id} -> v{entry.version}")
        return entry

    def restore(self, habit_id: str, snapshot: Optional[CacheEntry]) -> None:
        """Put back a snapshot's contents (or drop the entry if there was none)."""
        if snapshot is None:
            self._entries.pop(habit_id, None)
        else:
            self._entries[habit_id] = replace(snapshot, version=self._next_version(habit_id))
        logger.debug(f"cache {habit_id} restored")

    def invalidate(self, habit_id: str) -> None:
        self._entries.pop(habit_id, None)

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, habit_id: str) -> bool:
        return habit_id in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._entries))

    def __len__(self) -> int:
        return len(self._entries)
