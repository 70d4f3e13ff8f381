"""
Optimistic mutation coordinator.

A mutation is applied to the cached log and analytics at once, then
persisted in the background. The cache arena is only ever changed through
begin_mutation / commit / rollback and refresh, and each of those replaces
a habit's entry whole.

Token lifecycle: idle -> pending -> confirmed | rolled_back | queued
"""

import asyncio
import contextlib
import itertools
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple

from habitpulse.config import AnalyticsConfig, load_config
from habitpulse.core.aggregator import calculate_analytics
from habitpulse.exceptions import AvailabilityError, HabitPulseError, NotFoundError, UnknownError
from habitpulse.models.analytics import Analytics
from habitpulse.models.checkin import CheckIn, CheckInLog, index_by_date
from habitpulse.models.habit import Habit
from habitpulse.services.cache import AnalyticsCache, CacheEntry
from habitpulse.services.mutations import MutationAction, RemoteOp, apply_action
from habitpulse.services.repository import HabitRepository
from habitpulse.utils.datetime_utils import Clock, today_key, utc_now
from habitpulse.utils.decorators import retry_on_exception

logger = logging.getLogger(__name__)


class MutationState(Enum):
    IDLE = "idle"
    PENDING = "pending"
    CONFIRMED = "confirmed"
    ROLLED_BACK = "rolled_back"
    QUEUED = "queued"


@dataclass
class MutationToken:
    """Handle for one in-flight mutation."""
    token_id: int
    habit_id: str
    action: MutationAction
    snapshot: Optional[CacheEntry]
    previous_record: Optional[CheckIn]
    record: Optional[CheckIn]
    remote_op: RemoteOp
    applied_version: int = 0
    state: MutationState = MutationState.IDLE
    error: Optional[BaseException] = None

    @property
    def date_key(self) -> str:
        return self.action.date_key

    @property
    def is_pending(self) -> bool:
        return self.state == MutationState.PENDING


def _with_record(check_ins: CheckInLog, date_key: str, record: Optional[CheckIn]) -> CheckInLog:
    updated = dict(check_ins)
    if record is None:
        updated.pop(date_key, None)
    else:
        updated[date_key] = record
    return updated


class OptimisticMutationCoordinator:
    """Applies check-in mutations optimistically and reconciles them with the repository."""

    def __init__(self, repository: HabitRepository, cache: Optional[AnalyticsCache] = None,
                 config: Optional[AnalyticsConfig] = None, clock: Optional[Clock] = None):
        self.repository = repository
        self.cache = cache or AnalyticsCache()
        self.config = config or load_config()
        self.clock = clock or utc_now

        self._token_ids = itertools.count(1)
        self._pending: Dict[str, Dict[int, MutationToken]] = {}
        self._locks: Dict[Tuple[str, str], Tuple[asyncio.Lock, int]] = {}
        self._refresh_tasks: Dict[str, asyncio.Task] = {}

    # ===== HELPERS =====

    def today_key(self) -> str:
        return today_key(self.clock, self.config.timezone)

    def compute(self, habit: Habit, records: Iterable[CheckIn]) -> Analytics:
        return calculate_analytics(records, habit.start_date, clock=self.clock, tz_name=self.config.timezone)

    def has_pending(self, habit_id: str) -> bool:
        return bool(self._pending.get(habit_id))

    def pending_tokens(self, habit_id: str) -> List[MutationToken]:
        return list(self._pending.get(habit_id, {}).values())

    def _forget(self, token: MutationToken) -> None:
        tokens = self._pending.get(token.habit_id)
        if tokens is not None:
            tokens.pop(token.token_id, None)
            if not tokens:
                del self._pending[token.habit_id]

    @contextlib.asynccontextmanager
    async def _target_lock(self, habit_id: str, date_key: str):
        """Serialise mutations on one (habit, date key); the lock lives only while in use."""
        key = (habit_id, date_key)
        lock, users = self._locks.get(key, (None, 0))
        if lock is None:
            lock = asyncio.Lock()
        self._locks[key] = (lock, users + 1)
        try:
            async with lock:
                yield
        finally:
            lock, users = self._locks[key]
            if users == 1:
                del self._locks[key]
            else:
                self._locks[key] = (lock, users - 1)

    @property
    def queues_offline_writes(self) -> bool:
        return self.config.sync.queue_offline_writes or self.repository.supports_queued_writes

    # ===== MUTATION LIFECYCLE =====

    def begin_mutation(self, habit_id: str, action: MutationAction) -> MutationToken:
        """Validate and apply `action` to the cached entry; returns a pending token.

        Synchronous on purpose: snapshot, validation and the optimistic cache
        write happen without yielding to the event loop. The habit must
        already be cached (see refresh).
        """
        self.cancel_refresh(habit_id)

        entry = self.cache.get(habit_id)
        if entry is None:
            raise NotFoundError(f"Habit {habit_id} is not loaded")

        if action.date_key is None:
            action = action.for_date(self.today_key())

        current = entry.record_for(action.date_key)
        record, remote_op = apply_action(entry.habit, current, action, self.clock(), self.config.progress)

        check_ins = _with_record(entry.check_ins, action.date_key, record)
        applied = self.cache.put(habit_id, entry.habit, self.compute(entry.habit, check_ins.values()), check_ins)

        token = MutationToken(
            token_id=next(self._token_ids),
            habit_id=habit_id,
            action=action,
            snapshot=entry,
            previous_record=current,
            record=record,
            remote_op=remote_op,
            applied_version=applied.version,
            state=MutationState.PENDING,
        )
        self._pending.setdefault(habit_id, {})[token.token_id] = token
        logger.info(f"🔄 {habit_id}/{action.date_key}: {action.kind.value} applied optimistically")
        return token

    async def commit(self, token: MutationToken) -> CacheEntry:
        """Confirm a persisted mutation and reconcile the cache with the repository."""
        if not token.is_pending:
            raise ValueError(f"Mutation {token.token_id} is {token.state.value}, not pending")

        habit_id = token.habit_id

        # the write is persisted; whatever happens to the refetch, the token is done
        self._forget(token)
        token.state = MutationState.CONFIRMED

        try:
            records = await self.repository.read_check_ins(habit_id)
        except HabitPulseError as e:
            logger.warning(f"⚠️ {habit_id}: confirmed but refetch failed: {e}")
            return self.cache.get(habit_id)

        entry = self.cache.get(habit_id)
        habit = entry.habit if entry else token.snapshot.habit
        authoritative = index_by_date(records)
        analytics = self.compute(habit, authoritative.values())

        # mutations still in flight keep their optimistic records on top
        check_ins = authoritative
        for other in self.pending_tokens(habit_id):
            check_ins = _with_record(check_ins, other.date_key, other.record)
        if check_ins is authoritative:
            confirmed = self.cache.put(habit_id, habit, analytics, check_ins)
        else:
            confirmed = self.cache.put(habit_id, habit, self.compute(habit, check_ins.values()), check_ins)

        logger.info(f"✅ {habit_id}/{token.date_key}: {token.action.kind.value} confirmed")
        await self._write_summary(habit_id, analytics)
        return confirmed

    def rollback(self, token: MutationToken) -> None:
        """Undo an optimistic mutation in the cache."""
        habit_id = token.habit_id
        entry = self.cache.get(habit_id)

        if entry is not None and entry.version == token.applied_version:
            self.cache.restore(habit_id, token.snapshot)
        elif entry is not None:
            # the entry moved on since this mutation; revert only its own date key
            check_ins = _with_record(entry.check_ins, token.date_key, token.previous_record)
            self.cache.put(habit_id, entry.habit, self.compute(entry.habit, check_ins.values()), check_ins)

        self._forget(token)
        token.state = MutationState.ROLLED_BACK
        logger.warning(f"↩️ {habit_id}/{token.date_key}: {token.action.kind.value} rolled back")

    async def mutate(self, habit_id: str, action: MutationAction) -> MutationToken:
        """Full mutation: optimistic apply, remote write with retries, then commit or rollback.

        Mutations on the same (habit, date) run one after another; the second
        starts from the state the first one left behind.
        """
        if habit_id not in self.cache:
            await self.refresh(habit_id)

        if action.date_key is None:
            action = action.for_date(self.today_key())

        async with self._target_lock(habit_id, action.date_key):
            token = self.begin_mutation(habit_id, action)
            try:
                await self._write_remote(token)
            except AvailabilityError as e:
                token.error = e
                if self.queues_offline_writes:
                    self._forget(token)
                    token.state = MutationState.QUEUED
                    logger.warning(f"📥 {habit_id}/{token.date_key}: offline, write queued")
                else:
                    self.rollback(token)
                raise
            except HabitPulseError as e:
                token.error = e
                self.rollback(token)
                logger.error(f"❌ {habit_id}/{token.date_key}: {e}")
                raise
            except asyncio.CancelledError:
                self.rollback(token)
                raise

            await self.commit(token)
            return token

    async def _write_remote(self, token: MutationToken) -> None:
        sync = self.config.sync

        @retry_on_exception(retries=sync.write_retries, delay=sync.write_retry_delay,
                            retry_on=(AvailabilityError, UnknownError))
        async def attempt():
            try:
                if token.remote_op == RemoteOp.DELETE:
                    await self.repository.delete_check_in(token.habit_id, token.date_key)
                else:
                    await self.repository.write_check_in(token.habit_id, token.date_key, token.record)
            except HabitPulseError:
                raise
            except Exception as e:
                raise UnknownError() from e

        await attempt()

    async def _write_summary(self, habit_id: str, analytics: Analytics) -> None:
        try:
            await self.repository.write_analytics_summary(habit_id, analytics)
        except HabitPulseError as e:
            logger.warning(f"⚠️ {habit_id}: analytics summary not saved: {e}")

    # ===== REFRESH =====

    async def refresh(self, habit_id: str) -> Optional[CacheEntry]:
        """Reload a habit from the repository.

        The result is dropped when a mutation is pending or the entry changed
        while the reads were in flight, so a slow refresh never overwrites a
        fresher optimistic value.
        """
        version = self.cache.version(habit_id)
        habit = await self.repository.read_habit(habit_id)
        records = await self.repository.read_check_ins(habit_id)

        if self.has_pending(habit_id) or self.cache.version(habit_id) != version:
            logger.debug(f"{habit_id}: refresh result discarded, entry changed meanwhile")
            return self.cache.get(habit_id)

        check_ins = index_by_date(records)
        return self.cache.put(habit_id, habit, self.compute(habit, check_ins.values()), check_ins)

    async def get_entry(self, habit_id: str) -> CacheEntry:
        entry = self.cache.get(habit_id)
        if entry is None:
            entry = await self.refresh(habit_id)
        return entry

    def schedule_refresh(self, habit_id: str) -> asyncio.Task:
        """Start a background refresh, replacing any that is still running."""
        self.cancel_refresh(habit_id)
        task = asyncio.create_task(self.refresh(habit_id))
        self._refresh_tasks[habit_id] = task
        task.add_done_callback(lambda finished: self._refresh_done(habit_id, finished))
        return task

    def cancel_refresh(self, habit_id: str) -> bool:
        task = self._refresh_tasks.pop(habit_id, None)
        if task is not None and not task.done():
            task.cancel()
            logger.debug(f"⏹️ {habit_id}: refresh cancelled")
            return True
        return False

    def _refresh_done(self, habit_id: str, task: asyncio.Task) -> None:
        if self._refresh_tasks.get(habit_id) is task:
            del self._refresh_tasks[habit_id]
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"❌ {habit_id}: refresh failed: {task.exception()}")

    async def shutdown(self) -> None:
        """Cancel every background refresh."""
        tasks = list(self._refresh_tasks.values())
        for habit_id in list(self._refresh_tasks):
            self.cancel_refresh(habit_id)
        await asyncio.gather(*tasks, return_exceptions=True)
        logger.info("🧹 All refreshes cancelled")
