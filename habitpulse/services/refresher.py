"""
Periodic analytics refresh.

Reloads every known habit from the repository on an APScheduler interval
job. The refresher is created explicitly with the habits to watch and a
clock, and must be started and stopped explicitly.
"""

import asyncio
import logging
from datetime import datetime
from typing import Callable, Dict, Iterable, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
import pytz

from habitpulse.exceptions import HabitPulseError
from habitpulse.services.coordinator import OptimisticMutationCoordinator
from habitpulse.utils.datetime_utils import Clock, utc_now

logger = logging.getLogger(__name__)

JOB_ID = 'analytics_refresh'


class AnalyticsRefresher:
    """Background refresh of cached analytics"""

    def __init__(self, coordinator: OptimisticMutationCoordinator,
                 habit_ids: Callable[[], Iterable[str]],
                 clock: Optional[Clock] = None,
                 interval_seconds: Optional[int] = None,
                 scheduler: Optional[AsyncIOScheduler] = None):
        self.coordinator = coordinator
        self.habit_ids = habit_ids
        self.clock = clock or utc_now
        self.interval_seconds = interval_seconds or coordinator.config.sync.refresh_interval_seconds
        self.scheduler = scheduler or AsyncIOScheduler(timezone=pytz.utc)
        self.last_run: Optional[datetime] = None

    @property
    def is_running(self) -> bool:
        return self.scheduler.running

    def start(self):
        """Register the interval job and start the scheduler (needs a running event loop)."""
        if self.is_running:
            return

        self.scheduler.add_job(
            self.run_once,
            'interval',
            seconds=self.interval_seconds,
            id=JOB_ID,
            replace_existing=True
        )
        self.scheduler.start()
        logger.info(f"📅 Analytics refresh every {self.interval_seconds}s started")

    def stop(self):
        if self.is_running:
            self.scheduler.shutdown(wait=False)
            logger.info("⏹️ Analytics refresh stopped")

    async def run_once(self) -> Dict[str, bool]:
        """Refresh every habit once; habit id -> whether its refresh completed."""
        results: Dict[str, bool] = {}

        for habit_id in list(self.habit_ids()):
            if self.coordinator.has_pending(habit_id):
                logger.debug(f"{habit_id}: mutation pending, refresh skipped")
                results[habit_id] = False
                continue

            task = self.coordinator.schedule_refresh(habit_id)
            try:
                # shielded so that only the coordinator can cancel the refresh itself
                await asyncio.shield(task)
                results[habit_id] = True
            except asyncio.CancelledError:
                if not task.cancelled():
                    # this pass was cancelled, not the refresh
                    self.coordinator.cancel_refresh(habit_id)
                    raise
                results[habit_id] = False
            except HabitPulseError as e:
                logger.error(f"❌ {habit_id}: refresh failed: {e}")
                results[habit_id] = False

        self.last_run = self.clock()
        logger.debug(f"refresh pass done: {sum(results.values())}/{len(results)} habits")
        return results
