# services/analytics_service.py

import logging
from typing import List, Optional

from habitpulse.config import AnalyticsConfig, load_config
from habitpulse.core.insights import InsightGenerator
from habitpulse.core.patterns import calculate_day_of_week_stats, calculate_time_of_day_distribution
from habitpulse.core.trends import calculate_month_comparison, calculate_trend
from habitpulse.exceptions import HabitPulseError, describe_error
from habitpulse.models.analytics import Analytics, DayOfWeekStats, Insight, MonthComparison, TimeDistribution, TrendData
from habitpulse.models.enums import TimePeriod
from habitpulse.services.cache import AnalyticsCache
from habitpulse.services.coordinator import MutationToken, OptimisticMutationCoordinator
from habitpulse.services.mutations import MutationAction
from habitpulse.services.repository import HabitRepository
from habitpulse.shared.schemas import AnalyticsPayload, APIResponse, InsightPayload, MutationRequest
from habitpulse.utils.datetime_utils import Clock

logger = logging.getLogger(__name__)


class HabitAnalyticsService:
    """
    Entry point for the UI layer.

    Reads are served from the cache arena (loaded from the repository on
    first use); writes go through the optimistic mutation coordinator.
    """

    def __init__(self, repository: HabitRepository, config: Optional[AnalyticsConfig] = None,
                 clock: Optional[Clock] = None, cache: Optional[AnalyticsCache] = None):
        self.config = config or load_config()
        self.coordinator = OptimisticMutationCoordinator(repository, cache, self.config, clock)
        self.insight_generator = InsightGenerator(self.config.insights, self.config.timezone)

    @property
    def cache(self) -> AnalyticsCache:
        return self.coordinator.cache

    # ===== READS =====

    async def get_analytics(self, habit_id: str) -> Analytics:
        entry = await self.coordinator.get_entry(habit_id)
        return entry.analytics

    async def get_insights(self, habit_id: str) -> List[Insight]:
        entry = await self.coordinator.get_entry(habit_id)
        insights = self.insight_generator.generate_insights(
            entry.records(),
            entry.habit.schedule,
            start=entry.habit.start_date,
            reference=self.coordinator.today_key(),
        )
        logger.info(f"💡 {habit_id}: {len(insights)} insights")
        return insights

    async def get_day_of_week_stats(self, habit_id: str) -> DayOfWeekStats:
        entry = await self.coordinator.get_entry(habit_id)
        return calculate_day_of_week_stats(
            entry.records(), entry.habit.schedule,
            start=entry.habit.start_date, end=self.coordinator.today_key(),
        )

    async def get_time_distribution(self, habit_id: str) -> TimeDistribution:
        entry = await self.coordinator.get_entry(habit_id)
        return calculate_time_of_day_distribution(entry.records(), self.config.timezone)

    async def get_trend(self, habit_id: str, period: TimePeriod = TimePeriod.FOUR_WEEKS) -> Optional[TrendData]:
        entry = await self.coordinator.get_entry(habit_id)
        return calculate_trend(entry.records(), period, self.coordinator.today_key())

    async def get_month_comparison(self, habit_id: str) -> MonthComparison:
        entry = await self.coordinator.get_entry(habit_id)
        return calculate_month_comparison(entry.records(), self.coordinator.today_key())

    # ===== WRITES =====

    async def mutate(self, habit_id: str, action: MutationAction) -> MutationToken:
        return await self.coordinator.mutate(habit_id, action)

    async def check_in(self, habit_id: str, date_key: Optional[str] = None) -> MutationToken:
        return await self.mutate(habit_id, MutationAction.check_in(date_key))

    async def undo_check_in(self, habit_id: str, date_key: Optional[str] = None) -> MutationToken:
        return await self.mutate(habit_id, MutationAction.undo(date_key))

    async def toggle_status(self, habit_id: str, date_key: Optional[str] = None) -> MutationToken:
        return await self.mutate(habit_id, MutationAction.toggle_status(date_key))

    async def update_progress(self, habit_id: str, value: float, date_key: Optional[str] = None) -> MutationToken:
        return await self.mutate(habit_id, MutationAction.update_progress(value, date_key))

    # ===== PAYLOADS =====

    async def analytics_payload(self, habit_id: str) -> AnalyticsPayload:
        return AnalyticsPayload.from_analytics(habit_id, await self.get_analytics(habit_id))

    async def insights_payload(self, habit_id: str) -> List[InsightPayload]:
        return [InsightPayload.from_insight(insight) for insight in await self.get_insights(habit_id)]

    async def handle_mutation(self, request: MutationRequest) -> APIResponse:
        """Run a mutation request and report the outcome in UI terms."""
        try:
            token = await self.mutate(request.habit_id, MutationAction(request.action, request.date_key, request.value))
        except HabitPulseError as e:
            error = describe_error(e)
            return APIResponse(
                success=False,
                message=error.message,
                errors=[type(e).__name__],
                can_retry=error.can_retry,
                is_network_error=error.is_network_error,
            )

        payload = await self.analytics_payload(request.habit_id)
        return APIResponse(
            success=True,
            message=f"{request.action.value} saved for {token.date_key}",
            data=payload.model_dump(mode='json'),
        )
