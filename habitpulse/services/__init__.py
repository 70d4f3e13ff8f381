# services/__init__.py

"""
habitpulse services

Persistence contract, the per-habit cache arena, the optimistic mutation
coordinator, the background refresher and the facade the UI talks to.
"""

from .repository import HabitRepository, InMemoryHabitRepository
from .cache import AnalyticsCache, CacheEntry
from .mutations import MutationAction, MutationKind, RemoteOp, apply_action
from .coordinator import MutationState, MutationToken, OptimisticMutationCoordinator
from .refresher import AnalyticsRefresher
from .analytics_service import HabitAnalyticsService

__all__ = [
    'HabitRepository',
    'InMemoryHabitRepository',
    'AnalyticsCache',
    'CacheEntry',
    'MutationAction',
    'MutationKind',
    'RemoteOp',
    'apply_action',
    'MutationState',
    'MutationToken',
    'OptimisticMutationCoordinator',
    'AnalyticsRefresher',
    'HabitAnalyticsService'
]
