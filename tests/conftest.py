"""
Shared pytest fixtures.

- A fixed clock (Friday 2024-11-08 09:30 UTC)
- Default configuration without retry delays
- In-memory repositories, including one that fails on demand
- Sample habits
"""

import pytest

from habitpulse.config import load_config
from habitpulse.models import Habit, TrackingMode

from tests.factories import FlakyRepository, done_many, fixed_clock


@pytest.fixture
def clock():
    return fixed_clock


@pytest.fixture
def config():
    return load_config({'WRITE_RETRY_DELAY': '0'})


@pytest.fixture
def daily_habit():
    return Habit(habit_id="read", name="Read 20 pages", start_date="2024-11-01")


@pytest.fixture
def count_habit():
    return Habit(
        habit_id="water",
        name="Drink water",
        start_date="2024-11-01",
        tracking_mode=TrackingMode.COUNT,
        target_value=8,
        target_unit="glasses",
    )


@pytest.fixture
def repository(daily_habit, count_habit):
    return FlakyRepository(
        habits=[daily_habit, count_habit],
        check_ins=done_many("read", ["2024-11-05", "2024-11-06", "2024-11-07"]),
    )
