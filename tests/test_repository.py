"""Tests for the in-memory repository."""

import asyncio

import pytest

from habitpulse.core.aggregator import calculate_analytics
from habitpulse.exceptions import NotFoundError
from habitpulse.services.repository import InMemoryHabitRepository

from tests.factories import done, done_many, fixed_clock


def test_reads_are_sorted_and_filtered(daily_habit):
    repository = InMemoryHabitRepository(
        habits=[daily_habit],
        check_ins=done_many("read", ["2024-11-07", "2024-11-02", "2024-11-04"]),
    )

    records = asyncio.run(repository.read_check_ins("read"))
    assert [c.date_key for c in records] == ["2024-11-02", "2024-11-04", "2024-11-07"]

    window = asyncio.run(repository.read_check_ins("read", ("2024-11-03", "2024-11-07")))
    assert [c.date_key for c in window] == ["2024-11-04", "2024-11-07"]


def test_unknown_habit(daily_habit):
    repository = InMemoryHabitRepository(habits=[daily_habit])

    with pytest.raises(NotFoundError):
        asyncio.run(repository.read_habit("ghost"))
    with pytest.raises(NotFoundError):
        asyncio.run(repository.write_check_in("ghost", "2024-11-08", done("ghost", "2024-11-08")))


def test_write_and_delete(daily_habit):
    repository = InMemoryHabitRepository(habits=[daily_habit])

    asyncio.run(repository.write_check_in("read", "2024-11-08", done("read", "2024-11-08")))
    assert "2024-11-08" in repository.check_ins["read"]

    asyncio.run(repository.delete_check_in("read", "2024-11-08"))
    asyncio.run(repository.delete_check_in("read", "2024-11-08"))
    assert repository.check_ins["read"] == {}


def test_summaries(daily_habit):
    repository = InMemoryHabitRepository(habits=[daily_habit])
    analytics = calculate_analytics([], "2024-11-01", clock=fixed_clock)

    asyncio.run(repository.write_analytics_summary("read", analytics))

    assert repository.summaries["read"] == analytics
    assert asyncio.run(repository.read_habit("read")) == daily_habit
