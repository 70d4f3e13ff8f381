"""
Tests for the optimistic mutation coordinator.

The repository fixture holds habit "read" (daily, from 2024-11-01) with done
records on Nov 5-7, and habit "water" (count, target 8). Today is Nov 8.
"""

import asyncio

import pytest

from habitpulse.config import load_config
from habitpulse.core.aggregator import calculate_analytics
from habitpulse.exceptions import (
    AuthorizationError,
    AvailabilityError,
    DuplicateCheckInError,
    NotFoundError,
    ProgressOutOfRangeError,
    UnknownError,
    ValidationError,
)
from habitpulse.models import CheckIn, CheckInStatus, index_by_date
from habitpulse.services.coordinator import MutationState, OptimisticMutationCoordinator
from habitpulse.services.mutations import MutationAction

from tests.factories import TODAY


@pytest.fixture
def coordinator(repository, config, clock):
    coordinator = OptimisticMutationCoordinator(repository, config=config, clock=clock)
    asyncio.run(coordinator.refresh("read"))
    return coordinator


def cached(coordinator, habit_id="read"):
    return coordinator.cache.get(habit_id)


def stored(repository, habit_id="read"):
    return repository.check_ins[habit_id]


class TestSuccessfulMutations:

    def test_check_in_matches_authoritative_log(self, coordinator, repository, clock):
        token = asyncio.run(coordinator.mutate("read", MutationAction.check_in()))

        assert token.state == MutationState.CONFIRMED
        assert token.date_key == TODAY
        authoritative = asyncio.run(repository.read_check_ins("read"))
        entry = cached(coordinator)
        assert entry.check_ins == index_by_date(authoritative)
        assert entry.analytics == calculate_analytics(authoritative, "2024-11-01", clock=clock)
        assert entry.analytics.current_streak == 4
        assert entry.analytics.completion_rate == 50.0

    def test_confirmed_summary_is_written(self, coordinator, repository):
        asyncio.run(coordinator.mutate("read", MutationAction.check_in()))
        assert repository.summaries["read"] == cached(coordinator).analytics

    def test_summary_failure_does_not_undo_the_mutation(self, coordinator, repository):
        repository.summary_error = AvailabilityError()

        token = asyncio.run(coordinator.mutate("read", MutationAction.check_in()))

        assert token.state == MutationState.CONFIRMED
        assert TODAY in stored(repository)

    def test_commit_reconciles_with_server_side_changes(self, coordinator, repository):
        async def scenario():
            token = coordinator.begin_mutation("read", MutationAction.check_in())
            await repository.write_check_in("read", TODAY, token.record)
            # another device filled in Nov 4 meanwhile
            await repository.write_check_in("read", "2024-11-04", CheckIn(habit_id="read", date_key="2024-11-04"))
            await coordinator.commit(token)

        asyncio.run(scenario())

        assert cached(coordinator).analytics.current_streak == 5
        assert "2024-11-04" in cached(coordinator).check_ins

    def test_undo_removes_the_record(self, coordinator, repository):
        asyncio.run(coordinator.mutate("read", MutationAction.undo("2024-11-07")))

        assert "2024-11-07" not in stored(repository)
        assert repository.delete_calls == 1
        assert cached(coordinator).analytics.longest_streak == 2

    def test_toggle_cycles_through_statuses(self, coordinator, repository):
        toggle = MutationAction.toggle_status(TODAY)

        asyncio.run(coordinator.mutate("read", toggle))
        assert stored(repository)[TODAY].status == CheckInStatus.DONE

        asyncio.run(coordinator.mutate("read", toggle))
        assert stored(repository)[TODAY].status == CheckInStatus.NOT_DONE
        assert cached(coordinator).analytics.current_streak == 0

        asyncio.run(coordinator.mutate("read", toggle))
        assert TODAY not in stored(repository)
        assert repository.delete_calls == 1

    def test_check_in_replaces_not_done(self, coordinator, repository):
        asyncio.run(coordinator.mutate("read", MutationAction.toggle_status()))
        asyncio.run(coordinator.mutate("read", MutationAction.toggle_status()))
        asyncio.run(coordinator.mutate("read", MutationAction.check_in()))

        assert stored(repository)[TODAY].is_done


class TestProgress:

    def test_progress_below_and_at_target(self, coordinator, repository):
        asyncio.run(coordinator.mutate("water", MutationAction.update_progress(5)))
        record = stored(repository, "water")[TODAY]
        assert record.status == CheckInStatus.NOT_DONE
        assert record.progress_value == 5
        assert cached(coordinator, "water").analytics.current_streak == 0

        asyncio.run(coordinator.mutate("water", MutationAction.update_progress(8)))
        record = stored(repository, "water")[TODAY]
        assert record.is_done
        assert record.target_reached is True
        assert cached(coordinator, "water").analytics.current_streak == 1

    def test_check_in_on_count_habit_records_target(self, coordinator, repository):
        asyncio.run(coordinator.mutate("water", MutationAction.check_in()))
        record = stored(repository, "water")[TODAY]
        assert record.progress_value == 8
        assert record.target_reached is True

    def test_out_of_range_progress_is_rejected_locally(self, coordinator, repository):
        with pytest.raises(ProgressOutOfRangeError):
            asyncio.run(coordinator.mutate("water", MutationAction.update_progress(20000)))
        assert repository.write_calls == 0

    def test_progress_on_simple_habit_is_rejected(self, coordinator, repository):
        with pytest.raises(ValidationError):
            asyncio.run(coordinator.mutate("read", MutationAction.update_progress(3)))
        assert repository.write_calls == 0


class TestValidation:

    def test_duplicate_check_in_is_rejected_without_remote_write(self, coordinator, repository):
        before = cached(coordinator)

        with pytest.raises(DuplicateCheckInError):
            asyncio.run(coordinator.mutate("read", MutationAction.check_in("2024-11-07")))

        assert repository.write_calls == 0
        assert cached(coordinator).check_ins == before.check_ins
        assert not coordinator.has_pending("read")

    def test_undo_without_record(self, coordinator, repository):
        with pytest.raises(ValidationError):
            asyncio.run(coordinator.mutate("read", MutationAction.undo(TODAY)))
        assert repository.delete_calls == 0

    def test_inactive_habit(self, coordinator, repository):
        cached(coordinator).habit.is_active = False
        with pytest.raises(ValidationError):
            asyncio.run(coordinator.mutate("read", MutationAction.check_in()))
        assert repository.write_calls == 0

    def test_unknown_habit(self, repository, config, clock):
        coordinator = OptimisticMutationCoordinator(repository, config=config, clock=clock)
        with pytest.raises(NotFoundError):
            asyncio.run(coordinator.mutate("missing", MutationAction.check_in()))


class TestFailures:

    def test_failed_write_restores_snapshot(self, coordinator, repository):
        before = cached(coordinator)
        repository.failures = [AuthorizationError()]

        with pytest.raises(AuthorizationError):
            asyncio.run(coordinator.mutate("read", MutationAction.check_in()))

        after = cached(coordinator)
        assert after.check_ins == before.check_ins
        assert after.analytics == before.analytics
        assert after.analytics.last_computed == before.analytics.last_computed
        assert TODAY not in stored(repository)
        assert repository.write_calls == 1  # permission errors are not retried

    def test_unknown_errors_are_retried_then_rolled_back(self, coordinator, repository):
        before = cached(coordinator)
        repository.failures = [UnknownError() for _ in range(3)]

        with pytest.raises(UnknownError):
            asyncio.run(coordinator.mutate("read", MutationAction.check_in()))

        assert repository.write_calls == 3
        assert cached(coordinator).check_ins == before.check_ins
        assert cached(coordinator).analytics == before.analytics

    def test_retry_recovers_from_transient_failures(self, coordinator, repository):
        repository.failures = [AvailabilityError(), AvailabilityError()]

        token = asyncio.run(coordinator.mutate("read", MutationAction.check_in()))

        assert token.state == MutationState.CONFIRMED
        assert repository.write_calls == 3
        assert TODAY in stored(repository)

    def test_foreign_exceptions_become_unknown_errors(self, coordinator, repository):
        repository.failures = [RuntimeError("socket closed") for _ in range(3)]

        with pytest.raises(UnknownError) as excinfo:
            asyncio.run(coordinator.mutate("read", MutationAction.check_in()))

        assert isinstance(excinfo.value.__cause__, RuntimeError)
        assert TODAY not in cached(coordinator).check_ins

    def test_offline_without_queueing_rolls_back(self, coordinator, repository):
        repository.failures = [AvailabilityError() for _ in range(3)]

        with pytest.raises(AvailabilityError):
            asyncio.run(coordinator.mutate("read", MutationAction.check_in()))

        assert TODAY not in cached(coordinator).check_ins
        assert cached(coordinator).analytics.current_streak == 0

    def test_offline_with_queueing_keeps_optimistic_state(self, repository, clock):
        config = load_config({'WRITE_RETRY_DELAY': '0', 'QUEUE_OFFLINE_WRITES': 'true'})
        coordinator = OptimisticMutationCoordinator(repository, config=config, clock=clock)
        asyncio.run(coordinator.refresh("read"))
        repository.failures = [AvailabilityError() for _ in range(3)]

        with pytest.raises(AvailabilityError) as excinfo:
            asyncio.run(coordinator.mutate("read", MutationAction.check_in()))

        assert "will sync when online" in excinfo.value.user_message
        assert cached(coordinator).check_ins[TODAY].is_done
        assert cached(coordinator).analytics.current_streak == 4
        assert not coordinator.has_pending("read")

    def test_repository_with_queued_writes_keeps_optimistic_state(self, repository, config, clock):
        repository.supports_queued_writes = True
        coordinator = OptimisticMutationCoordinator(repository, config=config, clock=clock)
        asyncio.run(coordinator.refresh("read"))
        repository.failures = [AvailabilityError() for _ in range(3)]

        with pytest.raises(AvailabilityError):
            asyncio.run(coordinator.mutate("read", MutationAction.check_in()))

        assert TODAY in cached(coordinator).check_ins

    def test_cancelled_mutation_is_rolled_back(self, coordinator, repository):
        async def scenario():
            repository.hold = asyncio.Event()
            task = asyncio.create_task(coordinator.mutate("read", MutationAction.check_in()))
            await asyncio.sleep(0)
            assert TODAY in cached(coordinator).check_ins
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        asyncio.run(scenario())

        assert TODAY not in cached(coordinator).check_ins
        assert not coordinator.has_pending("read")

    def test_cancelled_during_refetch_still_confirms(self, coordinator, repository):
        async def scenario():
            repository.read_gate = asyncio.Event()
            task = asyncio.create_task(coordinator.mutate("read", MutationAction.check_in()))
            while repository.write_calls == 0:
                await asyncio.sleep(0)
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

            repository.read_gate = None
            await repository.delete_check_in("read", "2024-11-05")
            await coordinator.refresh("read")

        asyncio.run(scenario())

        assert not coordinator.has_pending("read")
        assert TODAY in stored(repository)
        assert "2024-11-05" not in cached(coordinator).check_ins
        assert TODAY in cached(coordinator).check_ins


class TestTokens:

    def test_begin_mutation_applies_immediately(self, coordinator, repository):
        token = coordinator.begin_mutation("read", MutationAction.check_in())

        assert token.state == MutationState.PENDING
        assert repository.write_calls == 0
        assert cached(coordinator).analytics.current_streak == 4
        assert coordinator.pending_tokens("read") == [token]

    def test_rollback_restores_log_and_analytics_together(self, coordinator):
        before = cached(coordinator)
        token = coordinator.begin_mutation("read", MutationAction.check_in())

        coordinator.rollback(token)

        assert token.state == MutationState.ROLLED_BACK
        assert cached(coordinator).check_ins == before.check_ins
        assert cached(coordinator).analytics == before.analytics
        assert not coordinator.has_pending("read")

    def test_rollback_keeps_later_mutations(self, coordinator, clock):
        first = coordinator.begin_mutation("read", MutationAction.check_in(TODAY))
        coordinator.begin_mutation("read", MutationAction.check_in("2024-11-04"))

        coordinator.rollback(first)

        entry = cached(coordinator)
        assert TODAY not in entry.check_ins
        assert "2024-11-04" in entry.check_ins
        assert entry.analytics == calculate_analytics(entry.records(), "2024-11-01", clock=clock)

    def test_commit_keeps_other_pending_mutations(self, coordinator, repository):
        async def scenario():
            first = coordinator.begin_mutation("read", MutationAction.check_in(TODAY))
            coordinator.begin_mutation("read", MutationAction.check_in("2024-11-04"))
            await repository.write_check_in("read", TODAY, first.record)
            await coordinator.commit(first)

        asyncio.run(scenario())

        entry = cached(coordinator)
        assert "2024-11-04" in entry.check_ins
        assert "2024-11-04" not in stored(repository)
        assert entry.analytics.current_streak == 5

    def test_commit_requires_pending_token(self, coordinator):
        token = coordinator.begin_mutation("read", MutationAction.check_in())
        coordinator.rollback(token)
        with pytest.raises(ValueError):
            asyncio.run(coordinator.commit(token))

    def test_begin_requires_loaded_habit(self, coordinator):
        with pytest.raises(NotFoundError):
            coordinator.begin_mutation("water", MutationAction.check_in())


class TestConcurrency:

    def test_same_target_mutations_run_in_order(self, coordinator, repository):
        async def scenario():
            repository.hold = asyncio.Event()
            first = asyncio.create_task(coordinator.mutate("read", MutationAction.toggle_status(TODAY)))
            await asyncio.sleep(0)
            second = asyncio.create_task(coordinator.mutate("read", MutationAction.toggle_status(TODAY)))
            await asyncio.sleep(0)

            # the second one waits; only the first is applied
            assert len(coordinator.pending_tokens("read")) == 1
            assert cached(coordinator).check_ins[TODAY].status == CheckInStatus.DONE

            repository.hold.set()
            return await first, await second

        first, second = asyncio.run(scenario())

        assert second.previous_record == first.record
        assert second.record.status == CheckInStatus.NOT_DONE
        assert stored(repository)[TODAY].status == CheckInStatus.NOT_DONE
        assert cached(coordinator).check_ins[TODAY].status == CheckInStatus.NOT_DONE

    def test_second_mutation_starts_from_rolled_back_state(self, coordinator, repository):
        async def scenario():
            repository.hold = asyncio.Event()
            repository.failures = [AuthorizationError()]
            first = asyncio.create_task(coordinator.mutate("read", MutationAction.check_in()))
            await asyncio.sleep(0)
            second = asyncio.create_task(coordinator.mutate("read", MutationAction.check_in()))
            await asyncio.sleep(0)
            repository.hold.set()
            results = await asyncio.gather(first, second, return_exceptions=True)
            return results

        first, second = asyncio.run(scenario())

        assert isinstance(first, AuthorizationError)
        assert second.state == MutationState.CONFIRMED
        assert second.previous_record is None
        assert stored(repository)[TODAY].is_done

    def test_different_habits_proceed_independently(self, coordinator, repository):
        async def scenario():
            await coordinator.refresh("water")
            repository.hold = asyncio.Event()
            read = asyncio.create_task(coordinator.mutate("read", MutationAction.check_in()))
            water = asyncio.create_task(coordinator.mutate("water", MutationAction.update_progress(8)))
            await asyncio.sleep(0)

            assert coordinator.has_pending("read")
            assert coordinator.has_pending("water")

            repository.hold.set()
            return await asyncio.gather(read, water)

        tokens = asyncio.run(scenario())

        assert all(token.state == MutationState.CONFIRMED for token in tokens)

    def test_target_locks_are_released(self, coordinator, repository):
        async def scenario():
            repository.hold = asyncio.Event()
            repository.failures = [AuthorizationError()]
            first = asyncio.create_task(coordinator.mutate("read", MutationAction.check_in()))
            await asyncio.sleep(0)
            second = asyncio.create_task(coordinator.mutate("read", MutationAction.check_in()))
            other_day = asyncio.create_task(coordinator.mutate("read", MutationAction.undo("2024-11-05")))
            await asyncio.sleep(0)
            assert len(coordinator._locks) == 2

            repository.hold.set()
            await asyncio.gather(first, second, other_day, return_exceptions=True)

        asyncio.run(scenario())

        assert coordinator._locks == {}


class TestRefresh:

    def test_mutation_cancels_in_flight_refresh(self, coordinator, repository):
        async def scenario():
            repository.read_gate = asyncio.Event()
            refresh = coordinator.schedule_refresh("read")
            await asyncio.sleep(0)

            token = coordinator.begin_mutation("read", MutationAction.check_in())
            await asyncio.sleep(0)
            repository.read_gate.set()
            return refresh, token

        refresh, token = asyncio.run(scenario())

        assert refresh.cancelled()
        assert token.is_pending
        assert TODAY in cached(coordinator).check_ins

    def test_refresh_does_not_overwrite_pending_mutation(self, coordinator, repository):
        token = coordinator.begin_mutation("read", MutationAction.check_in())

        asyncio.run(coordinator.refresh("read"))

        assert TODAY in cached(coordinator).check_ins
        assert cached(coordinator).version == token.applied_version

    def test_refresh_picks_up_remote_changes(self, coordinator, repository):
        asyncio.run(repository.delete_check_in("read", "2024-11-07"))

        asyncio.run(coordinator.refresh("read"))

        assert "2024-11-07" not in cached(coordinator).check_ins
        assert cached(coordinator).analytics.longest_streak == 2

    def test_new_refresh_replaces_running_one(self, coordinator, repository):
        async def scenario():
            repository.read_gate = asyncio.Event()
            first = coordinator.schedule_refresh("read")
            await asyncio.sleep(0)
            second = coordinator.schedule_refresh("read")
            repository.read_gate.set()
            await second
            await asyncio.sleep(0)
            return first

        first = asyncio.run(scenario())
        assert first.cancelled()

    def test_shutdown_cancels_refreshes(self, coordinator, repository):
        async def scenario():
            repository.read_gate = asyncio.Event()
            task = coordinator.schedule_refresh("read")
            await asyncio.sleep(0)
            await coordinator.shutdown()
            return task

        assert asyncio.run(scenario()).cancelled()
