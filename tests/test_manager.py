"""Tests for the job lifecycle manager."""

import pytest
from datetime import datetime

from cronwatch.core.errors import PersistenceError, ValidationError
from cronwatch.core.utils import datetime_to_ms, ms_to_datetime
from cronwatch.jobs.manager import create_manager
from cronwatch.models import JobStatus, RunStatus
from cronwatch.storage.memory import MemoryJobStore

from conftest import FakeTimerBackend

QUARTER_MS = 15 * 60_000


class TestCreateJob:
    """Tests for create_job."""

    @pytest.mark.asyncio
    async def test_enabled_job_is_running(self, manager, timers, clock):
        """An enabled job starts with one timer and a future 15-minute next run."""
        job = await manager.create_job("X", "*/15 * * * *", enabled=True)

        assert job.status is JobStatus.RUNNING
        assert job.next_run > clock.now
        next_dt = ms_to_datetime(job.next_run)
        assert next_dt.minute % 15 == 0 and next_dt.second == 0
        assert job.next_run == datetime_to_ms(datetime(2024, 1, 1, 12, 15))
        assert manager.scheduler.active_job_ids() == {job.id}
        assert len(timers.live_handles) == 1

    @pytest.mark.asyncio
    async def test_disabled_job_is_stopped(self, manager, timers):
        job = await manager.create_job("X", "0 * * * *", description="hourly", enabled=False)

        assert job.status is JobStatus.STOPPED
        assert job.enabled is False
        assert job.description == "hourly"
        assert job.next_run is not None
        assert timers.handles == []

    @pytest.mark.asyncio
    async def test_assigns_id_and_timestamps(self, manager, clock):
        job = await manager.create_job("X", "* * * * *", enabled=False)
        other = await manager.create_job("Y", "* * * * *", enabled=False)

        assert job.id.startswith(f"job_{clock.now}_")
        assert job.id != other.id
        assert job.created_at == job.updated_at == clock.now
        assert await manager.get_job(job.id) == job

    @pytest.mark.asyncio
    @pytest.mark.parametrize("name,expr", [
        ("", "* * * * *"),
        ("   ", "* * * * *"),
        ("X", ""),
        ("X", "*/0 * * * *"),
        ("X", "every minute"),
    ])
    async def test_validation_errors(self, manager, store, name, expr):
        with pytest.raises(ValidationError):
            await manager.create_job(name, expr)

        assert await store.list_ids() == set()

    @pytest.mark.asyncio
    async def test_persistence_error_propagates(self, manager, store):
        store.fail_writes = True

        with pytest.raises(PersistenceError):
            await manager.create_job("X", "* * * * *")


class TestUpdateJob:
    """Tests for update_job."""

    @pytest.mark.asyncio
    async def test_unknown_id(self, manager):
        assert await manager.update_job("missing", name="Y") is None

    @pytest.mark.asyncio
    async def test_rebinds_timer_on_expression_change(self, manager, timers, clock):
        """Changing a running job's schedule discards the old handle."""
        job = await manager.create_job("X", "*/15 * * * *")
        old_handle = manager.scheduler.registry.get(job.id)

        updated = await manager.update_job(job.id, cron_expression="0 * * * *")

        new_handle = manager.scheduler.registry.get(job.id)
        assert old_handle.cancelled
        assert new_handle is not old_handle
        assert not new_handle.cancelled
        assert len(timers.live_handles) == 1
        assert updated.status is JobStatus.RUNNING
        assert updated.cron_expression == "0 * * * *"
        assert updated.next_run == datetime_to_ms(datetime(2024, 1, 1, 13, 0))

    @pytest.mark.asyncio
    async def test_rebound_timer_fires_on_new_schedule(self, manager, timers, checker, clock):
        job = await manager.create_job("X", "*/15 * * * *")
        await manager.update_job(job.id, cron_expression="0 * * * *")

        # 12:03:30 -> 12:59:00 passes three quarter-hours but no top of hour
        await timers.advance_to(datetime_to_ms(datetime(2024, 1, 1, 12, 59)))
        assert checker.calls == 0

        await timers.advance_to(datetime_to_ms(datetime(2024, 1, 1, 13, 1)))
        assert checker.calls == 1

    @pytest.mark.asyncio
    async def test_expression_change_on_stopped_job(self, manager, timers):
        job = await manager.create_job("X", "*/15 * * * *", enabled=False)

        updated = await manager.update_job(job.id, cron_expression="0 * * * *")

        assert updated.status is JobStatus.STOPPED
        assert timers.handles == []
        assert updated.next_run == datetime_to_ms(datetime(2024, 1, 1, 13, 0))

    @pytest.mark.asyncio
    async def test_expression_fix_restarts_errored_job(self, store, checker, clock):
        """An enabled job marked error at startup regains its timer once fixed."""
        first = create_manager(store, checker, timer_backend=FakeTimerBackend(clock), clock=clock)
        job = await first.create_job("X", "*/15 * * * *")
        first.shutdown()
        await store.put(job.id, (await store.get(job.id)).with_changes(cron_expression="bad"))

        timers = FakeTimerBackend(clock)
        second = create_manager(store, checker, timer_backend=timers, clock=clock)
        assert await second.initialize() == []
        assert (await second.get_job(job.id)).status is JobStatus.ERROR

        updated = await second.update_job(job.id, cron_expression="*/10 * * * *")

        assert updated.enabled is True
        assert updated.status is JobStatus.RUNNING
        assert second.scheduler.is_active(job.id)
        assert len(timers.live_handles) == 1

    @pytest.mark.asyncio
    async def test_enable_starts(self, manager):
        job = await manager.create_job("X", "* * * * *", enabled=False)

        updated = await manager.update_job(job.id, enabled=True)

        assert updated.enabled is True
        assert updated.status is JobStatus.RUNNING
        assert manager.scheduler.is_active(job.id)

    @pytest.mark.asyncio
    async def test_disable_stops(self, manager, timers):
        job = await manager.create_job("X", "* * * * *")

        updated = await manager.update_job(job.id, enabled=False)

        assert updated.enabled is False
        assert updated.status is JobStatus.STOPPED
        assert timers.live_handles == []

    @pytest.mark.asyncio
    async def test_bumps_updated_at_and_keeps_id(self, manager, clock):
        job = await manager.create_job("X", "* * * * *", enabled=False)
        clock.advance(5_000)

        updated = await manager.update_job(job.id, name="Y", description=None)

        assert updated.id == job.id
        assert updated.created_at == job.created_at
        assert updated.updated_at == clock.now
        assert updated.name == "Y"
        assert updated.description == ""

    @pytest.mark.asyncio
    async def test_invalid_expression_rejected(self, manager):
        job = await manager.create_job("X", "* * * * *", enabled=False)

        with pytest.raises(ValidationError):
            await manager.update_job(job.id, cron_expression="99 * * * *")

        assert (await manager.get_job(job.id)).cron_expression == "* * * * *"

    @pytest.mark.asyncio
    async def test_immutable_fields_rejected(self, manager):
        job = await manager.create_job("X", "* * * * *", enabled=False)

        with pytest.raises(ValidationError, match="id"):
            await manager.update_job(job.id, id="other")


class TestDeleteJob:
    """Tests for delete_job."""

    @pytest.mark.asyncio
    async def test_delete_nonexistent(self, manager, store):
        await manager.create_job("X", "* * * * *", enabled=False)
        before = await store.list_ids()

        assert await manager.delete_job("nonexistent") is False

        assert await store.list_ids() == before

    @pytest.mark.asyncio
    async def test_delete_removes_everything(self, manager, store, timers, clock):
        job = await manager.create_job("X", "* * * * *")
        await timers.advance_to(clock.now + 2 * 60_000)
        assert await manager.get_history(job.id)

        assert await manager.delete_job(job.id) is True

        assert await manager.get_job(job.id) is None
        assert await manager.get_history(job.id) == []
        assert job.id not in await store.list_ids()
        assert timers.live_handles == []


class TestStartStopJob:
    """Tests for start_job/stop_job wrappers."""

    @pytest.mark.asyncio
    async def test_unknown_ids(self, manager):
        assert await manager.start_job("missing") is False
        assert await manager.stop_job("missing") is False

    @pytest.mark.asyncio
    async def test_start_stop_leave_enabled_alone(self, manager):
        job = await manager.create_job("X", "* * * * *", enabled=False)

        assert await manager.start_job(job.id) is True
        assert (await manager.get_job(job.id)).status is JobStatus.RUNNING
        assert (await manager.get_job(job.id)).enabled is False

        assert await manager.stop_job(job.id) is True
        assert (await manager.get_job(job.id)).status is JobStatus.STOPPED


class TestReaders:
    """Tests for read-only accessors."""

    @pytest.mark.asyncio
    async def test_list_jobs_oldest_first(self, manager, clock):
        first = await manager.create_job("A", "* * * * *", enabled=False)
        clock.advance(1)
        second = await manager.create_job("B", "* * * * *", enabled=False)

        assert [j.id for j in await manager.list_jobs()] == [first.id, second.id]

    @pytest.mark.asyncio
    async def test_history_default_limit(self, manager, timers, clock):
        job = await manager.create_job("X", "* * * * *")

        await timers.advance_to(clock.now + 25 * 60_000)

        history = await manager.get_history(job.id)
        assert len(history) == 20
        assert history[0].timestamp > history[-1].timestamp
        assert len(await manager.get_history(job.id, limit=50)) == 25
        assert len(await manager.get_global_history()) == 25

    @pytest.mark.asyncio
    async def test_failure_run_through_timer(self, store, failing_checker, clock):
        timers = FakeTimerBackend(clock)
        manager = create_manager(store, failing_checker, timer_backend=timers, clock=clock)
        job = await manager.create_job("X", "*/15 * * * *")

        await timers.advance_to(clock.now + QUARTER_MS)

        job = await manager.get_job(job.id)
        assert job.last_run_status is RunStatus.FAILURE
        assert job.last_run_error
        assert job.next_run > clock.now
        assert job.status is JobStatus.RUNNING
        assert manager.scheduler.is_active(job.id)

    def test_get_next_run(self, manager):
        assert manager.get_next_run("0 * * * *") == datetime_to_ms(datetime(2024, 1, 1, 13, 0))

        with pytest.raises(ValidationError):
            manager.get_next_run("nope")


class TestRestart:
    """End-to-end restart through the manager."""

    @pytest.mark.asyncio
    async def test_initialize_restores_enabled_jobs(self, checker, clock):
        store = MemoryJobStore()
        first = create_manager(store, checker, timer_backend=FakeTimerBackend(clock), clock=clock)
        on = await first.create_job("on", "* * * * *")
        off = await first.create_job("off", "* * * * *", enabled=False)
        await first.start_job(off.id)  # running, but not enabled
        first.shutdown()

        second = create_manager(store, checker, timer_backend=FakeTimerBackend(clock), clock=clock)
        started = await second.initialize()

        assert started == [on.id]
        assert second.scheduler.active_job_ids() == {on.id}
