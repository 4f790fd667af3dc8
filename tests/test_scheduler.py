"""Tests for cycle scheduling."""

import pytest
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from wxrelay.scheduling import (
    DailyScheduler,
    IntervalScheduler,
    describe_frequency,
    describe_time,
    frequency_to_cron,
    time_to_cron,
)
from wxrelay.utils.exceptions import InputValidationError


class TestCronMapping:
    """Test frequency and time-of-day mapping."""

    @pytest.mark.parametrize(
        ("minutes", "expected"),
        [
            (1, "* * * * *"),
            (5, "*/5 * * * *"),
            (15, "*/15 * * * *"),
            (59, "*/59 * * * *"),
            (60, "0 * * * *"),
            (120, "0 */2 * * *"),
            (360, "0 */6 * * *"),
            (720, "0 */12 * * *"),
            (90, "0 0 * * *"),
            (300, "0 0 * * *"),
            (1440, "0 0 * * *"),
        ],
    )
    def test_frequency_to_cron(self, minutes, expected):
        assert frequency_to_cron(minutes) == expected

    @pytest.mark.parametrize("minutes", [0, -5, 1441])
    def test_frequency_out_of_range(self, minutes):
        with pytest.raises(InputValidationError, match="between 1 and 1440"):
            frequency_to_cron(minutes)

    @pytest.mark.parametrize(
        ("minutes", "expected"),
        [
            (1, "Every minute"),
            (15, "Every 15 minutes"),
            (60, "Every hour"),
            (180, "Every 3 hours"),
            (90, "Once per day"),
            (1440, "Once per day"),
        ],
    )
    def test_describe_frequency(self, minutes, expected):
        assert describe_frequency(minutes) == expected

    @pytest.mark.parametrize(
        ("value", "expected"),
        [("07:00", "0 7 * * *"), ("07:30", "30 7 * * *"), ("23:59", "59 23 * * *"), ("0:05", "5 0 * * *")],
    )
    def test_time_to_cron(self, value, expected):
        assert time_to_cron(value) == expected

    @pytest.mark.parametrize("value", ["25:00", "7:5", "noon", "", "07:00\n", " 07:00"])
    def test_invalid_time(self, value):
        with pytest.raises(InputValidationError, match="Invalid time format"):
            time_to_cron(value)

    @pytest.mark.parametrize(
        ("value", "expected"),
        [("07:00", "Daily at 7:00 AM"), ("13:05", "Daily at 1:05 PM"), ("00:00", "Daily at 12:00 AM")],
    )
    def test_describe_time(self, value, expected):
        assert describe_time(value) == expected


class TestIntervalScheduler:
    """Test IntervalScheduler against an unstarted APScheduler."""

    @pytest.mark.asyncio
    async def test_start_installs_job(self, context):
        interval = IntervalScheduler(AsyncIOScheduler(), context.settings_store, _noop, context.activity)

        state = interval.start()

        assert state.running is True
        assert state.expression == "*/15 * * * *"
        assert state.description == "Every 15 minutes"
        assert "scheduler_start" in [e["action"] for e in context.activity.recent()]

    @pytest.mark.asyncio
    async def test_start_twice_is_a_no_op(self, context):
        scheduler = AsyncIOScheduler()
        interval = IntervalScheduler(scheduler, context.settings_store, _noop)
        interval.start()

        state = interval.start()

        assert state.message == "Alert scheduler already running"
        assert len(scheduler.get_jobs()) == 1

    @pytest.mark.asyncio
    async def test_settings_change_reinstalls_on_start(self, context):
        scheduler = AsyncIOScheduler()
        interval = IntervalScheduler(scheduler, context.settings_store, _noop)
        interval.start()

        context.settings_store.merge({"schedule_frequency": 60})
        state = interval.start()

        assert state.expression == "0 * * * *"
        assert len(scheduler.get_jobs()) == 1

    @pytest.mark.asyncio
    async def test_update_frequency_restarts(self, context):
        interval = IntervalScheduler(AsyncIOScheduler(), context.settings_store, _noop)
        interval.start()

        state = interval.update_frequency(120)

        assert state.running is True
        assert state.expression == "0 */2 * * *"
        assert context.settings_store.get().schedule_frequency == 120

    @pytest.mark.asyncio
    async def test_update_frequency_while_stopped(self, context):
        interval = IntervalScheduler(AsyncIOScheduler(), context.settings_store, _noop)

        state = interval.update_frequency(30)

        assert state.running is False
        assert context.settings_store.get().schedule_frequency == 30

    @pytest.mark.asyncio
    async def test_invalid_frequency_not_persisted(self, context):
        interval = IntervalScheduler(AsyncIOScheduler(), context.settings_store, _noop)

        with pytest.raises(InputValidationError):
            interval.update_frequency(0)
        assert context.settings_store.get().schedule_frequency == 15

    @pytest.mark.asyncio
    async def test_disabled_start_removes_job(self, context):
        scheduler = AsyncIOScheduler()
        interval = IntervalScheduler(scheduler, context.settings_store, _noop)
        interval.start()

        context.settings_store.merge({"schedule_enabled": False})
        state = interval.start()

        assert state.running is False
        assert state.enabled is False
        assert scheduler.get_jobs() == []

    @pytest.mark.asyncio
    async def test_set_enabled_persists(self, context):
        interval = IntervalScheduler(AsyncIOScheduler(), context.settings_store, _noop)
        interval.start()

        state = interval.set_enabled(False)

        assert state.running is False
        assert context.settings_store.get().schedule_enabled is False

    @pytest.mark.asyncio
    async def test_stop_when_not_running(self, context):
        interval = IntervalScheduler(AsyncIOScheduler(), context.settings_store, _noop)

        assert interval.stop().message == "Alert scheduler was not running"

    @pytest.mark.asyncio
    async def test_trigger_now_runs_job(self, context):
        async def job():
            return "ran"

        interval = IntervalScheduler(AsyncIOScheduler(), context.settings_store, job, context.activity)

        assert await interval.trigger_now() == "ran"
        assert "manual_trigger" in [e["action"] for e in context.activity.recent()]

    @pytest.mark.asyncio
    async def test_job_exception_does_not_escape(self, context):
        async def job():
            raise RuntimeError("cycle blew up")

        interval = IntervalScheduler(AsyncIOScheduler(), context.settings_store, job)

        await interval._run_job()

    @pytest.mark.asyncio
    async def test_next_run_reported_when_scheduler_started(self, context):
        scheduler = AsyncIOScheduler()
        scheduler.start(paused=True)
        try:
            interval = IntervalScheduler(scheduler, context.settings_store, _noop)
            state = interval.start()
        finally:
            scheduler.shutdown(wait=False)

        assert state.next_run is not None


class TestDailyScheduler:
    """Test DailyScheduler."""

    @pytest.mark.asyncio
    async def test_disabled_by_default(self, context):
        daily = DailyScheduler(AsyncIOScheduler(), context.settings_store, _noop)

        state = daily.start()

        assert state.running is False
        assert state.message == "Forecast scheduler is disabled"

    @pytest.mark.asyncio
    async def test_enable_installs_daily_trigger(self, context):
        daily = DailyScheduler(AsyncIOScheduler(), context.settings_store, _noop)

        state = daily.set_enabled(True)

        assert state.running is True
        assert state.expression == "0 7 * * *"
        assert state.description == "Daily at 7:00 AM"

    @pytest.mark.asyncio
    async def test_update_time(self, context):
        daily = DailyScheduler(AsyncIOScheduler(), context.settings_store, _noop)
        daily.set_enabled(True)

        state = daily.update_time("18:45")

        assert state.expression == "45 18 * * *"
        assert context.settings_store.get().forecast_time == "18:45"

    @pytest.mark.asyncio
    async def test_invalid_time_not_persisted(self, context):
        daily = DailyScheduler(AsyncIOScheduler(), context.settings_store, _noop)

        with pytest.raises(InputValidationError):
            daily.update_time("25:00")
        assert context.settings_store.get().forecast_time == "07:00"

    @pytest.mark.asyncio
    async def test_schedulers_share_one_apscheduler(self, context):
        scheduler = AsyncIOScheduler()
        context.settings_store.merge({"forecast_enabled": True})

        IntervalScheduler(scheduler, context.settings_store, _noop).start()
        DailyScheduler(scheduler, context.settings_store, _noop).start()

        assert {job.id for job in scheduler.get_jobs()} == {"relay_interval", "relay_daily_forecast"}


async def _noop():
    return None
