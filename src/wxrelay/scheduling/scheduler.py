"""Recurring triggers for relay cycles on APScheduler's asyncio scheduler."""

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Any

import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from wxrelay.config.runtime import TIME_OF_DAY_PATTERN, RuntimeSettings
from wxrelay.store import ActivityLog, SettingsStore
from wxrelay.utils.exceptions import InputValidationError

logger = structlog.get_logger(__name__)

MIN_FREQUENCY = 1
MAX_FREQUENCY = 1440

DAILY_CRON = "0 0 * * *"


def _whole_hours(minutes: int) -> int | None:
    """Hours for a frequency that is an exact divisor of a day, else None."""
    if minutes % 60:
        return None
    hours = minutes // 60
    if hours >= 24 or 24 % hours:
        return None
    return hours


def frequency_to_cron(minutes: int) -> str:
    """Map a polling frequency onto a five-field cron expression.

    Frequencies that are neither under an hour nor a whole number of hours
    dividing 24 run once per day.
    """
    if minutes < MIN_FREQUENCY or minutes > MAX_FREQUENCY:
        raise InputValidationError(
            f"Frequency must be between {MIN_FREQUENCY} and {MAX_FREQUENCY} minutes"
        )
    if minutes == 1:
        return "* * * * *"
    if minutes < 60:
        return f"*/{minutes} * * * *"
    if minutes == 60:
        return "0 * * * *"
    hours = _whole_hours(minutes)
    if hours:
        return f"0 */{hours} * * *"
    return DAILY_CRON


def describe_frequency(minutes: int) -> str:
    if minutes == 1:
        return "Every minute"
    if minutes < 60:
        return f"Every {minutes} minutes"
    if minutes == 60:
        return "Every hour"
    hours = _whole_hours(minutes)
    if hours:
        return f"Every {hours} hours"
    return "Once per day"


def _parse_time(value: str) -> tuple[int, int]:
    if not isinstance(value, str) or not TIME_OF_DAY_PATTERN.fullmatch(value):
        raise InputValidationError("Invalid time format. Use HH:MM (e.g., 07:00)")
    hours, minutes = value.split(":")
    return int(hours), int(minutes)


def time_to_cron(value: str) -> str:
    """``"07:30"`` becomes ``"30 7 * * *"``."""
    hours, minutes = _parse_time(value)
    return f"{minutes} {hours} * * *"


def describe_time(value: str) -> str:
    """``"07:00"`` becomes ``"Daily at 7:00 AM"``."""
    hours, minutes = _parse_time(value)
    period = "PM" if hours >= 12 else "AM"
    display_hours = hours % 12 or 12
    return f"Daily at {display_hours}:{minutes:02d} {period}"


@dataclass
class SchedulerState:
    """Point-in-time view of one recurring trigger."""

    name: str
    enabled: bool
    running: bool
    expression: str | None
    description: str
    last_run: datetime | None = None
    next_run: datetime | None = None
    message: str = ""


class CycleScheduler(ABC):
    """One recurring job whose trigger is derived from runtime settings.

    The APScheduler instance is shared and owned by the caller, which starts
    and shuts it down. This class only adds, replaces and removes its job.
    """

    job_id: str
    name: str

    def __init__(
        self,
        scheduler: AsyncIOScheduler,
        settings_store: SettingsStore,
        job: Callable[[], Awaitable[Any]],
        activity: ActivityLog | None = None,
        timezone: str | None = None,
    ) -> None:
        """Initialize the scheduler.

        Args:
            scheduler: Shared APScheduler instance.
            settings_store: Source of the enabled flag and trigger settings.
            job: Coroutine function run on each trigger and by :meth:`trigger_now`.
            activity: Optional activity log for operator-visible events.
            timezone: IANA timezone for the cron trigger; local time if None.
        """
        self._scheduler = scheduler
        self._settings_store = settings_store
        self._job = job
        self._activity = activity
        self._timezone = timezone
        self._expression: str | None = None

    @abstractmethod
    def is_enabled(self, runtime: RuntimeSettings) -> bool:
        """Whether the job should run under these settings."""

    @abstractmethod
    def expression_for(self, runtime: RuntimeSettings) -> str:
        """Cron expression for these settings."""

    @abstractmethod
    def describe(self, runtime: RuntimeSettings) -> str:
        """Human description of the schedule."""

    @abstractmethod
    def last_run(self, runtime: RuntimeSettings) -> datetime | None:
        """Timestamp of the last completed run."""

    @abstractmethod
    def _enabled_update(self, enabled: bool) -> dict[str, Any]:
        """Settings update that flips the enabled flag."""

    @property
    def running(self) -> bool:
        return self._scheduler.get_job(self.job_id) is not None

    @property
    def expression(self) -> str | None:
        return self._expression if self.running else None

    def start(self) -> SchedulerState:
        """Install the trigger from current settings.

        Starting with an unchanged expression while running is a no-op.
        """
        runtime = self._settings_store.get()
        if not self.is_enabled(runtime):
            self._remove()
            logger.info("Scheduler is disabled", job=self.job_id)
            return self.status(message=f"{self.name} is disabled")

        expression = self.expression_for(runtime)
        if self.running and self._expression == expression:
            return self.status(message=f"{self.name} already running")

        self._remove()
        self._scheduler.add_job(
            self._run_job,
            trigger=CronTrigger.from_crontab(expression, timezone=self._timezone),
            id=self.job_id,
            name=self.name,
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        self._expression = expression

        description = self.describe(runtime)
        logger.info("Scheduler started", job=self.job_id, cron=expression, schedule=description)
        self._log("success", "scheduler_start", f"{self.name} started: {description}", {"cron": expression})
        return self.status(message=f"{self.name} started: {description}")

    def stop(self) -> SchedulerState:
        """Remove the trigger. A cycle that is already running is left to finish."""
        was_running = self._remove()
        if was_running:
            logger.info("Scheduler stopped", job=self.job_id)
            self._log("info", "scheduler_stop", f"{self.name} stopped")
            return self.status(message=f"{self.name} stopped")
        return self.status(message=f"{self.name} was not running")

    def restart(self) -> SchedulerState:
        self.stop()
        return self.start()

    def set_enabled(self, enabled: bool) -> SchedulerState:
        self._settings_store.merge(self._enabled_update(enabled))
        return self.start() if enabled else self.stop()

    async def trigger_now(self) -> Any:
        """Run the job immediately through the same entry point as the trigger."""
        self._log("info", "manual_trigger", f"{self.name}: manual run triggered")
        return await self._job()

    def status(self, message: str = "") -> SchedulerState:
        runtime = self._settings_store.get()
        job = self._scheduler.get_job(self.job_id)
        return SchedulerState(
            name=self.name,
            enabled=self.is_enabled(runtime),
            running=job is not None,
            expression=self._expression if job is not None else None,
            description=self.describe(runtime),
            last_run=self.last_run(runtime),
            next_run=getattr(job, "next_run_time", None) if job is not None else None,
            message=message,
        )

    async def _run_job(self) -> None:
        try:
            await self._job()
        except Exception:
            logger.exception("Scheduled job failed", job=self.job_id)

    def _remove(self) -> bool:
        job = self._scheduler.get_job(self.job_id)
        self._expression = None
        if job is None:
            return False
        self._scheduler.remove_job(self.job_id)
        return True

    def _log(self, type: str, action: str, message: str, details: dict[str, Any] | None = None) -> None:
        if self._activity is not None:
            self._activity.add(type, action, message, details)


class IntervalScheduler(CycleScheduler):
    """Alert polling (plus conditions when enabled) every N minutes."""

    job_id = "relay_interval"
    name = "Alert scheduler"

    def is_enabled(self, runtime: RuntimeSettings) -> bool:
        return runtime.schedule_enabled

    def expression_for(self, runtime: RuntimeSettings) -> str:
        return frequency_to_cron(runtime.schedule_frequency)

    def describe(self, runtime: RuntimeSettings) -> str:
        return describe_frequency(runtime.schedule_frequency)

    def last_run(self, runtime: RuntimeSettings) -> datetime | None:
        return runtime.last_scheduler_run

    def _enabled_update(self, enabled: bool) -> dict[str, Any]:
        return {"schedule_enabled": enabled}

    def update_frequency(self, minutes: int) -> SchedulerState:
        """Persist a new frequency and re-install the trigger if running.

        Raises:
            InputValidationError: If ``minutes`` is outside 1-1440.
        """
        frequency_to_cron(minutes)
        was_running = self.running
        self._settings_store.merge({"schedule_frequency": minutes})
        if was_running:
            return self.restart()
        return self.status(message=f"Frequency updated to {describe_frequency(minutes)}")


class DailyScheduler(CycleScheduler):
    """Forecast delivery once a day at a fixed time."""

    job_id = "relay_daily_forecast"
    name = "Forecast scheduler"

    def is_enabled(self, runtime: RuntimeSettings) -> bool:
        return runtime.forecast_enabled

    def expression_for(self, runtime: RuntimeSettings) -> str:
        return time_to_cron(runtime.forecast_time)

    def describe(self, runtime: RuntimeSettings) -> str:
        return describe_time(runtime.forecast_time)

    def last_run(self, runtime: RuntimeSettings) -> datetime | None:
        return runtime.last_forecast_run

    def _enabled_update(self, enabled: bool) -> dict[str, Any]:
        return {"forecast_enabled": enabled}

    def update_time(self, value: str) -> SchedulerState:
        """Persist a new time of day and re-install the trigger if running.

        Raises:
            InputValidationError: If ``value`` is not a valid HH:MM time.
        """
        time_to_cron(value)
        was_running = self.running
        self._settings_store.merge({"forecast_time": value})
        if was_running:
            return self.restart()
        return self.status(message=f"Forecast time updated to {describe_time(value)}")
