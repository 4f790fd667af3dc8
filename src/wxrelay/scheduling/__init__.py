"""Cycle scheduling."""

from wxrelay.scheduling.scheduler import (
    CycleScheduler,
    DailyScheduler,
    IntervalScheduler,
    SchedulerState,
    describe_frequency,
    describe_time,
    frequency_to_cron,
    time_to_cron,
)

__all__ = [
    "CycleScheduler",
    "DailyScheduler",
    "IntervalScheduler",
    "SchedulerState",
    "describe_frequency",
    "describe_time",
    "frequency_to_cron",
    "time_to_cron",
]
