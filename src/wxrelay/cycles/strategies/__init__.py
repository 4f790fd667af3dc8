"""Relay cycles for each data kind."""

from wxrelay.cycles.strategies.alerts import AlertCycle
from wxrelay.cycles.strategies.base import BaseCycle
from wxrelay.cycles.strategies.conditions import ConditionsCycle, should_send_condition
from wxrelay.cycles.strategies.forecasts import ForecastCycle

__all__ = [
    "AlertCycle",
    "BaseCycle",
    "ConditionsCycle",
    "ForecastCycle",
    "should_send_condition",
]
