"""Pydantic models for weather provider responses."""

from wxrelay.api.models.responses import (
    ConditionReading,
    ForecastPeriod,
    ProviderShape,
    RawAlert,
    RawForecast,
)

__all__ = [
    "ConditionReading",
    "ForecastPeriod",
    "ProviderShape",
    "RawAlert",
    "RawForecast",
]
