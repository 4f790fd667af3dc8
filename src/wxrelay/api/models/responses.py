"""Pydantic models for raw provider payloads."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class ProviderShape(str, Enum):
    """Structure of a raw alert, decided once by the adapter that fetched it."""

    GOVERNMENT = "government"
    COMMERCIAL_TAG = "commercial_tag"
    VENDOR_CODED = "vendor_coded"


class RawAlert(BaseModel):
    """Provider payload tagged with its shape."""

    shape: ProviderShape
    payload: dict[str, Any] = Field(default_factory=dict)
    source: str = ""


class ConditionReading(BaseModel):
    """Current-conditions reading in imperial units."""

    temp: float
    feels_like: float
    humidity: float = 0
    pressure: float | None = None
    wind_speed: float = 0
    wind_direction: float | None = None
    visibility: float | None = None
    description: str = ""
    main: str = ""
    icon: str = ""
    rain: float = 0
    snow: float = 0
    clouds: float | None = None
    timestamp: str | None = None
    sunrise: str | None = None
    sunset: str | None = None


class ForecastPeriod(BaseModel):
    """One day of a vendor forecast, keyed the way the vendor names fields."""

    model_config = {"extra": "allow"}

    dateTimeISO: str | None = None
    timestamp: int | str | None = None
    maxTempF: float | None = None
    minTempF: float | None = None
    tempF: float | None = None
    weather: str | None = None
    weatherPrimary: str | None = None
    weatherPrimaryCoded: str | None = None
    pop: float | None = None
    precipIN: float | None = None
    humidity: float | None = None
    avgHumidity: float | None = None
    windSpeedMaxMPH: float | None = None
    windSpeedMPH: float | None = None
    windDir: str | None = None
    uvi: float | None = None
    sunriseISO: str | None = None
    sunsetISO: str | None = None


class RawForecast(BaseModel):
    """Short-range forecast for one place."""

    periods: list[ForecastPeriod] = Field(default_factory=list)
    place: dict[str, Any] = Field(default_factory=dict)
