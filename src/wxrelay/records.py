"""Canonical records exchanged between the pipeline stages."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


class Location(BaseModel):
    """A place the relay polls on behalf of the operator."""

    id: str
    name: str = ""
    zip_code: str = ""
    latitude: float | None = None
    longitude: float | None = None
    enabled: bool = True
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    @property
    def label(self) -> str:
        """Short name for logs and summaries."""
        return self.name or self.zip_code or self.id


class AlertType(BaseModel):
    """Alert code used to narrow server-side alert filtering."""

    id: str
    name: str = ""
    code: str = ""
    enabled: bool = True
    created_at: datetime | None = None
    updated_at: datetime | None = None


class Severity(str, Enum):
    """Shared severity vocabulary for canonical alerts."""

    EXTREME = "Extreme"
    SEVERE = "Severe"
    WARNING = "Warning"
    WATCH = "Watch"
    ADVISORY = "Advisory"
    MODERATE = "Moderate"
    MINOR = "Minor"
    STATEMENT = "Statement"
    # Vendor significance levels that are not warnings
    FORECAST = "Forecast"
    OUTLOOK = "Outlook"
    SYNOPSIS = "Synopsis"
    UNKNOWN = "Unknown"


class Alert(BaseModel):
    """Provider-agnostic alert record, posted to the webhook as flat JSON."""

    alert_id: str
    event: str = "Weather Alert"
    severity: Severity = Severity.UNKNOWN
    description: str = ""
    headline: str = ""
    area: str = ""
    starts_at: str | None = None
    ends_at: str | None = None
    issued_at: str | None = None
    location: str = ""
    location_id: str
    source: str = ""
    raw_type: str = ""
    certainty: str = ""
    urgency: str = ""
    instruction: str = ""
    sender: str = ""
    tags: list[str] = Field(default_factory=list)
    is_test: bool = False

    def to_payload(self) -> dict[str, Any]:
        """Serialize for webhook delivery."""
        return self.model_dump(mode="json")


WeatherLevel = Literal["good", "fair", "bad", "severe"]


class Classification(BaseModel):
    """Good/fair/bad/severe judgment for one conditions reading."""

    level: WeatherLevel
    reasons: list[str] = Field(default_factory=list)
    summary: str = ""

    @property
    def is_good(self) -> bool:
        return self.level == "good"

    @property
    def is_bad(self) -> bool:
        return self.level in ("bad", "severe")


class ConditionRecord(BaseModel):
    """Current-conditions report posted to the webhook."""

    id: str
    type: str
    classification: WeatherLevel
    event: str
    headline: str
    description: str
    severity: str
    location: str
    location_id: str
    coordinates: dict[str, float | None]
    weather: dict[str, Any]
    timestamp: datetime = Field(default_factory=utcnow)
    observation_time: str | None = None
    is_good_weather: bool
    is_bad_weather: bool

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


class ForecastRecord(BaseModel):
    """Daily forecast message posted to the webhook."""

    forecast_id: str
    type: str = "daily_forecast"
    location: str
    location_id: str
    date: str | None = None
    high_temp: float | None = None
    low_temp: float | None = None
    temp_unit: str = "F"
    weather: str = "Partly Cloudy"
    weather_short: str = "Partly Cloudy"
    weather_code: str = ""
    precipitation_chance: float = 0
    precipitation_amount: float = 0
    humidity: float = 0
    wind_speed: float = 0
    wind_direction: str = ""
    uv_index: float = 0
    summary: str = ""
    sunrise: str | None = None
    sunset: str | None = None
    source: str = "XWeather"
    issued_at: datetime = Field(default_factory=utcnow)
    is_forecast: bool = True
    is_test: bool = False

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json")
