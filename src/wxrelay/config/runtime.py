"""Operator-editable runtime settings persisted in the key-value store."""

import re
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from wxrelay.config.settings import ProviderName

TIME_OF_DAY_PATTERN = re.compile(r"([01]?[0-9]|2[0-3]):[0-5][0-9]")

SECRET_FIELDS = frozenset({"api_key", "api_client_secret"})


class RuntimeSettings(BaseModel):
    """Settings an operator can change while the relay is running."""

    model_config = {"extra": "ignore", "validate_assignment": True}

    # Provider
    api_provider: ProviderName = "xweather"
    api_base_url: str = "https://data.api.xweather.com"
    api_key: str = ""
    api_client_id: str = ""
    api_client_secret: str = ""
    owm_alert_source: Literal["nws", "onecall"] = "nws"

    # Delivery
    webhook_url: str = ""

    # Alert polling
    schedule_frequency: int = Field(default=15, ge=1, le=1440)
    schedule_enabled: bool = True

    # Current conditions
    conditions_enabled: bool = False
    condition_always_send: bool = False
    condition_send_only_bad: bool = False
    condition_good_weather_interval: int = Field(default=60, ge=1)

    # Daily forecast
    forecast_enabled: bool = False
    forecast_time: str = "07:00"

    # Activity log retention
    max_logs_to_keep: int = Field(default=100, ge=1)

    # Bookkeeping
    last_scheduler_run: datetime | None = None
    last_condition_run: datetime | None = None
    last_forecast_run: datetime | None = None
    updated_at: datetime | None = None

    @field_validator("forecast_time")
    @classmethod
    def _check_forecast_time(cls, value: str) -> str:
        if not TIME_OF_DAY_PATTERN.fullmatch(value):
            raise ValueError("Invalid time format. Use HH:MM (e.g., 07:00)")
        return value

    @property
    def api_configured(self) -> bool:
        """Whether credentials for the selected provider are present."""
        if self.api_provider == "openweathermap":
            return bool(self.api_key)
        return bool(self.api_client_id and self.api_client_secret)

    def redacted(self) -> dict:
        """Dump settings for display with secrets masked."""
        data = self.model_dump(mode="json")
        for key in SECRET_FIELDS:
            if data.get(key):
                data[key] = "********"
        return data
