"""Application settings using Pydantic Settings."""

from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

ProviderName = Literal["openweathermap", "xweather"]


class Settings(BaseSettings):
    """Process-level settings loaded from environment variables.

    The ``default_*`` fields seed the runtime settings stored in the
    key-value store the first time they are read. Once an operator changes a
    value through the CLI, the stored value wins.
    """

    model_config = SettingsConfigDict(
        env_prefix="WXR_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore extra environment variables
    )

    # Storage Configuration
    database_url: str = Field(
        default="sqlite:///./wxrelay.db",
        description="Database connection URL for the key-value store",
    )

    # HTTP Configuration
    http_timeout: float = Field(default=15.0, description="Provider request timeout in seconds")
    alert_timeout: float = Field(
        default=30.0,
        description="Timeout in seconds for vendor alert requests",
    )
    webhook_timeout: float = Field(default=30.0, description="Webhook POST timeout in seconds")
    user_agent: str = Field(
        default="WeatherAlertRelay/1.0 (admin@localhost)",
        description="User-Agent sent to providers and the webhook",
    )
    location_delay: float = Field(
        default=0.25,
        description="Seconds to wait between locations when polling providers",
    )
    webhook_item_delay: float = Field(
        default=0.1,
        description="Seconds to wait between webhook posts in a batch",
    )

    # Scheduler Configuration
    scheduler_timezone: str | None = Field(
        default=None,
        description="IANA timezone for cron triggers (local timezone if not set)",
    )

    # Runtime defaults (seed values for the settings store)
    default_api_provider: ProviderName = Field(
        default="xweather",
        description="Weather provider used until changed by an operator",
    )
    default_api_base_url: str = Field(
        default="https://data.api.xweather.com",
        description="Base URL for the vendor provider",
    )
    default_api_key: SecretStr | None = Field(
        default=None,
        description="OpenWeatherMap API key",
    )
    default_api_client_id: str | None = Field(
        default=None,
        description="XWeather client id",
    )
    default_api_client_secret: SecretStr | None = Field(
        default=None,
        description="XWeather client secret",
    )
    default_webhook_url: str | None = Field(
        default=None,
        description="Webhook that receives relayed records",
    )
    default_schedule_frequency: int = Field(
        default=15,
        ge=1,
        le=1440,
        description="Alert polling frequency in minutes",
    )
    default_schedule_enabled: bool = Field(default=True, description="Enable alert polling")
    default_max_logs_to_keep: int = Field(
        default=100,
        ge=1,
        description="Activity log entries retained in the store",
    )

    # Logging Configuration
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    log_file: str | None = Field(
        default=None,
        description="Log file path (logs to console if not set)",
    )
    log_max_bytes: int = Field(
        default=10 * 1024 * 1024,  # 10 MB
        description="Maximum log file size before rotation",
    )
    log_backup_count: int = Field(
        default=5,
        description="Number of backup log files to keep",
    )

    def runtime_defaults(self) -> dict:
        """Build the seed values for the runtime settings store."""
        return {
            "api_provider": self.default_api_provider,
            "api_base_url": self.default_api_base_url,
            "api_key": self.default_api_key.get_secret_value() if self.default_api_key else "",
            "api_client_id": self.default_api_client_id or "",
            "api_client_secret": (
                self.default_api_client_secret.get_secret_value()
                if self.default_api_client_secret
                else ""
            ),
            "webhook_url": self.default_webhook_url or "",
            "schedule_frequency": self.default_schedule_frequency,
            "schedule_enabled": self.default_schedule_enabled,
            "max_logs_to_keep": self.default_max_logs_to_keep,
        }


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
