"""Configuration for Weather Alert Relay."""

from wxrelay.config.runtime import RuntimeSettings
from wxrelay.config.settings import Settings, get_settings

__all__ = ["RuntimeSettings", "Settings", "get_settings"]
