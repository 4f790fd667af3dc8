"""Key-value store interface shared by every persisted collection."""

from abc import ABC, abstractmethod
from typing import Any

# Collection keys
SETTINGS_KEY = "settings"
LOCATIONS_KEY = "locations"
ALERT_TYPES_KEY = "alert_types"
LAST_ALERTS_KEY = "last_alerts"
LAST_CONDITIONS_KEY = "last_conditions"
LOGS_KEY = "logs"


class KeyValueStore(ABC):
    """Whole-value get/set per logical collection, last write wins."""

    @abstractmethod
    def get(self, key: str, default: Any = None) -> Any:
        """Return a copy of the value stored under ``key`` or ``default``."""

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        """Replace the value stored under ``key``."""

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Remove ``key``; returns True if it existed."""
