"""Runtime settings collection with merge-on-write semantics."""

from typing import Any

import structlog
from pydantic import ValidationError

from wxrelay.config.runtime import RuntimeSettings
from wxrelay.records import utcnow
from wxrelay.store.base import SETTINGS_KEY, KeyValueStore
from wxrelay.utils.exceptions import InputValidationError

logger = structlog.get_logger(__name__)


class SettingsStore:
    """Reads and merges :class:`RuntimeSettings` stored under one key."""

    def __init__(self, store: KeyValueStore, defaults: dict[str, Any] | None = None) -> None:
        """Initialize the settings store.

        Args:
            store: Backing key-value store.
            defaults: Seed values applied beneath whatever is stored.
        """
        self.store = store
        self.defaults = defaults or {}

    def get(self) -> RuntimeSettings:
        """Stored settings layered over the defaults."""
        stored = self.store.get(SETTINGS_KEY, {}) or {}
        return RuntimeSettings.model_validate({**self.defaults, **stored})

    def merge(self, updates: dict[str, Any]) -> RuntimeSettings:
        """Layer a partial update over the current settings and persist the result.

        Args:
            updates: Field names and new values.

        Returns:
            The merged settings.

        Raises:
            InputValidationError: If a value fails validation.
        """
        current = self.get().model_dump()
        try:
            merged = RuntimeSettings.model_validate({**current, **updates, "updated_at": utcnow()})
        except ValidationError as e:
            raise InputValidationError(_first_error(e)) from e

        self.store.set(SETTINGS_KEY, merged.model_dump(mode="json"))
        logger.info("Settings updated", fields=sorted(updates))
        return merged

    def set(self, settings: RuntimeSettings) -> RuntimeSettings:
        """Replace the stored settings wholesale."""
        settings = settings.model_copy(update={"updated_at": utcnow()})
        self.store.set(SETTINGS_KEY, settings.model_dump(mode="json"))
        return settings


def _first_error(error: ValidationError) -> str:
    detail = error.errors()[0]
    field = ".".join(str(part) for part in detail.get("loc", ()))
    message = detail.get("msg", "invalid value")
    return f"{field}: {message}" if field else message
