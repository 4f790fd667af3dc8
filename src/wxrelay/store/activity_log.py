"""Bounded, append-only activity log for operators."""

import uuid
from typing import Any, Literal

import structlog

from wxrelay.records import utcnow
from wxrelay.store.base import LOGS_KEY, KeyValueStore
from wxrelay.store.settings import SettingsStore

LogType = Literal["info", "success", "warning", "error"]

_LEVELS = {"info": "info", "success": "info", "warning": "warning", "error": "error"}

logger = structlog.get_logger("wxrelay.activity")


class ActivityLog:
    """Structured log entries retained in the store, oldest trimmed first.

    Every entry is also emitted through structlog so the process log and the
    operator-visible log agree.
    """

    def __init__(self, store: KeyValueStore, settings_store: SettingsStore) -> None:
        self.store = store
        self.settings_store = settings_store

    def add(
        self,
        type: LogType,
        action: str,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Append an entry and trim to ``max_logs_to_keep``.

        Args:
            type: One of info, success, warning, error.
            action: Short machine-friendly action name.
            message: Human-readable message.
            details: Optional JSON-serializable context.

        Returns:
            The stored entry.
        """
        entry = {
            "id": str(uuid.uuid4()),
            "timestamp": utcnow().isoformat(),
            "type": type,
            "action": action,
            "message": message,
            "details": details,
        }

        getattr(logger, _LEVELS[type])(message, action=action, log_type=type)

        max_logs = self.settings_store.get().max_logs_to_keep
        entries = self.store.get(LOGS_KEY, []) or []
        entries.append(entry)
        self.store.set(LOGS_KEY, entries[-max_logs:])
        return entry

    def recent(self, limit: int = 100) -> list[dict[str, Any]]:
        """Most recent entries, oldest first."""
        entries = self.store.get(LOGS_KEY, []) or []
        return entries[-limit:]

    def clear(self) -> None:
        self.store.set(LOGS_KEY, [])
