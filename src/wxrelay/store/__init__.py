"""Persisted collections layered over a key-value store."""

from wxrelay.store.activity_log import ActivityLog
from wxrelay.store.alert_types import AlertTypeStore
from wxrelay.store.base import KeyValueStore
from wxrelay.store.locations import LocationStore
from wxrelay.store.memory import InMemoryKeyValueStore
from wxrelay.store.settings import SettingsStore
from wxrelay.store.sql import SqlKeyValueStore

__all__ = [
    "ActivityLog",
    "AlertTypeStore",
    "InMemoryKeyValueStore",
    "KeyValueStore",
    "LocationStore",
    "SettingsStore",
    "SqlKeyValueStore",
]
