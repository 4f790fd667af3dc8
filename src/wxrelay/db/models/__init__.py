"""ORM models for Weather Alert Relay."""

from wxrelay.db.models.kv_entry import KeyValueEntry

__all__ = ["KeyValueEntry"]
