"""Repositories for database operations."""

from wxrelay.db.repositories.kv import KeyValueRepository

__all__ = ["KeyValueRepository"]
