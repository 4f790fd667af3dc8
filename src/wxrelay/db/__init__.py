"""Database module for Weather Alert Relay."""

from wxrelay.db.base import Base, TimestampMixin
from wxrelay.db.engine import create_engine, create_tables, get_session

__all__ = ["Base", "TimestampMixin", "create_engine", "create_tables", "get_session"]
