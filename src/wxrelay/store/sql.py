"""SQLAlchemy-backed key-value store."""

from typing import Any

import structlog
from sqlalchemy import Engine

from wxrelay.db.engine import get_session
from wxrelay.db.repositories.kv import KeyValueRepository
from wxrelay.store.base import KeyValueStore

logger = structlog.get_logger(__name__)


class SqlKeyValueStore(KeyValueStore):
    """Stores each collection as one JSON row; every call is its own transaction."""

    def __init__(self, engine: Engine) -> None:
        """Initialize the store.

        Args:
            engine: SQLAlchemy engine with tables already created.
        """
        self.engine = engine

    def get(self, key: str, default: Any = None) -> Any:
        with get_session(self.engine) as session:
            value = KeyValueRepository(session).get_value(key)
        return default if value is None else value

    def set(self, key: str, value: Any) -> None:
        with get_session(self.engine) as session:
            KeyValueRepository(session).upsert(key, value)
        logger.debug("Stored collection", key=key)

    def delete(self, key: str) -> bool:
        with get_session(self.engine) as session:
            return KeyValueRepository(session).delete_key(key)
