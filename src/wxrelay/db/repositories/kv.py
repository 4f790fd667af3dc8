"""Key-value entry repository."""

from typing import Any

from sqlalchemy import delete, func, select
from sqlalchemy.dialects.mysql import insert as mysql_insert
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from wxrelay.db.models.kv_entry import KeyValueEntry


class KeyValueRepository:
    """Reads and writes whole collections in the ``wxr_kv_entries`` table."""

    def __init__(self, session: Session) -> None:
        """Initialize repository with a session.

        Args:
            session: SQLAlchemy session; the caller commits.
        """
        self.session = session

    def get_value(self, key: str) -> Any | None:
        """Get the stored value for a key.

        Args:
            key: Collection key.

        Returns:
            Deserialized JSON value or None if the key is absent.
        """
        return self.session.scalar(select(KeyValueEntry.value).where(KeyValueEntry.key == key))

    def upsert(self, key: str, value: Any) -> None:
        """Insert or replace the value for a key.

        Args:
            key: Collection key.
            value: JSON-serializable value.
        """
        dialect = self.session.bind.dialect.name if self.session.bind else "sqlite"

        data = {"key": key, "value": value}

        if dialect == "postgresql":
            stmt = pg_insert(KeyValueEntry).values(**data)
            stmt = stmt.on_conflict_do_update(
                index_elements=["key"],
                set_={"value": stmt.excluded.value, "updated_at": func.now()},
            )
        elif dialect in ("mysql", "mariadb"):
            stmt = mysql_insert(KeyValueEntry).values(**data)
            stmt = stmt.on_duplicate_key_update(value=stmt.inserted.value, updated_at=func.now())
        else:
            stmt = sqlite_insert(KeyValueEntry).values(**data)
            stmt = stmt.on_conflict_do_update(
                index_elements=["key"],
                set_={"value": stmt.excluded.value, "updated_at": func.now()},
            )

        self.session.execute(stmt)
        self.session.flush()

    def delete_key(self, key: str) -> bool:
        """Delete a key.

        Args:
            key: Collection key.

        Returns:
            True if a row was removed.
        """
        result = self.session.execute(delete(KeyValueEntry).where(KeyValueEntry.key == key))
        self.session.flush()
        return bool(result.rowcount)
