"""Key-value entry ORM model."""

from typing import Any

from sqlalchemy import JSON, String
from sqlalchemy.orm import Mapped, mapped_column

from wxrelay.db.base import Base, TimestampMixin


class KeyValueEntry(Base, TimestampMixin):
    """One logical collection (settings, locations, ledger...) stored as a JSON value."""

    __tablename__ = "wxr_kv_entries"

    key: Mapped[str] = mapped_column(String(100), primary_key=True)
    value: Mapped[Any] = mapped_column(JSON, nullable=True)

    def __repr__(self) -> str:
        return f"<KeyValueEntry(key={self.key})>"
