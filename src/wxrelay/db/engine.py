"""Engine and session helpers for the key-value store."""

from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import Engine
from sqlalchemy import create_engine as sa_create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from wxrelay.config.settings import Settings
from wxrelay.db.base import Base


def create_engine(settings: Settings) -> Engine:
    """Build an engine for ``settings.database_url``.

    SQLite connections may be used from the scheduler's threads, and an
    in-memory SQLite URL is pinned to a single shared connection.
    """
    url = settings.database_url
    options: dict = {"pool_pre_ping": True}

    if url.startswith("sqlite"):
        options["connect_args"] = {"check_same_thread": False}
        if ":memory:" in url or url in ("sqlite://", "sqlite:///"):
            options["poolclass"] = StaticPool

    return sa_create_engine(url, **options)


def create_tables(engine: Engine) -> None:
    """Create the store table if it does not exist."""
    from wxrelay.db import models as _  # noqa: F401

    Base.metadata.create_all(bind=engine)


@contextmanager
def get_session(engine: Engine) -> Iterator[Session]:
    """One unit of work: commit on success, roll back on error."""
    session = sessionmaker(bind=engine)()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
