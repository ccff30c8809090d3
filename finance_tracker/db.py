"""SQLAlchemy engine/session helpers and the key-value table.

The tracker persists three JSON documents (transactions, budget, rules) under
fixed keys in a single ``ft_kv`` table. SQLite is the default backend; any
SQLAlchemy URL works.

Usage
-----
factory = create_session_factory(database_url())

with session_scope(factory) as s:
    s.get(KvEntry, "budget")
"""

from __future__ import annotations

import os
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime

from sqlalchemy import DateTime, String, Text, create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker

DATABASE_URL_ENV = "FINANCE_TRACKER_DATABASE_URL"
DEFAULT_DATABASE_URL = "sqlite:///finance_tracker.db"


class Base(DeclarativeBase):
    pass


class KvEntry(Base):
    __tablename__ = "ft_kv"

    key: Mapped[str] = mapped_column(String(64), primary_key=True)
    # JSON document, serialized by the caller.
    value: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
    )


def database_url(override: str | None = None) -> str:
    """Resolve the URL: explicit override, then the environment, then SQLite in CWD."""

    url = override or os.getenv(DATABASE_URL_ENV)
    if url and url.strip():
        return url.strip()
    return DEFAULT_DATABASE_URL


def create_db_engine(url: str) -> Engine:
    """Create an engine and make sure the key-value table exists."""

    engine = create_engine(url, pool_pre_ping=True)
    Base.metadata.create_all(bind=engine)
    return engine


def create_session_factory(url: str) -> sessionmaker[Session]:
    return sessionmaker(bind=create_db_engine(url), expire_on_commit=False, class_=Session)


@contextmanager
def session_scope(factory: sessionmaker[Session]) -> Iterator[Session]:
    """Provide a transactional scope around a series of operations."""

    session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


__all__ = [
    "DATABASE_URL_ENV",
    "DEFAULT_DATABASE_URL",
    "Base",
    "KvEntry",
    "create_db_engine",
    "create_session_factory",
    "database_url",
    "session_scope",
]
