"""Engine and session helpers for the tournament summary store."""

from __future__ import annotations

import os
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

DEFAULT_DB_URL = "sqlite:///tournaments.db"


def resolve_db_url(db_url: str | None = None) -> str:
    """Explicit URL, then ``TOURNAMENTS_DATABASE_URL``, then ``DATABASE_URL``, then a local SQLite file."""
    return db_url or os.getenv("TOURNAMENTS_DATABASE_URL") or os.getenv("DATABASE_URL") or DEFAULT_DB_URL


def create_db_engine(db_url: str | None = None) -> Engine:
    """Create an engine for the summary tables.

    SQLite connections get ``PRAGMA foreign_keys=ON`` so ``skill_team_users``
    rows cannot point at a missing skill.
    """
    engine = create_engine(resolve_db_url(db_url), pool_pre_ping=True)
    if engine.dialect.name == "sqlite":
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    return engine


def _enable_sqlite_foreign_keys(dbapi_connection, _connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@contextmanager
def summary_transaction(session_factory: sessionmaker[Session]) -> Iterator[Session]:
    """Session that commits when the block succeeds and rolls back when it raises."""
    with session_factory() as session:
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
