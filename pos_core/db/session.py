"""Database engine and session management."""

from collections.abc import Generator, Iterator
from contextlib import contextmanager
from typing import Any

from sqlalchemy import Index, create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from pos_core.core.config import settings


def _configure_sqlite(engine: Engine) -> None:
    """Enable foreign keys and take the write lock at BEGIN.

    SQLite has no row locks; ``BEGIN IMMEDIATE`` serializes writers for the
    whole transaction, which gives the same read-then-write guarantee the
    services get from ``SELECT ... FOR UPDATE`` on other backends.
    """

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection: Any, connection_record: Any) -> None:
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(connection: Any) -> None:
        connection.exec_driver_sql("BEGIN IMMEDIATE")


def build_engine(database_url: str) -> Engine:
    """Create an engine for ``database_url`` with backend-specific setup."""
    if database_url.startswith("sqlite"):
        engine = create_engine(
            database_url,
            connect_args={"check_same_thread": False, "timeout": 30},
        )
        _configure_sqlite(engine)
        return engine
    return create_engine(database_url, pool_pre_ping=True)


engine = build_engine(settings.database_url)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """Yield a database session and ensure proper cleanup."""
    db: Session = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def transaction(db: Session) -> Iterator[Session]:
    """Commit on success, roll back on any error and re-raise."""
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise


_LOCK_SQLSTATES = frozenset({"40001", "40P01", "55P03"})
_LOCK_MESSAGES = ("database is locked", "database table is locked", "could not serialize access")


def is_lock_conflict(exc: DBAPIError) -> bool:
    """True when ``exc`` is a lock timeout or serialization failure worth retrying."""
    orig = exc.orig
    sqlstate = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if sqlstate in _LOCK_SQLSTATES:
        return True
    message = str(orig).lower()
    return any(marker in message for marker in _LOCK_MESSAGES)


def violates_unique(exc: IntegrityError, index: Index) -> bool:
    """True when ``exc`` is a duplicate on ``index``.

    PostgreSQL and MySQL name the index in the message; SQLite lists the
    ``table.column`` set instead.
    """
    message = str(exc.orig)
    if index.name and index.name in message:
        return True
    columns = ", ".join(f"{index.table.name}.{column.name}" for column in index.columns)
    return f"UNIQUE constraint failed: {columns}" in message
