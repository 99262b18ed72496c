"""
Conversation store: a small adapter over a SQLAlchemy engine.

Gate snapshots are written between HTTP requests and from the analysis
thread. ``DBAdapter`` is the seam the service layer depends on; SQLite is the
only backend shipped.
"""

import logging
import os
from abc import ABC, abstractmethod
from contextlib import contextmanager
from functools import lru_cache
from typing import Generator

from sqlalchemy import create_engine, event, inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from constants import DATA_DIR
from .models.base import Base

logger = logging.getLogger(__name__)

# Forward-only column additions applied to existing databases: (table, column, column DDL).
# Empty until a released schema gains a column.
_MIGRATIONS: list[tuple[str, str, str]] = []

# Analysis threads and request handlers write concurrently
_SQLITE_BUSY_TIMEOUT_MS = 5000


class DBAdapter(ABC):
    @abstractmethod
    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        """Yield a session; commits on exit, rolls back on exception."""
        ...

    @abstractmethod
    def create_tables(self) -> None:
        ...

    @abstractmethod
    def migrate_tables(self) -> None:
        ...


class SQLiteAdapter(DBAdapter):
    def __init__(self, url: str, *, echo: bool = False):
        self._engine: Engine = create_engine(url, echo=echo, connect_args={"check_same_thread": False})
        event.listen(self._engine, "connect", _configure_sqlite_connection)
        self._session_factory = sessionmaker(
            self._engine,
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
        )

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def create_tables(self) -> None:
        Base.metadata.create_all(bind=self._engine)

    def migrate_tables(self) -> None:
        """Apply _MIGRATIONS to tables that exist but lack the column."""
        inspector = inspect(self._engine)
        tables = set(inspector.get_table_names())
        with self._engine.begin() as conn:
            for table, column, ddl in _MIGRATIONS:
                if table not in tables:
                    continue
                existing = {c["name"] for c in inspector.get_columns(table)}
                if column in existing:
                    continue
                logger.info("Adding column %s.%s", table, column)
                conn.execute(text(f"ALTER TABLE {table} ADD COLUMN {column} {ddl}"))


def _configure_sqlite_connection(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    try:
        cursor.execute(f"PRAGMA busy_timeout = {_SQLITE_BUSY_TIMEOUT_MS}")
    finally:
        cursor.close()


@lru_cache(maxsize=None)
def _adapter_for(url: str) -> DBAdapter:
    if not url.startswith("sqlite"):
        raise ValueError("Only sqlite:// URLs are supported. Set DATABASE_URL to a sqlite path.")
    return SQLiteAdapter(url)


def get_default_adapter() -> DBAdapter:
    """Adapter for DATABASE_URL, or DATA_DIR/doc_interviewer.db; one engine per URL."""
    url = os.environ.get("DATABASE_URL")
    if not url:
        DATA_DIR.mkdir(parents=True, exist_ok=True)
        url = f"sqlite:///{DATA_DIR / 'doc_interviewer.db'}"
    return _adapter_for(url)
