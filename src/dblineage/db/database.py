"""Engine, sessions and the bulk writer for the lineage database.

Three ways to write:
- ``session()``: plain ORM session for schema rows, reports and settings
- ``bulk_writer()``: one Core connection and transaction, used by the tracer
  to stream usage rows for one file
- ``immediate_transaction()``: ``BEGIN IMMEDIATE`` session for
  read-then-write upserts (lineage results), retried while SQLite is locked
"""

from __future__ import annotations

import time
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import event, text
from sqlalchemy.exc import OperationalError
from sqlmodel import Session, SQLModel, create_engine

if TYPE_CHECKING:
    from sqlalchemy import Connection, Engine, Table

log = structlog.get_logger()

DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_BASE_DELAY = 0.1
DEFAULT_RETRY_MAX_DELAY = 2.0
DEFAULT_BUSY_TIMEOUT_MS = 30000

_LOCKED_MESSAGES = ("database is locked", "database is busy")


def _is_locked(error: OperationalError) -> bool:
    message = str(error).lower()
    return any(m in message for m in _LOCKED_MESSAGES)


def _table(model_class: type[SQLModel]) -> Table:
    return model_class.__table__  # type: ignore[attr-defined,no-any-return]


class Database:
    """Lineage database handle.

    Usage::

        db = Database.from_path(Path(".dblineage/lineage.db"))
        db.create_all()

        with db.session() as session:
            session.add(DbTable(project_id="p1", name="orders"))
            session.commit()

        with db.bulk_writer() as writer:
            writer.insert_ignore(ColumnUsage, usage)
    """

    def __init__(
        self,
        url: str,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_base_delay: float = DEFAULT_RETRY_BASE_DELAY,
        retry_max_delay: float = DEFAULT_RETRY_MAX_DELAY,
        busy_timeout_ms: int = DEFAULT_BUSY_TIMEOUT_MS,
    ) -> None:
        self.url = url
        self.max_retries = max_retries
        self.retry_base_delay = retry_base_delay
        self.retry_max_delay = retry_max_delay
        self.busy_timeout_ms = busy_timeout_ms
        self.engine = self._build_engine()

    @classmethod
    def from_path(cls, db_path: Path, **kwargs: Any) -> Database:
        return cls(f"sqlite:///{db_path}", **kwargs)

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith("sqlite")

    def _build_engine(self) -> Engine:
        if not self.is_sqlite:
            return create_engine(self.url, pool_pre_ping=True)

        engine = create_engine(
            self.url, connect_args={"check_same_thread": False}, pool_pre_ping=True
        )
        busy_timeout_ms = int(self.busy_timeout_ms)

        def on_connect(dbapi_conn: Any, _record: Any) -> None:
            cursor = dbapi_conn.cursor()
            # WAL lets readers run while a tracer thread holds the write lock
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute(f"PRAGMA busy_timeout={busy_timeout_ms}")
            cursor.execute("PRAGMA synchronous=NORMAL")
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        event.listen(engine, "connect", on_connect)
        return engine

    def create_all(self) -> None:
        """Create every table that does not exist yet."""
        import dblineage.db.models  # noqa: F401

        SQLModel.metadata.create_all(self.engine)

    def dispose(self) -> None:
        self.engine.dispose()

    def _backoff(self, attempt: int) -> float:
        return float(min(self.retry_base_delay * (2**attempt), self.retry_max_delay))

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        with Session(self.engine, expire_on_commit=False) as session:
            yield session

    @contextmanager
    def immediate_transaction(
        self, max_retries: int | None = None
    ) -> Generator[Session, None, None]:
        """Session holding the write lock from its first statement.

        Commits on clean exit, rolls back on error. Acquiring the lock is
        retried with exponential backoff while SQLite reports it busy; errors
        raised by the caller's block are never retried.
        """
        retries = self.max_retries if max_retries is None else max_retries
        attempt = 0
        while True:
            session = Session(self.engine, expire_on_commit=False)
            try:
                if self.is_sqlite:
                    session.execute(text("BEGIN IMMEDIATE"))
            except OperationalError as e:
                session.close()
                if not _is_locked(e) or attempt >= retries:
                    raise
                delay = self._backoff(attempt)
                attempt += 1
                log.warning(
                    "sqlite_busy_retry", attempt=attempt, max_retries=retries, delay_sec=delay
                )
                time.sleep(delay)
                continue
            break

        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    @contextmanager
    def bulk_writer(self) -> Generator[BulkWriter, None, None]:
        """Writer owning one transaction: committed on clean exit, rolled back on error."""
        writer = BulkWriter(self.engine)
        try:
            yield writer
            writer.commit()
        except Exception:
            writer.rollback()
            raise
        finally:
            writer.close()


class BulkWriter:
    """Core SQL writes on a single connection, bypassing the ORM."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        self.conn: Connection = engine.connect()
        self.transaction = self.conn.begin()

    def insert_ignore(self, model_class: type[SQLModel], record: dict[str, Any]) -> bool:
        """Insert one row, silently skipping unique-constraint conflicts. True if inserted."""
        table = _table(model_class)
        dialect = self.engine.dialect.name
        if dialect == "sqlite":
            stmt = table.insert().prefix_with("OR IGNORE")
        elif dialect == "postgresql":
            from sqlalchemy.dialects.postgresql import insert as pg_insert

            stmt = pg_insert(table).on_conflict_do_nothing()
        else:
            stmt = table.insert().prefix_with("IGNORE")
        return bool(self.conn.execute(stmt, record).rowcount)

    def delete_where(
        self, model_class: type[SQLModel], condition: str, params: dict[str, Any]
    ) -> int:
        """Delete rows matching a SQL condition with bound params. Returns rows affected."""
        sql = f"DELETE FROM {_table(model_class).name} WHERE {condition}"
        return int(self.conn.execute(text(sql), params).rowcount)

    def update_where(
        self,
        model_class: type[SQLModel],
        updates: dict[str, Any],
        condition: str,
        params: dict[str, Any],
    ) -> int:
        """Set ``updates`` on rows matching a SQL condition. Returns rows affected."""
        assignments = ", ".join(f"{name} = :set_{name}" for name in updates)
        sql = f"UPDATE {_table(model_class).name} SET {assignments} WHERE {condition}"
        bound = {f"set_{name}": value for name, value in updates.items()}
        return int(self.conn.execute(text(sql), {**bound, **params}).rowcount)

    def commit(self) -> None:
        self.transaction.commit()

    def rollback(self) -> None:
        self.transaction.rollback()

    def close(self) -> None:
        self.conn.close()
