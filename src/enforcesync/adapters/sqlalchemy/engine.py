"""Engine construction and SQLite transaction handling."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy import create_engine, event

from enforcesync.config.storage import get_database_config

if TYPE_CHECKING:
    from sqlalchemy.engine import Connection, Engine

SQLITE_BUSY_TIMEOUT_MS = 30_000


def _on_connect(dbapi_connection: Any, connection_record: Any) -> None:
    _ = connection_record
    # take over transaction control from pysqlite so SAVEPOINT behaves
    dbapi_connection.isolation_level = None
    cursor = dbapi_connection.cursor()
    try:
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute(f"PRAGMA busy_timeout={SQLITE_BUSY_TIMEOUT_MS}")
    finally:
        cursor.close()


def _on_begin(connection: Connection) -> None:
    connection.exec_driver_sql("BEGIN IMMEDIATE")


def configure_sqlite(engine: Engine) -> Engine:
    """Enable foreign keys, savepoints and write-locking transactions on SQLite engines."""

    if engine.dialect.name != "sqlite":
        return engine
    if not event.contains(engine, "connect", _on_connect):
        event.listen(engine, "connect", _on_connect)
    if not event.contains(engine, "begin", _on_begin):
        event.listen(engine, "begin", _on_begin)
    return engine


def create_database_engine(database_uri: str | None = None) -> Engine:
    """Create an engine for ``database_uri`` (defaults to the configured database)."""

    engine = create_engine(database_uri or get_database_config().uri, future=True)
    return configure_sqlite(engine)
