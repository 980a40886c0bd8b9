from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine  # noqa: TC002
from sqlalchemy.orm import Session, sessionmaker

from enforcesync.adapters.sqlalchemy import configure_sqlite, start_mappers
from enforcesync.adapters.sqlalchemy.migrations import upgrade_head
from enforcesync.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyIngestionUnitOfWork,
    shutdown,
    startup,
)
from tests.helpers.clock import FakeClock

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator
    from pathlib import Path


def _migrated_engine(uri: str) -> Engine:
    engine = configure_sqlite(create_engine(uri, future=True))
    start_mappers()
    upgrade_head(engine=engine)
    return engine


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    engine = _migrated_engine("sqlite+pysqlite:///:memory:")
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def sqlite_file_engine(tmp_path: Path) -> Iterator[Engine]:
    """File-backed database shared by every thread (in-memory SQLite is per connection)."""

    engine = _migrated_engine(f"sqlite+pysqlite:///{tmp_path / 'enforcesync.db'}")
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def sqlite_session(sqlite_engine: Engine) -> Iterator[Session]:
    session_factory = sessionmaker(bind=sqlite_engine, future=True)
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def sqlite_session_pair(sqlite_file_engine: Engine) -> Iterator[tuple[Session, Session]]:
    """A writer and a reader session with separate identity maps over one database."""

    session_factory = sessionmaker(bind=sqlite_file_engine, future=True, expire_on_commit=False)
    writer = session_factory()
    reader = session_factory()
    try:
        yield writer, reader
    finally:
        reader.close()
        writer.close()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sqlite_unit_of_work(
    sqlite_engine: Engine, clock: FakeClock
) -> Iterator[Callable[[], SqlAlchemyIngestionUnitOfWork]]:
    startup(engine=sqlite_engine, force=True)

    def factory() -> SqlAlchemyIngestionUnitOfWork:
        return SqlAlchemyIngestionUnitOfWork(clock=clock)

    try:
        yield factory
    finally:
        shutdown()
