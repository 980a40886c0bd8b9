from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import create_engine, inspect, text

from enforcesync.adapters.sqlalchemy import configure_sqlite, mapper_registry, start_mappers
from enforcesync.adapters.sqlalchemy.mappings import AgencySetType
from enforcesync.adapters.sqlalchemy.migrations import upgrade_head
from enforcesync.domain.model import Agency

if TYPE_CHECKING:
    from pathlib import Path

    from sqlalchemy.engine import Engine


def test_migrations_create_mapped_tables(sqlite_engine: Engine) -> None:
    tables = set(inspect(sqlite_engine).get_table_names())

    assert {table.name for table in mapper_registry.metadata.sorted_tables} <= tables
    assert "alembic_version" in tables


def test_migrated_columns_match_mapped_columns(sqlite_engine: Engine) -> None:
    inspector = inspect(sqlite_engine)

    for table in mapper_registry.metadata.sorted_tables:
        migrated = {column["name"] for column in inspector.get_columns(table.name)}
        assert migrated == {column.name for column in table.columns}, table.name


def test_upgrade_head_is_idempotent(tmp_path: Path) -> None:
    uri = f"sqlite+pysqlite:///{tmp_path / 'twice.db'}"
    start_mappers()

    upgrade_head(database_uri=uri)
    upgrade_head(database_uri=uri)

    engine = create_engine(uri, future=True)
    try:
        with engine.connect() as connection:
            version = connection.execute(text("SELECT version_num FROM alembic_version"))
            assert version.scalar_one() == "0001"
    finally:
        engine.dispose()


def test_sqlite_connections_enforce_foreign_keys(sqlite_engine: Engine) -> None:
    with sqlite_engine.connect() as connection:
        assert connection.exec_driver_sql("PRAGMA foreign_keys").scalar_one() == 1


def test_configure_sqlite_is_idempotent() -> None:
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)

    assert configure_sqlite(configure_sqlite(engine)) is engine
    with engine.connect() as connection:
        assert connection.exec_driver_sql("PRAGMA busy_timeout").scalar_one() == 30_000
    engine.dispose()


def test_agency_set_type_stores_sorted_json() -> None:
    column_type = AgencySetType()
    dialect = create_engine("sqlite://").dialect

    stored = column_type.process_bind_param({Agency.HSE, Agency.EA}, dialect)

    assert stored == '["ea", "hse"]'
    assert column_type.process_result_value(stored, dialect) == {Agency.EA, Agency.HSE}
    assert column_type.process_result_value(None, dialect) == set()
    assert column_type.process_result_value('{"ea": 1}', dialect) == set()
