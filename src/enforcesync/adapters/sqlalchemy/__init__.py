"""SQLAlchemy adapter package for enforcesync."""

from __future__ import annotations

from .engine import configure_sqlite, create_database_engine
from .mappings import create_all_tables, mapper_registry, start_mappers
from .repositories import (
    SqlAlchemyCaseRepository,
    SqlAlchemyMatchReviewRepository,
    SqlAlchemyNoticeRepository,
    SqlAlchemyOffenderRepository,
)
from .unit_of_work import (
    SqlAlchemyIngestionUnitOfWork,
    StartupError,
    configured_engine,
    is_started,
    shutdown,
    startup,
)

__all__ = [
    "SqlAlchemyCaseRepository",
    "SqlAlchemyIngestionUnitOfWork",
    "SqlAlchemyMatchReviewRepository",
    "SqlAlchemyNoticeRepository",
    "SqlAlchemyOffenderRepository",
    "StartupError",
    "configure_sqlite",
    "configured_engine",
    "create_all_tables",
    "create_database_engine",
    "is_started",
    "mapper_registry",
    "shutdown",
    "start_mappers",
    "startup",
]
