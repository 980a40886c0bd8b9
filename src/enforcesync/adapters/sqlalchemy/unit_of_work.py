"""SQLAlchemy unit of work: one session and one transaction per ingested record.

``startup()`` binds the module to an engine, maps the model and migrates the schema.
Every :class:`SqlAlchemyIngestionUnitOfWork` created afterwards draws its session from
that engine. Leaving the block without ``commit()`` discards the record's writes.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Literal

from sqlalchemy.orm import Session, sessionmaker

from enforcesync.adapters.sqlalchemy.engine import configure_sqlite, create_database_engine
from enforcesync.adapters.sqlalchemy.mappings import start_mappers
from enforcesync.adapters.sqlalchemy.migrations import upgrade_head
from enforcesync.adapters.sqlalchemy.repositories import (
    SqlAlchemyCaseRepository,
    SqlAlchemyMatchReviewRepository,
    SqlAlchemyNoticeRepository,
    SqlAlchemyOffenderRepository,
)
from enforcesync.domain.model import utcnow
from enforcesync.domain.ports.unit_of_work import IngestionRepositories

if TYPE_CHECKING:
    from types import TracebackType

    from sqlalchemy.engine import Engine

    from enforcesync.domain.model import Clock

log = logging.getLogger(__name__)


class StartupError(RuntimeError):
    """Raised when the store is used before ``startup()`` or configured twice."""


class _Store:
    __slots__ = ("engine", "sessions")

    def __init__(self) -> None:
        self.engine: Engine | None = None
        self.sessions: sessionmaker[Session] | None = None

    def bind(self, engine: Engine | None) -> None:
        self.engine = engine
        self.sessions = (
            sessionmaker(bind=engine, expire_on_commit=False) if engine is not None else None
        )

    def open_session(self) -> Session:
        if self.sessions is None:
            raise StartupError(
                "Enforcement store not started. Call enforcesync.adapters.sqlalchemy."
                "unit_of_work.startup() before opening a unit of work."
            )
        return self.sessions()


_STORE = _Store()


def startup(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    force: bool = False,
) -> None:
    """Bind the store to an engine and bring its schema to the latest revision."""

    if _STORE.engine is not None and not force:
        raise StartupError("Enforcement store already started. Pass force=True to rebind.")

    resolved = (
        configure_sqlite(engine) if engine is not None else create_database_engine(database_uri)
    )
    start_mappers()
    upgrade_head(engine=resolved)
    _STORE.bind(resolved)
    log.info("Enforcement store ready at %s", resolved.url.render_as_string(hide_password=True))


def configured_engine() -> Engine | None:
    return _STORE.engine


def is_started() -> bool:
    return _STORE.engine is not None


def shutdown() -> None:
    """Dispose the engine and unbind the store."""

    if _STORE.engine is not None:
        _STORE.engine.dispose()
    _STORE.bind(None)


class SqlAlchemyIngestionUnitOfWork:
    """Repositories for offenders, cases, notices and match reviews over one session."""

    def __init__(self, *, clock: Clock = utcnow) -> None:
        if not is_started():
            raise StartupError("Enforcement store not started; call startup() first.")
        self._clock = clock
        self._session: Session | None = None
        self._repositories: IngestionRepositories | None = None

    def __enter__(self) -> SqlAlchemyIngestionUnitOfWork:
        if self._session is not None:
            raise StartupError("Unit of work is already open")
        session = _STORE.open_session()
        self._session = session
        self._repositories = IngestionRepositories(
            offenders=SqlAlchemyOffenderRepository(session, clock=self._clock),
            cases=SqlAlchemyCaseRepository(session, clock=self._clock),
            notices=SqlAlchemyNoticeRepository(session, clock=self._clock),
            reviews=SqlAlchemyMatchReviewRepository(session, clock=self._clock),
        )
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        session = self.session
        try:
            if exc_type is not None:
                session.rollback()
        finally:
            session.close()
            self._session = None
            self._repositories = None
        return False

    @property
    def session(self) -> Session:
        if self._session is None:
            raise StartupError("Unit of work is not open")
        return self._session

    @property
    def repositories(self) -> IngestionRepositories:
        if self._repositories is None:
            raise StartupError("Unit of work is not open")
        return self._repositories

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()


if TYPE_CHECKING:
    from enforcesync.domain.ports import IngestionUnitOfWork

    _uow_check: IngestionUnitOfWork = SqlAlchemyIngestionUnitOfWork()
