"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

import logging
import math
from functools import reduce
from operator import add
from typing import TYPE_CHECKING, Any

from sqlalchemy import case, func, literal, select
from sqlalchemy.exc import IntegrityError

from enforcesync.adapters.sqlalchemy.mappings import (
    enforcement_case_table,
    enforcement_notice_table,
    offender_match_review_table,
    offender_table,
)
from enforcesync.domain.errors import (
    ConstraintCode,
    ConstraintViolationError,
    DuplicateOffenderError,
    DuplicateRecordError,
)
from enforcesync.domain.model import (
    EnforcementCase,
    EnforcementNotice,
    Offender,
    OffenderMatchReview,
    ReviewStatus,
    utcnow,
)
from enforcesync.domain.normalization import name_trigrams

if TYPE_CHECKING:
    from collections.abc import Mapping
    from datetime import datetime
    from uuid import UUID

    from sqlalchemy import Table
    from sqlalchemy.orm import Session

    from enforcesync.domain.model import Clock, RecordKey

log = logging.getLogger(__name__)

FUZZY_MIN_SHARED_TRIGRAMS = 0.4

_SQLITE_CODES: dict[str, ConstraintCode] = {
    "SQLITE_CONSTRAINT_UNIQUE": ConstraintCode.UNIQUE,
    "SQLITE_CONSTRAINT_PRIMARYKEY": ConstraintCode.UNIQUE,
    "SQLITE_CONSTRAINT_FOREIGNKEY": ConstraintCode.FOREIGN_KEY,
    "SQLITE_CONSTRAINT_NOTNULL": ConstraintCode.NOT_NULL,
    "SQLITE_CONSTRAINT_CHECK": ConstraintCode.CHECK,
}

_SQLSTATE_CODES: dict[str, ConstraintCode] = {
    "23505": ConstraintCode.UNIQUE,
    "23503": ConstraintCode.FOREIGN_KEY,
    "23502": ConstraintCode.NOT_NULL,
    "23514": ConstraintCode.CHECK,
}


def constraint_code(error: IntegrityError) -> ConstraintCode:
    """Map a driver integrity error onto a structured constraint code."""

    orig: Any = error.orig
    sqlite_name = getattr(orig, "sqlite_errorname", None)
    if isinstance(sqlite_name, str):
        return _SQLITE_CODES.get(sqlite_name, ConstraintCode.UNKNOWN)
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if isinstance(sqlstate, str):
        return _SQLSTATE_CODES.get(sqlstate, ConstraintCode.UNKNOWN)
    return ConstraintCode.UNKNOWN


def constraint_name(error: IntegrityError) -> str | None:
    diag = getattr(error.orig, "diag", None)
    name = getattr(diag, "constraint_name", None)
    return name if isinstance(name, str) else None


class _SessionRepository:
    def __init__(self, session: Session, *, clock: Clock = utcnow) -> None:
        self.session = session
        self._clock = clock

    def _insert(self, entity: Any) -> None:
        """Flush ``entity`` inside a savepoint; a rejected insert leaves the session usable."""

        now = self._clock()
        if entity.created_at is None:
            entity.created_at = now
        entity.updated_at = now
        with self.session.begin_nested():
            self.session.add(entity)

    def _flush_changes(self, entity: Any) -> None:
        entity.updated_at = self._clock()
        with self.session.begin_nested():
            self.session.add(entity)


class SqlAlchemyOffenderRepository(_SessionRepository):
    def add(self, entity: Offender) -> None:
        try:
            self._insert(entity)
        except IntegrityError as exc:
            code = constraint_code(exc)
            if code is ConstraintCode.UNIQUE:
                raise DuplicateOffenderError(
                    entity.normalized_name, constraint=constraint_name(exc)
                ) from exc
            raise ConstraintViolationError(
                f"Offender {entity.normalized_name!r} rejected: {exc.orig}",
                code=code,
                constraint=constraint_name(exc),
            ) from exc

    def save(self, offender: Offender) -> None:
        try:
            self._flush_changes(offender)
        except IntegrityError as exc:
            raise ConstraintViolationError(
                f"Offender {offender.id} update rejected: {exc.orig}",
                code=constraint_code(exc),
                constraint=constraint_name(exc),
            ) from exc

    def get(self, offender_id: UUID) -> Offender | None:
        return self.session.get(Offender, offender_id)

    def find_by_registration_number(self, number: str) -> Offender | None:
        stmt = select(Offender).where(offender_table.c.company_registration_number == number)
        return self.session.execute(stmt).scalar_one_or_none()

    def find_by_name_and_postcode(self, normalized_name: str, postcode: str) -> Offender | None:
        stmt = (
            select(Offender)
            .where(offender_table.c.normalized_name == normalized_name)
            .where(offender_table.c.postcode == postcode)
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def find_by_normalized_name(self, normalized_name: str) -> list[Offender]:
        stmt = (
            select(Offender)
            .where(offender_table.c.normalized_name == normalized_name)
            .order_by(offender_table.c.created_at, offender_table.c.id)
        )
        return list(self.session.execute(stmt).scalars())

    def fuzzy_candidates(self, normalized_name: str, *, limit: int = 50) -> list[Offender]:
        """Offenders sharing enough trigrams with ``normalized_name``, most shared first."""

        grams = sorted(name_trigrams(normalized_name))
        if not grams:
            return []
        column = offender_table.c.normalized_name
        shared = reduce(
            add,
            (case((column.contains(gram, autoescape=True), 1), else_=0) for gram in grams),
            literal(0),
        )
        stmt = (
            select(Offender)
            .where(shared >= math.ceil(len(grams) * FUZZY_MIN_SHARED_TRIGRAMS))
            .order_by(shared.desc(), column)
            .limit(limit)
        )
        return list(self.session.execute(stmt).scalars())


class SqlAlchemyEnforcementRecordRepository[TRecord: (EnforcementCase, EnforcementNotice)](
    _SessionRepository
):
    """Shared implementation for records keyed by ``(agency, regulator_id)``."""

    def __init__(
        self,
        session: Session,
        entity_cls: type[TRecord],
        table: Table,
        *,
        clock: Clock = utcnow,
    ) -> None:
        super().__init__(session, clock=clock)
        self._entity_cls = entity_cls
        self._table = table

    def add(self, entity: TRecord) -> None:
        try:
            self._insert(entity)
        except IntegrityError as exc:
            code = constraint_code(exc)
            if code is ConstraintCode.UNIQUE:
                raise DuplicateRecordError(entity.key, constraint=constraint_name(exc)) from exc
            raise ConstraintViolationError(
                f"{entity.KIND} {entity.key} rejected: {exc.orig}",
                code=code,
                constraint=constraint_name(exc),
            ) from exc

    def get_by_key(self, key: RecordKey) -> TRecord | None:
        stmt = (
            select(self._entity_cls)
            .where(self._table.c.agency == key.agency)
            .where(self._table.c.regulator_id == key.regulator_id)
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def update_fields(
        self, record: TRecord, changes: Mapping[str, object], *, synced_at: datetime
    ) -> TRecord:
        for name, value in changes.items():
            setattr(record, name, value)
        record.last_synced_at = synced_at
        try:
            self._flush_changes(record)
        except IntegrityError as exc:
            raise ConstraintViolationError(
                f"{record.KIND} {record.key} update rejected: {exc.orig}",
                code=constraint_code(exc),
                constraint=constraint_name(exc),
            ) from exc
        return record

    def count_by_key(self, key: RecordKey) -> int:
        stmt = (
            select(func.count())
            .select_from(self._table)
            .where(self._table.c.agency == key.agency)
            .where(self._table.c.regulator_id == key.regulator_id)
        )
        return int(self.session.execute(stmt).scalar_one())


class SqlAlchemyCaseRepository(SqlAlchemyEnforcementRecordRepository[EnforcementCase]):
    def __init__(self, session: Session, *, clock: Clock = utcnow) -> None:
        super().__init__(session, EnforcementCase, enforcement_case_table, clock=clock)


class SqlAlchemyNoticeRepository(SqlAlchemyEnforcementRecordRepository[EnforcementNotice]):
    def __init__(self, session: Session, *, clock: Clock = utcnow) -> None:
        super().__init__(session, EnforcementNotice, enforcement_notice_table, clock=clock)


class SqlAlchemyMatchReviewRepository(_SessionRepository):
    def add(self, entity: OffenderMatchReview) -> None:
        try:
            self._insert(entity)
        except IntegrityError as exc:
            raise ConstraintViolationError(
                f"Match review for offender {entity.offender_id} rejected: {exc.orig}",
                code=constraint_code(exc),
                constraint=constraint_name(exc),
                columns=("offender_id",),
            ) from exc

    def get_for_offender(self, offender_id: UUID) -> OffenderMatchReview | None:
        stmt = select(OffenderMatchReview).where(
            offender_match_review_table.c.offender_id == offender_id
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def list_pending(self) -> list[OffenderMatchReview]:
        stmt = (
            select(OffenderMatchReview)
            .where(offender_match_review_table.c.status == ReviewStatus.PENDING)
            .order_by(offender_match_review_table.c.searched_at)
        )
        return list(self.session.execute(stmt).scalars())
