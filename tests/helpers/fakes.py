"""In-memory fakes for the lookup and record repository ports."""

from __future__ import annotations

from typing import TYPE_CHECKING

from enforcesync.domain.errors import DuplicateRecordError
from enforcesync.domain.model import EnforcementRecord
from enforcesync.domain.ports import CompanyLookup, CompanyRecord

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping
    from datetime import datetime

    from enforcesync.domain.model import RecordKey


def company(
    number: str,
    name: str,
    *,
    status: str | None = "active",
    company_type: str | None = "ltd",
) -> CompanyRecord:
    return CompanyRecord(
        company_number=number,
        company_name=name,
        company_status=status,
        company_type=company_type,
        address="1 High Street, Leeds, LS1 1AA",
    )


class FakeCompanyLookup(CompanyLookup):
    """Answers every search with ``results`` or raises ``error``; records queried names."""

    def __init__(
        self,
        results: Iterable[CompanyRecord] = (),
        *,
        error: Exception | None = None,
    ) -> None:
        self.results = list(results)
        self.error = error
        self.queries: list[str] = []

    def search_companies(self, name: str, *, limit: int = 10) -> list[CompanyRecord]:
        self.queries.append(name)
        if self.error is not None:
            raise self.error
        return self.results[:limit]


class InMemoryRecordRepository[TRecord: EnforcementRecord]:
    """Record repository keyed like the database: one record per ``(agency, regulator_id)``."""

    def __init__(self) -> None:
        self.records: dict[RecordKey, TRecord] = {}
        self.updates: list[dict[str, object]] = []

    def add(self, entity: TRecord) -> None:
        if entity.key in self.records:
            raise DuplicateRecordError(entity.key)
        self.records[entity.key] = entity

    def get_by_key(self, key: RecordKey) -> TRecord | None:
        return self.records.get(key)

    def update_fields(
        self, record: TRecord, changes: Mapping[str, object], *, synced_at: datetime
    ) -> TRecord:
        for name, value in changes.items():
            setattr(record, name, value)
        record.last_synced_at = synced_at
        record.updated_at = synced_at
        self.updates.append(dict(changes))
        return record

    def count_by_key(self, key: RecordKey) -> int:
        return 1 if key in self.records else 0


class VanishingRecordRepository(InMemoryRecordRepository[EnforcementRecord]):
    """Reports every insert as a duplicate but never finds the stored record."""

    def add(self, entity: EnforcementRecord) -> None:
        raise DuplicateRecordError(entity.key)
