"""Ports for persisting offenders, enforcement records and match reviews."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from enforcesync.domain.model import (
    EnforcementCase,
    EnforcementNotice,
    Offender,
    OffenderMatchReview,
)

if TYPE_CHECKING:
    from collections.abc import Mapping
    from datetime import datetime
    from uuid import UUID

    from enforcesync.domain.model import RecordKey


@runtime_checkable
class Repository[TEntity](Protocol):
    """Minimal repository contract for a persistent aggregate store."""

    def add(self, entity: TEntity) -> None: ...


@runtime_checkable
class OffenderRepository(Repository[Offender], Protocol):
    """Offender identities.

    ``add`` raises ``DuplicateOffenderError`` when another writer already created the same
    identity; the caller's transaction stays usable.
    """

    def get(self, offender_id: UUID) -> Offender | None: ...

    def find_by_registration_number(self, number: str) -> Offender | None: ...

    def find_by_name_and_postcode(self, normalized_name: str, postcode: str) -> Offender | None: ...

    def find_by_normalized_name(self, normalized_name: str) -> list[Offender]: ...

    def fuzzy_candidates(self, normalized_name: str, *, limit: int = 50) -> list[Offender]: ...

    def save(self, offender: Offender) -> None: ...


@runtime_checkable
class EnforcementRecordRepository[TRecord: (EnforcementCase, EnforcementNotice)](
    Repository[TRecord], Protocol
):
    """Enforcement records keyed by ``(agency, regulator_id)``.

    ``add`` raises ``DuplicateRecordError`` on a key collision without poisoning the
    surrounding transaction.
    """

    def get_by_key(self, key: RecordKey) -> TRecord | None: ...

    def update_fields(
        self, record: TRecord, changes: Mapping[str, object], *, synced_at: datetime
    ) -> TRecord: ...

    def count_by_key(self, key: RecordKey) -> int: ...


@runtime_checkable
class CaseRepository(EnforcementRecordRepository[EnforcementCase], Protocol):
    """Repository contract for enforcement cases."""


@runtime_checkable
class NoticeRepository(EnforcementRecordRepository[EnforcementNotice], Protocol):
    """Repository contract for enforcement notices."""


@runtime_checkable
class MatchReviewRepository(Repository[OffenderMatchReview], Protocol):
    """At most one review exists per offender."""

    def get_for_offender(self, offender_id: UUID) -> OffenderMatchReview | None: ...

    def list_pending(self) -> list[OffenderMatchReview]: ...
