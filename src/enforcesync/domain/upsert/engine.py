"""Duplicate-safe create-or-update of enforcement records.

The insert is attempted first; a typed duplicate-key failure switches to reading the stored
record and updating only the synchronizable fields that differ. Nothing is written when no
field differs, so the stored ``updated_at`` is left untouched. Repeating the update step is
harmless, which lets racing writers on the same key converge.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import singledispatch
from typing import TYPE_CHECKING

from enforcesync.domain.errors import DuplicateRecordError, RecordNotFoundError
from enforcesync.domain.model import (
    EnforcementCase,
    EnforcementNotice,
    NormalizedCase,
    NormalizedNotice,
    RecordKind,
    UpsertOutcome,
    utcnow,
)

from .events import EventBus, OutcomeEvent, Workflow, channel_for
from .fields import diff_sync_fields

if TYPE_CHECKING:
    from uuid import UUID

    from enforcesync.domain.model import Clock, EnforcementRecord, NormalizedRecord, Offender
    from enforcesync.domain.ports import CaseRepository, NoticeRepository
    from enforcesync.domain.ports.persistence import EnforcementRecordRepository

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True, kw_only=True)
class UpsertResult:
    record: EnforcementRecord
    outcome: UpsertOutcome
    workflow: Workflow = Workflow.INGESTION
    changed_fields: tuple[str, ...] = ()


class UpsertEngine:
    def __init__(
        self,
        cases: CaseRepository,
        notices: NoticeRepository,
        *,
        events: EventBus | None = None,
        clock: Clock = utcnow,
    ) -> None:
        self._repositories: dict[RecordKind, EnforcementRecordRepository] = {
            RecordKind.CASE: cases,
            RecordKind.NOTICE: notices,
        }
        self._events = events
        self._clock = clock

    def process(
        self,
        record: NormalizedRecord,
        offender: Offender,
        *,
        workflow: Workflow = Workflow.INGESTION,
        notify: bool = True,
    ) -> UpsertResult:
        """Create, update or leave alone the record stored under ``record.key``.

        Failures other than a duplicate key propagate unchanged. With ``notify=False`` the
        caller publishes via :meth:`notify` once its transaction has committed.
        """

        repository = self._repositories[record.KIND]
        entity = to_entity(record, offender_id=offender.id)
        entity.last_synced_at = self._clock()
        try:
            repository.add(entity)
        except DuplicateRecordError:
            result = self._reconcile(repository, record, workflow=workflow)
        else:
            log.debug("Created %s %s", record.KIND, record.key)
            result = UpsertResult(record=entity, outcome=UpsertOutcome.CREATED, workflow=workflow)

        if notify:
            self.notify(result)
        return result

    def notify(self, result: UpsertResult) -> None:
        if self._events is None:
            return
        self._events.publish(
            OutcomeEvent(
                channel=channel_for(result.record.KIND, result.outcome, result.workflow),
                outcome=result.outcome,
                workflow=result.workflow,
                record=result.record,
                changed_fields=result.changed_fields,
            )
        )

    def _reconcile(
        self,
        repository: EnforcementRecordRepository,
        record: NormalizedRecord,
        *,
        workflow: Workflow,
    ) -> UpsertResult:
        existing = repository.get_by_key(record.key)
        if existing is None:
            raise RecordNotFoundError(
                f"{record.KIND} {record.key} reported as duplicate but missing"
            )

        changes = diff_sync_fields(existing, record)
        if not changes:
            log.debug("%s %s unchanged", record.KIND, record.key)
            return UpsertResult(record=existing, outcome=UpsertOutcome.EXISTING, workflow=workflow)

        updated = repository.update_fields(existing, changes, synced_at=self._clock())
        log.info("Updated %s %s fields: %s", record.KIND, record.key, ", ".join(changes))
        return UpsertResult(
            record=updated,
            outcome=UpsertOutcome.UPDATED,
            workflow=workflow,
            changed_fields=tuple(changes),
        )


@singledispatch
def to_entity(record: object, *, offender_id: UUID) -> EnforcementRecord:
    raise TypeError(f"Unsupported record type: {type(record).__name__}")


@to_entity.register(NormalizedCase)
def _(record: NormalizedCase, *, offender_id: UUID) -> EnforcementRecord:
    return EnforcementCase.from_normalized(record, offender_id=offender_id)


@to_entity.register(NormalizedNotice)
def _(record: NormalizedNotice, *, offender_id: UUID) -> EnforcementRecord:
    return EnforcementNotice.from_normalized(record, offender_id=offender_id)
