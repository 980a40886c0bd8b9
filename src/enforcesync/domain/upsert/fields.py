"""Synchronizable fields and the normalized diff between stored and incoming records."""

from __future__ import annotations

from typing import TYPE_CHECKING, Final

from enforcesync.domain.model import RecordKind
from enforcesync.domain.normalization import normalize_text_field

if TYPE_CHECKING:
    from enforcesync.domain.model import EnforcementRecord, NormalizedRecord

CASE_SYNC_FIELDS: Final = (
    "offence_result",
    "offence_fine",
    "offence_costs",
    "offence_hearing_date",
    "regulator_url",
    "related_cases",
)
NOTICE_SYNC_FIELDS: Final = (
    "notice_date",
    "operative_date",
    "compliance_date",
    "notice_body",
    "offence_breaches",
    "regulator_url",
)

_SYNC_FIELDS: Final[dict[RecordKind, tuple[str, ...]]] = {
    RecordKind.CASE: CASE_SYNC_FIELDS,
    RecordKind.NOTICE: NOTICE_SYNC_FIELDS,
}


def sync_fields_for(kind: RecordKind) -> tuple[str, ...]:
    return _SYNC_FIELDS[kind]


def diff_sync_fields(existing: EnforcementRecord, incoming: NormalizedRecord) -> dict[str, object]:
    """Synchronizable fields whose normalized incoming value differs from the stored one.

    An incoming value that normalizes to ``None`` never clears a stored value.
    """

    changes: dict[str, object] = {}
    for name in sync_fields_for(incoming.KIND):
        new_value = normalize_text_field(getattr(incoming, name))
        if new_value is None:
            continue
        if new_value != normalize_text_field(getattr(existing, name)):
            changes[name] = new_value
    return changes
