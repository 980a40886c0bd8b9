"""Dispatch raw agency records to the normalizer registered for them."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from enforcesync.domain.errors import NormalizationError

if TYPE_CHECKING:
    from collections.abc import Mapping

    from enforcesync.domain.model import Agency, NormalizedRecord, RecordKind

log = logging.getLogger(__name__)


@runtime_checkable
class RecordNormalizer(Protocol):
    """Map one raw agency record onto the canonical schema.

    Raises ``NormalizationError`` when required fields are missing or malformed.
    """

    def __call__(self, raw: Mapping[str, object]) -> NormalizedRecord: ...


class NormalizerRegistry:
    def __init__(self) -> None:
        self._normalizers: dict[tuple[Agency, RecordKind], RecordNormalizer] = {}

    def register(self, agency: Agency, kind: RecordKind, normalizer: RecordNormalizer) -> None:
        self._normalizers[(agency, kind)] = normalizer

    def supports(self, agency: Agency, kind: RecordKind) -> bool:
        return (agency, kind) in self._normalizers

    def normalize(
        self, agency: Agency, kind: RecordKind, raw: Mapping[str, object]
    ) -> NormalizedRecord:
        normalizer = self._normalizers.get((agency, kind))
        if normalizer is None:
            raise NormalizationError(f"No normalizer registered for {agency} {kind} records")
        record = normalizer(raw)
        log.debug("Normalized %s %s record %s", agency, kind, record.key)
        return record
