"""Typed failures raised across the ingestion pipeline."""

from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from enforcesync.domain.model import RecordKey
    from enforcesync.domain.recovery import ClassifiedError, RecoveryAction


class EnforceSyncError(RuntimeError):
    """Base class for pipeline failures."""


class NormalizationError(EnforceSyncError):
    """Raised when a raw record cannot be mapped onto the canonical schema."""

    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class PersistenceError(EnforceSyncError):
    """Raised for storage failures that are not constraint violations."""


class ConstraintCode(StrEnum):
    UNIQUE = "unique"
    FOREIGN_KEY = "foreign_key"
    NOT_NULL = "not_null"
    CHECK = "check"
    UNKNOWN = "unknown"


class ConstraintViolationError(PersistenceError):
    """A write was rejected by a store constraint; carries a structured code."""

    def __init__(
        self,
        message: str,
        *,
        code: ConstraintCode,
        constraint: str | None = None,
        columns: tuple[str, ...] = (),
    ) -> None:
        super().__init__(message)
        self.code = code
        self.constraint = constraint
        self.columns = columns


class DuplicateRecordError(ConstraintViolationError):
    """Insert collided with an existing record on ``(agency, regulator_id)``."""

    def __init__(self, key: RecordKey, *, constraint: str | None = None) -> None:
        super().__init__(
            f"Record {key} already exists",
            code=ConstraintCode.UNIQUE,
            constraint=constraint,
            columns=("agency", "regulator_id"),
        )
        self.key = key


class DuplicateOffenderError(ConstraintViolationError):
    """Insert collided with an existing offender identity."""

    def __init__(self, name: str, *, constraint: str | None = None) -> None:
        super().__init__(
            f"Offender {name!r} already exists",
            code=ConstraintCode.UNIQUE,
            constraint=constraint,
            columns=("normalized_name", "postcode"),
        )
        self.name = name


class RecordNotFoundError(PersistenceError):
    """A record reported as duplicate could not be read back."""


class SyncFailureError(EnforceSyncError):
    """A business rule prevented a record from being synchronised."""


class ExternalLookupError(EnforceSyncError):
    """A company-register lookup failed; resolution continues without it."""


class IngestionError(EnforceSyncError):
    """A record could not be ingested; carries its classification and handling strategy."""

    def __init__(
        self, message: str, *, classified: ClassifiedError, action: RecoveryAction
    ) -> None:
        super().__init__(message)
        self.classified = classified
        self.action = action

    @property
    def fingerprint(self) -> str:
        return self.classified.fingerprint


class RecordRejectedError(IngestionError):
    """The record is invalid or violates a constraint; retrying will not help."""


class TransientIngestionError(IngestionError):
    """An upstream or storage dependency kept failing; the record may be retried later."""


class IngestionEscalatedError(IngestionError):
    """An unknown or critical failure that needs an operator."""


class BusinessRuleError(IngestionError):
    """A business rule still failed after reconciling the record."""
