"""Classify failures, locate where they were raised and fingerprint them."""

from __future__ import annotations

import hashlib
import secrets
import traceback
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from enforcesync.domain.model.base import utcnow

from .notifications import severity_for
from .strategy import RecoveryAction, determine_strategy
from .taxonomy import Classification, ErrorContext, ErrorKind, Severity, categorize

if TYPE_CHECKING:
    from datetime import datetime

    from enforcesync.config.resilience import CircuitBreakerSettings
    from enforcesync.domain.model.base import Clock

UNKNOWN_LOCATION = ("unknown", 0)


def source_location(error: BaseException) -> tuple[str, int]:
    """File and line of the innermost frame that raised ``error``."""

    frames = traceback.extract_tb(error.__traceback__) if error.__traceback__ else []
    if not frames:
        return UNKNOWN_LOCATION
    frame = frames[-1]
    return frame.filename, frame.lineno or 0


def fingerprint(classification: Classification, operation: str, file: str, line: int) -> str:
    data = f"{classification.kind}:{classification.subkind}:{operation}:{file}:{line}"
    return hashlib.sha256(data.encode("utf-8")).hexdigest()


def new_error_id() -> str:
    return secrets.token_hex(8)


@dataclass(frozen=True, slots=True, kw_only=True)
class ClassifiedError:
    classification: Classification
    operation: str
    agency: str | None
    severity: Severity
    fingerprint: str
    source_file: str
    source_line: int
    message: str
    occurred_at: datetime
    error_id: str = field(default_factory=new_error_id)
    error: BaseException = field(repr=False, compare=False)

    @property
    def kind(self) -> ErrorKind:
        return self.classification.kind

    @property
    def subkind(self) -> str:
        return self.classification.subkind


class ErrorClassifier:
    """Classify failures against the taxonomy and pick their handling strategy."""

    def __init__(
        self,
        *,
        breaker: CircuitBreakerSettings | None = None,
        clock: Clock = utcnow,
    ) -> None:
        self._breaker = breaker
        self._clock = clock

    def classify(
        self,
        error: BaseException,
        context: ErrorContext | None = None,
    ) -> ClassifiedError:
        context = context or ErrorContext()
        classification = categorize(error)
        file, line = source_location(error)
        return ClassifiedError(
            classification=classification,
            operation=context.operation,
            agency=context.agency,
            severity=severity_for(classification.kind),
            fingerprint=fingerprint(classification, context.operation, file, line),
            source_file=file,
            source_line=line,
            message=str(error) or type(error).__name__,
            occurred_at=self._clock(),
            error=error,
        )

    def strategy(
        self,
        error: BaseException | ClassifiedError,
        context: ErrorContext | None = None,
    ) -> RecoveryAction:
        target = error.classification if isinstance(error, ClassifiedError) else error
        return determine_strategy(target, context, breaker=self._breaker)
