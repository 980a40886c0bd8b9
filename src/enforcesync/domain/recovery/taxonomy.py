"""Failure taxonomy: every error surfaced by the pipeline maps onto ``(kind, subkind)``."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from functools import singledispatch

import httpx
import pydantic
from sqlalchemy import exc as sa_exc

from enforcesync.config.errors import ConfigurationError
from enforcesync.domain.errors import (
    ConstraintViolationError,
    DuplicateOffenderError,
    DuplicateRecordError,
    ExternalLookupError,
    NormalizationError,
    PersistenceError,
    SyncFailureError,
)
from enforcesync.resilience.errors import CircuitOpenError, RateLimitedError, RetryExhaustedError


class ErrorKind(StrEnum):
    API = "api_error"
    DATABASE = "database_error"
    VALIDATION = "validation_error"
    BUSINESS = "business_error"
    APPLICATION = "application_error"


class Severity(StrEnum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    UNKNOWN = "unknown"


@dataclass(frozen=True, slots=True)
class Classification:
    kind: ErrorKind
    subkind: str

    def __str__(self) -> str:
        return f"{self.kind}:{self.subkind}"


@dataclass(frozen=True, slots=True, kw_only=True)
class ErrorContext:
    """What the caller knows about the failed operation.

    ``critical`` is tri-state: only an explicit ``False`` lets an API failure degrade, and
    only an explicit ``True`` escalates a non-constraint database failure as critical.
    """

    operation: str = "unknown"
    agency: str | None = None
    resource_type: str = "unknown"
    critical: bool | None = None
    consecutive_failures: int = 0
    has_cache: bool = False
    batch_size: int = 0
    total_records: int = 0


@singledispatch
def categorize(error: BaseException) -> Classification:
    """Map an exception onto the failure taxonomy."""

    return Classification(ErrorKind.APPLICATION, "unknown_error")


@categorize.register(httpx.TimeoutException)
def _(error: httpx.TimeoutException) -> Classification:
    return Classification(ErrorKind.API, "timeout")


@categorize.register(httpx.ConnectError)
def _(error: httpx.ConnectError) -> Classification:
    message = str(error).lower()
    if "ssl" in message or "certificate" in message:
        return Classification(ErrorKind.API, "ssl_error")
    return Classification(ErrorKind.API, "connection_refused")


@categorize.register(httpx.TransportError)
def _(error: httpx.TransportError) -> Classification:
    return Classification(ErrorKind.API, "transport_error")


@categorize.register(httpx.HTTPStatusError)
def _(error: httpx.HTTPStatusError) -> Classification:
    if error.response.status_code == httpx.codes.TOO_MANY_REQUESTS:
        return Classification(ErrorKind.API, "rate_limited")
    return Classification(ErrorKind.API, "transport_error")


@categorize.register(RateLimitedError)
def _(error: RateLimitedError) -> Classification:
    return Classification(ErrorKind.API, "rate_limited")


@categorize.register(CircuitOpenError)
def _(error: CircuitOpenError) -> Classification:
    return Classification(ErrorKind.API, "circuit_open")


@categorize.register(ExternalLookupError)
def _(error: ExternalLookupError) -> Classification:
    cause = error.__cause__
    if isinstance(cause, Exception):
        nested = categorize(cause)
        if nested.kind is ErrorKind.API:
            return nested
    return Classification(ErrorKind.API, "transport_error")


@categorize.register(RetryExhaustedError)
def _(error: RetryExhaustedError) -> Classification:
    return categorize(error.last_error)


@categorize.register(sa_exc.IntegrityError)
def _(error: sa_exc.IntegrityError) -> Classification:
    return Classification(ErrorKind.DATABASE, "constraint_violation")


@categorize.register(sa_exc.DBAPIError)
def _(error: sa_exc.DBAPIError) -> Classification:
    message = str(error.orig if error.orig is not None else error).lower()
    if "connection closed" in message or error.connection_invalidated:
        return Classification(ErrorKind.DATABASE, "connection_closed")
    if "timeout" in message or "timed out" in message:
        return Classification(ErrorKind.DATABASE, "timeout")
    return Classification(ErrorKind.DATABASE, "query_error")


@categorize.register(sa_exc.DisconnectionError)
@categorize.register(sa_exc.TimeoutError)
def _(error: sa_exc.SQLAlchemyError) -> Classification:
    return Classification(ErrorKind.DATABASE, "timeout")


@categorize.register(sa_exc.SQLAlchemyError)
def _(error: sa_exc.SQLAlchemyError) -> Classification:
    return Classification(ErrorKind.DATABASE, "query_error")


@categorize.register(PersistenceError)
def _(error: PersistenceError) -> Classification:
    return Classification(ErrorKind.DATABASE, "query_error")


@categorize.register(ConstraintViolationError)
def _(error: ConstraintViolationError) -> Classification:
    return Classification(ErrorKind.DATABASE, "constraint_violation")


@categorize.register(DuplicateRecordError)
@categorize.register(DuplicateOffenderError)
def _(error: ConstraintViolationError) -> Classification:
    return Classification(ErrorKind.BUSINESS, "duplicate_entity")


@categorize.register(SyncFailureError)
def _(error: SyncFailureError) -> Classification:
    return Classification(ErrorKind.BUSINESS, "sync_failure")


@categorize.register(NormalizationError)
def _(error: NormalizationError) -> Classification:
    return Classification(ErrorKind.VALIDATION, "invalid_record")


@categorize.register(pydantic.ValidationError)
def _(error: pydantic.ValidationError) -> Classification:
    return Classification(ErrorKind.VALIDATION, "schema_validation")


@categorize.register(ConfigurationError)
def _(error: ConfigurationError) -> Classification:
    return Classification(ErrorKind.APPLICATION, "configuration_error")


@categorize.register(RuntimeError)
def _(error: RuntimeError) -> Classification:
    return Classification(ErrorKind.APPLICATION, "runtime_error")


@categorize.register(ValueError)
@categorize.register(TypeError)
def _(error: Exception) -> Classification:
    return Classification(ErrorKind.APPLICATION, "argument_error")
