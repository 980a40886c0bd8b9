"""Sync-aware classification: severity, retry eligibility and escalation for ingestion runs."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Final

from enforcesync.domain.model.base import utcnow

from .notifications import Channel, EscalationLevel, channels_for
from .taxonomy import Classification, ErrorContext, ErrorKind, Severity, categorize

if TYPE_CHECKING:
    from datetime import datetime

    from enforcesync.domain.model.base import Clock

IMPORT_OPERATIONS: Final = frozenset({"import_cases", "import_notices"})
CREATE_OPERATIONS: Final = frozenset({"create_case", "create_notice"})
WRITE_OPERATIONS: Final = CREATE_OPERATIONS | {"update_case", "update_notice"}

RETRY_FAILURE_CEILING = 5
ATTENTION_FAILURE_THRESHOLD = 3


class SyncCategory(StrEnum):
    NETWORK = "sync_network_error"
    DATA = "sync_data_error"
    PERFORMANCE = "sync_performance_error"
    VALIDATION = "sync_validation_error"
    BUSINESS = "sync_business_error"


class RetryStrategyType(StrEnum):
    EXPONENTIAL = "exponential_backoff"
    LINEAR = "linear_backoff"
    FIXED = "fixed_delay"
    NO_RETRY = "no_retry"


@dataclass(frozen=True, slots=True, kw_only=True)
class RetryStrategy:
    type: RetryStrategyType
    max_attempts: int = 0
    base_delay_ms: int = 0
    max_delay_ms: int = 0
    multiplier: float | None = None
    increment_ms: int | None = None
    jitter: bool = False
    reason: str | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class SyncErrorClassification:
    category: str
    subcategory: str
    severity: Severity
    recoverable: bool
    retry_eligible: bool
    retry_strategy: RetryStrategy
    requires_immediate_attention: bool
    notification_channels: tuple[Channel, ...]
    escalation_level: EscalationLevel
    operation: str
    resource_type: str
    error_fingerprint: str
    recovery_actions: tuple[str, ...]
    prevention_measures: tuple[str, ...]
    classified_at: datetime


_BASE_SEVERITY: dict[str, Severity] = {
    ErrorKind.DATABASE: Severity.HIGH,
    ErrorKind.API: Severity.MEDIUM,
    ErrorKind.VALIDATION: Severity.LOW,
    ErrorKind.BUSINESS: Severity.MEDIUM,
}

_RECOVERY_ACTIONS: dict[str, tuple[str, ...]] = {
    SyncCategory.NETWORK: (
        "Check network connectivity to the upstream API",
        "Verify API rate limits and current usage",
        "Consider implementing request throttling",
        "Retry with exponential backoff",
    ),
    SyncCategory.DATA: (
        "Review source data quality and constraints",
        "Check for duplicate records in source system",
        "Validate data transformations and mappings",
        "Consider data cleanup before retry",
    ),
    SyncCategory.PERFORMANCE: (
        "Reduce batch size to decrease load",
        "Check database connection pool status",
        "Monitor database performance metrics",
        "Consider processing during off-peak hours",
    ),
    SyncCategory.VALIDATION: (
        "Review validation rules for affected resource",
        "Check source data format and completeness",
        "Update data transformation logic if needed",
        "Skip invalid records and continue processing",
    ),
}
_DEFAULT_RECOVERY_ACTIONS = (
    "Review error details and context",
    "Check system logs for additional information",
    "Contact technical support if issue persists",
)

_PREVENTION_MEASURES: dict[str, tuple[str, ...]] = {
    SyncCategory.NETWORK: (
        "Implement circuit breaker pattern for API calls",
        "Add connection pooling and keep-alive settings",
        "Set up monitoring for API endpoint availability",
        "Create fallback mechanisms for critical operations",
    ),
    SyncCategory.DATA: (
        "Add pre-sync data validation checks",
        "Implement data quality scoring system",
        "Set up automated data integrity monitoring",
        "Create data cleanup workflows",
    ),
    SyncCategory.PERFORMANCE: (
        "Implement adaptive batch sizing based on load",
        "Add database performance monitoring",
        "Set up resource usage alerting",
        "Consider horizontal scaling options",
    ),
}
_DEFAULT_PREVENTION_MEASURES = (
    "Implement comprehensive error monitoring",
    "Add automated error pattern detection",
    "Set up proactive alerting systems",
)


def refine(classification: Classification, operation: str) -> tuple[str, str]:
    """Narrow a base classification using what the sync operation was doing."""

    kind, subkind = classification.kind, classification.subkind
    if kind is ErrorKind.API:
        if subkind == "timeout" and operation in IMPORT_OPERATIONS:
            return SyncCategory.NETWORK, "upstream_timeout"
        if subkind in {"connection_refused", "transport_error"}:
            return SyncCategory.NETWORK, "upstream_unreachable"
    if kind is ErrorKind.DATABASE:
        if subkind == "constraint_violation" and operation in CREATE_OPERATIONS:
            return SyncCategory.DATA, "constraint_violation"
        if subkind == "timeout" and operation in WRITE_OPERATIONS:
            return SyncCategory.PERFORMANCE, "database_overload"
    if kind is ErrorKind.VALIDATION and operation in CREATE_OPERATIONS:
        return SyncCategory.VALIDATION, "invalid_source_data"
    if (
        kind is ErrorKind.BUSINESS
        and subkind == "duplicate_entity"
        and operation in IMPORT_OPERATIONS
    ):
        return SyncCategory.BUSINESS, "duplicate_import"
    return kind, subkind


def sync_severity(category: str, subcategory: str, context: ErrorContext) -> Severity:
    if category == SyncCategory.DATA and subcategory == "constraint_violation":
        return Severity.CRITICAL
    if category == SyncCategory.PERFORMANCE and context.batch_size > 500:
        return Severity.HIGH
    if (
        category == SyncCategory.NETWORK
        and subcategory == "upstream_timeout"
        and context.consecutive_failures > 3
    ):
        return Severity.HIGH
    if category in {SyncCategory.NETWORK, SyncCategory.VALIDATION}:
        return Severity.MEDIUM
    if category == SyncCategory.BUSINESS and subcategory == "duplicate_import":
        return Severity.LOW
    return _BASE_SEVERITY.get(category, Severity.LOW)


def is_recoverable(category: str, subcategory: str) -> bool:
    if category in {SyncCategory.NETWORK, SyncCategory.PERFORMANCE, SyncCategory.VALIDATION}:
        return True
    if category == SyncCategory.BUSINESS:
        return subcategory == "duplicate_import"
    return False


def is_retry_eligible(category: str, context: ErrorContext) -> bool:
    if context.consecutive_failures >= RETRY_FAILURE_CEILING:
        return False
    return category in {SyncCategory.NETWORK, SyncCategory.PERFORMANCE}


def retry_strategy(category: str, context: ErrorContext) -> RetryStrategy:
    if not is_retry_eligible(category, context):
        return RetryStrategy(type=RetryStrategyType.NO_RETRY, reason="Error not eligible for retry")
    if category == SyncCategory.NETWORK:
        return RetryStrategy(
            type=RetryStrategyType.EXPONENTIAL,
            base_delay_ms=1000,
            max_delay_ms=30_000,
            multiplier=2.0,
            max_attempts=5,
            jitter=True,
        )
    if category == SyncCategory.PERFORMANCE:
        return RetryStrategy(
            type=RetryStrategyType.LINEAR,
            base_delay_ms=5000,
            max_delay_ms=60_000,
            increment_ms=5000,
            max_attempts=3,
        )
    return RetryStrategy(
        type=RetryStrategyType.FIXED,
        base_delay_ms=2000,
        max_delay_ms=2000,
        max_attempts=3,
    )


def escalation_level(severity: Severity, category: str) -> EscalationLevel:
    if severity is Severity.CRITICAL:
        return EscalationLevel.ENGINEERING_LEAD
    if severity is Severity.HIGH:
        if category == SyncCategory.DATA:
            return EscalationLevel.SENIOR_ENGINEER
        return EscalationLevel.TEAM_LEAD
    if severity is Severity.LOW:
        return EscalationLevel.MONITORING_ONLY
    return EscalationLevel.TEAM_NOTIFICATION


def sync_fingerprint(error: BaseException, context: ErrorContext) -> str:
    data = f"{type(error).__name__}:{context.operation}:{context.resource_type}"
    return hashlib.sha256(data.encode("utf-8")).hexdigest()[:16]


def classify_sync_error(
    error: BaseException,
    context: ErrorContext | None = None,
    *,
    clock: Clock = utcnow,
) -> SyncErrorClassification:
    """Full operational classification of a failure raised during an ingestion run."""

    context = context or ErrorContext()
    category, subcategory = refine(categorize(error), context.operation)
    severity = sync_severity(category, subcategory, context)
    return SyncErrorClassification(
        category=category,
        subcategory=subcategory,
        severity=severity,
        recoverable=is_recoverable(category, subcategory),
        retry_eligible=is_retry_eligible(category, context),
        retry_strategy=retry_strategy(category, context),
        requires_immediate_attention=(
            severity in {Severity.CRITICAL, Severity.HIGH}
            or context.consecutive_failures >= ATTENTION_FAILURE_THRESHOLD
            or category == SyncCategory.DATA
        ),
        notification_channels=channels_for(severity),
        escalation_level=escalation_level(severity, category),
        operation=context.operation,
        resource_type=context.resource_type,
        error_fingerprint=sync_fingerprint(error, context),
        recovery_actions=_RECOVERY_ACTIONS.get(category, _DEFAULT_RECOVERY_ACTIONS),
        prevention_measures=_PREVENTION_MEASURES.get(category, _DEFAULT_PREVENTION_MEASURES),
        classified_at=clock(),
    )
