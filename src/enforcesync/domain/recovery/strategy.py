"""Pick a handling strategy for a classified failure."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from enforcesync.config.resilience import BackoffKind, CircuitBreakerSettings, RetryPolicy

from .taxonomy import Classification, ErrorContext, ErrorKind, Severity, categorize

RETRY_ATTEMPTS = 3
RETRY_BACKOFF_MS = 1000
RETRY_MAX_DELAY_MS = 30_000


class StrategyAction(StrEnum):
    RETRY = "retry"
    DEGRADE = "degrade"
    FAIL = "fail"
    ESCALATE = "escalate"
    HANDLE_BUSINESS_LOGIC = "handle_business_logic"
    CIRCUIT_BREAK = "circuit_break"


@dataclass(frozen=True, slots=True, kw_only=True)
class RecoveryAction:
    action: StrategyAction
    reason: str
    recoverable: bool | None = None
    notify_admin: bool = False
    user_facing: bool = False
    severity: Severity | None = None
    max_attempts: int | None = None
    backoff_ms: int | None = None
    exponential: bool = False
    cooldown_ms: int | None = None
    threshold: int | None = None
    fallback_action: str | None = None

    def retry_policy(self) -> RetryPolicy | None:
        """The retry policy this action asks for, if it is a retry."""

        if self.action is not StrategyAction.RETRY or self.max_attempts is None:
            return None
        base = self.backoff_ms or 0
        return RetryPolicy(
            max_attempts=self.max_attempts,
            base_delay_ms=base,
            max_delay_ms=max(base, RETRY_MAX_DELAY_MS),
            backoff=BackoffKind.EXPONENTIAL if self.exponential else BackoffKind.LINEAR,
        )


def determine_strategy(
    error: BaseException | Classification,
    context: ErrorContext | None = None,
    *,
    breaker: CircuitBreakerSettings | None = None,
) -> RecoveryAction:
    """Apply the strategy rules in priority order; the first matching rule wins."""

    classification = error if isinstance(error, Classification) else categorize(error)
    context = context or ErrorContext()
    breaker = breaker or CircuitBreakerSettings()
    kind = classification.kind

    if kind is ErrorKind.API:
        if context.consecutive_failures >= breaker.failure_threshold:
            return RecoveryAction(
                action=StrategyAction.CIRCUIT_BREAK,
                reason="too_many_failures",
                cooldown_ms=breaker.cooldown_ms,
                threshold=breaker.failure_threshold,
            )
        if context.critical is False:
            return RecoveryAction(
                action=StrategyAction.DEGRADE,
                reason="non_critical_failure",
                fallback_action="skip_operation",
            )
        return RecoveryAction(
            action=StrategyAction.RETRY,
            reason="retriable_error",
            max_attempts=RETRY_ATTEMPTS,
            backoff_ms=RETRY_BACKOFF_MS,
            exponential=True,
        )

    if kind is ErrorKind.DATABASE:
        if classification.subkind == "constraint_violation":
            return RecoveryAction(
                action=StrategyAction.FAIL,
                reason="constraint_violation",
                recoverable=False,
                notify_admin=True,
            )
        if context.critical is True:
            return RecoveryAction(
                action=StrategyAction.ESCALATE,
                reason="critical_database_error",
                notify_admin=True,
                severity=Severity.CRITICAL,
            )

    if kind is ErrorKind.VALIDATION:
        return RecoveryAction(
            action=StrategyAction.FAIL,
            reason="validation_failed",
            recoverable=False,
            user_facing=True,
        )

    if kind is ErrorKind.BUSINESS:
        return RecoveryAction(
            action=StrategyAction.HANDLE_BUSINESS_LOGIC,
            reason="business_rule_violation",
            recoverable=True,
        )

    return RecoveryAction(
        action=StrategyAction.ESCALATE,
        reason="unknown_error_type",
        notify_admin=True,
        severity=Severity.UNKNOWN,
    )


_TRANSIENT_DATABASE_SUBKINDS = frozenset({"timeout", "connection_closed"})
_NON_RETRYABLE_API_SUBKINDS = frozenset({"rate_limited", "circuit_open"})


def is_retryable(error: Exception) -> bool:
    """Retry predicate: transient API and storage failures only."""

    classification = categorize(error)
    if classification.kind is ErrorKind.API:
        return classification.subkind not in _NON_RETRYABLE_API_SUBKINDS
    if classification.kind is ErrorKind.DATABASE:
        return classification.subkind in _TRANSIENT_DATABASE_SUBKINDS
    return False
