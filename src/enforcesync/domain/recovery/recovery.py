"""Automatic remedies keyed by classification, plus the recovery report."""

from __future__ import annotations

import logging
import threading
import time
from collections import Counter
from dataclasses import dataclass, field
from datetime import timedelta
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from enforcesync.config.resilience import API_OPERATIONS
from enforcesync.domain.model.base import utcnow
from enforcesync.resilience.errors import RetryExhaustedError
from enforcesync.resilience.retry import retry_call

from .classifier import ErrorClassifier
from .metrics import ErrorMetricsStore
from .notifications import AlertDispatcher, EscalationLevel
from .taxonomy import Classification, ErrorContext, ErrorKind, Severity

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime

    from enforcesync.config.resilience import RetryPolicy
    from enforcesync.domain.model.base import Clock
    from enforcesync.resilience.retry import Sleeper

    from .classifier import ClassifiedError

log = logging.getLogger(__name__)

CONSTRAINT_SUGGESTED_ACTIONS = (
    "Review data integrity",
    "Check constraint definitions",
    "Validate input data",
)


class RecoveryStrategy(StrEnum):
    USE_FALLBACK = "use_fallback"
    RETRY_WITH_BACKOFF = "retry_with_backoff"
    MANUAL_INTERVENTION = "manual_intervention"
    ESCALATE = "escalate"


@dataclass(frozen=True, slots=True, kw_only=True)
class RecoveryPlan:
    strategy: RecoveryStrategy
    fallback_source: str | None = None
    data_freshness: str | None = None
    estimated_recovery_time_ms: int | None = None
    success_probability: float | None = None
    intervention_type: str | None = None
    admin_notification: str | None = None
    suggested_actions: tuple[str, ...] = ()
    escalation_level: EscalationLevel | None = None


def plan_recovery(classification: Classification, context: ErrorContext) -> RecoveryPlan:
    """Choose the automatic remedy for a classified failure."""

    if classification.kind is ErrorKind.API and context.has_cache:
        return RecoveryPlan(
            strategy=RecoveryStrategy.USE_FALLBACK,
            fallback_source="cache",
            data_freshness="stale",
        )
    if classification.kind is ErrorKind.API and classification.subkind == "timeout":
        return RecoveryPlan(
            strategy=RecoveryStrategy.RETRY_WITH_BACKOFF,
            estimated_recovery_time_ms=5000,
            success_probability=0.7,
        )
    if (
        classification.kind is ErrorKind.DATABASE
        and classification.subkind == "constraint_violation"
    ):
        return RecoveryPlan(
            strategy=RecoveryStrategy.MANUAL_INTERVENTION,
            intervention_type="data_correction",
            admin_notification="Database constraint violation requires manual review",
            suggested_actions=CONSTRAINT_SUGGESTED_ACTIONS,
        )
    return RecoveryPlan(
        strategy=RecoveryStrategy.ESCALATE,
        escalation_level=EscalationLevel.ENGINEERING_TEAM,
    )


@dataclass(frozen=True, slots=True, kw_only=True)
class RecoveryOutcome:
    error: ClassifiedError
    plan: RecoveryPlan
    success: bool
    detail: str
    value: Any = field(default=None, repr=False)
    recovered_at: datetime

    @property
    def requires_intervention(self) -> bool:
        return self.plan.strategy is RecoveryStrategy.MANUAL_INTERVENTION


@dataclass(frozen=True, slots=True, kw_only=True)
class RecoveryReport:
    period_start: datetime
    period_end: datetime
    total_recoveries: int
    successful_recoveries: int
    failed_recoveries: int
    success_rate: float
    by_strategy: dict[str, int]
    common_error_kinds: tuple[str, ...]
    pending_interventions: int
    recommendations: tuple[str, ...]
    outcomes: tuple[RecoveryOutcome, ...] = field(default=(), repr=False)


class RecoveryOrchestrator:
    """Run the remedy ``plan_recovery`` picks and keep a log of outcomes.

    ``retry`` and ``fallback`` are supplied per failure by the caller: the orchestrator
    decides whether to use them, never how to rebuild the failed operation.
    """

    def __init__(
        self,
        *,
        classifier: ErrorClassifier | None = None,
        metrics: ErrorMetricsStore | None = None,
        alerts: AlertDispatcher | None = None,
        retry_policy: RetryPolicy = API_OPERATIONS,
        sleep: Sleeper = time.sleep,
        clock: Clock = utcnow,
    ) -> None:
        self.classifier = classifier or ErrorClassifier(clock=clock)
        self.metrics = metrics or ErrorMetricsStore()
        self.alerts = alerts or AlertDispatcher(clock=clock)
        self._retry_policy = retry_policy
        self._sleep = sleep
        self._clock = clock
        self._lock = threading.Lock()
        self._outcomes: list[RecoveryOutcome] = []

    def recover(
        self,
        error: BaseException,
        context: ErrorContext | None = None,
        *,
        retry: Callable[[], Any] | None = None,
        fallback: Callable[[], Any] | None = None,
    ) -> RecoveryOutcome:
        context = context or ErrorContext()
        classified = self.classifier.classify(error, context)
        self.metrics.record_error(classified)
        plan = plan_recovery(classified.classification, context)
        log.info(
            "Recovering %s for %s with %s", classified.classification, context.operation, plan
        )

        success, detail, value = self._execute(classified, plan, context, retry, fallback)
        outcome = RecoveryOutcome(
            error=classified,
            plan=plan,
            success=success,
            detail=detail,
            value=value,
            recovered_at=self._clock(),
        )
        self.metrics.record_resolution(
            classified.error_id,
            success=success,
            strategy=plan.strategy,
            resolved_at=outcome.recovered_at,
        )
        with self._lock:
            self._outcomes.append(outcome)
        if success:
            log.info("Recovery of %s succeeded: %s", context.operation, detail)
        else:
            log.warning("Recovery of %s failed: %s", context.operation, detail)
        return outcome

    def _execute(
        self,
        classified: ClassifiedError,
        plan: RecoveryPlan,
        context: ErrorContext,
        retry: Callable[[], Any] | None,
        fallback: Callable[[], Any] | None,
    ) -> tuple[bool, str, Any]:
        if plan.strategy is RecoveryStrategy.USE_FALLBACK:
            if fallback is None:
                return False, "no fallback source available", None
            detail = f"served {plan.data_freshness} data from {plan.fallback_source}"
            return True, detail, fallback()

        if plan.strategy is RecoveryStrategy.RETRY_WITH_BACKOFF:
            if retry is None:
                return False, "no operation to retry", None
            try:
                value = retry_call(
                    retry,
                    self._retry_policy,
                    operation=f"recover:{context.operation}",
                    sleep=self._sleep,
                )
            except RetryExhaustedError as exc:
                return False, f"retry exhausted after {exc.attempts} attempt(s)", None
            return True, "operation succeeded on retry", value

        if plan.strategy is RecoveryStrategy.MANUAL_INTERVENTION:
            self.alerts.dispatch(classified, severity=Severity.HIGH)
            return False, plan.admin_notification or "manual intervention required", None

        self.alerts.dispatch(classified)
        return False, f"escalated to {plan.escalation_level}", None

    def outcomes(self) -> list[RecoveryOutcome]:
        with self._lock:
            return list(self._outcomes)

    def generate_report(self, *, period_hours: int = 24) -> RecoveryReport:
        end = self._clock()
        start = end - timedelta(hours=period_hours)
        outcomes = [o for o in self.outcomes() if o.recovered_at >= start]
        successful = sum(1 for outcome in outcomes if outcome.success)
        pending = sum(
            1 for outcome in outcomes if outcome.requires_intervention and not outcome.success
        )
        kinds = Counter(str(outcome.error.kind) for outcome in outcomes)
        return RecoveryReport(
            period_start=start,
            period_end=end,
            total_recoveries=len(outcomes),
            successful_recoveries=successful,
            failed_recoveries=len(outcomes) - successful,
            success_rate=successful / len(outcomes) if outcomes else 0.0,
            by_strategy=dict(Counter(str(outcome.plan.strategy) for outcome in outcomes)),
            common_error_kinds=tuple(
                f"{kind}: {count} occurrences" for kind, count in kinds.most_common(3)
            ),
            pending_interventions=pending,
            recommendations=_recommendations(outcomes, pending),
            outcomes=tuple(outcomes),
        )


def _recommendations(outcomes: list[RecoveryOutcome], pending: int) -> tuple[str, ...]:
    recommendations: list[str] = []
    if pending:
        recommendations.append(f"Resolve {pending} pending manual intervention(s)")
    escalated = sum(1 for o in outcomes if o.plan.strategy is RecoveryStrategy.ESCALATE)
    if escalated:
        recommendations.append(f"Investigate {escalated} escalated error(s) with engineering")
    failed_retries = sum(
        1
        for outcome in outcomes
        if outcome.plan.strategy is RecoveryStrategy.RETRY_WITH_BACKOFF and not outcome.success
    )
    if failed_retries:
        recommendations.append("Review upstream availability: retries did not recover")
    if outcomes and sum(1 for o in outcomes if o.success) / len(outcomes) < 0.5:
        recommendations.append("Consider implementing additional automated recovery strategies")
    recommendations.append("Continue monitoring recovery system performance")
    return tuple(recommendations)
