"""Ingestion pipeline: normalize, resolve the offender, upsert.

Each record is stored in its own unit of work while a per-key lock is held, so an
interrupted run never leaves a partially written record behind. Outcome events are
published only after the transaction has committed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from functools import partial
from typing import TYPE_CHECKING

from enforcesync.config.errors import ConfigurationError
from enforcesync.config.ingestion import IngestionConfig
from enforcesync.domain.errors import (
    BusinessRuleError,
    IngestionError,
    IngestionEscalatedError,
    NormalizationError,
    RecordRejectedError,
    TransientIngestionError,
)
from enforcesync.domain.model import UpsertOutcome, utcnow
from enforcesync.domain.recovery import (
    AlertDispatcher,
    ErrorClassifier,
    ErrorContext,
    ErrorMetricsStore,
    StrategyAction,
    analyze_error_patterns,
    classify_sync_error,
    is_retryable,
)
from enforcesync.domain.resolution import GuardedCompanyLookup, OffenderResolver
from enforcesync.domain.upsert import UpsertEngine, Workflow
from enforcesync.resilience import KeyedLocks, ResilientExecutor

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping

    from enforcesync.domain.model import (
        Agency,
        Clock,
        EnforcementRecord,
        NormalizedRecord,
        Offender,
        RecordKind,
    )
    from enforcesync.domain.normalization import NormalizerRegistry
    from enforcesync.domain.ports import CompanyLookup, IngestionUnitOfWork
    from enforcesync.domain.recovery import (
        PatternAnalysis,
        RecoveryAction,
        RecoveryOrchestrator,
        SyncErrorClassification,
    )
    from enforcesync.domain.resolution import CompanyLookupResult, OffenderResolution
    from enforcesync.domain.upsert import EventBus, UpsertResult

log = logging.getLogger(__name__)

type RawRecord = Mapping[str, object]

_FAILURE_TYPES: dict[StrategyAction, type[IngestionError]] = {
    StrategyAction.FAIL: RecordRejectedError,
    StrategyAction.ESCALATE: IngestionEscalatedError,
    StrategyAction.HANDLE_BUSINESS_LOGIC: BusinessRuleError,
}


@dataclass(frozen=True, slots=True, kw_only=True)
class ProcessResult:
    record: EnforcementRecord
    outcome: UpsertOutcome
    resolution: OffenderResolution
    changed_fields: tuple[str, ...] = ()

    @property
    def offender(self) -> Offender:
        return self.resolution.offender


@dataclass(slots=True)
class IngestionSummary:
    created: int = 0
    updated: int = 0
    existing: int = 0
    errors: int = 0
    recovered: int = 0
    aborted: bool = False
    failures: list[IngestionError] = field(default_factory=list)

    @property
    def processed(self) -> int:
        return self.created + self.updated + self.existing

    def count(self, outcome: UpsertOutcome) -> None:
        if outcome is UpsertOutcome.CREATED:
            self.created += 1
        elif outcome is UpsertOutcome.UPDATED:
            self.updated += 1
        else:
            self.existing += 1


@dataclass(frozen=True, slots=True)
class _Stored:
    engine: UpsertEngine
    result: UpsertResult
    resolution: OffenderResolution


class IngestionPipeline:
    """One ingestion session for a single agency and record kind.

    Sessions are sequential; run several pipelines side by side (sharing the executor,
    metrics and locks) to ingest different agencies or kinds concurrently.
    """

    def __init__(
        self,
        *,
        agency: Agency,
        kind: RecordKind,
        normalizers: NormalizerRegistry,
        unit_of_work_factory: Callable[[], IngestionUnitOfWork],
        executor: ResilientExecutor | None = None,
        classifier: ErrorClassifier | None = None,
        error_metrics: ErrorMetricsStore | None = None,
        alerts: AlertDispatcher | None = None,
        recovery: RecoveryOrchestrator | None = None,
        events: EventBus | None = None,
        lookup: CompanyLookup | None = None,
        config: IngestionConfig | None = None,
        locks: KeyedLocks | None = None,
        workflow: Workflow = Workflow.INGESTION,
        clock: Clock = utcnow,
    ) -> None:
        if not normalizers.supports(agency, kind):
            raise ConfigurationError(f"No normalizer registered for {agency} {kind} records")
        self.agency = agency
        self.kind = kind
        self.config = config or IngestionConfig()
        self.executor = executor or ResilientExecutor()
        self.error_metrics = error_metrics or ErrorMetricsStore()
        self._normalizers = normalizers
        self._uow_factory = unit_of_work_factory
        self._classifier = classifier or ErrorClassifier(clock=clock)
        self._alerts = alerts or AlertDispatcher(clock=clock)
        self._recovery = recovery
        self._events = events
        self._lookup = (
            GuardedCompanyLookup(lookup, self.executor) if lookup is not None else None
        )
        self._locks = locks or KeyedLocks()
        self._workflow = workflow
        self._clock = clock
        self._operation = f"create_{kind}"
        self._consecutive_failures = 0
        self._history: list[SyncErrorClassification] = []

    def process_record(self, raw: RawRecord) -> ProcessResult:
        """Ingest one raw record; failures are raised as :class:`IngestionError`."""

        context = self._context()
        try:
            record = self._normalizers.normalize(self.agency, self.kind, raw)
        except NormalizationError as exc:
            raise self._failed(exc, context) from exc

        try:
            stored = self._store_resilient(record)
        except Exception as exc:
            action = self._classifier.strategy(exc, context)
            if action.action is not StrategyAction.HANDLE_BUSINESS_LOGIC:
                raise self._failed(exc, context, action=action) from exc
            log.info("Reconciling %s %s after %r", self.kind, record.key, exc)
            try:
                stored = self._store_resilient(record)
            except Exception as retry_exc:
                raise self._failed(retry_exc, context) from retry_exc

        self._consecutive_failures = 0
        stored.engine.notify(stored.result)
        return ProcessResult(
            record=stored.result.record,
            outcome=stored.result.outcome,
            resolution=stored.resolution,
            changed_fields=stored.result.changed_fields,
        )

    def ingest(self, records: Iterable[RawRecord]) -> IngestionSummary:
        """Process records in order, counting outcomes; stops when the circuit should break."""

        summary = IngestionSummary()
        for raw in records:
            try:
                result = self.process_record(raw)
            except IngestionError as exc:
                if exc.action.action is StrategyAction.CIRCUIT_BREAK:
                    summary.errors += 1
                    summary.failures.append(exc)
                    summary.aborted = True
                    log.error(
                        "Aborting %s %s ingestion after %s consecutive failures",
                        self.agency,
                        self.kind,
                        self._consecutive_failures,
                    )
                    break
                recovered = self._recover(raw, exc)
                if recovered is None:
                    summary.errors += 1
                    summary.failures.append(exc)
                    continue
                summary.recovered += 1
                result = recovered
            summary.count(result.outcome)

        log.info(
            "Finished %s %s ingestion: created=%s, updated=%s, existing=%s, errors=%s",
            self.agency,
            self.kind,
            summary.created,
            summary.updated,
            summary.existing,
            summary.errors,
        )
        return summary

    def error_patterns(self) -> PatternAnalysis:
        return analyze_error_patterns(self._history)

    def _store_resilient(self, record: NormalizedRecord) -> _Stored:
        return self.executor.call(
            self._operation,
            partial(self._store, record),
            policy="database_operations",
            retry_if=is_retryable,
        )

    def _store(self, record: NormalizedRecord) -> _Stored:
        with self._locks.hold(record.key):
            lookup = self._search_register(record)
            with self._uow_factory() as uow:
                return self._write(uow, record, lookup)

    def _search_register(self, record: NormalizedRecord) -> CompanyLookupResult | None:
        """Search the company register before the write transaction opens.

        Only subjects that would become new identities are searched. The short read
        transaction is closed before the remote call, so register waits and backoff
        never hold the store's write lock.
        """

        if self._lookup is None:
            return None
        with self._uow_factory() as uow:
            resolver = self._resolver(uow, lookup=self._lookup)
            needed = resolver.needs_company_lookup(record.offender)
        if not needed:
            return None
        return resolver.search_company(record.offender)

    def _write(
        self,
        uow: IngestionUnitOfWork,
        record: NormalizedRecord,
        lookup: CompanyLookupResult | None,
    ) -> _Stored:
        resolution = self._resolver(uow).resolve_or_create(
            record.offender, agency=record.key.agency, seen_on=record.action_date, lookup=lookup
        )
        repositories = uow.repositories
        engine = UpsertEngine(
            repositories.cases, repositories.notices, events=self._events, clock=self._clock
        )
        result = engine.process(record, resolution.offender, workflow=self._workflow, notify=False)
        uow.commit()
        return _Stored(engine, result, resolution)

    def _resolver(
        self, uow: IngestionUnitOfWork, *, lookup: CompanyLookup | None = None
    ) -> OffenderResolver:
        return OffenderResolver(
            uow.repositories.offenders,
            uow.repositories.reviews,
            lookup=lookup,
            config=self.config,
            clock=self._clock,
        )

    def _recover(self, raw: RawRecord, error: IngestionError) -> ProcessResult | None:
        if self._recovery is None or not isinstance(error, TransientIngestionError):
            return None
        outcome = self._recovery.recover(
            error.classified.error,
            self._context(),
            retry=partial(self.process_record, raw),
        )
        return outcome.value if outcome.success else None

    def _context(self) -> ErrorContext:
        return ErrorContext(
            operation=self._operation,
            agency=str(self.agency),
            resource_type=str(self.kind),
            critical=True,
            consecutive_failures=self._consecutive_failures,
            batch_size=self.config.batch_size,
        )

    def _failed(
        self,
        error: Exception,
        context: ErrorContext,
        *,
        action: RecoveryAction | None = None,
    ) -> IngestionError:
        classified = self._classifier.classify(error, context)
        action = action or self._classifier.strategy(classified, context)
        self.error_metrics.record_error(classified)
        self._history.append(classify_sync_error(error, context, clock=self._clock))
        self._consecutive_failures += 1

        if action.notify_admin:
            self._alerts.dispatch(classified, severity=action.severity)
        if action.action is StrategyAction.FAIL and action.user_facing:
            log.warning("Rejected %s record: %s", self.kind, classified.message)
        else:
            log.error(
                "%s record failed (%s, action=%s): %s",
                self.kind,
                classified.classification,
                action.action,
                classified.message,
            )

        failure_type = _FAILURE_TYPES.get(action.action, TransientIngestionError)
        return failure_type(
            f"{self.kind} record failed ({classified.classification}): {classified.message}",
            classified=classified,
            action=action,
        )
