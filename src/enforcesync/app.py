"""Application orchestration entry points."""

from __future__ import annotations

from collections.abc import Callable
from logging import getLogger
from typing import TYPE_CHECKING

from enforcesync.adapters.companies_house import CompaniesHouseClient
from enforcesync.adapters.ea import parse_ea_case
from enforcesync.adapters.hse import parse_hse_case, parse_hse_notice
from enforcesync.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyIngestionUnitOfWork,
    is_started,
    startup,
)
from enforcesync.config import (
    companies_house_enabled,
    get_companies_house_config,
    get_ingestion_config,
)
from enforcesync.domain.errors import (
    ConstraintViolationError,
    NormalizationError,
    SyncFailureError,
)
from enforcesync.domain.model import Agency, RecordKind
from enforcesync.domain.normalization import NormalizerRegistry
from enforcesync.domain.pipeline import IngestionPipeline, IngestionSummary
from enforcesync.domain.ports import IngestionUnitOfWork
from enforcesync.domain.recovery import (
    AlertDispatcher,
    ErrorClassifier,
    ErrorMetricsStore,
    RecoveryOrchestrator,
)
from enforcesync.resilience import CircuitBreakerRegistry, KeyedLocks, ResilientExecutor

if TYPE_CHECKING:
    from collections.abc import Iterable

    from enforcesync.config import IngestionConfig
    from enforcesync.domain.pipeline import RawRecord
    from enforcesync.domain.ports import CompanyLookup
    from enforcesync.domain.upsert import EventBus

UnitOfWorkFactory = Callable[[], IngestionUnitOfWork]

# failures that never count against a circuit
BREAKER_IGNORED_ERRORS: tuple[type[BaseException], ...] = (
    NormalizationError,
    ConstraintViolationError,
    SyncFailureError,
)

log = getLogger(__name__)


def build_normalizer_registry() -> NormalizerRegistry:
    registry = NormalizerRegistry()
    registry.register(Agency.EA, RecordKind.CASE, parse_ea_case)
    registry.register(Agency.HSE, RecordKind.CASE, parse_hse_case)
    registry.register(Agency.HSE, RecordKind.NOTICE, parse_hse_notice)
    return registry


def build_executor() -> ResilientExecutor:
    """Executor shared by every pipeline in the process."""

    return ResilientExecutor(
        breakers=CircuitBreakerRegistry(ignore_exceptions=BREAKER_IGNORED_ERRORS)
    )


def build_company_lookup() -> CompanyLookup | None:
    if not companies_house_enabled():
        log.info("COMPANIES_HOUSE_API_KEY not set; company register lookups disabled")
        return None
    return CompaniesHouseClient(config=get_companies_house_config())


def create_pipeline(
    agency: Agency,
    kind: RecordKind,
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    executor: ResilientExecutor | None = None,
    lookup: CompanyLookup | None = None,
    events: EventBus | None = None,
    config: IngestionConfig | None = None,
    locks: KeyedLocks | None = None,
) -> IngestionPipeline:
    """Wire an ingestion pipeline for ``agency``/``kind`` records."""

    classifier = ErrorClassifier()
    error_metrics = ErrorMetricsStore()
    alerts = AlertDispatcher()
    recovery = RecoveryOrchestrator(classifier=classifier, metrics=error_metrics, alerts=alerts)
    return IngestionPipeline(
        agency=agency,
        kind=kind,
        normalizers=build_normalizer_registry(),
        unit_of_work_factory=unit_of_work_factory or SqlAlchemyIngestionUnitOfWork,
        executor=executor or build_executor(),
        classifier=classifier,
        error_metrics=error_metrics,
        alerts=alerts,
        recovery=recovery,
        events=events,
        lookup=lookup,
        config=config or get_ingestion_config(),
        locks=locks,
    )


def ingest_records(
    agency: Agency,
    kind: RecordKind,
    records: Iterable[RawRecord],
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    lookup: CompanyLookup | None = None,
    use_company_register: bool = True,
) -> IngestionSummary:
    """Ingest raw agency records into the configured database."""

    if unit_of_work_factory is None and not is_started():
        startup()
    if lookup is None and use_company_register:
        lookup = build_company_lookup()
    pipeline = create_pipeline(
        agency, kind, unit_of_work_factory=unit_of_work_factory, lookup=lookup
    )
    log.info("Starting %s %s ingestion", agency, kind)
    summary = pipeline.ingest(records)

    report = pipeline.executor.metrics.performance_report()
    log.info(
        "Retry performance: success_rate=%.2f, average_attempts=%.2f",
        report.overall_success_rate,
        report.average_attempts,
    )
    for pattern in pipeline.error_metrics.common_patterns():
        log.info("Common error pattern: %s", pattern)
    return summary
