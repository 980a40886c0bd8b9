from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal
from typing import TYPE_CHECKING, NoReturn

import httpx
import pytest
from sqlalchemy import exc as sa_exc
from sqlalchemy import text

from enforcesync.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyIngestionUnitOfWork,
    shutdown,
    startup,
)
from enforcesync.app import build_normalizer_registry, create_pipeline
from enforcesync.config import (
    CircuitBreakerSettings,
    ConfigurationError,
    IngestionConfig,
    RetryPolicy,
)
from enforcesync.domain.errors import IngestionEscalatedError, RecordRejectedError
from enforcesync.domain.model import Agency, RecordKey, RecordKind, UpsertOutcome
from enforcesync.domain.pipeline import IngestionPipeline
from enforcesync.domain.recovery import RecoveryOrchestrator, StrategyAction
from enforcesync.domain.upsert import ALL_CHANNELS, EventBus, OutcomeEvent
from enforcesync.resilience import CircuitBreakerRegistry, KeyedLocks, ResilientExecutor
from tests.helpers.clock import FakeMonotonic, RecordingSleeper
from tests.helpers.fakes import FakeCompanyLookup, company
from tests.helpers.records import ea_record, hse_case_record

if TYPE_CHECKING:
    from collections.abc import Callable

    from sqlalchemy.engine import Engine

    from enforcesync.domain.ports import CompanyRecord

    from tests.helpers.clock import FakeClock

type UnitOfWorkFactory = Callable[[], SqlAlchemyIngestionUnitOfWork]


class FlakyUnitOfWork:
    """Unit-of-work factory whose first ``failures`` calls raise ``error``."""

    def __init__(
        self,
        factory: UnitOfWorkFactory,
        error: Callable[[], Exception],
        *,
        failures: int,
    ) -> None:
        self.factory = factory
        self.error = error
        self.failures = failures
        self.calls = 0

    def __call__(self) -> SqlAlchemyIngestionUnitOfWork:
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error()
        return self.factory()


def _executor(sleeper: RecordingSleeper, *, threshold: int = 5) -> ResilientExecutor:
    return ResilientExecutor(
        breakers=CircuitBreakerRegistry(
            default_settings=CircuitBreakerSettings(failure_threshold=threshold),
            clock=FakeMonotonic(),
        ),
        sleep=sleeper,
    )


def _hse_pipeline(
    factory: UnitOfWorkFactory,
    *,
    executor: ResilientExecutor | None = None,
    events: EventBus | None = None,
) -> IngestionPipeline:
    return create_pipeline(
        Agency.HSE,
        RecordKind.CASE,
        unit_of_work_factory=factory,
        executor=executor or _executor(RecordingSleeper()),
        events=events,
        config=IngestionConfig(),
    )


def test_pipeline_requires_a_registered_normalizer(
    sqlite_unit_of_work: UnitOfWorkFactory,
) -> None:
    with pytest.raises(ConfigurationError, match="No normalizer"):
        IngestionPipeline(
            agency=Agency.EA,
            kind=RecordKind.NOTICE,
            normalizers=build_normalizer_registry(),
            unit_of_work_factory=sqlite_unit_of_work,
        )


def test_ingest_creates_then_reports_existing_and_updated(
    sqlite_unit_of_work: UnitOfWorkFactory,
) -> None:
    records = [
        hse_case_record(),
        hse_case_record(regulator_id="4759899", offender_name="Harbour Cranes Ltd"),
    ]

    first = _hse_pipeline(sqlite_unit_of_work).ingest(records)
    second = _hse_pipeline(sqlite_unit_of_work).ingest(records)
    third = _hse_pipeline(sqlite_unit_of_work).ingest([hse_case_record(offence_fine="9,500")])

    assert (first.created, first.existing, first.errors) == (2, 0, 0)
    assert (second.created, second.existing, second.updated) == (0, 2, 0)
    assert (third.updated, third.processed) == (1, 1)
    with sqlite_unit_of_work() as uow:
        stored = uow.repositories.cases.get_by_key(RecordKey(Agency.HSE, "4759832"))
        assert stored is not None
        assert str(stored.offence_fine) == "9500.00"


def test_process_record_returns_resolution_and_changes(
    sqlite_unit_of_work: UnitOfWorkFactory,
) -> None:
    pipeline = _hse_pipeline(sqlite_unit_of_work)

    created = pipeline.process_record(hse_case_record())
    updated = pipeline.process_record(hse_case_record(offence_result="Guilty on appeal"))

    assert created.outcome is UpsertOutcome.CREATED
    assert updated.outcome is UpsertOutcome.UPDATED
    assert updated.changed_fields == ("offence_result",)
    assert updated.offender.id == created.offender.id
    assert updated.record.offender_id == created.offender.id


def test_ea_records_are_ingested(sqlite_unit_of_work: UnitOfWorkFactory) -> None:
    pipeline = create_pipeline(
        Agency.EA,
        RecordKind.CASE,
        unit_of_work_factory=sqlite_unit_of_work,
        executor=_executor(RecordingSleeper()),
        config=IngestionConfig(),
    )

    result = pipeline.process_record(ea_record())

    assert result.outcome is UpsertOutcome.CREATED
    assert result.offender.company_registration_number == "01234567"


def test_events_are_published_after_commit(sqlite_unit_of_work: UnitOfWorkFactory) -> None:
    received: list[OutcomeEvent] = []
    events = EventBus()
    events.subscribe(ALL_CHANNELS, received.append)
    pipeline = _hse_pipeline(sqlite_unit_of_work, events=events)

    pipeline.ingest([hse_case_record(), hse_case_record()])

    assert [event.channel for event in received] == ["case:created", "case:scraped:existing"]


def test_invalid_records_are_rejected_without_stopping(
    sqlite_unit_of_work: UnitOfWorkFactory,
) -> None:
    pipeline = _hse_pipeline(sqlite_unit_of_work)

    summary = pipeline.ingest([hse_case_record(regulator_id=" "), hse_case_record()])

    assert (summary.created, summary.errors, summary.aborted) == (1, 1, False)
    failure = summary.failures[0]
    assert isinstance(failure, RecordRejectedError)
    assert failure.action.action is StrategyAction.FAIL
    assert failure.classified.subkind == "invalid_record"
    assert pipeline.error_metrics.error_metrics().by_type == {"validation_error": 1}


def test_transient_storage_failures_are_retried(
    sqlite_unit_of_work: UnitOfWorkFactory,
) -> None:
    sleeper = RecordingSleeper()
    factory = FlakyUnitOfWork(
        sqlite_unit_of_work, lambda: sa_exc.TimeoutError("QueuePool limit reached"), failures=2
    )
    pipeline = _hse_pipeline(factory, executor=_executor(sleeper))

    summary = pipeline.ingest([hse_case_record()])

    assert (summary.created, summary.errors) == (1, 0)
    assert factory.calls == 3
    assert sleeper.calls == [0.5, 1.0]


def test_repeated_storage_failures_abort_the_run(sqlite_unit_of_work: UnitOfWorkFactory) -> None:
    def locked() -> NoReturn:
        raise sa_exc.OperationalError("BEGIN IMMEDIATE", {}, Exception("database is locked"))

    factory = FlakyUnitOfWork(sqlite_unit_of_work, locked, failures=100)
    pipeline = _hse_pipeline(factory)
    records = [hse_case_record(regulator_id=str(4_000_000 + n)) for n in range(7)]

    summary = pipeline.ingest(records)

    assert summary.aborted is True
    assert summary.errors == 6
    assert summary.processed == 0
    assert factory.calls == 5
    assert all(isinstance(f, IngestionEscalatedError) for f in summary.failures[:5])
    assert summary.failures[-1].action.action is StrategyAction.CIRCUIT_BREAK
    assert pipeline.error_patterns().total_errors == 6


def test_transient_failures_are_recovered_by_the_orchestrator(
    sqlite_unit_of_work: UnitOfWorkFactory, clock: FakeClock
) -> None:
    executor_sleeper = RecordingSleeper()
    factory = FlakyUnitOfWork(
        sqlite_unit_of_work, lambda: httpx.ReadTimeout("register timed out"), failures=5
    )
    recovery = RecoveryOrchestrator(
        retry_policy=RetryPolicy(max_attempts=2, base_delay_ms=100),
        sleep=RecordingSleeper(),
        clock=clock,
    )
    pipeline = IngestionPipeline(
        agency=Agency.HSE,
        kind=RecordKind.CASE,
        normalizers=build_normalizer_registry(),
        unit_of_work_factory=factory,
        executor=_executor(executor_sleeper, threshold=10),
        recovery=recovery,
        clock=clock,
    )

    summary = pipeline.ingest([hse_case_record()])

    assert (summary.created, summary.recovered, summary.errors) == (1, 1, 0)
    assert len(executor_sleeper.calls) == 4
    outcome = recovery.outcomes()[0]
    assert outcome.success is True
    assert outcome.detail == "operation succeeded on retry"


def test_parallel_sessions_store_each_record_once(sqlite_file_engine: Engine) -> None:
    startup(engine=sqlite_file_engine, force=True)
    executor = _executor(RecordingSleeper())
    locks = KeyedLocks()
    records = [
        hse_case_record(regulator_id=str(5_000_000 + n), offender_name=name)
        for n, name in enumerate(["Northern Scaffolding Limited", "Harbour Cranes Ltd"] * 3)
    ]

    def run_session() -> tuple[int, int, int]:
        pipeline = create_pipeline(
            Agency.HSE,
            RecordKind.CASE,
            unit_of_work_factory=SqlAlchemyIngestionUnitOfWork,
            executor=executor,
            config=IngestionConfig(),
            locks=locks,
        )
        summary = pipeline.ingest(records)
        return summary.created, summary.existing, summary.errors

    try:
        with ThreadPoolExecutor(max_workers=2) as pool:
            results = list(pool.map(lambda _: run_session(), range(2)))
        with sqlite_file_engine.connect() as connection:
            cases = connection.execute(text("SELECT count(*) FROM enforcement_case")).scalar_one()
            offenders = connection.execute(text("SELECT count(*) FROM offender")).scalar_one()
    finally:
        shutdown()

    assert sum(created for created, _, _ in results) == 6
    assert sum(existing for _, existing, _ in results) == 6
    assert all(errors == 0 for _, _, errors in results)
    assert cases == 6
    assert offenders == 2


def test_ea_fine_change_is_the_only_update(
    sqlite_unit_of_work: UnitOfWorkFactory, clock: FakeClock
) -> None:
    pipeline = create_pipeline(
        Agency.EA,
        RecordKind.CASE,
        unit_of_work_factory=sqlite_unit_of_work,
        executor=_executor(RecordingSleeper()),
        config=IngestionConfig(),
    )
    key = RecordKey(Agency.EA, "X1")

    def stored_case() -> tuple[Decimal | None, object]:
        with sqlite_unit_of_work() as uow:
            case = uow.repositories.cases.get_by_key(key)
            assert case is not None
            return case.offence_fine, case.updated_at

    created = pipeline.process_record(ea_record(ea_record_id="X1", total_fine="4000"))
    fine, stamped = stored_case()
    clock.advance(hours=1)
    existing = pipeline.process_record(ea_record(ea_record_id="X1", total_fine="4000"))
    after_existing = stored_case()
    clock.advance(hours=1)
    updated = pipeline.process_record(ea_record(ea_record_id="X1", total_fine="5000"))
    after_update = stored_case()

    assert created.outcome is UpsertOutcome.CREATED
    assert fine == Decimal(4000)
    assert existing.outcome is UpsertOutcome.EXISTING
    assert after_existing == (Decimal(4000), stamped)
    assert updated.outcome is UpsertOutcome.UPDATED
    assert updated.changed_fields == ("offence_fine",)
    assert after_update == (Decimal(5000), clock.now)


class BlockingLookup(FakeCompanyLookup):
    """Company lookup that stays inside the search until released."""

    def __init__(self, results: list[CompanyRecord]) -> None:
        super().__init__(results)
        self.entered = threading.Event()
        self.release = threading.Event()

    def search_companies(self, name: str, *, limit: int = 10) -> list[CompanyRecord]:
        self.entered.set()
        self.release.wait(timeout=60)
        return super().search_companies(name, limit=limit)


def test_register_search_does_not_block_other_sessions(sqlite_file_engine: Engine) -> None:
    startup(engine=sqlite_file_engine, force=True)
    executor = _executor(RecordingSleeper())
    lookup = BlockingLookup([company("09876543", "NORTHERN SCAFFOLDING LIMITED")])

    def pipeline(register: BlockingLookup | None) -> IngestionPipeline:
        return create_pipeline(
            Agency.HSE,
            RecordKind.CASE,
            unit_of_work_factory=SqlAlchemyIngestionUnitOfWork,
            executor=executor,
            lookup=register,
            config=IngestionConfig(),
        )

    searching = pipeline(lookup)
    plain = pipeline(None)
    try:
        with ThreadPoolExecutor(max_workers=1) as pool:
            slow = pool.submit(searching.process_record, hse_case_record())
            assert lookup.entered.wait(timeout=10)
            other = plain.process_record(
                hse_case_record(regulator_id="4759899", offender_name="Harbour Cranes Ltd")
            )
            still_searching = not slow.done()
            lookup.release.set()
            searched = slow.result(timeout=30)
    finally:
        lookup.release.set()
        shutdown()

    assert other.outcome is UpsertOutcome.CREATED
    assert still_searching
    assert searched.outcome is UpsertOutcome.CREATED
    assert searched.offender.company_registration_number == "09876543"
    assert len(lookup.queries) == 1
