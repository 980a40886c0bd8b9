from __future__ import annotations

import asyncio

import pytest

from enforcesync.config import CircuitBreakerSettings
from enforcesync.resilience import (
    BreakerState,
    CircuitBreaker,
    CircuitBreakerRegistry,
    CircuitOpenError,
)
from tests.helpers.clock import FakeMonotonic

SETTINGS = CircuitBreakerSettings(failure_threshold=2, cooldown_ms=1000)


def _fail() -> None:
    raise ConnectionError("dependency down")


def _reject() -> None:
    raise ValueError("bad")


def _trip(breaker: CircuitBreaker) -> None:
    for _ in range(breaker.settings.failure_threshold):
        with pytest.raises(ConnectionError):
            breaker.call(_fail)


def test_breaker_opens_at_threshold_and_rejects_calls() -> None:
    breaker = CircuitBreaker("db", SETTINGS, clock=FakeMonotonic())

    _trip(breaker)

    assert breaker.state is BreakerState.OPEN
    with pytest.raises(CircuitOpenError) as excinfo:
        breaker.call(lambda: "never")
    assert excinfo.value.name == "db"

    metrics = breaker.metrics()
    assert metrics.failed_calls == 2
    assert metrics.blocked_calls == 1
    assert metrics.total_calls == 2
    assert metrics.failure_rate == 1.0


def test_success_resets_failure_count_while_closed() -> None:
    breaker = CircuitBreaker("db", SETTINGS, clock=FakeMonotonic())

    with pytest.raises(ConnectionError):
        breaker.call(_fail)
    assert breaker.call(lambda: 1) == 1
    with pytest.raises(ConnectionError):
        breaker.call(_fail)

    assert breaker.state is BreakerState.CLOSED
    assert breaker.metrics().failure_count == 1


def test_half_open_trial_success_closes_circuit() -> None:
    clock = FakeMonotonic()
    breaker = CircuitBreaker("db", SETTINGS, clock=clock)
    _trip(breaker)

    clock.advance_ms(500)
    assert breaker.state is BreakerState.OPEN
    clock.advance_ms(500)
    assert breaker.state is BreakerState.HALF_OPEN

    assert breaker.call(lambda: "recovered") == "recovered"
    assert breaker.state is BreakerState.CLOSED
    assert breaker.metrics().failure_count == 0


def test_half_open_trial_failure_reopens_circuit() -> None:
    clock = FakeMonotonic()
    breaker = CircuitBreaker("db", SETTINGS, clock=clock)
    _trip(breaker)
    clock.advance_ms(1000)

    with pytest.raises(ConnectionError):
        breaker.call(_fail)

    assert breaker.state is BreakerState.OPEN


def test_half_open_admits_a_single_trial() -> None:
    clock = FakeMonotonic()
    breaker = CircuitBreaker("db", SETTINGS, clock=clock)
    _trip(breaker)
    clock.advance_ms(1000)

    def nested() -> str:
        # a second caller arrives while the trial is still running
        with pytest.raises(CircuitOpenError):
            breaker.call(lambda: "second")
        return "trial"

    assert breaker.call(nested) == "trial"
    assert breaker.state is BreakerState.CLOSED


def test_open_circuit_never_invokes_the_wrapped_function() -> None:
    breaker = CircuitBreaker("db", SETTINGS, clock=FakeMonotonic())
    _trip(breaker)
    invoked: list[str] = []

    with pytest.raises(CircuitOpenError):
        breaker.call(lambda: invoked.append("called"))

    assert invoked == []


def test_cancelled_trial_frees_the_half_open_slot() -> None:
    clock = FakeMonotonic()
    breaker = CircuitBreaker("db", SETTINGS, clock=clock)
    _trip(breaker)
    clock.advance_ms(1000)

    async def slow() -> str:
        await asyncio.sleep(60)
        return "late"

    async def cancel_trial() -> None:
        task = asyncio.create_task(breaker.call_async(slow))
        await asyncio.sleep(0)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(cancel_trial())

    assert breaker.state is BreakerState.HALF_OPEN
    assert breaker.call(lambda: "ok") == "ok"
    assert breaker.state is BreakerState.CLOSED
    assert breaker.metrics().failed_calls == 2


def test_ignored_exceptions_do_not_count() -> None:
    breaker = CircuitBreaker(
        "db", SETTINGS, clock=FakeMonotonic(), ignore_exceptions=(ValueError,)
    )

    for _ in range(5):
        with pytest.raises(ValueError, match="bad"):
            breaker.call(_reject)

    assert breaker.state is BreakerState.CLOSED
    metrics = breaker.metrics()
    assert metrics.failed_calls == 0
    assert metrics.total_calls == 0


def test_reset_closes_an_open_circuit() -> None:
    breaker = CircuitBreaker("db", SETTINGS, clock=FakeMonotonic())
    _trip(breaker)

    breaker.reset()

    assert breaker.state is BreakerState.CLOSED
    assert breaker.call(lambda: "ok") == "ok"


def test_registry_returns_one_breaker_per_name() -> None:
    registry = CircuitBreakerRegistry(default_settings=SETTINGS, clock=FakeMonotonic())

    first = registry.get("create_case")
    assert registry.get("create_case") is first
    assert registry.get("create_notice") is not first
    assert first.settings == SETTINGS
    assert {metrics.name for metrics in registry.all_metrics()} == {
        "create_case",
        "create_notice",
    }
