from __future__ import annotations

import asyncio

import pytest

from enforcesync.config import CircuitBreakerSettings, RateLimitSettings
from enforcesync.resilience import (
    BreakerState,
    CircuitBreakerRegistry,
    CircuitOpenError,
    RateLimitedError,
    RateLimiterRegistry,
    ResilientExecutor,
    RetryExhaustedError,
)
from tests.helpers.clock import FakeMonotonic, RecordingSleeper


def _executor(
    *, threshold: int = 5, max_requests: int = 10
) -> tuple[ResilientExecutor, RecordingSleeper]:
    clock = FakeMonotonic()
    sleeper = RecordingSleeper()
    executor = ResilientExecutor(
        breakers=CircuitBreakerRegistry(
            default_settings=CircuitBreakerSettings(failure_threshold=threshold),
            clock=clock,
        ),
        limiters=RateLimiterRegistry(
            default_settings=RateLimitSettings(max_requests=max_requests), clock=clock
        ),
        sleep=sleeper,
    )
    return executor, sleeper


def test_open_circuit_is_never_retried() -> None:
    executor, sleeper = _executor(threshold=2)
    calls = 0

    def failing() -> None:
        nonlocal calls
        calls += 1
        raise ConnectionError("database unreachable")

    with pytest.raises(CircuitOpenError):
        executor.call("create_case", failing, policy="database_operations")

    assert calls == 2
    assert sleeper.calls == [0.5, 1.0]
    assert executor.breakers.get("create_case").state is BreakerState.OPEN


def test_policy_without_breaker_exhausts_retries() -> None:
    executor, sleeper = _executor(threshold=1)

    def failing() -> None:
        raise TimeoutError("slow")

    with pytest.raises(RetryExhaustedError):
        executor.call("lookup", failing, policy="default")

    assert sleeper.calls == [1.0, 2.0]
    assert executor.breakers.all_metrics() == []


def test_explicit_breaker_and_limiter_guard_the_call() -> None:
    executor, _ = _executor(max_requests=1)

    assert executor.call("search", lambda: "hit", limiter="search", breaker="search") == "hit"
    with pytest.raises(RateLimitedError):
        executor.call("search", lambda: "hit", limiter="search", breaker="search")

    metrics = executor.breakers.get("search").metrics()
    assert metrics.successful_calls == 1


def test_retry_if_limits_which_failures_are_retried() -> None:
    executor, sleeper = _executor()

    def failing() -> None:
        raise ValueError("invalid")

    with pytest.raises(ValueError, match="invalid"):
        executor.call(
            "create_case",
            failing,
            policy="database_operations",
            retry_if=lambda exc: not isinstance(exc, ValueError),
        )

    assert sleeper.calls == []


def test_executor_records_retry_metrics() -> None:
    executor, _ = _executor()
    outcomes = iter([TimeoutError("slow"), None])

    def flaky() -> str:
        error = next(outcomes)
        if error is not None:
            raise error
        return "ok"

    executor.call("create_notice", flaky, policy="database_operations")

    report = executor.metrics.performance_report()
    assert report.total_operations == 1
    assert report.overall_success_rate == 1.0
    assert report.average_attempts == 2.0
    assert report.most_retried == (("create_notice", 1),)


def test_call_async_shares_breakers() -> None:
    slept: list[float] = []

    async def fake_sleep(seconds: float) -> None:
        slept.append(seconds)

    executor = ResilientExecutor(
        breakers=CircuitBreakerRegistry(
            default_settings=CircuitBreakerSettings(failure_threshold=1),
            clock=FakeMonotonic(),
        ),
        async_sleep=fake_sleep,
    )

    async def failing() -> None:
        raise ConnectionError("down")

    with pytest.raises(CircuitOpenError):
        asyncio.run(executor.call_async("sync", failing, policy="critical_operations"))

    assert len(slept) == 1
    assert executor.breakers.get("sync").state is BreakerState.OPEN
