from __future__ import annotations

import pytest

from enforcesync.config import RateLimitSettings
from enforcesync.resilience import RateLimitedError, RateLimiterRegistry, SlidingWindowRateLimiter
from tests.helpers.clock import FakeMonotonic

SETTINGS = RateLimitSettings(max_requests=2, window_ms=1000)


def test_limiter_rejects_once_window_is_full() -> None:
    clock = FakeMonotonic()
    limiter = SlidingWindowRateLimiter("companies_house", SETTINGS, clock=clock)

    limiter.acquire()
    clock.advance_ms(250)
    limiter.acquire()

    with pytest.raises(RateLimitedError) as excinfo:
        limiter.acquire()

    assert excinfo.value.name == "companies_house"
    assert excinfo.value.retry_after_ms == 750
    assert limiter.remaining() == 0


def test_limiter_admits_again_after_window_slides() -> None:
    clock = FakeMonotonic()
    limiter = SlidingWindowRateLimiter("api", SETTINGS, clock=clock)
    limiter.acquire()
    limiter.acquire()

    clock.advance_ms(1000)

    assert limiter.remaining() == 2
    assert limiter.try_acquire() is True


def test_try_acquire_reports_rejection_without_raising() -> None:
    limiter = SlidingWindowRateLimiter(
        "api", RateLimitSettings(max_requests=1, window_ms=1000), clock=FakeMonotonic()
    )

    assert limiter.try_acquire() is True
    assert limiter.try_acquire() is False


def test_registry_shares_limiters_by_name() -> None:
    registry = RateLimiterRegistry(default_settings=SETTINGS, clock=FakeMonotonic())

    registry.get("api").acquire()
    registry.get("api").acquire()

    assert registry.get("api").remaining() == 0
    assert registry.get("other").remaining() == 2
