from __future__ import annotations

import random

from enforcesync.config import NAMED_POLICIES, BackoffKind, RetryPolicy
from enforcesync.resilience import (
    delay_sequence,
    exponential_delays,
    fibonacci_delays,
    jittered,
    linear_delays,
)


def test_exponential_delays_double_until_capped() -> None:
    delays = exponential_delays(base_ms=500, max_ms=3000, attempts=5)
    assert delays == [500, 1000, 2000, 3000, 3000]


def test_fibonacci_delays_follow_the_sequence() -> None:
    assert fibonacci_delays(base_ms=100, max_ms=60_000, attempts=6) == [
        100,
        100,
        200,
        300,
        500,
        800,
    ]


def test_linear_delays_are_constant() -> None:
    assert linear_delays(delay_ms=250, attempts=3) == [250, 250, 250]


def test_jitter_stays_within_half_the_delay() -> None:
    rng = random.Random(7)
    for _ in range(200):
        value = jittered(1000, rng=rng)
        assert 751 <= value <= 1250


def test_jitter_leaves_tiny_delays_alone() -> None:
    assert jittered(1) == 1
    assert jittered(0) == 0


def test_delay_sequence_has_one_delay_per_attempt() -> None:
    for policy in NAMED_POLICIES.values():
        assert len(delay_sequence(policy, rng=random.Random(1))) == policy.max_attempts


def test_database_policy_sequence_is_deterministic() -> None:
    assert delay_sequence(NAMED_POLICIES["database_operations"]) == [500, 1000, 2000, 4000, 8000]


def test_delay_sequence_dispatches_on_backoff_kind() -> None:
    linear = RetryPolicy(max_attempts=2, base_delay_ms=300, backoff=BackoffKind.LINEAR)
    fibonacci = RetryPolicy(max_attempts=4, base_delay_ms=10, backoff=BackoffKind.FIBONACCI)

    assert delay_sequence(linear) == [300, 300]
    assert delay_sequence(fibonacci) == [10, 10, 20, 30]


def test_exponential_policy_without_jitter_doubles_from_base() -> None:
    policy = RetryPolicy(max_attempts=5, base_delay_ms=1000, max_delay_ms=30_000)

    assert delay_sequence(policy) == [1000, 2000, 4000, 8000, 16000]
