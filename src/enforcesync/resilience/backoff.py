"""Pure delay-sequence generators for retry policies.

Every generator returns one delay (milliseconds) per allowed attempt. The retry driver
sleeps ``delays[i]`` after a failed attempt ``i`` and never sleeps after the last one.
"""

from __future__ import annotations

import random
from typing import TYPE_CHECKING

from enforcesync.config.resilience import BackoffKind

if TYPE_CHECKING:
    from enforcesync.config.resilience import RetryPolicy


def exponential_delays(*, base_ms: int, max_ms: int, attempts: int) -> list[int]:
    return [min(base_ms * 2 ** (n - 1), max_ms) for n in range(1, attempts + 1)]


def linear_delays(*, delay_ms: int, attempts: int) -> list[int]:
    return [delay_ms] * attempts


def fibonacci_delays(*, base_ms: int, max_ms: int, attempts: int) -> list[int]:
    delays: list[int] = []
    previous, current = 0, 1
    for _ in range(attempts):
        delays.append(min(current * base_ms, max_ms))
        previous, current = current, previous + current
    return delays


def jittered(delay_ms: int, *, rng: random.Random | None = None) -> int:
    """Spread ``delay_ms`` by up to half its size, centred on the original value."""

    half = delay_ms // 2
    if half <= 0:
        return delay_ms
    source = rng or random
    return max(0, delay_ms + source.randint(1, half) - half // 2)


def delay_sequence(policy: RetryPolicy, *, rng: random.Random | None = None) -> list[int]:
    """Map a retry policy onto its ordered delay sequence."""

    if policy.backoff is BackoffKind.LINEAR:
        delays = linear_delays(delay_ms=policy.base_delay_ms, attempts=policy.max_attempts)
    elif policy.backoff is BackoffKind.FIBONACCI:
        delays = fibonacci_delays(
            base_ms=policy.base_delay_ms,
            max_ms=policy.max_delay_ms,
            attempts=policy.max_attempts,
        )
    else:
        delays = exponential_delays(
            base_ms=policy.base_delay_ms,
            max_ms=policy.max_delay_ms,
            attempts=policy.max_attempts,
        )

    if policy.jitter:
        return [jittered(delay, rng=rng) for delay in delays]
    return delays
