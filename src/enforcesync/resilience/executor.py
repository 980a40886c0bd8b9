"""Compose rate limiting, retry and per-attempt circuit breaking around one call."""

from __future__ import annotations

import asyncio
import time
from functools import partial
from typing import TYPE_CHECKING

from enforcesync.config.resilience import get_policy

from .circuit_breaker import CircuitBreakerRegistry
from .errors import CircuitOpenError
from .metrics import RetryMetricsStore
from .rate_limiter import RateLimiterRegistry
from .retry import retry_call, retry_call_async

if TYPE_CHECKING:
    import random
    from collections.abc import Awaitable, Callable

    from enforcesync.config.resilience import RetryPolicy

    from .retry import AsyncSleeper, RetryPredicate, Sleeper


class ResilientExecutor:
    """Shared resilience state for every session in the process.

    The limiter is consulted once per logical call, the retry driver wraps the attempts and
    the breaker guards each attempt. An open circuit is never retried.
    """

    def __init__(
        self,
        *,
        breakers: CircuitBreakerRegistry | None = None,
        limiters: RateLimiterRegistry | None = None,
        metrics: RetryMetricsStore | None = None,
        sleep: Sleeper = time.sleep,
        async_sleep: AsyncSleeper = asyncio.sleep,
        rng: random.Random | None = None,
    ) -> None:
        self.breakers = breakers or CircuitBreakerRegistry()
        self.limiters = limiters or RateLimiterRegistry()
        self.metrics = metrics or RetryMetricsStore()
        self._sleep = sleep
        self._async_sleep = async_sleep
        self._rng = rng

    def call[T](
        self,
        operation: str,
        func: Callable[[], T],
        *,
        policy: RetryPolicy | str = "default",
        limiter: str | None = None,
        breaker: str | None = None,
        retry_if: RetryPredicate | None = None,
    ) -> T:
        resolved = get_policy(policy) if isinstance(policy, str) else policy
        if limiter is not None:
            self.limiters.get(limiter).acquire()

        attempt: Callable[[], T] = func
        breaker_name = breaker or (operation if resolved.circuit_breaker else None)
        if breaker_name is not None:
            attempt = partial(self.breakers.get(breaker_name).call, func)

        return retry_call(
            attempt,
            resolved,
            operation=operation,
            retry_if=_skip_open_circuits(retry_if),
            sleep=self._sleep,
            metrics=self.metrics,
            rng=self._rng,
        )

    async def call_async[T](
        self,
        operation: str,
        func: Callable[[], Awaitable[T]],
        *,
        policy: RetryPolicy | str = "default",
        limiter: str | None = None,
        breaker: str | None = None,
        retry_if: RetryPredicate | None = None,
    ) -> T:
        resolved = get_policy(policy) if isinstance(policy, str) else policy
        if limiter is not None:
            self.limiters.get(limiter).acquire()

        attempt: Callable[[], Awaitable[T]] = func
        breaker_name = breaker or (operation if resolved.circuit_breaker else None)
        if breaker_name is not None:
            attempt = partial(self.breakers.get(breaker_name).call_async, func)

        return await retry_call_async(
            attempt,
            resolved,
            operation=operation,
            retry_if=_skip_open_circuits(retry_if),
            sleep=self._async_sleep,
            metrics=self.metrics,
            rng=self._rng,
        )


def _skip_open_circuits(retry_if: RetryPredicate | None) -> RetryPredicate:
    def predicate(exc: Exception) -> bool:
        if isinstance(exc, CircuitOpenError):
            return False
        return retry_if is None or retry_if(exc)

    return predicate
