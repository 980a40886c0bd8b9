"""Retry drivers built on tenacity, one attempt per delay in the policy's sequence."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from functools import wraps
from typing import TYPE_CHECKING

from tenacity import (
    AsyncRetrying,
    RetryError,
    Retrying,
    retry_if_exception,
    stop_after_attempt,
)

from .backoff import delay_sequence
from .errors import RetryExhaustedError

if TYPE_CHECKING:
    import random

    from tenacity import RetryCallState

    from enforcesync.config.resilience import RetryPolicy

    from .metrics import RetryMetricsStore

type RetryPredicate = Callable[[Exception], bool]
type Sleeper = Callable[[float], None]
type AsyncSleeper = Callable[[float], Awaitable[None]]

log = logging.getLogger(__name__)


class _Attempts:
    """Per-call attempt bookkeeping shared by the tenacity hooks."""

    def __init__(
        self, operation: str, delays: list[int], retry_if: RetryPredicate | None
    ) -> None:
        self.operation = operation
        self.delays = delays
        self.retry_if = retry_if
        self.count = 0

    def should_retry(self, exc: BaseException) -> bool:
        if not isinstance(exc, Exception):
            return False
        if self.retry_if is not None and not self.retry_if(exc):
            log.debug("Not retrying %s: %r is not retryable", self.operation, exc)
            return False
        return True

    def wait(self, retry_state: RetryCallState) -> float:
        return self.delays[retry_state.attempt_number - 1] / 1000

    def before_sleep(self, retry_state: RetryCallState) -> None:
        outcome = retry_state.outcome
        log.info(
            "Attempt %s/%s of %s failed (%r); retrying in %sms",
            retry_state.attempt_number,
            len(self.delays),
            self.operation,
            outcome.exception() if outcome is not None else None,
            self.delays[retry_state.attempt_number - 1],
        )

    def exhausted(self, error: RetryError) -> RetryExhaustedError:
        last_error = error.last_attempt.exception()
        assert last_error is not None
        log.warning("Giving up on %s after %s attempt(s)", self.operation, self.count)
        return RetryExhaustedError(self.operation, attempts=self.count, last_error=last_error)


def retry_call[T](
    func: Callable[[], T],
    policy: RetryPolicy,
    *,
    operation: str = "operation",
    retry_if: RetryPredicate | None = None,
    sleep: Sleeper = time.sleep,
    metrics: RetryMetricsStore | None = None,
    rng: random.Random | None = None,
) -> T:
    """Call ``func`` until it succeeds or the policy's delay sequence is exhausted.

    ``retry_if`` makes the retry conditional: a failure it rejects is re-raised at once,
    without sleeping. Exhaustion raises :class:`RetryExhaustedError` chained to the last
    failure.
    """

    attempts = _Attempts(operation, delay_sequence(policy, rng=rng), retry_if)

    def attempt() -> T:
        attempts.count += 1
        return func()

    retryer = Retrying(
        stop=stop_after_attempt(len(attempts.delays)),
        wait=attempts.wait,
        retry=retry_if_exception(attempts.should_retry),
        before_sleep=attempts.before_sleep,
        sleep=sleep,
    )
    try:
        result = retryer(attempt)
    except RetryError as exc:
        _record(metrics, operation, success=False, attempts=attempts.count)
        exhausted = attempts.exhausted(exc)
        raise exhausted from exhausted.last_error
    except Exception:
        _record(metrics, operation, success=False, attempts=attempts.count)
        raise
    _record(metrics, operation, success=True, attempts=attempts.count)
    return result


async def retry_call_async[T](
    func: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    *,
    operation: str = "operation",
    retry_if: RetryPredicate | None = None,
    sleep: AsyncSleeper = asyncio.sleep,
    metrics: RetryMetricsStore | None = None,
    rng: random.Random | None = None,
) -> T:
    """Async twin of :func:`retry_call`; backoff sleeps yield to other sessions."""

    attempts = _Attempts(operation, delay_sequence(policy, rng=rng), retry_if)

    async def attempt() -> T:
        attempts.count += 1
        return await func()

    retryer = AsyncRetrying(
        stop=stop_after_attempt(len(attempts.delays)),
        wait=attempts.wait,
        retry=retry_if_exception(attempts.should_retry),
        before_sleep=attempts.before_sleep,
        sleep=sleep,
    )
    try:
        result = await retryer(attempt)
    except RetryError as exc:
        _record(metrics, operation, success=False, attempts=attempts.count)
        exhausted = attempts.exhausted(exc)
        raise exhausted from exhausted.last_error
    except Exception:
        _record(metrics, operation, success=False, attempts=attempts.count)
        raise
    _record(metrics, operation, success=True, attempts=attempts.count)
    return result


def conditional_retry[T](
    func: Callable[[], T],
    should_retry: RetryPredicate,
    policy: RetryPolicy,
    **kwargs: object,
) -> T:
    """Retry only failures accepted by ``should_retry``."""

    return retry_call(func, policy, retry_if=should_retry, **kwargs)  # type: ignore[arg-type]


def retrying[**P, T](
    policy: RetryPolicy,
    *,
    operation: str | None = None,
    retry_if: RetryPredicate | None = None,
    metrics: RetryMetricsStore | None = None,
) -> Callable[[Callable[P, T]], Callable[P, T]]:
    def decorator(func: Callable[P, T]) -> Callable[P, T]:
        name = operation or func.__qualname__

        @wraps(func)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            return retry_call(
                lambda: func(*args, **kwargs),
                policy,
                operation=name,
                retry_if=retry_if,
                metrics=metrics,
            )

        return wrapper

    return decorator


def _record(
    metrics: RetryMetricsStore | None, operation: str, *, success: bool, attempts: int
) -> None:
    if metrics is not None:
        metrics.record(operation, success=success, attempts=attempts)
