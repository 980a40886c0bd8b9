"""Named circuit breakers with an explicit, injectable registry."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

from enforcesync.config.resilience import CircuitBreakerSettings

from .errors import CircuitOpenError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

type MonotonicClock = Callable[[], float]

log = logging.getLogger(__name__)


class BreakerState(StrEnum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


@dataclass(frozen=True, slots=True, kw_only=True)
class BreakerMetrics:
    name: str
    state: BreakerState
    failure_count: int
    failure_threshold: int
    cooldown_ms: int
    last_failure_time: float | None
    total_calls: int
    successful_calls: int
    failed_calls: int
    blocked_calls: int

    @property
    def failure_rate(self) -> float:
        return self.failed_calls / self.total_calls if self.total_calls else 0.0


class CircuitBreaker:
    """closed -> open -> half_open -> closed state machine around a dependency.

    ``ignore_exceptions`` are re-raised without counting as a failure; use it for errors
    that say nothing about the dependency's health (bad input, duplicates).
    """

    def __init__(
        self,
        name: str,
        settings: CircuitBreakerSettings | None = None,
        *,
        clock: MonotonicClock = time.monotonic,
        ignore_exceptions: tuple[type[BaseException], ...] = (),
    ) -> None:
        self.name = name
        self.settings = settings or CircuitBreakerSettings()
        self._clock = clock
        self._ignore = ignore_exceptions
        self._lock = threading.Lock()
        self._state = BreakerState.CLOSED
        self._failure_count = 0
        self._last_failure_time: float | None = None
        self._trial_in_flight = False
        self._total = 0
        self._successful = 0
        self._failed = 0
        self._blocked = 0

    @property
    def state(self) -> BreakerState:
        with self._lock:
            self._refresh_state()
            return self._state

    def call[T](self, func: Callable[[], T]) -> T:
        trial = self._admit()
        try:
            result = func()
        except self._ignore:
            self._release(trial)
            raise
        except Exception:
            self._on_failure(trial)
            raise
        except BaseException:
            self._release(trial)
            raise
        self._on_success(trial)
        return result

    async def call_async[T](self, func: Callable[[], Awaitable[T]]) -> T:
        trial = self._admit()
        try:
            result = await func()
        except self._ignore:
            self._release(trial)
            raise
        except Exception:
            self._on_failure(trial)
            raise
        except BaseException:
            self._release(trial)
            raise
        self._on_success(trial)
        return result

    def metrics(self) -> BreakerMetrics:
        with self._lock:
            self._refresh_state()
            return BreakerMetrics(
                name=self.name,
                state=self._state,
                failure_count=self._failure_count,
                failure_threshold=self.settings.failure_threshold,
                cooldown_ms=self.settings.cooldown_ms,
                last_failure_time=self._last_failure_time,
                total_calls=self._total,
                successful_calls=self._successful,
                failed_calls=self._failed,
                blocked_calls=self._blocked,
            )

    def reset(self) -> None:
        with self._lock:
            self._transition(BreakerState.CLOSED)
            self._failure_count = 0
            self._last_failure_time = None
            self._trial_in_flight = False

    def _admit(self) -> bool:
        """Return True when the admitted call is the half-open trial."""

        with self._lock:
            self._refresh_state()
            if self._state is BreakerState.OPEN or (
                self._state is BreakerState.HALF_OPEN and self._trial_in_flight
            ):
                self._blocked += 1
                log.warning("Circuit %s is %s; call rejected", self.name, self._state)
                raise CircuitOpenError(self.name)
            self._total += 1
            if self._state is BreakerState.HALF_OPEN:
                self._trial_in_flight = True
                return True
            return False

    def _on_success(self, trial: bool) -> None:
        with self._lock:
            self._successful += 1
            if trial:
                self._trial_in_flight = False
                self._transition(BreakerState.CLOSED)
            self._failure_count = 0

    def _on_failure(self, trial: bool) -> None:
        with self._lock:
            self._failed += 1
            self._failure_count += 1
            self._last_failure_time = self._clock()
            if trial:
                self._trial_in_flight = False
                self._transition(BreakerState.OPEN)
            elif (
                self._state is BreakerState.CLOSED
                and self._failure_count >= self.settings.failure_threshold
            ):
                self._transition(BreakerState.OPEN)

    def _release(self, trial: bool) -> None:
        with self._lock:
            self._total -= 1
            if trial:
                self._trial_in_flight = False

    def _refresh_state(self) -> None:
        if self._state is not BreakerState.OPEN or self._last_failure_time is None:
            return
        elapsed_ms = (self._clock() - self._last_failure_time) * 1000
        if elapsed_ms >= self.settings.cooldown_ms:
            self._transition(BreakerState.HALF_OPEN)

    def _transition(self, state: BreakerState) -> None:
        if state is self._state:
            return
        log.info("Circuit %s: %s -> %s", self.name, self._state, state)
        self._state = state


class CircuitBreakerRegistry:
    """Owns one breaker per name; the first ``get`` for a name fixes its settings."""

    def __init__(
        self,
        *,
        default_settings: CircuitBreakerSettings | None = None,
        clock: MonotonicClock = time.monotonic,
        ignore_exceptions: tuple[type[BaseException], ...] = (),
    ) -> None:
        self._default_settings = default_settings or CircuitBreakerSettings()
        self._clock = clock
        self._ignore = ignore_exceptions
        self._lock = threading.Lock()
        self._breakers: dict[str, CircuitBreaker] = {}

    def get(self, name: str, settings: CircuitBreakerSettings | None = None) -> CircuitBreaker:
        with self._lock:
            breaker = self._breakers.get(name)
            if breaker is None:
                breaker = CircuitBreaker(
                    name,
                    settings or self._default_settings,
                    clock=self._clock,
                    ignore_exceptions=self._ignore,
                )
                self._breakers[name] = breaker
            return breaker

    def all_metrics(self) -> list[BreakerMetrics]:
        with self._lock:
            breakers = list(self._breakers.values())
        return [breaker.metrics() for breaker in breakers]
