"""Retry outcome metrics, injected wherever retries are driven."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field


@dataclass(slots=True)
class OperationRetryStats:
    calls: int = 0
    successes: int = 0
    failures: int = 0
    total_attempts: int = 0
    retried_calls: int = 0

    @property
    def average_attempts(self) -> float:
        return self.total_attempts / self.calls if self.calls else 0.0

    @property
    def success_rate(self) -> float:
        return self.successes / self.calls if self.calls else 0.0


@dataclass(frozen=True, slots=True, kw_only=True)
class PerformanceReport:
    total_operations: int
    overall_success_rate: float
    average_attempts: float
    most_retried: tuple[tuple[str, int], ...] = field(default_factory=tuple)


class RetryMetricsStore:
    """Process-lifetime retry counters keyed by operation name."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._stats: dict[str, OperationRetryStats] = {}

    def record(self, operation: str, *, success: bool, attempts: int) -> None:
        with self._lock:
            stats = self._stats.setdefault(operation, OperationRetryStats())
            stats.calls += 1
            stats.total_attempts += attempts
            if attempts > 1:
                stats.retried_calls += 1
            if success:
                stats.successes += 1
            else:
                stats.failures += 1

    def stats_for(self, operation: str) -> OperationRetryStats:
        with self._lock:
            stats = self._stats.get(operation, OperationRetryStats())
            return OperationRetryStats(
                calls=stats.calls,
                successes=stats.successes,
                failures=stats.failures,
                total_attempts=stats.total_attempts,
                retried_calls=stats.retried_calls,
            )

    def performance_report(self, *, top: int = 5) -> PerformanceReport:
        with self._lock:
            snapshot = dict(self._stats)
            calls = sum(stats.calls for stats in snapshot.values())
            successes = sum(stats.successes for stats in snapshot.values())
            attempts = sum(stats.total_attempts for stats in snapshot.values())
            retried = sorted(
                (
                    (operation, stats.total_attempts - stats.calls)
                    for operation, stats in snapshot.items()
                    if stats.total_attempts > stats.calls
                ),
                key=lambda item: item[1],
                reverse=True,
            )
        return PerformanceReport(
            total_operations=calls,
            overall_success_rate=successes / calls if calls else 0.0,
            average_attempts=attempts / calls if calls else 0.0,
            most_retried=tuple(retried[:top]),
        )

    def reset(self) -> None:
        with self._lock:
            self._stats.clear()
