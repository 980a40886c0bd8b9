"""Error and resolution counters, injected wherever failures are recorded."""

from __future__ import annotations

import threading
from collections import Counter
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import datetime

    from .classifier import ClassifiedError


@dataclass(frozen=True, slots=True, kw_only=True)
class ErrorMetrics:
    total_errors: int
    by_type: dict[str, int] = field(default_factory=dict)
    by_operation: dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True, slots=True, kw_only=True)
class StrategyStats:
    total: int
    success_rate: float


@dataclass(frozen=True, slots=True, kw_only=True)
class ResolutionMetrics:
    total_resolutions: int
    success_rate: float
    by_strategy: dict[str, StrategyStats] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class _Resolution:
    success: bool
    strategy: str
    resolved_at: datetime | None


class ErrorMetricsStore:
    """Process-lifetime record of classified errors and how they were resolved."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._errors: dict[str, ClassifiedError] = {}
        self._resolutions: dict[str, _Resolution] = {}

    def record_error(self, error: ClassifiedError) -> str:
        with self._lock:
            self._errors[error.error_id] = error
        return error.error_id

    def record_resolution(
        self,
        error_id: str,
        *,
        success: bool,
        strategy: str,
        resolved_at: datetime | None = None,
    ) -> None:
        with self._lock:
            self._resolutions[error_id] = _Resolution(success, strategy, resolved_at)

    def errors(self) -> list[ClassifiedError]:
        with self._lock:
            return list(self._errors.values())

    def error_metrics(self) -> ErrorMetrics:
        errors = self.errors()
        return ErrorMetrics(
            total_errors=len(errors),
            by_type=dict(Counter(str(error.kind) for error in errors)),
            by_operation=dict(Counter(error.operation for error in errors)),
        )

    def resolution_metrics(self) -> ResolutionMetrics:
        with self._lock:
            resolutions = list(self._resolutions.values())
        if not resolutions:
            return ResolutionMetrics(total_resolutions=0, success_rate=0.0)
        totals = Counter(resolution.strategy for resolution in resolutions)
        successes = Counter(
            resolution.strategy for resolution in resolutions if resolution.success
        )
        return ResolutionMetrics(
            total_resolutions=len(resolutions),
            success_rate=sum(successes.values()) / len(resolutions),
            by_strategy={
                strategy: StrategyStats(total=count, success_rate=successes[strategy] / count)
                for strategy, count in totals.items()
            },
        )

    def common_patterns(self, *, top: int = 3) -> list[str]:
        """The most frequent error kinds, as ``"<kind>: <n> occurrences"``."""

        counts = Counter(str(error.kind) for error in self.errors())
        return [f"{kind}: {count} occurrences" for kind, count in counts.most_common(top)]

    def reset(self) -> None:
        with self._lock:
            self._errors.clear()
            self._resolutions.clear()
