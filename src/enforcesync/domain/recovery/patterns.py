"""Pattern analysis over a history of sync error classifications."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .sync import SyncCategory

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from datetime import datetime

    from .sync import SyncErrorClassification

HIGH_FREQUENCY_THRESHOLD = 2
HIGH_FREQUENCY_LIMIT = 5
PROBLEMATIC_OPERATION_THRESHOLD = 3
BURST_THRESHOLD = 3
PEAK_HOURS = 3


@dataclass(frozen=True, slots=True)
class ErrorGroup:
    count: int
    errors: tuple[SyncErrorClassification, ...]


@dataclass(frozen=True, slots=True, kw_only=True)
class AnalysisPeriod:
    start_time: datetime | None = None
    end_time: datetime | None = None
    duration_hours: int = 0


@dataclass(frozen=True, slots=True, kw_only=True)
class TemporalPatterns:
    by_hour: dict[int, int]
    peak_hours: tuple[int, ...]
    error_frequency: float


@dataclass(frozen=True, slots=True, kw_only=True)
class ErrorBurst:
    hour: int
    error_count: int


@dataclass(frozen=True, slots=True, kw_only=True)
class PatternAnalysis:
    total_errors: int
    analysis_period: AnalysisPeriod
    by_category: dict[str, ErrorGroup]
    by_operation: dict[str, ErrorGroup]
    temporal_patterns: TemporalPatterns
    high_frequency_errors: tuple[tuple[str, int], ...]
    problematic_operations: tuple[tuple[str, int], ...]
    error_bursts: tuple[ErrorBurst, ...]
    recommended_actions: tuple[str, ...] = field(default_factory=tuple)
    infrastructure_improvements: tuple[str, ...] = field(default_factory=tuple)
    monitoring_enhancements: tuple[str, ...] = field(default_factory=tuple)


def _group(
    history: Sequence[SyncErrorClassification],
    key: Callable[[SyncErrorClassification], str],
) -> dict[str, ErrorGroup]:
    grouped: defaultdict[str, list[SyncErrorClassification]] = defaultdict(list)
    for entry in history:
        grouped[key(entry)].append(entry)
    return {name: ErrorGroup(len(entries), tuple(entries)) for name, entries in grouped.items()}


def _ranked(groups: dict[str, ErrorGroup], minimum: int) -> list[tuple[str, int]]:
    ranked = [(name, group.count) for name, group in groups.items() if group.count >= minimum]
    return sorted(ranked, key=lambda item: item[1], reverse=True)


def _period(history: Sequence[SyncErrorClassification]) -> AnalysisPeriod:
    if not history:
        return AnalysisPeriod()
    first, last = history[0].classified_at, history[-1].classified_at
    return AnalysisPeriod(
        start_time=first,
        end_time=last,
        duration_hours=int((last - first).total_seconds() // 3600),
    )


def _temporal(
    history: Sequence[SyncErrorClassification], period: AnalysisPeriod
) -> TemporalPatterns:
    by_hour: defaultdict[int, int] = defaultdict(int)
    for entry in history:
        by_hour[entry.classified_at.hour] += 1
    peaks = sorted(by_hour.items(), key=lambda item: item[1], reverse=True)[:PEAK_HOURS]
    frequency = len(history) / max(period.duration_hours, 1) if history else 0.0
    return TemporalPatterns(
        by_hour=dict(by_hour),
        peak_hours=tuple(hour for hour, _ in peaks),
        error_frequency=frequency,
    )


def _recommendations(
    high_frequency: Sequence[tuple[str, int]],
    problematic: Sequence[tuple[str, int]],
) -> tuple[str, ...]:
    actions: list[str] = []
    if problematic:
        actions.append("Review and optimize problematic operations for better error resilience")
    if high_frequency:
        actions.append("Implement targeted error handling for high-frequency error categories")
    return tuple(actions) or ("Continue monitoring error patterns for trends",)


def _infrastructure(by_category: dict[str, ErrorGroup]) -> tuple[str, ...]:
    def count(category: SyncCategory) -> int:
        group = by_category.get(category)
        return group.count if group else 0

    improvements: list[str] = []
    if count(SyncCategory.PERFORMANCE) > 3:
        improvements.append("Optimize system performance and resource management")
    if count(SyncCategory.DATA) > 3:
        improvements.append("Add comprehensive data validation and quality checks")
    if count(SyncCategory.NETWORK) > 5:
        improvements.append(
            "Implement robust network resilience patterns (circuit breakers, retries)"
        )
    return tuple(improvements) or ("Current infrastructure appears stable",)


def _monitoring(temporal: TemporalPatterns) -> tuple[str, ...]:
    if not temporal.peak_hours:
        return ("Current monitoring appears adequate", "Continue tracking temporal error patterns")
    hours = ", ".join(str(hour) for hour in temporal.peak_hours)
    return (
        f"Set up alerts for error spikes during peak hours ({hours})",
        "Consider load balancing during high-error periods",
        "Implement proactive monitoring for error burst patterns",
    )


def analyze_error_patterns(history: Sequence[SyncErrorClassification]) -> PatternAnalysis:
    """Group a chronological error history and derive recommendations from it."""

    by_category = _group(history, lambda entry: str(entry.category))
    by_operation = _group(history, lambda entry: entry.operation)
    period = _period(history)
    temporal = _temporal(history, period)
    high_frequency = _ranked(by_category, HIGH_FREQUENCY_THRESHOLD)[:HIGH_FREQUENCY_LIMIT]
    problematic = _ranked(by_operation, PROBLEMATIC_OPERATION_THRESHOLD)
    bursts = tuple(
        ErrorBurst(hour=hour, error_count=count)
        for hour, count in sorted(temporal.by_hour.items())
        if count >= BURST_THRESHOLD
    )
    return PatternAnalysis(
        total_errors=len(history),
        analysis_period=period,
        by_category=by_category,
        by_operation=by_operation,
        temporal_patterns=temporal,
        high_frequency_errors=tuple(high_frequency),
        problematic_operations=tuple(problematic),
        error_bursts=bursts,
        recommended_actions=_recommendations(high_frequency, problematic),
        infrastructure_improvements=_infrastructure(by_category),
        monitoring_enhancements=_monitoring(temporal),
    )
