"""Error classification, handling strategies and automatic recovery."""

from __future__ import annotations

from .classifier import ClassifiedError, ErrorClassifier, fingerprint, source_location
from .metrics import ErrorMetrics, ErrorMetricsStore, ResolutionMetrics, StrategyStats
from .notifications import (
    Alert,
    AlertDispatcher,
    Channel,
    EscalationLevel,
    channels_for,
    mitigation_steps,
    severity_for,
)
from .patterns import PatternAnalysis, analyze_error_patterns
from .recovery import (
    RecoveryOrchestrator,
    RecoveryOutcome,
    RecoveryPlan,
    RecoveryReport,
    RecoveryStrategy,
    plan_recovery,
)
from .strategy import RecoveryAction, StrategyAction, determine_strategy, is_retryable
from .sync import (
    RetryStrategy,
    RetryStrategyType,
    SyncCategory,
    SyncErrorClassification,
    classify_sync_error,
)
from .taxonomy import Classification, ErrorContext, ErrorKind, Severity, categorize

__all__ = [
    "Alert",
    "AlertDispatcher",
    "Channel",
    "Classification",
    "ClassifiedError",
    "ErrorClassifier",
    "ErrorContext",
    "ErrorKind",
    "ErrorMetrics",
    "ErrorMetricsStore",
    "EscalationLevel",
    "PatternAnalysis",
    "RecoveryAction",
    "RecoveryOrchestrator",
    "RecoveryOutcome",
    "RecoveryPlan",
    "RecoveryReport",
    "RecoveryStrategy",
    "ResolutionMetrics",
    "RetryStrategy",
    "RetryStrategyType",
    "Severity",
    "StrategyAction",
    "StrategyStats",
    "SyncCategory",
    "SyncErrorClassification",
    "analyze_error_patterns",
    "categorize",
    "channels_for",
    "classify_sync_error",
    "determine_strategy",
    "fingerprint",
    "is_retryable",
    "mitigation_steps",
    "plan_recovery",
    "severity_for",
    "source_location",
]
