"""Named retry, circuit-breaker and rate-limit policies for ingestion calls."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from types import MappingProxyType
from typing import TYPE_CHECKING, Final

from .errors import ConfigurationError

if TYPE_CHECKING:
    from collections.abc import Mapping


class BackoffKind(StrEnum):
    EXPONENTIAL = "exponential"
    LINEAR = "linear"
    FIBONACCI = "fibonacci"


@dataclass(slots=True, frozen=True, kw_only=True)
class RetryPolicy:
    """Immutable retry configuration; delays are expressed in milliseconds."""

    max_attempts: int = 3
    base_delay_ms: int = 1000
    max_delay_ms: int = 10_000
    backoff: BackoffKind = BackoffKind.EXPONENTIAL
    jitter: bool = False
    circuit_breaker: bool = False

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ConfigurationError("max_attempts must be at least 1")
        if self.base_delay_ms < 0:
            raise ConfigurationError("base_delay_ms must be non-negative")
        if self.max_delay_ms < self.base_delay_ms:
            raise ConfigurationError("max_delay_ms must not be lower than base_delay_ms")


@dataclass(slots=True, frozen=True, kw_only=True)
class CircuitBreakerSettings:
    failure_threshold: int = 5
    cooldown_ms: int = 60_000

    def __post_init__(self) -> None:
        if self.failure_threshold < 1:
            raise ConfigurationError("failure_threshold must be at least 1")
        if self.cooldown_ms < 0:
            raise ConfigurationError("cooldown_ms must be non-negative")


@dataclass(slots=True, frozen=True, kw_only=True)
class RateLimitSettings:
    max_requests: int = 10
    window_ms: int = 60_000

    def __post_init__(self) -> None:
        if self.max_requests < 1:
            raise ConfigurationError("max_requests must be at least 1")
        if self.window_ms <= 0:
            raise ConfigurationError("window_ms must be positive")


API_OPERATIONS: Final = RetryPolicy(
    max_attempts=3,
    base_delay_ms=1000,
    max_delay_ms=30_000,
    backoff=BackoffKind.EXPONENTIAL,
    jitter=True,
)
DATABASE_OPERATIONS: Final = RetryPolicy(
    max_attempts=5,
    base_delay_ms=500,
    max_delay_ms=10_000,
    backoff=BackoffKind.EXPONENTIAL,
    circuit_breaker=True,
)
CRITICAL_OPERATIONS: Final = RetryPolicy(
    max_attempts=10,
    base_delay_ms=100,
    max_delay_ms=60_000,
    backoff=BackoffKind.FIBONACCI,
    jitter=True,
    circuit_breaker=True,
)
DEFAULT_POLICY: Final = RetryPolicy()

NAMED_POLICIES: Final[Mapping[str, RetryPolicy]] = MappingProxyType(
    {
        "api_operations": API_OPERATIONS,
        "database_operations": DATABASE_OPERATIONS,
        "critical_operations": CRITICAL_OPERATIONS,
        "default": DEFAULT_POLICY,
    }
)


def get_policy(name: str) -> RetryPolicy:
    """Return the named policy; unknown names are a configuration error."""

    try:
        return NAMED_POLICIES[name]
    except KeyError:
        known = ", ".join(NAMED_POLICIES)
        message = f"Unknown retry policy {name!r}; expected one of: {known}"
        raise ConfigurationError(message) from None
