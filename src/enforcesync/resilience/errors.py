"""Failures raised by the resilience layer itself."""

from __future__ import annotations


class ResilienceError(RuntimeError):
    """Base class for resilience-layer rejections."""


class CircuitOpenError(ResilienceError):
    """The named circuit is open (or a half-open trial is already in flight)."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Circuit {name!r} is open")
        self.name = name


class RateLimitedError(ResilienceError):
    """The named limiter's window is full; the call was rejected, not delayed."""

    def __init__(self, name: str, *, retry_after_ms: int) -> None:
        super().__init__(f"Rate limit exceeded for {name!r}; retry after {retry_after_ms}ms")
        self.name = name
        self.retry_after_ms = retry_after_ms


class RetryExhaustedError(ResilienceError):
    """Every attempt allowed by the retry policy failed."""

    def __init__(self, operation: str, *, attempts: int, last_error: BaseException) -> None:
        super().__init__(
            f"{operation} failed after {attempts} attempt(s): {last_error!r}",
        )
        self.operation = operation
        self.attempts = attempts
        self.last_error = last_error
