from .backoff import (
    delay_sequence,
    exponential_delays,
    fibonacci_delays,
    jittered,
    linear_delays,
)
from .circuit_breaker import BreakerMetrics, BreakerState, CircuitBreaker, CircuitBreakerRegistry
from .errors import CircuitOpenError, RateLimitedError, ResilienceError, RetryExhaustedError
from .executor import ResilientExecutor
from .locks import KeyedLocks
from .metrics import OperationRetryStats, PerformanceReport, RetryMetricsStore
from .rate_limiter import RateLimiterRegistry, SlidingWindowRateLimiter
from .retry import conditional_retry, retry_call, retry_call_async, retrying

__all__ = [
    "BreakerMetrics",
    "BreakerState",
    "CircuitBreaker",
    "CircuitBreakerRegistry",
    "CircuitOpenError",
    "KeyedLocks",
    "OperationRetryStats",
    "PerformanceReport",
    "RateLimitedError",
    "RateLimiterRegistry",
    "ResilienceError",
    "ResilientExecutor",
    "RetryExhaustedError",
    "RetryMetricsStore",
    "SlidingWindowRateLimiter",
    "conditional_retry",
    "delay_sequence",
    "exponential_delays",
    "fibonacci_delays",
    "jittered",
    "linear_delays",
    "retry_call",
    "retry_call_async",
    "retrying",
]
