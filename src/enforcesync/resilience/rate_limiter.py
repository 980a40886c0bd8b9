"""Sliding-window rate limiters that reject rather than delay."""

from __future__ import annotations

import logging
import math
import threading
import time
from collections import deque
from typing import TYPE_CHECKING

from enforcesync.config.resilience import RateLimitSettings

from .errors import RateLimitedError

if TYPE_CHECKING:
    from collections.abc import Callable

log = logging.getLogger(__name__)


class SlidingWindowRateLimiter:
    """Admit at most ``max_requests`` calls within the trailing ``window_ms``."""

    def __init__(
        self,
        name: str,
        settings: RateLimitSettings | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.name = name
        self.settings = settings or RateLimitSettings()
        self._clock = clock
        self._lock = threading.Lock()
        self._admitted: deque[float] = deque()

    def try_acquire(self) -> bool:
        try:
            self.acquire()
        except RateLimitedError:
            return False
        return True

    def acquire(self) -> None:
        with self._lock:
            now = self._clock()
            self._evict(now)
            if len(self._admitted) >= self.settings.max_requests:
                oldest = self._admitted[0]
                retry_after_ms = max(
                    0, math.ceil(self.settings.window_ms - (now - oldest) * 1000)
                )
                log.warning(
                    "Rate limit %s exhausted (%s per %sms)",
                    self.name,
                    self.settings.max_requests,
                    self.settings.window_ms,
                )
                raise RateLimitedError(self.name, retry_after_ms=retry_after_ms)
            self._admitted.append(now)

    def remaining(self) -> int:
        with self._lock:
            self._evict(self._clock())
            return self.settings.max_requests - len(self._admitted)

    def _evict(self, now: float) -> None:
        horizon = now - self.settings.window_ms / 1000
        while self._admitted and self._admitted[0] <= horizon:
            self._admitted.popleft()


class RateLimiterRegistry:
    def __init__(
        self,
        *,
        default_settings: RateLimitSettings | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._default_settings = default_settings or RateLimitSettings()
        self._clock = clock
        self._lock = threading.Lock()
        self._limiters: dict[str, SlidingWindowRateLimiter] = {}

    def get(
        self, name: str, settings: RateLimitSettings | None = None
    ) -> SlidingWindowRateLimiter:
        with self._lock:
            limiter = self._limiters.get(name)
            if limiter is None:
                limiter = SlidingWindowRateLimiter(
                    name, settings or self._default_settings, clock=self._clock
                )
                self._limiters[name] = limiter
            return limiter
