"""Company-register lookups behind the shared rate limiter, retry driver and breaker."""

from __future__ import annotations

from functools import partial
from typing import TYPE_CHECKING

from enforcesync.domain.errors import ExternalLookupError
from enforcesync.domain.recovery import is_retryable
from enforcesync.resilience.errors import CircuitOpenError, RetryExhaustedError

if TYPE_CHECKING:
    from enforcesync.config.resilience import RetryPolicy
    from enforcesync.domain.ports import CompanyLookup, CompanyRecord
    from enforcesync.resilience import ResilientExecutor

COMPANY_LOOKUP_OPERATION = "company_lookup"


class GuardedCompanyLookup:
    """``CompanyLookup`` wrapper; breaker and exhaustion failures surface as lookup errors.

    Rate-limit rejections pass through unchanged so the resolver can report them as such.
    """

    def __init__(
        self,
        lookup: CompanyLookup,
        executor: ResilientExecutor,
        *,
        name: str = COMPANY_LOOKUP_OPERATION,
        policy: RetryPolicy | str = "api_operations",
    ) -> None:
        self._lookup = lookup
        self._executor = executor
        self._name = name
        self._policy = policy

    def search_companies(self, name: str, *, limit: int = 10) -> list[CompanyRecord]:
        try:
            return self._executor.call(
                self._name,
                partial(self._lookup.search_companies, name, limit=limit),
                policy=self._policy,
                limiter=self._name,
                breaker=self._name,
                retry_if=is_retryable,
            )
        except (CircuitOpenError, RetryExhaustedError) as exc:
            raise ExternalLookupError(f"Company lookup for {name!r} unavailable: {exc}") from exc
