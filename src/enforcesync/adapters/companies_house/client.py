"""Companies House company-search client."""

from __future__ import annotations

import asyncio
from logging import getLogger
from typing import TYPE_CHECKING

import httpx
from pydantic import ValidationError

from enforcesync.adapters.http_resilience import ResilientClient
from enforcesync.domain.errors import ExternalLookupError
from enforcesync.resilience.errors import RateLimitedError

from .schema import CompanySearchResponse

if TYPE_CHECKING:
    from collections.abc import Callable

    from enforcesync.config.companies_house import CompaniesHouseConfig
    from enforcesync.config.http_resilience import ResilienceConfig
    from enforcesync.domain.ports import CompanyRecord

log = getLogger(__name__)

SEARCH_PATH = "search/companies"
RATE_LIMIT_NAME = "companies_house"
DEFAULT_RETRY_AFTER_MS = 60_000


def _retry_after_ms(response: httpx.Response) -> int:
    value = response.headers.get("Retry-After")
    if value is None:
        return DEFAULT_RETRY_AFTER_MS
    try:
        return max(0, int(float(value) * 1000))
    except ValueError:
        return DEFAULT_RETRY_AFTER_MS


class CompaniesHouseClient:
    """Synchronous ``CompanyLookup`` over the Companies House search API."""

    def __init__(
        self,
        *,
        config: CompaniesHouseConfig,
        client_factory: Callable[[ResilienceConfig], ResilientClient] | None = None,
    ) -> None:
        self._config = config
        self._resilience = config.resilience
        self._client_factory = client_factory or ResilientClient

    def search_companies(self, name: str, *, limit: int = 10) -> list[CompanyRecord]:
        """Search by name; raises ``RateLimitedError`` on 429, ``ExternalLookupError`` else."""

        response = asyncio.run(self._search_async(name=name, limit=limit))
        return [item.to_record() for item in response.items]

    async def _search_async(self, *, name: str, limit: int) -> CompanySearchResponse:
        if self._resilience.base_url is None:
            raise ExternalLookupError("Missing Companies House base_url in resilience config")
        params = {"q": name, "items_per_page": str(limit)}
        try:
            async with self._client_factory(self._resilience) as client:
                response = await client.get(
                    SEARCH_PATH, params=params, auth=httpx.BasicAuth(self._config.api_key, "")
                )
        except httpx.TransportError as exc:
            raise ExternalLookupError(f"Companies House search failed: {exc!r}") from exc

        if response.status_code == httpx.codes.TOO_MANY_REQUESTS:
            raise RateLimitedError(RATE_LIMIT_NAME, retry_after_ms=_retry_after_ms(response))
        if response.status_code == httpx.codes.NOT_FOUND:
            return CompanySearchResponse()
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise ExternalLookupError(
                f"Companies House search returned {response.status_code}"
            ) from exc

        try:
            result = CompanySearchResponse.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise ExternalLookupError("Unexpected Companies House response payload") from exc
        log.debug("Companies House search %r: %s hits", name, len(result.items))
        return result
