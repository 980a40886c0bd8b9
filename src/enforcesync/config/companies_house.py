"""Companies House configuration values."""

from __future__ import annotations

import os
from dataclasses import dataclass

from .env import require_env_vars
from .http_resilience import CacheConfig, RateLimit, ResilienceConfig

COMPANIES_HOUSE_BASE_URL = "https://api.company-information.service.gov.uk/"
COMPANIES_HOUSE_TIMEOUT_SECONDS = 10.0
COMPANIES_HOUSE_API_KEY_ENV = "COMPANIES_HOUSE_API_KEY"


@dataclass(frozen=True)
class CompaniesHouseConfig:
    """Holds Companies House API configuration values."""

    api_key: str
    resilience: ResilienceConfig


def _default_resilience() -> ResilienceConfig:
    # Companies House allows 600 requests per five minutes per key.
    return ResilienceConfig(
        name="companies_house",
        base_url=COMPANIES_HOUSE_BASE_URL,
        timeout_seconds=COMPANIES_HOUSE_TIMEOUT_SECONDS,
        ratelimit=RateLimit(max_calls=2, per_seconds=1.0),
        cache=CacheConfig(backend="memory", default_ttl_seconds=24 * 3600),
    )


def get_companies_house_config(
    *,
    resilience: ResilienceConfig | None = None,
) -> CompaniesHouseConfig:
    values = require_env_vars((COMPANIES_HOUSE_API_KEY_ENV,))
    return CompaniesHouseConfig(
        api_key=values[COMPANIES_HOUSE_API_KEY_ENV],
        resilience=resilience or _default_resilience(),
    )


def companies_house_enabled() -> bool:
    value = os.getenv(COMPANIES_HOUSE_API_KEY_ENV)
    return value is not None and bool(value.strip())
