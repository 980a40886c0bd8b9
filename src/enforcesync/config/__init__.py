"""Application configuration helpers."""

from __future__ import annotations

from .companies_house import (
    CompaniesHouseConfig,
    companies_house_enabled,
    get_companies_house_config,
)
from .env import optional_float_env, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .http_resilience import CacheConfig, HttpRetryPolicy, RateLimit, ResilienceConfig
from .ingestion import IngestionConfig, get_ingestion_config
from .logging import configure_logging
from .resilience import (
    NAMED_POLICIES,
    BackoffKind,
    CircuitBreakerSettings,
    RateLimitSettings,
    RetryPolicy,
    get_policy,
)
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config

__all__ = [
    "NAMED_POLICIES",
    "BackoffKind",
    "CacheConfig",
    "CircuitBreakerSettings",
    "CompaniesHouseConfig",
    "ConfigurationError",
    "DatabaseConfig",
    "HttpRetryPolicy",
    "IngestionConfig",
    "MissingConfigurationError",
    "RateLimit",
    "RateLimitSettings",
    "ResilienceConfig",
    "RetryPolicy",
    "StorageConfig",
    "companies_house_enabled",
    "configure_logging",
    "get_companies_house_config",
    "get_database_config",
    "get_ingestion_config",
    "get_policy",
    "get_storage_config",
    "optional_float_env",
    "require_env_vars",
]
