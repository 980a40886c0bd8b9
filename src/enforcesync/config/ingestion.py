"""Ingestion defaults for the reconciliation pipeline."""

from __future__ import annotations

from dataclasses import dataclass

from .env import optional_float_env
from .errors import ConfigurationError

DEFAULT_FUZZY_THRESHOLD = 0.85
DEFAULT_AUTO_ACCEPT_THRESHOLD = 0.90
DEFAULT_MAX_REVIEW_CANDIDATES = 3
DEFAULT_BATCH_SIZE = 50


@dataclass(frozen=True, slots=True)
class IngestionConfig:
    fuzzy_threshold: float = DEFAULT_FUZZY_THRESHOLD
    auto_accept_threshold: float = DEFAULT_AUTO_ACCEPT_THRESHOLD
    max_review_candidates: int = DEFAULT_MAX_REVIEW_CANDIDATES
    batch_size: int = DEFAULT_BATCH_SIZE

    def __post_init__(self) -> None:
        if not 0.0 < self.fuzzy_threshold <= 1.0:
            raise ConfigurationError("fuzzy_threshold must be within (0, 1]")
        if self.auto_accept_threshold < self.fuzzy_threshold:
            raise ConfigurationError("auto_accept_threshold must be >= fuzzy_threshold")


def get_ingestion_config() -> IngestionConfig:
    return IngestionConfig(
        fuzzy_threshold=optional_float_env("ENFORCESYNC_FUZZY_THRESHOLD", DEFAULT_FUZZY_THRESHOLD),
        auto_accept_threshold=optional_float_env(
            "ENFORCESYNC_AUTO_ACCEPT_THRESHOLD", DEFAULT_AUTO_ACCEPT_THRESHOLD
        ),
    )
