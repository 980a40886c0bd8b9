"""Domain port definitions for adapters."""

from __future__ import annotations

from .lookup import CompanyLookup, CompanyRecord
from .persistence import (
    CaseRepository,
    EnforcementRecordRepository,
    MatchReviewRepository,
    NoticeRepository,
    OffenderRepository,
    Repository,
)
from .unit_of_work import (
    IngestionRepositories,
    IngestionUnitOfWork,
    RepositoryCollection,
    UnitOfWork,
)

__all__ = [
    "CaseRepository",
    "CompanyLookup",
    "CompanyRecord",
    "EnforcementRecordRepository",
    "IngestionRepositories",
    "IngestionUnitOfWork",
    "MatchReviewRepository",
    "NoticeRepository",
    "OffenderRepository",
    "Repository",
    "RepositoryCollection",
    "UnitOfWork",
]
