"""Domain model for regulatory enforcement reconciliation."""

from __future__ import annotations

from .base import Clock, Entity, new_id, utcnow
from .enums import Agency, BusinessType, RecordKind, ReviewStatus, UpsertOutcome
from .offender import Offender, OffenderAttributes
from .records import (
    EnforcementCase,
    EnforcementNotice,
    EnforcementRecord,
    NormalizedCase,
    NormalizedNotice,
    NormalizedRecord,
    RecordKey,
)
from .review import OffenderMatchReview

__all__ = [
    "Agency",
    "BusinessType",
    "Clock",
    "EnforcementCase",
    "EnforcementNotice",
    "EnforcementRecord",
    "Entity",
    "NormalizedCase",
    "NormalizedNotice",
    "NormalizedRecord",
    "Offender",
    "OffenderAttributes",
    "OffenderMatchReview",
    "RecordKey",
    "RecordKind",
    "ReviewStatus",
    "UpsertOutcome",
    "new_id",
    "utcnow",
]
