"""Deferred offender match reviews for medium-confidence external matches."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .base import Entity
from .enums import ReviewStatus

if TYPE_CHECKING:
    from datetime import datetime
    from uuid import UUID


@dataclass(eq=False, kw_only=True)
class OffenderMatchReview(Entity):
    """One pending review per offender; candidates are a serialised snapshot."""

    offender_id: UUID
    searched_at: datetime
    confidence_score: float
    candidates: list[dict[str, object]] = field(default_factory=list)
    status: ReviewStatus = ReviewStatus.PENDING
