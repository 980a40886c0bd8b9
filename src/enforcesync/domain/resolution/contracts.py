"""Offender resolution contracts.

This module holds only:
- the subject being resolved and the matcher result variants
- the transient ``MatchCandidate`` scoring structure
- the resolution and company-lookup outcomes returned to callers
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

from enforcesync.domain.normalization import (
    normalize_company_name,
    normalize_postcode,
    normalize_registration_number,
)

if TYPE_CHECKING:
    from enforcesync.domain.model import Offender, OffenderAttributes, OffenderMatchReview
    from enforcesync.domain.ports import CompanyRecord


class MatchTier(StrEnum):
    """Which matcher produced a resolution, strongest first."""

    REGISTRATION_NUMBER = "registration_number"
    NAME_AND_POSTCODE = "name_and_postcode"
    NAME = "name"
    FUZZY_NAME = "fuzzy_name"
    COMPANY_REGISTER = "company_register"
    NEW = "new"


@dataclass(frozen=True, slots=True, kw_only=True)
class Subject:
    """Offender attributes plus the comparison keys derived from them."""

    attributes: OffenderAttributes
    normalized_name: str
    postcode: str | None
    registration_number: str | None

    @classmethod
    def from_attributes(cls, attributes: OffenderAttributes) -> Subject:
        return cls(
            attributes=attributes,
            normalized_name=normalize_company_name(attributes.name),
            postcode=normalize_postcode(attributes.postcode),
            registration_number=normalize_registration_number(
                attributes.company_registration_number
            ),
        )


@dataclass(frozen=True, slots=True, kw_only=True)
class MatchCandidate:
    """A scored candidate identity; transient, only snapshots are persisted."""

    tier: MatchTier
    score: float
    offender: Offender | None = None
    company: CompanyRecord | None = None

    def snapshot(self) -> dict[str, object]:
        data: dict[str, object] = {"tier": self.tier.value, "score": round(self.score, 4)}
        if self.offender is not None:
            data |= {
                "offender_id": str(self.offender.id),
                "name": self.offender.name,
                "postcode": self.offender.postcode,
            }
        if self.company is not None:
            data |= {
                "company_number": self.company.company_number,
                "company_name": self.company.company_name,
                "company_status": self.company.company_status,
                "company_type": self.company.company_type,
                "address": self.company.address,
            }
        return data


@dataclass(frozen=True, slots=True, kw_only=True)
class Match:
    offender: Offender
    tier: MatchTier
    score: float = 1.0


@dataclass(frozen=True, slots=True, kw_only=True)
class Ambiguous:
    """Several plausible identities; the chain stops without picking one."""

    candidates: tuple[MatchCandidate, ...]

    def __post_init__(self) -> None:
        if not self.candidates:
            raise ValueError("Ambiguous result must include at least one candidate")


type MatcherResult = Match | Ambiguous | None


class LookupStatus(StrEnum):
    MATCHED = "matched"
    REVIEW = "review"
    NO_MATCH = "no_match"
    SKIPPED = "skipped"
    RATE_LIMITED = "rate_limited"
    FAILED = "failed"


@dataclass(frozen=True, slots=True, kw_only=True)
class CompanyLookupResult:
    status: LookupStatus
    company: CompanyRecord | None = None
    candidates: tuple[MatchCandidate, ...] = ()
    reason: str | None = None

    @property
    def is_error(self) -> bool:
        return self.status in {LookupStatus.RATE_LIMITED, LookupStatus.FAILED}


@dataclass(frozen=True, slots=True, kw_only=True)
class OffenderResolution:
    offender: Offender
    tier: MatchTier
    created: bool
    score: float = 1.0
    candidates: tuple[MatchCandidate, ...] = ()
    lookup: CompanyLookupResult | None = None
    review: OffenderMatchReview | None = None
