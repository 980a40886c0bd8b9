"""Decide what a company-register search says about an offender."""

from __future__ import annotations

from typing import TYPE_CHECKING, Final

from enforcesync.domain.model import BusinessType

from .contracts import CompanyLookupResult, LookupStatus, MatchCandidate, MatchTier
from .similarity import name_similarity

if TYPE_CHECKING:
    from collections.abc import Sequence

    from enforcesync.domain.ports import CompanyRecord

COMPATIBLE_COMPANY_TYPES: Final[dict[BusinessType, frozenset[str]]] = {
    BusinessType.LIMITED_COMPANY: frozenset(
        {
            "ltd",
            "private-limited-guarant-nsc-limited-exemption",
            "private-limited-guarant-nsc",
            "private-limited-shares-section-30-exemption",
        }
    ),
    BusinessType.PLC: frozenset({"plc", "public-limited-company"}),
    BusinessType.PARTNERSHIP: frozenset({"llp", "limited-partnership", "scottish-partnership"}),
}


def company_type_compatible(business_type: BusinessType, company_type: str | None) -> bool:
    if company_type is None:
        return True
    allowed = COMPATIBLE_COMPANY_TYPES.get(business_type)
    if allowed is None:
        return True
    return company_type.casefold() in allowed


def evaluate_companies(
    name: str,
    business_type: BusinessType,
    companies: Sequence[CompanyRecord],
    *,
    auto_accept: float = 0.90,
    max_candidates: int = 3,
) -> CompanyLookupResult:
    """Classify search hits as one confident match, a review set, or nothing."""

    active = [company for company in companies if company.is_active]
    if not active:
        return CompanyLookupResult(status=LookupStatus.NO_MATCH, reason="no active companies")

    if len(active) == 1:
        company = active[0]
        score = name_similarity(name, company.company_name)
        if score >= auto_accept and company_type_compatible(business_type, company.company_type):
            return CompanyLookupResult(
                status=LookupStatus.MATCHED,
                company=company,
                candidates=(
                    MatchCandidate(tier=MatchTier.COMPANY_REGISTER, score=score, company=company),
                ),
            )
        return CompanyLookupResult(
            status=LookupStatus.NO_MATCH,
            reason=f"single candidate below confidence (similarity={score:.3f})",
        )

    if len(active) <= max_candidates:
        candidates = sorted(
            (
                MatchCandidate(
                    tier=MatchTier.COMPANY_REGISTER,
                    score=name_similarity(name, company.company_name),
                    company=company,
                )
                for company in active
            ),
            key=lambda candidate: candidate.score,
            reverse=True,
        )
        return CompanyLookupResult(status=LookupStatus.REVIEW, candidates=tuple(candidates))

    return CompanyLookupResult(
        status=LookupStatus.NO_MATCH, reason=f"{len(active)} active candidates; too ambiguous"
    )
