"""Offender identity resolution."""

from __future__ import annotations

from .companies import company_type_compatible, evaluate_companies
from .contracts import (
    Ambiguous,
    CompanyLookupResult,
    LookupStatus,
    Match,
    MatchCandidate,
    MatcherResult,
    MatchTier,
    OffenderResolution,
    Subject,
)
from .guarded import COMPANY_LOOKUP_OPERATION, GuardedCompanyLookup
from .matchers import (
    FuzzyNameMatcher,
    OffenderMatcher,
    by_name,
    by_name_and_postcode,
    by_registration_number,
    default_matchers,
)
from .resolver import OffenderResolver
from .similarity import jaro, jaro_winkler, name_similarity

__all__ = [
    "COMPANY_LOOKUP_OPERATION",
    "Ambiguous",
    "CompanyLookupResult",
    "FuzzyNameMatcher",
    "GuardedCompanyLookup",
    "LookupStatus",
    "Match",
    "MatchCandidate",
    "MatchTier",
    "MatcherResult",
    "OffenderMatcher",
    "OffenderResolution",
    "OffenderResolver",
    "Subject",
    "by_name",
    "by_name_and_postcode",
    "by_registration_number",
    "company_type_compatible",
    "default_matchers",
    "evaluate_companies",
    "jaro",
    "jaro_winkler",
    "name_similarity",
]
