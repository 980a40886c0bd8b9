"""Resolve a record's subject to one offender identity, creating it when unmatched."""

from __future__ import annotations

import dataclasses
import logging
from typing import TYPE_CHECKING

from enforcesync.config.ingestion import IngestionConfig
from enforcesync.domain.errors import (
    ConstraintCode,
    ConstraintViolationError,
    DuplicateOffenderError,
    ExternalLookupError,
)
from enforcesync.domain.model import BusinessType, Offender, OffenderMatchReview, utcnow
from enforcesync.resilience.errors import RateLimitedError

from .companies import evaluate_companies
from .contracts import (
    Ambiguous,
    CompanyLookupResult,
    LookupStatus,
    Match,
    MatchTier,
    OffenderResolution,
    Subject,
)
from .matchers import default_matchers

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import date

    from enforcesync.domain.model import Agency, Clock, OffenderAttributes
    from enforcesync.domain.ports import CompanyLookup, MatchReviewRepository, OffenderRepository

    from .contracts import MatchCandidate, MatcherResult
    from .matchers import OffenderMatcher

log = logging.getLogger(__name__)


class OffenderResolver:
    """Run the matcher chain, then fall back to creating a new identity.

    Matching only unions the observing agency into the identity. Company-register lookups
    are advisory: their failures are reported on the resolution, never raised.
    """

    def __init__(
        self,
        offenders: OffenderRepository,
        reviews: MatchReviewRepository,
        *,
        lookup: CompanyLookup | None = None,
        config: IngestionConfig | None = None,
        matchers: Sequence[OffenderMatcher] | None = None,
        clock: Clock = utcnow,
    ) -> None:
        self.config = config or IngestionConfig()
        self._offenders = offenders
        self._reviews = reviews
        self._lookup = lookup
        self._clock = clock
        self._matchers = tuple(
            matchers
            if matchers is not None
            else default_matchers(
                threshold=self.config.fuzzy_threshold,
                auto_accept=self.config.auto_accept_threshold,
                max_candidates=self.config.max_review_candidates,
            )
        )

    def resolve_or_create(
        self,
        attributes: OffenderAttributes,
        *,
        agency: Agency,
        seen_on: date | None = None,
        lookup: CompanyLookupResult | None = None,
    ) -> OffenderResolution:
        """Match ``attributes`` to an identity or create one.

        ``lookup`` is a register search already made for these attributes; when given, a
        new identity uses it instead of searching the register itself.
        """

        subject = Subject.from_attributes(attributes)
        result = self._match(subject)
        if isinstance(result, Match):
            return self._apply_match(result, agency=agency, seen_on=seen_on)
        ambiguous: tuple[MatchCandidate, ...] = ()
        if isinstance(result, Ambiguous):
            log.info(
                "%s candidate identities for %r; not auto-picking",
                len(result.candidates),
                subject.normalized_name,
            )
            ambiguous = result.candidates
        return self._create(
            subject, agency=agency, seen_on=seen_on, ambiguous=ambiguous, lookup=lookup
        )

    def needs_company_lookup(self, attributes: OffenderAttributes) -> bool:
        """True when resolving ``attributes`` would create an identity and search the register."""

        if self._lookup is None:
            return False
        subject = Subject.from_attributes(attributes)
        return subject.registration_number is None and self._match(subject) is None

    def search_company(self, attributes: OffenderAttributes) -> CompanyLookupResult:
        """Search the register for ``attributes``; touches no repository."""

        return self._search(attributes.name, attributes.business_type)

    def lookup_company(self, offender: Offender) -> CompanyLookupResult:
        """Search the company register for an offender without a registration number.

        A pending review for the offender suppresses the search.
        """

        if offender.company_registration_number:
            return CompanyLookupResult(status=LookupStatus.SKIPPED, reason="already registered")
        if self._reviews.get_for_offender(offender.id) is not None:
            return CompanyLookupResult(status=LookupStatus.SKIPPED, reason="review exists")
        result = self._search(offender.name, offender.business_type)
        if result.status is LookupStatus.MATCHED:
            assert result.company is not None
            number = result.company.company_number
            owner = self._offenders.find_by_registration_number(number)
            if owner is None:
                offender.company_registration_number = number
                self._offenders.save(offender)
            elif owner.id != offender.id:
                log.warning(
                    "Registration number %s already belongs to offender %s", number, owner.id
                )
        elif result.status is LookupStatus.REVIEW:
            self._open_review(offender, result.candidates)
        return result

    def _match(self, subject: Subject) -> MatcherResult:
        for matcher in self._matchers:
            result = matcher(subject, self._offenders)
            if result is not None:
                return result
        return None

    def _apply_match(
        self, match: Match, *, agency: Agency, seen_on: date | None
    ) -> OffenderResolution:
        offender = match.offender
        if offender.observe(agency, seen_on=seen_on):
            self._offenders.save(offender)
        log.debug("Matched offender %s via %s (score=%.3f)", offender.id, match.tier, match.score)
        return OffenderResolution(
            offender=offender, tier=match.tier, created=False, score=match.score
        )

    def _create(
        self,
        subject: Subject,
        *,
        agency: Agency,
        seen_on: date | None,
        ambiguous: tuple[MatchCandidate, ...],
        lookup: CompanyLookupResult | None,
    ) -> OffenderResolution:
        registration_number = subject.registration_number
        if registration_number is None and not ambiguous:
            if lookup is None:
                lookup = self._search(subject.attributes.name, subject.attributes.business_type)
            if lookup.status is LookupStatus.MATCHED:
                assert lookup.company is not None
                registration_number = lookup.company.company_number
                owner = self._offenders.find_by_registration_number(registration_number)
                if owner is not None:
                    resolution = self._apply_match(
                        Match(offender=owner, tier=MatchTier.COMPANY_REGISTER),
                        agency=agency,
                        seen_on=seen_on,
                    )
                    return dataclasses.replace(resolution, lookup=lookup)

        attributes = dataclasses.replace(
            subject.attributes,
            postcode=subject.postcode,
            company_registration_number=registration_number,
        )
        offender = Offender.from_attributes(
            attributes, normalized_name=subject.normalized_name, agency=agency, seen_on=seen_on
        )
        try:
            self._offenders.add(offender)
        except DuplicateOffenderError:
            winner = self._find_race_winner(subject, registration_number)
            if winner is None:
                raise
            log.info("Offender %r was created concurrently; reusing it", subject.normalized_name)
            resolution = self._apply_match(
                Match(offender=winner, tier=MatchTier.NAME_AND_POSTCODE),
                agency=agency,
                seen_on=seen_on,
            )
            return dataclasses.replace(resolution, lookup=lookup)

        candidates = ambiguous
        if lookup is not None and lookup.status is LookupStatus.REVIEW:
            candidates = lookup.candidates
        review = self._open_review(offender, candidates) if candidates else None
        log.info("Created offender %s for %r", offender.id, offender.name)
        return OffenderResolution(
            offender=offender,
            tier=MatchTier.NEW,
            created=True,
            candidates=candidates,
            lookup=lookup,
            review=review,
        )

    def _search(self, name: str, business_type: BusinessType) -> CompanyLookupResult:
        if self._lookup is None:
            return CompanyLookupResult(status=LookupStatus.SKIPPED, reason="lookup disabled")
        if business_type is BusinessType.INDIVIDUAL:
            return CompanyLookupResult(status=LookupStatus.SKIPPED, reason="individual")
        try:
            companies = self._lookup.search_companies(name)
        except RateLimitedError as exc:
            log.warning("Company lookup for %r rate limited: %s", name, exc)
            return CompanyLookupResult(status=LookupStatus.RATE_LIMITED, reason=str(exc))
        except ExternalLookupError as exc:
            log.warning("Company lookup for %r failed: %s", name, exc)
            return CompanyLookupResult(status=LookupStatus.FAILED, reason=str(exc))
        return evaluate_companies(
            name,
            business_type,
            companies,
            auto_accept=self.config.auto_accept_threshold,
            max_candidates=self.config.max_review_candidates,
        )

    def _open_review(
        self, offender: Offender, candidates: tuple[MatchCandidate, ...]
    ) -> OffenderMatchReview:
        existing = self._reviews.get_for_offender(offender.id)
        if existing is not None:
            return existing
        review = OffenderMatchReview(
            offender_id=offender.id,
            searched_at=self._clock(),
            confidence_score=max(candidate.score for candidate in candidates),
            candidates=[candidate.snapshot() for candidate in candidates],
        )
        try:
            self._reviews.add(review)
        except ConstraintViolationError as exc:
            if exc.code is not ConstraintCode.UNIQUE:
                raise
            concurrent = self._reviews.get_for_offender(offender.id)
            if concurrent is None:
                raise
            return concurrent
        log.info(
            "Opened match review for offender %s (%s candidates)", offender.id, len(candidates)
        )
        return review

    def _find_race_winner(
        self, subject: Subject, registration_number: str | None
    ) -> Offender | None:
        if registration_number is not None:
            owner = self._offenders.find_by_registration_number(registration_number)
            if owner is not None:
                return owner
        if subject.postcode is not None:
            return self._offenders.find_by_name_and_postcode(
                subject.normalized_name, subject.postcode
            )
        found = self._offenders.find_by_normalized_name(subject.normalized_name)
        return found[0] if found else None
