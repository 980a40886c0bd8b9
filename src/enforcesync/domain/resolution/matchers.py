"""Ordered offender matcher strategies.

Each matcher looks at one subject and answers with a ``Match``, an ``Ambiguous`` set of
candidates, or ``None`` to defer to the next matcher. Matchers only read from the
repository; applying a match is the resolver's job.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

from .contracts import Ambiguous, Match, MatchCandidate, MatchTier
from .similarity import jaro_winkler

if TYPE_CHECKING:
    from enforcesync.domain.ports import OffenderRepository

    from .contracts import MatcherResult, Subject


class OffenderMatcher(Protocol):
    def __call__(self, subject: Subject, offenders: OffenderRepository) -> MatcherResult: ...


def by_registration_number(subject: Subject, offenders: OffenderRepository) -> MatcherResult:
    if subject.registration_number is None:
        return None
    offender = offenders.find_by_registration_number(subject.registration_number)
    if offender is None:
        return None
    return Match(offender=offender, tier=MatchTier.REGISTRATION_NUMBER)


def by_name_and_postcode(subject: Subject, offenders: OffenderRepository) -> MatcherResult:
    if not subject.normalized_name or subject.postcode is None:
        return None
    offender = offenders.find_by_name_and_postcode(subject.normalized_name, subject.postcode)
    if offender is None:
        return None
    return Match(offender=offender, tier=MatchTier.NAME_AND_POSTCODE)


def by_name(subject: Subject, offenders: OffenderRepository) -> MatcherResult:
    if not subject.normalized_name:
        return None
    found = offenders.find_by_normalized_name(subject.normalized_name)
    if not found:
        return None
    if len(found) == 1:
        return Match(offender=found[0], tier=MatchTier.NAME)
    # a subject without postcode still prefers the one identity recorded without one
    if subject.postcode is None:
        unlocated = [offender for offender in found if offender.postcode is None]
        if len(unlocated) == 1:
            return Match(offender=unlocated[0], tier=MatchTier.NAME)
    return Ambiguous(
        candidates=tuple(
            MatchCandidate(tier=MatchTier.NAME, score=1.0, offender=offender)
            for offender in found
        )
    )


@dataclass(frozen=True, slots=True, kw_only=True)
class FuzzyNameMatcher:
    """Jaro-Winkler matching against stored normalized names.

    A lone candidate above ``threshold`` is accepted. When several compete, only a single
    candidate above ``auto_accept`` is; otherwise the best ``max_candidates`` are surfaced.
    """

    threshold: float = 0.85
    auto_accept: float = 0.90
    max_candidates: int = 3
    min_length: int = 3

    def __call__(self, subject: Subject, offenders: OffenderRepository) -> MatcherResult:
        name = subject.normalized_name
        if len(name) < self.min_length:
            return None
        scored = sorted(
            (
                MatchCandidate(
                    tier=MatchTier.FUZZY_NAME,
                    score=jaro_winkler(name, offender.normalized_name),
                    offender=offender,
                )
                for offender in offenders.fuzzy_candidates(name)
            ),
            key=lambda candidate: candidate.score,
            reverse=True,
        )
        plausible = [candidate for candidate in scored if candidate.score >= self.threshold]
        if not plausible:
            return None
        if len(plausible) == 1:
            return _accept(plausible[0])
        strong = [candidate for candidate in plausible if candidate.score >= self.auto_accept]
        if len(strong) == 1:
            return _accept(strong[0])
        return Ambiguous(candidates=tuple(plausible[: self.max_candidates]))


def default_matchers(
    *, threshold: float = 0.85, auto_accept: float = 0.90, max_candidates: int = 3
) -> tuple[OffenderMatcher, ...]:
    return (
        by_registration_number,
        by_name_and_postcode,
        by_name,
        FuzzyNameMatcher(
            threshold=threshold, auto_accept=auto_accept, max_candidates=max_candidates
        ),
    )


def _accept(candidate: MatchCandidate) -> Match:
    assert candidate.offender is not None
    return Match(offender=candidate.offender, tier=candidate.tier, score=candidate.score)
