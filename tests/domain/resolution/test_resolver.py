from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING, Any

from enforcesync.domain.model import Agency, BusinessType, ReviewStatus
from enforcesync.domain.resolution import LookupStatus, MatchTier, OffenderResolver
from enforcesync.resilience import RateLimitedError
from tests.helpers.fakes import FakeCompanyLookup, company
from tests.helpers.records import make_attributes

if TYPE_CHECKING:
    from collections.abc import Callable

    from enforcesync.adapters.sqlalchemy.unit_of_work import SqlAlchemyIngestionUnitOfWork
    from enforcesync.domain.model import OffenderAttributes
    from enforcesync.domain.resolution import OffenderResolution

    type UowFactory = Callable[[], SqlAlchemyIngestionUnitOfWork]


def _resolve(
    uow_factory: UowFactory,
    attributes: OffenderAttributes,
    *,
    agency: Agency = Agency.EA,
    seen_on: date | None = None,
    **resolver_kwargs: Any,
) -> OffenderResolution:
    with uow_factory() as uow:
        resolver = OffenderResolver(
            uow.repositories.offenders, uow.repositories.reviews, **resolver_kwargs
        )
        resolution = resolver.resolve_or_create(attributes, agency=agency, seen_on=seen_on)
        uow.commit()
    return resolution


def test_unmatched_subject_creates_offender(sqlite_unit_of_work: UowFactory) -> None:
    resolution = _resolve(
        sqlite_unit_of_work,
        make_attributes("Acme Waste Ltd", postcode="hu1 2ab"),
        seen_on=date(2024, 3, 15),
    )

    offender = resolution.offender
    assert resolution.created is True
    assert resolution.tier is MatchTier.NEW
    assert resolution.review is None
    assert offender.normalized_name == "acme waste ltd"
    assert offender.postcode == "HU1 2AB"
    assert offender.agencies == {Agency.EA}
    assert offender.first_seen_date == offender.last_seen_date == date(2024, 3, 15)


def test_name_and_postcode_match_unions_agencies(sqlite_unit_of_work: UowFactory) -> None:
    first = _resolve(
        sqlite_unit_of_work,
        make_attributes("Acme Waste Ltd", postcode="HU1 2AB"),
        seen_on=date(2024, 3, 1),
    )

    second = _resolve(
        sqlite_unit_of_work,
        make_attributes("ACME WASTE LIMITED", postcode="hu1 2ab"),
        agency=Agency.HSE,
        seen_on=date(2024, 1, 1),
    )

    assert second.created is False
    assert second.tier is MatchTier.NAME_AND_POSTCODE
    assert second.offender.id == first.offender.id
    assert second.offender.agencies == {Agency.EA, Agency.HSE}
    assert second.offender.first_seen_date == date(2024, 1, 1)
    assert second.offender.last_seen_date == date(2024, 3, 1)
    assert second.offender.name == "Acme Waste Ltd"


def test_registration_number_wins_over_name(sqlite_unit_of_work: UowFactory) -> None:
    first = _resolve(
        sqlite_unit_of_work,
        make_attributes("Acme Waste Ltd", company_registration_number="1234567"),
    )

    second = _resolve(
        sqlite_unit_of_work,
        make_attributes("Acme Environmental Services", company_registration_number="01234567"),
        agency=Agency.HSE,
    )

    assert first.offender.company_registration_number == "01234567"
    assert second.tier is MatchTier.REGISTRATION_NUMBER
    assert second.offender.id == first.offender.id


def test_near_identical_name_matches_fuzzily(sqlite_unit_of_work: UowFactory) -> None:
    first = _resolve(sqlite_unit_of_work, make_attributes("Acme Waste Ltd", postcode="HU1 2AB"))

    second = _resolve(
        sqlite_unit_of_work, make_attributes("Acme Wastes Ltd", postcode="HU9 9ZZ")
    )

    assert second.tier is MatchTier.FUZZY_NAME
    assert second.offender.id == first.offender.id
    assert 0.9 < second.score < 1.0


def test_subject_without_postcode_prefers_unlocated_identity(
    sqlite_unit_of_work: UowFactory,
) -> None:
    unlocated = _resolve(sqlite_unit_of_work, make_attributes("Acme Waste Ltd"))
    _resolve(
        sqlite_unit_of_work, make_attributes("Acme Waste Ltd", postcode="LS1 4AB"), matchers=()
    )

    again = _resolve(sqlite_unit_of_work, make_attributes("Acme Waste Ltd"))

    assert again.tier is MatchTier.NAME
    assert again.offender.id == unlocated.offender.id


def test_ambiguous_name_creates_offender_and_review(sqlite_unit_of_work: UowFactory) -> None:
    lookup = FakeCompanyLookup([company("01234567", "Acme Waste Ltd")])
    _resolve(sqlite_unit_of_work, make_attributes("Acme Waste Ltd", postcode="HU1 2AB"))
    _resolve(
        sqlite_unit_of_work, make_attributes("Acme Waste Ltd", postcode="LS1 4AB"), matchers=()
    )

    resolution = _resolve(
        sqlite_unit_of_work,
        make_attributes("Acme Waste Ltd", postcode="BS1 6QA"),
        lookup=lookup,
    )

    assert resolution.created is True
    assert len(resolution.candidates) == 2
    assert resolution.review is not None
    assert resolution.review.status is ReviewStatus.PENDING
    assert resolution.review.confidence_score == 1.0
    assert lookup.queries == []
    with sqlite_unit_of_work() as uow:
        pending = uow.repositories.reviews.list_pending()
    assert [review.offender_id for review in pending] == [resolution.offender.id]
    assert {entry["postcode"] for entry in pending[0].candidates} == {"HU1 2AB", "LS1 4AB"}


def test_company_register_match_assigns_registration_number(
    sqlite_unit_of_work: UowFactory,
) -> None:
    lookup = FakeCompanyLookup([company("01234567", "ACME WASTE LIMITED")])

    resolution = _resolve(
        sqlite_unit_of_work, make_attributes("Acme Waste Ltd"), lookup=lookup
    )

    assert lookup.queries == ["Acme Waste Ltd"]
    assert resolution.created is True
    assert resolution.lookup is not None
    assert resolution.lookup.status is LookupStatus.MATCHED
    assert resolution.offender.company_registration_number == "01234567"


def test_company_register_match_reuses_registered_owner(
    sqlite_unit_of_work: UowFactory,
) -> None:
    owner = _resolve(
        sqlite_unit_of_work,
        make_attributes("Zenith Recycling Ltd", company_registration_number="01234567"),
    )
    lookup = FakeCompanyLookup([company("01234567", "Acme Waste Ltd")])

    resolution = _resolve(
        sqlite_unit_of_work, make_attributes("Acme Waste Ltd"), agency=Agency.HSE, lookup=lookup
    )

    assert resolution.created is False
    assert resolution.tier is MatchTier.COMPANY_REGISTER
    assert resolution.offender.id == owner.offender.id
    assert resolution.offender.agencies == {Agency.EA, Agency.HSE}


def test_several_register_hits_open_a_review(sqlite_unit_of_work: UowFactory) -> None:
    lookup = FakeCompanyLookup(
        [company("01234567", "Acme Waste Ltd"), company("07654321", "Acme Waste Services Ltd")]
    )

    resolution = _resolve(
        sqlite_unit_of_work, make_attributes("Acme Waste Ltd"), lookup=lookup
    )

    assert resolution.lookup is not None
    assert resolution.lookup.status is LookupStatus.REVIEW
    assert resolution.review is not None
    assert [entry["company_number"] for entry in resolution.review.candidates] == [
        "01234567",
        "07654321",
    ]
    assert resolution.offender.company_registration_number is None


def test_lookup_failures_are_reported_not_raised(sqlite_unit_of_work: UowFactory) -> None:
    lookup = FakeCompanyLookup(
        error=RateLimitedError("company_lookup", retry_after_ms=60_000)
    )

    resolution = _resolve(
        sqlite_unit_of_work, make_attributes("Acme Waste Ltd"), lookup=lookup
    )

    assert resolution.created is True
    assert resolution.lookup is not None
    assert resolution.lookup.status is LookupStatus.RATE_LIMITED
    assert resolution.lookup.is_error


def test_individuals_skip_company_lookup(sqlite_unit_of_work: UowFactory) -> None:
    lookup = FakeCompanyLookup([company("01234567", "John Smith Ltd")])

    resolution = _resolve(
        sqlite_unit_of_work,
        make_attributes("John Smith", business_type=BusinessType.INDIVIDUAL),
        lookup=lookup,
    )

    assert resolution.lookup is not None
    assert resolution.lookup.status is LookupStatus.SKIPPED
    assert lookup.queries == []


def test_concurrent_insert_reuses_race_winner(sqlite_unit_of_work: UowFactory) -> None:
    winner = _resolve(sqlite_unit_of_work, make_attributes("Acme Waste Ltd", postcode="HU1 2AB"))

    # no matchers: the insert itself discovers the existing identity
    loser = _resolve(
        sqlite_unit_of_work,
        make_attributes("Acme Waste Ltd", postcode="HU1 2AB"),
        agency=Agency.HSE,
        matchers=(),
    )

    assert loser.created is False
    assert loser.offender.id == winner.offender.id
    assert loser.offender.agencies == {Agency.EA, Agency.HSE}


def test_lookup_company_assigns_number_to_existing_offender(
    sqlite_unit_of_work: UowFactory,
) -> None:
    created = _resolve(sqlite_unit_of_work, make_attributes("Acme Waste Ltd"))
    lookup = FakeCompanyLookup([company("01234567", "Acme Waste Ltd")])

    with sqlite_unit_of_work() as uow:
        offenders = uow.repositories.offenders
        resolver = OffenderResolver(offenders, uow.repositories.reviews, lookup=lookup)
        offender = offenders.get(created.offender.id)
        assert offender is not None
        result = resolver.lookup_company(offender)
        again = resolver.lookup_company(offender)
        uow.commit()

    assert result.status is LookupStatus.MATCHED
    assert again.status is LookupStatus.SKIPPED
    assert again.reason == "already registered"
    with sqlite_unit_of_work() as uow:
        stored = uow.repositories.offenders.find_by_registration_number("01234567")
    assert stored is not None
    assert stored.id == created.offender.id


def test_lookup_company_is_suppressed_by_pending_review(
    sqlite_unit_of_work: UowFactory,
) -> None:
    lookup = FakeCompanyLookup(
        [company("01234567", "Acme Waste Ltd"), company("07654321", "Acme Waste Services Ltd")]
    )
    created = _resolve(sqlite_unit_of_work, make_attributes("Acme Waste Ltd"), lookup=lookup)

    with sqlite_unit_of_work() as uow:
        resolver = OffenderResolver(
            uow.repositories.offenders, uow.repositories.reviews, lookup=lookup
        )
        result = resolver.lookup_company(created.offender)

    assert result.status is LookupStatus.SKIPPED
    assert result.reason == "review exists"
    assert len(lookup.queries) == 1
