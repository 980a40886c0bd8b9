"""Offender identity: the resolved real-world subject of enforcement records."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .base import Entity
from .enums import Agency, BusinessType

if TYPE_CHECKING:
    from datetime import date


@dataclass(frozen=True, slots=True, kw_only=True)
class OffenderAttributes:
    """Subject attributes carried by a normalized record, before resolution."""

    name: str
    address: str | None = None
    postcode: str | None = None
    local_authority: str | None = None
    country: str | None = None
    main_activity: str | None = None
    sic_code: str | None = None
    industry: str | None = None
    business_type: BusinessType = BusinessType.OTHER
    company_registration_number: str | None = None


@dataclass(eq=False, kw_only=True)
class Offender(Entity):
    name: str
    normalized_name: str
    address: str | None = None
    postcode: str | None = None
    local_authority: str | None = None
    country: str | None = None
    main_activity: str | None = None
    sic_code: str | None = None
    industry: str | None = None
    business_type: BusinessType = BusinessType.OTHER
    company_registration_number: str | None = None
    agencies: set[Agency] = field(default_factory=set)
    first_seen_date: date | None = None
    last_seen_date: date | None = None

    @classmethod
    def from_attributes(
        cls,
        attributes: OffenderAttributes,
        *,
        normalized_name: str,
        agency: Agency,
        seen_on: date | None = None,
    ) -> Offender:
        return cls(
            name=attributes.name,
            normalized_name=normalized_name,
            address=attributes.address,
            postcode=attributes.postcode,
            local_authority=attributes.local_authority,
            country=attributes.country,
            main_activity=attributes.main_activity,
            sic_code=attributes.sic_code,
            industry=attributes.industry,
            business_type=attributes.business_type,
            company_registration_number=attributes.company_registration_number,
            agencies={agency},
            first_seen_date=seen_on,
            last_seen_date=seen_on,
        )

    def observe(self, agency: Agency, *, seen_on: date | None = None) -> bool:
        """Record another sighting; returns whether anything changed.

        Only the agency tag set and the seen-date window move; identity fields never do.
        """

        changed = False
        if agency not in self.agencies:
            # reassign so the mapped column sees a new value
            self.agencies = {*self.agencies, agency}
            changed = True
        if seen_on is not None:
            if self.first_seen_date is None or seen_on < self.first_seen_date:
                self.first_seen_date = seen_on
                changed = True
            if self.last_seen_date is None or seen_on > self.last_seen_date:
                self.last_seen_date = seen_on
                changed = True
        return changed
