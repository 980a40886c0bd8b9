"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class Agency(StrEnum):
    EA = "ea"
    HSE = "hse"

    @property
    def display_name(self) -> str:
        return _AGENCY_NAMES[self]


_AGENCY_NAMES: dict[Agency, str] = {
    Agency.EA: "Environment Agency",
    Agency.HSE: "Health and Safety Executive",
}


class RecordKind(StrEnum):
    CASE = "case"
    NOTICE = "notice"


class BusinessType(StrEnum):
    LIMITED_COMPANY = "limited_company"
    INDIVIDUAL = "individual"
    PARTNERSHIP = "partnership"
    PLC = "plc"
    OTHER = "other"


class UpsertOutcome(StrEnum):
    """Tri-state result of a duplicate-safe upsert."""

    CREATED = "created"
    UPDATED = "updated"
    EXISTING = "existing"


class ReviewStatus(StrEnum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
