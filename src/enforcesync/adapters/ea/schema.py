"""Pydantic models describing raw Environment Agency enforcement records."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from enum import StrEnum
from typing import Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from enforcesync.domain.normalization import parse_amount, parse_date

ImpactLevel = Literal["major", "minor", "none"]


def _blank_to_none(value: object) -> object:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


class EaActionType(StrEnum):
    COURT_CASE = "court_case"
    CAUTION = "caution"
    ENFORCEMENT_NOTICE = "enforcement_notice"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: object) -> EaActionType:
        """Accept enum values, labels ("Court Case") and register URL slugs ("court-case")."""

        if isinstance(value, EaActionType):
            return value
        if not isinstance(value, str):
            return cls.UNKNOWN
        text = value.strip().casefold().replace("-", "_").replace(" ", "_")
        if "court_case" in text:
            return cls.COURT_CASE
        if "caution" in text:
            return cls.CAUTION
        if "enforcement_notice" in text:
            return cls.ENFORCEMENT_NOTICE
        return cls.UNKNOWN


class EaBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)


class EaRecordPayload(EaBaseModel):
    ea_record_id: str | None = Field(
        default=None, validation_alias=AliasChoices("ea_record_id", "record_id", "regulator_id")
    )
    offender_name: str
    company_registration_number: str | None = None
    industry_sector: str | None = None
    address: str | None = None
    town: str | None = None
    county: str | None = None
    postcode: str | None = None
    action_date: date | None = None
    action_type: EaActionType = EaActionType.UNKNOWN
    total_fine: Decimal = Field(
        default=Decimal(0), validation_alias=AliasChoices("total_fine", "fine")
    )
    offence_description: str | None = None
    agency_function: str | None = None
    water_impact: ImpactLevel | None = None
    land_impact: ImpactLevel | None = None
    air_impact: ImpactLevel | None = None
    act: str | None = None
    section: str | None = None
    case_reference: str | None = None
    event_reference: str | None = None
    detail_url: str | None = None

    _normalize_optional = field_validator(
        "ea_record_id",
        "company_registration_number",
        "industry_sector",
        "address",
        "town",
        "county",
        "postcode",
        "offence_description",
        "agency_function",
        "act",
        "section",
        "case_reference",
        "event_reference",
        "detail_url",
        mode="before",
    )(_blank_to_none)

    @field_validator("ea_record_id", mode="before")
    @classmethod
    def _stringify_id(cls, value: object) -> object:
        if isinstance(value, int):
            return str(value)
        return value

    @field_validator("offender_name")
    @classmethod
    def _require_name(cls, value: str) -> str:
        cleaned = " ".join(value.split())
        if not cleaned:
            raise ValueError("offender_name must not be blank")
        return cleaned

    @field_validator("action_date", mode="before")
    @classmethod
    def _parse_action_date(cls, value: object) -> date | None:
        return parse_date(value)

    @field_validator("action_type", mode="before")
    @classmethod
    def _parse_action_type(cls, value: object) -> EaActionType:
        return EaActionType.parse(value)

    @field_validator("total_fine", mode="before")
    @classmethod
    def _parse_fine(cls, value: object) -> Decimal:
        return parse_amount(value)

    @field_validator("water_impact", "land_impact", "air_impact", mode="before")
    @classmethod
    def _parse_impact(cls, value: object) -> object:
        if not isinstance(value, str):
            return None
        level = value.strip().casefold()
        return level if level in {"major", "minor", "none"} else None
