"""Pydantic models describing raw HSE case and notice records."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, field_validator

from enforcesync.domain.normalization import join_breaches, parse_amount, parse_date


def _blank_to_none(value: object) -> object:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


def _stringify(value: object) -> object:
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return value


class HseBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)

    regulator_id: str
    offender_name: str | None = None
    offender_address: str | None = None
    offender_local_authority: str | None = None
    offender_main_activity: str | None = None
    offender_industry: str | None = None
    offender_sic: str | None = None
    offence_action_date: date | None = None
    offence_action_type: str | None = None
    offence_result: str | None = None
    offence_description: str | None = None
    offence_breaches: str | None = None
    regulator_function: str | None = None

    _normalize_optional = field_validator(
        "offender_name",
        "offender_address",
        "offender_local_authority",
        "offender_main_activity",
        "offender_industry",
        "offence_action_type",
        "offence_result",
        "offence_description",
        "regulator_function",
        mode="before",
    )(_blank_to_none)

    _normalize_sic = field_validator("offender_sic", mode="before")(_stringify)

    @field_validator("regulator_id", mode="before")
    @classmethod
    def _require_regulator_id(cls, value: object) -> object:
        value = _stringify(value)
        if isinstance(value, str) and not value.strip():
            raise ValueError("regulator_id must not be blank")
        return value.strip() if isinstance(value, str) else value

    @field_validator("offence_action_date", mode="before")
    @classmethod
    def _parse_action_date(cls, value: object) -> date | None:
        return parse_date(value)

    @field_validator("offence_breaches", mode="before")
    @classmethod
    def _join_breaches(cls, value: object) -> str | None:
        return join_breaches(value)


class HseCasePayload(HseBaseModel):
    offence_hearing_date: date | None = None
    offence_fine: Decimal = Decimal(0)
    offence_costs: Decimal = Decimal(0)
    offence_breaches_clean: str | None = None
    regulator_url: str | None = None
    related_cases: str | None = None

    _normalize_case_optional = field_validator(
        "offence_breaches_clean", "regulator_url", mode="before"
    )(_blank_to_none)

    @field_validator("offence_hearing_date", mode="before")
    @classmethod
    def _parse_hearing_date(cls, value: object) -> date | None:
        return parse_date(value)

    @field_validator("offence_fine", "offence_costs", mode="before")
    @classmethod
    def _parse_amounts(cls, value: object) -> Decimal:
        return parse_amount(value)

    @field_validator("related_cases", mode="before")
    @classmethod
    def _join_related(cls, value: object) -> object:
        if isinstance(value, list | tuple):
            return ", ".join(str(item).strip() for item in value if str(item).strip()) or None
        return _blank_to_none(value)


class HseNoticePayload(HseBaseModel):
    offender_country: str | None = None
    offence_compliance_date: date | None = None
    offence_revised_compliance_date: date | None = None

    _normalize_country = field_validator("offender_country", mode="before")(_blank_to_none)

    @field_validator(
        "offence_compliance_date", "offence_revised_compliance_date", mode="before"
    )
    @classmethod
    def _parse_compliance_dates(cls, value: object) -> date | None:
        return parse_date(value)
