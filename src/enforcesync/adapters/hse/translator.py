"""Translate raw HSE records into canonical cases and notices."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from pydantic import BaseModel, ValidationError

from enforcesync.domain.errors import NormalizationError
from enforcesync.domain.model import (
    Agency,
    NormalizedCase,
    NormalizedNotice,
    OffenderAttributes,
    RecordKey,
)
from enforcesync.domain.normalization import (
    clean_name,
    detect_business_type,
    extract_postcode,
    normalize_address,
)

from .schema import HseBaseModel, HseCasePayload, HseNoticePayload

if TYPE_CHECKING:
    from collections.abc import Mapping

log = getLogger(__name__)

HSE_NOTICE_URL = (
    "https://resources.hse.gov.uk/notices/notices/notice_details.asp?SF=CN&SV={notice_id}"
)

_ACTION_TYPES: dict[str, str] = {
    "court case": "Court Case",
    "improvement notice": "Improvement Notice",
    "prohibition notice": "Prohibition Notice",
    "formal caution": "Formal Caution",
}


def parse_hse_case(raw: Mapping[str, object] | HseCasePayload) -> NormalizedCase:
    payload = _ensure_payload(raw, HseCasePayload)
    action_type = normalize_action_type(payload.offence_action_type)
    tags = {_slug(action_type)}
    if payload.offence_fine > 0:
        tags.add("fined")

    return NormalizedCase(
        key=RecordKey(Agency.HSE, payload.regulator_id),
        offender=_offender_attributes(payload),
        offence_result=payload.offence_result,
        offence_fine=payload.offence_fine,
        offence_costs=payload.offence_costs,
        offence_action_date=payload.offence_action_date,
        offence_hearing_date=payload.offence_hearing_date,
        offence_action_type=action_type,
        offence_breaches=payload.offence_breaches or payload.offence_description,
        legal_reference=payload.offence_breaches_clean,
        regulator_function=regulator_function(payload.regulator_function),
        regulator_url=payload.regulator_url,
        related_cases=payload.related_cases,
        tags=frozenset(tags),
    )


def parse_hse_notice(raw: Mapping[str, object] | HseNoticePayload) -> NormalizedNotice:
    payload = _ensure_payload(raw, HseNoticePayload)
    action_type = normalize_action_type(payload.offence_action_type)

    return NormalizedNotice(
        key=RecordKey(Agency.HSE, payload.regulator_id),
        offender=_offender_attributes(payload, country=payload.offender_country),
        offence_action_type=action_type,
        offence_action_date=payload.offence_action_date,
        notice_date=payload.offence_action_date,
        compliance_date=(
            payload.offence_revised_compliance_date or payload.offence_compliance_date
        ),
        notice_body=payload.offence_description,
        offence_breaches=payload.offence_breaches,
        regulator_function=regulator_function(payload.regulator_function),
        regulator_url=HSE_NOTICE_URL.format(notice_id=payload.regulator_id),
        tags=frozenset({_slug(action_type)}),
    )


def normalize_action_type(value: str | None) -> str:
    if not value:
        return "Other"
    return _ACTION_TYPES.get(value.strip().casefold(), value.strip())


def regulator_function(value: str | None) -> str:
    if not value:
        return "Health and Safety"
    return f"HSE - {value}"


def _offender_attributes(
    payload: HseBaseModel, *, country: str | None = None
) -> OffenderAttributes:
    name = clean_name(payload.offender_name) or "Unknown"
    address = normalize_address(payload.offender_address)
    return OffenderAttributes(
        name=name,
        address=address,
        postcode=extract_postcode(address),
        local_authority=payload.offender_local_authority,
        country=country,
        main_activity=payload.offender_main_activity,
        sic_code=payload.offender_sic,
        industry=payload.offender_industry,
        business_type=detect_business_type(name),
    )


def _slug(label: str) -> str:
    return "_".join(label.casefold().split())


def _ensure_payload[TPayload: BaseModel](
    raw: Mapping[str, object] | TPayload, model: type[TPayload]
) -> TPayload:
    if isinstance(raw, model):
        return raw
    try:
        return model.model_validate(raw)
    except ValidationError as exc:
        first = exc.errors()[0]
        field = ".".join(str(part) for part in first["loc"]) or None
        raise NormalizationError(f"Invalid HSE record: {first['msg']}", field=field) from exc
