"""Translate raw Environment Agency records into canonical enforcement cases."""

from __future__ import annotations

import hashlib
from logging import getLogger
from typing import TYPE_CHECKING

from pydantic import ValidationError

from enforcesync.domain.errors import NormalizationError
from enforcesync.domain.model import Agency, NormalizedCase, OffenderAttributes, RecordKey
from enforcesync.domain.normalization import (
    clean_name,
    detect_business_type,
    normalize_address,
    normalize_postcode,
)

from .schema import EaActionType, EaRecordPayload

if TYPE_CHECKING:
    from collections.abc import Mapping

log = getLogger(__name__)

EA_REGISTER_URL = (
    "https://environment.data.gov.uk/public-register/enforcement-action/registration/{record_id}"
)

_ACTION_TYPES: dict[EaActionType, str] = {
    EaActionType.COURT_CASE: "Court Case",
    EaActionType.CAUTION: "Formal Caution",
    EaActionType.ENFORCEMENT_NOTICE: "Enforcement Notice",
}
_RESULTS: dict[EaActionType, str] = {
    EaActionType.COURT_CASE: "Court Action",
    EaActionType.CAUTION: "Formal Caution",
    EaActionType.ENFORCEMENT_NOTICE: "Enforcement Notice Issued",
}
_INDUSTRY_KEYWORDS: tuple[tuple[tuple[str, ...], str], ...] = (
    (("manufacturing",), "Manufacturing"),
    (("construction",), "Construction"),
    (("water", "supply", "utility"), "Extractive and utility supply industries"),
    (
        ("agriculture", "farming", "forestry", "fishing"),
        "Agriculture hunting forestry and fishing",
    ),
    (("service", "management", "transport", "retail"), "Total service industries"),
)


def parse_ea_case(raw: Mapping[str, object] | EaRecordPayload) -> NormalizedCase:
    payload = _ensure_payload(raw)
    regulator_id = payload.ea_record_id or fallback_record_id(payload)
    impact = environmental_impact(payload)
    receptor = primary_receptor(payload)
    multi_violation = is_multi_violation(payload.case_reference)

    tags = {payload.action_type.value, f"impact:{impact}", f"receptor:{receptor}"}
    if multi_violation:
        tags.add("multi_violation")

    return NormalizedCase(
        key=RecordKey(Agency.EA, regulator_id),
        offender=_offender_attributes(payload),
        case_reference=payload.case_reference,
        offence_result=_RESULTS.get(payload.action_type, "Regulatory Action"),
        offence_fine=payload.total_fine,
        offence_action_date=payload.action_date,
        offence_action_type=_ACTION_TYPES.get(payload.action_type, "Other"),
        offence_breaches=_breaches_text(payload),
        legal_reference=legal_reference(payload.act, payload.section),
        regulator_function=(
            f"Environmental - {payload.agency_function}"
            if payload.agency_function
            else "Environmental"
        ),
        regulator_url=payload.detail_url or EA_REGISTER_URL.format(record_id=regulator_id),
        environmental_impact=impact,
        environmental_receptor=receptor,
        is_multi_violation=multi_violation,
        tags=frozenset(tags),
    )


def fallback_record_id(payload: EaRecordPayload) -> str:
    """Stable identifier for records scraped without a register id."""

    action_date = payload.action_date.isoformat() if payload.action_date else ""
    identity = f"{payload.offender_name}|{action_date}|{payload.action_type.value}"
    digest = hashlib.sha256(identity.encode("utf-8")).hexdigest()[:16]
    log.debug("EA record without id; derived %s from %r", digest, identity)
    return digest


def legal_reference(act: str | None, section: str | None) -> str | None:
    if act and section:
        return f"{act} - {section}"
    return act


def environmental_impact(payload: EaRecordPayload) -> str:
    impacts = (payload.water_impact, payload.land_impact, payload.air_impact)
    if "major" in impacts:
        return "major"
    if "minor" in impacts:
        return "minor"
    return "none"


def primary_receptor(payload: EaRecordPayload) -> str:
    receptors = (
        ("water", payload.water_impact),
        ("land", payload.land_impact),
        ("air", payload.air_impact),
    )
    for level in ("major", "minor"):
        for receptor, impact in receptors:
            if impact == level:
                return receptor
    return "land"


def is_multi_violation(case_reference: str | None) -> bool:
    reference = case_reference or ""
    return "/01" in reference or "/02" in reference


def industry_category(sector: str | None) -> str:
    if not sector:
        return "Unknown"
    lowered = sector.casefold()
    for keywords, category in _INDUSTRY_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return category
    return "Unknown"


def _offender_attributes(payload: EaRecordPayload) -> OffenderAttributes:
    parts = (payload.address, payload.town, payload.county, payload.postcode)
    full_address = ", ".join(part for part in parts if part)
    return OffenderAttributes(
        name=payload.offender_name,
        address=normalize_address(full_address),
        postcode=normalize_postcode(payload.postcode),
        local_authority=clean_name(payload.county),
        main_activity=payload.industry_sector,
        industry=industry_category(payload.industry_sector),
        business_type=detect_business_type(payload.offender_name),
        company_registration_number=payload.company_registration_number,
    )


def _breaches_text(payload: EaRecordPayload) -> str | None:
    reference = legal_reference(payload.act, payload.section)
    if payload.offence_description and reference:
        return f"{payload.offence_description}\n\nLegal Reference: {reference}"
    return payload.offence_description or reference


def _ensure_payload(raw: Mapping[str, object] | EaRecordPayload) -> EaRecordPayload:
    if isinstance(raw, EaRecordPayload):
        return raw
    try:
        return EaRecordPayload.model_validate(raw)
    except ValidationError as exc:
        first = exc.errors()[0]
        field = ".".join(str(part) for part in first["loc"]) or None
        raise NormalizationError(f"Invalid EA record: {first['msg']}", field=field) from exc
