"""Canonical enforcement records: normalized values and their persisted entities."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import TYPE_CHECKING, ClassVar

from .base import Entity
from .enums import Agency, RecordKind

if TYPE_CHECKING:
    from datetime import date, datetime
    from uuid import UUID

    from .offender import OffenderAttributes


@dataclass(frozen=True, slots=True)
class RecordKey:
    """Uniqueness scope of an enforcement record: regulator ids are only unique per agency."""

    agency: Agency
    regulator_id: str

    def __post_init__(self) -> None:
        if not self.regulator_id or not self.regulator_id.strip():
            raise ValueError("regulator_id must be a non-empty string")

    def __str__(self) -> str:
        return f"{self.agency}:{self.regulator_id}"


@dataclass(frozen=True, slots=True, kw_only=True)
class NormalizedCase:
    KIND: ClassVar[RecordKind] = RecordKind.CASE

    key: RecordKey
    offender: OffenderAttributes
    case_reference: str | None = None
    offence_result: str | None = None
    offence_fine: Decimal = Decimal(0)
    offence_costs: Decimal = Decimal(0)
    offence_action_date: date | None = None
    offence_hearing_date: date | None = None
    offence_action_type: str | None = None
    offence_breaches: str | None = None
    legal_reference: str | None = None
    regulator_function: str | None = None
    regulator_url: str | None = None
    related_cases: str | None = None
    environmental_impact: str | None = None
    environmental_receptor: str | None = None
    is_multi_violation: bool = False
    tags: frozenset[str] = frozenset()

    @property
    def action_date(self) -> date | None:
        return self.offence_action_date


@dataclass(frozen=True, slots=True, kw_only=True)
class NormalizedNotice:
    KIND: ClassVar[RecordKind] = RecordKind.NOTICE

    key: RecordKey
    offender: OffenderAttributes
    case_reference: str | None = None
    offence_action_type: str | None = None
    offence_action_date: date | None = None
    notice_date: date | None = None
    operative_date: date | None = None
    compliance_date: date | None = None
    notice_body: str | None = None
    offence_breaches: str | None = None
    legal_act: str | None = None
    legal_section: str | None = None
    regulator_function: str | None = None
    regulator_url: str | None = None
    environmental_impact: str | None = None
    environmental_receptor: str | None = None
    tags: frozenset[str] = frozenset()

    @property
    def action_date(self) -> date | None:
        return self.notice_date or self.offence_action_date


type NormalizedRecord = NormalizedCase | NormalizedNotice


@dataclass(eq=False, kw_only=True)
class EnforcementCase(Entity):
    KIND: ClassVar[RecordKind] = RecordKind.CASE

    agency: Agency
    regulator_id: str
    offender_id: UUID
    case_reference: str | None = None
    offence_result: str | None = None
    offence_fine: Decimal = Decimal(0)
    offence_costs: Decimal = Decimal(0)
    offence_action_date: date | None = None
    offence_hearing_date: date | None = None
    offence_action_type: str | None = None
    offence_breaches: str | None = None
    legal_reference: str | None = None
    regulator_function: str | None = None
    regulator_url: str | None = None
    related_cases: str | None = None
    environmental_impact: str | None = None
    environmental_receptor: str | None = None
    is_multi_violation: bool = False
    tags: list[str] = field(default_factory=list)
    last_synced_at: datetime | None = None

    @property
    def key(self) -> RecordKey:
        return RecordKey(self.agency, self.regulator_id)

    @classmethod
    def from_normalized(cls, record: NormalizedCase, *, offender_id: UUID) -> EnforcementCase:
        return cls(
            agency=record.key.agency,
            regulator_id=record.key.regulator_id,
            offender_id=offender_id,
            case_reference=record.case_reference,
            offence_result=record.offence_result,
            offence_fine=record.offence_fine,
            offence_costs=record.offence_costs,
            offence_action_date=record.offence_action_date,
            offence_hearing_date=record.offence_hearing_date,
            offence_action_type=record.offence_action_type,
            offence_breaches=record.offence_breaches,
            legal_reference=record.legal_reference,
            regulator_function=record.regulator_function,
            regulator_url=record.regulator_url,
            related_cases=record.related_cases,
            environmental_impact=record.environmental_impact,
            environmental_receptor=record.environmental_receptor,
            is_multi_violation=record.is_multi_violation,
            tags=sorted(record.tags),
        )


@dataclass(eq=False, kw_only=True)
class EnforcementNotice(Entity):
    KIND: ClassVar[RecordKind] = RecordKind.NOTICE

    agency: Agency
    regulator_id: str
    offender_id: UUID
    case_reference: str | None = None
    offence_action_type: str | None = None
    offence_action_date: date | None = None
    notice_date: date | None = None
    operative_date: date | None = None
    compliance_date: date | None = None
    notice_body: str | None = None
    offence_breaches: str | None = None
    legal_act: str | None = None
    legal_section: str | None = None
    regulator_function: str | None = None
    regulator_url: str | None = None
    environmental_impact: str | None = None
    environmental_receptor: str | None = None
    tags: list[str] = field(default_factory=list)
    last_synced_at: datetime | None = None

    @property
    def key(self) -> RecordKey:
        return RecordKey(self.agency, self.regulator_id)

    @classmethod
    def from_normalized(
        cls, record: NormalizedNotice, *, offender_id: UUID
    ) -> EnforcementNotice:
        return cls(
            agency=record.key.agency,
            regulator_id=record.key.regulator_id,
            offender_id=offender_id,
            case_reference=record.case_reference,
            offence_action_type=record.offence_action_type,
            offence_action_date=record.offence_action_date,
            notice_date=record.notice_date,
            operative_date=record.operative_date,
            compliance_date=record.compliance_date,
            notice_body=record.notice_body,
            offence_breaches=record.offence_breaches,
            legal_act=record.legal_act,
            legal_section=record.legal_section,
            regulator_function=record.regulator_function,
            regulator_url=record.regulator_url,
            environmental_impact=record.environmental_impact,
            environmental_receptor=record.environmental_receptor,
            tags=sorted(record.tags),
        )


type EnforcementRecord = EnforcementCase | EnforcementNotice
