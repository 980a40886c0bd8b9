"""SQLAlchemy mapping metadata for the enforcement domain model."""

from __future__ import annotations

import json
import logging
import uuid
from datetime import UTC, datetime
from functools import cache
from typing import TYPE_CHECKING, Any, cast

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Dialect,
    Enum,
    Float,
    ForeignKey,
    Numeric,
    String,
    Table,
    Text,
    TypeDecorator,
    UniqueConstraint,
    Uuid,
    orm,
)
from sqlalchemy.orm import configure_mappers

from enforcesync.domain.model import (
    Agency,
    BusinessType,
    EnforcementCase,
    EnforcementNotice,
    Offender,
    OffenderMatchReview,
    ReviewStatus,
)

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)

UUIDColumnType = Uuid[uuid.UUID]
MoneyType = Numeric(14, 2, asdecimal=True)


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


class AgencySetType(TypeDecorator[set[Agency]]):
    """Agencies that have observed an offender, stored as a sorted JSON list."""

    impl = String
    cache_ok = True

    def process_bind_param(self, value: set[Agency] | None, dialect: Dialect) -> str | None:
        _ = dialect
        if value is None:
            return None
        return json.dumps(sorted(agency.value for agency in value))

    def process_result_value(self, value: str | None, dialect: Dialect) -> set[Agency]:
        _ = dialect
        if value is None:
            return set()
        loaded = json.loads(value)
        if not isinstance(loaded, list):
            return set()
        items = cast(list[Any], loaded)
        return {Agency(item) for item in items if isinstance(item, str)}


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_N_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


def _audit_columns() -> tuple[Column[Any], ...]:
    return (
        Column("created_at", UTCDateTime(), nullable=True),
        Column("updated_at", UTCDateTime(), nullable=True),
    )


offender_table = Table(
    "offender",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("name", String, nullable=False),
    Column("normalized_name", String, nullable=False, index=True),
    Column("address", String, nullable=True),
    Column("postcode", String(16), nullable=True),
    Column("local_authority", String, nullable=True),
    Column("country", String, nullable=True),
    Column("main_activity", String, nullable=True),
    Column("sic_code", String(16), nullable=True),
    Column("industry", String, nullable=True),
    Column("business_type", Enum(BusinessType, native_enum=False), nullable=False),
    Column("company_registration_number", String(16), nullable=True, unique=True),
    Column("agencies", AgencySetType(), nullable=False, default=set),
    Column("first_seen_date", Date, nullable=True),
    Column("last_seen_date", Date, nullable=True),
    *_audit_columns(),
    UniqueConstraint("normalized_name", "postcode"),
)

enforcement_case_table = Table(
    "enforcement_case",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("agency", Enum(Agency, native_enum=False), nullable=False),
    Column("regulator_id", String, nullable=False),
    Column(
        "offender_id",
        UUIDColumnType,
        ForeignKey("offender.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    ),
    Column("case_reference", String, nullable=True, index=True),
    Column("offence_result", String, nullable=True),
    Column("offence_fine", MoneyType, nullable=False, default=0),
    Column("offence_costs", MoneyType, nullable=False, default=0),
    Column("offence_action_date", Date, nullable=True),
    Column("offence_hearing_date", Date, nullable=True),
    Column("offence_action_type", String, nullable=True),
    Column("offence_breaches", Text, nullable=True),
    Column("legal_reference", String, nullable=True),
    Column("regulator_function", String, nullable=True),
    Column("regulator_url", String, nullable=True),
    Column("related_cases", Text, nullable=True),
    Column("environmental_impact", String(16), nullable=True),
    Column("environmental_receptor", String(16), nullable=True),
    Column("is_multi_violation", Boolean, nullable=False, default=False),
    Column("tags", JSON, nullable=False, default=list),
    Column("last_synced_at", UTCDateTime(), nullable=True),
    *_audit_columns(),
    UniqueConstraint("agency", "regulator_id"),
)

enforcement_notice_table = Table(
    "enforcement_notice",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("agency", Enum(Agency, native_enum=False), nullable=False),
    Column("regulator_id", String, nullable=False),
    Column(
        "offender_id",
        UUIDColumnType,
        ForeignKey("offender.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    ),
    Column("case_reference", String, nullable=True, index=True),
    Column("offence_action_type", String, nullable=True),
    Column("offence_action_date", Date, nullable=True),
    Column("notice_date", Date, nullable=True),
    Column("operative_date", Date, nullable=True),
    Column("compliance_date", Date, nullable=True),
    Column("notice_body", Text, nullable=True),
    Column("offence_breaches", Text, nullable=True),
    Column("legal_act", String, nullable=True),
    Column("legal_section", String, nullable=True),
    Column("regulator_function", String, nullable=True),
    Column("regulator_url", String, nullable=True),
    Column("environmental_impact", String(16), nullable=True),
    Column("environmental_receptor", String(16), nullable=True),
    Column("tags", JSON, nullable=False, default=list),
    Column("last_synced_at", UTCDateTime(), nullable=True),
    *_audit_columns(),
    UniqueConstraint("agency", "regulator_id"),
)

offender_match_review_table = Table(
    "offender_match_review",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column(
        "offender_id",
        UUIDColumnType,
        ForeignKey("offender.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    ),
    Column("searched_at", UTCDateTime(), nullable=False),
    Column("confidence_score", Float, nullable=False),
    Column("candidates", JSON, nullable=False, default=list),
    Column("status", Enum(ReviewStatus, native_enum=False), nullable=False),
    *_audit_columns(),
)

RECORD_TABLES: dict[type, Table] = {
    EnforcementCase: enforcement_case_table,
    EnforcementNotice: enforcement_notice_table,
}


@cache
def start_mappers() -> orm.registry:
    """Configure SQLAlchemy mappers for the domain model."""

    log.info("Starting SQLAlchemy mappers")

    mapper_registry.map_imperatively(Offender, offender_table)
    mapper_registry.map_imperatively(EnforcementCase, enforcement_case_table)
    mapper_registry.map_imperatively(EnforcementNotice, enforcement_notice_table)
    mapper_registry.map_imperatively(OffenderMatchReview, offender_match_review_table)

    configure_mappers()
    return mapper_registry


def create_all_tables(engine: Engine) -> None:
    """Create database tables for the mapped metadata."""

    log.info("Creating all tables")
    mapper_registry.metadata.create_all(engine)
