"""Initial enforcement schema.

Revision ID: 0001
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

from enforcesync.adapters.sqlalchemy.mappings import AgencySetType, UTCDateTime

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None

_AGENCY = sa.Enum("EA", "HSE", name="agency", native_enum=False)
_MONEY = sa.Numeric(14, 2, asdecimal=True)


def _audit_columns() -> list[sa.Column[object]]:
    return [
        sa.Column("created_at", UTCDateTime(), nullable=True),
        sa.Column("updated_at", UTCDateTime(), nullable=True),
    ]


def _offender_fk() -> sa.Column[object]:
    return sa.Column(
        "offender_id",
        sa.Uuid(),
        sa.ForeignKey("offender.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )


def upgrade() -> None:
    op.create_table(
        "offender",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("normalized_name", sa.String(), nullable=False, index=True),
        sa.Column("address", sa.String(), nullable=True),
        sa.Column("postcode", sa.String(16), nullable=True),
        sa.Column("local_authority", sa.String(), nullable=True),
        sa.Column("country", sa.String(), nullable=True),
        sa.Column("main_activity", sa.String(), nullable=True),
        sa.Column("sic_code", sa.String(16), nullable=True),
        sa.Column("industry", sa.String(), nullable=True),
        sa.Column(
            "business_type",
            sa.Enum(
                "LIMITED_COMPANY",
                "INDIVIDUAL",
                "PARTNERSHIP",
                "PLC",
                "OTHER",
                name="businesstype",
                native_enum=False,
            ),
            nullable=False,
        ),
        sa.Column("company_registration_number", sa.String(16), nullable=True, unique=True),
        sa.Column("agencies", AgencySetType(), nullable=False),
        sa.Column("first_seen_date", sa.Date(), nullable=True),
        sa.Column("last_seen_date", sa.Date(), nullable=True),
        *_audit_columns(),
        sa.UniqueConstraint("normalized_name", "postcode"),
    )

    op.create_table(
        "enforcement_case",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("agency", _AGENCY, nullable=False),
        sa.Column("regulator_id", sa.String(), nullable=False),
        _offender_fk(),
        sa.Column("case_reference", sa.String(), nullable=True, index=True),
        sa.Column("offence_result", sa.String(), nullable=True),
        sa.Column("offence_fine", _MONEY, nullable=False),
        sa.Column("offence_costs", _MONEY, nullable=False),
        sa.Column("offence_action_date", sa.Date(), nullable=True),
        sa.Column("offence_hearing_date", sa.Date(), nullable=True),
        sa.Column("offence_action_type", sa.String(), nullable=True),
        sa.Column("offence_breaches", sa.Text(), nullable=True),
        sa.Column("legal_reference", sa.String(), nullable=True),
        sa.Column("regulator_function", sa.String(), nullable=True),
        sa.Column("regulator_url", sa.String(), nullable=True),
        sa.Column("related_cases", sa.Text(), nullable=True),
        sa.Column("environmental_impact", sa.String(16), nullable=True),
        sa.Column("environmental_receptor", sa.String(16), nullable=True),
        sa.Column("is_multi_violation", sa.Boolean(), nullable=False),
        sa.Column("tags", sa.JSON(), nullable=False),
        sa.Column("last_synced_at", UTCDateTime(), nullable=True),
        *_audit_columns(),
        sa.UniqueConstraint("agency", "regulator_id"),
    )

    op.create_table(
        "enforcement_notice",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("agency", _AGENCY, nullable=False),
        sa.Column("regulator_id", sa.String(), nullable=False),
        _offender_fk(),
        sa.Column("case_reference", sa.String(), nullable=True, index=True),
        sa.Column("offence_action_type", sa.String(), nullable=True),
        sa.Column("offence_action_date", sa.Date(), nullable=True),
        sa.Column("notice_date", sa.Date(), nullable=True),
        sa.Column("operative_date", sa.Date(), nullable=True),
        sa.Column("compliance_date", sa.Date(), nullable=True),
        sa.Column("notice_body", sa.Text(), nullable=True),
        sa.Column("offence_breaches", sa.Text(), nullable=True),
        sa.Column("legal_act", sa.String(), nullable=True),
        sa.Column("legal_section", sa.String(), nullable=True),
        sa.Column("regulator_function", sa.String(), nullable=True),
        sa.Column("regulator_url", sa.String(), nullable=True),
        sa.Column("environmental_impact", sa.String(16), nullable=True),
        sa.Column("environmental_receptor", sa.String(16), nullable=True),
        sa.Column("tags", sa.JSON(), nullable=False),
        sa.Column("last_synced_at", UTCDateTime(), nullable=True),
        *_audit_columns(),
        sa.UniqueConstraint("agency", "regulator_id"),
    )

    op.create_table(
        "offender_match_review",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "offender_id",
            sa.Uuid(),
            sa.ForeignKey("offender.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("searched_at", UTCDateTime(), nullable=False),
        sa.Column("confidence_score", sa.Float(), nullable=False),
        sa.Column("candidates", sa.JSON(), nullable=False),
        sa.Column(
            "status",
            sa.Enum("PENDING", "APPROVED", "REJECTED", name="reviewstatus", native_enum=False),
            nullable=False,
        ),
        *_audit_columns(),
    )


def downgrade() -> None:
    op.drop_table("offender_match_review")
    op.drop_table("enforcement_notice")
    op.drop_table("enforcement_case")
    op.drop_table("offender")
