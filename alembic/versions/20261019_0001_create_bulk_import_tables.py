"""create patients, procedures_catalog and procedure_production tables

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19 09:00:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "patients",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("cns", sa.String(length=20), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("birth_date", sa.Date(), nullable=True),
        sa.Column("gender", sa.String(length=20), nullable=True),
        sa.Column("nationality", sa.String(length=60), nullable=True),
        sa.Column("race", sa.String(length=60), nullable=True),
        sa.Column("ethnicity", sa.String(length=60), nullable=True),
        sa.Column("zip_code", sa.String(length=12), nullable=True),
        sa.Column("city", sa.String(length=120), nullable=True),
        sa.Column("neighborhood", sa.String(length=120), nullable=True),
        sa.Column("street_code", sa.String(length=20), nullable=True),
        sa.Column("street_type", sa.String(length=60), nullable=True),
        sa.Column("street", sa.String(length=255), nullable=True),
        sa.Column("number", sa.String(length=20), nullable=True),
        sa.Column("complement", sa.String(length=120), nullable=True),
        sa.Column("phone", sa.String(length=40), nullable=True),
        sa.Column("email", sa.String(length=255), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("cns", name="uq_patients_cns"),
    )
    op.create_index("ix_patients_name", "patients", ["name"], unique=False)

    op.create_table(
        "procedures_catalog",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("code", sa.String(length=10), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("code", name="uq_procedures_catalog_code"),
    )

    op.create_table(
        "procedure_production",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("patient_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("procedure_code", sa.String(length=10), nullable=False),
        sa.Column("status", sa.String(length=40), nullable=False),
        sa.Column("date_service", sa.DateTime(timezone=True), nullable=False),
        sa.Column("service_day", sa.Date(), nullable=False),
        sa.Column("date_delivery", sa.DateTime(timezone=True), nullable=True),
        sa.Column("date_cancellation", sa.DateTime(timezone=True), nullable=True),
        sa.Column("date_scheduling", sa.DateTime(timezone=True), nullable=True),
        sa.Column("sia_processed", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["patient_id"], ["patients.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "patient_id",
            "procedure_code",
            "service_day",
            name="uq_procedure_production_event",
        ),
    )
    op.create_index("ix_procedure_production_patient_id", "procedure_production", ["patient_id"], unique=False)
    op.create_index(
        "ix_procedure_production_procedure_code",
        "procedure_production",
        ["procedure_code"],
        unique=False,
    )
    op.create_index("ix_procedure_production_status", "procedure_production", ["status"], unique=False)
    op.create_index(
        "ix_procedure_production_date_service",
        "procedure_production",
        ["date_service"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_procedure_production_date_service", table_name="procedure_production")
    op.drop_index("ix_procedure_production_status", table_name="procedure_production")
    op.drop_index("ix_procedure_production_procedure_code", table_name="procedure_production")
    op.drop_index("ix_procedure_production_patient_id", table_name="procedure_production")
    op.drop_table("procedure_production")
    op.drop_table("procedures_catalog")
    op.drop_index("ix_patients_name", table_name="patients")
    op.drop_table("patients")
