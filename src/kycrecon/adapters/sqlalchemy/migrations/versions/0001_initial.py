"""initial schema

Revision ID: 0001
Revises:
Create Date: 2026-10-18
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None

_STATUS = sa.Enum(
    "PENDING",
    "VERIFIED",
    "NOT_VERIFIED",
    "BENEFICIAL_OWNERSHIP_INCOMPLETE",
    name="verificationstatus",
    native_enum=False,
)

_SCALAR_FIELDS = ("id_number", "id_type", "nationality", "address", "phone", "email")


def _record_columns() -> list[sa.Column[object]]:
    return [
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("client_id", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("verification_status", _STATUS, nullable=False),
        sa.Column("kyc_status", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False),
    ]


def _json_columns(*names: str) -> list[sa.Column[object]]:
    return [sa.Column(name, sa.Text(), nullable=False) for name in names]


def _scalar_columns() -> list[sa.Column[object]]:
    columns: list[sa.Column[object]] = [sa.Column("company_name", sa.String(), nullable=False)]
    for name in _SCALAR_FIELDS:
        columns.append(sa.Column(name, sa.Text(), nullable=True))
        columns.append(sa.Column(f"{name}_source", sa.Text(), nullable=True))
    return columns


def upgrade() -> None:
    op.create_table(
        "individual",
        *_record_columns(),
        *_json_columns(
            "full_name",
            "alternative_names",
            "id_numbers",
            "id_types",
            "nationalities",
            "addresses",
            "emails",
            "phones",
            "roles",
            "shares_owned",
            "price_per_share",
            "discrepancies",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_individual")),
        sa.UniqueConstraint("client_id", "name", name=op.f("uq_individual_client_id_name")),
    )
    op.create_table(
        "company",
        *_record_columns(),
        *_json_columns(
            "company_name",
            "alternative_names",
            "registration_number",
            "jurisdiction",
            "address",
            "company_activities",
            "shares_issued",
            "price_per_share",
            "directors",
            "shareholders",
            "discrepancies",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_company")),
        sa.UniqueConstraint("client_id", "name", name=op.f("uq_company_client_id_name")),
    )
    op.create_table(
        "director",
        *_record_columns(),
        *_scalar_columns(),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_director")),
        sa.UniqueConstraint(
            "client_id", "company_name", "name", name=op.f("uq_director_client_id_company_name_name")
        ),
    )
    op.create_table(
        "shareholder",
        *_record_columns(),
        *_scalar_columns(),
        sa.Column("shares_owned", sa.Text(), nullable=True),
        sa.Column("shares_owned_source", sa.Text(), nullable=True),
        sa.Column("price_per_share", sa.Text(), nullable=True),
        sa.Column("price_per_share_source", sa.Text(), nullable=True),
        sa.Column("is_company", sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_shareholder")),
        sa.UniqueConstraint(
            "client_id",
            "company_name",
            "name",
            name=op.f("uq_shareholder_client_id_company_name_name"),
        ),
    )
    op.create_table(
        "document",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("client_id", sa.String(), nullable=False),
        sa.Column("document_id", sa.String(), nullable=False),
        sa.Column("document_name", sa.String(), nullable=False),
        sa.Column("document_type", sa.String(), nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_document")),
        sa.UniqueConstraint("client_id", "document_id", name=op.f("uq_document_client_id_document_id")),
    )


def downgrade() -> None:
    for table in ("document", "shareholder", "director", "company", "individual"):
        op.drop_table(table)
