"""initial_schema

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-01 00:00:00.000000 UTC

Creates the consultants and invoices tables.
invoices.consultant_id references consultants.consultant_id (business key),
so an invoice can exist for a placeholder consultant before anyone signs in.
"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "001_initial_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _money(name: str) -> sa.Column:
    return sa.Column(name, sa.Numeric(12, 2), nullable=False, server_default="0")


def _days(name: str) -> sa.Column:
    return sa.Column(name, sa.Integer(), nullable=False, server_default="0")


def upgrade() -> None:
    op.create_table(
        "consultants",
        sa.Column("id", sa.String(36), nullable=False, comment="UUID row identifier"),
        sa.Column(
            "consultant_id", sa.String(64), nullable=True,
            comment="Business identifier, e.g. C001. NULL until onboarding.",
        ),
        sa.Column(
            "email", sa.String(320), nullable=False,
            comment="Login address from the identity provider, or a placeholder sentinel",
        ),
        sa.Column("name", sa.String(200), nullable=True),
        sa.Column("pan", sa.String(20), nullable=True),
        sa.Column("gstin", sa.String(20), nullable=True),
        sa.Column("bank_beneficiary", sa.String(200), nullable=True),
        sa.Column("bank_name", sa.String(200), nullable=True),
        sa.Column("bank_account", sa.String(64), nullable=True),
        sa.Column("bank_ifsc", sa.String(20), nullable=True),
        sa.Column("is_admin", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("consultant_id", name="uq_consultants_consultant_id"),
        sa.UniqueConstraint("email", name="uq_consultants_email"),
    )

    op.create_table(
        "invoices",
        sa.Column("id", sa.String(36), nullable=False, comment="UUID row identifier"),
        sa.Column("consultant_id", sa.String(64), nullable=False),
        sa.Column("invoice_no", sa.String(64), nullable=False),
        sa.Column("billing_period", sa.String(64), nullable=False),
        _money("professional_fee"),
        _money("incentive"),
        _money("variable"),
        _money("tds"),
        _money("reimbursement"),
        _days("total_days"),
        _days("working_days"),
        _days("lop_days"),
        _days("net_payable_days"),
        sa.Column("bank_beneficiary", sa.String(200), nullable=True),
        sa.Column("bank_name", sa.String(200), nullable=True),
        sa.Column("bank_account", sa.String(64), nullable=True),
        sa.Column("bank_ifsc", sa.String(20), nullable=True),
        sa.Column(
            "status", sa.String(10), nullable=False, server_default="pending",
            comment="pending | sent | paid | error",
        ),
        sa.Column("pdf_path", sa.String(300), nullable=True),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(
            ["consultant_id"], ["consultants.consultant_id"], onupdate="CASCADE",
        ),
        sa.UniqueConstraint(
            "consultant_id", "invoice_no", name="uq_invoices_consultant_invoice_no",
        ),
    )
    op.create_index(
        "ix_invoices_consultant_id",
        "invoices",
        ["consultant_id"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_invoices_consultant_id", table_name="invoices")
    op.drop_table("invoices")
    op.drop_table("consultants")
