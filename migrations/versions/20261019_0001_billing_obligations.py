"""Create client fact tables and the billing obligation tables.

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19

This migration:
  * Creates the back-office fact tables: clients, client_line_items.
  * Creates billing_charges with its (client, line item, period) uniqueness key.
  * Creates annual_report_obligations with its (client, state, period) uniqueness key.

Notes:
  - Both obligation tables carry a (status, due_date) index for the aging sweep.
  - Status values are not constrained in SQL; repositories map them to enums.
"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "20261019_0001"
down_revision: str | None = None
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None

_SCHEMA = "public"


def _id_column() -> sa.Column:
    return sa.Column(
        "id",
        sa.UUID,
        primary_key=True,
        server_default=sa.text("gen_random_uuid()"),
        nullable=False,
    )


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    """Apply the migration."""
    op.create_table(
        "clients",
        _id_column(),
        sa.Column("company_name", sa.String(255), nullable=False),
        sa.Column("payment_method", sa.String(100), nullable=True),
        sa.Column("deleted_at", sa.TIMESTAMP(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_clients"),
        schema=_SCHEMA,
    )

    op.create_table(
        "client_line_items",
        _id_column(),
        sa.Column(
            "client_id",
            sa.UUID,
            sa.ForeignKey(
                f"{_SCHEMA}.clients.id",
                ondelete="CASCADE",
                name="fk_client_line_items_client_id_clients",
            ),
            nullable=False,
        ),
        sa.Column("kind", sa.String(50), nullable=False),
        sa.Column("description", sa.Text, nullable=False, server_default=""),
        sa.Column("value_cents", sa.Integer, nullable=False, server_default="0"),
        sa.Column("sale_date", sa.Date, nullable=True),
        sa.Column("billing_period", sa.String(10), nullable=True),
        sa.Column("expiration_date", sa.Date, nullable=True),
        sa.Column("address_provider", sa.String(50), nullable=True),
        sa.Column("address_line1", sa.Text, nullable=True),
        sa.Column("address_line2", sa.Text, nullable=True),
        sa.Column("llc_state", sa.String(64), nullable=True),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id", name="pk_client_line_items"),
        schema=_SCHEMA,
    )
    op.create_index(
        "ix_client_line_items_client_id_kind",
        "client_line_items",
        ["client_id", "kind"],
        schema=_SCHEMA,
    )

    op.create_table(
        "billing_charges",
        _id_column(),
        sa.Column(
            "client_id",
            sa.UUID,
            sa.ForeignKey(
                f"{_SCHEMA}.clients.id",
                ondelete="CASCADE",
                name="fk_billing_charges_client_id_clients",
            ),
            nullable=False,
        ),
        sa.Column(
            "line_item_id",
            sa.UUID,
            sa.ForeignKey(
                f"{_SCHEMA}.client_line_items.id",
                ondelete="CASCADE",
                name="fk_billing_charges_line_item_id_client_line_items",
            ),
            nullable=False,
        ),
        sa.Column("period_start", sa.Date, nullable=False),
        sa.Column("period_end", sa.Date, nullable=False),
        sa.Column("amount_cents", sa.Integer, nullable=False),
        sa.Column("currency", sa.String(3), nullable=False, server_default="USD"),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("due_date", sa.Date, nullable=False),
        sa.Column("paid_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("paid_method", sa.Text, nullable=True),
        sa.Column("provider", sa.String(20), nullable=True),
        sa.Column("provider_ref", sa.String(255), nullable=True),
        sa.Column("notes", sa.Text, nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_billing_charges"),
        sa.UniqueConstraint(
            "client_id",
            "line_item_id",
            "period_start",
            "period_end",
            name="uq_billing_charges_client_line_item_period",
        ),
        sa.CheckConstraint(
            "period_start < period_end", name="ck_billing_charges_period_order"
        ),
        sa.CheckConstraint(
            "amount_cents >= 0", name="ck_billing_charges_amount_non_negative"
        ),
        schema=_SCHEMA,
    )
    op.create_index(
        "ix_billing_charges_status_due_date",
        "billing_charges",
        ["status", "due_date"],
        schema=_SCHEMA,
    )
    op.create_index("ix_billing_charges_client_id", "billing_charges", ["client_id"], schema=_SCHEMA)
    op.create_index(
        "ix_billing_charges_line_item_id", "billing_charges", ["line_item_id"], schema=_SCHEMA
    )

    op.create_table(
        "annual_report_obligations",
        _id_column(),
        sa.Column(
            "client_id",
            sa.UUID,
            sa.ForeignKey(
                f"{_SCHEMA}.clients.id",
                ondelete="CASCADE",
                name="fk_annual_report_obligations_client_id_clients",
            ),
            nullable=False,
        ),
        sa.Column("jurisdiction_code", sa.String(2), nullable=False),
        sa.Column("frequency", sa.String(10), nullable=False),
        sa.Column("period_year", sa.Integer, nullable=False),
        sa.Column("period_start", sa.Date, nullable=False),
        sa.Column("period_end", sa.Date, nullable=False),
        sa.Column("due_date", sa.Date, nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("done_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("notes", sa.Text, nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_annual_report_obligations"),
        sa.UniqueConstraint(
            "client_id",
            "jurisdiction_code",
            "period_start",
            "period_end",
            name="uq_annual_report_obligations_client_jurisdiction_period",
        ),
        sa.CheckConstraint(
            "period_start < period_end", name="ck_annual_report_obligations_period_order"
        ),
        schema=_SCHEMA,
    )
    op.create_index(
        "ix_annual_report_obligations_status_due_date",
        "annual_report_obligations",
        ["status", "due_date"],
        schema=_SCHEMA,
    )
    op.create_index(
        "ix_annual_report_obligations_client_id",
        "annual_report_obligations",
        ["client_id"],
        schema=_SCHEMA,
    )


def downgrade() -> None:
    """Revert the migration."""
    op.drop_table("annual_report_obligations", schema=_SCHEMA)
    op.drop_table("billing_charges", schema=_SCHEMA)
    op.drop_table("client_line_items", schema=_SCHEMA)
    op.drop_table("clients", schema=_SCHEMA)
