# src/llcdesk_api/infrastructure/database/models/billing.py
# Copyright (c) LLCDesk.
# SPDX-License-Identifier: MIT
"""Billing persistence models.

Purpose:
    SQLAlchemy models for the obligation tables owned by this service
    (``billing_charges``, ``annual_report_obligations``) and the subset of
    the back-office ``clients`` / ``client_line_items`` columns the billing
    engines read.

Layer:
    infrastructure/database/models

Notes:
    - ``clients`` and ``client_line_items`` are written by the back-office
      CRUD layer; this service only reads them.
    - Status, kind and recurrence columns store plain strings; repositories
      map them to domain enums.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import Mapped, mapped_column

from llcdesk_api.infrastructure.database.models.base import (
    Base,
    BaseEntity,
    IdentityMixin,
    ReprMixin,
    SoftDeleteMixin,
    now_utc,
    qualified,
    table_args,
)


class Client(BaseEntity, SoftDeleteMixin, ReprMixin):
    """Back-office client (company) row, read-only for billing."""

    __tablename__ = "clients"

    company_name: Mapped[str] = mapped_column(String(255), nullable=False)
    payment_method: Mapped[str | None] = mapped_column(String(100), nullable=True)


class ClientLineItem(IdentityMixin, Base, ReprMixin):
    """Back-office line item sold to a client, read-only for billing.

    Attributes:
        kind: Free-form kind label (``"Address"``, ``"Endereço"``, ``"LLC"``...).
        value_cents: Price per billing period.
        sale_date: Anchor for charge periods and LLC formation.
        billing_period: Free-form recurrence label (``"Monthly"``, ``"Mensal"``...).
        expiration_date: Optional hard stop for annual service periods.
        llc_state: Formation jurisdiction, as a code or a state name.
    """

    __tablename__ = "client_line_items"
    __table_args__ = table_args(
        Index("ix_client_line_items_client_id_kind", "client_id", "kind"),
    )

    client_id: Mapped[uuid.UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey(qualified("clients.id"), ondelete="CASCADE"),
        nullable=False,
    )
    kind: Mapped[str] = mapped_column(String(50), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    value_cents: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0"
    )
    sale_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    billing_period: Mapped[str | None] = mapped_column(String(10), nullable=True)
    expiration_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    address_provider: Mapped[str | None] = mapped_column(String(50), nullable=True)
    address_line1: Mapped[str | None] = mapped_column(Text, nullable=True)
    address_line2: Mapped[str | None] = mapped_column(Text, nullable=True)
    llc_state: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=now_utc,
        server_default=text("now()"),
    )


class BillingChargeModel(BaseEntity, ReprMixin):
    """Persisted recurring address/service charge."""

    __tablename__ = "billing_charges"
    __table_args__ = table_args(
        UniqueConstraint(
            "client_id",
            "line_item_id",
            "period_start",
            "period_end",
            name="uq_billing_charges_client_line_item_period",
        ),
        CheckConstraint("period_start < period_end", name="period_order"),
        CheckConstraint("amount_cents >= 0", name="amount_non_negative"),
        Index("ix_billing_charges_status_due_date", "status", "due_date"),
        Index("ix_billing_charges_client_id", "client_id"),
        Index("ix_billing_charges_line_item_id", "line_item_id"),
    )

    client_id: Mapped[uuid.UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey(qualified("clients.id"), ondelete="CASCADE"),
        nullable=False,
    )
    line_item_id: Mapped[uuid.UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey(qualified("client_line_items.id"), ondelete="CASCADE"),
        nullable=False,
    )
    period_start: Mapped[date] = mapped_column(Date, nullable=False)
    period_end: Mapped[date] = mapped_column(Date, nullable=False)
    amount_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    currency: Mapped[str] = mapped_column(
        String(3), nullable=False, default="USD", server_default="USD"
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="pending", server_default="pending"
    )
    due_date: Mapped[date] = mapped_column(Date, nullable=False)
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    paid_method: Mapped[str | None] = mapped_column(Text, nullable=True)
    provider: Mapped[str | None] = mapped_column(String(20), nullable=True)
    provider_ref: Mapped[str | None] = mapped_column(String(255), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)


class AnnualReportObligationModel(BaseEntity, ReprMixin):
    """Persisted state annual-report obligation (one per client, state and year)."""

    __tablename__ = "annual_report_obligations"
    __table_args__ = table_args(
        UniqueConstraint(
            "client_id",
            "jurisdiction_code",
            "period_start",
            "period_end",
            name="uq_annual_report_obligations_client_jurisdiction_period",
        ),
        CheckConstraint("period_start < period_end", name="period_order"),
        Index("ix_annual_report_obligations_status_due_date", "status", "due_date"),
        Index("ix_annual_report_obligations_client_id", "client_id"),
    )

    client_id: Mapped[uuid.UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey(qualified("clients.id"), ondelete="CASCADE"),
        nullable=False,
    )
    jurisdiction_code: Mapped[str] = mapped_column(String(2), nullable=False)
    frequency: Mapped[str] = mapped_column(String(10), nullable=False)
    period_year: Mapped[int] = mapped_column(Integer, nullable=False)
    period_start: Mapped[date] = mapped_column(Date, nullable=False)
    period_end: Mapped[date] = mapped_column(Date, nullable=False)
    due_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="pending", server_default="pending"
    )
    done_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)


__all__ = [
    "AnnualReportObligationModel",
    "BillingChargeModel",
    "Client",
    "ClientLineItem",
]
