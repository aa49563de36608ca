# src/llcdesk_api/adapters/repositories/billing_facts_repository.py
# Copyright (c) LLCDesk.
# SPDX-License-Identifier: MIT
"""Billing facts repository (SQLAlchemy).

Purpose:
    Derive per-client billing facts from the back-office ``clients`` and
    ``client_line_items`` tables. Implements the BillingFactsRepository
    protocol.

Layer:
    adapters/repositories

Notes:
    - Line-item ``kind``, ``billing_period`` and ``llc_state`` are free-form
      labels entered by operators. They are normalized here, row by row,
      with the domain parsers, so nothing downstream compares raw strings.
    - Candidate rows are fetched pre-ordered by ``client_id, sale_date desc,
      created_at desc`` and the first qualifying row per client wins.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import UTC, date, datetime
from typing import Any
from uuid import UUID

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from llcdesk_api.adapters.repositories.base_repository import BaseRepository
from llcdesk_api.domain.entities.billing import AnnualReportDiagnostics, ClientBillingFacts
from llcdesk_api.domain.enums.billing import LineItemKind, Recurrence
from llcdesk_api.domain.services.annual_report_rules import get_annual_report_rule
from llcdesk_api.domain.services.jurisdictions import normalize_jurisdiction
from llcdesk_api.infrastructure.database.models.billing import (
    AnnualReportObligationModel,
    Client,
    ClientLineItem,
)

_CHARGE_RECURRENCES = frozenset({Recurrence.MONTHLY, Recurrence.ANNUAL})


def _as_date(value: datetime | date | None) -> date | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(UTC)
        return value.date()
    return value


class SqlAlchemyBillingFactsRepository(BaseRepository[ClientLineItem]):
    """SQLAlchemy-backed billing facts repository."""

    _MODEL_NAME = "client_line_items"

    def __init__(self, session: AsyncSession) -> None:
        """Initialize the repository."""
        super().__init__(session=session)

    # ------------------------------------------------------------------ #
    # Public API                                                         #
    # ------------------------------------------------------------------ #

    async def list_charge_facts(self) -> Sequence[ClientBillingFacts]:
        """Return charges facts for every client with a billable Address item."""
        with self.track("list_charge_facts"):
            stmt: Select[Any] = (
                select(
                    ClientLineItem.id,
                    ClientLineItem.client_id,
                    ClientLineItem.kind,
                    ClientLineItem.billing_period,
                    ClientLineItem.value_cents,
                    ClientLineItem.sale_date,
                    ClientLineItem.expiration_date,
                )
                .join(Client, Client.id == ClientLineItem.client_id)
                .where(
                    Client.deleted_at.is_(None),
                    ClientLineItem.billing_period.is_not(None),
                    ClientLineItem.value_cents > 0,
                    ClientLineItem.sale_date.is_not(None),
                )
                .order_by(
                    ClientLineItem.client_id,
                    ClientLineItem.sale_date.desc(),
                    ClientLineItem.created_at.desc(),
                    ClientLineItem.id,
                )
            )
            rows = (await self._session.execute(stmt)).all()
            return list(self._first_charge_facts_per_client(rows))

    async def list_annual_report_facts(self) -> Sequence[ClientBillingFacts]:
        """Return annual-report facts for every client with a jurisdiction."""
        with self.track("list_annual_report_facts"):
            rows = await self._llc_rows()
            facts: list[ClientBillingFacts] = []
            seen: set[UUID] = set()
            for row in rows:
                if row.client_id in seen:
                    continue
                code = normalize_jurisdiction(row.llc_state)
                if code is None:
                    continue
                anchor = row.sale_date or _as_date(row.client_created_at)
                if anchor is None:
                    continue
                seen.add(row.client_id)
                rule = get_annual_report_rule(code)
                facts.append(
                    ClientBillingFacts(
                        client_id=row.client_id,
                        source_id=row.id,
                        jurisdiction_code=code,
                        recurrence=rule.frequency if rule is not None else Recurrence.NONE,
                        anchor_date=anchor,
                    )
                )
            return facts

    async def annual_report_diagnostics(self) -> AnnualReportDiagnostics:
        """Return counters explaining the annual-report engine's inputs."""
        with self.track("annual_report_diagnostics"):
            active_clients = await self._scalar_count(
                select(func.count()).select_from(Client).where(Client.deleted_at.is_(None))
            )
            obligations_stored = await self._scalar_count(
                select(func.count()).select_from(AnnualReportObligationModel)
            )
            rows = await self._llc_rows(require_state=False)

            with_state = 0
            matched = 0
            without_obligation = 0
            for row in rows:
                code = normalize_jurisdiction(row.llc_state)
                if code is None:
                    continue
                with_state += 1
                rule = get_annual_report_rule(code)
                if rule is not None and rule.has_obligation:
                    matched += 1
                else:
                    without_obligation += 1

            return AnnualReportDiagnostics(
                active_clients=active_clients,
                llc_line_items=len(rows),
                llc_line_items_with_state=with_state,
                jurisdictions_matched=matched,
                jurisdictions_without_obligation=without_obligation,
                obligations_stored=obligations_stored,
            )

    # ------------------------------------------------------------------ #
    # Internals                                                          #
    # ------------------------------------------------------------------ #

    @staticmethod
    def _first_charge_facts_per_client(rows: Iterable[Any]) -> Iterable[ClientBillingFacts]:
        seen: set[UUID] = set()
        for row in rows:
            if row.client_id in seen:
                continue
            if LineItemKind.parse(row.kind) is not LineItemKind.ADDRESS:
                continue
            recurrence = Recurrence.parse(row.billing_period)
            if recurrence not in _CHARGE_RECURRENCES:
                continue
            seen.add(row.client_id)
            yield ClientBillingFacts(
                client_id=row.client_id,
                source_id=row.id,
                recurrence=recurrence,
                anchor_date=row.sale_date,
                expiration_date=row.expiration_date,
                amount_cents=int(row.value_cents),
            )

    async def _llc_rows(self, *, require_state: bool = True) -> list[Any]:
        """Return LLC line items of active clients, most recent first per client."""
        stmt: Select[Any] = (
            select(
                ClientLineItem.id,
                ClientLineItem.client_id,
                ClientLineItem.kind,
                ClientLineItem.llc_state,
                ClientLineItem.sale_date,
                Client.created_at.label("client_created_at"),
            )
            .join(Client, Client.id == ClientLineItem.client_id)
            .where(Client.deleted_at.is_(None))
            .order_by(
                ClientLineItem.client_id,
                ClientLineItem.sale_date.desc().nulls_last(),
                ClientLineItem.created_at.desc(),
                ClientLineItem.id,
            )
        )
        if require_state:
            stmt = stmt.where(
                ClientLineItem.llc_state.is_not(None),
                func.trim(ClientLineItem.llc_state) != "",
            )
        rows = (await self._session.execute(stmt)).all()
        return [row for row in rows if LineItemKind.parse(row.kind) is LineItemKind.LLC]

    async def _scalar_count(self, stmt: Select[Any]) -> int:
        res = await self._session.execute(stmt)
        return int(res.scalar_one())


__all__ = ["SqlAlchemyBillingFactsRepository"]
