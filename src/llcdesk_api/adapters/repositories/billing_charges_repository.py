# src/llcdesk_api/adapters/repositories/billing_charges_repository.py
# Copyright (c) LLCDesk.
# SPDX-License-Identifier: MIT
"""Billing charges repository (SQLAlchemy).

Purpose:
    Persist and query recurring address/service charges. Implements the
    BillingChargesRepository protocol.

Layer:
    adapters/repositories

Notes:
    - Inserts use ``INSERT ... ON CONFLICT DO NOTHING RETURNING`` on the
      ``(client_id, line_item_id, period_start, period_end)`` constraint,
      inside a savepoint so a lost race never poisons the caller's
      transaction.
    - Status-changing UPDATEs carry their guard in the WHERE clause and
      return ``None`` when nothing matched.
    - This repository never commits.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import UTC, date, datetime
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import Select, and_, case, delete, func, or_, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from llcdesk_api.adapters.repositories.base_repository import (
    BaseRepository,
    is_unique_violation,
)
from llcdesk_api.domain.entities.billing import (
    BillingCharge,
    ChargeListItem,
    ChargesSummary,
    ObligationPeriod,
    Page,
)
from llcdesk_api.domain.entities.billing_filters import ChargeListFilters
from llcdesk_api.domain.enums.billing import (
    ChargeSort,
    LineItemKind,
    ObligationStatus,
    PaymentProvider,
    Recurrence,
)
from llcdesk_api.domain.exceptions.billing import DuplicateObligationError
from llcdesk_api.domain.services.jurisdictions import normalize_jurisdiction
from llcdesk_api.domain.services.period_calculator import add_months_safe
from llcdesk_api.infrastructure.database.models.billing import (
    BillingChargeModel,
    Client,
    ClientLineItem,
)

_UNIQUE_CONSTRAINT = "uq_billing_charges_client_line_item_period"
_OPEN = (ObligationStatus.PENDING.value, ObligationStatus.OVERDUE.value)
_PAID = (ObligationStatus.PAID.value,)
_DEFAULT_PAID_METHOD = "Manual"
_EDITABLE_FIELDS = frozenset({"amount_cents", "due_date", "notes", "paid_at"})


def _status_by_due_date(today: date) -> Any:
    return case(
        (BillingChargeModel.due_date < today, ObligationStatus.OVERDUE.value),
        else_=ObligationStatus.PENDING.value,
    )


class SqlAlchemyBillingChargesRepository(BaseRepository[BillingChargeModel]):
    """SQLAlchemy-backed billing charges repository."""

    _MODEL_NAME = "billing_charges"

    def __init__(self, session: AsyncSession) -> None:
        """Initialize the repository.

        Args:
            session: Async SQLAlchemy session bound to the primary database.
        """
        super().__init__(session=session)

    # ------------------------------------------------------------------ #
    # Reconciler path                                                    #
    # ------------------------------------------------------------------ #

    async def create_if_not_exists(
        self,
        *,
        client_id: UUID,
        line_item_id: UUID,
        period: ObligationPeriod,
        amount_cents: int,
    ) -> tuple[BillingCharge, bool]:
        """Insert a ``pending`` charge unless the period already exists.

        Args:
            client_id: Owning client.
            line_item_id: Source Address line item.
            period: Computed period and due date.
            amount_cents: Amount billed for the period.

        Returns:
            ``(charge, created)``.

        Raises:
            DuplicateObligationError: If a concurrent insert won the race and
                its row is not yet visible.
        """
        with self.track("create_if_not_exists"):
            now = self.utc_now()
            stmt = (
                pg_insert(BillingChargeModel)
                .values(
                    id=uuid4(),
                    client_id=client_id,
                    line_item_id=line_item_id,
                    period_start=period.period_start,
                    period_end=period.period_end,
                    due_date=period.due_date,
                    amount_cents=amount_cents,
                    currency="USD",
                    status=ObligationStatus.PENDING.value,
                    created_at=now,
                    updated_at=now,
                )
                .on_conflict_do_nothing(constraint=_UNIQUE_CONSTRAINT)
                .returning(BillingChargeModel)
            )
            try:
                async with self._session.begin_nested():
                    inserted = (await self._session.execute(stmt)).scalars().first()
            except IntegrityError as exc:
                if is_unique_violation(exc):
                    raise DuplicateObligationError(
                        "charge already exists for period",
                        details={"client_id": str(client_id), "line_item_id": str(line_item_id)},
                    ) from exc
                raise

            if inserted is not None:
                return self._to_entity(inserted), True

            existing = await self.fetch_optional(
                select(BillingChargeModel).where(
                    BillingChargeModel.client_id == client_id,
                    BillingChargeModel.line_item_id == line_item_id,
                    BillingChargeModel.period_start == period.period_start,
                    BillingChargeModel.period_end == period.period_end,
                )
            )
            if existing is None:
                raise DuplicateObligationError(
                    "charge insert conflicted with an uncommitted row",
                    details={"client_id": str(client_id), "line_item_id": str(line_item_id)},
                )
            return self._to_entity(existing), False

    async def sweep_status(self, today: date) -> int:
        """Age pending charges past due and revert overdue ones no longer past due."""
        with self.track("sweep_status"):
            now = self.utc_now()
            aged = await self._session.execute(
                update(BillingChargeModel)
                .where(
                    BillingChargeModel.status == ObligationStatus.PENDING.value,
                    BillingChargeModel.due_date < today,
                )
                .values(status=ObligationStatus.OVERDUE.value, updated_at=now)
                .execution_options(synchronize_session=False)
            )
            reverted = await self._session.execute(
                update(BillingChargeModel)
                .where(
                    BillingChargeModel.status == ObligationStatus.OVERDUE.value,
                    BillingChargeModel.due_date >= today,
                )
                .values(status=ObligationStatus.PENDING.value, updated_at=now)
                .execution_options(synchronize_session=False)
            )
            return int(aged.rowcount or 0) + int(reverted.rowcount or 0)  # type: ignore[attr-defined]

    # ------------------------------------------------------------------ #
    # Human actions                                                      #
    # ------------------------------------------------------------------ #

    async def get(self, charge_id: UUID) -> BillingCharge | None:
        """Return a charge by id, or ``None``."""
        with self.track("get"):
            row = await self.fetch_optional(
                select(BillingChargeModel).where(BillingChargeModel.id == charge_id)
            )
            return self._to_entity(row) if row is not None else None

    async def mark_paid(
        self,
        charge_id: UUID,
        *,
        paid_at: datetime,
        paid_method: str | None,
        provider: PaymentProvider,
        provider_ref: str | None,
        notes: str | None,
    ) -> BillingCharge | None:
        """Mark an open charge as paid.

        When ``paid_method`` is omitted, the client's payment method is used,
        falling back to ``"Manual"``.
        """
        with self.track("mark_paid"):
            method: Any = paid_method
            if not method:
                client_method = (
                    select(func.nullif(func.trim(Client.payment_method), ""))
                    .where(Client.id == BillingChargeModel.client_id)
                    .scalar_subquery()
                )
                method = func.coalesce(client_method, _DEFAULT_PAID_METHOD)
            values: dict[str, Any] = {
                "status": ObligationStatus.PAID.value,
                "paid_at": paid_at,
                "paid_method": method,
                "provider": provider.value,
                "provider_ref": provider_ref,
                "updated_at": self.utc_now(),
            }
            if notes is not None:
                values["notes"] = notes
            return await self._guarded_update(charge_id, values, statuses=_OPEN)

    async def mark_canceled(self, charge_id: UUID, *, notes: str | None) -> BillingCharge | None:
        """Cancel an open charge."""
        with self.track("mark_canceled"):
            values: dict[str, Any] = {
                "status": ObligationStatus.CANCELED.value,
                "updated_at": self.utc_now(),
            }
            if notes is not None:
                values["notes"] = notes
            return await self._guarded_update(charge_id, values, statuses=_OPEN)

    async def reopen(self, charge_id: UUID, *, today: date) -> BillingCharge | None:
        """Reopen a canceled charge as ``overdue`` or ``pending`` by due date."""
        with self.track("reopen"):
            return await self._guarded_update(
                charge_id,
                {"status": _status_by_due_date(today), "updated_at": self.utc_now()},
                statuses=(ObligationStatus.CANCELED.value,),
            )

    async def update(
        self,
        charge_id: UUID,
        *,
        amount_cents: int | None = None,
        due_date: date | None = None,
        notes: str | None = None,
        paid_at: datetime | None = None,
        fields: frozenset[str] = frozenset(),
    ) -> BillingCharge | None:
        """Apply the edits named in ``fields``.

        Fields not named are left untouched, so ``notes=None`` with
        ``"notes"`` in ``fields`` clears the notes. A ``paid_at``-only edit
        matches paid rows; any other edit matches open rows only.
        """
        with self.track("update"):
            provided = {
                "amount_cents": amount_cents,
                "due_date": due_date,
                "notes": notes,
                "paid_at": paid_at,
            }
            values: dict[str, Any] = {
                name: provided[name] for name in fields & _EDITABLE_FIELDS
            }
            if not values:
                return await self.get(charge_id)
            values["updated_at"] = self.utc_now()
            statuses = _PAID if values.keys() == {"paid_at", "updated_at"} else _OPEN
            return await self._guarded_update(charge_id, values, statuses=statuses)

    async def delete(self, charge_id: UUID) -> bool:
        """Delete a charge permanently."""
        with self.track("delete"):
            res = await self._session.execute(
                delete(BillingChargeModel)
                .where(BillingChargeModel.id == charge_id)
                .execution_options(synchronize_session=False)
            )
            return bool(res.rowcount)  # type: ignore[attr-defined]

    # ------------------------------------------------------------------ #
    # Read path                                                          #
    # ------------------------------------------------------------------ #

    async def list(self, filters: ChargeListFilters) -> Page[ChargeListItem]:
        """Return a filtered, sorted page of charges with client context."""
        with self.track("list"):
            stmt: Select[Any] = (
                select(
                    BillingChargeModel,
                    Client.company_name,
                    Client.payment_method,
                    ClientLineItem.billing_period,
                    ClientLineItem.address_provider,
                    ClientLineItem.address_line1,
                    ClientLineItem.address_line2,
                )
                .join(Client, Client.id == BillingChargeModel.client_id)
                .outerjoin(ClientLineItem, ClientLineItem.id == BillingChargeModel.line_item_id)
            )

            if filters.statuses:
                stmt = stmt.where(
                    BillingChargeModel.status.in_([s.value for s in filters.statuses])
                )
            if filters.recurrence is not None:
                stmt = stmt.where(
                    func.lower(func.trim(ClientLineItem.billing_period)).in_(
                        filters.recurrence.aliases
                    )
                )
            if filters.due_from is not None:
                stmt = stmt.where(BillingChargeModel.due_date >= filters.due_from)
            if filters.due_to is not None:
                stmt = stmt.where(BillingChargeModel.due_date <= filters.due_to)
            if filters.client_id is not None:
                stmt = stmt.where(BillingChargeModel.client_id == filters.client_id)
            if filters.query:
                pattern = f"%{filters.query}%"
                stmt = stmt.where(
                    or_(
                        Client.company_name.ilike(pattern),
                        ClientLineItem.address_line1.ilike(pattern),
                        ClientLineItem.address_line2.ilike(pattern),
                        ClientLineItem.address_provider.ilike(pattern),
                    )
                )
            if filters.jurisdiction_code:
                client_ids = [
                    cid
                    for cid, code in (await self._latest_jurisdictions()).items()
                    if code == filters.jurisdiction_code
                ]
                if not client_ids:
                    return Page(items=(), total=0, page=filters.page, limit=filters.limit)
                stmt = stmt.where(BillingChargeModel.client_id.in_(client_ids))

            total = await self.count(stmt)
            stmt = stmt.order_by(*self._order_by(filters.sort))
            stmt = stmt.offset(filters.offset).limit(filters.limit)
            stmt = stmt.execution_options(populate_existing=True)
            rows = (await self._session.execute(stmt)).all()

            jurisdictions = await self._latest_jurisdictions({row[0].client_id for row in rows})
            items = tuple(
                ChargeListItem(
                    charge=self._to_entity(row[0]),
                    company_name=row.company_name,
                    payment_method=row.payment_method,
                    recurrence=Recurrence.parse(row.billing_period),
                    address_provider=row.address_provider,
                    address_line1=row.address_line1,
                    address_line2=row.address_line2,
                    jurisdiction_code=jurisdictions.get(row[0].client_id),
                )
                for row in rows
            )
            return Page(items=items, total=total, page=filters.page, limit=filters.limit)

    async def summary(self, *, today: date) -> ChargesSummary:
        """Return pending/overdue totals and payments received in the UTC month of ``today``."""
        with self.track("summary"):
            month_start = today.replace(day=1)
            month_from = datetime(month_start.year, month_start.month, 1, tzinfo=UTC)
            next_month = add_months_safe(month_start, 1)
            month_to = datetime(next_month.year, next_month.month, 1, tzinfo=UTC)

            status = BillingChargeModel.status
            amount = BillingChargeModel.amount_cents
            is_pending = status == ObligationStatus.PENDING.value
            is_overdue = status == ObligationStatus.OVERDUE.value
            paid_this_month = and_(
                status == ObligationStatus.PAID.value,
                BillingChargeModel.paid_at >= month_from,
                BillingChargeModel.paid_at < month_to,
            )
            stmt = select(
                func.count().filter(is_pending),
                func.coalesce(func.sum(amount).filter(is_pending), 0),
                func.count().filter(is_overdue),
                func.coalesce(func.sum(amount).filter(is_overdue), 0),
                func.count().filter(paid_this_month),
                func.coalesce(func.sum(amount).filter(paid_this_month), 0),
            ).select_from(BillingChargeModel)
            row = (await self._session.execute(stmt)).one()
            return ChargesSummary(
                pending_count=int(row[0]),
                pending_total_cents=int(row[1]),
                overdue_count=int(row[2]),
                overdue_total_cents=int(row[3]),
                paid_this_month_count=int(row[4]),
                paid_this_month_total_cents=int(row[5]),
            )

    # ------------------------------------------------------------------ #
    # Internals                                                          #
    # ------------------------------------------------------------------ #

    async def _guarded_update(
        self,
        charge_id: UUID,
        values: dict[str, Any],
        *,
        statuses: Iterable[str],
    ) -> BillingCharge | None:
        stmt = (
            update(BillingChargeModel)
            .where(
                BillingChargeModel.id == charge_id,
                BillingChargeModel.status.in_(list(statuses)),
            )
            .values(**values)
            .returning(BillingChargeModel)
            .execution_options(synchronize_session="fetch", populate_existing=True)
        )
        row = (await self._session.execute(stmt)).scalars().first()
        return self._to_entity(row) if row is not None else None

    async def _latest_jurisdictions(
        self, client_ids: Iterable[UUID] | None = None
    ) -> dict[UUID, str]:
        """Map client id to the jurisdiction of its most recent LLC line item."""
        stmt: Select[Any] = (
            select(ClientLineItem.client_id, ClientLineItem.kind, ClientLineItem.llc_state)
            .where(ClientLineItem.llc_state.is_not(None))
            .order_by(
                ClientLineItem.client_id,
                ClientLineItem.sale_date.desc().nulls_last(),
                ClientLineItem.created_at.desc(),
            )
        )
        if client_ids is not None:
            ids = list(client_ids)
            if not ids:
                return {}
            stmt = stmt.where(ClientLineItem.client_id.in_(ids))

        out: dict[UUID, str] = {}
        for row in (await self._session.execute(stmt)).all():
            if row.client_id in out or LineItemKind.parse(row.kind) is not LineItemKind.LLC:
                continue
            code = normalize_jurisdiction(row.llc_state)
            if code is not None:
                out[row.client_id] = code
        return out

    @staticmethod
    def _order_by(sort: ChargeSort) -> tuple[Any, ...]:
        due = BillingChargeModel.due_date
        company = func.lower(Client.company_name)
        if sort is ChargeSort.DUE_DATE_ASC:
            return due.asc(), BillingChargeModel.id
        if sort is ChargeSort.DUE_DATE_DESC:
            return due.desc(), BillingChargeModel.id
        if sort is ChargeSort.COMPANY_ASC:
            return company.asc(), due.asc(), BillingChargeModel.id
        if sort is ChargeSort.COMPANY_DESC:
            return company.desc(), due.asc(), BillingChargeModel.id
        overdue_first = case(
            (BillingChargeModel.status == ObligationStatus.OVERDUE.value, 0), else_=1
        )
        return overdue_first, due.asc(), BillingChargeModel.id

    @staticmethod
    def _to_entity(row: BillingChargeModel) -> BillingCharge:
        return BillingCharge(
            id=row.id,
            client_id=row.client_id,
            line_item_id=row.line_item_id,
            period_start=row.period_start,
            period_end=row.period_end,
            due_date=row.due_date,
            amount_cents=int(row.amount_cents),
            status=ObligationStatus(row.status),
            currency=row.currency,
            paid_at=row.paid_at,
            paid_method=row.paid_method,
            provider=PaymentProvider(row.provider) if row.provider else None,
            provider_ref=row.provider_ref,
            notes=row.notes,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )


__all__ = ["SqlAlchemyBillingChargesRepository"]
