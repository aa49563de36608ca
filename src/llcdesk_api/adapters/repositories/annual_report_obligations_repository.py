# src/llcdesk_api/adapters/repositories/annual_report_obligations_repository.py
# Copyright (c) LLCDesk.
# SPDX-License-Identifier: MIT
"""Annual-report obligations repository (SQLAlchemy).

Purpose:
    Persist and query state annual-report obligations. Implements the
    AnnualReportObligationsRepository protocol.

Layer:
    adapters/repositories

Notes:
    - One row per ``(client_id, jurisdiction_code, period_start, period_end)``,
      where the period is the calendar year of the due date.
    - Automated writes (due-date correction, aging) only touch ``pending`` and
      ``overdue`` rows; ``done`` and ``canceled`` belong to operators.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, datetime
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import Select, case, delete, func, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from llcdesk_api.adapters.repositories.base_repository import (
    BaseRepository,
    is_unique_violation,
)
from llcdesk_api.domain.entities.billing import (
    AnnualReportListItem,
    AnnualReportObligation,
    AnnualReportsSummary,
    Page,
)
from llcdesk_api.domain.entities.billing_filters import AnnualReportListFilters
from llcdesk_api.domain.enums.billing import ObligationStatus, Recurrence
from llcdesk_api.domain.exceptions.billing import DuplicateObligationError
from llcdesk_api.infrastructure.database.models.billing import (
    AnnualReportObligationModel,
    Client,
)

_UNIQUE_CONSTRAINT = "uq_annual_report_obligations_client_jurisdiction_period"
_OPEN = (ObligationStatus.PENDING.value, ObligationStatus.OVERDUE.value)
_CLOSED = (ObligationStatus.DONE.value, ObligationStatus.CANCELED.value)
_EDITABLE_FIELDS = frozenset({"due_date", "notes"})

Model = AnnualReportObligationModel


class SqlAlchemyAnnualReportObligationsRepository(BaseRepository[AnnualReportObligationModel]):
    """SQLAlchemy-backed annual-report obligations repository."""

    _MODEL_NAME = "annual_report_obligations"

    def __init__(self, session: AsyncSession) -> None:
        """Initialize the repository."""
        super().__init__(session=session)

    async def create_if_not_exists(
        self,
        *,
        client_id: UUID,
        jurisdiction_code: str,
        frequency: Recurrence,
        period_year: int,
        due_date: date,
    ) -> tuple[AnnualReportObligation, bool]:
        """Insert a ``pending`` obligation for the calendar year ``period_year``.

        Returns:
            ``(obligation, created)``.

        Raises:
            DuplicateObligationError: If a concurrent insert won the race and
                its row is not yet visible.
        """
        with self.track("create_if_not_exists"):
            period_start = date(period_year, 1, 1)
            period_end = date(period_year + 1, 1, 1)
            now = self.utc_now()
            stmt = (
                pg_insert(Model)
                .values(
                    id=uuid4(),
                    client_id=client_id,
                    jurisdiction_code=jurisdiction_code,
                    frequency=frequency.value,
                    period_year=period_year,
                    period_start=period_start,
                    period_end=period_end,
                    due_date=due_date,
                    status=ObligationStatus.PENDING.value,
                    created_at=now,
                    updated_at=now,
                )
                .on_conflict_do_nothing(constraint=_UNIQUE_CONSTRAINT)
                .returning(Model)
            )
            details = {
                "client_id": str(client_id),
                "jurisdiction_code": jurisdiction_code,
                "period_year": period_year,
            }
            try:
                async with self._session.begin_nested():
                    inserted = (await self._session.execute(stmt)).scalars().first()
            except IntegrityError as exc:
                if is_unique_violation(exc):
                    raise DuplicateObligationError(
                        "annual report already exists for period", details=details
                    ) from exc
                raise

            if inserted is not None:
                return self._to_entity(inserted), True

            existing = await self.fetch_optional(
                select(Model).where(
                    Model.client_id == client_id,
                    Model.jurisdiction_code == jurisdiction_code,
                    Model.period_start == period_start,
                    Model.period_end == period_end,
                )
            )
            if existing is None:
                raise DuplicateObligationError(
                    "annual report insert conflicted with an uncommitted row", details=details
                )
            return self._to_entity(existing), False

    async def correct_due_date(self, obligation_id: UUID, *, due_date: date) -> bool:
        """Move an open obligation to ``due_date``; closed rows are left alone."""
        with self.track("correct_due_date"):
            res = await self._session.execute(
                update(Model)
                .where(Model.id == obligation_id, Model.status.in_(_OPEN))
                .values(due_date=due_date, updated_at=self.utc_now())
                .execution_options(synchronize_session=False)
            )
            return bool(res.rowcount)  # type: ignore[attr-defined]

    async def sweep_status(self, today: date) -> int:
        """Age pending obligations past due and revert overdue ones no longer past due."""
        with self.track("sweep_status"):
            now = self.utc_now()
            changed = 0
            for from_status, to_status, past_due in (
                (ObligationStatus.PENDING, ObligationStatus.OVERDUE, True),
                (ObligationStatus.OVERDUE, ObligationStatus.PENDING, False),
            ):
                due_clause = Model.due_date < today if past_due else Model.due_date >= today
                res = await self._session.execute(
                    update(Model)
                    .where(Model.status == from_status.value, due_clause)
                    .values(status=to_status.value, updated_at=now)
                    .execution_options(synchronize_session=False)
                )
                changed += int(res.rowcount or 0)  # type: ignore[attr-defined]
            return changed

    async def get(self, obligation_id: UUID) -> AnnualReportObligation | None:
        """Return an obligation by id, or ``None``."""
        with self.track("get"):
            row = await self.fetch_optional(select(Model).where(Model.id == obligation_id))
            return self._to_entity(row) if row is not None else None

    async def mark_done(
        self, obligation_id: UUID, *, done_at: datetime, notes: str | None
    ) -> AnnualReportObligation | None:
        """Mark an open obligation as filed."""
        with self.track("mark_done"):
            values: dict[str, Any] = {
                "status": ObligationStatus.DONE.value,
                "done_at": done_at,
                "updated_at": self.utc_now(),
            }
            if notes is not None:
                values["notes"] = notes
            return await self._guarded_update(obligation_id, values, statuses=_OPEN)

    async def mark_canceled(
        self, obligation_id: UUID, *, notes: str | None
    ) -> AnnualReportObligation | None:
        """Cancel an open obligation."""
        with self.track("mark_canceled"):
            values: dict[str, Any] = {
                "status": ObligationStatus.CANCELED.value,
                "updated_at": self.utc_now(),
            }
            if notes is not None:
                values["notes"] = notes
            return await self._guarded_update(obligation_id, values, statuses=_OPEN)

    async def reopen(self, obligation_id: UUID, *, today: date) -> AnnualReportObligation | None:
        """Reopen a done/canceled obligation and clear ``done_at``."""
        with self.track("reopen"):
            status = case(
                (Model.due_date < today, ObligationStatus.OVERDUE.value),
                else_=ObligationStatus.PENDING.value,
            )
            return await self._guarded_update(
                obligation_id,
                {"status": status, "done_at": None, "updated_at": self.utc_now()},
                statuses=_CLOSED,
            )

    async def update(
        self,
        obligation_id: UUID,
        *,
        due_date: date | None = None,
        notes: str | None = None,
        fields: frozenset[str] = frozenset(),
    ) -> AnnualReportObligation | None:
        """Apply the edits named in ``fields`` to an open obligation."""
        with self.track("update"):
            provided = {"due_date": due_date, "notes": notes}
            values: dict[str, Any] = {name: provided[name] for name in fields & _EDITABLE_FIELDS}
            if not values:
                return await self.get(obligation_id)
            values["updated_at"] = self.utc_now()
            return await self._guarded_update(obligation_id, values, statuses=_OPEN)

    async def delete(self, obligation_id: UUID) -> bool:
        """Delete an obligation permanently."""
        with self.track("delete"):
            res = await self._session.execute(
                delete(Model)
                .where(Model.id == obligation_id)
                .execution_options(synchronize_session=False)
            )
            return bool(res.rowcount)  # type: ignore[attr-defined]

    async def list(self, filters: AnnualReportListFilters) -> Page[AnnualReportListItem]:
        """Return a filtered page of obligations, overdue first, then by due date."""
        with self.track("list"):
            stmt: Select[Any] = select(Model, Client.company_name).join(
                Client, Client.id == Model.client_id
            )
            if filters.statuses:
                stmt = stmt.where(Model.status.in_([s.value for s in filters.statuses]))
            if filters.jurisdiction_code:
                stmt = stmt.where(Model.jurisdiction_code == filters.jurisdiction_code)
            if filters.frequency is not None:
                stmt = stmt.where(Model.frequency == filters.frequency.value)
            if filters.period_year is not None:
                stmt = stmt.where(Model.period_year == filters.period_year)
            if filters.client_id is not None:
                stmt = stmt.where(Model.client_id == filters.client_id)
            if filters.query:
                stmt = stmt.where(Client.company_name.ilike(f"%{filters.query}%"))

            total = await self.count(stmt)
            overdue_first = case((Model.status == ObligationStatus.OVERDUE.value, 0), else_=1)
            stmt = (
                stmt.order_by(overdue_first, Model.due_date.asc(), Model.id)
                .offset(filters.offset)
                .limit(filters.limit)
            )
            stmt = stmt.execution_options(populate_existing=True)
            rows = (await self._session.execute(stmt)).all()
            items = tuple(
                AnnualReportListItem(obligation=self._to_entity(row[0]), company_name=row[1])
                for row in rows
            )
            return Page(items=items, total=total, page=filters.page, limit=filters.limit)

    async def summary(self) -> AnnualReportsSummary:
        """Return pending/overdue/done counts."""
        with self.track("summary"):
            stmt = select(
                func.count().filter(Model.status == ObligationStatus.PENDING.value),
                func.count().filter(Model.status == ObligationStatus.OVERDUE.value),
                func.count().filter(Model.status == ObligationStatus.DONE.value),
            ).select_from(Model)
            row = (await self._session.execute(stmt)).one()
            return AnnualReportsSummary(pending=int(row[0]), overdue=int(row[1]), done=int(row[2]))

    async def _guarded_update(
        self,
        obligation_id: UUID,
        values: dict[str, Any],
        *,
        statuses: Iterable[str],
    ) -> AnnualReportObligation | None:
        stmt = (
            update(Model)
            .where(Model.id == obligation_id, Model.status.in_(list(statuses)))
            .values(**values)
            .returning(Model)
            .execution_options(synchronize_session="fetch", populate_existing=True)
        )
        row = (await self._session.execute(stmt)).scalars().first()
        return self._to_entity(row) if row is not None else None

    @staticmethod
    def _to_entity(row: AnnualReportObligationModel) -> AnnualReportObligation:
        return AnnualReportObligation(
            id=row.id,
            client_id=row.client_id,
            jurisdiction_code=row.jurisdiction_code,
            frequency=Recurrence.parse(row.frequency) or Recurrence.ANNUAL,
            period_year=int(row.period_year),
            period_start=row.period_start,
            period_end=row.period_end,
            due_date=row.due_date,
            status=ObligationStatus(row.status),
            done_at=row.done_at,
            notes=row.notes,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )


__all__ = ["SqlAlchemyAnnualReportObligationsRepository"]
