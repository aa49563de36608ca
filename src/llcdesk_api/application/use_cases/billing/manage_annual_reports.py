# src/llcdesk_api/application/use_cases/billing/manage_annual_reports.py
# Copyright (c) LLCDesk.
# SPDX-License-Identifier: MIT
"""Use cases: Human actions on annual-report obligations.

Layer:
    application/use_cases/billing
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from uuid import UUID

from llcdesk_api.application.schemas.dto.billing import (
    CancelObligationRequestDTO,
    MarkAnnualReportDoneRequestDTO,
    UpdateAnnualReportRequestDTO,
)
from llcdesk_api.application.uow import UnitOfWork
from llcdesk_api.application.use_cases.billing.reconcile_charges import utc_today
from llcdesk_api.application.use_cases.billing.repositories import get_annual_reports_repo
from llcdesk_api.domain.entities.billing import AnnualReportObligation
from llcdesk_api.domain.exceptions.billing import (
    ObligationNotFound,
    ObligationStateError,
    ObligationValidationError,
)
from llcdesk_api.domain.interfaces.repositories.annual_report_obligations_repository import (
    AnnualReportObligationsRepository as AnnualReportObligationsRepositoryPort,
)

logger = logging.getLogger(__name__)

_UPDATABLE_FIELDS = frozenset({"due_date", "notes"})


async def _load(
    repo: AnnualReportObligationsRepositoryPort, obligation_id: UUID
) -> AnnualReportObligation:
    obligation = await repo.get(obligation_id)
    if obligation is None:
        raise ObligationNotFound(
            "Annual report obligation not found.",
            details={"obligation_id": str(obligation_id)},
        )
    return obligation


def _require_open(obligation: AnnualReportObligation, action: str) -> None:
    if obligation.status.is_terminal:
        raise ObligationStateError(
            f"Cannot {action} an annual report that is {obligation.status.value}.",
            details={"obligation_id": str(obligation.id), "status": obligation.status.value},
        )


def _lost_race(obligation_id: UUID) -> ObligationStateError:
    return ObligationStateError(
        "Annual report changed status concurrently.",
        details={"obligation_id": str(obligation_id)},
    )


class GetAnnualReportUseCase:
    """Return a single annual-report obligation by id."""

    def __init__(self, *, uow: UnitOfWork) -> None:
        self._uow = uow

    async def execute(self, obligation_id: UUID) -> AnnualReportObligation:
        async with self._uow as tx:
            return await _load(get_annual_reports_repo(tx), obligation_id)


class MarkAnnualReportDoneUseCase:
    """Mark an open obligation as filed."""

    def __init__(self, *, uow: UnitOfWork) -> None:
        self._uow = uow

    async def execute(self, req: MarkAnnualReportDoneRequestDTO) -> AnnualReportObligation:
        done_at = req.done_at or datetime.now(tz=UTC)
        async with self._uow as tx:
            repo = get_annual_reports_repo(tx)
            _require_open(await _load(repo, req.obligation_id), "complete")
            updated = await repo.mark_done(req.obligation_id, done_at=done_at, notes=req.notes)
            if updated is None:
                raise _lost_race(req.obligation_id)
            await tx.commit()

        logger.info(
            "billing.annual_reports.done",
            extra={"extra": {"obligation_id": str(req.obligation_id)}},
        )
        return updated


class CancelAnnualReportUseCase:
    """Cancel an open obligation."""

    def __init__(self, *, uow: UnitOfWork) -> None:
        self._uow = uow

    async def execute(self, req: CancelObligationRequestDTO) -> AnnualReportObligation:
        async with self._uow as tx:
            repo = get_annual_reports_repo(tx)
            _require_open(await _load(repo, req.obligation_id), "cancel")
            updated = await repo.mark_canceled(req.obligation_id, notes=req.notes)
            if updated is None:
                raise _lost_race(req.obligation_id)
            await tx.commit()

        logger.info(
            "billing.annual_reports.canceled",
            extra={"extra": {"obligation_id": str(req.obligation_id)}},
        )
        return updated


class ReopenAnnualReportUseCase:
    """Reopen a done or canceled obligation, clearing ``done_at``.

    Raises:
        ObligationNotFound: The obligation does not exist.
        ObligationValidationError: The obligation is already open.
    """

    def __init__(self, *, uow: UnitOfWork) -> None:
        self._uow = uow

    async def execute(self, obligation_id: UUID) -> AnnualReportObligation:
        async with self._uow as tx:
            repo = get_annual_reports_repo(tx)
            obligation = await _load(repo, obligation_id)
            if obligation.status.is_open:
                raise ObligationValidationError(
                    "Only done or canceled annual reports can be reopened.",
                    details={
                        "obligation_id": str(obligation_id),
                        "status": obligation.status.value,
                    },
                )
            updated = await repo.reopen(obligation_id, today=utc_today())
            if updated is None:
                raise _lost_race(obligation_id)
            await tx.commit()

        logger.info(
            "billing.annual_reports.reopened",
            extra={"extra": {"obligation_id": str(obligation_id), "status": updated.status.value}},
        )
        return updated


class UpdateAnnualReportUseCase:
    """Edit the due date or notes of an open obligation."""

    def __init__(self, *, uow: UnitOfWork) -> None:
        self._uow = uow

    async def execute(self, req: UpdateAnnualReportRequestDTO) -> AnnualReportObligation:
        fields = req.fields & _UPDATABLE_FIELDS
        if "due_date" in fields and req.due_date is None:
            raise ObligationValidationError("due_date cannot be cleared.")

        async with self._uow as tx:
            repo = get_annual_reports_repo(tx)
            obligation = await _load(repo, req.obligation_id)
            if not fields:
                return obligation
            _require_open(obligation, "edit")
            updated = await repo.update(
                req.obligation_id, due_date=req.due_date, notes=req.notes, fields=fields
            )
            if updated is None:
                raise _lost_race(req.obligation_id)
            await tx.commit()

        logger.info(
            "billing.annual_reports.updated",
            extra={"extra": {"obligation_id": str(req.obligation_id), "fields": sorted(fields)}},
        )
        return updated


class DeleteAnnualReportUseCase:
    """Delete an obligation permanently."""

    def __init__(self, *, uow: UnitOfWork) -> None:
        self._uow = uow

    async def execute(self, obligation_id: UUID) -> None:
        async with self._uow as tx:
            if not await get_annual_reports_repo(tx).delete(obligation_id):
                raise ObligationNotFound(
                    "Annual report obligation not found.",
                    details={"obligation_id": str(obligation_id)},
                )
            await tx.commit()

        logger.info(
            "billing.annual_reports.deleted",
            extra={"extra": {"obligation_id": str(obligation_id)}},
        )


__all__ = [
    "CancelAnnualReportUseCase",
    "DeleteAnnualReportUseCase",
    "GetAnnualReportUseCase",
    "MarkAnnualReportDoneUseCase",
    "ReopenAnnualReportUseCase",
    "UpdateAnnualReportUseCase",
]
