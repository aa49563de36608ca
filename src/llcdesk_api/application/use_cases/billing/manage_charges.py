# src/llcdesk_api/application/use_cases/billing/manage_charges.py
# Copyright (c) LLCDesk.
# SPDX-License-Identifier: MIT
"""Use cases: Human actions on billing charges.

Purpose:
    Back-office operations on a single charge: read, pay, cancel, reopen,
    edit and delete. Each use case validates the current status before
    writing and maps lost races (guarded UPDATE matched no row) to a
    state conflict.

Layer:
    application/use_cases/billing
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from uuid import UUID

from llcdesk_api.application.schemas.dto.billing import (
    CancelObligationRequestDTO,
    MarkChargePaidRequestDTO,
    UpdateChargeRequestDTO,
)
from llcdesk_api.application.uow import UnitOfWork
from llcdesk_api.application.use_cases.billing.reconcile_charges import utc_today
from llcdesk_api.application.use_cases.billing.repositories import get_charges_repo
from llcdesk_api.domain.entities.billing import BillingCharge
from llcdesk_api.domain.enums.billing import ObligationStatus
from llcdesk_api.domain.exceptions.billing import (
    ObligationNotFound,
    ObligationStateError,
    ObligationValidationError,
)
from llcdesk_api.domain.interfaces.repositories.billing_charges_repository import (
    BillingChargesRepository as BillingChargesRepositoryPort,
)

logger = logging.getLogger(__name__)

_UPDATABLE_FIELDS = frozenset({"amount_cents", "due_date", "notes", "paid_at"})


async def _load(repo: BillingChargesRepositoryPort, charge_id: UUID) -> BillingCharge:
    charge = await repo.get(charge_id)
    if charge is None:
        raise ObligationNotFound("Charge not found.", details={"charge_id": str(charge_id)})
    return charge


def _require_open(charge: BillingCharge, action: str) -> None:
    if charge.status is ObligationStatus.PAID:
        raise ObligationStateError(
            f"Cannot {action} a paid charge.",
            details={"charge_id": str(charge.id), "status": charge.status.value},
        )
    if charge.status is ObligationStatus.CANCELED:
        raise ObligationStateError(
            f"Cannot {action} a canceled charge.",
            details={"charge_id": str(charge.id), "status": charge.status.value},
        )


class GetChargeUseCase:
    """Return a single charge by id."""

    def __init__(self, *, uow: UnitOfWork) -> None:
        self._uow = uow

    async def execute(self, charge_id: UUID) -> BillingCharge:
        async with self._uow as tx:
            return await _load(get_charges_repo(tx), charge_id)


class MarkChargePaidUseCase:
    """Record a payment on an open charge.

    Raises:
        ObligationNotFound: The charge does not exist.
        ObligationStateError: The charge is already paid or canceled.
    """

    def __init__(self, *, uow: UnitOfWork) -> None:
        self._uow = uow

    async def execute(self, req: MarkChargePaidRequestDTO) -> BillingCharge:
        paid_at = req.paid_at or datetime.now(tz=UTC)
        async with self._uow as tx:
            repo = get_charges_repo(tx)
            charge = await _load(repo, req.charge_id)
            _require_open(charge, "pay")
            updated = await repo.mark_paid(
                req.charge_id,
                paid_at=paid_at,
                paid_method=req.paid_method,
                provider=req.provider,
                provider_ref=req.provider_ref,
                notes=req.notes,
            )
            if updated is None:
                raise ObligationStateError(
                    "Charge changed status concurrently.",
                    details={"charge_id": str(req.charge_id)},
                )
            await tx.commit()

        logger.info(
            "billing.charges.paid",
            extra={"extra": {"charge_id": str(req.charge_id), "provider": req.provider.value}},
        )
        return updated


class CancelChargeUseCase:
    """Cancel an open charge."""

    def __init__(self, *, uow: UnitOfWork) -> None:
        self._uow = uow

    async def execute(self, req: CancelObligationRequestDTO) -> BillingCharge:
        async with self._uow as tx:
            repo = get_charges_repo(tx)
            charge = await _load(repo, req.obligation_id)
            _require_open(charge, "cancel")
            updated = await repo.mark_canceled(req.obligation_id, notes=req.notes)
            if updated is None:
                raise ObligationStateError(
                    "Charge changed status concurrently.",
                    details={"charge_id": str(req.obligation_id)},
                )
            await tx.commit()

        logger.info("billing.charges.canceled", extra={"extra": {"charge_id": str(updated.id)}})
        return updated


class ReopenChargeUseCase:
    """Reopen a canceled charge as ``pending`` or ``overdue`` by due date.

    Raises:
        ObligationNotFound: The charge does not exist.
        ObligationStateError: The charge is paid.
        ObligationValidationError: The charge is open (not canceled).
    """

    def __init__(self, *, uow: UnitOfWork) -> None:
        self._uow = uow

    async def execute(self, charge_id: UUID) -> BillingCharge:
        async with self._uow as tx:
            repo = get_charges_repo(tx)
            charge = await _load(repo, charge_id)
            if charge.status is ObligationStatus.PAID:
                raise ObligationStateError(
                    "Cannot reopen a paid charge.",
                    details={"charge_id": str(charge_id), "status": charge.status.value},
                )
            if charge.status is not ObligationStatus.CANCELED:
                raise ObligationValidationError(
                    "Only canceled charges can be reopened.",
                    details={"charge_id": str(charge_id), "status": charge.status.value},
                )
            updated = await repo.reopen(charge_id, today=utc_today())
            if updated is None:
                raise ObligationStateError(
                    "Charge changed status concurrently.",
                    details={"charge_id": str(charge_id)},
                )
            await tx.commit()

        logger.info(
            "billing.charges.reopened",
            extra={"extra": {"charge_id": str(charge_id), "status": updated.status.value}},
        )
        return updated


class UpdateChargeUseCase:
    """Edit amount, due date, notes or payment date of a charge.

    Open charges accept every field. Paid charges only accept ``paid_at``;
    canceled charges accept nothing.
    """

    def __init__(self, *, uow: UnitOfWork) -> None:
        self._uow = uow

    async def execute(self, req: UpdateChargeRequestDTO) -> BillingCharge:
        fields = req.fields & _UPDATABLE_FIELDS
        if "amount_cents" in fields and (req.amount_cents is None or req.amount_cents < 0):
            raise ObligationValidationError(
                "amount_cents must be a non-negative integer.",
                details={"amount_cents": req.amount_cents},
            )
        if "due_date" in fields and req.due_date is None:
            raise ObligationValidationError("due_date cannot be cleared.")

        async with self._uow as tx:
            repo = get_charges_repo(tx)
            charge = await _load(repo, req.charge_id)
            if not fields:
                return charge
            if charge.status is ObligationStatus.PAID:
                if fields != {"paid_at"} or req.paid_at is None:
                    raise ObligationStateError(
                        "A paid charge only accepts a new payment date.",
                        details={"charge_id": str(charge.id), "fields": sorted(fields)},
                    )
            elif charge.status is ObligationStatus.CANCELED:
                raise ObligationStateError(
                    "A canceled charge cannot be edited.",
                    details={"charge_id": str(charge.id)},
                )
            elif "paid_at" in fields:
                raise ObligationValidationError(
                    "paid_at can only be set on a paid charge; use the pay action.",
                    details={"charge_id": str(charge.id)},
                )

            updated = await repo.update(
                req.charge_id,
                amount_cents=req.amount_cents,
                due_date=req.due_date,
                notes=req.notes,
                paid_at=req.paid_at,
                fields=fields,
            )
            if updated is None:
                raise ObligationStateError(
                    "Charge changed status concurrently.",
                    details={"charge_id": str(req.charge_id)},
                )
            await tx.commit()

        logger.info(
            "billing.charges.updated",
            extra={"extra": {"charge_id": str(req.charge_id), "fields": sorted(fields)}},
        )
        return updated


class DeleteChargeUseCase:
    """Delete a charge permanently."""

    def __init__(self, *, uow: UnitOfWork) -> None:
        self._uow = uow

    async def execute(self, charge_id: UUID) -> None:
        async with self._uow as tx:
            deleted = await get_charges_repo(tx).delete(charge_id)
            if not deleted:
                raise ObligationNotFound(
                    "Charge not found.", details={"charge_id": str(charge_id)}
                )
            await tx.commit()

        logger.info("billing.charges.deleted", extra={"extra": {"charge_id": str(charge_id)}})


__all__ = [
    "CancelChargeUseCase",
    "DeleteChargeUseCase",
    "GetChargeUseCase",
    "MarkChargePaidUseCase",
    "ReopenChargeUseCase",
    "UpdateChargeUseCase",
]
