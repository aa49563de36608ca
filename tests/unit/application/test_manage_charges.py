from __future__ import annotations

from dataclasses import replace
from datetime import UTC, date, datetime
from uuid import uuid4

import pytest

from llcdesk_api.application.schemas.dto.billing import (
    CancelObligationRequestDTO,
    MarkChargePaidRequestDTO,
    UpdateChargeRequestDTO,
)
from llcdesk_api.application.use_cases.billing.manage_charges import (
    CancelChargeUseCase,
    DeleteChargeUseCase,
    GetChargeUseCase,
    MarkChargePaidUseCase,
    ReopenChargeUseCase,
    UpdateChargeUseCase,
)
from llcdesk_api.domain.enums.billing import ObligationStatus, PaymentProvider
from llcdesk_api.domain.exceptions.billing import (
    ObligationNotFound,
    ObligationStateError,
    ObligationValidationError,
)

PAID_AT = datetime(2025, 2, 3, 12, 0, tzinfo=UTC)


async def test_get_missing_charge_raises_not_found(uow) -> None:
    with pytest.raises(ObligationNotFound) as excinfo:
        await GetChargeUseCase(uow=uow).execute(uuid4())

    assert excinfo.value.http_status == 404


async def test_pay_open_charge(uow) -> None:
    charge = uow.charges_repo.add(status=ObligationStatus.OVERDUE)

    paid = await MarkChargePaidUseCase(uow=uow).execute(
        MarkChargePaidRequestDTO(charge_id=charge.id, paid_at=PAID_AT, provider_ref="pi_123")
    )

    assert paid.status is ObligationStatus.PAID
    assert paid.paid_at == PAID_AT
    assert paid.paid_method == "Manual"
    assert paid.provider is PaymentProvider.MANUAL
    assert paid.provider_ref == "pi_123"
    assert uow.commits == 1


@pytest.mark.parametrize("status", [ObligationStatus.PAID, ObligationStatus.CANCELED])
async def test_pay_terminal_charge_conflicts(uow, status: ObligationStatus) -> None:
    charge = uow.charges_repo.add(status=status)

    with pytest.raises(ObligationStateError):
        await MarkChargePaidUseCase(uow=uow).execute(MarkChargePaidRequestDTO(charge_id=charge.id))

    assert uow.charges_repo.rows[charge.id].status is status
    assert uow.commits == 0


async def test_cancel_keeps_notes(uow) -> None:
    charge = uow.charges_repo.add()

    canceled = await CancelChargeUseCase(uow=uow).execute(
        CancelObligationRequestDTO(obligation_id=charge.id, notes="client closed")
    )

    assert canceled.status is ObligationStatus.CANCELED
    assert canceled.notes == "client closed"


@pytest.mark.parametrize(
    ("due_date", "expected"),
    [
        (date(2000, 1, 1), ObligationStatus.OVERDUE),
        (date(2999, 1, 1), ObligationStatus.PENDING),
    ],
)
async def test_reopen_canceled_charge_ages_by_due_date(
    uow, due_date: date, expected: ObligationStatus
) -> None:
    charge = uow.charges_repo.add(status=ObligationStatus.CANCELED, due_date=due_date)

    reopened = await ReopenChargeUseCase(uow=uow).execute(charge.id)

    assert reopened.status is expected


async def test_reopen_rejects_paid_and_open_charges(uow) -> None:
    paid = uow.charges_repo.add(status=ObligationStatus.PAID)
    pending = uow.charges_repo.add()

    with pytest.raises(ObligationStateError):
        await ReopenChargeUseCase(uow=uow).execute(paid.id)
    with pytest.raises(ObligationValidationError):
        await ReopenChargeUseCase(uow=uow).execute(pending.id)


async def test_update_open_charge_applies_only_sent_fields(uow) -> None:
    charge = uow.charges_repo.add(notes="keep me")

    updated = await UpdateChargeUseCase(uow=uow).execute(
        UpdateChargeRequestDTO(
            charge_id=charge.id,
            amount_cents=5900,
            due_date=date(2025, 2, 10),
            fields=frozenset({"amount_cents", "due_date"}),
        )
    )

    assert (updated.amount_cents, updated.due_date, updated.notes) == (
        5900,
        date(2025, 2, 10),
        "keep me",
    )


async def test_update_can_clear_notes(uow) -> None:
    charge = uow.charges_repo.add(notes="old")

    updated = await UpdateChargeUseCase(uow=uow).execute(
        UpdateChargeRequestDTO(charge_id=charge.id, notes=None, fields=frozenset({"notes"}))
    )

    assert updated.notes is None


async def test_update_without_fields_returns_charge_unchanged(uow) -> None:
    charge = uow.charges_repo.add()

    result = await UpdateChargeUseCase(uow=uow).execute(UpdateChargeRequestDTO(charge_id=charge.id))

    assert result == charge
    assert uow.commits == 0


async def test_paid_charge_only_accepts_payment_date(uow) -> None:
    charge = uow.charges_repo.add(status=ObligationStatus.PAID, paid_at=PAID_AT)
    use_case = UpdateChargeUseCase(uow=uow)
    new_paid_at = datetime(2025, 2, 5, tzinfo=UTC)

    updated = await use_case.execute(
        UpdateChargeRequestDTO(
            charge_id=charge.id, paid_at=new_paid_at, fields=frozenset({"paid_at"})
        )
    )
    assert updated.paid_at == new_paid_at

    with pytest.raises(ObligationStateError):
        await use_case.execute(
            UpdateChargeRequestDTO(
                charge_id=charge.id, amount_cents=1, fields=frozenset({"amount_cents"})
            )
        )


@pytest.mark.parametrize(
    ("read_status", "raced_status", "request_fields"),
    [
        (ObligationStatus.PENDING, ObligationStatus.PAID, {"amount_cents": 1}),
        (ObligationStatus.OVERDUE, ObligationStatus.CANCELED, {"due_date": date(2025, 9, 1)}),
        (ObligationStatus.PAID, ObligationStatus.PENDING, {"paid_at": PAID_AT}),
    ],
)
async def test_update_conflicts_when_status_changes_after_read(
    uow,
    monkeypatch: pytest.MonkeyPatch,
    read_status: ObligationStatus,
    raced_status: ObligationStatus,
    request_fields: dict[str, object],
) -> None:
    repo = uow.charges_repo
    charge = repo.add(status=read_status, amount_cents=5000, due_date=date(2025, 3, 1))
    raced = replace(charge, status=raced_status)
    original_get = repo.get

    async def get_then_race(charge_id):
        current = await original_get(charge_id)
        repo.rows[charge_id] = raced
        return current

    monkeypatch.setattr(repo, "get", get_then_race)

    with pytest.raises(ObligationStateError):
        await UpdateChargeUseCase(uow=uow).execute(
            UpdateChargeRequestDTO(
                charge_id=charge.id,
                fields=frozenset(request_fields),
                **request_fields,  # type: ignore[arg-type]
            )
        )

    assert repo.rows[charge.id] == raced
    assert uow.commits == 0

@pytest.mark.parametrize(
    ("status", "request_fields", "error"),
    [
        (ObligationStatus.CANCELED, {"notes": "x"}, ObligationStateError),
        (ObligationStatus.PENDING, {"paid_at": PAID_AT}, ObligationValidationError),
        (ObligationStatus.PENDING, {"amount_cents": -5}, ObligationValidationError),
        (ObligationStatus.PENDING, {"due_date": None}, ObligationValidationError),
    ],
)
async def test_update_rejections(
    uow, status: ObligationStatus, request_fields: dict[str, object], error: type[Exception]
) -> None:
    charge = uow.charges_repo.add(status=status)

    with pytest.raises(error):
        await UpdateChargeUseCase(uow=uow).execute(
            UpdateChargeRequestDTO(
                charge_id=charge.id,
                fields=frozenset(request_fields),
                **request_fields,  # type: ignore[arg-type]
            )
        )


async def test_delete(uow) -> None:
    charge = uow.charges_repo.add()
    use_case = DeleteChargeUseCase(uow=uow)

    await use_case.execute(charge.id)

    assert charge.id not in uow.charges_repo.rows
    with pytest.raises(ObligationNotFound):
        await use_case.execute(charge.id)
