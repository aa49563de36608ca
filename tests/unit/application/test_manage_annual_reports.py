from __future__ import annotations

from datetime import UTC, date, datetime
from uuid import uuid4

import pytest

from llcdesk_api.application.schemas.dto.billing import (
    CancelObligationRequestDTO,
    MarkAnnualReportDoneRequestDTO,
    UpdateAnnualReportRequestDTO,
)
from llcdesk_api.application.use_cases.billing.manage_annual_reports import (
    CancelAnnualReportUseCase,
    DeleteAnnualReportUseCase,
    GetAnnualReportUseCase,
    MarkAnnualReportDoneUseCase,
    ReopenAnnualReportUseCase,
    UpdateAnnualReportUseCase,
)
from llcdesk_api.domain.enums.billing import ObligationStatus
from llcdesk_api.domain.exceptions.billing import (
    ObligationNotFound,
    ObligationStateError,
    ObligationValidationError,
)

DONE_AT = datetime(2025, 5, 2, 9, 30, tzinfo=UTC)


async def test_get_missing_obligation(uow) -> None:
    with pytest.raises(ObligationNotFound):
        await GetAnnualReportUseCase(uow=uow).execute(uuid4())


async def test_mark_done_then_conflict_on_repeat(uow) -> None:
    report = uow.annual_reports_repo.add()
    use_case = MarkAnnualReportDoneUseCase(uow=uow)

    done = await use_case.execute(
        MarkAnnualReportDoneRequestDTO(obligation_id=report.id, done_at=DONE_AT, notes="filed")
    )

    assert (done.status, done.done_at, done.notes) == (ObligationStatus.DONE, DONE_AT, "filed")
    with pytest.raises(ObligationStateError) as excinfo:
        await use_case.execute(MarkAnnualReportDoneRequestDTO(obligation_id=report.id))
    assert excinfo.value.code == "OBLIGATION_STATE_CONFLICT"


async def test_mark_done_defaults_to_now(uow) -> None:
    report = uow.annual_reports_repo.add(status=ObligationStatus.OVERDUE)

    done = await MarkAnnualReportDoneUseCase(uow=uow).execute(
        MarkAnnualReportDoneRequestDTO(obligation_id=report.id)
    )

    assert done.done_at is not None
    assert done.done_at.tzinfo is not None


async def test_cancel_done_report_conflicts(uow) -> None:
    report = uow.annual_reports_repo.add(status=ObligationStatus.DONE, done_at=DONE_AT)

    with pytest.raises(ObligationStateError):
        await CancelAnnualReportUseCase(uow=uow).execute(
            CancelObligationRequestDTO(obligation_id=report.id)
        )


async def test_reopen_clears_done_at(uow) -> None:
    report = uow.annual_reports_repo.add(
        status=ObligationStatus.DONE, done_at=DONE_AT, due_date=date(2999, 7, 1)
    )

    reopened = await ReopenAnnualReportUseCase(uow=uow).execute(report.id)

    assert reopened.status is ObligationStatus.PENDING
    assert reopened.done_at is None


async def test_reopen_canceled_past_due_is_overdue(uow) -> None:
    report = uow.annual_reports_repo.add(status=ObligationStatus.CANCELED)

    reopened = await ReopenAnnualReportUseCase(uow=uow).execute(report.id)

    assert reopened.status is ObligationStatus.OVERDUE


async def test_reopen_open_report_is_rejected(uow) -> None:
    report = uow.annual_reports_repo.add()

    with pytest.raises(ObligationValidationError):
        await ReopenAnnualReportUseCase(uow=uow).execute(report.id)


async def test_update_open_report(uow) -> None:
    report = uow.annual_reports_repo.add()

    updated = await UpdateAnnualReportUseCase(uow=uow).execute(
        UpdateAnnualReportRequestDTO(
            obligation_id=report.id,
            due_date=date(2025, 8, 15),
            fields=frozenset({"due_date"}),
        )
    )

    assert updated.due_date == date(2025, 8, 15)
    assert uow.commits == 1


async def test_update_rejects_terminal_report_and_cleared_due_date(uow) -> None:
    done = uow.annual_reports_repo.add(status=ObligationStatus.DONE, done_at=DONE_AT)
    use_case = UpdateAnnualReportUseCase(uow=uow)

    with pytest.raises(ObligationStateError):
        await use_case.execute(
            UpdateAnnualReportRequestDTO(
                obligation_id=done.id, notes="late", fields=frozenset({"notes"})
            )
        )
    with pytest.raises(ObligationValidationError):
        await use_case.execute(
            UpdateAnnualReportRequestDTO(
                obligation_id=done.id, due_date=None, fields=frozenset({"due_date"})
            )
        )


async def test_delete_missing_report(uow) -> None:
    with pytest.raises(ObligationNotFound):
        await DeleteAnnualReportUseCase(uow=uow).execute(uuid4())
