# src/llcdesk_api/tasks/cli.py
# Copyright (c) LLCDesk.
# SPDX-License-Identifier: MIT
"""LLCDesk CLI: operational commands for the billing engines.

Commands:
    reconcile charges         Create due charges and age charge statuses.
    reconcile annual-reports  Create and correct annual-report obligations.
    sweep                     Age pending/overdue statuses without creating rows.

Environment:
    DATABASE_URL                          Async SQLAlchemy URL.
    BILLING_CHARGES_WINDOW_DAYS           Default charges window (days).
    BILLING_ANNUAL_REPORTS_WINDOW_MONTHS  Default annual-report window (months).
"""

from __future__ import annotations

import asyncio
from datetime import datetime

import typer
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from llcdesk_api.adapters.uow.sqlalchemy_uow import SqlAlchemyUnitOfWork
from llcdesk_api.application.schemas.dto.billing import (
    ANNUAL_REPORTS_WINDOW_MONTHS_DEFAULT,
    CHARGES_WINDOW_DAYS_DEFAULT,
    ReconcileAnnualReportsRequestDTO,
    ReconcileChargesRequestDTO,
    ReconcileResultDTO,
)
from llcdesk_api.application.use_cases.billing.reconcile_annual_reports import (
    ReconcileAnnualReportsUseCase,
)
from llcdesk_api.application.use_cases.billing.reconcile_charges import ReconcileChargesUseCase
from llcdesk_api.application.use_cases.billing.sweep_obligation_status import (
    SweepObligationStatusUseCase,
)
from llcdesk_api.infrastructure.logging.logger import configure_root_logging, get_json_logger
from llcdesk_api.infrastructure.observability.metrics import PrometheusReconcileMetrics

configure_root_logging()
log = get_json_logger(__name__)

app = typer.Typer(add_completion=False, no_args_is_help=True)
reconcile_app = typer.Typer(no_args_is_help=True)
app.add_typer(reconcile_app, name="reconcile")


def _engine_and_sessionmaker(
    database_url: str,
) -> tuple[AsyncEngine, async_sessionmaker[AsyncSession]]:
    """Create an engine and a session factory bound to it."""
    engine = create_async_engine(database_url, future=True)
    return engine, async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


def _echo_result(result: ReconcileResultDTO) -> None:
    typer.echo(
        f"{result.engine.value}: created={result.created} updated={result.updated} "
        f"subjects={result.subjects} failed={result.failed_subjects}"
    )


@reconcile_app.command("charges")
def reconcile_charges(
    database_url: str = typer.Option(
        ..., envvar="DATABASE_URL", help="Async SQLAlchemy URL."
    ),  # noqa: B008
    window_days: int = typer.Option(
        CHARGES_WINDOW_DAYS_DEFAULT,
        envvar="BILLING_CHARGES_WINDOW_DAYS",
        help="Forward window in days (clamped to 0..90).",
    ),  # noqa: B008
    as_of: datetime | None = typer.Option(
        None, formats=["%Y-%m-%d"], help="Date treated as today (UTC)."
    ),  # noqa: B008
) -> None:
    """Run one charges reconcile pass."""
    engine, session_factory = _engine_and_sessionmaker(database_url)

    async def _run() -> ReconcileResultDTO:
        try:
            uc = ReconcileChargesUseCase(
                uow=SqlAlchemyUnitOfWork(session_factory=session_factory),
                metrics=PrometheusReconcileMetrics(),
            )
            return await uc.execute(
                ReconcileChargesRequestDTO(
                    window_days=window_days, as_of=as_of.date() if as_of else None
                )
            )
        finally:
            await engine.dispose()

    result = asyncio.run(_run())
    log.info(
        "reconcile_charges.done",
        extra={"extra": {"created": result.created, "updated": result.updated}},
    )
    _echo_result(result)
    if result.failed_subjects:
        raise typer.Exit(code=1)


@reconcile_app.command("annual-reports")
def reconcile_annual_reports(
    database_url: str = typer.Option(..., envvar="DATABASE_URL"),  # noqa: B008
    window_months: int = typer.Option(
        ANNUAL_REPORTS_WINDOW_MONTHS_DEFAULT,
        envvar="BILLING_ANNUAL_REPORTS_WINDOW_MONTHS",
        help="Forward window in months (clamped to 0..24).",
    ),  # noqa: B008
    as_of: datetime | None = typer.Option(
        None, formats=["%Y-%m-%d"], help="Date treated as today (UTC)."
    ),  # noqa: B008
) -> None:
    """Run one annual-report reconcile pass."""
    engine, session_factory = _engine_and_sessionmaker(database_url)

    async def _run() -> ReconcileResultDTO:
        try:
            uc = ReconcileAnnualReportsUseCase(
                uow=SqlAlchemyUnitOfWork(session_factory=session_factory),
                metrics=PrometheusReconcileMetrics(),
            )
            return await uc.execute(
                ReconcileAnnualReportsRequestDTO(
                    window_months=window_months, as_of=as_of.date() if as_of else None
                )
            )
        finally:
            await engine.dispose()

    result = asyncio.run(_run())
    log.info(
        "reconcile_annual_reports.done",
        extra={"extra": {"created": result.created, "updated": result.updated}},
    )
    _echo_result(result)
    if result.failed_subjects:
        raise typer.Exit(code=1)


@app.command("sweep")
def sweep(
    database_url: str = typer.Option(..., envvar="DATABASE_URL"),  # noqa: B008
    as_of: datetime | None = typer.Option(
        None, formats=["%Y-%m-%d"], help="Date treated as today (UTC)."
    ),  # noqa: B008
) -> None:
    """Move pending rows past due to overdue and back, on both tables."""
    engine, session_factory = _engine_and_sessionmaker(database_url)

    async def _run() -> tuple[int, int]:
        try:
            uc = SweepObligationStatusUseCase(
                uow=SqlAlchemyUnitOfWork(session_factory=session_factory)
            )
            result = await uc.execute(as_of=as_of.date() if as_of else None)
            return result.charges, result.annual_reports
        finally:
            await engine.dispose()

    charges, annual_reports = asyncio.run(_run())
    typer.echo(f"sweep: charges={charges} annual_reports={annual_reports}")


if __name__ == "__main__":
    app()
