from __future__ import annotations

import os
from collections.abc import AsyncIterator
from datetime import UTC, date, datetime

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from llcdesk_api.adapters.repositories.annual_report_obligations_repository import (
    SqlAlchemyAnnualReportObligationsRepository,
)
from llcdesk_api.adapters.repositories.billing_charges_repository import (
    SqlAlchemyBillingChargesRepository,
)
from llcdesk_api.adapters.repositories.billing_facts_repository import (
    SqlAlchemyBillingFactsRepository,
)
from llcdesk_api.domain.entities.billing import ObligationPeriod
from llcdesk_api.domain.entities.billing_filters import (
    AnnualReportListFilters,
    ChargeListFilters,
)
from llcdesk_api.domain.enums.billing import ObligationStatus, PaymentProvider, Recurrence
from llcdesk_api.infrastructure.database.models.base import metadata
from llcdesk_api.infrastructure.database.models.billing import Client, ClientLineItem

TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL")

pytestmark = [
    pytest.mark.integration,
    pytest.mark.skipif(not TEST_DATABASE_URL, reason="TEST_DATABASE_URL is not set"),
]

PERIOD = ObligationPeriod(
    period_start=date(2025, 1, 15), period_end=date(2025, 2, 15), due_date=date(2025, 2, 15)
)


@pytest.fixture
async def session() -> AsyncIterator[AsyncSession]:
    engine = create_async_engine(str(TEST_DATABASE_URL))
    async with engine.begin() as conn:
        await conn.run_sync(metadata.drop_all)
        await conn.run_sync(metadata.create_all)
    factory = async_sessionmaker(engine, expire_on_commit=False)
    async with factory() as s:
        yield s
    async with engine.begin() as conn:
        await conn.run_sync(metadata.drop_all)
    await engine.dispose()


async def _client_with_items(
    session: AsyncSession, *, company: str = "Acme LLC", state: str | None = "Wyoming"
) -> tuple[Client, ClientLineItem]:
    client = Client(company_name=company, payment_method="Zelle")
    session.add(client)
    await session.flush()
    address = ClientLineItem(
        client_id=client.id,
        kind="Endereço",
        description="Virtual address",
        value_cents=4900,
        sale_date=date(2024, 1, 15),
        billing_period="Mensal",
        address_line1="30 N Gould St",
    )
    session.add(address)
    if state is not None:
        session.add(
            ClientLineItem(
                client_id=client.id,
                kind="LLC",
                description="Formation",
                sale_date=date(2020, 7, 20),
                llc_state=state,
            )
        )
    await session.flush()
    return client, address


async def test_charge_facts_normalize_stored_labels(session: AsyncSession) -> None:
    client, address = await _client_with_items(session)

    (facts,) = await SqlAlchemyBillingFactsRepository(session).list_charge_facts()

    assert (facts.client_id, facts.source_id) == (client.id, address.id)
    assert facts.recurrence is Recurrence.MONTHLY
    assert (facts.anchor_date, facts.amount_cents) == (date(2024, 1, 15), 4900)


async def test_annual_report_facts_resolve_state_names(session: AsyncSession) -> None:
    await _client_with_items(session, state=" wyoming ")
    await _client_with_items(session, company="No State LLC", state=None)

    repo = SqlAlchemyBillingFactsRepository(session)
    (facts,) = await repo.list_annual_report_facts()
    diagnostics = await repo.annual_report_diagnostics()

    assert facts.jurisdiction_code == "WY"
    assert facts.recurrence is Recurrence.ANNUAL
    assert facts.anchor_date == date(2020, 7, 20)
    assert (diagnostics.active_clients, diagnostics.llc_line_items) == (2, 1)
    assert diagnostics.jurisdictions_matched == 1


async def test_charge_insert_is_idempotent(session: AsyncSession) -> None:
    client, address = await _client_with_items(session)
    repo = SqlAlchemyBillingChargesRepository(session)

    first, created = await repo.create_if_not_exists(
        client_id=client.id, line_item_id=address.id, period=PERIOD, amount_cents=4900
    )
    again, created_again = await repo.create_if_not_exists(
        client_id=client.id, line_item_id=address.id, period=PERIOD, amount_cents=9999
    )

    assert (created, created_again) == (True, False)
    assert again.id == first.id
    assert again.amount_cents == 4900
    assert first.status is ObligationStatus.PENDING


async def test_charge_sweep_and_guarded_payment(session: AsyncSession) -> None:
    client, address = await _client_with_items(session)
    repo = SqlAlchemyBillingChargesRepository(session)
    charge, _ = await repo.create_if_not_exists(
        client_id=client.id, line_item_id=address.id, period=PERIOD, amount_cents=4900
    )

    assert await repo.sweep_status(date(2025, 3, 1)) == 1
    assert (await repo.get(charge.id)).status is ObligationStatus.OVERDUE  # type: ignore[union-attr]

    paid_at = datetime(2025, 3, 2, tzinfo=UTC)
    paid = await repo.mark_paid(
        charge.id,
        paid_at=paid_at,
        paid_method=None,
        provider=PaymentProvider.MANUAL,
        provider_ref=None,
        notes=None,
    )
    assert paid is not None
    assert paid.status is ObligationStatus.PAID
    assert paid.paid_method == "Zelle"
    assert await repo.mark_canceled(charge.id, notes=None) is None
    assert await repo.sweep_status(date(2030, 1, 1)) == 0


async def test_charge_update_is_guarded_by_status(session: AsyncSession) -> None:
    client, address = await _client_with_items(session)
    repo = SqlAlchemyBillingChargesRepository(session)
    charge, _ = await repo.create_if_not_exists(
        client_id=client.id, line_item_id=address.id, period=PERIOD, amount_cents=4900
    )
    new_paid_at = datetime(2025, 3, 5, tzinfo=UTC)

    assert (
        await repo.update(charge.id, paid_at=new_paid_at, fields=frozenset({"paid_at"}))
    ) is None

    await repo.mark_paid(
        charge.id,
        paid_at=datetime(2025, 3, 2, tzinfo=UTC),
        paid_method="Wire",
        provider=PaymentProvider.MANUAL,
        provider_ref=None,
        notes=None,
    )

    assert (
        await repo.update(charge.id, amount_cents=1, fields=frozenset({"amount_cents"}))
    ) is None
    moved = await repo.update(charge.id, paid_at=new_paid_at, fields=frozenset({"paid_at"}))
    assert moved is not None
    assert (moved.amount_cents, moved.paid_at) == (4900, new_paid_at)


async def test_charge_listing_filters_and_context(session: AsyncSession) -> None:
    client, address = await _client_with_items(session)
    other, other_address = await _client_with_items(session, company="Beta LLC", state="DE")
    repo = SqlAlchemyBillingChargesRepository(session)
    await repo.create_if_not_exists(
        client_id=client.id, line_item_id=address.id, period=PERIOD, amount_cents=4900
    )
    await repo.create_if_not_exists(
        client_id=other.id, line_item_id=other_address.id, period=PERIOD, amount_cents=4900
    )

    by_state = await repo.list(ChargeListFilters(jurisdiction_code="WY"))
    by_query = await repo.list(ChargeListFilters(query="beta"))

    assert by_state.total == 1
    (item,) = by_state.items
    assert (item.company_name, item.jurisdiction_code) == ("Acme LLC", "WY")
    assert item.recurrence is Recurrence.MONTHLY
    assert item.address_line1 == "30 N Gould St"
    assert [i.company_name for i in by_query.items] == ["Beta LLC"]


async def test_annual_report_lifecycle(session: AsyncSession) -> None:
    client, _ = await _client_with_items(session)
    repo = SqlAlchemyAnnualReportObligationsRepository(session)

    row, created = await repo.create_if_not_exists(
        client_id=client.id,
        jurisdiction_code="WY",
        frequency=Recurrence.ANNUAL,
        period_year=2025,
        due_date=date(2025, 6, 1),
    )
    _, created_again = await repo.create_if_not_exists(
        client_id=client.id,
        jurisdiction_code="WY",
        frequency=Recurrence.ANNUAL,
        period_year=2025,
        due_date=date(2025, 7, 1),
    )
    assert (created, created_again) == (True, False)
    assert (row.period_start, row.period_end) == (date(2025, 1, 1), date(2026, 1, 1))

    assert await repo.correct_due_date(row.id, due_date=date(2025, 7, 1)) is True
    done = await repo.mark_done(row.id, done_at=datetime(2025, 6, 20, tzinfo=UTC), notes=None)
    assert done is not None and done.status is ObligationStatus.DONE
    assert await repo.correct_due_date(row.id, due_date=date(2025, 8, 1)) is False

    reopened = await repo.reopen(row.id, today=date(2025, 7, 2))
    assert reopened is not None
    assert (reopened.status, reopened.done_at, reopened.due_date) == (
        ObligationStatus.OVERDUE,
        None,
        date(2025, 7, 1),
    )

    page = await repo.list(AnnualReportListFilters(jurisdiction_code="wy", period_year=2025))
    assert [i.company_name for i in page.items] == ["Acme LLC"]
    summary = await repo.summary()
    assert (summary.pending, summary.overdue, summary.done) == (0, 1, 0)
    assert await repo.delete(row.id) is True
    assert await repo.get(row.id) is None
