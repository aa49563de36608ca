from __future__ import annotations

from datetime import UTC, date, datetime
from uuid import uuid4

from fastapi.testclient import TestClient

from llcdesk_api.domain.entities.billing import (
    AnnualReportDiagnostics,
    ClientBillingFacts,
)
from llcdesk_api.domain.enums.billing import ObligationEngine, ObligationStatus, Recurrence

CHARGES = "/v1/billing/charges"
REPORTS = "/v1/billing/annual-reports"
FAR_FUTURE = date(2999, 1, 1)


# ---------------------------------------------------------------------------
# Charges
# ---------------------------------------------------------------------------


def test_list_charges_defaults_to_open_rows(client: TestClient, uow, metrics) -> None:
    pending = uow.charges_repo.add(due_date=FAR_FUTURE)
    uow.charges_repo.add(due_date=FAR_FUTURE, status=ObligationStatus.CANCELED)

    resp = client.get(CHARGES)

    assert resp.status_code == 200
    body = resp.json()
    assert (body["page"], body["page_size"], body["total"]) == (1, 20, 1)
    (item,) = body["items"]
    assert item["id"] == str(pending.id)
    assert item["status"] == "pending"
    assert item["company_name"] == "Acme LLC"
    assert [engine for engine, _ in metrics.runs] == [ObligationEngine.CHARGES]


def test_list_charges_status_all_and_paging(client: TestClient, uow) -> None:
    for _ in range(3):
        uow.charges_repo.add(due_date=FAR_FUTURE, status=ObligationStatus.PAID)

    resp = client.get(CHARGES, params={"status": "all", "limit": 2, "page": 2})

    body = resp.json()
    assert (body["total"], len(body["items"]), body["page_size"]) == (3, 1, 2)


def test_list_charges_ages_past_due_rows_first(client: TestClient, uow) -> None:
    late = uow.charges_repo.add(due_date=date(2020, 1, 1))
    uow.charges_repo.add(due_date=FAR_FUTURE)

    items = client.get(CHARGES).json()["items"]

    assert items[0]["id"] == str(late.id)
    assert items[0]["status"] == "overdue"


def test_list_charges_rejects_bad_filters(client: TestClient) -> None:
    for params in ({"status": "archived"}, {"recurrence": "weekly"}, {"state": "Atlantis"}):
        resp = client.get(CHARGES, params=params)
        assert resp.status_code == 400, params
        assert resp.json()["error"]["code"] == "OBLIGATION_VALIDATION_ERROR"


def test_error_envelope_carries_request_id(client: TestClient) -> None:
    resp = client.get(f"{CHARGES}/{uuid4()}", headers={"X-Request-ID": "req-123"})

    assert resp.status_code == 404
    assert resp.headers["X-Request-ID"] == "req-123"
    error = resp.json()["error"]
    assert error["code"] == "OBLIGATION_NOT_FOUND"
    assert error["http_status"] == 404
    assert error["trace_id"] == "req-123"


def test_malformed_id_is_a_validation_error(client: TestClient) -> None:
    resp = client.get(f"{CHARGES}/not-a-uuid")

    assert resp.status_code == 422
    assert resp.json()["error"]["code"] == "VALIDATION_ERROR"


def test_pay_then_pay_again_conflicts(client: TestClient, uow) -> None:
    charge = uow.charges_repo.add()

    first = client.post(
        f"{CHARGES}/{charge.id}/pay",
        json={"paid_method": "Zelle", "provider": "stripe", "provider_ref": "pi_1"},
    )
    second = client.post(f"{CHARGES}/{charge.id}/pay")

    assert first.status_code == 200
    data = first.json()["data"]
    assert (data["status"], data["paid_method"], data["provider"]) == ("paid", "Zelle", "stripe")
    assert data["paid_at"] is not None
    assert second.status_code == 409
    assert second.json()["error"]["code"] == "OBLIGATION_STATE_CONFLICT"


def test_pay_rejects_naive_timestamp(client: TestClient, uow) -> None:
    charge = uow.charges_repo.add()

    resp = client.post(f"{CHARGES}/{charge.id}/pay", json={"paid_at": "2025-02-01T10:00:00"})

    assert resp.status_code == 422


def test_cancel_and_reopen(client: TestClient, uow) -> None:
    charge = uow.charges_repo.add(due_date=FAR_FUTURE)

    canceled = client.post(f"{CHARGES}/{charge.id}/cancel", json={"notes": "paused"})
    reopened = client.post(f"{CHARGES}/{charge.id}/reopen")
    again = client.post(f"{CHARGES}/{charge.id}/reopen")

    assert canceled.json()["data"]["status"] == "canceled"
    assert canceled.json()["data"]["notes"] == "paused"
    assert reopened.json()["data"]["status"] == "pending"
    assert again.status_code == 400


def test_patch_charge_applies_sent_fields_only(client: TestClient, uow) -> None:
    charge = uow.charges_repo.add(notes="keep")

    resp = client.patch(f"{CHARGES}/{charge.id}", json={"amount_cents": 5900})
    cleared = client.patch(f"{CHARGES}/{charge.id}", json={"notes": None})

    assert resp.json()["data"]["amount_cents"] == 5900
    assert resp.json()["data"]["notes"] == "keep"
    assert cleared.json()["data"]["notes"] is None


def test_patch_paid_at_on_open_charge_is_rejected(client: TestClient, uow) -> None:
    charge = uow.charges_repo.add()

    resp = client.patch(
        f"{CHARGES}/{charge.id}",
        json={"paid_at": datetime(2025, 2, 1, tzinfo=UTC).isoformat()},
    )

    assert resp.status_code == 400


def test_delete_charge(client: TestClient, uow) -> None:
    charge = uow.charges_repo.add()

    resp = client.delete(f"{CHARGES}/{charge.id}")

    assert resp.status_code == 204
    assert resp.content == b""
    assert client.get(f"{CHARGES}/{charge.id}").status_code == 404


def test_charges_summary(client: TestClient, uow) -> None:
    uow.charges_repo.add(amount_cents=1000)
    uow.charges_repo.add(amount_cents=2500, status=ObligationStatus.OVERDUE)

    data = client.get(f"{CHARGES}/summary").json()["data"]

    assert (data["pending_count"], data["pending_total_cents"]) == (1, 1000)
    assert (data["overdue_count"], data["overdue_total_cents"]) == (1, 2500)


def test_reconcile_charges_endpoint(client: TestClient, uow) -> None:
    uow.facts_repo.charge_facts.append(
        ClientBillingFacts(
            client_id=uuid4(),
            source_id=uuid4(),
            recurrence=Recurrence.MONTHLY,
            anchor_date=date(2024, 1, 15),
            amount_cents=4900,
        )
    )

    resp = client.post(
        f"{CHARGES}/reconcile", params={"as_of": "2024-03-20", "window_days": 60}
    )

    assert resp.status_code == 200
    assert resp.json()["data"] == {
        "engine": "charges",
        "created": 2,
        "updated": 0,
        "subjects": 1,
        "failed_subjects": 0,
    }


# ---------------------------------------------------------------------------
# Annual reports
# ---------------------------------------------------------------------------


def test_list_annual_reports_filters_by_state_name(client: TestClient, uow) -> None:
    wyoming = uow.annual_reports_repo.add(due_date=FAR_FUTURE)
    uow.annual_reports_repo.add(jurisdiction_code="DE", due_date=FAR_FUTURE)

    body = client.get(REPORTS, params={"state": "Wyoming"}).json()

    assert body["total"] == 1
    item = body["items"][0]
    assert item["id"] == str(wyoming.id)
    assert item["jurisdiction_name"] == "Wyoming"
    assert item["frequency"] == "Annual"


def test_list_annual_reports_rejects_bad_filters(client: TestClient) -> None:
    for params in ({"frequency": "Monthly"}, {"state": "ZZ"}, {"status": "late"}):
        assert client.get(REPORTS, params=params).status_code == 400, params


def test_annual_report_done_and_reopen(client: TestClient, uow) -> None:
    report = uow.annual_reports_repo.add(due_date=FAR_FUTURE)

    done = client.post(f"{REPORTS}/{report.id}/done", json={"notes": "filed online"})
    repeat = client.post(f"{REPORTS}/{report.id}/done")
    reopened = client.post(f"{REPORTS}/{report.id}/reopen")

    assert done.status_code == 200
    assert done.json()["data"]["status"] == "done"
    assert done.json()["data"]["done_at"] is not None
    assert repeat.status_code == 409
    assert reopened.json()["data"]["status"] == "pending"
    assert reopened.json()["data"]["done_at"] is None


def test_annual_report_patch_and_delete(client: TestClient, uow) -> None:
    report = uow.annual_reports_repo.add()

    patched = client.patch(f"{REPORTS}/{report.id}", json={"due_date": "2025-08-15"})
    deleted = client.delete(f"{REPORTS}/{report.id}")

    assert patched.json()["data"]["due_date"] == "2025-08-15"
    assert deleted.status_code == 204
    assert client.get(f"{REPORTS}/{report.id}").status_code == 404


def test_annual_reports_summary_and_diagnostics(client: TestClient, uow) -> None:
    uow.annual_reports_repo.add()
    uow.annual_reports_repo.add(status=ObligationStatus.DONE)
    uow.facts_repo.diagnostics = AnnualReportDiagnostics(
        active_clients=10,
        llc_line_items=8,
        llc_line_items_with_state=7,
        jurisdictions_matched=6,
        jurisdictions_without_obligation=1,
        obligations_stored=2,
    )

    summary = client.get(f"{REPORTS}/summary").json()["data"]
    diagnostics = client.get(f"{REPORTS}/diagnostics").json()["data"]

    assert summary == {"pending": 1, "overdue": 0, "done": 1}
    assert diagnostics["active_clients"] == 10
    assert diagnostics["jurisdictions_without_obligation"] == 1


def test_reconcile_annual_reports_endpoint(client: TestClient, uow) -> None:
    uow.facts_repo.annual_report_facts.append(
        ClientBillingFacts(
            client_id=uuid4(),
            source_id=uuid4(),
            recurrence=Recurrence.ANNUAL,
            anchor_date=date(2020, 7, 20),
            jurisdiction_code="WY",
        )
    )

    resp = client.post(
        f"{REPORTS}/reconcile", params={"as_of": "2025-03-01", "window_months": 12}
    )

    data = resp.json()["data"]
    assert (data["engine"], data["created"], data["failed_subjects"]) == ("annual_reports", 2, 0)


# ---------------------------------------------------------------------------
# Sweep, metrics
# ---------------------------------------------------------------------------


def test_sweep_endpoint(client: TestClient, uow) -> None:
    uow.charges_repo.add(due_date=date(2025, 2, 1))
    uow.annual_reports_repo.add(due_date=date(2025, 7, 1))

    resp = client.post("/v1/billing/sweep", params={"as_of": "2025-03-01"})

    assert resp.status_code == 200
    assert resp.json()["data"] == {"charges": 1, "annual_reports": 0}


def test_metrics_exposes_reconcile_histogram(client: TestClient) -> None:
    resp = client.get("/metrics")

    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/plain")
    assert "llcdesk_reconcile_duration_seconds" in resp.text
