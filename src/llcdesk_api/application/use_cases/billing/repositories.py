# src/llcdesk_api/application/use_cases/billing/repositories.py
# Copyright (c) LLCDesk.
# SPDX-License-Identifier: MIT
"""Repository resolution helpers for billing use cases.

Layer:
    application/use_cases/billing

Notes:
    A transaction may expose repositories as attributes (test doubles) or
    through ``get_repository(Protocol)`` (the SQLAlchemy UnitOfWork).
"""

from __future__ import annotations

from typing import Any, cast

from llcdesk_api.domain.interfaces.repositories.annual_report_obligations_repository import (
    AnnualReportObligationsRepository as AnnualReportObligationsRepositoryPort,
)
from llcdesk_api.domain.interfaces.repositories.billing_charges_repository import (
    BillingChargesRepository as BillingChargesRepositoryPort,
)
from llcdesk_api.domain.interfaces.repositories.billing_facts_repository import (
    BillingFactsRepository as BillingFactsRepositoryPort,
)


def get_facts_repo(tx: Any) -> BillingFactsRepositoryPort:
    if hasattr(tx, "facts_repo"):
        return cast(BillingFactsRepositoryPort, tx.facts_repo)
    repo_any = tx.get_repository(BillingFactsRepositoryPort)
    return cast(BillingFactsRepositoryPort, repo_any)


def get_charges_repo(tx: Any) -> BillingChargesRepositoryPort:
    if hasattr(tx, "charges_repo"):
        return cast(BillingChargesRepositoryPort, tx.charges_repo)
    repo_any = tx.get_repository(BillingChargesRepositoryPort)
    return cast(BillingChargesRepositoryPort, repo_any)


def get_annual_reports_repo(tx: Any) -> AnnualReportObligationsRepositoryPort:
    if hasattr(tx, "annual_reports_repo"):
        return cast(AnnualReportObligationsRepositoryPort, tx.annual_reports_repo)
    repo_any = tx.get_repository(AnnualReportObligationsRepositoryPort)
    return cast(AnnualReportObligationsRepositoryPort, repo_any)


__all__ = ["get_annual_reports_repo", "get_charges_repo", "get_facts_repo"]
