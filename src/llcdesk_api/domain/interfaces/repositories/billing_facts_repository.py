# src/llcdesk_api/domain/interfaces/repositories/billing_facts_repository.py
# Copyright (c) LLCDesk.
# SPDX-License-Identifier: MIT
"""Billing facts repository interface.

Purpose:
    Read-only access to the client / line-item data the reconcilers derive
    their inputs from. The client and line-item tables are owned by the
    back-office CRUD layer; this port only reads them.

Layer:
    domain/interfaces/repositories

Notes:
    Implementations live in adapters/infrastructure and must satisfy these
    Protocols via structural typing.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from llcdesk_api.domain.entities.billing import AnnualReportDiagnostics, ClientBillingFacts


class BillingFactsRepository(Protocol):
    """Domain-level contract for deriving per-subject billing facts.

    Implementations are responsible for:

    * Ignoring soft-deleted clients.
    * Picking the single most recent qualifying line item per client,
      ordered by sale date desc, then creation time desc.
    * Normalizing line-item kinds, recurrence labels and jurisdictions.
    """

    async def list_charge_facts(self) -> Sequence[ClientBillingFacts]:
        """Return charges facts for every eligible client.

        A client is eligible when it has an Address line item with a billing
        period, a positive value and a sale date.
        """
        ...

    async def list_annual_report_facts(self) -> Sequence[ClientBillingFacts]:
        """Return annual-report facts for every client with a jurisdiction.

        The recurrence is the jurisdiction rule's frequency (``NONE`` when the
        jurisdiction has no rule); the anchor is the LLC sale date, falling
        back to the client's creation date.
        """
        ...

    async def annual_report_diagnostics(self) -> AnnualReportDiagnostics:
        """Return counters explaining the annual-report engine's inputs."""
        ...
