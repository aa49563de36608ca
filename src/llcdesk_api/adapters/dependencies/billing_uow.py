# src/llcdesk_api/adapters/dependencies/billing_uow.py
# Copyright (c) LLCDesk.
# SPDX-License-Identifier: MIT
"""Billing dependency wiring.

Purpose:
    Provide the SQLAlchemy-backed UnitOfWork, the Prometheus reconcile
    metrics sink and the configured reconcile windows to the billing
    routers.

Layer:
    adapters/dependencies
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from llcdesk_api.adapters.uow import SqlAlchemyUnitOfWork
from llcdesk_api.application.interfaces.reconcile_metrics import ReconcileMetricsPort
from llcdesk_api.config.settings import get_settings
from llcdesk_api.infrastructure.database.session import get_sessionmaker
from llcdesk_api.infrastructure.observability.metrics import PrometheusReconcileMetrics


@dataclass(frozen=True)
class ReconcileWindows:
    """Default forward windows for the two reconcilers."""

    charges_days: int
    annual_reports_months: int


def get_billing_uow() -> SqlAlchemyUnitOfWork:
    """Construct a UnitOfWork instance for billing use cases.

    Each call returns a new UoW bound to the global async_sessionmaker.
    """
    session_factory: async_sessionmaker[AsyncSession] = get_sessionmaker()
    return SqlAlchemyUnitOfWork(session_factory=session_factory)


def get_reconcile_metrics() -> ReconcileMetricsPort:
    """Return the Prometheus-backed reconcile metrics sink."""
    return PrometheusReconcileMetrics()


def get_reconcile_windows() -> ReconcileWindows:
    """Return the reconcile windows configured in settings."""
    settings = get_settings()
    return ReconcileWindows(
        charges_days=settings.billing_charges_window_days,
        annual_reports_months=settings.billing_annual_reports_window_months,
    )


__all__ = [
    "ReconcileWindows",
    "get_billing_uow",
    "get_reconcile_metrics",
    "get_reconcile_windows",
]
