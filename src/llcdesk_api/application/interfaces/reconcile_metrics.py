# src/llcdesk_api/application/interfaces/reconcile_metrics.py
# Copyright (c) LLCDesk.
# SPDX-License-Identifier: MIT
"""Application-level reconcile metrics interface.

Synopsis:
    Application-facing abstraction over the metrics backend used by the
    obligation reconcilers.

    This interface sits between:
        * Application use cases (charges and annual-report reconcilers), and
        * The Prometheus implementation in
          ``llcdesk_api.infrastructure.observability.metrics``.

Layer:
    application/interfaces
"""

from __future__ import annotations

from typing import Protocol

from llcdesk_api.domain.enums.billing import ObligationEngine


class ReconcileMetricsPort(Protocol):
    """Metrics sink for reconcile passes."""

    def record_run(self, engine: ObligationEngine, *, duration_s: float) -> None:
        """Record a completed reconcile pass and its wall-clock duration."""
        ...

    def record_obligations(self, engine: ObligationEngine, *, result: str, count: int) -> None:
        """Record obligations by result (``created``, ``corrected``, ``aged``)."""
        ...

    def record_subject_failure(self, engine: ObligationEngine, *, reason: str) -> None:
        """Record a subject whose Unit of Work was rolled back."""
        ...


class NullReconcileMetrics:
    """No-op metrics sink used when no backend is wired (tests, scripts)."""

    def record_run(self, engine: ObligationEngine, *, duration_s: float) -> None:
        return None

    def record_obligations(self, engine: ObligationEngine, *, result: str, count: int) -> None:
        return None

    def record_subject_failure(self, engine: ObligationEngine, *, reason: str) -> None:
        return None


__all__ = ["NullReconcileMetrics", "ReconcileMetricsPort"]
