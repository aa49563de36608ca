# src/llcdesk_api/infrastructure/observability/metrics.py
# Copyright (c) LLCDesk.
# SPDX-License-Identifier: MIT
"""Prometheus metrics utilities (registry-aware, hot-reload safe).

This module provides two categories of metrics accessors:

1) **Database operation metrics** used by every repository:
   ``db_operation_duration_seconds`` and ``db_errors_total``.

2) **Reconcile metrics** used by the billing engines (through
   :class:`PrometheusReconcileMetrics`, which satisfies the application
   ``ReconcileMetricsPort``).

Every accessor returns a collector bound to the **current**
``prometheus_client.REGISTRY``. The cache resets automatically when tests
swap the default registry, so there are no duplicate-registration errors.

All histograms use explicit buckets so ``_bucket/_count/_sum`` series appear
after the first ``observe(...)`` call.

Example:
    hist = get_db_operation_duration_seconds()
    hist.labels(operation="sweep_status", model="billing_charges", outcome="success").observe(0.01)
"""

from __future__ import annotations

import logging
import threading
from contextlib import suppress
from typing import Final

import prometheus_client as prom
from prometheus_client import Counter, Histogram

from llcdesk_api.domain.enums.billing import ObligationEngine

_log = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Common histogram buckets (seconds)
_BUCKETS: Final[tuple[float, ...]] = (
    0.005,
    0.010,
    0.025,
    0.050,
    0.100,
    0.250,
    0.500,
    1.000,
    2.500,
    5.000,
    10.000,
)

# Reconcile passes walk every client; they run longer than single queries.
_RECONCILE_BUCKETS: Final[tuple[float, ...]] = (
    0.050,
    0.100,
    0.250,
    0.500,
    1.000,
    2.500,
    5.000,
    10.000,
    30.000,
    60.000,
    120.000,
)

# Cache keyed by metric name within the currently-active registry.
_registry_id: int | None = None
_hist_cache: dict[str, Histogram] = {}
_counter_cache: dict[str, Counter] = {}
_lock = threading.RLock()


# ---------------------------------------------------------------------------
# Registry-handling primitives


def _active_registry_id() -> int:
    return id(prom.REGISTRY)


def _ensure_registry() -> None:
    """Reset caches if the active registry changed."""
    global _registry_id
    with _lock:
        rid = _active_registry_id()
        if _registry_id is None or _registry_id != rid:
            _hist_cache.clear()
            _counter_cache.clear()
            _registry_id = rid


def _lookup_existing_hist(name: str) -> Histogram | None:
    with _lock, suppress(Exception):
        mapping = getattr(prom.REGISTRY, "_names_to_collectors", None)
        if isinstance(mapping, dict):
            col = mapping.get(name)
            if isinstance(col, Histogram):
                return col
    return None


def _lookup_existing_counter(name: str) -> Counter | None:
    with _lock, suppress(Exception):
        mapping = getattr(prom.REGISTRY, "_names_to_collectors", None)
        if isinstance(mapping, dict):
            # Counters register under both ``name`` and ``name_total``.
            col = mapping.get(name) or mapping.get(f"{name}_total")
            if isinstance(col, Counter):
                return col
    return None


# ---------------------------------------------------------------------------
# Get-or-create helpers


def _get_or_create_hist(
    name: str,
    help_text: str,
    *,
    buckets: tuple[float, ...] = _BUCKETS,
    labelnames: tuple[str, ...] = (),
) -> Histogram:
    """Get or create a registry-bound ``Histogram`` with stable identity.

    Strategy:
    1. Return from module cache if present for the active registry.
    2. If the registry already has a collector by this name, reuse it.
    3. Otherwise, register a new collector on the active registry.
    4. If concurrent registration triggers a duplication error, retry step 2.

    Args:
        name: Metric name (snake_case).
        help_text: Human-readable description.
        buckets: Histogram buckets in seconds.
        labelnames: Optional label names tuple.

    Returns:
        Histogram: Bound to ``prom.REGISTRY``.
    """
    _ensure_registry()
    with _lock:
        cached = _hist_cache.get(name)
        if isinstance(cached, Histogram):
            return cached

        existing = _lookup_existing_hist(name)
        if isinstance(existing, Histogram):
            _hist_cache[name] = existing
            return existing

        try:
            h = Histogram(
                name,
                help_text,
                labelnames or (),
                buckets=buckets,
                registry=prom.REGISTRY,
            )
            _hist_cache[name] = h
            return h
        except ValueError as exc:
            if "Duplicated timeseries" in str(exc):
                again = _lookup_existing_hist(name)
                if isinstance(again, Histogram):
                    _hist_cache[name] = again
                    return again
            _log.exception("Failed to register Prometheus histogram %s", name)
            raise


def _get_or_create_counter(
    name: str,
    help_text: str,
    *,
    labelnames: tuple[str, ...] = (),
) -> Counter:
    """Get or create a registry-bound ``Counter`` with stable identity.

    Args:
        name: Metric name (snake_case, without the ``_total`` suffix).
        help_text: Human-readable description.
        labelnames: Optional label names tuple.

    Returns:
        Counter: Bound to ``prom.REGISTRY``.
    """
    _ensure_registry()
    with _lock:
        cached = _counter_cache.get(name)
        if isinstance(cached, Counter):
            return cached

        existing = _lookup_existing_counter(name)
        if isinstance(existing, Counter):
            _counter_cache[name] = existing
            return existing

        try:
            c = Counter(
                name,
                help_text,
                labelnames or (),
                registry=prom.REGISTRY,
            )
            _counter_cache[name] = c
            return c
        except ValueError as exc:
            if "Duplicated timeseries" in str(exc):
                again = _lookup_existing_counter(name)
                if isinstance(again, Counter):
                    _counter_cache[name] = again
                    return again
            _log.exception("Failed to register Prometheus counter %s", name)
            raise


# ---------------------------------------------------------------------------
# Database metrics


def get_db_operation_duration_seconds() -> Histogram:
    """Return histogram for DB operation latency.

    Labels:
        operation: Logical operation name (e.g. ``create_if_not_exists``).
        model: Logical model/table name (e.g. ``billing_charges``).
        outcome: ``success`` or ``error``.
    """
    return _get_or_create_hist(
        name="db_operation_duration_seconds",
        help_text="Latency (seconds) of database operations.",
        labelnames=("operation", "model", "outcome"),
    )


def get_db_errors_total() -> Counter:
    """Return counter for DB errors.

    Labels:
        operation: Logical operation name.
        model: Logical model/table name.
        reason: Error class or short reason.
    """
    return _get_or_create_counter(
        name="db_errors_total",
        help_text="Total database errors by operation/model.",
        labelnames=("operation", "model", "reason"),
    )


# ---------------------------------------------------------------------------
# Reconcile metrics


def get_reconcile_runs_total() -> Counter:
    """Return counter for completed reconcile passes.

    Labels:
        engine: ``charges`` or ``annual_reports``.
    """
    return _get_or_create_counter(
        name="llcdesk_reconcile_runs_total",
        help_text="Completed reconcile passes by engine.",
        labelnames=("engine",),
    )


def get_reconcile_obligations_total() -> Counter:
    """Return counter for obligations touched by reconcile passes.

    Labels:
        engine: ``charges`` or ``annual_reports``.
        result: ``created``, ``corrected`` or ``aged``.
    """
    return _get_or_create_counter(
        name="llcdesk_reconcile_obligations_total",
        help_text="Obligations created, corrected or aged by reconcile passes.",
        labelnames=("engine", "result"),
    )


def get_reconcile_subject_failures_total() -> Counter:
    """Return counter for subjects rolled back during a reconcile pass.

    Labels:
        engine: ``charges`` or ``annual_reports``.
        reason: Exception class name.
    """
    return _get_or_create_counter(
        name="llcdesk_reconcile_subject_failures_total",
        help_text="Subjects whose reconcile Unit of Work was rolled back.",
        labelnames=("engine", "reason"),
    )


def get_reconcile_duration_seconds() -> Histogram:
    """Return histogram for reconcile pass duration.

    Labels:
        engine: ``charges`` or ``annual_reports``.
    """
    return _get_or_create_hist(
        name="llcdesk_reconcile_duration_seconds",
        help_text="Wall-clock duration (seconds) of reconcile passes.",
        buckets=_RECONCILE_BUCKETS,
        labelnames=("engine",),
    )


class PrometheusReconcileMetrics:
    """Prometheus-backed implementation of the reconcile metrics port."""

    def record_run(self, engine: ObligationEngine, *, duration_s: float) -> None:
        get_reconcile_runs_total().labels(engine=engine.value).inc()
        get_reconcile_duration_seconds().labels(engine=engine.value).observe(duration_s)

    def record_obligations(self, engine: ObligationEngine, *, result: str, count: int) -> None:
        if count > 0:
            get_reconcile_obligations_total().labels(engine=engine.value, result=result).inc(
                count
            )

    def record_subject_failure(self, engine: ObligationEngine, *, reason: str) -> None:
        get_reconcile_subject_failures_total().labels(engine=engine.value, reason=reason).inc()


__all__ = [
    "PrometheusReconcileMetrics",
    "get_db_errors_total",
    "get_db_operation_duration_seconds",
    "get_reconcile_duration_seconds",
    "get_reconcile_obligations_total",
    "get_reconcile_runs_total",
    "get_reconcile_subject_failures_total",
]
