"""Prometheus metrics for signing and verification.

All metrics use the ``s3sigv4_`` prefix. Nothing is registered in the global
prometheus_client registry until :func:`init_metrics` is called, and the
``record_*`` helpers are no-ops before that.
"""

from __future__ import annotations

from prometheus_client import Counter

_initialized: bool = False

# ---------------------------------------------------------------------------
# Signature counter  (labels: operation, status)
# ---------------------------------------------------------------------------
signatures_total: Counter | None = None

# ---------------------------------------------------------------------------
# Bytes hashed for payload signatures
# ---------------------------------------------------------------------------
payload_bytes_total: Counter | None = None


def init_metrics() -> None:
    """Create and register all Prometheus metrics. Safe to call twice."""
    global _initialized, signatures_total, payload_bytes_total

    if _initialized:
        return

    signatures_total = Counter(
        "s3sigv4_signatures_total",
        "Signatures computed or checked, by operation and outcome",
        ["operation", "status"],
    )

    payload_bytes_total = Counter(
        "s3sigv4_payload_bytes_total",
        "Total request body bytes hashed for signing",
    )

    _initialized = True


def record_signature(operation: str, status: str = "ok") -> None:
    if signatures_total is not None:
        signatures_total.labels(operation=operation, status=status).inc()


def record_payload(size: int) -> None:
    if payload_bytes_total is not None:
        payload_bytes_total.inc(size)
