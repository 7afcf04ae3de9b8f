"""Prometheus metrics for the audio analysis engine.

Labels carry the analysis kind so dashboards show which analyzers are slow or
failing, not just totals.

Metrics:
    analysis_requests_total{kind,status}    Counter; status is hit, miss or error
    analysis_latency_seconds{kind}          Histogram of analyzer wall-clock time
    analysis_cache_invalidations_total      Buffers replaced (whole-cache drops)
    stl_exports_total{kind}                 STL files written

Usage::

    from infrastructure.metrics import LatencyTimer, record_analysis

    with LatencyTimer() as t:
        result = run_analysis(kind, buffer)
    record_analysis(kind="beats", status="miss", latency_seconds=t.elapsed)
"""

from __future__ import annotations

import logging
import time

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

logger = logging.getLogger(__name__)

REQUEST_STATUSES: frozenset[str] = frozenset({"hit", "miss", "error"})

REGISTRY = CollectorRegistry()

analysis_requests_total = Counter(
    "analysis_requests_total",
    "Analysis requests by kind and cache status",
    ["kind", "status"],
    registry=REGISTRY,
)

analysis_latency_seconds = Histogram(
    "analysis_latency_seconds",
    "Analyzer computation time in seconds",
    ["kind"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
    registry=REGISTRY,
)

analysis_cache_invalidations_total = Counter(
    "analysis_cache_invalidations_total",
    "Times the result cache was dropped because a new buffer was loaded",
    registry=REGISTRY,
)

stl_exports_total = Counter(
    "stl_exports_total",
    "STL files written by kind",
    ["kind"],
    registry=REGISTRY,
)


# ---------------------------------------------------------------------------
# Public helpers
# ---------------------------------------------------------------------------


def record_analysis(*, kind: str, status: str, latency_seconds: float | None = None) -> None:
    """Record one analysis request.

    Args:
        kind: Analysis kind tag, e.g. "beats".
        status: One of "hit", "miss", "error".
        latency_seconds: Computation time; only observed for computed results.
    """
    if status not in REQUEST_STATUSES:
        raise ValueError(f"Unknown status {status!r}, valid: {sorted(REQUEST_STATUSES)}")
    analysis_requests_total.labels(kind=kind, status=status).inc()
    if latency_seconds is not None:
        analysis_latency_seconds.labels(kind=kind).observe(latency_seconds)


def record_cache_invalidation() -> None:
    """Increment the whole-cache invalidation counter."""
    analysis_cache_invalidations_total.inc()


def record_stl_export(kind: str) -> None:
    """Increment the STL export counter for ``kind``."""
    stl_exports_total.labels(kind=kind).inc()


def render_metrics() -> tuple[bytes, str]:
    """Generate Prometheus text exposition format.

    Returns:
        Tuple of (body_bytes, content_type_string).
    """
    return generate_latest(REGISTRY), CONTENT_TYPE_LATEST


class LatencyTimer:
    """Context manager for measuring latency.

    Usage::

        with LatencyTimer() as t:
            result = analyze_spectral(buffer)
        record_analysis(kind="spectral", status="miss", latency_seconds=t.elapsed)
    """

    def __init__(self) -> None:
        """Initialize timer."""
        self._start: float = 0.0
        self.elapsed: float = 0.0

    def __enter__(self) -> LatencyTimer:
        """Start timing."""
        self._start = time.perf_counter()
        return self

    def __exit__(self, *_: object) -> None:
        """Stop timing and record elapsed."""
        self.elapsed = time.perf_counter() - self._start
