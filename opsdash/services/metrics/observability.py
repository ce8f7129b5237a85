"""Prometheus metrics for snapshot computation."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

SNAPSHOT_COMPUTATIONS = Counter(
    "metrics_snapshot_computations_total",
    "Total metrics snapshots computed",
    ["period"],
)

SNAPSHOT_COMPUTE_TIME = Histogram(
    "metrics_snapshot_compute_seconds",
    "Time to fetch records and compute a metrics snapshot",
)

REFRESH_FAILURES = Counter(
    "metrics_refresh_failures_total",
    "Periodic refresh iterations that raised",
    ["driver"],  # driver: snapshot, quality_feed
)
