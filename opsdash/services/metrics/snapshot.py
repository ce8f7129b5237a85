"""One full engine run: records in, immutable ``MetricsSnapshot`` out."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import date, datetime

from opsdash.services.metrics.aggregation import (
    BucketTotals,
    MetricTotals,
    OrderDetails,
    aggregate_series,
    compute_totals,
)
from opsdash.services.metrics.buckets import plan_buckets
from opsdash.services.metrics.limits import WorkerCapacity, evaluate_capacity
from opsdash.services.metrics.periods import PeriodSelector, PeriodWindow, resolve_period
from opsdash.services.metrics.policy import DemandLimits, MetricsConfig
from opsdash.services.metrics.productivity import ProductivityStats, analyze_workers, group_by_worker
from opsdash.services.metrics.rates import PendencyTypeShare, RateSummary, compute_rates, pendency_type_breakdown
from opsdash.services.metrics.records import PendencyRecord, ReferenceTimestamp, WorkRecord, ensure_aware


@dataclass(frozen=True)
class MetricsSnapshot:
    window: PeriodWindow
    selector: PeriodSelector
    generated_at: datetime
    series: tuple[BucketTotals, ...]
    totals: MetricTotals
    rates: RateSummary
    pendency_types: tuple[PendencyTypeShare, ...]
    details: OrderDetails
    productivity: tuple[ProductivityStats, ...] = ()
    capacities: tuple[WorkerCapacity, ...] = ()

    @property
    def document_total(self) -> int:
        return sum(bucket.documents for bucket in self.series)


def compute_snapshot(
    work_records: Iterable[WorkRecord],
    pendencies: Iterable[PendencyRecord],
    *,
    now: datetime,
    selector: PeriodSelector | str | None,
    custom_range: tuple[date | datetime | None, date | datetime | None] | None = None,
    worker_records: Mapping[str, Sequence[WorkRecord]] | None = None,
    worker_limits: Mapping[str, DemandLimits] | None = None,
    config: MetricsConfig | None = None,
) -> MetricsSnapshot:
    """Resolve the window, bucket it and roll every figure up.

    ``worker_records`` carries the full per-worker history used for
    productivity; when omitted it is derived from ``work_records`` grouped by
    assignee.  Capacity uses ``worker_limits`` with the configured defaults
    for any worker not listed.
    """
    config = config or MetricsConfig()
    now = ensure_aware(now)
    records = tuple(work_records)
    window_pendencies = tuple(pendencies)

    window = resolve_period(selector, now, custom_range=custom_range, tz=config.tzinfo)
    buckets = plan_buckets(window, locale=config.locale)
    series = aggregate_series(
        buckets,
        records,
        window_pendencies,
        reference=ReferenceTimestamp.attributed_at,
        pendency_goal_ratio=config.pendency_goal_ratio,
    )
    totals = compute_totals(window, records, window_pendencies, now=now)

    per_worker = worker_records if worker_records is not None else group_by_worker(records)
    productivity = analyze_workers(per_worker, now=now, config=config)

    limits = worker_limits or {}
    capacities = tuple(
        evaluate_capacity(
            stats.worker_id,
            per_worker[stats.worker_id],
            limits.get(stats.worker_id, config.demand_limits),
            now=now,
            tz=config.tzinfo,
        )
        for stats in productivity
    )

    return MetricsSnapshot(
        window=window,
        selector=window.selector,
        generated_at=now,
        series=series,
        totals=totals,
        rates=compute_rates(totals),
        pendency_types=pendency_type_breakdown(
            pendency for pendency in window_pendencies if window.contains(pendency.created_at)
        ),
        details=totals.details,
        productivity=productivity,
        capacities=capacities,
    )
