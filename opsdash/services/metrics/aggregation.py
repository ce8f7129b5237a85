"""Bucketed sums and window totals over work and pendency records.

Every aggregation pass keys records off one reference instant.  A record whose
reference instant is absent is simply not part of that pass; the same record can
still show up in other passes keyed off other instants.
"""

from __future__ import annotations

from bisect import bisect_right
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime

from opsdash.services.metrics.buckets import Bucket
from opsdash.services.metrics.periods import PeriodWindow
from opsdash.services.metrics.records import (
    PendencyRecord,
    ReferenceTimestamp,
    WorkRecord,
    WorkStatus,
)


@dataclass(frozen=True)
class BucketTotals:
    index: int
    label: str
    start: datetime
    end: datetime
    documents: int = 0
    urgent_documents: int = 0
    pendencies: int = 0
    cumulative_documents: int = 0
    pendency_goal: float = 0.0


@dataclass(frozen=True)
class OrderGroup:
    order_number: str
    record_ids: tuple[str, ...]
    document_count: int
    urgent_document_count: int
    worker_ids: tuple[str, ...]


@dataclass(frozen=True)
class OrderDetails:
    attributed: tuple[OrderGroup, ...] = ()
    in_progress: tuple[OrderGroup, ...] = ()
    delivered: tuple[OrderGroup, ...] = ()
    delayed: tuple[OrderGroup, ...] = ()


@dataclass(frozen=True)
class MetricTotals:
    total_documents: int = 0
    urgent_documents: int = 0
    attributed_documents: int = 0
    in_progress_documents: int = 0
    delivered_documents: int = 0
    delivered_on_time_documents: int = 0
    delayed_documents: int = 0
    pendencies: int = 0
    not_error_pendencies: int = 0
    real_error_pendencies: int = 0
    details: OrderDetails = field(default_factory=OrderDetails)


class BucketIndex:
    """Locates the bucket holding an instant with a binary search over starts."""

    def __init__(self, buckets: Sequence[Bucket]):
        self.buckets = tuple(buckets)
        self._starts = [bucket.start.astimezone(UTC) for bucket in self.buckets]
        self._ends = [bucket.end.astimezone(UTC) for bucket in self.buckets]

    def locate(self, instant: datetime | None) -> int | None:
        if instant is None or not self.buckets:
            return None
        point = instant.astimezone(UTC)
        position = bisect_right(self._starts, point) - 1
        if position < 0:
            return None
        if point < self._ends[position]:
            return position
        if self.buckets[position].closed and point == self._ends[position]:
            return position
        return None


def locate_bucket(buckets: Sequence[Bucket], instant: datetime | None) -> int | None:
    return BucketIndex(buckets).locate(instant)


def aggregate_series(
    buckets: Sequence[Bucket],
    work_records: Iterable[WorkRecord],
    pendencies: Iterable[PendencyRecord] = (),
    *,
    reference: ReferenceTimestamp = ReferenceTimestamp.attributed_at,
    pendency_goal_ratio: float = 0.05,
) -> tuple[BucketTotals, ...]:
    index = BucketIndex(buckets)
    documents = [0] * len(index.buckets)
    urgent = [0] * len(index.buckets)
    pendency_counts = [0] * len(index.buckets)

    for record in work_records:
        position = index.locate(record.instant(reference))
        if position is None:
            continue
        documents[position] += record.document_count
        urgent[position] += record.urgent_document_count

    for pendency in pendencies:
        position = index.locate(pendency.created_at)
        if position is None:
            continue
        pendency_counts[position] += 1

    series = []
    running = 0
    for position, bucket in enumerate(index.buckets):
        running += documents[position]
        series.append(
            BucketTotals(
                index=bucket.index,
                label=bucket.label,
                start=bucket.start,
                end=bucket.end,
                documents=documents[position],
                urgent_documents=urgent[position],
                pendencies=pendency_counts[position],
                cumulative_documents=running,
                pendency_goal=round(documents[position] * pendency_goal_ratio, 2),
            )
        )
    return tuple(series)


def group_by_order(records: Iterable[WorkRecord]) -> tuple[OrderGroup, ...]:
    """Merge records sharing an order number so detail lists show one row per order."""
    grouped: dict[str, list[WorkRecord]] = {}
    for record in records:
        grouped.setdefault(record.order_number, []).append(record)

    groups = []
    for order_number in sorted(grouped):
        members = grouped[order_number]
        workers = sorted({record.worker_id for record in members if record.worker_id})
        groups.append(
            OrderGroup(
                order_number=order_number,
                record_ids=tuple(record.id for record in members),
                document_count=sum(record.document_count for record in members),
                urgent_document_count=sum(record.urgent_document_count for record in members),
                worker_ids=tuple(workers),
            )
        )
    return tuple(groups)


def is_delayed(record: WorkRecord, now: datetime) -> bool:
    if record.delivered_at is not None:
        return record.delivered_at > record.deadline
    return record.status != WorkStatus.delivered and record.deadline < now


def _in_window(window: PeriodWindow, records: Iterable[WorkRecord], reference: ReferenceTimestamp) -> list[WorkRecord]:
    return [record for record in records if window.contains(record.instant(reference))]


def _documents(records: Iterable[WorkRecord]) -> int:
    return sum(record.document_count for record in records)


def compute_totals(
    window: PeriodWindow,
    work_records: Sequence[WorkRecord],
    pendencies: Sequence[PendencyRecord],
    *,
    now: datetime,
) -> MetricTotals:
    created = _in_window(window, work_records, ReferenceTimestamp.created_at)
    attributed = _in_window(window, work_records, ReferenceTimestamp.attributed_at)
    in_progress = [record for record in attributed if record.status == WorkStatus.in_progress]
    delivered = _in_window(window, work_records, ReferenceTimestamp.delivered_at)
    on_time = [record for record in delivered if record.delivered_at <= record.deadline]
    delayed = [
        record
        for record in _in_window(window, work_records, ReferenceTimestamp.deadline)
        if is_delayed(record, now)
    ]
    window_pendencies = [pendency for pendency in pendencies if window.contains(pendency.created_at)]
    real_errors = sum(1 for pendency in window_pendencies if pendency.is_real_error)

    return MetricTotals(
        total_documents=_documents(created),
        urgent_documents=sum(record.urgent_document_count for record in created),
        attributed_documents=_documents(attributed),
        in_progress_documents=_documents(in_progress),
        delivered_documents=_documents(delivered),
        delivered_on_time_documents=_documents(on_time),
        delayed_documents=_documents(delayed),
        pendencies=len(window_pendencies),
        not_error_pendencies=len(window_pendencies) - real_errors,
        real_error_pendencies=real_errors,
        details=OrderDetails(
            attributed=group_by_order(attributed),
            in_progress=group_by_order(in_progress),
            delivered=group_by_order(delivered),
            delayed=group_by_order(delayed),
        ),
    )
