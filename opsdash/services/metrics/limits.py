"""Per-worker demand limits.

A worker may hold a bounded number of orders at once and take a bounded number
of documents per local day.  Limits are stored per worker; missing or
non-positive values fall back to the configured defaults.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta, tzinfo

from opsdash.services.metrics.periods import local_midnight
from opsdash.services.metrics.policy import DemandLimits
from opsdash.services.metrics.records import WorkRecord, WorkStatus, ensure_aware


@dataclass(frozen=True)
class WorkerCapacity:
    worker_id: str
    daily_limit: int
    concurrent_order_limit: int
    documents_today: int
    current_orders: int
    can_take_more: bool
    daily_limit_reached: bool
    valid: bool = True
    reason: str | None = None


def effective_limits(
    daily_limit: int | None,
    concurrent_order_limit: int | None,
    defaults: DemandLimits,
) -> DemandLimits:
    return DemandLimits(
        daily_limit=daily_limit or defaults.daily_limit,
        concurrent_order_limit=concurrent_order_limit or defaults.concurrent_order_limit,
    )


def documents_attributed_today(records: Iterable[WorkRecord], *, now: datetime, tz: tzinfo) -> int:
    today = ensure_aware(now).astimezone(tz).date()
    start = local_midnight(today, tz)
    end = local_midnight(today + timedelta(days=1), tz)
    return sum(
        record.document_count
        for record in records
        if record.attributed_at is not None and start <= record.attributed_at < end
    )


def evaluate_capacity(
    worker_id: str,
    records: Iterable[WorkRecord],
    limits: DemandLimits,
    *,
    now: datetime,
    tz: tzinfo,
    order_document_count: int = 0,
) -> WorkerCapacity:
    """Check whether ``worker_id`` may take another order right now.

    ``order_document_count`` is the size of the order being considered; with
    the default of zero only the concurrent limit and the already reached
    daily limit decide.
    """
    own = [record for record in records if record.worker_id == worker_id]
    documents_today = documents_attributed_today(own, now=now, tz=tz)
    current_orders = sum(1 for record in own if record.status == WorkStatus.in_progress)

    under_concurrent = current_orders < limits.concurrent_order_limit
    daily_limit_reached = documents_today >= limits.daily_limit

    valid, reason = True, None
    if not under_concurrent:
        valid = False
        reason = (
            f"{current_orders} order(s) already in progress; "
            f"finish one before taking another (limit {limits.concurrent_order_limit})."
        )
    elif documents_today + max(order_document_count, 0) > limits.daily_limit:
        valid = False
        reason = (
            f"{documents_today} document(s) taken today; an order with "
            f"{order_document_count} document(s) would exceed the daily limit of {limits.daily_limit}."
        )

    return WorkerCapacity(
        worker_id=worker_id,
        daily_limit=limits.daily_limit,
        concurrent_order_limit=limits.concurrent_order_limit,
        documents_today=documents_today,
        current_orders=current_orders,
        can_take_more=under_concurrent and not daily_limit_reached,
        daily_limit_reached=daily_limit_reached,
        valid=valid,
        reason=reason,
    )
