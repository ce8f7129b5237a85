"""Metrics dashboard service: fetch records, run the engine, return snapshots."""

from __future__ import annotations

import logging
from collections.abc import Callable, Hashable, Iterable
from concurrent.futures import ThreadPoolExecutor
from datetime import UTC, date, datetime
from typing import TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from opsdash.config import settings
from opsdash.db import open_session
from opsdash.queries.orders import (
    fetch_all_demand_limits,
    fetch_demand_limits,
    fetch_kpi_definitions,
    fetch_pendency_records,
    fetch_work_records,
    fetch_work_records_for_worker,
)
from opsdash.services.metrics.errors import MetricsFetchError
from opsdash.services.metrics.kpis import KpiResult, evaluate_kpis
from opsdash.services.metrics.limits import WorkerCapacity, evaluate_capacity
from opsdash.services.metrics.observability import SNAPSHOT_COMPUTATIONS, SNAPSHOT_COMPUTE_TIME
from opsdash.services.metrics.periods import PeriodSelector, PeriodWindow, resolve_period
from opsdash.services.metrics.policy import MetricsConfig
from opsdash.services.metrics.productivity import ProductivityStats, analyze_worker
from opsdash.services.metrics.snapshot import MetricsSnapshot, compute_snapshot
from opsdash.telemetry import get_tracer

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")

CustomRange = tuple[date | datetime | None, date | datetime | None]


def fan_out(fetch: Callable[[K], V], keys: Iterable[K], max_workers: int) -> dict[K, V]:
    """Run ``fetch`` for every key on a thread pool and join all of them.

    Every call finishes before this returns.  If any call raised, the first
    failure in submission order is re-raised.
    """
    keys = list(dict.fromkeys(keys))
    if not keys:
        return {}
    with ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(keys)))) as executor:
        futures = [(key, executor.submit(fetch, key)) for key in keys]
    return {key: future.result() for key, future in futures}


class MetricsDashboardService:
    """Loads records for a window and composes engine output.

    With ``max_workers`` above one, per-worker histories are fetched in
    parallel, each on its own session from ``session_factory``; otherwise they
    are read sequentially on the caller's session.
    """

    def __init__(
        self,
        config: MetricsConfig | None = None,
        *,
        session_factory: Callable[[], Session] = open_session,
        max_workers: int | None = None,
    ):
        self.config = config or MetricsConfig.from_settings(settings)
        self.session_factory = session_factory
        self.max_workers = settings.worker_fetch_concurrency if max_workers is None else max_workers

    def _now(self, now: datetime | None) -> datetime:
        return now or datetime.now(UTC)

    def resolve_window(
        self,
        selector: PeriodSelector | str | None,
        *,
        custom_range: CustomRange | None = None,
        now: datetime | None = None,
    ) -> PeriodWindow:
        return resolve_period(selector, self._now(now), custom_range=custom_range, tz=self.config.tzinfo)

    def _fetch_worker_records_isolated(self, worker_id: str):
        db = self.session_factory()
        try:
            return fetch_work_records_for_worker(db, worker_id)
        finally:
            db.close()

    def fetch_worker_records(self, db: Session, worker_ids: Iterable[str]) -> dict[str, list]:
        worker_ids = [worker_id for worker_id in worker_ids if worker_id]
        if self.max_workers <= 1:
            return {worker_id: fetch_work_records_for_worker(db, worker_id) for worker_id in worker_ids}
        return fan_out(self._fetch_worker_records_isolated, worker_ids, self.max_workers)

    def build_snapshot(
        self,
        db: Session,
        selector: PeriodSelector | str | None = None,
        *,
        custom_range: CustomRange | None = None,
        now: datetime | None = None,
    ) -> MetricsSnapshot:
        now = self._now(now)
        window = self.resolve_window(selector or settings.default_period, custom_range=custom_range, now=now)
        tracer = get_tracer(__name__)
        with tracer.start_as_current_span(
            "metrics.snapshot",
            attributes={"metrics.period": window.selector.value},
        ) as span, SNAPSHOT_COMPUTE_TIME.time():
            try:
                work_records = fetch_work_records(db, window)
                pendencies = fetch_pendency_records(db, window)
                worker_ids = sorted({record.worker_id for record in work_records if record.worker_id})
                worker_records = self.fetch_worker_records(db, worker_ids)
                worker_limits = fetch_all_demand_limits(db, self.config.demand_limits)
            except SQLAlchemyError as exc:
                logger.exception("metrics_snapshot_fetch_failed period=%s", window.selector.value)
                raise MetricsFetchError("metrics_fetch_failed", "Could not load metrics records") from exc

            snapshot = compute_snapshot(
                work_records,
                pendencies,
                now=now,
                selector=window.selector,
                custom_range=custom_range,
                worker_records=worker_records,
                worker_limits=worker_limits,
                config=self.config,
            )
            span.set_attribute("metrics.records", len(work_records))
            span.set_attribute("metrics.workers", len(worker_records))

        SNAPSHOT_COMPUTATIONS.labels(period=snapshot.selector.value).inc()
        logger.info(
            "metrics_snapshot_built period=%s records=%s pendencies=%s workers=%s",
            snapshot.selector.value,
            len(work_records),
            len(pendencies),
            len(worker_records),
        )
        return snapshot

    def worker_productivity(self, db: Session, worker_id: str, *, now: datetime | None = None) -> ProductivityStats:
        try:
            records = fetch_work_records_for_worker(db, worker_id)
        except SQLAlchemyError as exc:
            logger.exception("metrics_worker_fetch_failed worker_id=%s", worker_id)
            raise MetricsFetchError("metrics_fetch_failed", "Could not load worker records") from exc
        return analyze_worker(worker_id, records, now=self._now(now), config=self.config)

    def worker_kpis(
        self,
        db: Session,
        worker_id: str,
        selector: PeriodSelector | str | None = None,
        *,
        custom_range: CustomRange | None = None,
        now: datetime | None = None,
    ) -> tuple[PeriodWindow, tuple[KpiResult, ...]]:
        window = self.resolve_window(selector or settings.default_period, custom_range=custom_range, now=now)
        try:
            definitions = fetch_kpi_definitions(db, worker_id)
            work_records = fetch_work_records(db, window)
            pendencies = fetch_pendency_records(db, window)
        except SQLAlchemyError as exc:
            logger.exception("metrics_kpi_fetch_failed worker_id=%s", worker_id)
            raise MetricsFetchError("metrics_fetch_failed", "Could not load KPI inputs") from exc
        return window, evaluate_kpis(definitions, worker_id, work_records, pendencies, window)

    def worker_capacity(
        self,
        db: Session,
        worker_id: str,
        *,
        order_document_count: int = 0,
        now: datetime | None = None,
    ) -> WorkerCapacity:
        try:
            limits = fetch_demand_limits(db, worker_id, self.config.demand_limits)
            records = fetch_work_records_for_worker(db, worker_id)
        except SQLAlchemyError as exc:
            logger.exception("metrics_capacity_fetch_failed worker_id=%s", worker_id)
            raise MetricsFetchError("metrics_fetch_failed", "Could not load worker limits") from exc
        return evaluate_capacity(
            worker_id,
            records,
            limits,
            now=self._now(now),
            tz=self.config.tzinfo,
            order_document_count=order_document_count,
        )


metrics_dashboard = MetricsDashboardService()
