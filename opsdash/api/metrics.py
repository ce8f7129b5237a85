from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from opsdash.api.deps import get_dashboard_service, get_db, get_refresher
from opsdash.schemas.metrics import (
    ChartPointRead,
    ChartSeriesRead,
    IndicatorListRead,
    IndicatorRead,
    KpiReportRead,
    KpiResultRead,
    MetricsSnapshotRead,
    PeriodWindowRead,
    ProductivityStatsRead,
    QualityScoresRead,
    WorkerCapacityRead,
)
from opsdash.services.metrics.dashboard import MetricsDashboardService
from opsdash.services.metrics.errors import MetricsError, MetricsNotFoundError, as_http_exception
from opsdash.services.metrics.export import chart_series, indicator_list, period_label
from opsdash.services.metrics.refresh import SnapshotRefresher
from opsdash.services.metrics.snapshot import MetricsSnapshot

router = APIRouter(prefix="/analytics", tags=["analytics"])


def _custom_range(date_from: date | None, date_to: date | None) -> tuple[date | None, date | None] | None:
    if date_from is None and date_to is None:
        return None
    return date_from, date_to


def _snapshot(
    service: MetricsDashboardService,
    db: Session,
    period: str | None,
    date_from: date | None,
    date_to: date | None,
) -> MetricsSnapshot:
    try:
        return service.build_snapshot(db, period, custom_range=_custom_range(date_from, date_to))
    except MetricsError as exc:
        raise as_http_exception(exc) from exc


@router.get("/dashboard", response_model=MetricsSnapshotRead)
def dashboard_snapshot(
    period: str | None = Query(None),
    date_from: date | None = Query(None),
    date_to: date | None = Query(None),
    db: Session = Depends(get_db),
    service: MetricsDashboardService = Depends(get_dashboard_service),
):
    snapshot = _snapshot(service, db, period, date_from, date_to)
    return MetricsSnapshotRead.model_validate(snapshot)


@router.get("/dashboard/latest", response_model=MetricsSnapshotRead)
def latest_snapshot(refresher: SnapshotRefresher = Depends(get_refresher)):
    if refresher.latest is None:
        raise as_http_exception(MetricsNotFoundError("snapshot_not_ready", "No snapshot computed yet"))
    return MetricsSnapshotRead.model_validate(refresher.latest)


@router.get("/dashboard/indicators", response_model=IndicatorListRead)
def dashboard_indicators(
    period: str | None = Query(None),
    date_from: date | None = Query(None),
    date_to: date | None = Query(None),
    locale: str | None = Query(None),
    db: Session = Depends(get_db),
    service: MetricsDashboardService = Depends(get_dashboard_service),
):
    snapshot = _snapshot(service, db, period, date_from, date_to)
    locale = locale or service.config.locale
    return IndicatorListRead(
        period_label=period_label(snapshot.selector, locale),
        window=PeriodWindowRead.model_validate(snapshot.window),
        indicators=[IndicatorRead(label=label, value=value) for label, value in indicator_list(snapshot, locale)],
    )


@router.get("/dashboard/chart", response_model=ChartSeriesRead)
def dashboard_chart(
    period: str | None = Query(None),
    date_from: date | None = Query(None),
    date_to: date | None = Query(None),
    db: Session = Depends(get_db),
    service: MetricsDashboardService = Depends(get_dashboard_service),
):
    snapshot = _snapshot(service, db, period, date_from, date_to)
    return ChartSeriesRead(
        period_label=period_label(snapshot.selector, service.config.locale),
        points=[ChartPointRead(label=label, value=value) for label, value in chart_series(snapshot)],
    )


@router.get("/productivity/{worker_id}", response_model=ProductivityStatsRead)
def worker_productivity(
    worker_id: str,
    db: Session = Depends(get_db),
    service: MetricsDashboardService = Depends(get_dashboard_service),
):
    try:
        stats = service.worker_productivity(db, worker_id)
    except MetricsError as exc:
        raise as_http_exception(exc) from exc
    return ProductivityStatsRead.model_validate(stats)


@router.get("/kpis/{worker_id}", response_model=KpiReportRead)
def worker_kpis(
    worker_id: str,
    period: str | None = Query(None),
    date_from: date | None = Query(None),
    date_to: date | None = Query(None),
    db: Session = Depends(get_db),
    service: MetricsDashboardService = Depends(get_dashboard_service),
):
    try:
        window, results = service.worker_kpis(
            db, worker_id, period, custom_range=_custom_range(date_from, date_to)
        )
    except MetricsError as exc:
        raise as_http_exception(exc) from exc
    return KpiReportRead(
        worker_id=worker_id,
        window=PeriodWindowRead.model_validate(window),
        results=[KpiResultRead.model_validate(result) for result in results],
    )


@router.get("/capacity/{worker_id}", response_model=WorkerCapacityRead)
def worker_capacity(
    worker_id: str,
    document_count: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    service: MetricsDashboardService = Depends(get_dashboard_service),
):
    try:
        capacity = service.worker_capacity(db, worker_id, order_document_count=document_count)
    except MetricsError as exc:
        raise as_http_exception(exc) from exc
    return WorkerCapacityRead.model_validate(capacity)


@router.get("/quality-scores", response_model=QualityScoresRead)
def quality_scores(refresher: SnapshotRefresher = Depends(get_refresher)):
    if refresher.quality_scores is None or refresher.quality_fetched_at is None:
        raise as_http_exception(MetricsNotFoundError("quality_scores_not_ready", "Quality scores not available"))
    return QualityScoresRead(fetched_at=refresher.quality_fetched_at, scores=refresher.quality_scores)
