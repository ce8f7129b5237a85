"""Data access for the metrics engine.

Query builders for orders, pendencies, demand limits and KPI definitions, plus
the fetch functions that map ORM rows onto the engine's record types.  Window
filters here are deliberately wide (inclusive on both ends); the engine applies
the exact membership rules.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, ClassVar

from sqlalchemy import or_

from opsdash.models.orders import CollaboratorKpi, Order, OrderStatus, Pendency, UserDocumentLimit
from opsdash.queries.base import BaseQuery, as_utc, coerce_uuid
from opsdash.services.metrics.errors import MetricsValidationError
from opsdash.services.metrics.kpis import KpiDefinition
from opsdash.services.metrics.limits import effective_limits
from opsdash.services.metrics.policy import DemandLimits
from opsdash.services.metrics.records import PendencyRecord, WorkRecord

if TYPE_CHECKING:
    import uuid
    from datetime import datetime

    from sqlalchemy.orm import Session

    from opsdash.services.metrics.periods import PeriodWindow


def worker_uuid(worker_id: str) -> uuid.UUID:
    try:
        return coerce_uuid(worker_id)
    except ValueError as exc:
        raise MetricsValidationError("invalid_worker_id", f"Invalid worker id: {worker_id}") from exc


class OrderQuery(BaseQuery[Order]):
    """Query builder for Order model.

    Usage:
        rows = (
            OrderQuery(db)
            .touching_window(window.start, window.end)
            .order_by("created_at")
            .all()
        )
    """

    model_class = Order
    ordering_fields: ClassVar[dict[str, Any]] = {
        "created_at": Order.created_at,
        "attribution_date": Order.attribution_date,
        "delivered_at": Order.delivered_at,
        "deadline": Order.deadline,
    }

    def touching_window(self, start: datetime, end: datetime) -> OrderQuery:
        """Orders with any lifecycle instant inside ``[start, end]``."""
        start, end = as_utc(start), as_utc(end)
        return self._filter(
            or_(
                Order.created_at.between(start, end),
                Order.attribution_date.between(start, end),
                Order.delivered_at.between(start, end),
                Order.deadline.between(start, end),
            )
        )

    def by_assignee(self, worker_id: str | None) -> OrderQuery:
        if not worker_id:
            return self
        return self._filter(Order.assigned_to == worker_uuid(worker_id))

    def by_statuses(self, statuses: list[OrderStatus]) -> OrderQuery:
        if not statuses:
            return self
        return self._filter(Order.status.in_(statuses))


class PendencyQuery(BaseQuery[Pendency]):
    model_class = Pendency
    ordering_fields: ClassVar[dict[str, Any]] = {"created_at": Pendency.created_at}

    def created_between(self, start: datetime, end: datetime) -> PendencyQuery:
        return self._filter(Pendency.created_at.between(as_utc(start), as_utc(end)))


class CollaboratorKpiQuery(BaseQuery[CollaboratorKpi]):
    model_class = CollaboratorKpi
    ordering_fields: ClassVar[dict[str, Any]] = {"display_order": CollaboratorKpi.display_order}

    def by_user(self, worker_id: str) -> CollaboratorKpiQuery:
        return self._filter(CollaboratorKpi.user_id == worker_uuid(worker_id))


# -----------------------------------------------------------------------------
# Row mapping
# -----------------------------------------------------------------------------


def to_work_record(row: Order) -> WorkRecord:
    return WorkRecord(
        id=str(row.id),
        order_number=row.order_number,
        worker_id=str(row.assigned_to) if row.assigned_to else None,
        document_count=row.document_count,
        urgent_document_count=row.urgent_document_count,
        status=row.status,
        created_at=row.created_at,
        attributed_at=row.attribution_date,
        delivered_at=row.delivered_at,
        deadline=row.deadline,
    )


def to_pendency_record(row: Pendency) -> PendencyRecord:
    return PendencyRecord(
        id=str(row.id),
        order_id=str(row.order_id) if row.order_id else None,
        error_type=row.error_type,
        created_at=row.created_at,
        status=row.status.value if row.status else "pending",
    )


def to_kpi_definition(row: CollaboratorKpi) -> KpiDefinition:
    return KpiDefinition(
        name=row.kpi_name,
        label=row.kpi_label,
        target_value=float(row.target_value or 0),
        target_operator=row.target_operator,
        calculation_type=row.calculation_type,
        unit=row.unit,
        manual_value=row.manual_value,
        display_order=row.display_order or 0,
    )


# -----------------------------------------------------------------------------
# Fetch operations
# -----------------------------------------------------------------------------


def fetch_work_records(db: Session, window: PeriodWindow) -> list[WorkRecord]:
    rows = OrderQuery(db).touching_window(window.start, window.end).order_by("created_at").all()
    return [to_work_record(row) for row in rows]


def fetch_pendency_records(db: Session, window: PeriodWindow) -> list[PendencyRecord]:
    rows = PendencyQuery(db).created_between(window.start, window.end).order_by("created_at").all()
    return [to_pendency_record(row) for row in rows]


def fetch_work_records_for_worker(db: Session, worker_id: str) -> list[WorkRecord]:
    rows = (
        OrderQuery(db)
        .by_assignee(worker_id)
        .by_statuses([OrderStatus.delivered, OrderStatus.in_progress])
        .order_by("delivered_at")
        .all()
    )
    return [to_work_record(row) for row in rows]


def fetch_demand_limits(db: Session, worker_id: str, defaults: DemandLimits) -> DemandLimits:
    row = db.query(UserDocumentLimit).filter(UserDocumentLimit.user_id == worker_uuid(worker_id)).first()
    if row is None:
        return defaults
    return effective_limits(row.daily_limit, row.concurrent_order_limit, defaults)


def fetch_all_demand_limits(db: Session, defaults: DemandLimits) -> dict[str, DemandLimits]:
    return {
        str(row.user_id): effective_limits(row.daily_limit, row.concurrent_order_limit, defaults)
        for row in db.query(UserDocumentLimit).all()
    }


def fetch_kpi_definitions(db: Session, worker_id: str) -> list[KpiDefinition]:
    rows = CollaboratorKpiQuery(db).by_user(worker_id).active_only().order_by("display_order").all()
    return [to_kpi_definition(row) for row in rows]
