"""Tests for the metrics data access layer and the dashboard service."""

from datetime import UTC, datetime
from zoneinfo import ZoneInfo

import pytest
from sqlalchemy.exc import SQLAlchemyError

from opsdash.models.orders import OrderStatus
from opsdash.queries.orders import (
    fetch_all_demand_limits,
    fetch_demand_limits,
    fetch_kpi_definitions,
    fetch_pendency_records,
    fetch_work_records,
    fetch_work_records_for_worker,
)
from opsdash.services.metrics.dashboard import MetricsDashboardService
from opsdash.services.metrics.errors import MetricsFetchError, MetricsValidationError
from opsdash.services.metrics.periods import resolve_period
from opsdash.services.metrics.policy import DemandLimits, MetricsConfig
from opsdash.services.metrics.records import WorkStatus

SAO_PAULO = ZoneInfo("America/Sao_Paulo")
NOW = datetime(2024, 5, 20, 15, 0, tzinfo=SAO_PAULO)


def _at(day, hour=0, month=5):
    return datetime(2024, month, day, hour, tzinfo=SAO_PAULO)


@pytest.fixture()
def may():
    return resolve_period("month", NOW, tz=SAO_PAULO)


@pytest.fixture()
def service():
    return MetricsDashboardService(MetricsConfig(timezone="America/Sao_Paulo"), max_workers=1)


# =============================================================================
# Fetch functions
# =============================================================================


class TestFetchWorkRecords:
    def test_orders_touching_the_window(self, db_session, order_factory, may):
        created = order_factory(order_number="created", created_at=_at(10, 9), deadline=_at(15))
        attributed = order_factory(
            order_number="attributed",
            created_at=_at(25, 9, month=4),
            attribution_date=_at(2, 9),
            deadline=_at(6),
        )
        order_factory(order_number="april", created_at=_at(1, 9, month=4), deadline=_at(5, month=4))

        records = fetch_work_records(db_session, may)

        assert {record.order_number for record in records} == {"created", "attributed"}
        by_number = {record.order_number: record for record in records}
        assert by_number["created"].id == str(created.id)
        assert by_number["attributed"].attributed_at == _at(2, 9)

    def test_stored_instants_come_back_aware(self, db_session, order_factory, may):
        order_factory(order_number="midnight", created_at=_at(1, 0), deadline=_at(3))

        records = fetch_work_records(db_session, may)

        assert records[0].created_at.tzinfo is not None
        assert records[0].created_at == _at(1, 0)
        assert may.contains(records[0].created_at)

    def test_order_number_defaults_to_id(self, db_session, order_factory, may):
        order = order_factory(created_at=_at(10, 9), deadline=_at(12))
        records = fetch_work_records(db_session, may)
        assert records[0].order_number == str(order.id)

    def test_pendencies_in_window(self, db_session, order_factory, pendency_factory, may):
        order = order_factory(created_at=_at(10, 9), deadline=_at(12))
        pendency_factory(error_type="apostila", created_at=_at(11, 10), order=order)
        pendency_factory(error_type="nao_e_erro", created_at=_at(30, 10, month=4))

        pendencies = fetch_pendency_records(db_session, may)

        assert [pendency.error_type for pendency in pendencies] == ["apostila"]
        assert pendencies[0].order_id == str(order.id)
        assert pendencies[0].status == "pending"

    def test_worker_history_only_tracked_statuses(self, db_session, order_factory, worker_id):
        other = "6f1c2b1e-0e55-4c57-9a3c-1d8e4f0a7b21"
        order_factory(assigned_to=worker_id, status=OrderStatus.delivered, delivered_at=_at(3, 10))
        order_factory(assigned_to=worker_id, status=OrderStatus.in_progress)
        order_factory(assigned_to=worker_id, status=OrderStatus.pending)
        order_factory(assigned_to=other, status=OrderStatus.delivered, delivered_at=_at(3, 10))

        records = fetch_work_records_for_worker(db_session, worker_id)

        assert sorted(record.status.value for record in records) == ["delivered", "in_progress"]
        assert {record.worker_id for record in records} == {worker_id}

    def test_invalid_worker_id(self, db_session):
        with pytest.raises(MetricsValidationError) as exc_info:
            fetch_work_records_for_worker(db_session, "not-a-uuid")
        assert exc_info.value.code == "invalid_worker_id"


class TestDemandLimitsAndKpis:
    def test_missing_limits_use_defaults(self, db_session, worker_id):
        assert fetch_demand_limits(db_session, worker_id, DemandLimits()) == DemandLimits()

    def test_partial_override(self, db_session, worker_id, demand_limit_factory):
        demand_limit_factory(worker_id, daily_limit=5, concurrent_order_limit=None)

        limits = fetch_demand_limits(db_session, worker_id, DemandLimits())

        assert limits == DemandLimits(daily_limit=5, concurrent_order_limit=2)
        assert fetch_all_demand_limits(db_session, DemandLimits()) == {worker_id: limits}

    def test_active_kpis_in_display_order(self, db_session, worker_id, kpi_factory):
        kpi_factory(worker_id, kpi_name="second", display_order=2)
        kpi_factory(worker_id, kpi_name="first", display_order=1)
        kpi_factory(worker_id, kpi_name="retired", display_order=0, is_active=False)

        definitions = fetch_kpi_definitions(db_session, worker_id)

        assert [definition.name for definition in definitions] == ["first", "second"]
        assert definitions[0].target_operator == "lte"


# =============================================================================
# Dashboard service
# =============================================================================


class _BrokenSession:
    def query(self, *args, **kwargs):
        raise SQLAlchemyError("database unavailable")


class TestMetricsDashboardService:
    def test_build_snapshot_from_database(self, db_session, order_factory, pendency_factory, worker_id, service):
        order = order_factory(
            assigned_to=worker_id,
            document_count=4,
            status=OrderStatus.delivered,
            created_at=_at(2, 9),
            attribution_date=_at(2, 10),
            delivered_at=_at(3, 10),
            deadline=_at(5),
        )
        order_factory(
            assigned_to=worker_id,
            document_count=2,
            status=OrderStatus.in_progress,
            created_at=_at(20, 8),
            attribution_date=_at(20, 9),
            deadline=_at(25),
        )
        pendency_factory(error_type="apostila", created_at=_at(4, 9), order=order)

        snapshot = service.build_snapshot(db_session, "month", now=NOW)

        assert snapshot.totals.total_documents == 6
        assert snapshot.totals.attributed_documents == 6
        assert snapshot.totals.pendencies == 1
        assert snapshot.document_total == 6
        assert [stats.worker_id for stats in snapshot.productivity] == [worker_id]
        assert snapshot.capacities[0].documents_today == 2

    def test_fetch_failure_is_wrapped(self, service):
        with pytest.raises(MetricsFetchError) as exc_info:
            service.build_snapshot(_BrokenSession(), "month", now=NOW)
        assert exc_info.value.retryable is True

    def test_worker_productivity(self, db_session, order_factory, worker_id, service):
        order_factory(
            assigned_to=worker_id,
            document_count=3,
            status=OrderStatus.delivered,
            created_at=_at(13, 7),
            attribution_date=_at(13, 8),
            delivered_at=_at(13, 10),
            deadline=_at(15),
        )

        stats = service.worker_productivity(db_session, worker_id, now=NOW)

        assert stats.total_documents == 3
        assert stats.total_hours_worked == 2.0
        assert stats.avg_minutes_per_document == 40.0

    def test_worker_kpis(self, db_session, order_factory, pendency_factory, kpi_factory, worker_id, service):
        order = order_factory(
            assigned_to=worker_id,
            document_count=10,
            status=OrderStatus.delivered,
            created_at=_at(6, 9),
            attribution_date=_at(6, 10),
            delivered_at=_at(7, 10),
            deadline=_at(9),
        )
        pendency_factory(error_type="apostila", created_at=_at(8, 9), order=order)
        kpi_factory(worker_id, kpi_name="errors", target_value=5.0)

        window, results = service.worker_kpis(db_session, worker_id, "month", now=NOW)

        assert window.start == _at(1)
        assert results[0].actual_value == 10.0
        assert results[0].within_target is False

    def test_worker_capacity(self, db_session, order_factory, demand_limit_factory, worker_id, service):
        demand_limit_factory(worker_id, daily_limit=3, concurrent_order_limit=5)
        order_factory(
            assigned_to=worker_id,
            document_count=2,
            status=OrderStatus.in_progress,
            created_at=_at(20, 8),
            attribution_date=_at(20, 9),
            deadline=_at(25),
        )

        capacity = service.worker_capacity(db_session, worker_id, order_document_count=2, now=NOW)

        assert capacity.daily_limit == 3
        assert capacity.documents_today == 2
        assert capacity.valid is False

    def test_serial_worker_fetch(self, db_session, order_factory, worker_id, service):
        order_factory(assigned_to=worker_id, status=OrderStatus.in_progress, attribution_date=datetime.now(UTC))
        records = service.fetch_worker_records(db_session, [worker_id, ""])
        assert list(records) == [worker_id]
        assert records[worker_id][0].status == WorkStatus.in_progress
