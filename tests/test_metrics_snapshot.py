"""Tests for full snapshot computation and the flat export views."""

import dataclasses
from datetime import datetime
from zoneinfo import ZoneInfo

import pytest

from opsdash.services.metrics.export import chart_series, indicator_list, period_label, top_performers
from opsdash.services.metrics.periods import PeriodSelector
from opsdash.services.metrics.policy import DemandLimits, MetricsConfig
from opsdash.services.metrics.records import PendencyRecord, WorkRecord, WorkStatus
from opsdash.services.metrics.snapshot import compute_snapshot

SAO_PAULO = ZoneInfo("America/Sao_Paulo")
NOW = datetime(2024, 5, 20, 15, 0, tzinfo=SAO_PAULO)
CONFIG = MetricsConfig(timezone="America/Sao_Paulo")


def _at(day, hour=0, month=5):
    return datetime(2024, month, day, hour, tzinfo=SAO_PAULO)


@pytest.fixture()
def records():
    return [
        WorkRecord(
            id="o1",
            worker_id="ana",
            document_count=4,
            urgent_document_count=1,
            status=WorkStatus.delivered,
            created_at=_at(2, 9),
            attributed_at=_at(2, 10),
            delivered_at=_at(3, 11),
            deadline=_at(5),
        ),
        WorkRecord(
            id="o2",
            worker_id="ana",
            document_count=2,
            status=WorkStatus.in_progress,
            created_at=_at(20, 8),
            attributed_at=_at(20, 9),
            deadline=_at(25),
        ),
        WorkRecord(
            id="o3",
            worker_id="bia",
            document_count=7,
            status=WorkStatus.delivered,
            created_at=_at(10, 8),
            attributed_at=_at(10, 9),
            delivered_at=_at(11, 17),
            deadline=_at(12),
        ),
        WorkRecord(
            id="o4",
            document_count=3,
            created_at=_at(18, 8),
            deadline=_at(28),
        ),
    ]


@pytest.fixture()
def pendencies():
    return [
        PendencyRecord(id="p1", error_type="nao_e_erro", created_at=_at(4, 12), order_id="o1"),
        PendencyRecord(id="p2", error_type="apostila", created_at=_at(12, 12), order_id="o3"),
    ]


def _snapshot(records, pendencies, selector="month", **kwargs):
    return compute_snapshot(records, pendencies, now=NOW, selector=selector, config=CONFIG, **kwargs)


# =============================================================================
# Snapshot
# =============================================================================


class TestComputeSnapshot:
    def test_same_inputs_give_equal_snapshots(self, records, pendencies):
        assert _snapshot(records, pendencies) == _snapshot(records, pendencies)

    def test_snapshot_is_frozen(self, records, pendencies):
        snapshot = _snapshot(records, pendencies)
        with pytest.raises(dataclasses.FrozenInstanceError):
            snapshot.totals = None

    def test_series_covers_month_and_sums_attributed_documents(self, records, pendencies):
        snapshot = _snapshot(records, pendencies)

        assert snapshot.selector == PeriodSelector.month
        assert len(snapshot.series) == 31
        assert snapshot.document_total == 13
        assert snapshot.series[1].documents == 4
        assert snapshot.series[-1].documents == 0

    def test_totals_and_rates(self, records, pendencies):
        snapshot = _snapshot(records, pendencies)

        assert snapshot.totals.total_documents == 16
        assert snapshot.totals.attributed_documents == 13
        assert snapshot.totals.in_progress_documents == 2
        assert snapshot.totals.delivered_documents == 11
        assert snapshot.totals.pendencies == 2
        assert snapshot.rates.pendency_rate == 12.5
        assert snapshot.rates.real_error_rate == pytest.approx(7.7)
        assert [share.error_type for share in snapshot.pendency_types] == ["apostila", "nao_e_erro"]

    def test_productivity_and_capacity_per_worker(self, records, pendencies):
        snapshot = _snapshot(records, pendencies, worker_limits={"bia": DemandLimits(daily_limit=20)})

        assert [stats.worker_id for stats in snapshot.productivity] == ["bia", "ana"]
        capacities = {capacity.worker_id: capacity for capacity in snapshot.capacities}
        assert capacities["ana"].documents_today == 2
        assert capacities["ana"].current_orders == 1
        assert capacities["ana"].daily_limit == 10
        assert capacities["bia"].daily_limit == 20

    def test_explicit_worker_histories_are_used(self, records, pendencies):
        history = {
            "ana": [
                WorkRecord(
                    id="old",
                    worker_id="ana",
                    document_count=50,
                    status=WorkStatus.delivered,
                    attributed_at=_at(1, 9, month=1),
                    delivered_at=_at(1, 10, month=1),
                    deadline=_at(2, month=1),
                )
            ]
        }

        snapshot = _snapshot(records, pendencies, worker_records=history)

        assert [stats.worker_id for stats in snapshot.productivity] == ["ana"]
        assert snapshot.productivity[0].total_documents == 50

    def test_empty_inputs(self):
        snapshot = _snapshot([], [])
        assert snapshot.document_total == 0
        assert snapshot.productivity == ()
        assert snapshot.capacities == ()
        assert snapshot.pendency_types == ()


# =============================================================================
# Export views
# =============================================================================


def test_indicator_list_in_report_order(records, pendencies):
    indicators = indicator_list(_snapshot(records, pendencies))

    assert len(indicators) == 13
    assert indicators[0] == ("Total Documents", "16")
    labels = [label for label, _ in indicators]
    assert labels.index("Pendencies") < labels.index("Delayed Documents")
    assert all(value.endswith("%") for _, value in indicators[7:])
    assert dict(indicators)["Pendency Rate"] == "12.5%"


def test_period_label_locale_and_fallback():
    assert period_label("day", "pt_BR") == "Hoje"
    assert period_label("month") == "This Month"
    assert period_label("fortnight") == "This Month"
    assert period_label(PeriodSelector.custom) == "Custom Period"


def test_chart_series_matches_buckets(records, pendencies):
    snapshot = _snapshot(records, pendencies, selector="week")
    series = chart_series(snapshot)

    assert len(series) == len(snapshot.series) == 7
    assert series[0][0] == snapshot.series[0].label
    assert sum(value for _, value in series) == 2


def test_top_performers_is_bounded(records, pendencies):
    snapshot = _snapshot(records, pendencies)
    assert top_performers(snapshot) == (("bia", 7), ("ana", 4))
    assert top_performers(snapshot, limit=1) == (("bia", 7),)
