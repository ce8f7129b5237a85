"""Tests for bucket planning."""

from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

import pytest

from opsdash.services.metrics.buckets import Granularity, granularity_for, plan_buckets
from opsdash.services.metrics.periods import PeriodSelector, resolve_period

SAO_PAULO = ZoneInfo("America/Sao_Paulo")
NEW_YORK = ZoneInfo("America/New_York")
NOW = datetime(2024, 5, 15, 10, 30, tzinfo=SAO_PAULO)


def _assert_covers(window, buckets):
    assert buckets, "a window always yields at least one bucket"
    assert buckets[0].start == window.start
    assert buckets[-1].end == window.end
    for previous, current in zip(buckets, buckets[1:], strict=False):
        assert previous.end == current.start
        assert previous.start < previous.end
    assert [bucket.index for bucket in buckets] == list(range(len(buckets)))


@pytest.mark.parametrize("selector", ["day", "week", "month", "quarter", "year"])
@pytest.mark.parametrize(
    "now",
    [
        NOW,
        datetime(2024, 1, 1, 0, 0, tzinfo=SAO_PAULO),
        datetime(2024, 2, 29, 23, 59, tzinfo=SAO_PAULO),
        datetime(2024, 12, 31, 12, 0, tzinfo=SAO_PAULO),
    ],
)
def test_buckets_cover_window_without_gaps(selector, now):
    window = resolve_period(selector, now, tz=SAO_PAULO)
    _assert_covers(window, plan_buckets(window))


def test_custom_buckets_cover_window():
    window = resolve_period(
        "custom", NOW, custom_range=(date(2024, 2, 27), date(2024, 3, 2)), tz=SAO_PAULO
    )
    buckets = plan_buckets(window)
    _assert_covers(window, buckets)
    assert [bucket.label for bucket in buckets] == ["27/02", "28/02", "29/02", "01/03", "02/03"]


def test_granularity_by_selector():
    assert granularity_for(PeriodSelector.day) == Granularity.hour
    assert granularity_for(PeriodSelector.week) == Granularity.day
    assert granularity_for(PeriodSelector.month) == Granularity.day
    assert granularity_for(PeriodSelector.custom) == Granularity.day
    assert granularity_for(PeriodSelector.quarter) == Granularity.week
    assert granularity_for(PeriodSelector.year) == Granularity.month


class TestHourlyBuckets:
    def test_day_has_24_hourly_buckets(self):
        buckets = plan_buckets(resolve_period("day", NOW, tz=SAO_PAULO))
        assert len(buckets) == 24
        assert buckets[0].label == "00:00"
        assert buckets[9].label == "09:00"
        assert buckets[-1].label == "23:00"
        assert all(bucket.end - bucket.start == timedelta(hours=1) for bucket in buckets)

    @pytest.mark.parametrize("selector", ["day", "week", "quarter", "year"])
    def test_first_bucket_starts_at_window_start_once(self, selector):
        window = resolve_period(selector, NOW, tz=SAO_PAULO)
        buckets = plan_buckets(window)

        assert buckets[0].start is window.start
        assert buckets[0].start.tzinfo is SAO_PAULO
        assert buckets[0].start < buckets[0].end
        assert len({bucket.start for bucket in buckets}) == len(buckets)

    def test_spring_forward_day_has_23_buckets(self):
        window = resolve_period("day", datetime(2024, 3, 10, 12, tzinfo=NEW_YORK), tz=NEW_YORK)
        buckets = plan_buckets(window)
        assert len(buckets) == 23
        assert "02:00" not in [bucket.label for bucket in buckets]
        _assert_covers(window, buckets)

    def test_fall_back_day_has_25_buckets(self):
        window = resolve_period("day", datetime(2024, 11, 3, 12, tzinfo=NEW_YORK), tz=NEW_YORK)
        buckets = plan_buckets(window)
        assert len(buckets) == 25
        assert [bucket.label for bucket in buckets].count("01:00") == 2


class TestDailyBuckets:
    def test_month_has_one_bucket_per_day(self):
        buckets = plan_buckets(resolve_period("month", NOW, tz=SAO_PAULO))
        assert len(buckets) == 31
        assert buckets[0].label == "01/05"
        assert buckets[-1].label == "31/05"

    def test_week_has_seven_buckets_from_monday(self):
        buckets = plan_buckets(resolve_period("week", NOW, tz=SAO_PAULO))
        assert len(buckets) == 7
        assert buckets[0].start.weekday() == 0
        assert buckets[0].label == "13/05"

    def test_only_final_bucket_of_custom_range_is_closed(self):
        window = resolve_period(
            "custom", NOW, custom_range=(date(2024, 5, 1), date(2024, 5, 3)), tz=SAO_PAULO
        )
        buckets = plan_buckets(window)
        assert [bucket.closed for bucket in buckets] == [False, False, True]
        assert buckets[-1].contains(window.end)
        assert not buckets[0].contains(buckets[0].end)

    def test_built_in_periods_have_no_closed_bucket(self):
        buckets = plan_buckets(resolve_period("month", NOW, tz=SAO_PAULO))
        assert not any(bucket.closed for bucket in buckets)


class TestWeeklyBuckets:
    def test_quarter_starting_mid_week_clamps_first_bucket(self):
        # 2024-10-01 is a Tuesday
        window = resolve_period("quarter", datetime(2024, 11, 15, tzinfo=SAO_PAULO), tz=SAO_PAULO)
        buckets = plan_buckets(window)
        assert len(buckets) == 14
        assert buckets[0].start == datetime(2024, 10, 1, tzinfo=SAO_PAULO)
        assert buckets[0].end == datetime(2024, 10, 7, tzinfo=SAO_PAULO)
        assert buckets[-1].start == datetime(2024, 12, 30, tzinfo=SAO_PAULO)
        assert buckets[-1].end == datetime(2025, 1, 1, tzinfo=SAO_PAULO)
        assert all(bucket.start.weekday() == 0 for bucket in buckets[1:])

    def test_week_labels_use_iso_week_number(self):
        window = resolve_period("quarter", NOW, tz=SAO_PAULO)
        buckets = plan_buckets(window)
        assert len(buckets) == 13
        assert buckets[0].label == "Week 14"
        assert plan_buckets(window, locale="pt_BR")[0].label == "Semana 14"


class TestMonthlyBuckets:
    def test_year_has_twelve_month_buckets(self):
        buckets = plan_buckets(resolve_period("year", NOW, tz=SAO_PAULO))
        assert [bucket.label for bucket in buckets] == [
            "Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
        ]

    def test_month_labels_follow_locale(self):
        buckets = plan_buckets(resolve_period("year", NOW, tz=SAO_PAULO), locale="pt_BR")
        assert buckets[1].label == "Fev"
        assert buckets[4].label == "Mai"

    def test_unknown_locale_falls_back_to_english(self):
        buckets = plan_buckets(resolve_period("year", NOW, tz=SAO_PAULO), locale="xx")
        assert buckets[1].label == "Feb"
