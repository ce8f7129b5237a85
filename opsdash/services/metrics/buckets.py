"""Bucket planning for period evolution series.

The planner turns a resolved ``PeriodWindow`` into contiguous sub-intervals at
the granularity that fits the selector.  Boundaries are generated once and
paired, so consecutive buckets always share an edge and the first/last edges are
the window's own start and end.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from opsdash.services.metrics.labels import month_abbreviation, week_label
from opsdash.services.metrics.periods import PeriodSelector, PeriodWindow, add_months, local_midnight


class Granularity(enum.Enum):
    hour = "hour"
    day = "day"
    week = "week"
    month = "month"


GRANULARITY_BY_SELECTOR: dict[PeriodSelector, Granularity] = {
    PeriodSelector.day: Granularity.hour,
    PeriodSelector.week: Granularity.day,
    PeriodSelector.month: Granularity.day,
    PeriodSelector.custom: Granularity.day,
    PeriodSelector.quarter: Granularity.week,
    PeriodSelector.year: Granularity.month,
}


@dataclass(frozen=True)
class Bucket:
    index: int
    label: str
    start: datetime
    end: datetime
    closed: bool = False  # end instant belongs to the bucket

    def contains(self, instant: datetime) -> bool:
        point, start, end = (value.astimezone(UTC) for value in (instant, self.start, self.end))
        if start <= point < end:
            return True
        return self.closed and point == end


def granularity_for(selector: PeriodSelector) -> Granularity:
    return GRANULARITY_BY_SELECTOR.get(selector, Granularity.day)


def _hour_boundaries(window: PeriodWindow) -> list[datetime]:
    cursor = window.start.astimezone(UTC)
    end = window.end.astimezone(UTC)
    boundaries = []
    # Kept in UTC: local wall times repeat on fall-back days and same-zone
    # comparisons ignore fold.  DST days yield 23 or 25 buckets.
    while cursor < end:
        boundaries.append(cursor)
        cursor += timedelta(hours=1)
    return boundaries


def _day_boundaries(window: PeriodWindow) -> list[datetime]:
    tz = window.tz
    day = window.first_day()
    last = window.last_day()
    boundaries = []
    while day <= last:
        boundaries.append(local_midnight(day, tz))
        day += timedelta(days=1)
    return boundaries


def _week_boundaries(window: PeriodWindow) -> list[datetime]:
    tz = window.tz
    first = window.first_day()
    last = window.last_day()
    boundaries = [window.start]
    monday = first + timedelta(days=7 - first.weekday())
    while monday <= last:
        boundaries.append(local_midnight(monday, tz))
        monday += timedelta(days=7)
    return boundaries


def _month_boundaries(window: PeriodWindow) -> list[datetime]:
    tz = window.tz
    last = window.last_day()
    boundaries = [window.start]
    month_start = add_months(window.first_day(), 1)
    while month_start <= last:
        boundaries.append(local_midnight(month_start, tz))
        month_start = add_months(month_start, 1)
    return boundaries


_BOUNDARY_BUILDERS = {
    Granularity.hour: _hour_boundaries,
    Granularity.day: _day_boundaries,
    Granularity.week: _week_boundaries,
    Granularity.month: _month_boundaries,
}


def _label(granularity: Granularity, start: datetime, locale: str | None) -> str:
    if granularity == Granularity.hour:
        return f"{start.hour:02d}:00"
    if granularity == Granularity.week:
        return week_label(start.isocalendar()[1], locale)
    if granularity == Granularity.month:
        return month_abbreviation(start.month, locale)
    return start.strftime("%d/%m")


def plan_buckets(window: PeriodWindow, *, locale: str | None = None) -> tuple[Bucket, ...]:
    granularity = granularity_for(window.selector)
    starts = _BOUNDARY_BUILDERS[granularity](window)
    # the first edge is the window start itself, in the window's zone
    if starts and starts[0] == window.start:
        starts = starts[1:]
    starts.insert(0, window.start)
    edges = [*starts, window.end]

    buckets = []
    last_index = len(edges) - 2
    for index in range(last_index + 1):
        start, end = edges[index], edges[index + 1]
        buckets.append(
            Bucket(
                index=index,
                label=_label(granularity, start.astimezone(window.tz), locale),
                start=start,
                end=end,
                closed=window.inclusive_end and index == last_index,
            )
        )
    return tuple(buckets)
