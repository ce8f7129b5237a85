"""Reporting period resolution.

A period selector plus the reference ``now`` resolves to an exact window of
local calendar time.  Built-in periods are half-open ``[start, end)`` with
``end`` at the local midnight after the last day; custom ranges are clamped to
``00:00:00.000`` / ``23:59:59.999`` and keep their end instant inclusive.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from datetime import UTC, date, datetime, time, timedelta, tzinfo

from opsdash.services.metrics.policy import resolve_timezone
from opsdash.services.metrics.records import ensure_aware

logger = logging.getLogger(__name__)

END_OF_DAY = time(23, 59, 59, 999000)


class PeriodSelector(enum.Enum):
    day = "day"
    week = "week"
    month = "month"
    quarter = "quarter"
    year = "year"
    custom = "custom"

    @classmethod
    def parse(cls, value: object, default: PeriodSelector | None = None) -> PeriodSelector:
        fallback = default or cls.month
        if isinstance(value, PeriodSelector):
            return value
        if value is None:
            return fallback
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            logger.debug("metrics_period_selector_unknown value=%s fallback=%s", value, fallback.value)
            return fallback


@dataclass(frozen=True)
class PeriodWindow:
    selector: PeriodSelector
    start: datetime
    end: datetime
    inclusive_end: bool = False

    def contains(self, instant: datetime | None) -> bool:
        if instant is None:
            return False
        point, start, end = (value.astimezone(UTC) for value in (instant, self.start, self.end))
        if start <= point < end:
            return True
        return self.inclusive_end and point == end

    @property
    def tz(self) -> tzinfo | None:
        return self.start.tzinfo

    def first_day(self) -> date:
        return self.start.date()

    def last_day(self) -> date:
        if self.inclusive_end:
            return self.end.date()
        return (self.end - timedelta(microseconds=1)).date()


def local_midnight(day: date, tz: tzinfo) -> datetime:
    return datetime.combine(day, time.min, tzinfo=tz)


def add_months(day: date, months: int) -> date:
    """First day of the month ``months`` after ``day``'s month."""
    index = day.year * 12 + (day.month - 1) + months
    return date(index // 12, index % 12 + 1, 1)


def _as_local_date(value: date | datetime | None, tz: tzinfo) -> date | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.date()
        return value.astimezone(tz).date()
    return value


def _calendar_window(selector: PeriodSelector, today: date, tz: tzinfo) -> PeriodWindow:
    if selector == PeriodSelector.day:
        first, after = today, today + timedelta(days=1)
    elif selector == PeriodSelector.week:
        # Monday-based: on a Sunday the week started six days earlier
        first = today - timedelta(days=today.weekday())
        after = first + timedelta(days=7)
    elif selector == PeriodSelector.quarter:
        first = date(today.year, ((today.month - 1) // 3) * 3 + 1, 1)
        after = add_months(first, 3)
    elif selector == PeriodSelector.year:
        first, after = date(today.year, 1, 1), date(today.year + 1, 1, 1)
    else:
        selector = PeriodSelector.month
        first = today.replace(day=1)
        after = add_months(first, 1)
    return PeriodWindow(
        selector=selector,
        start=local_midnight(first, tz),
        end=local_midnight(after, tz),
    )


def resolve_period(
    selector: PeriodSelector | str | None,
    now: datetime,
    *,
    custom_range: tuple[date | datetime | None, date | datetime | None] | None = None,
    tz: tzinfo | str | None = None,
) -> PeriodWindow:
    zone = tz if isinstance(tz, tzinfo) else resolve_timezone(tz)
    parsed = PeriodSelector.parse(selector)
    today = ensure_aware(now).astimezone(zone).date()

    if parsed != PeriodSelector.custom:
        return _calendar_window(parsed, today, zone)

    date_from, date_to = custom_range or (None, None)
    first = _as_local_date(date_from, zone)
    last = _as_local_date(date_to, zone)
    if first is None or last is None or first > last:
        logger.info(
            "metrics_custom_range_invalid date_from=%s date_to=%s fallback=month",
            date_from,
            date_to,
        )
        return _calendar_window(PeriodSelector.month, today, zone)

    return PeriodWindow(
        selector=PeriodSelector.custom,
        start=local_midnight(first, zone),
        end=datetime.combine(last, END_OF_DAY, tzinfo=zone),
        inclusive_end=True,
    )
