"""Per-worker productivity statistics.

Only ``delivered`` and ``in_progress`` records assigned to the worker take
part; unassigned work never counts toward anyone.  Delivered records
drive every total and average; in-progress records only widen the completion
rate denominator.  Durations come from ``attributed_at -> delivered_at`` and
skip records where delivery precedes attribution.
"""

from __future__ import annotations

import enum
import math
from collections import Counter
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import date, datetime, timedelta, tzinfo
from decimal import Decimal

from opsdash.services.metrics.labels import weekday_name
from opsdash.services.metrics.policy import MetricsConfig
from opsdash.services.metrics.rates import percentage, round_half_away
from opsdash.services.metrics.records import WorkRecord, WorkStatus, ensure_aware

TRACKED_STATUSES = frozenset({WorkStatus.delivered, WorkStatus.in_progress})


class TrendDirection(enum.Enum):
    improving = "improving"
    stable = "stable"
    declining = "declining"


@dataclass(frozen=True)
class TrendClassification:
    direction: TrendDirection
    recent_avg: float
    previous_avg: float
    change_pct: float | None
    justification: str
    daily_documents: tuple[int, ...] = ()


@dataclass(frozen=True)
class WorkPattern:
    productive_hours: tuple[int, ...]
    typical_start_hour: int
    typical_end_hour: int
    active_weekdays: tuple[str, ...]
    avg_weekly_hours: float


@dataclass(frozen=True)
class ProductivityStats:
    worker_id: str
    total_documents: int
    total_orders_delivered: int
    total_orders_assigned: int
    completion_rate: float
    first_delivery_at: datetime | None
    last_delivery_at: datetime | None
    days_active: int
    weeks_active: int
    months_active: int
    avg_documents_per_day: float
    avg_documents_per_week: float
    avg_documents_per_month: float
    total_hours_worked: float
    avg_minutes_per_document: float
    urgent_documents_completed: int
    anomalies_excluded: int
    work_pattern: WorkPattern
    trend: TrendClassification


def _ratio(numerator: float, denominator: float, places: int = 2) -> float:
    if not denominator:
        return 0.0
    return round_half_away(Decimal(str(numerator)) / Decimal(str(denominator)), places)


def month_difference(first: date, last: date) -> int:
    return (last.year - first.year) * 12 + (last.month - first.month)


def daily_document_series(
    records: Iterable[WorkRecord],
    *,
    today: date,
    days: int,
    tz: tzinfo,
) -> tuple[int, ...]:
    """Delivered documents per local day, oldest first, ending on ``today``."""
    first = today - timedelta(days=days - 1)
    counts = [0] * days
    for record in records:
        if record.status != WorkStatus.delivered or record.delivered_at is None:
            continue
        offset = (record.delivered_at.astimezone(tz).date() - first).days
        if 0 <= offset < days:
            counts[offset] += record.document_count
    return tuple(counts)


def classify_trend(daily_counts: Sequence[int], *, window: int = 7) -> TrendClassification:
    """Compare the last ``window`` days against the ``window`` days before them.

    ``improving`` needs the recent average strictly above 110% of the previous
    one and ``declining`` strictly below 90%; anything inside the band is
    ``stable``.  The comparison is done on integer sums so the band edges are
    exact.
    """
    counts = list(daily_counts)
    recent = counts[-window:] if window > 0 else []
    previous = counts[-2 * window : -window] if window > 0 else []
    recent_sum, previous_sum = sum(recent), sum(previous)
    recent_len, previous_len = len(recent), len(previous)

    recent_avg = _ratio(recent_sum, recent_len)
    previous_avg = _ratio(previous_sum, previous_len)

    # recent_sum / recent_len compared against previous_sum / previous_len * k
    scaled_recent = 10 * recent_sum * previous_len
    scaled_previous = previous_sum * recent_len
    if recent_len and scaled_recent > 11 * scaled_previous:
        direction = TrendDirection.improving
    elif recent_len and previous_len and scaled_recent < 9 * scaled_previous:
        direction = TrendDirection.declining
    else:
        direction = TrendDirection.stable

    change_pct: float | None = None
    if direction != TrendDirection.stable:
        if scaled_previous:
            change = (
                Decimal(recent_sum * previous_len - previous_sum * recent_len)
                / Decimal(scaled_previous)
                * Decimal(100)
            )
            change_pct = round_half_away(change, 1)
        else:
            change_pct = 100.0

    averages = (
        f"recent {window}-day average {recent_avg:.1f} documents/day "
        f"vs previous {window}-day average {previous_avg:.1f}"
    )
    if direction == TrendDirection.improving:
        justification = f"Improving: {averages} ({change_pct:+.1f}%)."
    elif direction == TrendDirection.declining:
        justification = f"Declining: {averages} ({change_pct:+.1f}%)."
    else:
        justification = f"Stable: {averages} (within ±10%)."

    return TrendClassification(
        direction=direction,
        recent_avg=recent_avg,
        previous_avg=previous_avg,
        change_pct=change_pct,
        justification=justification,
        daily_documents=tuple(counts),
    )


def _top(counter: Counter, limit: int) -> list:
    return [key for key, _ in sorted(counter.items(), key=lambda item: (-item[1], item[0]))[:limit]]


def _mean_hour(hours: list[int], default: int) -> int:
    if not hours:
        return default
    return int(round_half_away(Decimal(sum(hours)) / Decimal(len(hours)), 0))


def _work_pattern(
    delivered: list[WorkRecord],
    *,
    tz: tzinfo,
    total_hours: float,
    weeks_active: int,
    config: MetricsConfig,
) -> WorkPattern:
    hour_counts: Counter = Counter()
    weekday_counts: Counter = Counter()
    end_hours: list[int] = []
    start_hours: list[int] = []
    for record in delivered:
        local_delivery = record.delivered_at.astimezone(tz)
        hour_counts[local_delivery.hour] += 1
        weekday_counts[local_delivery.weekday()] += 1
        end_hours.append(local_delivery.hour)
        if record.attributed_at is not None:
            start_hours.append(record.attributed_at.astimezone(tz).hour)

    return WorkPattern(
        productive_hours=tuple(_top(hour_counts, config.top_hours)),
        typical_start_hour=_mean_hour(start_hours, config.default_start_hour),
        typical_end_hour=_mean_hour(end_hours, config.default_end_hour),
        active_weekdays=tuple(weekday_name(day, config.locale) for day in _top(weekday_counts, config.top_weekdays)),
        avg_weekly_hours=_ratio(total_hours, weeks_active),
    )


def analyze_worker(
    worker_id: str,
    records: Iterable[WorkRecord],
    *,
    now: datetime,
    config: MetricsConfig | None = None,
) -> ProductivityStats:
    config = config or MetricsConfig()
    tz = config.tzinfo
    today = ensure_aware(now).astimezone(tz).date()

    scoped = [
        record
        for record in records
        if record.status in TRACKED_STATUSES and record.worker_id == worker_id
    ]
    delivered = [record for record in scoped if record.status == WorkStatus.delivered]
    timed = [record for record in delivered if record.delivered_at is not None]

    trend = classify_trend(
        daily_document_series(timed, today=today, days=config.trend_series_days, tz=tz),
        window=config.trend_window_days,
    )

    total_documents = sum(record.document_count for record in delivered)
    total_hours = 0.0
    documents_with_duration = 0
    anomalies = 0
    for record in delivered:
        if record.has_duration_anomaly:
            anomalies += 1
            continue
        if record.attributed_at is None or record.delivered_at is None:
            continue
        if record.delivered_at > record.attributed_at:
            total_hours += (record.delivered_at - record.attributed_at).total_seconds() / 3600
            documents_with_duration += record.document_count

    if timed:
        first_delivery = min(record.delivered_at for record in timed)
        last_delivery = max(record.delivered_at for record in timed)
        first_day = first_delivery.astimezone(tz).date()
        last_day = last_delivery.astimezone(tz).date()
        days_active = max((last_day - first_day).days + 1, 1)
        weeks_active = max(math.ceil(days_active / 7), 1)
        months_active = max(month_difference(first_day, last_day) + 1, 1)
    else:
        first_delivery = last_delivery = None
        days_active = weeks_active = months_active = 0

    return ProductivityStats(
        worker_id=worker_id,
        total_documents=total_documents,
        total_orders_delivered=len(delivered),
        total_orders_assigned=len(scoped),
        completion_rate=percentage(len(delivered), len(scoped)),
        first_delivery_at=first_delivery,
        last_delivery_at=last_delivery,
        days_active=days_active,
        weeks_active=weeks_active,
        months_active=months_active,
        avg_documents_per_day=_ratio(total_documents, days_active),
        avg_documents_per_week=_ratio(total_documents, weeks_active),
        avg_documents_per_month=_ratio(total_documents, months_active),
        total_hours_worked=round_half_away(total_hours, 2),
        avg_minutes_per_document=_ratio(total_hours * 60, documents_with_duration),
        urgent_documents_completed=sum(record.urgent_document_count for record in delivered),
        anomalies_excluded=anomalies,
        work_pattern=_work_pattern(
            timed,
            tz=tz,
            total_hours=total_hours,
            weeks_active=weeks_active,
            config=config,
        ),
        trend=trend,
    )


def group_by_worker(records: Iterable[WorkRecord]) -> dict[str, list[WorkRecord]]:
    """Split records per assigned worker; unassigned work is left out."""
    grouped: dict[str, list[WorkRecord]] = {}
    for record in records:
        if record.worker_id:
            grouped.setdefault(record.worker_id, []).append(record)
    return grouped


def analyze_workers(
    records_by_worker: Mapping[str, Iterable[WorkRecord]],
    *,
    now: datetime,
    config: MetricsConfig | None = None,
) -> tuple[ProductivityStats, ...]:
    stats = [
        analyze_worker(worker_id, records, now=now, config=config)
        for worker_id, records in records_by_worker.items()
        if worker_id
    ]
    stats.sort(key=lambda item: (-item.total_documents, item.worker_id))
    return tuple(stats)
