"""Flat, read-only views of a snapshot for report and chart consumers."""

from __future__ import annotations

from opsdash.services.metrics.labels import indicator_label
from opsdash.services.metrics.labels import period_label as _period_label
from opsdash.services.metrics.periods import PeriodSelector
from opsdash.services.metrics.rates import format_percentage
from opsdash.services.metrics.snapshot import MetricsSnapshot

_COUNT_INDICATORS = (
    "total_documents",
    "attributed_documents",
    "in_progress_documents",
    "delivered_documents",
    "urgent_documents",
    "pendencies",
    "delayed_documents",
)

# (indicator key, rate attribute) in report order
_RATE_INDICATORS = (
    ("urgency_rate", "urgency_rate"),
    ("pendency_rate", "pendency_rate"),
    ("not_error_rate", "not_error_rate"),
    ("real_error_rate", "real_error_rate"),
    ("delay_rate", "delay_rate"),
    ("on_time_rate", "on_time_rate"),
)


def period_label(selector: PeriodSelector | str | None, locale: str | None = None) -> str:
    parsed = PeriodSelector.parse(selector)
    return _period_label(parsed.value, locale)


def indicator_list(snapshot: MetricsSnapshot, locale: str | None = None) -> tuple[tuple[str, str], ...]:
    indicators = [
        (indicator_label(key, locale), str(getattr(snapshot.totals, key))) for key in _COUNT_INDICATORS
    ]
    indicators.extend(
        (indicator_label(key, locale), f"{format_percentage(getattr(snapshot.rates, attribute))}%")
        for key, attribute in _RATE_INDICATORS
    )
    return tuple(indicators)


def chart_series(snapshot: MetricsSnapshot) -> tuple[tuple[str, int], ...]:
    return tuple((bucket.label, bucket.documents) for bucket in snapshot.series)


def top_performers(snapshot: MetricsSnapshot, limit: int = 5) -> tuple[tuple[str, int], ...]:
    return tuple((stats.worker_id, stats.total_documents) for stats in snapshot.productivity[:limit])
