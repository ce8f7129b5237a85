"""Percentages and ratios derived from window totals.

Every percentage is rounded to one decimal, half away from zero, and any
zero denominator yields ``0.0``.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from opsdash.services.metrics.aggregation import MetricTotals
from opsdash.services.metrics.labels import error_type_label
from opsdash.services.metrics.records import PendencyRecord

_ONE_DECIMAL = Decimal("0.1")


def round_half_away(value: float | Decimal, places: int = 1) -> float:
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def percentage(numerator: float, denominator: float) -> float:
    if not denominator:
        return 0.0
    value = Decimal(str(numerator)) / Decimal(str(denominator)) * Decimal(100)
    return float(value.quantize(_ONE_DECIMAL, rounding=ROUND_HALF_UP))


def format_percentage(value: float | None) -> str:
    if value is None:
        return "0.0"
    return f"{Decimal(str(value)).quantize(_ONE_DECIMAL, rounding=ROUND_HALF_UP):.1f}"


@dataclass(frozen=True)
class RateSummary:
    urgency_rate: float = 0.0
    pendency_rate: float = 0.0
    delay_rate: float = 0.0
    on_time_rate: float = 0.0
    not_error_rate: float = 0.0
    real_error_rate: float = 0.0

    def formatted(self) -> dict[str, str]:
        return {
            "urgency_rate": format_percentage(self.urgency_rate),
            "pendency_rate": format_percentage(self.pendency_rate),
            "delay_rate": format_percentage(self.delay_rate),
            "on_time_rate": format_percentage(self.on_time_rate),
            "not_error_rate": format_percentage(self.not_error_rate),
            "real_error_rate": format_percentage(self.real_error_rate),
        }


@dataclass(frozen=True)
class PendencyTypeShare:
    error_type: str
    label: str
    count: int
    share: float  # of all pendencies in the window


def compute_rates(totals: MetricTotals) -> RateSummary:
    # The breakdown divides by attributed documents, the overall rate by
    # documents created in the window.  Both denominators are intentional.
    return RateSummary(
        urgency_rate=percentage(totals.urgent_documents, totals.total_documents),
        pendency_rate=percentage(totals.pendencies, totals.total_documents),
        delay_rate=percentage(totals.delayed_documents, totals.total_documents),
        on_time_rate=percentage(totals.delivered_on_time_documents, totals.delivered_documents),
        not_error_rate=percentage(totals.not_error_pendencies, totals.attributed_documents),
        real_error_rate=percentage(totals.real_error_pendencies, totals.attributed_documents),
    )


def pendency_type_breakdown(
    pendencies: Iterable[PendencyRecord],
    *,
    labels: dict[str, str] | None = None,
) -> tuple[PendencyTypeShare, ...]:
    counts = Counter(pendency.error_type for pendency in pendencies)
    total = sum(counts.values())
    ordered = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    return tuple(
        PendencyTypeShare(
            error_type=error_type,
            label=error_type_label(error_type, labels) or error_type,
            count=count,
            share=percentage(count, total),
        )
        for error_type, count in ordered
    )
