"""Collaborator KPI evaluation.

Each KPI carries a target and a comparison operator.  Computed KPIs share one
base: the documents attributed within the evaluated window.
"""

from __future__ import annotations

import enum
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from decimal import Decimal

from opsdash.services.metrics.periods import PeriodWindow
from opsdash.services.metrics.rates import round_half_away
from opsdash.services.metrics.records import NOT_AN_ERROR, PendencyRecord, WorkRecord


class TargetOperator(enum.Enum):
    lte = "lte"
    gte = "gte"
    eq = "eq"


class CalculationType(enum.Enum):
    error_rate = "error_rate"
    not_error_rate = "not_error_rate"
    orders_percentage = "orders_percentage"
    manual = "manual"


@dataclass(frozen=True)
class KpiDefinition:
    name: str
    label: str
    target_value: float
    target_operator: str = TargetOperator.lte.value
    calculation_type: str = CalculationType.error_rate.value
    unit: str = "%"
    manual_value: float | None = None
    display_order: int = 0


@dataclass(frozen=True)
class KpiResult:
    definition: KpiDefinition
    actual_value: float
    target_value: float
    within_target: bool
    total_base: int
    total_count: int
    percent_of_target: float


def meets_target(actual: float, target: float, operator: str) -> bool:
    if operator == TargetOperator.lte.value:
        return actual <= target
    if operator == TargetOperator.gte.value:
        return actual >= target
    if operator == TargetOperator.eq.value:
        return actual == target
    return False


def _share(count: float, base: float) -> float:
    if not base:
        return 0.0
    return round_half_away(Decimal(count) / Decimal(base) * Decimal(100), 2)


def evaluate_kpi(
    definition: KpiDefinition,
    worker_id: str,
    attributed: Sequence[WorkRecord],
    pendencies: Sequence[PendencyRecord],
) -> KpiResult:
    base = sum(record.document_count for record in attributed)
    if not attributed or base == 0:
        return KpiResult(
            definition=definition,
            actual_value=0.0,
            target_value=definition.target_value,
            within_target=True,
            total_base=0,
            total_count=0,
            percent_of_target=0.0,
        )

    count = 0
    actual = 0.0
    calculation = definition.calculation_type
    if calculation == CalculationType.error_rate.value:
        count = sum(1 for pendency in pendencies if pendency.error_type != NOT_AN_ERROR)
        actual = _share(count, base)
    elif calculation == CalculationType.not_error_rate.value:
        count = sum(1 for pendency in pendencies if pendency.error_type == NOT_AN_ERROR)
        actual = _share(count, base)
    elif calculation == CalculationType.orders_percentage.value:
        count = sum(1 for record in attributed if record.worker_id == worker_id)
        actual = _share(count, len(attributed))
    elif calculation == CalculationType.manual.value:
        actual = float(definition.manual_value or 0)

    target = definition.target_value
    return KpiResult(
        definition=definition,
        actual_value=actual,
        target_value=target,
        within_target=meets_target(actual, target, definition.target_operator),
        total_base=base,
        total_count=count,
        percent_of_target=_share(actual, target) if target > 0 else 0.0,
    )


def evaluate_kpis(
    definitions: Iterable[KpiDefinition],
    worker_id: str,
    work_records: Iterable[WorkRecord],
    pendencies: Iterable[PendencyRecord],
    window: PeriodWindow,
) -> tuple[KpiResult, ...]:
    attributed = [record for record in work_records if window.contains(record.attributed_at)]
    window_pendencies = [pendency for pendency in pendencies if window.contains(pendency.created_at)]
    ordered = sorted(definitions, key=lambda item: (item.display_order, item.name))
    return tuple(evaluate_kpi(definition, worker_id, attributed, window_pendencies) for definition in ordered)
