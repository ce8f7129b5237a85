from datetime import datetime

from pydantic import BaseModel, ConfigDict

from opsdash.services.metrics.periods import PeriodSelector
from opsdash.services.metrics.productivity import TrendDirection


class PeriodWindowRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    selector: PeriodSelector
    start: datetime
    end: datetime
    inclusive_end: bool


class BucketTotalsRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    index: int
    label: str
    start: datetime
    end: datetime
    documents: int
    urgent_documents: int
    pendencies: int
    cumulative_documents: int
    pendency_goal: float


class MetricTotalsRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_documents: int
    urgent_documents: int
    attributed_documents: int
    in_progress_documents: int
    delivered_documents: int
    delivered_on_time_documents: int
    delayed_documents: int
    pendencies: int
    not_error_pendencies: int
    real_error_pendencies: int


class RateSummaryRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    urgency_rate: float
    pendency_rate: float
    delay_rate: float
    on_time_rate: float
    not_error_rate: float
    real_error_rate: float


class PendencyTypeShareRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    error_type: str
    label: str
    count: int
    share: float


class OrderGroupRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    order_number: str
    record_ids: list[str]
    document_count: int
    urgent_document_count: int
    worker_ids: list[str]


class OrderDetailsRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    attributed: list[OrderGroupRead]
    in_progress: list[OrderGroupRead]
    delivered: list[OrderGroupRead]
    delayed: list[OrderGroupRead]


class TrendRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    direction: TrendDirection
    recent_avg: float
    previous_avg: float
    change_pct: float | None = None
    justification: str
    daily_documents: list[int]


class WorkPatternRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    productive_hours: list[int]
    typical_start_hour: int
    typical_end_hour: int
    active_weekdays: list[str]
    avg_weekly_hours: float


class ProductivityStatsRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    worker_id: str
    total_documents: int
    total_orders_delivered: int
    total_orders_assigned: int
    completion_rate: float
    first_delivery_at: datetime | None = None
    last_delivery_at: datetime | None = None
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
    work_pattern: WorkPatternRead
    trend: TrendRead


class WorkerCapacityRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    worker_id: str
    daily_limit: int
    concurrent_order_limit: int
    documents_today: int
    current_orders: int
    can_take_more: bool
    daily_limit_reached: bool
    valid: bool
    reason: str | None = None


class MetricsSnapshotRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    window: PeriodWindowRead
    selector: PeriodSelector
    generated_at: datetime
    series: list[BucketTotalsRead]
    totals: MetricTotalsRead
    rates: RateSummaryRead
    pendency_types: list[PendencyTypeShareRead]
    details: OrderDetailsRead
    productivity: list[ProductivityStatsRead]
    capacities: list[WorkerCapacityRead]


class IndicatorRead(BaseModel):
    label: str
    value: str


class IndicatorListRead(BaseModel):
    period_label: str
    window: PeriodWindowRead
    indicators: list[IndicatorRead]


class ChartPointRead(BaseModel):
    label: str
    value: int


class ChartSeriesRead(BaseModel):
    period_label: str
    points: list[ChartPointRead]


class KpiDefinitionRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    name: str
    label: str
    target_value: float
    target_operator: str
    calculation_type: str
    unit: str
    manual_value: float | None = None


class KpiResultRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    definition: KpiDefinitionRead
    actual_value: float
    target_value: float
    within_target: bool
    total_base: int
    total_count: int
    percent_of_target: float


class KpiReportRead(BaseModel):
    worker_id: str
    window: PeriodWindowRead
    results: list[KpiResultRead]


class QualityScoresRead(BaseModel):
    fetched_at: datetime
    scores: dict
