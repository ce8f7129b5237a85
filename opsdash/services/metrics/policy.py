from __future__ import annotations

from dataclasses import dataclass, field
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

DEFAULT_TIMEZONE = "America/Sao_Paulo"


@dataclass(frozen=True)
class DemandLimits:
    daily_limit: int = 10
    concurrent_order_limit: int = 2


@dataclass(frozen=True)
class MetricsConfig:
    """Policy inputs for one engine invocation."""

    timezone: str = DEFAULT_TIMEZONE
    locale: str = "en"
    demand_limits: DemandLimits = field(default_factory=DemandLimits)
    pendency_goal_ratio: float = 0.05
    top_hours: int = 5
    top_weekdays: int = 3
    trend_window_days: int = 7
    trend_series_days: int = 30
    default_start_hour: int = 9
    default_end_hour: int = 18

    @property
    def tzinfo(self) -> ZoneInfo:
        return resolve_timezone(self.timezone)

    @classmethod
    def from_settings(cls, settings) -> MetricsConfig:
        return cls(
            timezone=settings.metrics_timezone,
            locale=settings.metrics_locale,
            demand_limits=DemandLimits(
                daily_limit=settings.default_daily_document_limit,
                concurrent_order_limit=settings.default_concurrent_order_limit,
            ),
            pendency_goal_ratio=settings.pendency_goal_ratio,
        )


def resolve_timezone(name: str | None) -> ZoneInfo:
    try:
        return ZoneInfo(name or DEFAULT_TIMEZONE)
    except (ZoneInfoNotFoundError, ValueError):
        return ZoneInfo(DEFAULT_TIMEZONE)
