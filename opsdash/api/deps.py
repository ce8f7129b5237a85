from opsdash.db import get_db  # noqa: F401
from opsdash.services.metrics.dashboard import MetricsDashboardService, metrics_dashboard
from opsdash.services.metrics.refresh import SnapshotRefresher, get_snapshot_refresher


# -------------------------------------------------------------------------
# Service dependencies
# -------------------------------------------------------------------------
# Overridden in tests through app.dependency_overrides.


def get_dashboard_service() -> MetricsDashboardService:
    """Get the metrics dashboard service."""
    return metrics_dashboard


def get_refresher() -> SnapshotRefresher:
    """Get the application-wide snapshot refresher."""
    return get_snapshot_refresher()
