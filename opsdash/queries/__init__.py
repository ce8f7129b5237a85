"""Query builders and fetch operations for the metrics engine.

Usage:
    from opsdash.queries import fetch_work_records

    records = fetch_work_records(db, window)
"""

from opsdash.queries.base import BaseQuery
from opsdash.queries.orders import (
    CollaboratorKpiQuery,
    OrderQuery,
    PendencyQuery,
    fetch_all_demand_limits,
    fetch_demand_limits,
    fetch_kpi_definitions,
    fetch_pendency_records,
    fetch_work_records,
    fetch_work_records_for_worker,
)

__all__ = [
    "BaseQuery",
    "CollaboratorKpiQuery",
    "OrderQuery",
    "PendencyQuery",
    "fetch_all_demand_limits",
    "fetch_demand_limits",
    "fetch_kpi_definitions",
    "fetch_pendency_records",
    "fetch_work_records",
    "fetch_work_records_for_worker",
]
