"""Time-bucketed metrics and productivity analytics.

The engine modules (periods, buckets, aggregation, rates, productivity,
limits, kpis, snapshot, export) are pure.  ``dashboard`` and ``refresh``
wrap them with data access and periodic recomputation.
"""
