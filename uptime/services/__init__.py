"""
Core services for the dashboard.

This package contains the aggregation pipeline (bucketing, incident
derivation, summary), the parallel health check collector, and the refresh
coordinator. The API-backed ``DashboardService`` lives in
``uptime.services.dashboard``.
"""

from .bucketing import bucket_series, bucket_width_for_window, recent_performance
from .health_check_collector import (
    BatchCollection,
    CollectorConfig,
    HealthCheckCollector,
    HealthCheckSource,
)
from .incidents import derive_incidents, filter_incidents, group_incidents_by_date, incident_stats
from .refresh import RefreshCoordinator, RefreshState, start_auto_refresh
from .summary import filter_targets, summarize

__all__ = [
    "BatchCollection",
    "CollectorConfig",
    "HealthCheckCollector",
    "HealthCheckSource",
    "RefreshCoordinator",
    "RefreshState",
    "bucket_series",
    "bucket_width_for_window",
    "derive_incidents",
    "filter_incidents",
    "filter_targets",
    "group_incidents_by_date",
    "incident_stats",
    "recent_performance",
    "start_auto_refresh",
    "summarize",
]
