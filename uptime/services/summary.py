"""Scalar statistics over the current target set."""

from collections.abc import Iterable, Sequence
from typing import Literal

from uptime.domain.models import MonitoredTarget, SummaryStats, TargetStatus

TargetView = Literal["all", "active", "down"]


def summarize(targets: Sequence[MonitoredTarget]) -> SummaryStats:
    """Counts, averages and percentages for the stats cards. Safe for an empty list."""
    total = len(targets)
    if total == 0:
        return SummaryStats()

    active = sum(1 for t in targets if t.status == TargetStatus.UP)
    return SummaryStats(
        total_count=total,
        active_count=active,
        down_count=sum(1 for t in targets if t.status == TargetStatus.DOWN),
        warning_count=sum(1 for t in targets if t.status == TargetStatus.WARNING),
        average_response_time_ms=round(sum(t.last_response_time_ms for t in targets) / total),
        active_percent=round(active / total * 100, 1),
        average_uptime_percent=round(sum(t.uptime_percent for t in targets) / total),
    )


def filter_targets(
    targets: Iterable[MonitoredTarget], view: TargetView = "all"
) -> list[MonitoredTarget]:
    """Targets shown under a dashboard tab; "down" includes degraded (Warning) targets."""
    if view == "active":
        return [t for t in targets if t.status == TargetStatus.UP]
    if view == "down":
        return [t for t in targets if t.status in (TargetStatus.DOWN, TargetStatus.WARNING)]
    return list(targets)
