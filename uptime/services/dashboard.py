"""
Dashboard service that ties the pipeline together.

One refresh cycle:
1. Fetch the target list
2. Fetch recent health checks for every target in parallel
3. Bucket response times, derive incidents, summarize targets
4. Publish a new snapshot (or keep the last one if the fetch failed)

Architecture pattern: poll -> normalize -> derive, recomputed wholesale each time
"""

import asyncio
from collections.abc import Callable, Sequence
from datetime import UTC, datetime

import structlog
from rich.console import Console
from rich.table import Table

from adapters.monitoring_api.client import (
    MonitoringApiClient,
    MonitoringApiError,
    TargetRegistration,
)
from uptime.config import AppConfig, get_config
from uptime.domain.models import DashboardSnapshot, HealthCheckRecord, MonitoredTarget
from uptime.log import configure_logging
from uptime.result import Result
from uptime.services.bucketing import (
    bucket_series,
    bucket_width_for_window,
    parse_time_range,
    recent_performance,
)
from uptime.services.health_check_collector import CollectorConfig, HealthCheckCollector
from uptime.services.incidents import derive_incidents, incident_stats
from uptime.services.refresh import RefreshCoordinator, start_auto_refresh
from uptime.services.summary import summarize

logger = structlog.get_logger(__name__)


def build_snapshot(
    targets: Sequence[MonitoredTarget],
    records: Sequence[HealthCheckRecord],
    *,
    window_days: int,
    now: datetime,
    failed_target_ids: Sequence[str] = (),
) -> DashboardSnapshot:
    """Pure derivation of everything the dashboard renders."""
    incidents = derive_incidents(records, {target.id: target for target in targets})
    return DashboardSnapshot(
        targets=list(targets),
        summary=summarize(targets),
        series=bucket_series(records, window_days, bucket_width_for_window(window_days), now=now),
        incidents=incidents,
        incident_stats=incident_stats(incidents, now=now),
        window_days=window_days,
        failed_target_ids=list(failed_target_ids),
        refreshed_at=now,
    )


class DashboardService:
    """
    Keeps the latest dashboard snapshot.

    A failed refresh leaves the previous snapshot in place (stale but present)
    and records the error for a retry affordance.
    """

    def __init__(
        self,
        client: MonitoringApiClient,
        config: AppConfig | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.config = config or get_config()
        self.client = client
        self.clock = clock or (lambda: datetime.now(UTC))
        self.window_days = parse_time_range(self.config.chart.time_range)
        self.collector = HealthCheckCollector(
            client,
            CollectorConfig(
                limit_per_target=self.config.chart.health_check_limit,
                timeout_seconds=self.config.chart.collection_timeout_seconds,
            ),
        )
        self.snapshot: DashboardSnapshot | None = None
        self.last_error: Exception | None = None
        self.logger = logger.bind(component="dashboard_service")

    def set_time_range(self, time_range: str) -> None:
        """Switch the chart window; takes effect on the next refresh."""
        self.window_days = parse_time_range(time_range)

    async def refresh(self) -> Result[DashboardSnapshot, Exception]:
        targets_result = await self.client.list_targets()
        if targets_result.is_err():
            self.last_error = targets_result.unwrap_err()
            self.logger.warning(
                "dashboard_refresh_failed",
                error=str(self.last_error),
                keeping_stale_snapshot=self.snapshot is not None,
            )
            return Result.err(self.last_error)

        targets = targets_result.unwrap()
        batch = await self.collector.collect(targets)

        snapshot = build_snapshot(
            targets,
            batch.records,
            window_days=self.window_days,
            now=self.clock(),
            failed_target_ids=batch.failed_target_ids,
        )
        self.snapshot = snapshot
        # Partial failures still publish; the first one is kept for display
        self.last_error = batch.first_error

        self.logger.info(
            "dashboard_refreshed",
            targets=len(targets),
            incidents=len(snapshot.incidents),
            failed_targets=len(batch.failed_target_ids),
        )
        return Result.ok(snapshot)

    async def target_performance(
        self, target: MonitoredTarget
    ) -> Result[list[HealthCheckRecord], MonitoringApiError]:
        """Recent measured checks for one target's expanded row."""
        limit = self.config.chart.health_check_limit
        result = await self.client.fetch_health_checks(target, limit)
        return result.map(lambda records: recent_performance(records, limit=limit))

    async def add_target(
        self, registration: TargetRegistration
    ) -> Result[DashboardSnapshot, Exception]:
        """Register a target, then refresh so it shows up immediately."""
        result = await self.client.add_target(registration)
        if result.is_err():
            return Result.err(result.unwrap_err())
        return await self.refresh()

    def start_polling(self) -> RefreshCoordinator:
        return start_auto_refresh(
            self.refresh,
            self.config.refresh.interval_seconds,
            self.config.refresh.enabled,
            clock=self.clock,
        )


def render_snapshot(snapshot: DashboardSnapshot, console: Console) -> None:
    """Print the summary, targets, and latest incidents."""
    summary = snapshot.summary
    console.print(
        f"[bold]{summary.total_count}[/bold] targets - "
        f"[green]{summary.active_count} up[/green] ({summary.active_percent}%), "
        f"[red]{summary.down_count} down[/red], "
        f"[yellow]{summary.warning_count} warning[/yellow], "
        f"avg {summary.average_response_time_ms}ms"
    )

    targets = Table(title="Monitored targets")
    for column in ("Name", "URL", "Status", "Response", "Uptime"):
        targets.add_column(column)
    for target in snapshot.targets:
        targets.add_row(
            target.name,
            target.url,
            target.status.value,
            f"{target.last_response_time_ms}ms",
            f"{target.uptime_percent:.1f}%",
        )
    console.print(targets)

    incidents = Table(title=f"Incidents ({snapshot.incident_stats.active_count} active)")
    for column in ("When", "Severity", "Target", "Description"):
        incidents.add_column(column)
    for incident in snapshot.incidents[:10]:
        incidents.add_row(
            incident.timestamp.strftime("%Y-%m-%d %H:%M UTC"),
            incident.severity.value,
            incident.target_name,
            incident.description,
        )
    console.print(incidents)

    if snapshot.failed_target_ids:
        console.print(
            f"[yellow]No health checks for: {', '.join(snapshot.failed_target_ids)}[/yellow]"
        )


async def run(cycles: int = 3) -> None:
    """Poll the API and print the dashboard a few times."""
    config = get_config()
    configure_logging(config.logging)
    console = Console()

    async with MonitoringApiClient(config.api) as client:
        service = DashboardService(client, config)
        coordinator = service.start_polling()
        coordinator.trigger_now()
        try:
            for _ in range(cycles):
                if coordinator.in_flight is not None:
                    await coordinator.in_flight
                if service.snapshot is not None:
                    render_snapshot(service.snapshot, console)
                if service.last_error is not None:
                    console.print(f"[red]Last refresh error:[/red] {service.last_error}")
                await asyncio.sleep(config.refresh.interval_seconds)
        finally:
            coordinator.stop()


def main() -> None:
    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        print("\nDashboard stopped by user")


if __name__ == "__main__":
    main()
