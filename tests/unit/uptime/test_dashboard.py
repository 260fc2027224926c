"""
End-to-end tests for the dashboard service against a mocked monitoring API.
"""

import json
from datetime import UTC, datetime, timedelta
from typing import Any

import httpx
import pytest
from rich.console import Console

from adapters.monitoring_api.client import (
    MonitoringApiClient,
    MonitoringApiError,
    TargetRegistration,
)
from uptime.config import ApiConfig, AppConfig, ChartConfig, LoggingConfig, RefreshConfig
from uptime.domain.models import HealthCheckRecord, MonitoredTarget
from uptime.services.dashboard import DashboardService, build_snapshot, render_snapshot
from uptime.services.refresh import RefreshState

NOW = datetime(2024, 1, 10, 12, tzinfo=UTC)
BASE_URL = "http://monitor.test/api"


def iso(moment: datetime) -> str:
    return moment.isoformat().replace("+00:00", "Z")


class FakeMonitoringApi:
    """In-memory backend served through httpx.MockTransport."""

    def __init__(self) -> None:
        self.targets: list[dict[str, Any]] = [
            {"URLid": "api", "name": "API", "url": "https://api.example.com", "status": "Up",
             "responseTime": 120, "uptime": 99.5, "maxLatencyMs": 500},
            {"URLid": "web", "name": "Web", "url": "https://www.example.com", "status": "Down",
             "responseTime": 0, "uptime": 80},
        ]
        self.health_checks: dict[str, list[dict[str, Any]]] = {
            "api": [
                {"timestamp": iso(NOW - timedelta(hours=2)), "responseTime": 900,
                 "statusCode": 503},
                {"timestamp": iso(NOW - timedelta(hours=1)), "responseTime": 110,
                 "statusCode": 200},
            ],
        }
        self.targets_status = 200
        self.post_status = 201
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path == "/api/targets":
            if request.method == "POST":
                if self.post_status != 201:
                    return httpx.Response(
                        self.post_status, json={"message": "URL already monitored"}
                    )
                self.targets.append({**json.loads(request.content), "status": "Up"})
                return httpx.Response(201, json={"message": "created"})
            if self.targets_status != 200:
                return httpx.Response(self.targets_status, json={"message": "backend down"})
            return httpx.Response(200, json={"data": self.targets})

        target_id = request.url.params["targetId"]
        if target_id not in self.health_checks:
            return httpx.Response(500, json={"message": f"no logs for {target_id}"})
        return httpx.Response(200, json=self.health_checks[target_id])


def make_config(**chart: Any) -> AppConfig:
    return AppConfig(
        api=ApiConfig(base_url=BASE_URL),
        refresh=RefreshConfig(interval_seconds=30.0, enabled=False),
        chart=ChartConfig(**chart),
        logging=LoggingConfig(),
    )


@pytest.fixture
def backend() -> FakeMonitoringApi:
    return FakeMonitoringApi()


@pytest.fixture
async def service(backend: FakeMonitoringApi):
    config = make_config()
    http_client = httpx.AsyncClient(base_url=BASE_URL, transport=httpx.MockTransport(backend))
    async with MonitoringApiClient(config.api, http_client=http_client) as client:
        yield DashboardService(client, config, clock=lambda: NOW)


class TestRefresh:
    async def test_refresh_builds_snapshot(self, service: DashboardService) -> None:
        result = await service.refresh()

        snapshot = result.unwrap()
        assert service.snapshot is snapshot
        assert [t.id for t in snapshot.targets] == ["api", "web"]
        assert snapshot.summary.total_count == 2
        assert snapshot.summary.active_count == 1
        assert snapshot.window_days == 30
        assert len(snapshot.series) == 30
        assert sum(b.sample_count for b in snapshot.series) == 2
        assert snapshot.refreshed_at == NOW

        assert len(snapshot.incidents) == 1
        incident = snapshot.incidents[0]
        assert incident.target_name == "API"
        assert incident.status == "resolved"
        assert incident.resolved_at == NOW - timedelta(hours=1)

    async def test_partial_failure_still_publishes(self, service: DashboardService) -> None:
        snapshot = (await service.refresh()).unwrap()

        assert snapshot.failed_target_ids == ["web"]
        assert isinstance(service.last_error, MonitoringApiError)
        assert "no logs for web" in str(service.last_error)

    async def test_failed_refresh_keeps_stale_snapshot(
        self, service: DashboardService, backend: FakeMonitoringApi
    ) -> None:
        first = (await service.refresh()).unwrap()

        backend.targets_status = 500
        result = await service.refresh()

        assert result.is_err()
        assert service.snapshot is first
        assert service.last_error is result.unwrap_err()

    async def test_time_range_changes_bucket_layout(self, service: DashboardService) -> None:
        service.set_time_range("7d")

        snapshot = (await service.refresh()).unwrap()

        assert snapshot.window_days == 7
        assert len(snapshot.series) == 28


class TestTargetOperations:
    async def test_add_target_then_refresh(
        self, service: DashboardService, backend: FakeMonitoringApi
    ) -> None:
        registration = TargetRegistration(
            name="Docs", url="https://docs.example.com", target_id="docs"
        )

        snapshot = (await service.add_target(registration)).unwrap()

        assert [r.method for r in backend.requests][0] == "POST"
        assert "docs" in [t.id for t in snapshot.targets]

    async def test_add_target_failure_skips_refresh(
        self, service: DashboardService, backend: FakeMonitoringApi
    ) -> None:
        backend.post_status = 400

        result = await service.add_target(
            TargetRegistration(name="API", url="https://api.example.com")
        )

        assert "URL already monitored" in str(result.unwrap_err())
        assert len(backend.requests) == 1
        assert service.snapshot is None

    async def test_target_performance(
        self, service: DashboardService, backend: FakeMonitoringApi
    ) -> None:
        backend.health_checks["api"].append(
            {"timestamp": iso(NOW), "responseTime": 0, "errorMessage": "Connection timeout"}
        )
        target = MonitoredTarget(id="api", name="API", url="https://api.example.com")

        series = (await service.target_performance(target)).unwrap()

        assert [r.response_time_ms for r in series] == [900, 110]

    async def test_start_polling_uses_refresh_config(self, service: DashboardService) -> None:
        coordinator = service.start_polling()
        try:
            assert coordinator.state == RefreshState.IDLE
            assert coordinator.interval_seconds == 30.0
            assert coordinator.trigger_now() is True
            await coordinator.in_flight
            assert service.snapshot is not None
            assert coordinator.last_refreshed_at == NOW
        finally:
            coordinator.stop()


class TestBuildSnapshot:
    def test_empty_inputs(self) -> None:
        snapshot = build_snapshot([], [], window_days=7, now=NOW)

        assert snapshot.summary.total_count == 0
        assert snapshot.incidents == []
        assert len(snapshot.series) == 28
        assert all(b.sample_count == 0 for b in snapshot.series)

    def test_render_snapshot(self) -> None:
        targets = [MonitoredTarget(id="api", name="Payments API", url="https://pay.example.com")]
        records = [
            HealthCheckRecord(
                target_id="api", timestamp=NOW, response_time_ms=5, is_up=False, status_code=502
            )
        ]
        snapshot = build_snapshot(
            targets, records, window_days=7, now=NOW, failed_target_ids=["web"]
        )
        console = Console(record=True, width=160)

        render_snapshot(snapshot, console)

        output = console.export_text()
        assert "Payments API" in output
        assert "Received HTTP 502" in output
        assert "No health checks for: web" in output
