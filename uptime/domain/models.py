"""
Domain models for the uptime monitoring dashboard.

These models represent the core business concepts and are framework-agnostic.
Source records (targets, health checks) are frozen: the dashboard only ever
replaces them wholesale from the next fetch.
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, computed_field


class TargetStatus(str, Enum):
    """Observed status of a monitored target."""

    UP = "Up"
    DOWN = "Down"
    WARNING = "Warning"
    UNKNOWN = "Unknown"


class IncidentSeverity(str, Enum):
    """Severity levels for synthesized incidents."""

    CRITICAL = "critical"
    WARNING = "warning"
    INFO = "info"


IncidentStatus = Literal["active", "resolved"]


def as_utc(moment: datetime) -> datetime:
    """Convert to UTC, reading a naive datetime as already being UTC."""
    return moment.astimezone(UTC) if moment.tzinfo else moment.replace(tzinfo=UTC)


class MonitoredTarget(BaseModel):
    """A single endpoint under observation, with its check configuration."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    url: str
    expected_status_code: int = 200
    timeout_seconds: int = Field(default=5, ge=0)
    max_latency_ms: int = Field(default=3000, ge=0)
    enabled: bool = True
    region: str = "Unknown"

    # Observed by the backend
    status: TargetStatus = TargetStatus.UNKNOWN
    last_response_time_ms: int = Field(default=0, ge=0)
    uptime_percent: float = Field(default=0.0, ge=0.0, le=100.0)
    last_checked_at: datetime | None = Field(default=None, description="None means never checked")


class HealthCheckRecord(BaseModel):
    """One observed check result for a target."""

    model_config = ConfigDict(frozen=True)

    target_id: str
    timestamp: datetime
    response_time_ms: int = Field(default=0, ge=0)
    status_code: int | None = None
    is_up: bool = True
    is_slow: bool = False
    error_message: str | None = None


class TimeBucket(BaseModel):
    """One point of a chart series."""

    bucket_start: datetime
    average_response_time_ms: int | None = None
    max_response_time_ms: int | None = None
    sample_count: int = Field(default=0, ge=0)


class Incident(BaseModel):
    """Alert synthesized from a failing health check record."""

    id: str
    target_id: str
    target_name: str
    target_url: str
    severity: IncidentSeverity
    title: str
    timestamp: datetime
    description: str
    status_code: int | None = None
    response_time_ms: int | None = None
    error_message: str | None = None

    # Set when a later check for the same target came back healthy
    resolved_at: datetime | None = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def status(self) -> IncidentStatus:
        return "resolved" if self.resolved_at is not None else "active"

    @computed_field  # type: ignore[prop-decorator]
    @property
    def affected_urls(self) -> list[str]:
        return [self.target_url] if self.target_url else []


class SummaryStats(BaseModel):
    """At-a-glance statistics over the current target set."""

    total_count: int = 0
    active_count: int = 0
    down_count: int = 0
    warning_count: int = 0
    average_response_time_ms: int = 0
    active_percent: float = 0.0
    average_uptime_percent: int = 0


class IncidentStats(BaseModel):
    """Counters shown above the incident timeline."""

    active_count: int = 0
    resolved_today: int = 0
    total_this_week: int = 0
    mean_time_to_resolve_hours: int = 0


class DashboardSnapshot(BaseModel):
    """Everything the dashboard renders, recomputed on every refresh."""

    targets: list[MonitoredTarget]
    summary: SummaryStats
    series: list[TimeBucket]
    incidents: list[Incident]
    incident_stats: IncidentStats
    window_days: int = Field(gt=0)
    failed_target_ids: list[str] = Field(default_factory=list)
    refreshed_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
