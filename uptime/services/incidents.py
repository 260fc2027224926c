"""
Incident derivation from health check records.

Incidents are not a backend entity: every failing, slow, or 4xx/5xx check is
turned into an incident entry. Everything here is a pure function of its
inputs, so recomputing from the same records yields identical incidents.
"""

from collections import defaultdict
from collections.abc import Iterable, Mapping, Sequence
from datetime import datetime, timedelta
from itertools import groupby

from uptime.domain.models import (
    HealthCheckRecord,
    Incident,
    IncidentSeverity,
    IncidentStats,
    IncidentStatus,
    MonitoredTarget,
    as_utc,
)

INCIDENT_GROUPS = ("today", "yesterday", "this_week", "older")


def is_incident(record: HealthCheckRecord) -> bool:
    """A record qualifies when it is down, slow, or answered with an HTTP error."""
    return (
        not record.is_up
        or record.is_slow
        or (record.status_code is not None and record.status_code >= 400)
    )


def classify_severity(record: HealthCheckRecord) -> IncidentSeverity:
    if not record.is_up:
        return IncidentSeverity.CRITICAL
    if record.is_slow or (record.status_code is not None and record.status_code >= 400):
        return IncidentSeverity.WARNING
    return IncidentSeverity.INFO


def _describe(record: HealthCheckRecord, target: MonitoredTarget | None) -> str:
    if record.error_message:
        return record.error_message
    if record.is_slow:
        if target is not None:
            return (
                f"Response time {record.response_time_ms}ms exceeded the "
                f"{target.max_latency_ms}ms threshold"
            )
        return f"Response time {record.response_time_ms}ms exceeded the configured threshold"
    if record.status_code is not None:
        return f"Received HTTP {record.status_code}"
    return "Health check failed"


def _title(record: HealthCheckRecord, target_name: str) -> str:
    if not record.is_up:
        return f"{target_name} is down"
    if record.is_slow:
        return f"High response time on {target_name}"
    return f"HTTP {record.status_code} from {target_name}"


def _next_healthy_timestamps(
    records: Sequence[HealthCheckRecord],
) -> dict[int, datetime | None]:
    """For every failing record (by input position), the first later healthy check of its target."""
    by_target: dict[str, list[int]] = defaultdict(list)
    for position, record in enumerate(records):
        by_target[record.target_id].append(position)

    resolved: dict[int, datetime | None] = {}
    for positions in by_target.values():
        positions.sort(key=lambda p: records[p].timestamp, reverse=True)
        next_healthy: datetime | None = None
        # Walk newest to oldest one instant at a time; resolution must be strictly later
        for timestamp, same_instant in groupby(positions, key=lambda p: records[p].timestamp):
            healthy_here = False
            for position in same_instant:
                if is_incident(records[position]):
                    resolved[position] = next_healthy
                else:
                    healthy_here = True
            if healthy_here:
                next_healthy = timestamp
    return resolved


def derive_incidents(
    records: Iterable[HealthCheckRecord],
    targets_by_id: Mapping[str, MonitoredTarget],
) -> list[Incident]:
    """
    Convert qualifying records into incidents, newest first.

    Ties on timestamp keep their input order. Records for targets missing
    from ``targets_by_id`` fall back to the raw id as the display name and
    have no affected URL.
    """
    ordered = list(records)
    resolutions = _next_healthy_timestamps(ordered)

    incidents: list[Incident] = []
    for position, record in enumerate(ordered):
        if not is_incident(record):
            continue

        target = targets_by_id.get(record.target_id)
        target_id = record.target_id or "unknown"
        target_name = target.name if target is not None else target_id

        incidents.append(
            Incident(
                id=f"{target_id}-{record.timestamp.isoformat()}-{position}",
                target_id=record.target_id,
                target_name=target_name,
                target_url=target.url if target is not None else "",
                severity=classify_severity(record),
                title=_title(record, target_name),
                timestamp=record.timestamp,
                description=_describe(record, target),
                status_code=record.status_code,
                response_time_ms=record.response_time_ms,
                error_message=record.error_message,
                resolved_at=resolutions.get(position),
            )
        )

    # list.sort is stable with reverse=True, so equal timestamps keep input order
    incidents.sort(key=lambda incident: incident.timestamp, reverse=True)
    return incidents


def filter_incidents(
    incidents: Iterable[Incident],
    severity: IncidentSeverity | None = None,
    status: IncidentStatus | None = None,
) -> list[Incident]:
    """Filter by severity and/or status; ``None`` means "all"."""
    return [
        incident
        for incident in incidents
        if (severity is None or incident.severity == severity)
        and (status is None or incident.status == status)
    ]


def group_incidents_by_date(
    incidents: Iterable[Incident], *, now: datetime
) -> dict[str, list[Incident]]:
    """
    Group incidents for the timeline: today, yesterday, the trailing week, and older.

    Days are UTC calendar days; a naive ``now`` is read as UTC. Input order is
    preserved within each group.
    """
    now = as_utc(now)
    today = now.date()
    yesterday = today - timedelta(days=1)
    week_ago = now - timedelta(days=7)

    groups: dict[str, list[Incident]] = {name: [] for name in INCIDENT_GROUPS}
    for incident in incidents:
        moment = as_utc(incident.timestamp)
        day = moment.date()
        if day == today:
            groups["today"].append(incident)
        elif day == yesterday:
            groups["yesterday"].append(incident)
        elif moment >= week_ago:
            groups["this_week"].append(incident)
        else:
            groups["older"].append(incident)
    return groups


def incident_stats(incidents: Sequence[Incident], *, now: datetime) -> IncidentStats:
    """Counters for the incident view. Defined for an empty list."""
    now = as_utc(now)
    week_ago = now - timedelta(days=7)
    resolved = [
        (as_utc(i.timestamp), as_utc(i.resolved_at)) for i in incidents if i.resolved_at is not None
    ]

    mttr_hours = 0
    if resolved:
        total_hours = sum((end - start).total_seconds() / 3600 for start, end in resolved)
        mttr_hours = round(total_hours / len(resolved))

    return IncidentStats(
        active_count=sum(1 for i in incidents if i.status == "active"),
        resolved_today=sum(1 for _, end in resolved if end.date() == now.date()),
        total_this_week=sum(1 for i in incidents if as_utc(i.timestamp) >= week_ago),
        mean_time_to_resolve_hours=mttr_hours,
    )
