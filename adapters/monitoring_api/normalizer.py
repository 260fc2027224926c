"""
Normalization of monitoring API payloads into domain models.

The backend is not consistent about field names: the primary key may arrive
as ``id`` or ``URLid``, response times as ``responseTime`` or ``latencyMs``.
Each canonical field has an ordered tuple of accepted source keys; the first
key present with a non-null value wins, otherwise a documented default applies.

This is a best-effort adapter, not a validator: nothing here raises on
missing or malformed fields.
"""

import math
from collections.abc import Mapping, Sequence
from datetime import UTC, datetime
from typing import Any

from uptime.domain.models import HealthCheckRecord, MonitoredTarget, TargetStatus, as_utc

EPOCH = datetime(1970, 1, 1, tzinfo=UTC)

DEFAULT_ARRAY_KEYS: tuple[str, ...] = (
    "data",
    "items",
    "urls",
    "targets",
    "logs",
    "healthChecks",
    "results",
)

TARGET_FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "id": ("id", "targetId", "URLid", "urlId"),
    "name": ("name", "displayName", "label"),
    "url": ("url", "URL", "endpoint"),
    "expected_status_code": ("expectedStatusCode", "expectedStatus", "expected_status_code"),
    "timeout_seconds": ("timeoutSeconds", "timeout", "timeout_seconds"),
    "max_latency_ms": ("maxLatencyMs", "maxLatency", "max_latency_ms"),
    "enabled": ("enabled", "isEnabled"),
    "region": ("region",),
    "status": ("status",),
    "last_response_time_ms": ("responseTime", "responseTimeMs", "latencyMs", "lastResponseTime"),
    "uptime_percent": ("uptime", "uptimePercent", "uptime_percent"),
    "last_checked_at": ("lastCheck", "lastCheckedAt", "lastChecked"),
}

HEALTH_CHECK_FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "target_id": ("targetId", "URLid", "urlId", "target_id"),
    "timestamp": ("timestamp", "Timestamp", "checkedAt", "time"),
    "response_time_ms": ("responseTimeMs", "responseTime", "latencyMs", "latency"),
    "status_code": ("statusCode", "status_code", "httpStatus"),
    "is_up": ("isUp", "is_up", "up"),
    "is_slow": ("isSlow", "is_slow", "slow"),
    "error_message": ("errorMessage", "errorMsg", "error"),
}

_TRUE_STRINGS = {"1", "true", "yes", "on", "up"}
_FALSE_STRINGS = {"0", "false", "no", "off", "down"}


def _first_present(raw: Mapping[str, Any], aliases: tuple[str, ...]) -> Any:
    for key in aliases:
        value = raw.get(key)
        if value is not None:
            return value
    return None


def _as_int(value: Any, default: int | None) -> int | None:
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if math.isnan(number) or math.isinf(number):
        return default
    return round(number)


def _as_float(value: Any, default: float) -> float:
    if isinstance(value, bool):
        return default
    if isinstance(value, str):
        value = value.strip().rstrip("%")
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    return default if math.isnan(number) or math.isinf(number) else number


def _as_bool(value: Any, default: bool | None) -> bool | None:
    if isinstance(value, bool):
        return value
    if isinstance(value, int | float):
        return value != 0
    if isinstance(value, str):
        v = value.strip().lower()
        if v in _TRUE_STRINGS:
            return True
        if v in _FALSE_STRINGS:
            return False
    return default


def _as_text(value: Any, default: str | None) -> str | None:
    if value is None:
        return default
    text = str(value).strip()
    return text if text else default


def _as_timestamp(value: Any) -> datetime | None:
    """Parse ISO-8601 strings or epoch seconds/milliseconds into aware UTC datetimes."""
    if isinstance(value, datetime):
        return as_utc(value)
    if isinstance(value, int | float) and not isinstance(value, bool):
        seconds = value / 1000 if abs(value) >= 1e11 else value
        try:
            return datetime.fromtimestamp(seconds, tz=UTC)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            return as_utc(datetime.fromisoformat(text))
        except (OverflowError, ValueError):
            return None
    return None


def _as_status(value: Any) -> TargetStatus:
    if isinstance(value, str):
        for status in TargetStatus:
            if status.value.lower() == value.strip().lower():
                return status
    return TargetStatus.UNKNOWN


def normalize_target(raw: Any) -> MonitoredTarget:
    """Map an arbitrarily-shaped target payload onto ``MonitoredTarget``."""
    if not isinstance(raw, Mapping):
        raw = {}

    def field(name: str) -> Any:
        return _first_present(raw, TARGET_FIELD_ALIASES[name])

    uptime = _as_float(field("uptime_percent"), 0.0)

    return MonitoredTarget(
        id=_as_text(field("id"), "") or "",
        name=_as_text(field("name"), "Unnamed URL") or "Unnamed URL",
        url=_as_text(field("url"), "") or "",
        expected_status_code=_as_int(field("expected_status_code"), 200) or 200,
        timeout_seconds=max(0, _as_int(field("timeout_seconds"), 5) or 0),
        max_latency_ms=max(0, _as_int(field("max_latency_ms"), 3000) or 0),
        enabled=bool(_as_bool(field("enabled"), True)),
        region=_as_text(field("region"), "Unknown") or "Unknown",
        status=_as_status(field("status")),
        last_response_time_ms=max(0, _as_int(field("last_response_time_ms"), 0) or 0),
        uptime_percent=min(100.0, max(0.0, uptime)),
        last_checked_at=_as_timestamp(field("last_checked_at")),
    )


def normalize_health_check(raw: Any, threshold_ms: int | None = None) -> HealthCheckRecord:
    """
    Map an arbitrarily-shaped health check payload onto ``HealthCheckRecord``.

    Args:
        raw: Decoded JSON object for one check.
        threshold_ms: The target's ``max_latency_ms``. Only used to compute
            ``is_slow`` when the backend did not supply it.
    """
    if not isinstance(raw, Mapping):
        raw = {}

    def field(name: str) -> Any:
        return _first_present(raw, HEALTH_CHECK_FIELD_ALIASES[name])

    response_time = max(0, _as_int(field("response_time_ms"), 0) or 0)
    status_code = _as_int(field("status_code"), None)
    error_message = _as_text(field("error_message"), None)

    is_up = _as_bool(field("is_up"), None)
    if is_up is None:
        is_up = status_code < 400 if status_code is not None else error_message is None

    is_slow = _as_bool(field("is_slow"), None)
    if is_slow is None:
        is_slow = threshold_ms is not None and response_time > threshold_ms

    return HealthCheckRecord(
        target_id=_as_text(field("target_id"), "") or "",
        timestamp=_as_timestamp(field("timestamp")) or EPOCH,
        response_time_ms=response_time,
        status_code=status_code,
        is_up=is_up,
        is_slow=is_slow,
        error_message=error_message,
    )


def extract_record_array(
    response: Any, candidate_keys: Sequence[str] = DEFAULT_ARRAY_KEYS
) -> list[Any]:
    """
    Flatten a decoded API response into a list of raw records.

    Handles a bare array, an object wrapping the array under one of
    ``candidate_keys``, and a single bare record (wrapped in a one-element list).
    An empty object carries no record.
    """
    if isinstance(response, list | tuple):
        return list(response)
    if isinstance(response, Mapping):
        for key in candidate_keys:
            value = response.get(key)
            if isinstance(value, list | tuple):
                return list(value)
        return [response] if response else []
    return []
