"""
Time bucketing of health check records for response-time charts.

The API returns a capped number of recent checks per target, so short windows
need sub-daily buckets; one bucket per day would collapse a recent-heavy
sample into a single flat point.
"""

from collections.abc import Iterable, Sequence
from datetime import datetime, timedelta

from uptime.domain.models import HealthCheckRecord, TimeBucket, as_utc

MS_PER_DAY = 86_400_000
MS_PER_HOUR = 3_600_000

TIME_RANGES: dict[str, int] = {"7d": 7, "30d": 30, "90d": 90}
DEFAULT_TIME_RANGE = "30d"

_ONE_MS = timedelta(milliseconds=1)


def parse_time_range(value: str) -> int:
    """Map a chart range selector ("7d", "30d", "90d") to a window in days."""
    return TIME_RANGES.get(value.strip().lower(), TIME_RANGES[DEFAULT_TIME_RANGE])


def bucket_width_for_window(window_days: int) -> int:
    """Pick a bucket width in milliseconds suited to the window length."""
    if window_days <= 1:
        return MS_PER_HOUR
    if window_days <= 7:
        return 6 * MS_PER_HOUR
    return MS_PER_DAY


def bucket_series(
    records: Iterable[HealthCheckRecord],
    window_days: int,
    bucket_width_ms: int,
    *,
    now: datetime,
) -> list[TimeBucket]:
    """
    Group records into contiguous fixed-width buckets over ``[now - window_days, now]``.

    Naive datetimes (``now`` or record timestamps) are read as UTC.

    Returns exactly ``ceil(window / width)`` buckets, oldest first. Empty buckets
    are kept with ``None`` metrics so the chart has no gaps.

    Raises:
        ValueError: If the window or width is not positive, or the width is
            longer than the window.
    """
    if window_days <= 0:
        raise ValueError(f"window_days must be positive, got {window_days}")
    window_ms = window_days * MS_PER_DAY
    if bucket_width_ms <= 0 or bucket_width_ms > window_ms:
        raise ValueError(
            f"bucket_width_ms must be in (0, {window_ms}], got {bucket_width_ms}"
        )

    now = as_utc(now)
    bucket_count = -(-window_ms // bucket_width_ms)
    window_start = now - timedelta(milliseconds=window_ms)

    samples: list[list[int]] = [[] for _ in range(bucket_count)]
    for record in records:
        timestamp = as_utc(record.timestamp)
        if not window_start <= timestamp <= now:
            continue
        offset_ms = (timestamp - window_start) // _ONE_MS
        index = min(max(offset_ms // bucket_width_ms, 0), bucket_count - 1)
        samples[index].append(record.response_time_ms)

    return [
        TimeBucket(
            bucket_start=window_start + timedelta(milliseconds=i * bucket_width_ms),
            average_response_time_ms=round(sum(values) / len(values)) if values else None,
            max_response_time_ms=max(values) if values else None,
            sample_count=len(values),
        )
        for i, values in enumerate(samples)
    ]


def series_average(buckets: Sequence[TimeBucket]) -> int | None:
    """Rounded mean of the non-empty bucket averages, or None if every bucket is empty."""
    averages = [
        b.average_response_time_ms for b in buckets if b.average_response_time_ms is not None
    ]
    if not averages:
        return None
    return round(sum(averages) / len(averages))


def recent_performance(
    records: Iterable[HealthCheckRecord], limit: int = 48
) -> list[HealthCheckRecord]:
    """
    Series for a single target's drill-down chart.

    Keeps records with a measured response time, oldest first, and returns
    at most the ``limit`` most recent of them.
    """
    measured = sorted(
        (r for r in records if r.response_time_ms > 0), key=lambda r: r.timestamp
    )
    return measured[-limit:] if limit > 0 else []
