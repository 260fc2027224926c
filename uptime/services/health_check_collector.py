"""
Parallel health check collection across monitored targets.

Key patterns:
- Protocol-based dependency injection (any object with ``fetch_health_checks``)
- Generic Result type for expected failures
- Structured concurrency with asyncio.TaskGroup
- Partial failures degrade to empty record sets instead of failing the batch
"""

import asyncio
import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Protocol

import structlog
from pydantic import BaseModel, Field

from uptime.domain.models import HealthCheckRecord, MonitoredTarget
from uptime.result import Result

logger = structlog.get_logger(__name__)


class HealthCheckSource(Protocol):
    """
    Anything that can fetch recent health checks for one target.

    The monitoring API only serves health checks per target id, so a
    dashboard-wide view needs one call per target.
    """

    async def fetch_health_checks(
        self, target: MonitoredTarget, limit: int
    ) -> Result[list[HealthCheckRecord], Exception]: ...


class CollectorConfig(BaseModel):
    """Configuration with validation and smart defaults."""

    limit_per_target: int = Field(
        default=48, gt=0, description="Health checks requested per target."
    )
    timeout_seconds: float = Field(
        default=10.0, gt=0.0, description="Timeout for one target's fetch in seconds."
    )


@dataclass
class BatchCollection:
    """Outcome of one collection pass over many targets."""

    records_by_target: dict[str, list[HealthCheckRecord]] = field(default_factory=dict)
    failed_target_ids: list[str] = field(default_factory=list)
    first_error: Exception | None = None

    @property
    def records(self) -> list[HealthCheckRecord]:
        return [record for records in self.records_by_target.values() for record in records]

    @property
    def is_partial(self) -> bool:
        return bool(self.failed_target_ids)


class HealthCheckCollector:
    """
    Fetches health checks for many targets concurrently.

    Design principles:
    - All-complete barrier: every target finishes (or times out) before returning
    - Graceful degradation: a failing target contributes an empty list
    - Observable: the first failure is surfaced once, the rest are logged
    """

    def __init__(self, source: HealthCheckSource, config: CollectorConfig | None = None) -> None:
        self.source = source
        self.config = config or CollectorConfig()
        self.logger = logger.bind(component="health_check_collector")

    async def _fetch_one(self, target: MonitoredTarget) -> Result[list[HealthCheckRecord], Exception]:
        try:
            return await asyncio.wait_for(
                self.source.fetch_health_checks(target, self.config.limit_per_target),
                timeout=self.config.timeout_seconds,
            )
        except TimeoutError:
            return Result.err(
                TimeoutError(f"Timed out fetching health checks for {target.id}")
            )
        except Exception as e:
            return Result.err(e)

    async def collect(self, targets: Sequence[MonitoredTarget]) -> BatchCollection:
        """Collect health checks for every target; never raises for a member failure."""
        start_time = time.perf_counter()
        batch = BatchCollection()

        async with asyncio.TaskGroup() as task_group:
            tasks = [
                (target, task_group.create_task(self._fetch_one(target))) for target in targets
            ]

        for target, task in tasks:
            result = task.result()
            # Targets sharing an id accumulate into one list rather than replacing each other
            collected = batch.records_by_target.setdefault(target.id, [])
            if result.is_ok():
                collected.extend(result.unwrap())
                continue

            error = result.unwrap_err()
            batch.failed_target_ids.append(target.id)
            if batch.first_error is None:
                batch.first_error = error
            self.logger.warning(
                "target_collection_failed", target_id=target.id, error=str(error)
            )

        self.logger.info(
            "health_check_collection_completed",
            total_records=len(batch.records),
            successful_targets=len(tasks) - len(batch.failed_target_ids),
            total_targets=len(tasks),
            duration_seconds=round(time.perf_counter() - start_time, 3),
        )
        return batch
