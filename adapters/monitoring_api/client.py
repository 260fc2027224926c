"""
HTTP client for the external monitoring API.

Every call returns a ``Result``: transport failures and non-2xx answers are
expected outcomes for a dashboard, not exceptions. A 401/403 is reported as
``SessionExpiredError`` so the host application can send the user back to
sign-in; it is never retried here.
"""

import re
import time
from dataclasses import dataclass
from typing import Any

import httpx
import structlog
from pydantic import BaseModel, Field

from adapters.monitoring_api.normalizer import (
    extract_record_array,
    normalize_health_check,
    normalize_target,
)
from uptime.config import ApiConfig
from uptime.domain.models import HealthCheckRecord, MonitoredTarget
from uptime.result import Result

logger = structlog.get_logger(__name__)


class MonitoringApiError(Exception):
    """The monitoring API could not be reached or answered with an error status."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class SessionExpiredError(MonitoringApiError):
    """The bearer token was rejected (401/403)."""


@dataclass(frozen=True)
class Session:
    """Identity-provider session passed explicitly into the fetch boundary."""

    token: str | None = None

    def auth_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"} if self.token else {}


def _slugify(name: str) -> str:
    return re.sub(r"\s+", "-", name.strip().lower())


class TargetRegistration(BaseModel):
    """Fields accepted when registering a new target."""

    name: str = Field(min_length=1)
    url: str = Field(pattern=r"^https?://")
    region: str = "ap-south-1"
    expected_status_code: int = Field(default=200, ge=100, lt=600)
    max_latency_ms: int = Field(default=3000, gt=0)
    timeout_seconds: int = Field(default=5, gt=0)
    enabled: bool = True
    target_id: str | None = Field(
        default=None, description="Generated from the name and current time when omitted"
    )

    def to_payload(self, now_ms: int | None = None) -> dict[str, Any]:
        """Wire format expected by the API (camelCase keys)."""
        target_id = self.target_id or (
            f"{_slugify(self.name)}-{now_ms if now_ms is not None else int(time.time() * 1000)}"
        )
        return {
            "URLid": target_id,
            "name": self.name,
            "url": self.url,
            "region": self.region,
            "enabled": self.enabled,
            "expectedStatus": self.expected_status_code,
            "maxLatencyMs": self.max_latency_ms,
            "timeoutSeconds": self.timeout_seconds,
        }


class MonitoringApiClient:
    """
    Async client for targets and health checks.

    Also satisfies the ``HealthCheckSource`` protocol, so it can be handed
    straight to ``HealthCheckCollector``.
    """

    def __init__(
        self,
        config: ApiConfig,
        session: Session | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.config = config
        self.session = session or Session(token=config.token)
        self._client = http_client or httpx.AsyncClient(
            base_url=config.base_url, timeout=config.timeout_seconds
        )
        self.logger = logger.bind(component="monitoring_api_client", base_url=config.base_url)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "MonitoringApiClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> Result[Any, MonitoringApiError]:
        headers = {"Content-Type": "application/json", **self.session.auth_headers()}
        try:
            response = await self._client.request(
                method, path, params=params, json=json, headers=headers
            )
        except httpx.HTTPError as e:
            self.logger.warning("api_request_failed", method=method, path=path, error=str(e))
            return Result.err(MonitoringApiError(f"{method} {path} failed: {e}"))

        if response.status_code in (401, 403):
            self.logger.warning("api_session_expired", path=path, status=response.status_code)
            return Result.err(
                SessionExpiredError("Session expired", status_code=response.status_code)
            )

        if response.is_error:
            message = response.reason_phrase or "API request failed"
            try:
                body = response.json()
                if isinstance(body, dict) and body.get("message"):
                    message = str(body["message"])
            except ValueError:
                pass
            self.logger.warning(
                "api_error_response", method=method, path=path, status=response.status_code
            )
            return Result.err(
                MonitoringApiError(
                    f"API Error: {response.status_code} {message}",
                    status_code=response.status_code,
                )
            )

        # An empty or null body means "no records"
        if not response.content:
            return Result.ok([])
        try:
            body = response.json()
        except ValueError as e:
            return Result.err(MonitoringApiError(f"{method} {path} returned invalid JSON: {e}"))
        return Result.ok(body if body is not None else [])

    async def list_targets(self) -> Result[list[MonitoredTarget], MonitoringApiError]:
        result = await self._request("GET", self.config.targets_path)
        if result.is_err():
            return Result.err(result.unwrap_err())

        targets = [normalize_target(raw) for raw in extract_record_array(result.unwrap())]
        self.logger.info("targets_fetched", count=len(targets))
        return Result.ok(targets)

    async def list_health_checks(
        self, target_id: str, limit: int | None = None, threshold_ms: int | None = None
    ) -> Result[list[HealthCheckRecord], MonitoringApiError]:
        params: dict[str, Any] = {self.config.target_id_param: target_id}
        if limit is not None:
            params["limit"] = limit

        result = await self._request("GET", self.config.health_checks_path, params=params)
        if result.is_err():
            return Result.err(result.unwrap_err())

        # The query is scoped to one target, so its id wins over whatever the row carries
        records = [
            normalize_health_check(raw, threshold_ms=threshold_ms).model_copy(
                update={"target_id": target_id}
            )
            for raw in extract_record_array(result.unwrap())
        ]
        return Result.ok(records)

    async def fetch_health_checks(
        self, target: MonitoredTarget, limit: int
    ) -> Result[list[HealthCheckRecord], MonitoringApiError]:
        return await self.list_health_checks(
            target.id, limit=limit, threshold_ms=target.max_latency_ms
        )

    async def add_target(
        self, registration: TargetRegistration
    ) -> Result[dict[str, Any], MonitoringApiError]:
        payload = registration.to_payload()
        result = await self._request("POST", self.config.targets_path, json=payload)
        if result.is_err():
            return Result.err(result.unwrap_err())

        self.logger.info("target_registered", target_id=payload["URLid"])
        body = result.unwrap()
        return Result.ok(body if isinstance(body, dict) else {})
