"""
Configuration management with environment variable support and validation.

Design principles:
- Environment-specific configs (dev, staging, prod)
- Validation at startup (fail fast)
- Type safety with Pydantic
- No tokens in code (the API token comes from the environment)
"""

import os
from functools import lru_cache
from typing import Literal, cast

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator, model_validator

# Load environment variables from .env file
load_dotenv()


class ApiConfig(BaseModel):
    """Monitoring API connection settings."""

    base_url: str = Field(default="http://localhost:5000/api", description="Monitoring API base URL")
    token: str | None = Field(default=None, description="Bearer token for the monitoring API")
    timeout_seconds: float = Field(default=10.0, gt=0.0, description="HTTP request timeout")

    targets_path: str = Field(default="/targets", description="Path listing monitored targets")
    health_checks_path: str = Field(
        default="/healthchecks", description="Path listing health checks for one target"
    )
    target_id_param: str = Field(
        default="targetId", description="Query parameter carrying the target id"
    )

    @field_validator("base_url")
    def strip_trailing_slash(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("Monitoring API base URL must start with http:// or https://")
        return v.rstrip("/")


class RefreshConfig(BaseModel):
    """Polling settings for the dashboard."""

    interval_seconds: float = Field(default=30.0, gt=0.0, description="Interval between refreshes")
    enabled: bool = Field(default=True, description="Enable automatic refresh")


class ChartConfig(BaseModel):
    """Chart and drill-down settings."""

    time_range: Literal["7d", "30d", "90d"] = Field(
        default="30d", description="Trailing window for the response-time chart"
    )
    health_check_limit: int = Field(
        default=48, gt=0, le=500, description="Health checks fetched per target"
    )
    collection_timeout_seconds: float = Field(
        default=10.0, gt=0.0, description="Timeout for one target's health check fetch"
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    format: Literal["json", "console"] = Field(default="json", description="Logging format")


class AppConfig(BaseModel):
    """Main application configuration combining all subsystems."""

    environment: Literal["development", "staging", "production"] = Field(
        default="development", description="Environment"
    )
    debug: bool = Field(default=False, description="Enable debug mode")

    api: ApiConfig
    refresh: RefreshConfig
    chart: ChartConfig
    logging: LoggingConfig

    @model_validator(mode="after")
    def debug_only_in_dev(self) -> "AppConfig":
        """Ensure debug mode is only allowed in development environment."""
        if self.debug and self.environment != "development":
            raise ValueError("debug mode is only allowed in development environment")
        return self


def load_config_from_env() -> AppConfig:
    """Load configuration from environment variables with validation."""

    def _env_to_literal(val: str) -> Literal["development", "staging", "production"]:
        v = val.strip().lower()
        if v in {"dev", "development"}:
            return "development"
        if v in {"stage", "staging"}:
            return "staging"
        return "production"

    def _level_to_literal(val: str) -> Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
        v = val.strip().upper()
        return cast(
            Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
            v if v in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"} else "INFO",
        )

    def _range_to_literal(val: str) -> Literal["7d", "30d", "90d"]:
        v = val.strip().lower()
        return cast(Literal["7d", "30d", "90d"], v if v in {"7d", "30d", "90d"} else "30d")

    def _parse_bool(val: str | None, default: bool) -> bool:
        if val is None:
            return default
        return val.strip().lower() in {"1", "true", "yes", "on"}

    # Detect environment
    environment = _env_to_literal(os.getenv("ENVIRONMENT", "development"))
    debug = environment == "development"

    api_config = ApiConfig(
        base_url=os.getenv("MONITORING_API_BASE", "http://localhost:5000/api"),
        token=os.getenv("MONITORING_API_TOKEN") or None,
        timeout_seconds=float(os.getenv("API_TIMEOUT_SECONDS", "10.0")),
    )

    refresh_config = RefreshConfig(
        interval_seconds=float(os.getenv("REFRESH_INTERVAL_SECONDS", "30.0")),
        enabled=_parse_bool(os.getenv("AUTO_REFRESH_ENABLED"), True),
    )

    chart_config = ChartConfig(
        time_range=_range_to_literal(os.getenv("CHART_TIME_RANGE", "30d")),
        health_check_limit=int(os.getenv("HEALTH_CHECK_LIMIT", "48")),
        collection_timeout_seconds=float(os.getenv("COLLECTION_TIMEOUT_SECONDS", "10.0")),
    )

    logging_config = LoggingConfig(
        level=_level_to_literal(os.getenv("LOG_LEVEL", "INFO")),
        format="console" if debug else "json",
    )

    return AppConfig(
        environment=environment,
        debug=debug,
        api=api_config,
        refresh=refresh_config,
        chart=chart_config,
        logging=logging_config,
    )


@lru_cache
def get_config() -> AppConfig:
    """Get cached application configuration."""
    return load_config_from_env()
