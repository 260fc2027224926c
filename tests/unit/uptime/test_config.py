"""
Tests for configuration management in `uptime/config.py`.

Covers:
- Environment parsing and debug defaults
- Logging level and chart range coercion to the expected Literals
- Auto refresh boolean parsing
- API base URL validation
- get_config cache behavior
- AppConfig validation (debug only allowed in development)
"""

from __future__ import annotations

from collections.abc import Iterator

import pytest

from uptime.config import (
    ApiConfig,
    AppConfig,
    ChartConfig,
    LoggingConfig,
    RefreshConfig,
    get_config,
    load_config_from_env,
)


@pytest.fixture(autouse=True)
def clear_config_cache() -> Iterator[None]:
    """Ensure get_config cache is cleared before and after each test."""
    get_config.cache_clear()
    yield
    get_config.cache_clear()


def test_load_config_dev_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ENVIRONMENT", "development")
    for name in ("LOG_LEVEL", "AUTO_REFRESH_ENABLED", "CHART_TIME_RANGE", "MONITORING_API_TOKEN"):
        monkeypatch.delenv(name, raising=False)

    config = load_config_from_env()

    assert config.environment == "development"
    assert config.debug is True
    assert config.logging.format == "console"
    assert config.refresh.enabled is True
    assert config.chart.time_range == "30d"
    assert config.api.token is None


def test_production_uses_json_logging(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ENVIRONMENT", "prod")

    config = load_config_from_env()

    assert config.environment == "production"
    assert config.debug is False
    assert config.logging.format == "json"


def test_api_settings_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MONITORING_API_BASE", "https://monitor.example.com/api/")
    monkeypatch.setenv("MONITORING_API_TOKEN", "token-123")
    monkeypatch.setenv("API_TIMEOUT_SECONDS", "2.5")

    config = load_config_from_env()

    assert config.api.base_url == "https://monitor.example.com/api"
    assert config.api.token == "token-123"
    assert config.api.timeout_seconds == 2.5


def test_auto_refresh_boolean_parsing(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("AUTO_REFRESH_ENABLED", "false")
    assert load_config_from_env().refresh.enabled is False

    monkeypatch.setenv("AUTO_REFRESH_ENABLED", "1")
    assert load_config_from_env().refresh.enabled is True


def test_refresh_interval_and_limit(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("REFRESH_INTERVAL_SECONDS", "15")
    monkeypatch.setenv("HEALTH_CHECK_LIMIT", "100")

    config = load_config_from_env()

    assert config.refresh.interval_seconds == 15.0
    assert config.chart.health_check_limit == 100


def test_literal_coercion(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ENVIRONMENT", "staging")

    # Unknown values fall back to the defaults
    monkeypatch.setenv("LOG_LEVEL", "unknown")
    monkeypatch.setenv("CHART_TIME_RANGE", "1y")
    config = load_config_from_env()
    assert config.logging.level == "INFO"
    assert config.chart.time_range == "30d"

    monkeypatch.setenv("LOG_LEVEL", "error")
    monkeypatch.setenv("CHART_TIME_RANGE", "7D")
    config = load_config_from_env()
    assert config.logging.level == "ERROR"
    assert config.chart.time_range == "7d"


def test_base_url_requires_http_scheme() -> None:
    with pytest.raises(ValueError, match="http"):
        ApiConfig(base_url="ftp://monitor.example.com")


def test_get_config_cache(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ENVIRONMENT", "development")

    c1 = get_config()
    c2 = get_config()
    assert c1 is c2  # same object due to lru_cache


def test_app_config_debug_only_in_dev_validation() -> None:
    with pytest.raises(ValueError, match="debug mode is only allowed"):
        AppConfig(
            environment="production",
            debug=True,
            api=ApiConfig(),
            refresh=RefreshConfig(),
            chart=ChartConfig(),
            logging=LoggingConfig(),
        )
