"""Adapter for the external monitoring REST API."""

from .client import (
    MonitoringApiClient,
    MonitoringApiError,
    Session,
    SessionExpiredError,
    TargetRegistration,
)
from .normalizer import extract_record_array, normalize_health_check, normalize_target

__all__ = [
    "MonitoringApiClient",
    "MonitoringApiError",
    "Session",
    "SessionExpiredError",
    "TargetRegistration",
    "extract_record_array",
    "normalize_health_check",
    "normalize_target",
]
