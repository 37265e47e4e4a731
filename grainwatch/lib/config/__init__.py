"""Centralized configuration for the grainwatch application.

This package provides:
- Enums for alert types, quality grades, and pluggable backends
- Pydantic settings models for configuration
- Shared constants for history, cooldown and quality trend analysis
"""

from .constants import (
    ALERT_COOLDOWN_SEC,
    COOLDOWN_COMPACTION_THRESHOLD,
    DHT22_BOUNDS,
    HISTORY_CAPACITY,
    HISTORY_MAX_DEVICES,
    QUALITY_TREND_DELTA,
    QUALITY_TREND_WINDOW,
)
from .enums import (
    AlertStatus,
    AlertStoreBackend,
    AlertType,
    NotificationBackend,
    QualityGrade,
    Unit,
)
from .settings import (
    AlertSettings,
    AlertStoreSettings,
    HistorySettings,
    NotificationSettings,
    ServerSettings,
    Settings,
    SlackSettings,
    TelegramSettings,
    ThresholdSettings,
    get_settings,
)

__all__ = [
    # Enums
    "AlertStatus",
    "AlertStoreBackend",
    "AlertType",
    "NotificationBackend",
    "QualityGrade",
    "Unit",
    # Settings models
    "AlertSettings",
    "AlertStoreSettings",
    "HistorySettings",
    "NotificationSettings",
    "ServerSettings",
    "Settings",
    "SlackSettings",
    "TelegramSettings",
    "ThresholdSettings",
    # Constants
    "ALERT_COOLDOWN_SEC",
    "COOLDOWN_COMPACTION_THRESHOLD",
    "DHT22_BOUNDS",
    "HISTORY_CAPACITY",
    "HISTORY_MAX_DEVICES",
    "QUALITY_TREND_DELTA",
    "QUALITY_TREND_WINDOW",
    # Functions
    "get_settings",
]
