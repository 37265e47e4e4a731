"""Enumerations for the grainwatch application."""

from enum import StrEnum


class NotificationBackend(StrEnum):
    TELEGRAM = "telegram"
    SLACK = "slack"


class AlertStoreBackend(StrEnum):
    """Where admitted alerts are kept for the alert API."""

    NONE = "none"
    MEMORY = "memory"
    SQLITE = "sqlite"


class Unit(StrEnum):
    """Measurement units for sensor readings."""

    CELSIUS = "°C"
    PERCENT = "%"


class AlertType(StrEnum):
    """Threshold rule that produced an alert."""

    TEMP_HIGH = "temp_high"  # temperature > high bound
    TEMP_LOW = "temp_low"  # temperature < low bound
    HUMIDITY_HIGH = "humidity_high"
    HUMIDITY_LOW = "humidity_low"
    MOTION = "motion"


class AlertStatus(StrEnum):
    ACTIVE = "active"
    ACKNOWLEDGED = "acknowledged"


class QualityGrade(StrEnum):
    """Grain storage quality grades, best first."""

    EXCELLENT = "EXCELLENT"
    GOOD = "GOOD"
    FAIR = "FAIR"
    POOR = "POOR"
    CRITICAL = "CRITICAL"
    SEVERE = "SEVERE"
