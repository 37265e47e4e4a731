"""Domain model for device sensor readings."""

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any


def as_utc(value: datetime) -> datetime:
    """Return an aware UTC datetime, treating naive values as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def isoformat(value: datetime) -> str:
    """Format a datetime the way the dashboard expects (ISO 8601, ms, Z)."""
    return as_utc(value).isoformat(timespec="milliseconds").replace(
        "+00:00", "Z"
    )


@dataclass(frozen=True, slots=True)
class Reading:
    """One timestamped sample from a device."""

    device_id: str
    temperature: float
    humidity: float
    motion: bool
    timestamp: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "deviceId": self.device_id,
            "temperature": self.temperature,
            "humidity": self.humidity,
            "motion": self.motion,
            "timestamp": isoformat(self.timestamp),
            "epoch": int(self.timestamp.timestamp() * 1000),
        }
