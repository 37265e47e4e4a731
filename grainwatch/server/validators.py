"""Request validation models."""

from datetime import UTC, datetime, timedelta
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
)

from grainwatch.lib.config import DHT22_BOUNDS, AlertStatus, Unit
from grainwatch.lib.reading import Reading, as_utc

# Extract bounds for cleaner Field definitions
TEMP_MIN, TEMP_MAX = DHT22_BOUNDS[Unit.CELSIUS]
HUM_MIN, HUM_MAX = DHT22_BOUNDS[Unit.PERCENT]

DEVICE_ID_MAX_LENGTH = 64
MAX_ALERT_LIMIT = 500
DEFAULT_CLEAR_DAYS = 7

REQUIRED_SENSOR_FIELDS = ("device_id", "sensors")


class SensorBlock(BaseModel):
    """Sensor values reported by the device."""

    temperature: float = Field(ge=TEMP_MIN, le=TEMP_MAX)
    humidity: float = Field(ge=HUM_MIN, le=HUM_MAX)
    motion: bool = False

    @field_validator("motion", mode="before")
    @classmethod
    def null_motion_is_false(cls, v: Any) -> Any:
        return False if v is None else v


class SensorPayload(BaseModel):
    """Body of a device reading upload."""

    device_id: str = Field(min_length=1, max_length=DEVICE_ID_MAX_LENGTH)
    sensors: SensorBlock
    timestamp: datetime | None = None

    def to_reading(self, received_at: datetime) -> Reading:
        """Build a reading, stamping it with the receive time if needed."""
        return Reading(
            device_id=self.device_id,
            temperature=self.sensors.temperature,
            humidity=self.sensors.humidity,
            motion=self.sensors.motion,
            timestamp=as_utc(self.timestamp or received_at),
        )


def missing_sensor_fields(data: Any) -> list[str]:
    """Return the required top-level fields that are absent or empty."""
    if not isinstance(data, dict):
        return list(REQUIRED_SENSOR_FIELDS)
    return [
        name
        for name in REQUIRED_SENSOR_FIELDS
        if data.get(name) in (None, "")
    ]


class AlertsQuery(BaseModel):
    """Validated alert listing query parameters."""

    device_id: str | None = Field(None, max_length=DEVICE_ID_MAX_LENGTH)
    status: AlertStatus | None = None
    limit: int = Field(default=50, ge=1, le=MAX_ALERT_LIMIT)


class AcknowledgeRequest(BaseModel):
    """Body of an alert acknowledgement."""

    model_config = ConfigDict(populate_by_name=True)

    acknowledged_by: str = Field(
        default="user", alias="acknowledgedBy", min_length=1, max_length=64
    )


class ClearAlertsQuery(BaseModel):
    """Validated alert cleanup query parameters."""

    days: int = Field(default=DEFAULT_CLEAR_DAYS, ge=0, le=3650)

    @property
    def older_than(self) -> timedelta:
        return timedelta(days=self.days)


class ThresholdUpdate(BaseModel):
    """Partial threshold update. Only provided fields are changed."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    temperature_high: float | None = Field(
        None, alias="temperatureHigh", ge=TEMP_MIN, le=TEMP_MAX
    )
    temperature_low: float | None = Field(
        None, alias="temperatureLow", ge=TEMP_MIN, le=TEMP_MAX
    )
    humidity_high: float | None = Field(
        None, alias="humidityHigh", ge=HUM_MIN, le=HUM_MAX
    )
    humidity_low: float | None = Field(
        None, alias="humidityLow", ge=HUM_MIN, le=HUM_MAX
    )
    motion_detection: bool | None = Field(None, alias="motionDetection")

    def changes(self) -> dict[str, Any]:
        """Fields the client actually sent, by attribute name."""
        return self.model_dump(exclude_none=True)


def format_errors(error: ValidationError) -> list[str]:
    """Flatten pydantic errors into `path: message` strings."""
    return [
        f"{'.'.join(str(x) for x in err['loc'])}: {err['msg']}"
        for err in error.errors()
    ]


def utcnow() -> datetime:
    return datetime.now(UTC)
