"""Threshold evaluation and alert deduplication.

`evaluate` turns a reading into candidate alerts against the current
thresholds. It is a pure function: no clock, no ids, no side effects.

`CooldownGate` suppresses repeat alerts of the same (device, alert type)
pair inside a cooldown window so a device sitting above a threshold does
not spam the notification channel on every reading.

Thread-safe: the gate's check-and-set runs under a lock so two concurrent
ingress requests cannot both admit the same key.
"""

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from grainwatch.lib.config import (
    ALERT_COOLDOWN_SEC,
    COOLDOWN_COMPACTION_THRESHOLD,
    AlertStatus,
    AlertType,
    Unit,
)
from grainwatch.lib.reading import Reading, isoformat
from grainwatch.lib.thresholds import ThresholdConfig
from grainwatch.logging import get_logger

logger = get_logger("lib.alerts")

type _CooldownKey = tuple[str, AlertType]
type Clock = Callable[[], float]


@dataclass(frozen=True, slots=True)
class Alert:
    """A threshold violation raised for one reading."""

    device_id: str
    type: AlertType
    message: str
    value: float
    threshold: float
    created_at: datetime
    status: AlertStatus = AlertStatus.ACTIVE
    id: str | None = None  # Assigned on admission
    acknowledged_by: str | None = None
    acknowledged_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "deviceId": self.device_id,
            "type": str(self.type),
            "message": self.message,
            "value": self.value,
            "threshold": self.threshold,
            "createdAt": isoformat(self.created_at),
            "status": str(self.status),
            "acknowledgedBy": self.acknowledged_by,
            "acknowledgedAt": (
                isoformat(self.acknowledged_at)
                if self.acknowledged_at
                else None
            ),
        }


@dataclass(frozen=True, slots=True)
class _Rule:
    """A single bound check against one reading field."""

    type: AlertType
    field: str
    bound: str
    is_high: bool
    label: str
    unit: Unit

    def check(self, reading: Reading, config: ThresholdConfig) -> Alert | None:
        value: float = getattr(reading, self.field)
        threshold: float = getattr(config, self.bound)
        violated = value > threshold if self.is_high else value < threshold
        if not violated:
            return None
        direction = "high" if self.is_high else "low"
        return Alert(
            device_id=reading.device_id,
            type=self.type,
            message=f"{self.label} is too {direction}: {value}{self.unit}",
            value=value,
            threshold=threshold,
            created_at=reading.timestamp,
        )


# Evaluation order is part of the contract: alerts are returned in this order
_RULES = (
    _Rule(AlertType.TEMP_HIGH, "temperature", "temperature_high", True,
          "Temperature", Unit.CELSIUS),
    _Rule(AlertType.TEMP_LOW, "temperature", "temperature_low", False,
          "Temperature", Unit.CELSIUS),
    _Rule(AlertType.HUMIDITY_HIGH, "humidity", "humidity_high", True,
          "Humidity", Unit.PERCENT),
    _Rule(AlertType.HUMIDITY_LOW, "humidity", "humidity_low", False,
          "Humidity", Unit.PERCENT),
)


def evaluate(reading: Reading, config: ThresholdConfig) -> list[Alert]:
    """Return every alert the reading triggers under the given thresholds.

    Order is temp_high, temp_low, humidity_high, humidity_low, motion.
    """
    alerts = [
        alert
        for rule in _RULES
        if (alert := rule.check(reading, config)) is not None
    ]
    if reading.motion and config.motion_detection:
        alerts.append(
            Alert(
                device_id=reading.device_id,
                type=AlertType.MOTION,
                message="Motion detected by PIR sensor",
                value=1,
                threshold=1,
                created_at=reading.timestamp,
            )
        )
    return alerts


class CooldownGate:
    """Admits at most one alert per (device, type) per cooldown window.

    The key ignores the threshold value, so changing a threshold does not
    re-arm a key that is cooling down.
    """

    def __init__(
        self,
        cooldown_sec: float = ALERT_COOLDOWN_SEC,
        compaction_threshold: int = COOLDOWN_COMPACTION_THRESHOLD,
        clock: Clock = time.monotonic,
    ) -> None:
        self._cooldown_sec = cooldown_sec
        self._compaction_threshold = compaction_threshold
        self._clock = clock
        self._lock = threading.Lock()
        self._last_admitted: dict[_CooldownKey, float] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._last_admitted)

    def admit(self, alert: Alert) -> bool:
        """Return True and start a cooldown if the alert may be delivered."""
        key: _CooldownKey = (alert.device_id, alert.type)
        with self._lock:
            now = self._clock()
            last = self._last_admitted.get(key)
            if last is not None and now - last < self._cooldown_sec:
                suppressed = True
            else:
                suppressed = False
                self._last_admitted[key] = now
                if len(self._last_admitted) > self._compaction_threshold:
                    self._compact(now)

        if suppressed:
            logger.info(
                "Suppressed %s alert for %s (cooldown %.0fs)",
                alert.type,
                alert.device_id,
                self._cooldown_sec,
            )
        return not suppressed

    def _compact(self, now: float) -> None:
        """Drop entries whose cooldown has expired. Caller holds the lock."""
        stale = [
            key
            for key, last in self._last_admitted.items()
            if now - last >= self._cooldown_sec
        ]
        for key in stale:
            del self._last_admitted[key]
        if stale:
            logger.debug("Purged %d stale cooldown entries", len(stale))

    def reset(self) -> None:
        with self._lock:
            self._last_admitted.clear()
