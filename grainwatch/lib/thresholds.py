"""Runtime threshold configuration.

Thresholds are seeded from settings at startup and can be changed while the
process runs (operator API). Changes are not persisted.
"""

import threading
from dataclasses import asdict, dataclass, replace
from typing import Any

from grainwatch.lib.config import ThresholdSettings, get_settings
from grainwatch.lib.exceptions import ConfigurationError
from grainwatch.logging import get_logger

logger = get_logger("lib.thresholds")

_WIRE_NAMES = {
    "temperature_high": "temperatureHigh",
    "temperature_low": "temperatureLow",
    "humidity_high": "humidityHigh",
    "humidity_low": "humidityLow",
    "motion_detection": "motionDetection",
}


@dataclass(frozen=True, slots=True)
class ThresholdConfig:
    """Alert bounds. High bounds fire on `>`, low bounds on `<`."""

    temperature_high: float = 35
    temperature_low: float = 15
    humidity_high: float = 70
    humidity_low: float = 30
    motion_detection: bool = True

    @classmethod
    def from_settings(cls, settings: ThresholdSettings) -> "ThresholdConfig":
        return cls(**settings.model_dump())

    def to_dict(self) -> dict[str, Any]:
        return {_WIRE_NAMES[k]: v for k, v in asdict(self).items()}


def _check_bounds(config: ThresholdConfig) -> None:
    errors = []
    if config.temperature_low >= config.temperature_high:
        errors.append("temperatureLow must be less than temperatureHigh")
    if config.humidity_low >= config.humidity_high:
        errors.append("humidityLow must be less than humidityHigh")
    if errors:
        raise ConfigurationError("; ".join(errors))


class ThresholdStore:
    """Holds the current ThresholdConfig.

    Thread-safe: updates merge into the current value under a lock, so two
    concurrent partial updates cannot drop each other's fields.
    """

    def __init__(self, defaults: ThresholdConfig | None = None) -> None:
        self._defaults = defaults or ThresholdConfig.from_settings(
            get_settings().thresholds
        )
        self._lock = threading.Lock()
        self._current = self._defaults

    def get(self) -> ThresholdConfig:
        with self._lock:
            return self._current

    def update(self, **changes: Any) -> ThresholdConfig:
        """Merge changes into the current thresholds.

        Raises:
            ConfigurationError: If a low bound would not be below its high bound.
            TypeError: If a change names an unknown threshold.
        """
        with self._lock:
            updated = replace(self._current, **changes)
            _check_bounds(updated)
            self._current = updated
        logger.info("Thresholds updated: %s", updated)
        return updated

    def reset(self) -> ThresholdConfig:
        """Restore the defaults loaded at startup."""
        with self._lock:
            self._current = self._defaults
        logger.info("Thresholds reset to defaults: %s", self._defaults)
        return self._defaults
