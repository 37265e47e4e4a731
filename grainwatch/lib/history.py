"""Bounded in-memory reading history.

Keeps the last N readings per device for dashboard charts, statistics and
quality trend analysis. Nothing is persisted: history starts empty on every
process start. At most `max_devices` devices are tracked; a new device
evicts the one that reported least recently.

Thread-safe: push-and-evict and every read happen under a lock, so
concurrent ingress requests never observe a buffer above capacity.
"""

import threading
from collections import OrderedDict, deque
from typing import Any

from grainwatch.lib.config import HISTORY_CAPACITY, HISTORY_MAX_DEVICES
from grainwatch.lib.reading import Reading


class HistoryBuffer:
    """Fixed-capacity FIFO of readings per device."""

    def __init__(
        self,
        capacity: int = HISTORY_CAPACITY,
        max_devices: int = HISTORY_MAX_DEVICES,
    ) -> None:
        if capacity < 1:
            raise ValueError("History capacity must be at least 1")
        if max_devices < 1:
            raise ValueError("History must track at least 1 device")
        self._capacity = capacity
        self._max_devices = max_devices
        self._lock = threading.Lock()
        self._readings: OrderedDict[str, deque[Reading]] = OrderedDict()
        self._latest: Reading | None = None

    @property
    def capacity(self) -> int:
        return self._capacity

    def append(self, reading: Reading) -> None:
        """Store a reading, evicting the device's oldest one on overflow."""
        with self._lock:
            buffer = self._readings.get(reading.device_id)
            if buffer is None:
                if len(self._readings) >= self._max_devices:
                    self._readings.popitem(last=False)
                buffer = deque(maxlen=self._capacity)
                self._readings[reading.device_id] = buffer
            else:
                self._readings.move_to_end(reading.device_id)
            buffer.append(reading)
            self._latest = reading

    def latest(self) -> Reading | None:
        """Return the most recently received reading from any device."""
        with self._lock:
            return self._latest

    def devices(self) -> list[str]:
        with self._lock:
            return list(self._readings)

    def get(self, device_id: str | None = None) -> list[Reading]:
        """Return a device's readings, oldest first.

        Defaults to the device that reported most recently.
        """
        with self._lock:
            if device_id is None:
                if self._latest is None:
                    return []
                device_id = self._latest.device_id
            return list(self._readings.get(device_id, ()))

    def clear(self) -> int:
        """Drop all history. Returns the number of readings removed."""
        with self._lock:
            count = sum(len(buffer) for buffer in self._readings.values())
            self._readings.clear()
            self._latest = None
            return count

    def stats(self, device_id: str | None = None) -> dict[str, Any] | None:
        """Summary statistics over a device's history, None when empty."""
        readings = self.get(device_id)
        if not readings:
            return None

        temps = [r.temperature for r in readings]
        humidities = [r.humidity for r in readings]
        return {
            "avgTemp": round(sum(temps) / len(temps), 2),
            "maxTemp": max(temps),
            "minTemp": min(temps),
            "avgHumidity": round(sum(humidities) / len(humidities), 2),
            "maxHumidity": max(humidities),
            "minHumidity": min(humidities),
            "motionEvents": sum(1 for r in readings if r.motion),
            "dataPoints": len(readings),
        }
