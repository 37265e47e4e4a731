"""Mock grain-storage sensor for development.

Generates realistic DHT22 + PIR readings without hardware so the dashboard
can be exercised end to end. Used by scripts/simulate_device.py.
"""

import random
from datetime import UTC, datetime
from typing import Any


def random_walk(
    current: float, drift: float, min_val: float, max_val: float
) -> float:
    """Generate next value using random walk with bounds."""
    change = random.gauss(0, drift)
    new_val = current + change
    return max(min_val, min(max_val, new_val))


class MockGrainSensor:
    """Mock storage sensor node.

    - Temperature: drift=0.15, bounds 10-40
    - Humidity: drift=0.3, bounds 8-90
    - Motion: fires with the given probability per sample
    """

    def __init__(
        self,
        device_id: str = "ESP32_001",
        motion_probability: float = 0.05,
        humidity: float | None = None,
    ) -> None:
        self.device_id = device_id
        self._motion_probability = motion_probability
        self._temperature = random.uniform(20.0, 23.0)
        self._humidity = (
            humidity if humidity is not None else random.uniform(11.0, 15.0)
        )

    def sample(self) -> dict[str, Any]:
        """Return the next reading as a device upload payload."""
        self._temperature = random_walk(
            self._temperature, drift=0.15, min_val=10.0, max_val=40.0
        )
        self._humidity = random_walk(
            self._humidity, drift=0.3, min_val=8.0, max_val=90.0
        )
        return {
            "device_id": self.device_id,
            "sensors": {
                "temperature": round(self._temperature, 1),
                "humidity": round(self._humidity, 1),
                "motion": random.random() < self._motion_probability,
            },
            "timestamp": datetime.now(UTC).isoformat(),
        }
