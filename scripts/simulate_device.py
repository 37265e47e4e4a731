#!/usr/bin/env python3
"""Post simulated device readings to a running server for development."""

import argparse
import json
import time
import urllib.error
import urllib.request

from grainwatch.lib.mock import MockGrainSensor


def post_reading(url: str, payload: dict) -> dict:
    req = urllib.request.Request(
        url,
        data=json.dumps(payload).encode("utf-8"),
        headers={"Content-Type": "application/json"},
        method="POST",
    )
    with urllib.request.urlopen(req, timeout=10) as resp:
        return json.loads(resp.read())


def simulate(
    url: str, devices: int, interval: float, count: int | None
) -> None:
    """Send readings from each simulated device every `interval` seconds."""
    sensors = [MockGrainSensor(f"ESP32_{i:03d}") for i in range(1, devices + 1)]
    sent = 0

    while count is None or sent < count:
        for sensor in sensors:
            payload = sensor.sample()
            try:
                result = post_reading(url, payload)
            except (urllib.error.URLError, OSError) as e:
                print(f"{sensor.device_id}: request failed: {e}")
                continue
            values = payload["sensors"]
            print(
                f"{sensor.device_id}: {values['temperature']}°C "
                f"{values['humidity']}% motion={values['motion']} "
                f"alerts={result.get('alertsTriggered', 0)}"
            )
        sent += 1
        time.sleep(interval)


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--url",
        default="http://localhost:3000/api/sensor-data",
        help="Sensor data endpoint (default: %(default)s)",
    )
    parser.add_argument(
        "--devices", type=int, default=1, help="Number of simulated devices"
    )
    parser.add_argument(
        "--interval",
        type=float,
        default=10.0,
        help="Seconds between readings (default: %(default)s)",
    )
    parser.add_argument(
        "--count",
        type=int,
        default=None,
        help="Stop after this many rounds (default: run forever)",
    )
    args = parser.parse_args()

    try:
        simulate(args.url, args.devices, args.interval, args.count)
    except KeyboardInterrupt:
        print("Stopped.")


if __name__ == "__main__":
    main()
