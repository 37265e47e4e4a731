"""Shared pytest fixtures for the test suite."""

import json
import logging
from datetime import UTC, datetime
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from grainwatch.lib.alerts import CooldownGate
from grainwatch.lib.config import Settings
from grainwatch.lib.config.testing import set_settings
from grainwatch.lib.history import HistoryBuffer
from grainwatch.lib.hub import SensorHub
from grainwatch.lib.reading import Reading
from grainwatch.lib.store import MemoryAlertStore
from grainwatch.lib.thresholds import ThresholdConfig, ThresholdStore


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingBroadcaster:
    """Collects broadcast messages in publication order."""

    def __init__(self) -> None:
        self.messages: list[dict[str, Any]] = []

    async def broadcast(self, data: dict[str, Any]) -> int:
        self.messages.append(data)
        return 1

    @property
    def types(self) -> list[str]:
        return [m["type"] for m in self.messages]


@pytest.fixture(autouse=True)
def configure_caplog(caplog):
    """Ensure caplog captures logs from the grainwatch namespace."""
    caplog.set_level(logging.INFO, logger="grainwatch")


@pytest.fixture(autouse=True)
def reset_settings():
    """Use default settings, ignoring any local .env file."""
    set_settings(Settings(_env_file=None))
    yield
    set_settings(None)


@pytest.fixture
def frozen_time():
    """Return a fixed datetime for deterministic tests."""
    return datetime(2024, 6, 15, 12, 0, 0, tzinfo=UTC)


@pytest.fixture
def make_reading(frozen_time):
    """Factory for readings with comfortable defaults."""

    def _make(
        temperature: float = 22.5,
        humidity: float = 50.0,
        motion: bool = False,
        device_id: str = "ESP32_001",
        timestamp: datetime | None = None,
    ) -> Reading:
        return Reading(
            device_id=device_id,
            temperature=temperature,
            humidity=humidity,
            motion=motion,
            timestamp=timestamp or frozen_time,
        )

    return _make


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def broadcaster():
    return RecordingBroadcaster()


@pytest.fixture
def notifier():
    """Notifier double that always reports success."""
    mock = MagicMock()
    mock.send = AsyncMock(return_value=True)
    return mock


@pytest.fixture
def hub(clock, notifier, broadcaster):
    """Sensor hub with in-memory collaborators and a controllable clock."""
    return SensorHub(
        history=HistoryBuffer(),
        thresholds=ThresholdStore(ThresholdConfig()),
        gate=CooldownGate(clock=clock),
        notifier=notifier,
        store=MemoryAlertStore(),
        broadcaster=broadcaster,
    )


def make_request(
    hub: SensorHub | None = None,
    *,
    body: Any = None,
    query_params: dict[str, str] | None = None,
    path_params: dict[str, str] | None = None,
) -> MagicMock:
    """Create a mock Starlette request bound to the given hub."""
    if body is None:
        raw = b""
    elif isinstance(body, bytes):
        raw = body
    else:
        raw = json.dumps(body).encode()

    async def _json() -> Any:
        return json.loads(raw)

    request = MagicMock()
    request.app.state.hub = hub
    request.query_params = query_params or {}
    request.path_params = path_params or {}
    request.body = AsyncMock(return_value=raw)
    request.json = _json
    return request


def body_of(response) -> Any:
    """Decode a JSONResponse body."""
    return json.loads(response.body)
