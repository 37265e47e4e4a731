"""Live-update messages pushed to dashboard subscribers."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Protocol

from grainwatch.lib.alerts import Alert
from grainwatch.lib.reading import Reading


class Topic(StrEnum):
    """Message types sent over the live-update channel."""

    SENSOR_UPDATE = "sensor_update"
    ALERT = "alert"


@dataclass(frozen=True, slots=True)
class Event(ABC):
    """Base class for all live-update payloads."""

    @property
    @abstractmethod
    def topic(self) -> Topic:
        """Discriminator sent as the message `type`."""

    @abstractmethod
    def to_dict(self) -> dict[str, Any]:
        """Convert event to dictionary for JSON serialization."""


@dataclass(frozen=True, slots=True)
class SensorUpdateEvent(Event):
    """A new reading was stored."""

    reading: Reading

    @property
    def topic(self) -> Topic:
        return Topic.SENSOR_UPDATE

    def to_dict(self) -> dict[str, Any]:
        return {"type": str(self.topic), "data": self.reading.to_dict()}


@dataclass(frozen=True, slots=True)
class AlertEvent(Event):
    """An alert passed the cooldown gate."""

    alert: Alert

    @property
    def topic(self) -> Topic:
        return Topic.ALERT

    def to_dict(self) -> dict[str, Any]:
        return {"type": str(self.topic), "alert": self.alert.to_dict()}


class Broadcaster(Protocol):
    """Anything that can fan a message out to live subscribers."""

    async def broadcast(self, data: dict[str, Any]) -> int:
        """Send data to every subscriber, returning how many received it."""
        ...
