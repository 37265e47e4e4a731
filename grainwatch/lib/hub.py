"""Reading ingestion pipeline.

The hub owns every piece of shared runtime state (history, thresholds,
cooldown gate, alert store, notifier) and wires them together:

    reading -> history -> evaluate -> gate -> store / notify / broadcast

A reading is always stored and broadcast. Failures further down the pipeline
are logged and never reach the device that posted the reading.
"""

import asyncio
import dataclasses
import uuid

from grainwatch.lib.alerts import Alert, CooldownGate, evaluate
from grainwatch.lib.config import Settings, get_settings
from grainwatch.lib.events import AlertEvent, Broadcaster, Event, SensorUpdateEvent
from grainwatch.lib.history import HistoryBuffer
from grainwatch.lib.notifications import AbstractNotifier, get_notifier
from grainwatch.lib.reading import Reading
from grainwatch.lib.store import AbstractAlertStore, create_alert_store
from grainwatch.lib.thresholds import ThresholdConfig, ThresholdStore
from grainwatch.logging import get_logger

logger = get_logger("lib.hub")


class SensorHub:
    """Processes incoming readings and fans out the results."""

    def __init__(
        self,
        *,
        history: HistoryBuffer,
        thresholds: ThresholdStore,
        gate: CooldownGate,
        notifier: AbstractNotifier,
        store: AbstractAlertStore,
        broadcaster: Broadcaster | None = None,
    ) -> None:
        self.history = history
        self.thresholds = thresholds
        self.gate = gate
        self.notifier = notifier
        self.store = store
        self._broadcaster = broadcaster
        self._pending: set[asyncio.Task[None]] = set()

    @classmethod
    def from_settings(
        cls,
        settings: Settings | None = None,
        broadcaster: Broadcaster | None = None,
    ) -> "SensorHub":
        """Build a hub from application settings."""
        settings = settings or get_settings()
        return cls(
            history=HistoryBuffer(
                settings.history.capacity, settings.history.max_devices
            ),
            thresholds=ThresholdStore(
                ThresholdConfig.from_settings(settings.thresholds)
            ),
            gate=CooldownGate(
                cooldown_sec=settings.alerts.cooldown_sec,
                compaction_threshold=settings.alerts.compaction_threshold,
            ),
            notifier=get_notifier(),
            store=create_alert_store(settings.alert_store_settings),
            broadcaster=broadcaster,
        )

    @property
    def pending_notifications(self) -> int:
        return len(self._pending)

    async def start(self) -> None:
        await self.store.open()

    async def close(self) -> None:
        """Wait for in-flight notifications, then release the store."""
        await self.drain()
        await self.store.close()

    async def drain(self) -> None:
        """Wait until every dispatched notification has finished."""
        while self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)

    def latest(self) -> Reading | None:
        return self.history.latest()

    async def ingest(self, reading: Reading) -> list[Alert]:
        """Store a reading and process the alerts it raises.

        Returns:
            The alerts that passed the cooldown gate, with ids assigned.
        """
        self.history.append(reading)
        logger.info(
            "Reading from %s: %.1f°C %.1f%% motion=%s",
            reading.device_id,
            reading.temperature,
            reading.humidity,
            reading.motion,
        )

        admitted: list[Alert] = []
        try:
            candidates = evaluate(reading, self.thresholds.get())
            for candidate in candidates:
                if self.gate.admit(candidate):
                    admitted.append(
                        dataclasses.replace(candidate, id=uuid.uuid4().hex)
                    )
        except Exception:
            logger.exception(
                "Alert evaluation failed for %s", reading.device_id
            )

        for alert in admitted:
            logger.info("Alert admitted: %s", alert.message)
            await self._record(alert)
            self._dispatch(alert)

        await self._publish(SensorUpdateEvent(reading))
        for alert in admitted:
            await self._publish(AlertEvent(alert))

        return admitted

    async def _record(self, alert: Alert) -> None:
        try:
            await self.store.record(alert)
        except Exception:
            logger.exception("Failed to record alert %s", alert.id)

    def _dispatch(self, alert: Alert) -> None:
        task = asyncio.create_task(self._notify(alert))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _notify(self, alert: Alert) -> None:
        try:
            sent = await self.notifier.send(alert)
        except Exception:
            logger.exception(
                "Notifier raised for %s alert on %s, alert not sent",
                alert.type,
                alert.device_id,
            )
            return
        if not sent:
            logger.warning(
                "%s alert for %s not sent", alert.type, alert.device_id
            )

    async def _publish(self, event: Event) -> None:
        if self._broadcaster is None:
            return
        try:
            count = await self._broadcaster.broadcast(event.to_dict())
        except Exception:
            logger.exception("Failed to broadcast %s", event.topic)
            return
        logger.debug("Broadcast %s to %d subscriber(s)", event.topic, count)
