"""Tests for the sensor hub ingestion pipeline."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from grainwatch.lib.config import AlertStoreBackend, AlertType, Settings
from grainwatch.lib.config.testing import set_settings
from grainwatch.lib.hub import SensorHub
from grainwatch.lib.notifications import NoOpNotifier
from grainwatch.lib.store import MemoryAlertStore


class TestIngest:
    """Tests for SensorHub.ingest."""

    @pytest.mark.asyncio
    async def test_stores_and_broadcasts_reading(
        self, hub, make_reading, broadcaster, notifier
    ):
        reading = make_reading()

        alerts = await hub.ingest(reading)

        assert alerts == []
        assert hub.latest() == reading
        assert broadcaster.messages == [
            {"type": "sensor_update", "data": reading.to_dict()}
        ]
        notifier.send.assert_not_called()

    @pytest.mark.asyncio
    async def test_admitted_alert_is_recorded_notified_and_broadcast(
        self, hub, make_reading, broadcaster, notifier
    ):
        alerts = await hub.ingest(make_reading(temperature=40.0))
        await hub.drain()

        (alert,) = alerts
        assert alert.type == AlertType.TEMP_HIGH
        assert alert.id
        assert await hub.store.list_alerts() == [alert]
        notifier.send.assert_awaited_once_with(alert)
        assert broadcaster.types == ["sensor_update", "alert"]
        assert broadcaster.messages[1]["alert"] == alert.to_dict()

    @pytest.mark.asyncio
    async def test_alert_ids_are_unique(self, hub, make_reading):
        alerts = await hub.ingest(
            make_reading(temperature=40.0, humidity=80.0, motion=True)
        )

        assert len({a.id for a in alerts}) == 3

    @pytest.mark.asyncio
    async def test_repeat_suppressed_by_cooldown(
        self, hub, make_reading, clock, notifier, broadcaster
    ):
        await hub.ingest(make_reading(temperature=40.0))
        clock.advance(60)
        second = await hub.ingest(make_reading(temperature=41.0))
        await hub.drain()

        assert second == []
        notifier.send.assert_awaited_once()
        assert broadcaster.types == ["sensor_update", "alert", "sensor_update"]

    @pytest.mark.asyncio
    async def test_alert_fires_again_after_cooldown(
        self, hub, make_reading, clock
    ):
        await hub.ingest(make_reading(temperature=40.0))
        clock.advance(300)

        assert len(await hub.ingest(make_reading(temperature=40.0))) == 1

    @pytest.mark.asyncio
    async def test_threshold_change_applies_to_next_reading(
        self, hub, make_reading
    ):
        hub.thresholds.update(temperature_high=20)

        (alert,) = await hub.ingest(make_reading(temperature=22.5))

        assert alert.threshold == 20

    @pytest.mark.asyncio
    async def test_notifier_failure_does_not_reach_caller(
        self, hub, make_reading, notifier, clock, caplog
    ):
        notifier.send.side_effect = RuntimeError("telegram down")

        alerts = await hub.ingest(make_reading(temperature=40.0))
        await hub.drain()

        assert len(alerts) == 1
        assert "alert not sent" in caplog.text
        # Cooldown is not rolled back
        clock.advance(10)
        assert await hub.ingest(make_reading(temperature=40.0)) == []

    @pytest.mark.asyncio
    async def test_unsent_notification_logged(
        self, hub, make_reading, notifier, caplog
    ):
        notifier.send.return_value = False

        await hub.ingest(make_reading(temperature=40.0))
        await hub.drain()

        assert "temp_high alert for ESP32_001 not sent" in caplog.text

    @pytest.mark.asyncio
    async def test_evaluation_failure_still_stores_and_broadcasts(
        self, hub, make_reading, broadcaster, caplog
    ):
        reading = make_reading(temperature=40.0)

        with patch(
            "grainwatch.lib.hub.evaluate", side_effect=RuntimeError("boom")
        ):
            alerts = await hub.ingest(reading)

        assert alerts == []
        assert hub.latest() == reading
        assert broadcaster.types == ["sensor_update"]
        assert "Alert evaluation failed for ESP32_001" in caplog.text

    @pytest.mark.asyncio
    async def test_store_failure_still_notifies_and_broadcasts(
        self, hub, make_reading, notifier, broadcaster, caplog
    ):
        hub.store = MagicMock()
        hub.store.record = AsyncMock(side_effect=OSError("disk full"))

        alerts = await hub.ingest(make_reading(temperature=40.0))
        await hub.drain()

        assert len(alerts) == 1
        notifier.send.assert_awaited_once()
        assert broadcaster.types == ["sensor_update", "alert"]
        assert "Failed to record alert" in caplog.text

    @pytest.mark.asyncio
    async def test_broadcast_failure_is_contained(
        self, hub, make_reading, broadcaster, caplog
    ):
        broadcaster.broadcast = AsyncMock(side_effect=RuntimeError("gone"))

        reading = make_reading()
        await hub.ingest(reading)

        assert hub.latest() == reading
        assert "Failed to broadcast sensor_update" in caplog.text

    @pytest.mark.asyncio
    async def test_without_broadcaster(self, hub, make_reading):
        hub._broadcaster = None
        assert await hub.ingest(make_reading(temperature=40.0))


class TestLifecycle:
    """Tests for hub construction and shutdown."""

    @pytest.mark.asyncio
    async def test_close_waits_for_notifications(self, hub, make_reading):
        delivered = []

        async def slow_send(alert):
            delivered.append(alert.id)
            return True

        hub.notifier.send = slow_send
        await hub.ingest(make_reading(temperature=40.0))
        assert hub.pending_notifications == 1

        await hub.close()

        assert len(delivered) == 1
        assert hub.pending_notifications == 0

    def test_from_settings(self):
        settings = Settings(
            _env_file=None,
            temp_high_threshold=30,
            history_capacity=10,
            alert_store="memory",
        )
        set_settings(settings)

        hub = SensorHub.from_settings(settings)

        assert hub.thresholds.get().temperature_high == 30
        assert hub.history.capacity == 10
        assert isinstance(hub.store, MemoryAlertStore)
        assert isinstance(hub.notifier, NoOpNotifier)
        assert settings.alert_store_settings.backend == AlertStoreBackend.MEMORY
