"""Tests for the sensor data API endpoints."""

from datetime import UTC, datetime, timedelta

import pytest

from grainwatch.server.api.sensors import (
    clear_history,
    get_device_history,
    get_history,
    get_latest,
    get_stats,
    receive_sensor_data,
)
from tests.conftest import body_of, make_request


def payload(**sensors):
    values = {"temperature": 22.5, "humidity": 50.0, "motion": False}
    values.update(sensors)
    return {"device_id": "ESP32_001", "sensors": values}


class TestReceiveSensorData:
    """Tests for POST /api/sensor-data."""

    @pytest.mark.asyncio
    async def test_accepts_reading(self, hub, broadcaster):
        response = await receive_sensor_data(make_request(hub, body=payload()))

        assert response.status_code == 201
        assert body_of(response) == {
            "success": True,
            "message": "Data received successfully",
            "alertsTriggered": 0,
        }
        latest = hub.latest()
        assert latest.device_id == "ESP32_001"
        assert latest.temperature == 22.5
        assert broadcaster.types == ["sensor_update"]

    @pytest.mark.asyncio
    async def test_reports_triggered_alerts(self, hub):
        request = make_request(
            hub, body=payload(temperature=40.0, humidity=80.0, motion=True)
        )

        response = await receive_sensor_data(request)
        await hub.drain()

        assert body_of(response)["alertsTriggered"] == 3

    @pytest.mark.asyncio
    async def test_uses_device_timestamp(self, hub):
        body = payload()
        body["timestamp"] = "2024-06-15T12:00:00Z"

        await receive_sensor_data(make_request(hub, body=body))

        assert hub.latest().timestamp == datetime(2024, 6, 15, 12, tzinfo=UTC)

    @pytest.mark.asyncio
    async def test_stamps_receive_time(self, hub):
        before = datetime.now(UTC)
        await receive_sensor_data(make_request(hub, body=payload()))

        assert hub.latest().timestamp - before < timedelta(seconds=5)
        assert hub.latest().timestamp.tzinfo is not None

    @pytest.mark.asyncio
    async def test_motion_defaults_to_false(self, hub):
        body = {"device_id": "ESP32_001", "sensors": {"temperature": 20, "humidity": 40}}

        response = await receive_sensor_data(make_request(hub, body=body))

        assert response.status_code == 201
        assert hub.latest().motion is False

    @pytest.mark.asyncio
    async def test_null_motion_is_accepted(self, hub):
        response = await receive_sensor_data(
            make_request(hub, body=payload(motion=None))
        )

        assert response.status_code == 201
        assert hub.latest().motion is False

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body",
        [
            {"sensors": {"temperature": 20, "humidity": 40}},
            {"device_id": "ESP32_001"},
            {"device_id": "", "sensors": {"temperature": 20, "humidity": 40}},
            {"device_id": "ESP32_001", "sensors": None},
            [1, 2, 3],
        ],
    )
    async def test_missing_required_fields(self, hub, broadcaster, body):
        response = await receive_sensor_data(make_request(hub, body=body))

        assert response.status_code == 400
        data = body_of(response)
        assert data["error"] == "Missing required fields"
        assert data["required"] == ["device_id", "sensors"]
        assert hub.latest() is None
        assert broadcaster.messages == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "sensors",
        [
            {"temperature": "hot", "humidity": 40},
            {"humidity": 40},
            {"temperature": 20, "humidity": 140},
            {"temperature": -60, "humidity": 40},
        ],
    )
    async def test_invalid_values(self, hub, sensors):
        body = {"device_id": "ESP32_001", "sensors": sensors}

        response = await receive_sensor_data(make_request(hub, body=body))

        assert response.status_code == 400
        assert body_of(response)["errors"]
        assert hub.latest() is None

    @pytest.mark.asyncio
    async def test_invalid_json(self, hub):
        response = await receive_sensor_data(make_request(hub, body=b"{nope"))

        assert response.status_code == 400
        assert body_of(response) == {"error": "Invalid JSON"}

    @pytest.mark.asyncio
    async def test_empty_body(self, hub):
        response = await receive_sensor_data(make_request(hub))
        assert body_of(response)["error"] == "Missing required fields"


class TestReadEndpoints:
    """Tests for the sensor data read endpoints."""

    @pytest.mark.asyncio
    async def test_latest_without_data(self, hub):
        response = await get_latest(make_request(hub))

        assert response.status_code == 404
        assert body_of(response)["error"] == "No data available yet"

    @pytest.mark.asyncio
    async def test_latest(self, hub, make_reading):
        reading = make_reading()
        await hub.ingest(reading)

        response = await get_latest(make_request(hub))

        assert body_of(response) == {"success": True, "data": reading.to_dict()}

    @pytest.mark.asyncio
    async def test_history(self, hub, make_reading):
        for humidity in (40.0, 41.0):
            await hub.ingest(make_reading(humidity=humidity))

        data = body_of(await get_history(make_request(hub)))

        assert data["count"] == 2
        assert [r["humidity"] for r in data["data"]] == [40.0, 41.0]

    @pytest.mark.asyncio
    async def test_history_for_device(self, hub, make_reading):
        await hub.ingest(make_reading(device_id="A"))
        await hub.ingest(make_reading(device_id="B"))

        request = make_request(hub, query_params={"device_id": "A"})
        data = body_of(await get_history(request))

        assert [r["deviceId"] for r in data["data"]] == ["A"]

    @pytest.mark.asyncio
    async def test_device_history(self, hub, make_reading):
        await hub.ingest(make_reading(device_id="A"))

        request = make_request(hub, path_params={"device_id": "A"})
        data = body_of(await get_device_history(request))

        assert data["deviceId"] == "A"
        assert data["dataPoints"] == 1

    @pytest.mark.asyncio
    async def test_unknown_device(self, hub, make_reading):
        await hub.ingest(make_reading(device_id="A"))

        request = make_request(hub, path_params={"device_id": "Z"})
        response = await get_device_history(request)

        assert response.status_code == 404
        assert body_of(response)["availableDevices"] == ["A"]

    @pytest.mark.asyncio
    async def test_stats(self, hub, make_reading):
        await hub.ingest(make_reading(temperature=20.0))
        await hub.ingest(make_reading(temperature=24.0, motion=True))
        await hub.drain()

        data = body_of(await get_stats(make_request(hub)))

        assert data["period"] == "Last 2 readings"
        assert data["statistics"]["avgTemp"] == 22.0
        assert data["statistics"]["motionEvents"] == 1

    @pytest.mark.asyncio
    async def test_stats_without_data(self, hub):
        response = await get_stats(make_request(hub))
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_clear_history(self, hub, make_reading):
        await hub.ingest(make_reading())
        await hub.ingest(make_reading())

        data = body_of(await clear_history(make_request(hub)))

        assert data["deletedCount"] == 2
        assert hub.latest() is None
