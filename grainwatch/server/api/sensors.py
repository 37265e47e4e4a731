"""Sensor data API endpoints."""

from pydantic import ValidationError
from starlette.requests import Request
from starlette.responses import JSONResponse

from grainwatch.logging import get_logger
from grainwatch.server.api._utils import error_response, get_hub, read_json
from grainwatch.server.validators import (
    REQUIRED_SENSOR_FIELDS,
    SensorPayload,
    format_errors,
    missing_sensor_fields,
    utcnow,
)

logger = get_logger("server.api.sensors")


async def receive_sensor_data(request: Request) -> JSONResponse:
    """Receive a reading from a device."""
    received_at = utcnow()
    data, error = await read_json(request)
    if error is not None:
        return error

    if missing_sensor_fields(data):
        logger.warning("Rejected payload with missing fields: %s", data)
        return error_response(
            "Missing required fields",
            400,
            required=list(REQUIRED_SENSOR_FIELDS),
        )

    try:
        payload = SensorPayload.model_validate(data)
    except ValidationError as e:
        errors = format_errors(e)
        logger.warning("Rejected invalid payload: %s", errors)
        return JSONResponse({"success": False, "errors": errors}, status_code=400)

    alerts = await get_hub(request).ingest(payload.to_reading(received_at))
    return JSONResponse(
        {
            "success": True,
            "message": "Data received successfully",
            "alertsTriggered": len(alerts),
        },
        status_code=201,
    )


async def get_latest(request: Request) -> JSONResponse:
    """Return the most recent reading from any device."""
    latest = get_hub(request).latest()
    if latest is None:
        return error_response(
            "No data available yet",
            404,
            message="Waiting for a device to send data",
        )
    return JSONResponse({"success": True, "data": latest.to_dict()})


async def get_history(request: Request) -> JSONResponse:
    """Return buffered readings, oldest first."""
    device_id = request.query_params.get("device_id") or None
    readings = get_hub(request).history.get(device_id)
    return JSONResponse(
        {
            "success": True,
            "data": [r.to_dict() for r in readings],
            "count": len(readings),
        }
    )


async def get_device_history(request: Request) -> JSONResponse:
    """Return one device's buffered readings."""
    device_id = request.path_params["device_id"]
    history = get_hub(request).history
    readings = history.get(device_id)
    if not readings:
        return error_response(
            "Device not found", 404, availableDevices=history.devices()
        )
    return JSONResponse(
        {
            "success": True,
            "deviceId": device_id,
            "dataPoints": len(readings),
            "data": [r.to_dict() for r in readings],
        }
    )


async def get_stats(request: Request) -> JSONResponse:
    """Return summary statistics over the buffered history."""
    device_id = request.query_params.get("device_id") or None
    stats = get_hub(request).history.stats(device_id)
    if stats is None:
        return error_response("No data available for statistics", 404)
    return JSONResponse(
        {
            "success": True,
            "period": f"Last {stats['dataPoints']} readings",
            "statistics": stats,
        }
    )


async def clear_history(request: Request) -> JSONResponse:
    """Drop all buffered readings."""
    count = get_hub(request).history.clear()
    logger.info("History cleared (%d readings)", count)
    return JSONResponse(
        {"success": True, "message": "History cleared", "deletedCount": count}
    )
