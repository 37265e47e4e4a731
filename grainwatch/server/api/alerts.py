"""Alert history API endpoints."""

import aiosqlite
from pydantic import ValidationError
from starlette.requests import Request
from starlette.responses import JSONResponse

from grainwatch.lib.config import AlertStatus
from grainwatch.lib.exceptions import DatabaseError
from grainwatch.logging import get_logger
from grainwatch.server.api._utils import error_response, get_hub, read_json
from grainwatch.server.validators import (
    AcknowledgeRequest,
    AlertsQuery,
    ClearAlertsQuery,
    format_errors,
)

logger = get_logger("server.api.alerts")

_STORE_ERRORS = (DatabaseError, aiosqlite.Error, OSError)


def _store_unavailable() -> JSONResponse:
    return error_response("Alert store unavailable", 503)


async def list_alerts(request: Request) -> JSONResponse:
    """List recorded alerts, newest first."""
    try:
        query = AlertsQuery.model_validate(dict(request.query_params))
    except ValidationError as e:
        return JSONResponse(
            {"success": False, "errors": format_errors(e)}, status_code=400
        )

    try:
        alerts = await get_hub(request).store.list_alerts(
            device_id=query.device_id, status=query.status, limit=query.limit
        )
    except _STORE_ERRORS:
        logger.exception("Failed to fetch alerts")
        return _store_unavailable()

    return JSONResponse(
        {
            "success": True,
            "count": len(alerts),
            "alerts": [a.to_dict() for a in alerts],
        }
    )


async def list_active_alerts(request: Request) -> JSONResponse:
    """List unacknowledged alerts."""
    device_id = request.query_params.get("device_id") or None
    try:
        alerts = await get_hub(request).store.list_alerts(
            device_id=device_id, status=AlertStatus.ACTIVE
        )
    except _STORE_ERRORS:
        logger.exception("Failed to fetch active alerts")
        return _store_unavailable()

    return JSONResponse(
        {
            "success": True,
            "count": len(alerts),
            "alerts": [a.to_dict() for a in alerts],
        }
    )


async def acknowledge_alert(request: Request) -> JSONResponse:
    """Mark an alert as acknowledged."""
    alert_id = request.path_params["alert_id"]
    data, error = await read_json(request)
    if error is not None:
        return error

    try:
        body = AcknowledgeRequest.model_validate(data or {})
    except ValidationError as e:
        return JSONResponse(
            {"success": False, "errors": format_errors(e)}, status_code=400
        )

    try:
        alert = await get_hub(request).store.acknowledge(
            alert_id, body.acknowledged_by
        )
    except _STORE_ERRORS:
        logger.exception("Failed to acknowledge alert %s", alert_id)
        return _store_unavailable()

    if alert is None:
        return error_response("Alert not found", 404)

    logger.info("Alert %s acknowledged by %s", alert_id, body.acknowledged_by)
    return JSONResponse(
        {"success": True, "message": "Alert acknowledged", "alert": alert.to_dict()}
    )


async def clear_alerts(request: Request) -> JSONResponse:
    """Delete acknowledged alerts older than `days`."""
    try:
        query = ClearAlertsQuery.model_validate(dict(request.query_params))
    except ValidationError as e:
        return JSONResponse(
            {"success": False, "errors": format_errors(e)}, status_code=400
        )

    try:
        count = await get_hub(request).store.clear(query.older_than)
    except _STORE_ERRORS:
        logger.exception("Failed to clear alerts")
        return _store_unavailable()

    logger.info("Cleared %d alert(s) older than %d days", count, query.days)
    return JSONResponse(
        {
            "success": True,
            "message": f"Cleared alerts older than {query.days} days",
            "deletedCount": count,
        }
    )
