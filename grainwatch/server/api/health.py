"""Health check endpoint for monitoring service status."""

import time
from datetime import UTC, datetime

import aiosqlite
from starlette.requests import Request
from starlette.responses import JSONResponse

from grainwatch.lib.exceptions import DatabaseError
from grainwatch.lib.hub import SensorHub
from grainwatch.lib.reading import isoformat
from grainwatch.logging import get_logger
from grainwatch.server.api._utils import get_hub

logger = get_logger("server.api.health")

_STORE_ERRORS = (DatabaseError, aiosqlite.Error, OSError)


async def _check_alert_store(hub: SensorHub) -> tuple[bool, str]:
    """Check if the alert store is usable."""
    if not hub.store.enabled:
        return True, "disabled"
    try:
        await hub.store.ping()
        return True, "ok"
    except _STORE_ERRORS as e:
        logger.error("Alert store health check failed: %s", e)
        return False, str(e)


async def health_check(request: Request) -> JSONResponse:
    """Return health status of the application and its dependencies."""
    state = request.app.state
    hub = get_hub(request)
    store_ok, store_status = await _check_alert_store(hub)
    latest = hub.latest()

    return JSONResponse(
        {
            "status": "healthy" if store_ok else "unhealthy",
            "timestamp": datetime.now(UTC).isoformat(),
            "uptimeSec": round(time.monotonic() - state.started_at, 1),
            "checks": {
                "alert_store": {"ok": store_ok, "status": store_status},
                "websocket": {
                    "subscribers": state.connections.get_connection_count()
                },
                "sensor": {
                    "ok": latest is not None,
                    "last_reading": isoformat(latest.timestamp) if latest else None,
                },
                "notifications": {
                    "pending": hub.pending_notifications,
                },
            },
        },
        status_code=200 if store_ok else 503,
    )
