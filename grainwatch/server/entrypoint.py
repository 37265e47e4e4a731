"""Application factory for the web server."""

import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware
from starlette.routing import Mount, Route, WebSocketRoute

from grainwatch.lib.config import get_settings
from grainwatch.lib.hub import SensorHub
from grainwatch.logging import configure, get_logger

from .api.alerts import (
    acknowledge_alert,
    clear_alerts,
    list_active_alerts,
    list_alerts,
)
from .api.health import health_check
from .api.quality import get_quality
from .api.sensors import (
    clear_history,
    get_device_history,
    get_history,
    get_latest,
    get_stats,
    receive_sensor_data,
)
from .api.thresholds import get_thresholds, reset_thresholds, update_thresholds
from .websockets import ConnectionManager, ws_live

_logger = get_logger("server.entrypoint")


@asynccontextmanager
async def lifespan(app: Starlette) -> AsyncIterator[None]:
    """Build the sensor hub on startup, drain and close it on shutdown."""
    connections = ConnectionManager()
    hub = SensorHub.from_settings(broadcaster=connections)
    await hub.start()

    app.state.connections = connections
    app.state.hub = hub
    app.state.started_at = time.monotonic()
    _logger.info("Sensor hub started")

    try:
        yield
    finally:
        await connections.close_all()
        await hub.close()
        _logger.info("Sensor hub stopped")


_api_routes = [
    Route("/sensor-data", receive_sensor_data, methods=["POST"]),
    Route("/sensor-data/latest", get_latest),
    Route("/sensor-data/history", get_history),
    Route("/sensor-data/history", clear_history, methods=["DELETE"]),
    Route("/sensor-data/stats", get_stats),
    Route("/sensor-data/device/{device_id}", get_device_history),
    Route("/alerts", list_alerts),
    Route("/alerts/active", list_active_alerts),
    Route("/alerts/clear", clear_alerts, methods=["DELETE"]),
    Route("/alerts/{alert_id}/acknowledge", acknowledge_alert, methods=["PUT"]),
    Route("/thresholds", get_thresholds),
    Route("/thresholds", update_thresholds, methods=["PUT"]),
    Route("/thresholds/reset", reset_thresholds, methods=["POST"]),
    Route("/quality", get_quality),
]


def create_app() -> Starlette:
    """Create and configure the Starlette application.

    Returns:
        Configured Starlette application instance.
    """
    configure()

    routes = [
        Route("/health", health_check),
        Mount("/api", routes=_api_routes),
        WebSocketRoute("/ws", ws_live),
    ]

    middleware = [
        Middleware(
            CORSMiddleware,
            allow_origins=get_settings().server.cors_origins or ["*"],
            allow_methods=["GET", "POST", "PUT", "DELETE"],
            allow_headers=["Content-Type"],
        )
    ]

    return Starlette(routes=routes, middleware=middleware, lifespan=lifespan)
