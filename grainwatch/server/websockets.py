"""WebSocket live-update channel.

Every subscriber receives the latest reading on connect, then a
`sensor_update` message per stored reading and an `alert` message per
admitted alert, pushed by the sensor hub through the connection manager.
"""
import asyncio
from contextlib import suppress
from typing import Any

from starlette.websockets import WebSocket, WebSocketDisconnect

from grainwatch.lib.events import SensorUpdateEvent
from grainwatch.logging import get_logger

_logger = get_logger("server.websockets")

# Heartbeat interval in seconds (30s is typical for WebSocket keepalive)
_HEARTBEAT_INTERVAL_SEC = 30


class ConnectionManager:
    """Tracks live subscribers and broadcasts messages to them.

    Broadcasts run one at a time so every subscriber sees messages in the
    order they were published.
    """

    def __init__(self) -> None:
        self._connections: set[WebSocket] = set()
        self._broadcast_lock = asyncio.Lock()

    async def connect(self, websocket: WebSocket) -> int:
        """Accept a WebSocket connection and track it.

        Returns:
            A unique connection ID for this client.
        """
        await websocket.accept()
        self._connections.add(websocket)
        client_id = id(websocket)
        _logger.info(
            "Client %s connected (total: %d)", client_id, len(self._connections)
        )
        return client_id

    def disconnect(self, websocket: WebSocket) -> None:
        """Remove a WebSocket connection from tracking."""
        self._connections.discard(websocket)
        _logger.info(
            "Client %s disconnected (remaining: %d)",
            id(websocket),
            len(self._connections),
        )

    def get_connection_count(self) -> int:
        return len(self._connections)

    async def broadcast(self, data: dict[str, Any]) -> int:
        """Broadcast data to all connected clients.

        Returns:
            The number of clients that received the message.
        """
        async with self._broadcast_lock:
            sent_count = 0
            disconnected: list[WebSocket] = []

            # Snapshot: clients may connect or leave while we await sends
            for websocket in list(self._connections):
                try:
                    await websocket.send_json(data)
                    sent_count += 1
                except Exception:
                    disconnected.append(websocket)

            for ws in disconnected:
                self._connections.discard(ws)
            if disconnected:
                _logger.debug(
                    "Dropped %d unreachable client(s)", len(disconnected)
                )

        return sent_count

    async def close_all(self) -> None:
        """Close every open connection. Used at shutdown."""
        for websocket in list(self._connections):
            with suppress(Exception):
                await websocket.close()
        self._connections.clear()


async def _send_heartbeat(websocket: WebSocket, client_id: int) -> None:
    """Send periodic heartbeat pings to detect dead connections."""
    while True:
        await asyncio.sleep(_HEARTBEAT_INTERVAL_SEC)
        try:
            await websocket.send_json({"type": "ping"})
        except WebSocketDisconnect:
            raise
        except Exception:
            _logger.debug("Heartbeat failed for client %s", client_id)
            raise WebSocketDisconnect() from None


async def _wait_for_disconnect(websocket: WebSocket) -> None:
    """Drain client frames until the client goes away."""
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            raise WebSocketDisconnect(message.get("code", 1000))


async def _maintain_connection(
    manager: ConnectionManager,
    websocket: WebSocket,
    initial_data: Any = None,
) -> None:
    """Maintain a WebSocket connection for receiving broadcasts.

    Sends initial data on connect, then keeps the connection alive with
    heartbeats until either side closes it.
    """
    client_id = await manager.connect(websocket)
    tasks: list[asyncio.Task] = []

    try:
        if initial_data is not None:
            await websocket.send_json(initial_data)

        tasks = [
            asyncio.create_task(_send_heartbeat(websocket, client_id)),
            asyncio.create_task(_wait_for_disconnect(websocket)),
        ]
        done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        for task in done:
            task.result()
    except WebSocketDisconnect:
        pass
    except asyncio.CancelledError:
        _logger.info("Connection to client %s cancelled (shutdown)", client_id)
        raise
    finally:
        for task in tasks:
            task.cancel()
            with suppress(asyncio.CancelledError, WebSocketDisconnect):
                await task
        manager.disconnect(websocket)
        with suppress(Exception):
            await websocket.close()


async def ws_live(websocket: WebSocket) -> None:
    """Stream sensor updates and alerts.

    Sends the current reading on connect, then receives updates from the hub.
    """
    state = websocket.app.state
    latest = state.hub.latest()
    initial_data = SensorUpdateEvent(latest).to_dict() if latest else None
    await _maintain_connection(state.connections, websocket, initial_data)
