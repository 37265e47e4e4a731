"""Alert audit stores.

Admitted alerts are recorded into an injectable store so the alert API can
list and acknowledge them. Which backend is used is a deployment choice
(`ALERT_STORE`): none, an in-memory ring, or SQLite. The evaluator and the
cooldown gate do not depend on the store.
"""

import asyncio
import threading
from abc import ABC, abstractmethod
from collections import OrderedDict
from dataclasses import replace
from datetime import UTC, datetime, timedelta
from typing import override

from grainwatch.lib.alerts import Alert
from grainwatch.lib.config import (
    AlertStatus,
    AlertStoreBackend,
    AlertStoreSettings,
    AlertType,
)
from grainwatch.lib.db import AlertRow, Database, load_template
from grainwatch.logging import get_logger

logger = get_logger("lib.store")

DEFAULT_LIST_LIMIT = 50


class AbstractAlertStore(ABC):
    """Abstract base class for alert stores."""

    #: False when alerts are discarded, so the API can say so
    enabled: bool = True

    async def open(self) -> None:
        """Acquire resources. Called once at startup."""

    async def close(self) -> None:
        """Release resources. Called once at shutdown."""

    async def ping(self) -> None:
        """Raise if the store is unusable. Used by the health check."""

    @abstractmethod
    async def record(self, alert: Alert) -> None:
        """Persist an admitted alert. The alert must carry an id."""

    @abstractmethod
    async def list_alerts(
        self,
        device_id: str | None = None,
        status: AlertStatus | None = None,
        limit: int = DEFAULT_LIST_LIMIT,
    ) -> list[Alert]:
        """Return matching alerts, newest first."""

    @abstractmethod
    async def acknowledge(
        self, alert_id: str, acknowledged_by: str = "user"
    ) -> Alert | None:
        """Mark an alert acknowledged. Returns None if it does not exist."""

    @abstractmethod
    async def clear(self, older_than: timedelta) -> int:
        """Delete non-active alerts older than the given age."""


class NoOpAlertStore(AbstractAlertStore):
    """Discards alerts. Lists are always empty."""

    enabled = False

    @override
    async def record(self, alert: Alert) -> None:
        logger.debug("Alert store disabled, not recording %s", alert.id)

    @override
    async def list_alerts(
        self,
        device_id: str | None = None,
        status: AlertStatus | None = None,
        limit: int = DEFAULT_LIST_LIMIT,
    ) -> list[Alert]:
        return []

    @override
    async def acknowledge(
        self, alert_id: str, acknowledged_by: str = "user"
    ) -> Alert | None:
        return None

    @override
    async def clear(self, older_than: timedelta) -> int:
        return 0


class MemoryAlertStore(AbstractAlertStore):
    """Keeps the most recent alerts in memory, oldest dropped first."""

    def __init__(self, capacity: int = 500) -> None:
        self._capacity = capacity
        self._lock = threading.Lock()
        self._alerts: OrderedDict[str, Alert] = OrderedDict()

    @override
    async def record(self, alert: Alert) -> None:
        if alert.id is None:
            raise ValueError("Cannot record an alert without an id")
        with self._lock:
            self._alerts[alert.id] = alert
            while len(self._alerts) > self._capacity:
                self._alerts.popitem(last=False)

    @override
    async def list_alerts(
        self,
        device_id: str | None = None,
        status: AlertStatus | None = None,
        limit: int = DEFAULT_LIST_LIMIT,
    ) -> list[Alert]:
        with self._lock:
            alerts = list(reversed(self._alerts.values()))
        matching = [
            a
            for a in alerts
            if (device_id is None or a.device_id == device_id)
            and (status is None or a.status == status)
        ]
        return matching[:limit]

    @override
    async def acknowledge(
        self, alert_id: str, acknowledged_by: str = "user"
    ) -> Alert | None:
        with self._lock:
            alert = self._alerts.get(alert_id)
            if alert is None:
                return None
            updated = replace(
                alert,
                status=AlertStatus.ACKNOWLEDGED,
                acknowledged_by=acknowledged_by,
                acknowledged_at=datetime.now(UTC),
            )
            self._alerts[alert_id] = updated
            return updated

    @override
    async def clear(self, older_than: timedelta) -> int:
        before = datetime.now(UTC) - older_than
        with self._lock:
            stale = [
                key
                for key, alert in self._alerts.items()
                if alert.status != AlertStatus.ACTIVE
                and alert.created_at < before
            ]
            for key in stale:
                del self._alerts[key]
        return len(stale)


def _to_db(value: datetime) -> str:
    return value.astimezone(UTC).isoformat(timespec="microseconds")


def _from_db(value: str) -> datetime:
    return datetime.fromisoformat(value)


def _row_to_alert(row: AlertRow) -> Alert:
    return Alert(
        id=row["id"],
        device_id=row["device_id"],
        type=AlertType(row["type"]),
        message=row["message"],
        value=row["value"],
        threshold=row["threshold"],
        status=AlertStatus(row["status"]),
        created_at=_from_db(row["created_at"]),
        acknowledged_by=row["acknowledged_by"],
        acknowledged_at=(
            _from_db(row["acknowledged_at"])
            if row["acknowledged_at"]
            else None
        ),
    )


class SqliteAlertStore(AbstractAlertStore):
    """Durable alert store backed by a single SQLite connection.

    Operations share one connection, so they run one at a time.
    """

    def __init__(self, db: Database) -> None:
        self._db = db
        self._lock = asyncio.Lock()

    @override
    async def open(self) -> None:
        await self._db.connect()
        await self._db.execute_pragma("PRAGMA journal_mode=WAL")
        await self._db.executescript(load_template("init_alert_table.sql"))
        logger.info("Opened alert store database: %s", self._db.path)

    @override
    async def close(self) -> None:
        async with self._lock:
            await self._db.close()
        logger.info("Closed alert store database")

    @override
    async def ping(self) -> None:
        async with self._lock:
            await self._db.fetchone("SELECT 1")

    @override
    async def record(self, alert: Alert) -> None:
        if alert.id is None:
            raise ValueError("Cannot record an alert without an id")
        async with self._lock:
            await self._db.execute(
                load_template("alert_insert.sql"),
                {
                    "id": alert.id,
                    "device_id": alert.device_id,
                    "type": str(alert.type),
                    "message": alert.message,
                    "value": alert.value,
                    "threshold": alert.threshold,
                    "status": str(alert.status),
                    "created_at": _to_db(alert.created_at),
                    "acknowledged_by": alert.acknowledged_by,
                    "acknowledged_at": (
                        _to_db(alert.acknowledged_at)
                        if alert.acknowledged_at
                        else None
                    ),
                },
            )

    @override
    async def list_alerts(
        self,
        device_id: str | None = None,
        status: AlertStatus | None = None,
        limit: int = DEFAULT_LIST_LIMIT,
    ) -> list[Alert]:
        async with self._lock:
            rows = await self._db.fetchall(
                load_template("alert_list.sql"),
                {
                    "device_id": device_id,
                    "status": str(status) if status else None,
                    "limit": limit,
                },
            )
        return [_row_to_alert(AlertRow(**row)) for row in rows]

    @override
    async def acknowledge(
        self, alert_id: str, acknowledged_by: str = "user"
    ) -> Alert | None:
        async with self._lock, self._db.transaction():
            updated = await self._db.execute(
                load_template("alert_acknowledge.sql"),
                {
                    "id": alert_id,
                    "acknowledged_by": acknowledged_by,
                    "acknowledged_at": _to_db(datetime.now(UTC)),
                },
            )
            if not updated:
                return None
            row = await self._db.fetchone(
                load_template("alert_get.sql"), {"id": alert_id}
            )
        return _row_to_alert(AlertRow(**row)) if row else None

    @override
    async def clear(self, older_than: timedelta) -> int:
        before = datetime.now(UTC) - older_than
        async with self._lock:
            return await self._db.execute(
                load_template("alert_clear.sql"), {"before": _to_db(before)}
            )


def create_alert_store(settings: AlertStoreSettings) -> AbstractAlertStore:
    """Factory function to get the configured alert store."""
    match settings.backend:
        case AlertStoreBackend.MEMORY:
            return MemoryAlertStore(capacity=settings.memory_capacity)
        case AlertStoreBackend.SQLITE:
            return SqliteAlertStore(
                Database(settings.db_path, timeout_sec=settings.db_timeout_sec)
            )
        case _:
            return NoOpAlertStore()
