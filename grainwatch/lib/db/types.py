"""Type definitions for database operations."""

from typing import Any, TypedDict

type SQLParams = tuple[Any, ...] | dict[str, Any]
"""SQL parameter types: positional tuple or named dict for query binding."""


class AlertRow(TypedDict):
    """Alert row as stored in the alert table."""

    id: str
    device_id: str
    type: str
    message: str
    value: float
    threshold: float
    status: str
    created_at: str
    acknowledged_by: str | None
    acknowledged_at: str | None
