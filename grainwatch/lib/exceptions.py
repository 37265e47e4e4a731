"""Custom exceptions for the grainwatch application.

Provides a hierarchy of domain-specific exceptions so callers can tell
storage and delivery failures apart from programming errors.
"""


class GrainwatchError(Exception):
    """Base exception for all application errors."""


class ConfigurationError(GrainwatchError):
    """Raised when runtime configuration is invalid."""


class DatabaseError(GrainwatchError):
    """Base exception for database-related errors."""


class DatabaseNotConnectedError(DatabaseError):
    """Raised when attempting database operations without a connection."""

    def __init__(self, message: str = "Database not connected") -> None:
        super().__init__(message)


class NotificationError(GrainwatchError):
    """Base exception for notification-related errors."""
