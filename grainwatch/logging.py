"""Logging configuration for the grainwatch application."""

import logging
import sys

_configured = False

LOG_FORMAT = "%(asctime)s %(name)s %(levelname)s - %(message)s"


def configure(level: int = logging.INFO) -> None:
    """Configure logging for the application.

    Safe to call multiple times - only configures once.
    """
    global _configured
    if _configured:
        return

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    root = logging.getLogger("grainwatch")
    root.setLevel(level)
    root.addHandler(handler)

    # Child loggers like uvicorn.error propagate to this one
    uv_log = logging.getLogger("uvicorn")
    uv_log.handlers.clear()
    uv_log.addHandler(handler)

    # Subscriber open/close is already logged by grainwatch.server.websockets
    logging.getLogger("uvicorn.protocols.websockets").setLevel(logging.WARNING)

    _configured = True


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the 'grainwatch' namespace.

    Args:
        name: Logger name (will be prefixed with 'grainwatch.')

    Returns:
        Configured logger instance.
    """
    return logging.getLogger(f"grainwatch.{name}")
