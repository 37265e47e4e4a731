"""Web server entrypoint.

Runs the Starlette web application using uvicorn. Devices post readings to
`/api/sensor-data` and dashboards subscribe to `/ws`.

Usage: python -m grainwatch.server
"""
import uvicorn

from grainwatch.lib.config import get_settings


def main() -> None:
    """Run the web server."""
    server = get_settings().server
    uvicorn.run(
        "grainwatch.server:create_app",
        factory=True,
        host=server.host,
        port=server.port,
    )


if __name__ == "__main__":
    main()
