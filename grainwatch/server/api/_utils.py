"""Helpers shared by the API handlers."""

from typing import Any

from starlette.requests import Request
from starlette.responses import JSONResponse

from grainwatch.lib.hub import SensorHub


def get_hub(request: Request) -> SensorHub:
    """Return the sensor hub created at startup."""
    return request.app.state.hub


async def read_json(request: Request) -> tuple[Any, JSONResponse | None]:
    """Parse the request body.

    Returns:
        Tuple of (data, error_response). Exactly one of them is None, except
        for an empty body which yields (None, None).
    """
    body = await request.body()
    if not body:
        return None, None
    try:
        return await request.json(), None
    except ValueError:
        return None, JSONResponse({"error": "Invalid JSON"}, status_code=400)


def error_response(error: str, status_code: int, **extra: Any) -> JSONResponse:
    return JSONResponse({"success": False, "error": error, **extra}, status_code)
