"""Thresholds API endpoints."""

from pydantic import ValidationError
from starlette.requests import Request
from starlette.responses import JSONResponse

from grainwatch.lib.exceptions import ConfigurationError
from grainwatch.server.api._utils import get_hub, read_json
from grainwatch.server.validators import ThresholdUpdate, format_errors


async def get_thresholds(request: Request) -> JSONResponse:
    """Return current threshold configuration."""
    config = get_hub(request).thresholds.get()
    return JSONResponse({"success": True, "thresholds": config.to_dict()})


async def update_thresholds(request: Request) -> JSONResponse:
    """Apply a partial threshold update."""
    raw_data, error = await read_json(request)
    if error is not None:
        return error

    # Dashboards send either the bare fields or {"thresholds": {...}}
    if isinstance(raw_data, dict) and isinstance(raw_data.get("thresholds"), dict):
        raw_data = raw_data["thresholds"]

    try:
        data = ThresholdUpdate.model_validate(raw_data or {})
    except ValidationError as e:
        return JSONResponse(
            {"success": False, "errors": format_errors(e)}, status_code=400
        )

    try:
        config = get_hub(request).thresholds.update(**data.changes())
    except ConfigurationError as e:
        return JSONResponse(
            {"success": False, "errors": [str(e)]}, status_code=400
        )

    return JSONResponse(
        {
            "success": True,
            "message": "Thresholds updated",
            "thresholds": config.to_dict(),
        }
    )


async def reset_thresholds(request: Request) -> JSONResponse:
    """Restore the thresholds loaded from settings at startup."""
    config = get_hub(request).thresholds.reset()
    return JSONResponse(
        {
            "success": True,
            "message": "Thresholds reset to defaults",
            "thresholds": config.to_dict(),
        }
    )
