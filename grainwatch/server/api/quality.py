"""Grain quality API endpoint."""

from starlette.requests import Request
from starlette.responses import JSONResponse

from grainwatch.lib.quality import format_quality_report, score
from grainwatch.server.api._utils import error_response, get_hub


async def get_quality(request: Request) -> JSONResponse:
    """Score the latest reading of a device against its earlier history."""
    device_id = request.query_params.get("device_id") or None
    readings = get_hub(request).history.get(device_id)
    if not readings:
        return error_response("No data available for quality analysis", 404)

    *earlier, latest = readings
    report = score(latest, earlier)
    return JSONResponse(
        {
            "success": True,
            "quality": report.to_dict(),
            "summary": format_quality_report(report),
        }
    )
