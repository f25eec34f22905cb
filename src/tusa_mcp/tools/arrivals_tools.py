from tusa_mcp.models.responses import GetArrivalsResponse
from tusa_mcp.server import mcp
from tusa_mcp.services.arrivals_service import get_arrivals as _get_arrivals


@mcp.tool()
async def get_arrivals(stop_id: str) -> GetArrivalsResponse:
    """Get live arrival countdowns at a bus stop, grouped by line.

    Stops with 4-character ids are served by TMB, all others by TUSA.
    Groups are ordered by their next arrival; each group lists every
    upcoming bus as seconds until arrival plus a display label
    ("Imminent", "5 min", "1h 5min") and an urgency flag.

    found=False means the stop doesn't exist. api_available=False means a
    transient upstream failure: ask again later.

    Args:
        stop_id: The stop id (e.g., "1234" or "100123").

    Returns:
        GetArrivalsResponse with grouped arrivals.
    """
    return await _get_arrivals(stop_id.strip())
