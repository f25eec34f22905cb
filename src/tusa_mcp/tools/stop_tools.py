"""MCP tools for finding stops."""

from tusa_mcp.models.responses import NearestStopResponse, SearchStopsResponse, StopDetailResponse
from tusa_mcp.server import mcp
from tusa_mcp.services.stop_service import find_nearest_stop as _find_nearest_stop
from tusa_mcp.services.stop_service import get_stop_detail as _get_stop_detail
from tusa_mcp.services.stop_service import search_stops as _search_stops


@mcp.tool()
async def search_stops(
    query: str | None = None,
    lat: float | None = None,
    lon: float | None = None,
    radius_km: float = 0.5,
    limit: int = 10,
) -> SearchStopsResponse:
    """Search for Badalona bus stops.

    Supports two search modes:
    - Text search: stop name (case-insensitive) or stop id (e.g., "Pep Ventura", "1234")
    - Geo search: stops within a radius of coordinates, closest first

    Examples:
        search_stops(query="Pompeu")  # Stops with "Pompeu" in the name
        search_stops(query="42")  # Stops whose id or name contains "42"
        search_stops(lat=41.45, lon=2.247, radius_km=0.3)  # Nearby stops

    Args:
        query: Text to search for in stop names or ids.
        lat: Latitude for geographic search (requires lon).
        lon: Longitude for geographic search (requires lat).
        radius_km: Search radius for geo search (default 0.5 km, max 10 km).
        limit: Maximum number of results (default 10, max 100).

    Returns:
        SearchStopsResponse with matching stops. Each stop says which arrival
        provider serves it.
    """
    # Validate limit
    limit = max(1, min(100, limit))

    # Validate radius
    radius_km = max(0.01, min(10.0, radius_km))

    return await _search_stops(query=query, lat=lat, lon=lon, radius_km=radius_km, limit=limit)


@mcp.tool()
async def find_nearest_stop(lat: float, lon: float) -> NearestStopResponse:
    """Find the bus stop closest to a location.

    Args:
        lat: Latitude in degrees.
        lon: Longitude in degrees.

    Returns:
        NearestStopResponse; stop is null only if the stop directory is unavailable.
    """
    return await _find_nearest_stop(lat, lon)


@mcp.tool()
async def get_stop_detail(stop_id: str) -> StopDetailResponse:
    """Get address, stop furniture and served lines for a stop.

    Args:
        stop_id: The stop id (4 characters for TMB stops, longer for TUSA stops).

    Returns:
        StopDetailResponse with the detail and its lines sorted (day lines, then night lines).
    """
    return await _get_stop_detail(stop_id)
