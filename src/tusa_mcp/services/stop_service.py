"""Stop lookup service backed by the in-memory stop directory."""

import logging

from tusa_mcp.errors import EmptyInput, StopNotFound, UpstreamError
from tusa_mcp.models.responses import (
    NearestStopResponse,
    SearchStopsResponse,
    StopDetailResponse,
    StopResult,
)
from tusa_mcp.models.transit import StopRecord
from tusa_mcp.services.aggregation import sort_lines, split_lines
from tusa_mcp.services.arrivals_service import fetch_stop_detail, resolve_provider
from tusa_mcp.services.directory_service import StopDirectory
from tusa_mcp.services.geo import nearest, stops_within

logger = logging.getLogger(__name__)


def _to_stop_result(stop: StopRecord, distance_km: float | None = None) -> StopResult:
    return StopResult(
        stop_id=stop.stop_id,
        stop_name=stop.stop_name,
        stop_lat=stop.stop_lat,
        stop_lon=stop.stop_lon,
        provider=resolve_provider(stop.stop_id),
        distance_km=distance_km,
    )


async def search_stops(
    query: str | None = None,
    lat: float | None = None,
    lon: float | None = None,
    radius_km: float = 0.5,
    limit: int = 10,
    directory: StopDirectory | None = None,
) -> SearchStopsResponse:
    """Search for stops by text or by location.

    Geo search takes priority when both lat and lon are given.

    Raises:
        ValueError: If no search criteria provided.
    """
    if directory is None:
        directory = await StopDirectory.get_instance()

    if lat is not None and lon is not None:
        matches = stops_within((lat, lon), directory.stops, radius_km, limit)
        stops = [_to_stop_result(stop, round(distance, 3)) for stop, distance in matches]
    elif query is not None:
        stops = [_to_stop_result(stop) for stop in directory.search(query, limit)]
    else:
        raise ValueError("At least one search parameter required: query or lat/lon")

    return SearchStopsResponse(stops=stops, count=len(stops), directory_available=len(directory) > 0)


async def find_nearest_stop(
    lat: float,
    lon: float,
    directory: StopDirectory | None = None,
) -> NearestStopResponse:
    """Find the single closest stop to a location."""
    if directory is None:
        directory = await StopDirectory.get_instance()

    try:
        stop = nearest((lat, lon), directory.stops)
    except EmptyInput:
        # only reachable when the directory failed to load
        return NearestStopResponse(stop=None, directory_available=False)

    return NearestStopResponse(stop=_to_stop_result(stop))


async def get_stop_detail(
    stop_id: str,
    directory: StopDirectory | None = None,
) -> StopDetailResponse:
    """Get metadata for a stop, with its lines sorted for display."""
    try:
        detail = await fetch_stop_detail(stop_id, directory=directory)
    except StopNotFound:
        return StopDetailResponse(found=False, message=f"Stop '{stop_id}' not found")
    except UpstreamError as e:
        return StopDetailResponse(found=False, api_available=False, message=str(e))

    return StopDetailResponse(
        detail=detail,
        found=True,
        sorted_lines=sort_lines(split_lines(detail.lines)),
    )
