"""Great-circle distance helpers for ranking stops by nearness."""

import math
from collections.abc import Iterable

from tusa_mcp.errors import EmptyInput
from tusa_mcp.models.transit import StopRecord

# Earth's radius in kilometres for haversine calculation
EARTH_RADIUS_KM = 6371.0

LatLon = tuple[float, float]


def distance_km(a: LatLon, b: LatLon) -> float:
    """Calculate the great-circle distance between two points in kilometres.

    Args:
        a, b: (latitude, longitude) pairs in degrees.

    Returns:
        Distance in kilometres.
    """
    lat1, lon1 = a
    lat2, lon2 = b
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    delta_lat = math.radians(lat2 - lat1)
    delta_lon = math.radians(lon2 - lon1)

    h = (
        math.sin(delta_lat / 2) ** 2
        + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(delta_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))

    return EARTH_RADIUS_KM * c


def _stop_position(stop: StopRecord) -> LatLon:
    return (stop.stop_lat, stop.stop_lon)


def nearest(point: LatLon, stops: Iterable[StopRecord]) -> StopRecord:
    """Return the stop closest to `point`; the first one wins ties.

    Raises:
        EmptyInput: If `stops` is empty.
    """
    best: StopRecord | None = None
    best_distance = math.inf

    for stop in stops:
        distance = distance_km(point, _stop_position(stop))
        if distance < best_distance:
            best, best_distance = stop, distance

    if best is None:
        raise EmptyInput("nearest() needs at least one stop")
    return best


def stops_within(
    point: LatLon,
    stops: Iterable[StopRecord],
    radius_km: float,
    limit: int = 20,
) -> list[tuple[StopRecord, float]]:
    """Stops within `radius_km` of `point`, closest first.

    Returns:
        (stop, distance_km) pairs, at most `limit`.
    """
    in_range: list[tuple[StopRecord, float]] = []
    for stop in stops:
        distance = distance_km(point, _stop_position(stop))
        if distance <= radius_km:
            in_range.append((stop, distance))

    # Sort by distance and limit
    in_range.sort(key=lambda x: x[1])
    return in_range[:limit]
