"""Arrival source routing and normalization.

Stops with 4-character ids are served by TMB iTransit, everything else by
TUSA. Both payloads are normalized into NormalizedArrival here, and every
upstream failure is converted into StopNotFound or UpstreamError before it
leaves this module.
"""

import logging
import math
import time
from datetime import UTC, datetime

import httpx

from tusa_mcp.data.cache import TTLCache
from tusa_mcp.data.config import TransitConfig, get_transit_config
from tusa_mcp.data.tmb_client import TMBClient
from tusa_mcp.data.tusa_client import TusaClient
from tusa_mcp.errors import StopNotFound, UpstreamError
from tusa_mcp.models.responses import ArrivalGroupView, GetArrivalsResponse
from tusa_mcp.models.transit import NormalizedArrival, Provider, StopDetail, StopRecord
from tusa_mcp.models.upstream import TMBResponse, TusaRealtimesResponse, TusaStopDocument
from tusa_mcp.services.aggregation import format_offset, group_arrivals, is_night_line
from tusa_mcp.services.directory_service import StopDirectory

logger = logging.getLogger(__name__)

TMB_STOP_ID_LENGTH = 4

# Placeholder metadata for TMB stops, which have no detail endpoint.
TMB_PLACEHOLDER = "TMB"
TMB_PLACEHOLDER_LINES = "TMB Lines"

_UNIT_SECONDS = {"seconds": 1, "minutes": 60}

# Module-level state (lazy-initialized)
_detail_cache: TTLCache[str, StopDetail] | None = None
_config: TransitConfig | None = None


def _get_config() -> TransitConfig:
    """Get or create the config singleton."""
    global _config
    if _config is None:
        _config = get_transit_config()
    return _config


def _get_detail_cache() -> TTLCache[str, StopDetail]:
    global _detail_cache
    if _detail_cache is None:
        _detail_cache = TTLCache[str, StopDetail](ttl=_get_config().tusa_detail_cache_ttl_seconds)
    return _detail_cache


def resolve_provider(stop_id: str) -> Provider:
    """Pick the arrival provider from the shape of a stop id."""
    if len(stop_id) == TMB_STOP_ID_LENGTH:
        return Provider.TMB
    return Provider.TUSA


def _now_ms() -> int:
    return int(time.time() * 1000)


def normalize_tmb(response: TMBResponse, stop_id: str, now_ms: int) -> list[NormalizedArrival]:
    """Flatten iTransit line trajectories into normalized arrivals.

    Args:
        response: Parsed iTransit payload.
        stop_id: The stop that was queried (for the not-found error).
        now_ms: Current time in epoch milliseconds.

    Raises:
        StopNotFound: If the payload has no stop entry.
    """
    if not response.parades:
        raise StopNotFound(stop_id)

    arrivals: list[NormalizedArrival] = []
    for line in response.parades[0].linies_trajectes:
        for bus in line.propers_busos:
            arrivals.append(
                NormalizedArrival(
                    line_code=line.nom_linia,
                    destination=line.desti_trajecte,
                    seconds_until_arrival=(bus.temps_arribada - now_ms) // 1000,
                    route_id=str(line.codi_linia),
                    provider=Provider.TMB,
                )
            )
    return arrivals


def normalize_tusa(
    response: TusaRealtimesResponse,
    stop_id: str,
    time_unit: str = "seconds",
) -> list[NormalizedArrival]:
    """Convert TUSA realtimes (already relative offsets) to normalized arrivals.

    Args:
        response: Parsed realtimes payload.
        stop_id: The stop that was queried (for the not-found error).
        time_unit: Unit of the provider's time values, "seconds" or "minutes".

    Raises:
        StopNotFound: If the payload has no `times` field.
    """
    if response.times is None:
        raise StopNotFound(stop_id)

    factor = _UNIT_SECONDS[time_unit]
    arrivals: list[NormalizedArrival] = []
    for entry in response.times:
        value = entry.arrival_time if entry.arrival_time is not None else entry.time
        line_code = entry.line_code or (str(entry.route_id) if entry.route_id is not None else None)
        if value is None or not line_code:
            logger.debug(f"Skipping incomplete realtime entry for stop {stop_id}: {entry}")
            continue

        arrivals.append(
            NormalizedArrival(
                line_code=line_code,
                destination=entry.destination,
                seconds_until_arrival=math.floor(value * factor),
                route_id=str(entry.route_id) if entry.route_id is not None else None,
                provider=Provider.TUSA,
            )
        )
    return arrivals


def _to_upstream_error(stop_id: str, error: Exception) -> Exception:
    """Classify a raw fetch failure."""
    if isinstance(error, httpx.HTTPStatusError):
        status = error.response.status_code
        if status == 404:
            return StopNotFound(stop_id)
        return UpstreamError(f"Upstream returned HTTP {status} for stop {stop_id}", status=status)
    return UpstreamError(f"Failed to fetch stop {stop_id}: {error}")


async def fetch_arrivals(
    stop_id: str,
    now_ms: int | None = None,
    config: TransitConfig | None = None,
) -> list[NormalizedArrival]:
    """Fetch live arrivals for a stop from whichever provider serves it.

    Args:
        stop_id: Stop identifier as typed or selected.
        now_ms: Reference time for TMB offsets (default: now).
        config: Optional config override.

    Returns:
        Normalized arrivals in provider order.

    Raises:
        StopNotFound: The provider has no such stop.
        UpstreamError: Network, HTTP or payload failure; retry later.
    """
    config = config or _get_config()
    provider = resolve_provider(stop_id)

    try:
        if provider is Provider.TMB:
            async with TMBClient(config) as client:
                tmb_response = await client.fetch_stop_arrivals(stop_id)
            arrivals = normalize_tmb(tmb_response, stop_id, now_ms if now_ms is not None else _now_ms())
        else:
            async with TusaClient(config) as client:
                tusa_response = await client.fetch_realtimes(stop_id)
            arrivals = normalize_tusa(tusa_response, stop_id, config.tusa_time_unit)
    except StopNotFound:
        raise
    except (httpx.HTTPError, ValueError) as e:
        error = _to_upstream_error(stop_id, e)
        logger.warning(f"Arrivals fetch failed for stop {stop_id} ({provider.value}): {error}")
        raise error from e

    logger.debug(f"Fetched {len(arrivals)} arrivals for stop {stop_id} from {provider.value}")
    return arrivals


def synthesize_tmb_detail(stop: StopRecord) -> StopDetail:
    """Build stop metadata for a TMB stop from its directory record."""
    return StopDetail(
        id=stop.stop_id,
        name=stop.stop_name,
        address=stop.stop_name,
        furniture=TMB_PLACEHOLDER,
        stop_type=TMB_PLACEHOLDER,
        lines=TMB_PLACEHOLDER_LINES,
        latitude=stop.stop_lat,
        longitude=stop.stop_lon,
        provider=Provider.TMB,
    )


def _document_to_detail(document: TusaStopDocument) -> StopDetail:
    return StopDetail(
        id=str(document.id),
        name=document.name,
        address=document.address,
        furniture=document.furniture,
        stop_type=document.stop_type,
        lines=document.lines,
        latitude=document.utmx,
        longitude=document.utmy,
        provider=Provider.TUSA,
    )


async def fetch_stop_detail(
    stop_id: str,
    directory: StopDirectory | None = None,
    config: TransitConfig | None = None,
    force_refresh: bool = False,
) -> StopDetail:
    """Get stop metadata.

    TMB stops are synthesized from the directory with no network call; TUSA
    stops are fetched (and cached).

    Raises:
        StopNotFound: Unknown stop.
        UpstreamError: TUSA fetch failed.
    """
    if resolve_provider(stop_id) is Provider.TMB:
        if directory is None:
            directory = await StopDirectory.get_instance(config)
        stop = directory.find_by_id(stop_id)
        if stop is None:
            raise StopNotFound(stop_id)
        return synthesize_tmb_detail(stop)

    config = config or _get_config()
    cache = _get_detail_cache()

    # Check cache first (unless force refresh)
    if not force_refresh:
        cached = cache.get(stop_id)
        if cached is not None:
            return cached

    async with cache.lock:
        if not force_refresh:
            cached = cache.get(stop_id)
            if cached is not None:
                return cached

        try:
            async with TusaClient(config) as client:
                response = await client.fetch_stop(stop_id)
        except (httpx.HTTPError, ValueError) as e:
            error = _to_upstream_error(stop_id, e)
            logger.warning(f"Stop detail fetch failed for {stop_id}: {error}")
            raise error from e

        if response.document is None:
            raise StopNotFound(stop_id)

        detail = _document_to_detail(response.document)
        cache.set(stop_id, detail)
        return detail


async def get_arrivals(stop_id: str, config: TransitConfig | None = None) -> GetArrivalsResponse:
    """Fetch, group and format arrivals for a stop.

    Never raises for upstream problems: a missing stop gives found=False and a
    transient failure gives api_available=False.
    """
    provider = resolve_provider(stop_id)

    try:
        arrivals = await fetch_arrivals(stop_id, config=config)
    except StopNotFound:
        return GetArrivalsResponse(
            stop_id=stop_id,
            provider=provider,
            groups=[],
            count=0,
            found=False,
            message=f"Stop '{stop_id}' doesn't exist or isn't available",
        )
    except UpstreamError as e:
        return GetArrivalsResponse(
            stop_id=stop_id,
            provider=provider,
            groups=[],
            count=0,
            api_available=False,
            message=str(e),
        )

    groups = [
        ArrivalGroupView(
            line_code=group.line_code,
            destination=group.destination,
            is_night=is_night_line(group.line_code),
            offsets=group.offsets,
            times=[format_offset(offset) for offset in group.offsets],
        )
        for group in group_arrivals(arrivals)
    ]

    return GetArrivalsResponse(
        stop_id=stop_id,
        provider=provider,
        groups=groups,
        count=len(arrivals),
        fetched_at=datetime.now(UTC).isoformat(),
    )


def reset_service() -> None:
    """Reset module state (config and caches). Useful for testing."""
    global _detail_cache, _config
    _detail_cache = None
    _config = None
    # Clear the lru_cache on get_transit_config so it re-reads .env/environment
    if hasattr(get_transit_config, "cache_clear"):
        get_transit_config.cache_clear()
