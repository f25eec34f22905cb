"""Service disruptions for the configured city, with caching.

Fetch failures are logged and reported as api_available=False rather than
raised, like the rest of the optional upstream data.
"""

import logging
from datetime import UTC, datetime, timedelta

from tusa_mcp.data.cache import TTLCache
from tusa_mcp.data.config import TransitConfig, get_transit_config
from tusa_mcp.data.tusa_client import TusaClient
from tusa_mcp.models.responses import GetDisruptionsResponse
from tusa_mcp.models.transit import Disruption
from tusa_mcp.models.upstream import TusaDisruption
from tusa_mcp.services.aggregation import sort_lines

logger = logging.getLogger(__name__)

AFFECTED_LINES_MARKER = "Línies: "
HIGHLIGHT_IMAGE_URL = "https://bus.bdnmedia.cat/wp-content/uploads/2024/06/disruption.jpg"
UNTITLED = "Sense títol"
RECENT_DAYS = 30

_CACHE_KEY = "disruptions"

# Module-level state (lazy-initialized)
_cache: TTLCache[str, list[Disruption]] | None = None
_config: TransitConfig | None = None


def _get_config() -> TransitConfig:
    """Get or create the config singleton."""
    global _config
    if _config is None:
        _config = get_transit_config()
    return _config


def _get_cache() -> TTLCache[str, list[Disruption]]:
    global _cache
    if _cache is None:
        _cache = TTLCache[str, list[Disruption]](ttl=_get_config().disruptions_cache_ttl_seconds)
    return _cache


def parse_affected_lines(affected_lines: str | None) -> list[str]:
    """Extract line codes from text like "Línies: B1, M6, N2"."""
    if not affected_lines:
        return []
    _, marker, rest = affected_lines.partition(AFFECTED_LINES_MARKER)
    text = rest if marker else affected_lines
    return [code.strip() for code in text.split(",") if code.strip()]


def _parse_date(value: str) -> datetime:
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def to_disruption(raw: TusaDisruption) -> Disruption:
    """Convert a raw feed item, attaching the highlight image when flagged."""
    return Disruption(
        id=raw.id,
        title=raw.title or UNTITLED,
        date=_parse_date(raw.date),
        description=raw.description,
        affected_stops=raw.affected_stops,
        affected_cities=raw.affected_cities,
        affected_lines=sort_lines(parse_affected_lines(raw.affected_lines)),
        highlined=raw.highlined,
        image=HIGHLIGHT_IMAGE_URL if raw.highlined else None,
    )


def filter_for_city(raw_disruptions: list[TusaDisruption], city: str) -> list[Disruption]:
    """Keep disruptions affecting `city`, newest first.

    Items with an unparseable date are skipped.
    """
    disruptions: list[Disruption] = []
    for raw in raw_disruptions:
        if city not in raw.affected_cities:
            continue
        try:
            disruptions.append(to_disruption(raw))
        except ValueError as e:
            logger.debug(f"Skipping disruption {raw.id} with bad date {raw.date!r}: {e}")

    disruptions.sort(key=lambda d: d.date, reverse=True)
    return disruptions


def split_by_age(
    disruptions: list[Disruption],
    now: datetime | None = None,
    days: int = RECENT_DAYS,
) -> tuple[list[Disruption], list[Disruption]]:
    """Split into (current, old): current ones are newer than `days` ago."""
    cutoff = (now or datetime.now(UTC)) - timedelta(days=days)
    current = [d for d in disruptions if d.date > cutoff]
    old = [d for d in disruptions if d.date <= cutoff]
    return current, old


async def _fetch_disruptions(force_refresh: bool = False) -> list[Disruption] | None:
    """Fetch city disruptions with caching.

    Returns:
        Disruptions if successful, None on error.
    """
    config = _get_config()
    cache = _get_cache()

    # Check cache first (unless force refresh)
    if not force_refresh:
        cached = cache.get(_CACHE_KEY)
        if cached is not None:
            return cached

    # Acquire lock to prevent concurrent fetches
    async with cache.lock:
        # Double-check cache after acquiring lock
        if not force_refresh:
            cached = cache.get(_CACHE_KEY)
            if cached is not None:
                return cached

        try:
            async with TusaClient(config) as client:
                response = await client.fetch_disruptions()
        except Exception as e:
            logger.warning(f"Failed to fetch disruptions: {e}")
            return None

        raw = response.embedded.disruptions if response.embedded else []
        disruptions = filter_for_city(raw, config.disruptions_city)
        cache.set(_CACHE_KEY, disruptions)
        logger.debug(f"Fetched {len(disruptions)} disruptions for {config.disruptions_city}")
        return disruptions


async def get_disruptions(
    include_old: bool = False,
    force_refresh: bool = False,
    now: datetime | None = None,
) -> GetDisruptionsResponse:
    """Get service disruptions for the configured city.

    Args:
        include_old: Also return disruptions older than 30 days.
        force_refresh: Bypass the cache.
        now: Reference time for the age split (default: now).

    Returns:
        GetDisruptionsResponse; api_available=False if the feed failed.
    """
    disruptions = await _fetch_disruptions(force_refresh)
    if disruptions is None:
        return GetDisruptionsResponse(disruptions=[], count=0, old_count=0, api_available=False)

    current, old = split_by_age(disruptions, now)
    selected = current + old if include_old else current
    return GetDisruptionsResponse(
        disruptions=selected,
        count=len(selected),
        old_count=len(old),
        api_available=True,
    )


def reset_service() -> None:
    """Reset module state. Useful for testing."""
    global _cache, _config
    _cache = None
    _config = None
    if hasattr(get_transit_config, "cache_clear"):
        get_transit_config.cache_clear()
