"""In-memory stop directory built from the bulk CSV stop feed."""

import asyncio
import csv
import io
import logging
import math

from tusa_mcp.data.config import TransitConfig, get_transit_config
from tusa_mcp.data.directory_client import DirectoryClient
from tusa_mcp.errors import FeedUnavailable
from tusa_mcp.models.transit import StopRecord

logger = logging.getLogger(__name__)

# Positional columns in the stop feed; the others are ignored.
ID_COLUMN = 0
NAME_COLUMN = 2
LAT_COLUMN = 4
LON_COLUMN = 5

DEFAULT_SEARCH_LIMIT = 10


def _parse_coordinate(value: str) -> float | None:
    try:
        number = float(value)
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def parse_stops_feed(text: str) -> list[StopRecord]:
    """Parse the stop feed into records, in feed order.

    The first line is a header. Rows missing an id, a name or a parseable
    coordinate pair are dropped.

    Args:
        text: Raw feed body.

    Returns:
        List of StopRecord.
    """
    records: list[StopRecord] = []
    reader = csv.reader(io.StringIO(text))

    next(reader, None)  # header
    for row in reader:
        if len(row) <= LON_COLUMN:
            continue

        stop_id = row[ID_COLUMN].replace('"', "").strip()
        stop_name = row[NAME_COLUMN].replace('"', "").strip()
        if not stop_id or not stop_name:
            continue

        lat = _parse_coordinate(row[LAT_COLUMN].replace('"', "").strip())
        lon = _parse_coordinate(row[LON_COLUMN].replace('"', "").strip())
        if lat is None or lon is None:
            continue

        records.append(StopRecord(stop_id=stop_id, stop_name=stop_name, stop_lat=lat, stop_lon=lon))

    return records


class StopDirectory:
    """All known stops, replaced wholesale on every successful load.

    Usage:
        directory = await StopDirectory.get_instance()
        directory.search("Pep Ventura")

    A failed load keeps whatever was loaded before, so search degrades
    rather than breaking.
    """

    _instance: "StopDirectory | None" = None
    _lock: asyncio.Lock = asyncio.Lock()

    def __init__(self, stops: list[StopRecord] | None = None) -> None:
        self.stops: list[StopRecord] = []
        self.stops_by_id: dict[str, StopRecord] = {}
        if stops:
            self.replace(stops)

    @classmethod
    async def get_instance(cls, config: TransitConfig | None = None) -> "StopDirectory":
        """Get or create the shared directory, loading it on first use.

        A failed first load is logged and leaves an empty directory; the next
        call retries.
        """
        async with cls._lock:
            if cls._instance is None:
                directory = StopDirectory()
                try:
                    await directory.load(config)
                except FeedUnavailable as e:
                    logger.warning(f"Stop directory unavailable, search degraded: {e}")
                    return directory
                cls._instance = directory
            return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Forget the shared directory. Useful for testing."""
        cls._instance = None

    def replace(self, stops: list[StopRecord]) -> None:
        """Swap in a new record set."""
        self.stops = list(stops)
        self.stops_by_id = {}
        for stop in self.stops:
            self.stops_by_id.setdefault(stop.stop_id, stop)

    async def load(self, config: TransitConfig | None = None) -> list[StopRecord]:
        """Fetch and parse the feed, replacing the current records.

        Returns:
            The freshly loaded records.

        Raises:
            FeedUnavailable: If the feed can't be fetched or parsed, or yields no stops.
        """
        config = config or get_transit_config()

        try:
            async with DirectoryClient(config) as client:
                text = await client.fetch_stops_feed()
        except Exception as e:
            raise FeedUnavailable(f"Failed to fetch stop feed: {e}") from e

        try:
            stops = parse_stops_feed(text)
        except csv.Error as e:
            raise FeedUnavailable(f"Failed to parse stop feed: {e}") from e

        if not stops:
            raise FeedUnavailable("Stop feed contained no usable rows")

        self.replace(stops)
        logger.info(f"Stop directory loaded: {len(self.stops)} stops")
        return self.stops

    def search(self, query: str, limit: int = DEFAULT_SEARCH_LIMIT) -> list[StopRecord]:
        """Find stops by name (case-insensitive) or id (verbatim) substring.

        Args:
            query: Text to look for.
            limit: Maximum number of results.

        Returns:
            Matching stops in feed order.
        """
        if limit < 1:
            return []

        needle = query.lower()
        results: list[StopRecord] = []
        for stop in self.stops:
            if needle in stop.stop_name.lower() or query in stop.stop_id:
                results.append(stop)
                if len(results) >= limit:
                    break
        return results

    def find_by_id(self, stop_id: str) -> StopRecord | None:
        return self.stops_by_id.get(stop_id)

    def __len__(self) -> int:
        return len(self.stops)
