import httpx

from tusa_mcp.data.config import TransitConfig


class DirectoryClient:
    """Async HTTP client for the bulk stop directory feed.

    Usage:
        async with DirectoryClient(config) as client:
            text = await client.fetch_stops_feed()
    """

    def __init__(self, config: TransitConfig):
        self._config = config
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "DirectoryClient":
        """Enter async context - create HTTP client."""
        self._client = httpx.AsyncClient(timeout=self._config.http_timeout_seconds)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Exit async context - close HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def fetch_stops_feed(self) -> str:
        """Fetch the raw CSV stop list.

        Returns:
            The feed body as text, header row included.

        Raises:
            RuntimeError: If client not initialized.
            httpx.HTTPError: If the HTTP request fails.
        """
        if not self._client:
            raise RuntimeError("Client not initialized - use 'async with'")

        response = await self._client.get(self._config.stops_feed_url)
        response.raise_for_status()
        return response.text
