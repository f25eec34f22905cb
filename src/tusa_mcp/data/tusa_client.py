import httpx

from tusa_mcp.data.config import TransitConfig
from tusa_mcp.models.upstream import (
    TusaDisruptionsResponse,
    TusaRealtimesResponse,
    TusaStopResponse,
)


class TusaClient:
    """Async HTTP client for the TUSA API (realtimes, stop metadata, disruptions).

    Usage:
        async with TusaClient(config) as client:
            realtimes = await client.fetch_realtimes("100123")
    """

    def __init__(self, config: TransitConfig):
        """Initialize the client.

        Args:
            config: Configuration with the TUSA base URL.
        """
        self._config = config
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "TusaClient":
        """Enter async context - create HTTP client."""
        self._client = httpx.AsyncClient(timeout=self._config.http_timeout_seconds)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Exit async context - close HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _get_json(self, path: str):
        if not self._client:
            raise RuntimeError("Client not initialized - use 'async with'")

        response = await self._client.get(self._config.tusa_url(path))
        response.raise_for_status()
        return response.json()

    async def fetch_realtimes(self, stop_id: str) -> TusaRealtimesResponse:
        """Fetch predicted arrivals for a stop.

        Raises:
            RuntimeError: If client not initialized.
            httpx.HTTPError: If the HTTP request fails.
        """
        data = await self._get_json(f"stops/{stop_id}/realtimes")
        return TusaRealtimesResponse.model_validate(data)

    async def fetch_stop(self, stop_id: str) -> TusaStopResponse:
        """Fetch rich stop metadata (address, furniture, lines)."""
        data = await self._get_json(f"stops/{stop_id}/")
        return TusaStopResponse.model_validate(data)

    async def fetch_disruptions(self) -> TusaDisruptionsResponse:
        """Fetch every published disruption, unfiltered."""
        data = await self._get_json("disruptions")
        return TusaDisruptionsResponse.model_validate(data)
