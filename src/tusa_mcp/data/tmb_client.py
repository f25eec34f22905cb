import httpx

from tusa_mcp.data.config import TransitConfig
from tusa_mcp.models.upstream import TMBResponse


class TMBClient:
    """Async HTTP client for TMB iTransit bus arrivals (4-character stop ids).

    Usage:
        async with TMBClient(config) as client:
            response = await client.fetch_stop_arrivals("1234")
    """

    def __init__(self, config: TransitConfig):
        """Initialize the client.

        Args:
            config: Configuration with the iTransit URL and optional credentials.
        """
        self._config = config
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "TMBClient":
        """Enter async context - create HTTP client."""
        params = {}
        if self._config.tmb_app_id and self._config.tmb_app_key:
            params = {"app_id": self._config.tmb_app_id, "app_key": self._config.tmb_app_key}
        self._client = httpx.AsyncClient(params=params, timeout=self._config.http_timeout_seconds)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Exit async context - close HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def fetch_stop_arrivals(self, stop_id: str) -> TMBResponse:
        """Fetch and parse upcoming buses for a stop.

        Returns:
            TMBResponse; `parades` is empty when the stop is unknown.

        Raises:
            RuntimeError: If client not initialized.
            httpx.HTTPError: If the HTTP request fails.
            pydantic.ValidationError: If the payload doesn't match the schema.
        """
        if not self._client:
            raise RuntimeError("Client not initialized - use 'async with'")

        url = f"{self._config.tmb_arrivals_url.rstrip('/')}/{stop_id}"
        response = await self._client.get(url)
        response.raise_for_status()

        return TMBResponse.model_validate(response.json())
