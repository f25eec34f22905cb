"""Tests for the TUSA API client."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from tusa_mcp.data.config import TransitConfig
from tusa_mcp.data.tusa_client import TusaClient


@pytest.fixture
def config() -> TransitConfig:
    """Create a test config."""
    return TransitConfig(TUSA_API_URL="https://example.com/api")


def _patch_client(mock_client_class: MagicMock, payload) -> AsyncMock:
    mock_response = MagicMock()
    mock_response.json.return_value = payload
    mock_client = AsyncMock()
    mock_client.get = AsyncMock(return_value=mock_response)
    mock_client_class.return_value = mock_client
    return mock_client


async def test_fetch_realtimes(config: TransitConfig):
    payload = {
        "times": [
            {"time": 240, "arrivalTime": 240, "destination": "Gorg", "routeId": "B1", "lineCode": "B1"},
            {"time": 30, "destination": "Montgat", "routeId": 7, "extra": True},
        ]
    }

    with patch("httpx.AsyncClient") as mock_client_class:
        mock_client = _patch_client(mock_client_class, payload)
        async with TusaClient(config) as client:
            data = await client.fetch_realtimes("100042")

    mock_client.get.assert_awaited_once_with("https://example.com/api/stops/100042/realtimes")
    assert data.times is not None
    assert data.times[0].arrival_time == 240
    assert data.times[0].line_code == "B1"
    assert data.times[1].arrival_time is None
    assert data.times[1].route_id == 7


async def test_fetch_realtimes_without_times(config: TransitConfig):
    with patch("httpx.AsyncClient") as mock_client_class:
        _patch_client(mock_client_class, {"error": "not found"})
        async with TusaClient(config) as client:
            data = await client.fetch_realtimes("999999")

    assert data.times is None


async def test_fetch_stop(config: TransitConfig):
    payload = {
        "document": {
            "id": 100042,
            "name": "Pep Ventura",
            "address": "Av. Martí Pujol, 1",
            "furniture": "Marquesina",
            "stopType": "Regular",
            "lines": "B1 - M6 - N2",
            "utmx": 41.4461,
            "utmy": 2.2449,
        }
    }

    with patch("httpx.AsyncClient") as mock_client_class:
        mock_client = _patch_client(mock_client_class, payload)
        async with TusaClient(config) as client:
            data = await client.fetch_stop("100042")

    mock_client.get.assert_awaited_once_with("https://example.com/api/stops/100042/")
    assert data.document is not None
    assert data.document.stop_type == "Regular"
    assert data.document.utmx == 41.4461


async def test_fetch_disruptions(config: TransitConfig):
    payload = {
        "_embedded": {
            "disruptions": [
                {
                    "id": 1,
                    "title": "Obres",
                    "date": "2026-10-01T08:00:00+02:00",
                    "affectedCities": "Badalona",
                    "affectedLines": "Línies: B1, N2",
                    "highlined": True,
                }
            ]
        },
        "_links": {},
    }

    with patch("httpx.AsyncClient") as mock_client_class:
        _patch_client(mock_client_class, payload)
        async with TusaClient(config) as client:
            data = await client.fetch_disruptions()

    assert data.embedded is not None
    assert data.embedded.disruptions[0].affected_lines == "Línies: B1, N2"


def test_proxy_style_base_url():
    config = TransitConfig(TUSA_API_URL="https://proxy.example.com/proxy.php?endpoint=")
    assert config.tusa_url("stops/1/realtimes") == (
        "https://proxy.example.com/proxy.php?endpoint=stops/1/realtimes"
    )


async def test_client_requires_async_context(config: TransitConfig):
    with pytest.raises(RuntimeError, match="Client not initialized"):
        await TusaClient(config).fetch_realtimes("100042")
