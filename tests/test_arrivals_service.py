"""Tests for arrival source routing, normalization and error mapping."""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from tusa_mcp.data.config import TransitConfig
from tusa_mcp.errors import StopNotFound, UpstreamError
from tusa_mcp.models.transit import Provider, StopRecord
from tusa_mcp.models.upstream import TMBResponse, TusaRealtimesResponse
from tusa_mcp.services import arrivals_service
from tusa_mcp.services.arrivals_service import (
    fetch_arrivals,
    fetch_stop_detail,
    get_arrivals,
    normalize_tmb,
    normalize_tusa,
    resolve_provider,
)
from tusa_mcp.services.directory_service import StopDirectory

NOW_MS = 1_700_000_000_000


@pytest.fixture(autouse=True)
def reset_service():
    """Reset the service state before and after each test."""
    arrivals_service.reset_service()
    yield
    arrivals_service.reset_service()


@pytest.fixture
def config() -> TransitConfig:
    return TransitConfig(
        TMB_ARRIVALS_URL="https://tmb.example.com/parades",
        TUSA_API_URL="https://tusa.example.com/api",
    )


@pytest.fixture
def directory() -> StopDirectory:
    return StopDirectory(
        [StopRecord(stop_id="1234", stop_name="Pl. Pompeu Fabra", stop_lat=41.4503, stop_lon=2.2474)]
    )


def _tmb_payload() -> dict:
    return {
        "parades": [
            {
                "codi_parada": "1234",
                "linies_trajectes": [
                    {
                        "codi_linia": 124,
                        "nom_linia": "B24",
                        "desti_trajecte": "Can Ruti",
                        "propers_busos": [
                            {"temps_arribada": NOW_MS + 650_000, "id_bus": 1},
                            {"temps_arribada": NOW_MS + 30_500, "id_bus": 2},
                        ],
                    },
                    {
                        "codi_linia": 302,
                        "nom_linia": "N2",
                        "desti_trajecte": "Pl. Catalunya",
                        "propers_busos": [{"temps_arribada": NOW_MS - 1_500, "id_bus": 3}],
                    },
                ],
            }
        ]
    }


def _mock_http(mock_client_class: MagicMock, payload=None, *, status: int | None = None) -> AsyncMock:
    """Make httpx.AsyncClient return canned JSON (or raise on a status code)."""
    mock_response = MagicMock()
    mock_response.json.return_value = payload
    if status is not None:
        request = httpx.Request("GET", "https://example.com")
        mock_response.raise_for_status.side_effect = httpx.HTTPStatusError(
            f"HTTP {status}", request=request, response=httpx.Response(status, request=request)
        )
    mock_client = AsyncMock()
    mock_client.get = AsyncMock(return_value=mock_response)
    mock_client_class.return_value = mock_client
    return mock_client


# ============================================================================
# Routing and normalization
# ============================================================================


class TestResolveProvider:
    def test_four_characters_is_tmb(self) -> None:
        assert resolve_provider("1234") is Provider.TMB
        assert resolve_provider("A1B2") is Provider.TMB

    def test_other_lengths_are_tusa(self) -> None:
        assert resolve_provider("100042") is Provider.TUSA
        assert resolve_provider("123") is Provider.TUSA
        assert resolve_provider("12345") is Provider.TUSA
        assert resolve_provider("") is Provider.TUSA


class TestNormalizeTmb:
    def test_flattens_lines_and_buses(self) -> None:
        response = TMBResponse.model_validate(_tmb_payload())

        arrivals = normalize_tmb(response, "1234", NOW_MS)

        assert [(a.line_code, a.seconds_until_arrival) for a in arrivals] == [
            ("B24", 650),
            ("B24", 30),
            ("N2", -2),
        ]
        assert arrivals[0].destination == "Can Ruti"
        assert arrivals[0].route_id == "124"
        assert arrivals[0].provider is Provider.TMB

    def test_offsets_are_floored(self) -> None:
        """-1.5 s floors to -2, 30.5 s floors to 30."""
        arrivals = normalize_tmb(TMBResponse.model_validate(_tmb_payload()), "1234", NOW_MS)
        assert arrivals[1].seconds_until_arrival == 30
        assert arrivals[2].seconds_until_arrival == -2

    def test_empty_parades_is_not_found(self) -> None:
        with pytest.raises(StopNotFound) as exc_info:
            normalize_tmb(TMBResponse(parades=[]), "9999", NOW_MS)
        assert exc_info.value.stop_id == "9999"

    def test_stop_without_buses(self) -> None:
        response = TMBResponse.model_validate({"parades": [{"linies_trajectes": []}]})
        assert normalize_tmb(response, "1234", NOW_MS) == []


class TestNormalizeTusa:
    def test_passes_seconds_through(self) -> None:
        response = TusaRealtimesResponse.model_validate(
            {
                "times": [
                    {"arrivalTime": 240, "time": 240, "destination": "Gorg", "routeId": "B1", "lineCode": "B1"},
                    {"time": 75.9, "destination": "Montgat", "routeId": "M6"},
                ]
            }
        )

        arrivals = normalize_tusa(response, "100042")

        assert [(a.line_code, a.seconds_until_arrival) for a in arrivals] == [("B1", 240), ("M6", 75)]
        assert arrivals[1].route_id == "M6"
        assert arrivals[0].provider is Provider.TUSA

    def test_minutes_unit(self) -> None:
        response = TusaRealtimesResponse.model_validate(
            {"times": [{"time": 3, "destination": "Gorg", "lineCode": "B1"}]}
        )
        arrivals = normalize_tusa(response, "100042", time_unit="minutes")
        assert arrivals[0].seconds_until_arrival == 180

    def test_missing_times_is_not_found(self) -> None:
        with pytest.raises(StopNotFound):
            normalize_tusa(TusaRealtimesResponse(), "100042")

    def test_empty_times_is_no_arrivals(self) -> None:
        assert normalize_tusa(TusaRealtimesResponse(times=[]), "100042") == []

    def test_skips_entries_without_time_or_line(self) -> None:
        response = TusaRealtimesResponse.model_validate(
            {"times": [{"destination": "Gorg", "lineCode": "B1"}, {"time": 10, "destination": "X"}]}
        )
        assert normalize_tusa(response, "100042") == []


# ============================================================================
# Fetching
# ============================================================================


class TestFetchArrivals:
    async def test_tmb_stop_uses_tmb_endpoint(self, config: TransitConfig) -> None:
        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client = _mock_http(mock_client_class, _tmb_payload())
            arrivals = await fetch_arrivals("1234", now_ms=NOW_MS, config=config)

        mock_client.get.assert_awaited_once_with("https://tmb.example.com/parades/1234")
        assert len(arrivals) == 3

    async def test_tusa_stop_uses_realtimes_endpoint(self, config: TransitConfig) -> None:
        payload = {"times": [{"time": 120, "destination": "Gorg", "routeId": "B1", "lineCode": "B1"}]}
        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client = _mock_http(mock_client_class, payload)
            arrivals = await fetch_arrivals("100042", config=config)

        mock_client.get.assert_awaited_once_with("https://tusa.example.com/api/stops/100042/realtimes")
        assert arrivals[0].seconds_until_arrival == 120

    async def test_empty_tmb_response_is_not_found(self, config: TransitConfig) -> None:
        with patch("httpx.AsyncClient") as mock_client_class:
            _mock_http(mock_client_class, {"parades": []})
            with pytest.raises(StopNotFound):
                await fetch_arrivals("9999", config=config)

    async def test_http_404_is_not_found(self, config: TransitConfig) -> None:
        with patch("httpx.AsyncClient") as mock_client_class:
            _mock_http(mock_client_class, None, status=404)
            with pytest.raises(StopNotFound):
                await fetch_arrivals("100042", config=config)

    async def test_http_500_is_upstream_error(self, config: TransitConfig) -> None:
        with patch("httpx.AsyncClient") as mock_client_class:
            _mock_http(mock_client_class, None, status=500)
            with pytest.raises(UpstreamError) as exc_info:
                await fetch_arrivals("100042", config=config)
        assert exc_info.value.status == 500

    async def test_network_error_is_upstream_error(self, config: TransitConfig) -> None:
        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client = AsyncMock()
            mock_client.get = AsyncMock(side_effect=httpx.ReadTimeout("timed out"))
            mock_client_class.return_value = mock_client

            with pytest.raises(UpstreamError):
                await fetch_arrivals("1234", config=config)

    async def test_malformed_json_is_upstream_error(self, config: TransitConfig) -> None:
        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client = _mock_http(mock_client_class)
            mock_client.get.return_value.json.side_effect = ValueError("Expecting value")

            with pytest.raises(UpstreamError):
                await fetch_arrivals("100042", config=config)

    async def test_unexpected_shape_is_upstream_error(self, config: TransitConfig) -> None:
        with patch("httpx.AsyncClient") as mock_client_class:
            _mock_http(mock_client_class, {"parades": "closed"})
            with pytest.raises(UpstreamError):
                await fetch_arrivals("1234", config=config)


class TestFetchStopDetail:
    async def test_tmb_detail_is_synthesized_without_network(
        self, directory: StopDirectory, config: TransitConfig
    ) -> None:
        with patch("httpx.AsyncClient") as mock_client_class:
            detail = await fetch_stop_detail("1234", directory=directory, config=config)

        mock_client_class.assert_not_called()
        assert detail.name == "Pl. Pompeu Fabra"
        assert detail.address == "Pl. Pompeu Fabra"
        assert detail.furniture == "TMB"
        assert detail.stop_type == "TMB"
        assert detail.lines == "TMB Lines"
        assert (detail.latitude, detail.longitude) == (41.4503, 2.2474)
        assert detail.provider is Provider.TMB

    async def test_unknown_tmb_stop(self, directory: StopDirectory, config: TransitConfig) -> None:
        with pytest.raises(StopNotFound):
            await fetch_stop_detail("9999", directory=directory, config=config)

    async def test_tusa_detail_is_fetched_and_cached(self, config: TransitConfig) -> None:
        payload = {
            "document": {
                "id": 100042,
                "name": "Pep Ventura",
                "address": "Av. Martí Pujol, 1",
                "furniture": "Marquesina",
                "stopType": "Regular",
                "lines": "N2 - B1",
                "utmx": 41.4461,
                "utmy": 2.2449,
            }
        }
        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client = _mock_http(mock_client_class, payload)
            detail = await fetch_stop_detail("100042", config=config)
            again = await fetch_stop_detail("100042", config=config)

        assert mock_client.get.await_count == 1
        assert again == detail
        assert detail.id == "100042"
        assert detail.latitude == 41.4461
        assert detail.longitude == 2.2449
        assert detail.provider is Provider.TUSA

    async def test_tusa_detail_failure(self, config: TransitConfig) -> None:
        with patch("httpx.AsyncClient") as mock_client_class:
            _mock_http(mock_client_class, None, status=502)
            with pytest.raises(UpstreamError):
                await fetch_stop_detail("100042", config=config)

    async def test_tusa_detail_without_document(self, config: TransitConfig) -> None:
        with patch("httpx.AsyncClient") as mock_client_class:
            _mock_http(mock_client_class, {})
            with pytest.raises(StopNotFound):
                await fetch_stop_detail("100042", config=config)


class TestGetArrivals:
    async def test_groups_and_formats(self, config: TransitConfig) -> None:
        payload = {
            "times": [
                {"time": 650, "destination": "Gorg", "lineCode": "B1"},
                {"time": 30, "destination": "Gorg", "lineCode": "B1"},
                {"time": 10, "destination": "Pl. Catalunya", "lineCode": "N2"},
            ]
        }
        with patch("httpx.AsyncClient") as mock_client_class:
            _mock_http(mock_client_class, payload)
            response = await get_arrivals("100042", config=config)

        assert response.found is True
        assert response.api_available is True
        assert response.count == 3
        assert [g.line_code for g in response.groups] == ["N2", "B1"]
        assert response.groups[0].is_night is True
        assert response.groups[1].offsets == [30, 650]
        assert [t.text for t in response.groups[1].times] == ["Imminent", "10 min"]
        assert response.fetched_at is not None

    async def test_not_found(self, config: TransitConfig) -> None:
        with patch("httpx.AsyncClient") as mock_client_class:
            _mock_http(mock_client_class, {})
            response = await get_arrivals("100042", config=config)

        assert response.found is False
        assert response.api_available is True
        assert "100042" in response.message

    async def test_upstream_failure(self, config: TransitConfig) -> None:
        with patch("httpx.AsyncClient") as mock_client_class:
            _mock_http(mock_client_class, None, status=503)
            response = await get_arrivals("1234", config=config)

        assert response.found is True
        assert response.api_available is False
        assert response.provider is Provider.TMB
        assert response.groups == []
