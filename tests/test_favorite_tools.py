"""Tests for the favourite stop tools."""

from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from tusa_mcp.data.favorites_store import JsonFileFavoritesStore
from tusa_mcp.errors import StopNotFound, UpstreamError
from tusa_mcp.models.transit import FavoriteStop, Provider, StopDetail
from tusa_mcp.tools import favorite_tools

DETAIL = StopDetail(id="100042", name="Pep Ventura", lines="B1 - N2", provider=Provider.TUSA)
SAVED = FavoriteStop(id="100077", name="Gorg", lines="B24")


@pytest.fixture
def store(tmp_path: Path):
    store = JsonFileFavoritesStore(tmp_path / "favorites.json")
    store.save([SAVED])
    with patch.object(favorite_tools, "_store", return_value=store):
        yield store


class TestListFavoriteStops:
    def test_lists_saved(self, store: JsonFileFavoritesStore) -> None:
        response = favorite_tools.list_favorite_stops()
        assert response.favorites == [SAVED]
        assert response.count == 1


class TestToggleFavoriteStop:
    async def test_adds_stop(self, store: JsonFileFavoritesStore) -> None:
        with patch.object(favorite_tools, "fetch_stop_detail", AsyncMock(return_value=DETAIL)):
            response = await favorite_tools.toggle_favorite_stop(" 100042 ")

        assert response.found is True
        assert [f.id for f in response.favorites] == ["100077", "100042"]
        assert [f.id for f in store.load()] == ["100077", "100042"]

    async def test_removes_saved_stop(self, store: JsonFileFavoritesStore) -> None:
        store.save([SAVED, FavoriteStop(id="100042", name="Pep Ventura", lines="B1 - N2")])

        with patch.object(favorite_tools, "fetch_stop_detail", AsyncMock(return_value=DETAIL)):
            response = await favorite_tools.toggle_favorite_stop("100042")

        assert response.favorites == [SAVED]
        assert store.load() == [SAVED]

    async def test_unknown_stop_leaves_favorites(self, store: JsonFileFavoritesStore) -> None:
        with patch.object(
            favorite_tools, "fetch_stop_detail", AsyncMock(side_effect=StopNotFound("9999"))
        ):
            response = await favorite_tools.toggle_favorite_stop("9999")

        assert response.found is False
        assert response.api_available is True
        assert "9999" in response.message
        assert store.load() == [SAVED]

    async def test_upstream_failure_leaves_favorites(self, store: JsonFileFavoritesStore) -> None:
        with patch.object(
            favorite_tools, "fetch_stop_detail", AsyncMock(side_effect=UpstreamError("HTTP 502", status=502))
        ):
            response = await favorite_tools.toggle_favorite_stop("100042")

        assert response.found is True
        assert response.api_available is False
        assert response.favorites == [SAVED]
        assert store.load() == [SAVED]
