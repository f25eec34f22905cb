from tusa_mcp.data.config import get_transit_config
from tusa_mcp.data.favorites_store import JsonFileFavoritesStore, toggle_favorite
from tusa_mcp.errors import StopNotFound, UpstreamError
from tusa_mcp.models.responses import FavoritesResponse
from tusa_mcp.server import mcp
from tusa_mcp.services.arrivals_service import fetch_stop_detail


def _store() -> JsonFileFavoritesStore:
    return JsonFileFavoritesStore(get_transit_config().favorites_path)


@mcp.tool()
def list_favorite_stops() -> FavoritesResponse:
    """List the saved favourite stops."""
    favorites = _store().load()
    return FavoritesResponse(favorites=favorites, count=len(favorites))


@mcp.tool()
async def toggle_favorite_stop(stop_id: str) -> FavoritesResponse:
    """Add a stop to favourites, or remove it if already saved.

    Args:
        stop_id: The stop id.

    Returns:
        The updated list of favourites. If the stop can't be looked up the
        saved favourites are returned unchanged with found or api_available
        set to False.
    """
    store = _store()
    stop_id = stop_id.strip()

    try:
        detail = await fetch_stop_detail(stop_id)
    except StopNotFound:
        favorites = store.load()
        return FavoritesResponse(
            favorites=favorites,
            count=len(favorites),
            found=False,
            message=f"Stop '{stop_id}' not found",
        )
    except UpstreamError as e:
        favorites = store.load()
        return FavoritesResponse(
            favorites=favorites,
            count=len(favorites),
            api_available=False,
            message=str(e),
        )

    favorites = toggle_favorite(store.load(), detail)
    store.save(favorites)
    return FavoritesResponse(favorites=favorites, count=len(favorites))
