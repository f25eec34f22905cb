"""Persistence for the rider's favourite stops."""

import json
import logging
from pathlib import Path
from typing import Protocol

from pydantic import TypeAdapter

from tusa_mcp.models.transit import FavoriteStop, StopDetail

logger = logging.getLogger(__name__)

_favorites_adapter = TypeAdapter(list[FavoriteStop])


class FavoritesStore(Protocol):
    def load(self) -> list[FavoriteStop]: ...

    def save(self, favorites: list[FavoriteStop]) -> None: ...


class JsonFileFavoritesStore:
    """Favourites kept as a JSON array of {id, name, lines} in one file."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def load(self) -> list[FavoriteStop]:
        """Read favourites; a missing file means none."""
        if not self.path.exists():
            return []
        return _favorites_adapter.validate_json(self.path.read_bytes())

    def save(self, favorites: list[FavoriteStop]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        data = [favorite.model_dump() for favorite in favorites]
        self.path.write_text(json.dumps(data, ensure_ascii=False), encoding="utf-8")
        logger.debug(f"Saved {len(favorites)} favourites to {self.path}")


def toggle_favorite(favorites: list[FavoriteStop], detail: StopDetail) -> list[FavoriteStop]:
    """Remove the stop if it's a favourite, otherwise append it."""
    if any(favorite.id == detail.id for favorite in favorites):
        return [favorite for favorite in favorites if favorite.id != detail.id]
    return [*favorites, FavoriteStop(id=detail.id, name=detail.name, lines=detail.lines)]
