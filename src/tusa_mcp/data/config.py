from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class TransitConfig(BaseSettings):
    """Configuration for the stop directory feed and both arrival providers.

    Automatically loads from environment variables and .env file.
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # stop directory (CSV)
    stops_feed_url: str = Field(
        default="https://bdnmedia.cat/transit/tusa/stops.php", alias="STOPS_FEED_URL"
    )

    # provider A: TMB iTransit, 4-character stop ids
    tmb_arrivals_url: str = Field(
        default="https://bdnmedia.cat/tmbapi.php?path=itransit/bus/parades",
        alias="TMB_ARRIVALS_URL",
    )
    tmb_app_id: str | None = Field(default=None, alias="TMB_APP_ID")
    tmb_app_key: str | None = Field(default=None, alias="TMB_APP_KEY")

    # provider B: TUSA, every other stop id
    tusa_api_url: str = Field(
        default="https://bdnmedia.cat/proxy.php?endpoint=", alias="TUSA_API_URL"
    )
    tusa_time_unit: Literal["seconds", "minutes"] = Field(
        default="seconds", alias="TUSA_TIME_UNIT"
    )
    tusa_detail_cache_ttl_seconds: int = Field(default=300, alias="TUSA_DETAIL_CACHE_TTL")

    # disruptions
    disruptions_city: str = Field(default="Badalona", alias="DISRUPTIONS_CITY")
    disruptions_cache_ttl_seconds: int = Field(default=60, alias="DISRUPTIONS_CACHE_TTL")

    # refresh loop
    refresh_interval_seconds: float = Field(default=30.0, alias="REFRESH_INTERVAL")
    tick_interval_seconds: float = Field(default=1.0, alias="TICK_INTERVAL")

    http_timeout_seconds: float = Field(default=30.0, alias="HTTP_TIMEOUT")
    favorites_path: Path = Field(default=Path("data/favorites.json"), alias="FAVORITES_PATH")

    def tusa_url(self, path: str) -> str:
        """Join a provider B endpoint path onto the configured base URL."""
        base = self.tusa_api_url
        if base.endswith("=") or base.endswith("/"):
            return f"{base}{path}"
        return f"{base}/{path}"


@lru_cache
def get_transit_config() -> TransitConfig:
    """Get transit configuration (cached singleton).

    Returns:
        TransitConfig with values from .env file or environment variables.
    """
    return TransitConfig()
