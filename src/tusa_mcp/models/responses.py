from pydantic import BaseModel, Field

from tusa_mcp.models.transit import Disruption, FavoriteStop, FormattedTime, Provider, StopDetail


class StopResult(BaseModel):
    stop_id: str
    stop_name: str
    stop_lat: float
    stop_lon: float
    provider: Provider = Field(description="Which arrival provider serves this stop")
    distance_km: float | None = Field(
        default=None, description="Distance from search coordinates (geo search only)"
    )


class SearchStopsResponse(BaseModel):
    stops: list[StopResult]
    count: int = Field(description="Number of stops returned")
    directory_available: bool = Field(
        default=True, description="False if the stop feed could not be loaded"
    )


class NearestStopResponse(BaseModel):
    stop: StopResult | None = None
    directory_available: bool = True


class StopDetailResponse(BaseModel):
    detail: StopDetail | None = None
    found: bool
    api_available: bool = True
    sorted_lines: list[str] = Field(
        default_factory=list, description="Line codes, day lines first then night lines"
    )
    message: str | None = None


class ArrivalGroupView(BaseModel):
    """An arrival group with its countdowns ready for display."""

    line_code: str
    destination: str
    is_night: bool
    offsets: list[int] = Field(description="Seconds until each arrival, ascending")
    times: list[FormattedTime]


class GetArrivalsResponse(BaseModel):
    stop_id: str
    provider: Provider
    groups: list[ArrivalGroupView]
    count: int = Field(description="Number of individual arrivals")
    found: bool = True
    api_available: bool = Field(
        default=True, description="False on a transient upstream failure (try again)"
    )
    fetched_at: str | None = Field(default=None, description="ISO timestamp of the fetch")
    message: str | None = None


class GetDisruptionsResponse(BaseModel):
    disruptions: list[Disruption]
    count: int
    old_count: int = Field(description="Disruptions older than 30 days (returned only on request)")
    api_available: bool = True


class FavoritesResponse(BaseModel):
    favorites: list[FavoriteStop]
    count: int
    found: bool = True
    api_available: bool = True
    message: str | None = None
