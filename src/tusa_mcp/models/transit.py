"""Provider-agnostic domain models shared by every service."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Provider(str, Enum):
    """Upstream arrival provider, selected from the stop id's shape."""

    TMB = "tmb"
    TUSA = "tusa"


class StopRecord(BaseModel):
    """One row of the stop directory feed."""

    model_config = ConfigDict(frozen=True)

    stop_id: str
    stop_name: str
    stop_lat: float
    stop_lon: float


class StopDetail(BaseModel):
    """Stop metadata shown next to the arrivals board."""

    id: str
    name: str
    address: str | None = None
    furniture: str | None = None
    stop_type: str | None = None
    lines: str | None = Field(default=None, description="Line codes joined by ' - '")
    latitude: float | None = None
    longitude: float | None = None
    provider: Provider


class NormalizedArrival(BaseModel):
    """One upcoming bus at a stop, whichever provider reported it."""

    model_config = ConfigDict(frozen=True)

    line_code: str
    destination: str
    seconds_until_arrival: int = Field(description="Signed; <= 0 means imminent")
    route_id: str | None = None
    provider: Provider


class ArrivalGroup(BaseModel):
    """All arrivals for one line code, collapsed into sorted offsets."""

    line_code: str
    destination: str
    offsets: list[int] = Field(description="Seconds until each arrival, ascending")
    expanded: bool = False

    @property
    def min_offset(self) -> int:
        return self.offsets[0]


class FormattedTime(BaseModel):
    text: str
    is_urgent: bool


class RefreshState(BaseModel):
    """What the refresh scheduler knows about the selected stop."""

    stop_id: str | None = None
    last_successful_fetch: datetime | None = None
    generation: int = 0


class Disruption(BaseModel):
    """A disruption notice affecting the configured city."""

    id: int
    title: str
    date: datetime
    description: str | None = None
    affected_stops: str | None = None
    affected_cities: str
    affected_lines: list[str] = []
    highlined: bool = False
    image: str | None = None


class FavoriteStop(BaseModel):
    id: str
    name: str
    lines: str | None = None
