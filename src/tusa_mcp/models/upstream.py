"""Pydantic models for the raw upstream payloads.

Both providers are parsed permissively: unknown fields are ignored and only
the subset we normalize is modelled.
"""

from pydantic import BaseModel, ConfigDict, Field

# ----------------------------------------------------------------------------
# Provider A: TMB iTransit (4-character stop ids)
# ----------------------------------------------------------------------------


class TMBBus(BaseModel):
    """One upcoming bus on a line trajectory."""

    model_config = ConfigDict(extra="ignore")

    temps_arribada: int  # absolute arrival instant, epoch milliseconds
    id_bus: int | None = None


class TMBLineTrajectory(BaseModel):
    """A line serving the stop in one direction."""

    model_config = ConfigDict(extra="ignore")

    codi_linia: str | int
    nom_linia: str
    desti_trajecte: str = ""
    propers_busos: list[TMBBus] = []


class TMBStop(BaseModel):
    model_config = ConfigDict(extra="ignore")

    codi_parada: str | int | None = None
    nom_parada: str | None = None
    linies_trajectes: list[TMBLineTrajectory] = []


class TMBResponse(BaseModel):
    """Top-level response from the iTransit bus stop endpoint."""

    model_config = ConfigDict(extra="ignore")

    parades: list[TMBStop] = []


# ----------------------------------------------------------------------------
# Provider B: TUSA (all other stop ids)
# ----------------------------------------------------------------------------


class TusaRealtime(BaseModel):
    """A single predicted arrival, already relative to the request time."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    time: float | None = None
    arrival_time: float | None = Field(default=None, alias="arrivalTime")
    destination: str = ""
    route_id: str | int | None = Field(default=None, alias="routeId")
    line_code: str | None = Field(default=None, alias="lineCode")


class TusaRealtimesResponse(BaseModel):
    """Response from `stops/{id}/realtimes`. `times` absent means unknown stop."""

    model_config = ConfigDict(extra="ignore")

    times: list[TusaRealtime] | None = None


class TusaStopDocument(BaseModel):
    """Stop metadata. `utmx`/`utmy` actually carry latitude/longitude."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str | int
    name: str
    address: str | None = None
    furniture: str | None = None
    stop_type: str | None = Field(default=None, alias="stopType")
    lines: str | None = None
    utmx: float | None = None
    utmy: float | None = None


class TusaStopResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    document: TusaStopDocument | None = None


class TusaDisruption(BaseModel):
    """A service disruption notice from the HAL disruptions feed."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: int
    title: str | None = None
    date: str
    description: str | None = None
    affected_stops: str | None = Field(default=None, alias="affectedStops")
    affected_cities: str = Field(default="", alias="affectedCities")
    affected_lines: str | None = Field(default=None, alias="affectedLines")
    highlined: bool = False


class TusaDisruptionsEmbedded(BaseModel):
    model_config = ConfigDict(extra="ignore")

    disruptions: list[TusaDisruption] = []


class TusaDisruptionsResponse(BaseModel):
    """HAL-style envelope: `{_embedded: {disruptions: [...]}}`."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    embedded: TusaDisruptionsEmbedded | None = Field(default=None, alias="_embedded")
