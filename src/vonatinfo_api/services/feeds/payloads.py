"""Upstream wire models.

Only the fields the adapters normalize are declared. Every optional field
has an explicit default so the adapters never probe for presence; an entry
that fails validation is skipped by its adapter.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _Wire(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )


# ---------------------------------------------------------------------------
# MÁV OTP2 GraphQL: vehiclePositions
# ---------------------------------------------------------------------------


class MavStop(_Wire):
    name: str = ""
    platform_code: str | None = None


class MavStoptime(_Wire):
    stop: MavStop = Field(default_factory=MavStop)
    scheduled_arrival: int | None = None
    arrival_delay: int | None = None
    scheduled_departure: int | None = None
    departure_delay: int | None = None


class MavAlert(_Wire):
    alert_description_text: str | None = None


class MavRoute(_Wire):
    short_name: str | None = None


class MavGeometry(_Wire):
    points: str | None = None


class MavTrip(_Wire):
    trip_short_name: str
    route: MavRoute | None = None
    arrival_stoptime: MavStoptime | None = None
    alerts: list[MavAlert] = Field(default_factory=list)
    stoptimes: list[MavStoptime] = Field(default_factory=list)
    trip_geometry: MavGeometry | None = None


class MavNextStop(_Wire):
    arrival_delay: int | None = None


class MavVehiclePosition(_Wire):
    vehicle_id: str | None = None
    lat: float
    lon: float
    heading: float | None = None
    speed: float | None = None
    last_updated: int | None = None
    next_stop: MavNextStop | None = None
    trip: MavTrip


# ---------------------------------------------------------------------------
# ÖBB HAFAS mgate: JourneyGeoPos
# ---------------------------------------------------------------------------


class HafasCoord(_Wire):
    x: float
    y: float


class HafasStop(_Wire):
    a_time_s: str | None = None
    a_time_r: str | None = None
    d_time_s: str | None = None
    d_time_r: str | None = None


class HafasJourney(_Wire):
    jid: str | None = None
    prod_x: int
    pos: HafasCoord
    dir_txt: str | None = None
    stop_l: list[HafasStop] = Field(default_factory=list)


class HafasProductContext(_Wire):
    cat_out_l: str = ""


class HafasProduct(_Wire):
    name: str = ""
    prod_ctx: HafasProductContext = Field(default_factory=HafasProductContext)


# ---------------------------------------------------------------------------
# MÁV timetable API: GetTimetable (TrainInfo)
# ---------------------------------------------------------------------------


class TimetableStation(_Wire):
    name: str = ""


class TimetableCall(_Wire):
    station: TimetableStation
    arrive: str | None = None
    actual_or_estimated_arrive: str | None = None
    start: str | None = None
    actual_or_estimated_start: str | None = None
    end_track: str | None = None
