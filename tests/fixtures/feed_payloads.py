"""Builders for upstream feed documents and normalized roster records."""

from __future__ import annotations

from typing import Any

from vonatinfo_api.models.roster import CandidateRecord, StopTime, TripRecord, VehiclePosition


def build_mav_stoptime(
    name: str,
    scheduled_arrival: int | None = None,
    scheduled_departure: int | None = None,
    arrival_delay: int | None = 0,
    departure_delay: int | None = 0,
    platform: str | None = None,
) -> dict[str, Any]:
    return {
        "stop": {"name": name, "platformCode": platform},
        "scheduledArrival": scheduled_arrival,
        "arrivalDelay": arrival_delay,
        "scheduledDeparture": scheduled_departure,
        "departureDelay": departure_delay,
    }


def build_mav_vehicle(
    trip_short_name: str = "2610 személyvonat",
    vehicle_id: str = "mav:veh-1",
    lat: float = 47.5,
    lon: float = 19.04,
    heading: float | None = 90.0,
    speed: float | None = 20.0,
    last_updated: int | None = 1_700_000_000,
    stoptimes: list[dict[str, Any]] | None = None,
    alerts: list[str] | None = None,
    next_stop_delay: int | None = 120,
) -> dict[str, Any]:
    """Build one ``vehiclePositions`` entry as MÁV's GraphQL returns it."""
    if stoptimes is None:
        stoptimes = [
            build_mav_stoptime("Budapest-Keleti", scheduled_departure=36000),
            build_mav_stoptime("Szolnok", scheduled_arrival=41400, arrival_delay=180),
        ]
    final = stoptimes[-1] if stoptimes else None
    return {
        "vehicleId": vehicle_id,
        "lat": lat,
        "lon": lon,
        "heading": heading,
        "speed": speed,
        "lastUpdated": last_updated,
        "nextStop": {"arrivalDelay": next_stop_delay},
        "trip": {
            "arrivalStoptime": final,
            "alerts": [{"alertDescriptionText": text} for text in (alerts or [])],
            "tripShortName": trip_short_name,
            "route": {"shortName": "S70"},
            "stoptimes": stoptimes,
            "tripGeometry": {"points": "_p~iF~ps|U"},
        },
    }


def build_mav_document(*vehicles: dict[str, Any]) -> dict[str, Any]:
    return {"data": {"vehiclePositions": list(vehicles)}}


def build_hafas_journey(
    prod_x: int = 0,
    x: int = 19_040_000,
    y: int = 47_500_000,
    jid: str | None = "1|2345|0|81|19102026",
    direction: str = "Wien Hbf",
    next_scheduled: str | None = "103000",
    next_real: str | None = "103500",
) -> dict[str, Any]:
    """Build one ``jnyL`` entry. The upcoming call sits at index 2 of ``stopL``."""
    return {
        "jid": jid,
        "prodX": prod_x,
        "pos": {"x": x, "y": y},
        "dirTxt": direction,
        "stopL": [
            {"dTimeS": "094500", "dTimeR": "094600"},
            {"aTimeS": "100000", "aTimeR": "100400"},
            {"aTimeS": next_scheduled, "aTimeR": next_real},
        ],
    }


def build_hafas_product(name: str = "RJX 62", category: str = "Railjet Xpress") -> dict[str, Any]:
    return {"name": name, "prodCtx": {"catOutL": category}}


def build_hafas_document(
    journeys: list[dict[str, Any]] | None = None,
    products: list[dict[str, Any]] | None = None,
    err: str = "OK",
) -> dict[str, Any]:
    return {
        "ver": "1.88",
        "svcResL": [
            {
                "meth": "JourneyGeoPos",
                "err": err,
                "res": {
                    "common": {"prodL": products if products is not None else [build_hafas_product()]},
                    "jnyL": journeys if journeys is not None else [build_hafas_journey()],
                },
            }
        ],
    }


def build_timetable_call(
    station: str,
    arrive: str | None = None,
    actual_arrive: str | None = None,
    start: str | None = None,
    actual_start: str | None = None,
    track: str | None = None,
) -> dict[str, Any]:
    return {
        "station": {"name": station},
        "arrive": arrive,
        "actualOrEstimatedArrive": actual_arrive,
        "start": start,
        "actualOrEstimatedStart": actual_start,
        "endTrack": track,
    }


def build_timetable_document(calls: list[dict[str, Any]] | None = None) -> dict[str, Any]:
    """Build a ``GetTimetable`` reply. Times are UTC, i.e. Budapest minus 1h in winter."""
    if calls is None:
        calls = [
            build_timetable_call(
                "Budapest-Keleti",
                start="2026-01-15T08:40:00+00:00",
                actual_start="2026-01-15T08:42:00+00:00",
                track="6",
            ),
            build_timetable_call(
                "Wien Hbf",
                arrive="2026-01-15T11:19:00+00:00",
                actual_arrive="2026-01-15T11:24:00+00:00",
            ),
        ]
    return {"trainSchedulerDetails": [{"scheduler": calls}]}


def make_trip(
    key: str = "123",
    observed_at: int = 1000,
    final_arrival: int | None = None,
    source: str = "mav",
    lat: float = 47.5,
    lon: float = 19.0,
    headsign: str = "",
    first_departure: int | None = None,
) -> TripRecord:
    """Build a TripRecord whose schedule ends at ``final_arrival``.

    The origin departs ``first_departure``, or an hour before the final
    arrival when not given.
    """
    stops: tuple[StopTime, ...] = ()
    if final_arrival is not None:
        if first_departure is None:
            first_departure = final_arrival - 3600
        stops = (
            StopTime(station="Origin", scheduled_departure=first_departure),
            StopTime(station="Terminus", scheduled_arrival=final_arrival),
        )
    return TripRecord(
        trip_short_name=key,
        position=VehiclePosition(
            source=source,
            vehicle_id=f"{source}:{key}",
            lat=lat,
            lon=lon,
            observed_at=observed_at,
        ),
        stop_times=stops,
        headsign=headsign,
    )


def make_candidate(authoritative: bool = False, **kwargs: Any) -> CandidateRecord:
    return CandidateRecord(trip=make_trip(**kwargs), authoritative=authoritative)
