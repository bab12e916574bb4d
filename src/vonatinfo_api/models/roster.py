"""Normalized roster records shared by the feed adapters and the reconciler.

All records are immutable. The store replaces a ``TripRecord`` wholesale on
every accepted merge and never edits one in place.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any


@dataclass(frozen=True, slots=True)
class VehiclePosition:
    """One source's live location sample for one vehicle."""

    source: str
    vehicle_id: str
    lat: float
    lon: float
    observed_at: int
    heading: float | None = None
    speed: float | None = None


@dataclass(frozen=True, slots=True)
class StopTime:
    """A scheduled call at a station.

    Times are seconds since local midnight; values past 86400 belong to the
    following day.
    """

    station: str
    scheduled_arrival: int | None = None
    scheduled_departure: int | None = None
    arrival_delay: int | None = None
    departure_delay: int | None = None
    platform: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "stop": {"name": self.station, "platformCode": self.platform},
            "scheduledArrival": self.scheduled_arrival,
            "arrivalDelay": self.arrival_delay,
            "scheduledDeparture": self.scheduled_departure,
            "departureDelay": self.departure_delay,
        }


@dataclass(frozen=True, slots=True)
class TripRecord:
    """Canonical merged state of one trip, keyed by trip short name."""

    trip_short_name: str
    position: VehiclePosition
    stop_times: tuple[StopTime, ...] = ()
    route_short_name: str = ""
    headsign: str = ""
    next_stop_delay: int | None = None
    status: str = ""
    alerts: tuple[str, ...] = ()
    geometry: str | None = None

    @property
    def observed_at(self) -> int:
        return self.position.observed_at

    @property
    def source(self) -> str:
        return self.position.source

    @property
    def final_stop(self) -> StopTime | None:
        return self.stop_times[-1] if self.stop_times else None

    @property
    def first_departure(self) -> int | None:
        """First stop's scheduled departure, or its arrival when it has none."""
        if not self.stop_times:
            return None
        first = self.stop_times[0]
        if first.scheduled_departure is not None:
            return first.scheduled_departure
        return first.scheduled_arrival

    @property
    def final_arrival(self) -> int | None:
        """Last stop's scheduled arrival plus its known delay, or None."""
        final = self.final_stop
        if final is None or final.scheduled_arrival is None:
            return None
        return final.scheduled_arrival + (final.arrival_delay or 0)

    @property
    def destination(self) -> str:
        if self.headsign:
            return self.headsign
        final = self.final_stop
        return final.station if final is not None else ""

    def with_observed_at(self, observed_at: int) -> TripRecord:
        """Return a copy whose position carries a different observation time."""
        return replace(self, position=replace(self.position, observed_at=observed_at))

    def to_light(self) -> LightRecord:
        return LightRecord(
            vehicle_id=self.position.vehicle_id,
            lat=self.position.lat,
            lon=self.position.lon,
            heading=self.position.heading,
            speed=self.position.speed,
            observed_at=self.observed_at,
            next_stop_delay=self.next_stop_delay,
            trip_short_name=self.trip_short_name,
            headsign=self.destination,
            route_short_name=self.route_short_name,
        )

    def to_dict(self) -> dict[str, Any]:
        """Full timetable document in the shape the map UI consumes."""
        final = self.final_stop
        return {
            "vehicleId": self.position.vehicle_id,
            "source": self.source,
            "lat": self.position.lat,
            "lon": self.position.lon,
            "heading": self.position.heading,
            "speed": self.position.speed,
            "lastUpdated": self.observed_at,
            "nextStop": {"arrivalDelay": self.next_stop_delay},
            "status": self.status,
            "trip": {
                "tripShortName": self.trip_short_name,
                "tripHeadsign": self.destination,
                "route": {"shortName": self.route_short_name},
                "arrivalStoptime": {
                    "scheduledArrival": final.scheduled_arrival if final else None,
                    "arrivalDelay": final.arrival_delay if final else None,
                    "stop": {"name": final.station if final else None},
                },
                "finalArrival": self.final_arrival,
                "alerts": [{"alertDescriptionText": text} for text in self.alerts],
                "stoptimes": [stop.to_dict() for stop in self.stop_times],
                "tripGeometry": {"points": self.geometry},
            },
        }


@dataclass(frozen=True, slots=True)
class LightRecord:
    """Flattened projection of a TripRecord for the live map."""

    vehicle_id: str
    lat: float
    lon: float
    heading: float | None
    speed: float | None
    observed_at: int
    next_stop_delay: int | None
    trip_short_name: str
    headsign: str
    route_short_name: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "vehicleId": self.vehicle_id,
            "lat": self.lat,
            "lon": self.lon,
            "heading": self.heading,
            "speed": self.speed,
            "lastUpdated": self.observed_at,
            "nextStop": {"arrivalDelay": self.next_stop_delay},
            "tripShortName": self.trip_short_name,
            "tripHeadsign": self.headsign,
            "routeShortName": self.route_short_name,
        }


@dataclass(frozen=True, slots=True)
class CandidateRecord:
    """A normalized record handed from an adapter to the reconciler.

    ``authoritative`` is set by the producing adapter. Authoritative
    candidates replace any existing record under the same key without going
    through the precedence check.
    """

    trip: TripRecord
    authoritative: bool = False

    @property
    def key(self) -> str:
        return self.trip.trip_short_name


@dataclass
class MergeReport:
    """Per-batch counters returned by the reconciler."""

    inserted: int = 0
    replaced: int = 0
    overridden: int = 0
    rejected: int = 0
    kept: int = 0
    skipped: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "inserted": self.inserted,
            "replaced": self.replaced,
            "overridden": self.overridden,
            "rejected": self.rejected,
            "kept": self.kept,
            "skipped": self.skipped,
        }
