"""MÁV OTP2 GraphQL vehicle-position adapter (fast source)."""

from __future__ import annotations

from typing import Any

from pydantic import ValidationError

from vonatinfo_api.logging import get_logger
from vonatinfo_api.models.roster import CandidateRecord, StopTime, TripRecord, VehiclePosition
from vonatinfo_api.services.feeds.base import FeedAdapter, FeedDecodeError, normalize_trip_key
from vonatinfo_api.services.feeds.payloads import MavStoptime, MavVehiclePosition
from vonatinfo_api.services.feeds.timeparse import roll_over_midnight

logger = get_logger(__name__)

SOURCE_MAV = "mav"

VEHICLE_POSITIONS_QUERY = """
{
  vehiclePositions(
    swLat: %(sw_lat)s,
    swLon: %(sw_lon)s,
    neLat: %(ne_lat)s,
    neLon: %(ne_lon)s,
    modes: [RAIL, TRAMTRAIN]
  ) {
    vehicleId
    lat
    lon
    heading
    speed
    lastUpdated
    nextStop { arrivalDelay }
    trip {
      arrivalStoptime {
        scheduledArrival
        arrivalDelay
        stop { name }
      }
      alerts(types: [ROUTE, TRIP]) { alertDescriptionText }
      tripShortName
      route { shortName }
      stoptimes {
        stop { name platformCode }
        scheduledArrival
        arrivalDelay
        scheduledDeparture
        departureDelay
      }
      tripGeometry { points }
    }
  }
}
"""


def _stop_time(raw: MavStoptime) -> StopTime:
    return StopTime(
        station=raw.stop.name,
        platform=raw.stop.platform_code or None,
        scheduled_arrival=raw.scheduled_arrival,
        arrival_delay=raw.arrival_delay,
        scheduled_departure=raw.scheduled_departure,
        departure_delay=raw.departure_delay,
    )


class MavAdapter(FeedAdapter):
    """Geo-bounded ``vehiclePositions`` query against the MÁV journey planner.

    MÁV trips arrive with their full schedule, so no enrichment is needed.
    """

    source = SOURCE_MAV
    authoritative = False

    def __init__(
        self,
        *args: Any,
        url: str,
        bbox: tuple[float, float, float, float],
        **kwargs: Any,
    ) -> None:
        super().__init__(*args, **kwargs)
        self._url = url
        sw_lat, sw_lon, ne_lat, ne_lon = bbox
        self._query = {
            "query": VEHICLE_POSITIONS_QUERY
            % {"sw_lat": sw_lat, "sw_lon": sw_lon, "ne_lat": ne_lat, "ne_lon": ne_lon},
            "variables": {},
        }

    async def _fetch(self, poll_id: str) -> Any:
        return await self._fetcher.post_json(
            self._url, self._query, source=self.source, poll_id=poll_id
        )

    async def _normalize(self, document: Any, poll_id: str) -> list[CandidateRecord]:
        try:
            entries = document["data"]["vehiclePositions"]
        except (KeyError, TypeError) as exc:
            errors = document.get("errors") if isinstance(document, dict) else None
            msg = f"GraphQL response has no vehiclePositions (errors={errors!r})"
            raise FeedDecodeError(msg) from exc
        if not isinstance(entries, list):
            msg = "vehiclePositions is not a list"
            raise FeedDecodeError(msg)

        now, now_of_day = self._now()
        candidates: list[CandidateRecord] = []
        seen_vehicles: set[str] = set()
        skipped = 0

        for raw in entries:
            try:
                vehicle = MavVehiclePosition.model_validate(raw)
            except ValidationError:
                skipped += 1
                continue

            key = normalize_trip_key(vehicle.trip.trip_short_name)
            if not key:
                skipped += 1
                continue

            vehicle_key = vehicle.vehicle_id or key
            seen_vehicles.add(vehicle_key)
            observed_at = vehicle.last_updated or now

            heading = vehicle.heading
            speed = vehicle.speed
            if heading is None:
                motion = self._motion.observe(vehicle_key, vehicle.lat, vehicle.lon, observed_at)
                heading = motion.heading
                if speed is None:
                    speed = motion.speed

            trip = vehicle.trip
            stops = [_stop_time(st) for st in trip.stoptimes]
            if not stops and trip.arrival_stoptime is not None:
                stops = [_stop_time(trip.arrival_stoptime)]

            destination = ""
            if trip.arrival_stoptime is not None:
                destination = trip.arrival_stoptime.stop.name

            alerts = tuple(a.alert_description_text for a in trip.alerts if a.alert_description_text)

            record = TripRecord(
                trip_short_name=key,
                position=VehiclePosition(
                    source=self.source,
                    vehicle_id=vehicle.vehicle_id or "",
                    lat=vehicle.lat,
                    lon=vehicle.lon,
                    heading=heading,
                    speed=speed,
                    observed_at=observed_at,
                ),
                stop_times=roll_over_midnight(stops, now_of_day),
                route_short_name=(trip.route.short_name if trip.route else None) or "",
                headsign=destination,
                next_stop_delay=vehicle.next_stop.arrival_delay if vehicle.next_stop else None,
                status=alerts[0] if alerts else "",
                alerts=alerts,
                geometry=trip.trip_geometry.points if trip.trip_geometry else None,
            )
            candidates.append(self._candidate(record))

        self._motion.forget_except(seen_vehicles)
        if skipped:
            logger.info("Skipped malformed MÁV entries", poll_id=poll_id, skipped=skipped)
        return candidates
