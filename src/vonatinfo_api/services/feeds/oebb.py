"""ÖBB HAFAS JourneyGeoPos adapter (slow source, authoritative for Railjets)."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, replace
from typing import Any

from pydantic import ValidationError

from vonatinfo_api.logging import get_logger
from vonatinfo_api.models.roster import CandidateRecord, TripRecord, VehiclePosition
from vonatinfo_api.services.feeds.base import (
    FeedAdapter,
    FeedDecodeError,
    format_trip_key,
    train_number,
)
from vonatinfo_api.services.feeds.fetcher import FeedFetchError
from vonatinfo_api.services.feeds.payloads import HafasJourney, HafasProduct
from vonatinfo_api.services.feeds.timeparse import (
    delay_between,
    hhmmss_to_seconds,
    local_date_compact,
    roll_over_midnight,
)
from vonatinfo_api.services.feeds.timetable import TimetableClient

logger = get_logger(__name__)

SOURCE_OEBB = "oebb"
OEBB_STATUS = "Position from ÖBB"
OEBB_ROUTE_SHORT_NAME = "RJX"
OEBB_VEHICLE_ID = "oebb_railjet"

# stopL carries the previous, current and upcoming calls around the vehicle
_NEXT_STOP_INDEX = 2
_MICRO_DEGREES = 1e6


@dataclass(frozen=True, slots=True)
class _Sighting:
    record: TripRecord
    number: str


class OebbAdapter(FeedAdapter):
    """Railjet positions from the ÖBB journey planner.

    ÖBB only reports a position and the next call, so every vehicle is
    enriched with its full schedule from the MÁV timetable. A failed lookup
    leaves the vehicle in the batch with an empty schedule.
    """

    source = SOURCE_OEBB
    authoritative = True

    def __init__(
        self,
        *args: Any,
        url: str,
        aid: str,
        rect: tuple[int, int, int, int],
        category_filter: str = "railjet",
        timetable: TimetableClient | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(*args, **kwargs)
        self._url = url
        self._aid = aid
        self._rect = rect
        self._category_filter = category_filter.lower()
        self._timetable = timetable

    def _payload(self) -> dict[str, Any]:
        ll_x, ll_y, ur_x, ur_y = self._rect
        return {
            "id": "v34xpssuk4asggwg",
            "ver": "1.88",
            "lang": "eng",
            "auth": {"type": "AID", "aid": self._aid},
            "client": {"id": "OEBB", "type": "WEB", "name": "webapp", "l": "vs_webapp", "v": 21804},
            "formatted": False,
            "ext": "OEBB.14",
            "svcReqL": [
                {
                    "meth": "JourneyGeoPos",
                    "req": {
                        "rect": {
                            "llCrd": {"x": ll_x, "y": ll_y},
                            "urCrd": {"x": ur_x, "y": ur_y},
                        },
                        "perSize": 35000,
                        "perStep": 5000,
                        "onlyRT": True,
                        "jnyFltrL": [{"type": "PROD", "mode": "INC", "value": "4101"}],
                        "date": local_date_compact(self._tz),
                    },
                    "id": "1|3|",
                }
            ],
        }

    async def _fetch(self, poll_id: str) -> Any:
        return await self._fetcher.post_json(
            self._url, self._payload(), source=self.source, poll_id=poll_id
        )

    async def _normalize(self, document: Any, poll_id: str) -> list[CandidateRecord]:
        try:
            result = document["svcResL"][0]
            err = result.get("err", "OK")
            res = result.get("res") or {}
            journeys = res.get("jnyL") or []
            products = (res.get("common") or {}).get("prodL") or []
        except (KeyError, IndexError, TypeError, AttributeError) as exc:
            msg = "HAFAS response has no svcResL result"
            raise FeedDecodeError(msg) from exc
        if err != "OK":
            msg = f"HAFAS returned error {err!r}"
            raise FeedDecodeError(msg)

        now, now_of_day = self._now()
        sightings: list[_Sighting] = []
        seen_vehicles: set[str] = set()
        skipped = 0

        for raw in journeys:
            try:
                sighting = self._sighting(raw, products, now)
            except (ValidationError, ValueError, IndexError):
                skipped += 1
                continue
            if sighting is None:
                continue
            seen_vehicles.add(sighting.record.position.vehicle_id)
            sightings.append(sighting)

        self._motion.forget_except(seen_vehicles)
        if skipped:
            logger.info("Skipped malformed ÖBB journeys", poll_id=poll_id, skipped=skipped)

        records = [s.record for s in sightings]
        timetable = self._timetable
        if timetable is not None and sightings:
            records = list(
                await asyncio.gather(
                    *(self._enrich(timetable, s, poll_id, now_of_day) for s in sightings)
                )
            )
        return [self._candidate(record) for record in records]

    def _sighting(self, raw: Any, products: list[Any], now: int) -> _Sighting | None:
        journey = HafasJourney.model_validate(raw)
        product = HafasProduct.model_validate(products[journey.prod_x])

        category = product.prod_ctx.cat_out_l
        if self._category_filter not in category.lower():
            return None

        number = train_number(product.name)
        if not number:
            msg = f"Product {product.name!r} carries no train number"
            raise ValueError(msg)

        next_delay = None
        if len(journey.stop_l) > _NEXT_STOP_INDEX:
            next_stop = journey.stop_l[_NEXT_STOP_INDEX]
            next_delay = delay_between(
                hhmmss_to_seconds(next_stop.a_time_s),
                hhmmss_to_seconds(next_stop.a_time_r),
            )

        key = format_trip_key(number, category)
        lat = journey.pos.y / _MICRO_DEGREES
        lon = journey.pos.x / _MICRO_DEGREES
        vehicle_id = journey.jid or f"{OEBB_VEHICLE_ID}:{number}"
        motion = self._motion.observe(vehicle_id, lat, lon, now)

        record = TripRecord(
            trip_short_name=key,
            position=VehiclePosition(
                source=self.source,
                vehicle_id=vehicle_id,
                lat=lat,
                lon=lon,
                heading=motion.heading,
                speed=motion.speed,
                observed_at=now,
            ),
            route_short_name=OEBB_ROUTE_SHORT_NAME,
            headsign=journey.dir_txt or "",
            next_stop_delay=next_delay,
            status=OEBB_STATUS,
        )
        return _Sighting(record=record, number=number)

    async def _enrich(
        self, timetable: TimetableClient, sighting: _Sighting, poll_id: str, now_of_day: int
    ) -> TripRecord:
        try:
            stops = await timetable.fetch_schedule(sighting.number, poll_id)
        except (FeedFetchError, FeedDecodeError) as exc:
            logger.warning(
                "Timetable enrichment failed",
                source=self.source,
                poll_id=poll_id,
                train_number=sighting.number,
                error=str(exc),
            )
            return sighting.record
        except Exception as exc:
            logger.error(
                "Unexpected timetable enrichment error",
                source=self.source,
                poll_id=poll_id,
                train_number=sighting.number,
                exc_info=exc,
            )
            return sighting.record

        return replace(sighting.record, stop_times=roll_over_midnight(stops, now_of_day))
