"""MÁV timetable lookup used to enrich vehicles with their full schedule."""

from __future__ import annotations

from datetime import datetime
from typing import Any
from zoneinfo import ZoneInfo

from pydantic import ValidationError

from vonatinfo_api.logging import get_logger
from vonatinfo_api.models.roster import StopTime
from vonatinfo_api.services.feeds.base import FeedDecodeError
from vonatinfo_api.services.feeds.fetcher import FeedFetcher
from vonatinfo_api.services.feeds.payloads import TimetableCall
from vonatinfo_api.services.feeds.timeparse import delay_between, iso_to_seconds, local_midnight_utc

logger = get_logger(__name__)

SOURCE_MAV_TIMETABLE = "mav_timetable"


class TimetableClient:
    """Fetches the ordered stop list of one train by its bare number.

    Raises on any failure; the caller decides how a failed lookup degrades.
    """

    def __init__(self, fetcher: FeedFetcher, *, url: str, tz: ZoneInfo) -> None:
        self._fetcher = fetcher
        self._url = url
        self._tz = tz

    def _payload(self, train_number: str, now: datetime | None = None) -> dict[str, Any]:
        # travelDate is the UTC instant of local midnight
        travel_date = local_midnight_utc(self._tz, now).strftime("%Y-%m-%dT%H:%M:%S.000Z")
        return {
            "type": "TrainInfo",
            "travelDate": travel_date,
            "minCount": "0",
            "maxCount": "9999999",
            "trainNumber": train_number,
        }

    async def fetch_schedule(
        self, train_number: str, poll_id: str, now: datetime | None = None
    ) -> tuple[StopTime, ...]:
        """Return the train's calls in travel order.

        Raises:
            FeedFetchError: If the request fails.
            FeedDecodeError: If the reply has no scheduler list or a call is
                malformed.
        """
        document = await self._fetcher.post_json(
            self._url,
            self._payload(train_number, now),
            source=SOURCE_MAV_TIMETABLE,
            poll_id=poll_id,
            headers={"usersessionid": "a2"},
        )

        try:
            details = document.get("trainSchedulerDetails") or [{}]
            calls = details[0].get("scheduler") or []
        except (AttributeError, IndexError, TypeError) as exc:
            msg = f"Timetable reply for {train_number} has no scheduler"
            raise FeedDecodeError(msg) from exc

        try:
            stops = tuple(self._stop_time(TimetableCall.model_validate(raw)) for raw in calls)
        except (ValidationError, ValueError) as exc:
            msg = f"Malformed timetable call for {train_number}"
            raise FeedDecodeError(msg) from exc

        logger.debug(
            "Timetable fetched",
            poll_id=poll_id,
            train_number=train_number,
            stop_count=len(stops),
        )
        return stops

    def _stop_time(self, call: TimetableCall) -> StopTime:
        scheduled_arrival = iso_to_seconds(call.arrive, self._tz)
        actual_arrival = iso_to_seconds(call.actual_or_estimated_arrive, self._tz)
        scheduled_departure = iso_to_seconds(call.start, self._tz)
        actual_departure = iso_to_seconds(call.actual_or_estimated_start, self._tz)
        return StopTime(
            station=call.station.name,
            platform=call.end_track or None,
            scheduled_arrival=scheduled_arrival,
            arrival_delay=delay_between(scheduled_arrival, actual_arrival),
            scheduled_departure=scheduled_departure,
            departure_delay=delay_between(scheduled_departure, actual_departure),
        )
