"""Evicts trips that stopped reporting or finished their run."""

from __future__ import annotations

from collections.abc import MutableMapping

from vonatinfo_api.logging import get_logger
from vonatinfo_api.models.roster import TripRecord
from vonatinfo_api.services.feeds.timeparse import SECONDS_PER_DAY

logger = get_logger(__name__)

STALE_CUTOFF_SEC = 600
ARRIVAL_GRACE_SEC = 60


def arrival_passed_by(record: TripRecord, now_of_day: int) -> int | None:
    """Seconds since the record's final arrival, in the trip's own day frame.

    A schedule that wraps past midnight is compared on a 48-hour clock: an
    unshifted wrap has its final arrival moved to the next day, and a clock
    reading before the first departure counts as the next day once the
    final arrival lies there. Returns None when the final arrival is unknown.
    """
    final_arrival = record.final_arrival
    if final_arrival is None:
        return None
    first_departure = record.first_departure
    if first_departure is not None:
        if final_arrival < first_departure:
            final_arrival += SECONDS_PER_DAY
        if final_arrival >= SECONDS_PER_DAY and now_of_day < first_departure:
            now_of_day += SECONDS_PER_DAY
    return now_of_day - final_arrival


class StalenessSweeper:
    """Removes records by age and by arrival.

    A record goes when its last observation is more than ``cutoff_sec``
    old, or when its final arrival lies more than ``grace_sec`` in the past
    and it has not been observed within that same window.
    """

    def __init__(
        self,
        cutoff_sec: int = STALE_CUTOFF_SEC,
        grace_sec: int = ARRIVAL_GRACE_SEC,
    ) -> None:
        self.cutoff_sec = cutoff_sec
        self.grace_sec = grace_sec

    def is_expired(self, record: TripRecord, now: int, now_of_day: int) -> bool:
        age = now - record.observed_at
        if age > self.cutoff_sec:
            return True
        since_arrival = arrival_passed_by(record, now_of_day)
        return since_arrival is not None and since_arrival > self.grace_sec and age > self.grace_sec

    def sweep(
        self,
        store: MutableMapping[str, TripRecord],
        now: int,
        now_of_day: int,
    ) -> list[str]:
        """Delete expired records from ``store`` and return their keys."""
        evicted = [
            key for key, record in store.items() if self.is_expired(record, now, now_of_day)
        ]
        for key in evicted:
            del store[key]

        if evicted:
            logger.info("Evicted stale trips", evicted_count=len(evicted))
        return evicted
