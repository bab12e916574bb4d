"""Time normalization to seconds since local midnight.

Both upstream providers are converted onto one clock before any comparison:
seconds since midnight in a single fixed timezone. Values past 86400 mean
the following day.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone
from typing import TYPE_CHECKING
from zoneinfo import ZoneInfo

if TYPE_CHECKING:
    from collections.abc import Sequence

    from vonatinfo_api.models.roster import StopTime

SECONDS_PER_DAY = 86400
ROLLOVER_SPAN_SEC = 12 * 3600


def seconds_since_midnight(moment: datetime, tz: ZoneInfo) -> int:
    """Seconds elapsed since midnight of ``moment`` as seen in ``tz``.

    Naive datetimes are taken to be UTC.
    """
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    local = moment.astimezone(tz)
    return local.hour * 3600 + local.minute * 60 + local.second


def now_seconds_of_day(tz: ZoneInfo, now: datetime | None = None) -> int:
    return seconds_since_midnight(now or datetime.now(timezone.utc), tz)


def local_midnight_utc(tz: ZoneInfo, now: datetime | None = None) -> datetime:
    """The UTC instant of today's local midnight in ``tz``."""
    local = (now or datetime.now(timezone.utc)).astimezone(tz)
    midnight = local.replace(hour=0, minute=0, second=0, microsecond=0)
    return midnight.astimezone(timezone.utc)


def local_date_compact(tz: ZoneInfo, now: datetime | None = None) -> str:
    """Today's local date as ``YYYYMMDD``."""
    return (now or datetime.now(timezone.utc)).astimezone(tz).strftime("%Y%m%d")


def hhmmss_to_seconds(value: str | None) -> int | None:
    """Parse a compact HAFAS time.

    ``HHMMSS`` is a time of the service day. HAFAS prefixes a two digit day
    offset (``DDHHMMSS``) for calls on later days.

    Raises:
        ValueError: If the string is not 6 or 8 digits.
    """
    if not value:
        return None
    if not value.isdigit() or len(value) not in (6, 8):
        msg = f"Invalid HHMMSS time: {value!r}"
        raise ValueError(msg)

    days = 0
    if len(value) == 8:
        days = int(value[:2])
        value = value[2:]

    hours, minutes, seconds = int(value[0:2]), int(value[2:4]), int(value[4:6])
    return days * SECONDS_PER_DAY + hours * 3600 + minutes * 60 + seconds


def iso_to_seconds(value: str | None, tz: ZoneInfo) -> int | None:
    """Parse an ISO-8601 timestamp into seconds since local midnight.

    Raises:
        ValueError: If the string is not ISO-8601.
    """
    if not value:
        return None
    return seconds_since_midnight(datetime.fromisoformat(value), tz)


def delay_between(scheduled: int | None, actual: int | None) -> int | None:
    """Actual minus scheduled, folded into (-12h, 12h] across midnight."""
    if scheduled is None or actual is None:
        return None
    delay = actual - scheduled
    if delay > ROLLOVER_SPAN_SEC:
        delay -= SECONDS_PER_DAY
    elif delay <= -ROLLOVER_SPAN_SEC:
        delay += SECONDS_PER_DAY
    return delay


def roll_over_midnight(stop_times: Sequence[StopTime], now_of_day: int) -> tuple[StopTime, ...]:
    """Keep a schedule monotonic across midnight.

    When the first departure and the last arrival are more than 12 hours
    apart and the clock is still before the first departure, the trip is
    treated as having started yesterday evening: every time earlier than the
    first departure is moved onto the next day (+86400).
    """
    stops = tuple(stop_times)
    if len(stops) < 2:
        return stops

    first_departure = stops[0].scheduled_departure
    if first_departure is None:
        first_departure = stops[0].scheduled_arrival
    last_arrival = stops[-1].scheduled_arrival
    if last_arrival is None:
        last_arrival = stops[-1].scheduled_departure
    if first_departure is None or last_arrival is None:
        return stops

    if abs(last_arrival - first_departure) <= ROLLOVER_SPAN_SEC or now_of_day >= first_departure:
        return stops

    def shift(value: int | None) -> int | None:
        if value is None or value >= first_departure:
            return value
        return value + SECONDS_PER_DAY

    return tuple(
        replace(
            stop,
            scheduled_arrival=shift(stop.scheduled_arrival),
            scheduled_departure=shift(stop.scheduled_departure),
        )
        for stop in stops
    )


def epoch_now() -> int:
    return int(datetime.now(timezone.utc).timestamp())
