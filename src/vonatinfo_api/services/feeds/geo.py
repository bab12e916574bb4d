"""Great-circle helpers and per-vehicle motion tracking."""

from __future__ import annotations

import math
from dataclasses import dataclass

EARTH_RADIUS_M = 6371000.0


def haversine_distance_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in meters."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    dphi = phi2 - phi1
    dlambda = math.radians(lon2 - lon1)

    s = math.sin(dphi / 2.0) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2.0) ** 2
    return 2.0 * EARTH_RADIUS_M * math.asin(math.sqrt(s))


def initial_bearing_deg(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Initial great-circle bearing from point 1 to point 2, in [0, 360)."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    dlambda = math.radians(lon2 - lon1)

    y = math.sin(dlambda) * math.cos(phi2)
    x = math.cos(phi1) * math.sin(phi2) - math.sin(phi1) * math.cos(phi2) * math.cos(dlambda)
    return (math.degrees(math.atan2(y, x)) + 360.0) % 360.0


@dataclass(frozen=True, slots=True)
class Motion:
    heading: float | None
    speed: float


@dataclass(frozen=True, slots=True)
class _Fix:
    lat: float
    lon: float
    observed_at: int


class MotionTracker:
    """Derives heading and speed from consecutive fixes of the same vehicle.

    A vehicle seen for the first time, or one whose position did not change,
    gets zero speed and no heading.
    """

    def __init__(self) -> None:
        self._last: dict[str, _Fix] = {}

    def __len__(self) -> int:
        return len(self._last)

    def observe(self, vehicle_key: str, lat: float, lon: float, observed_at: int) -> Motion:
        previous = self._last.get(vehicle_key)
        current = _Fix(lat=lat, lon=lon, observed_at=observed_at)

        if previous is None or (previous.lat, previous.lon) == (lat, lon):
            # Keep the oldest fix of a stationary vehicle so the next move
            # is measured over the whole stop.
            if previous is None:
                self._last[vehicle_key] = current
            return Motion(heading=None, speed=0.0)

        self._last[vehicle_key] = current
        heading = initial_bearing_deg(previous.lat, previous.lon, lat, lon)
        elapsed = observed_at - previous.observed_at
        if elapsed <= 0:
            return Motion(heading=heading, speed=0.0)
        distance = haversine_distance_m(previous.lat, previous.lon, lat, lon)
        return Motion(heading=heading, speed=distance / elapsed)

    def forget_except(self, vehicle_keys: set[str]) -> None:
        """Drop fixes of vehicles absent from the latest batch."""
        for key in list(self._last):
            if key not in vehicle_keys:
                del self._last[key]
