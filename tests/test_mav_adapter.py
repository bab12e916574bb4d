"""Tests for the MÁV vehicle-position adapter."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock
from zoneinfo import ZoneInfo

import pytest

from vonatinfo_api.services.feeds.base import normalize_trip_key
from vonatinfo_api.services.feeds.fetcher import FeedFetchError
from vonatinfo_api.services.feeds.mav import MavAdapter

from .fixtures.feed_payloads import build_mav_document, build_mav_stoptime, build_mav_vehicle

TZ = ZoneInfo("Europe/Budapest")

# 1000 seconds past midnight in Budapest on 2026-01-15
NOW = 1_768_432_600


def _adapter(*documents: object) -> tuple[MavAdapter, MagicMock]:
    fetcher = MagicMock()
    fetcher.post_json = AsyncMock(side_effect=list(documents))
    adapter = MavAdapter(
        fetcher,
        tz=TZ,
        interval_sec=15,
        clock=lambda: NOW,
        url="https://example.com/graphql",
        bbox=(45.7457, 16.2103, 48.5637, 22.9067),
    )
    return adapter, fetcher


class TestTripKey:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("2610", "2610"),
            ("2610 személyvonat", "2610 személyvonat"),
            ("IC 560", "560 ic"),
            ("  560   IC  ", "560 ic"),
            ("S70 2610", "2610 s70"),
            ("RJX62", "62 rjx"),
            ("Mozdony", ""),
            ("", ""),
        ],
    )
    def test_normalize_trip_key(self, raw: str, expected: str) -> None:
        assert normalize_trip_key(raw) == expected


class TestMavAdapter:
    @pytest.mark.asyncio
    async def test_normalizes_vehicle(self) -> None:
        adapter, fetcher = _adapter(build_mav_document(build_mav_vehicle(alerts=["Pályafelújítás"])))

        [candidate] = await adapter.poll("poll-1")

        trip = candidate.trip
        assert candidate.key == "2610 személyvonat"
        assert candidate.authoritative is False
        assert trip.source == "mav"
        assert trip.position.vehicle_id == "mav:veh-1"
        assert (trip.position.lat, trip.position.lon) == (47.5, 19.04)
        assert trip.position.heading == 90.0
        assert trip.observed_at == 1_700_000_000
        assert trip.route_short_name == "S70"
        assert trip.headsign == "Szolnok"
        assert trip.next_stop_delay == 120
        assert trip.status == "Pályafelújítás"
        assert trip.final_arrival == 41400 + 180
        assert [s.station for s in trip.stop_times] == ["Budapest-Keleti", "Szolnok"]

        query = fetcher.post_json.await_args.args[1]["query"]
        assert "swLat: 45.7457" in query
        assert "neLon: 22.9067" in query

    @pytest.mark.asyncio
    async def test_skips_malformed_entries(self) -> None:
        broken = build_mav_vehicle(vehicle_id="broken")
        del broken["lat"]
        adapter, _ = _adapter(
            build_mav_document(
                broken,
                build_mav_vehicle(trip_short_name="Mozdony", vehicle_id="loco"),
                build_mav_vehicle(trip_short_name="IC 560", vehicle_id="ok"),
            )
        )

        candidates = await adapter.poll()

        assert [c.key for c in candidates] == ["560 ic"]

    @pytest.mark.asyncio
    async def test_missing_heading_is_derived_from_previous_fix(self) -> None:
        first = build_mav_vehicle(heading=None, speed=None, lat=47.5, lon=19.0, last_updated=1000)
        second = build_mav_vehicle(heading=None, speed=None, lat=47.51, lon=19.0, last_updated=1060)
        adapter, _ = _adapter(build_mav_document(first), build_mav_document(second))

        [initial] = await adapter.poll()
        [moved] = await adapter.poll()

        assert initial.trip.position.heading is None
        assert initial.trip.position.speed == 0.0
        assert moved.trip.position.heading == pytest.approx(0.0, abs=0.01)
        assert moved.trip.position.speed == pytest.approx(1112 / 60, rel=0.01)

    @pytest.mark.asyncio
    async def test_rolls_overnight_schedule(self) -> None:
        vehicle = build_mav_vehicle(
            stoptimes=[
                build_mav_stoptime("Budapest-Keleti", scheduled_departure=85800),
                build_mav_stoptime("Záhony", scheduled_arrival=2400, arrival_delay=0),
            ]
        )
        adapter, _ = _adapter(build_mav_document(vehicle))

        [candidate] = await adapter.poll()

        assert candidate.trip.final_arrival == 88800

    @pytest.mark.asyncio
    async def test_arrival_stoptime_fills_missing_schedule(self) -> None:
        vehicle = build_mav_vehicle(stoptimes=[])
        vehicle["trip"]["arrivalStoptime"] = build_mav_stoptime("Szeged", scheduled_arrival=50000)
        adapter, _ = _adapter(build_mav_document(vehicle))

        [candidate] = await adapter.poll()

        assert candidate.trip.final_arrival == 50000
        assert candidate.trip.headsign == "Szeged"

    @pytest.mark.asyncio
    async def test_fetch_failure_yields_empty_batch(self) -> None:
        adapter, _ = _adapter(FeedFetchError("Failed to fetch mav after 1 attempts"))

        assert await adapter.poll() == []

    @pytest.mark.asyncio
    async def test_graphql_error_yields_empty_batch(self) -> None:
        adapter, _ = _adapter({"errors": [{"message": "Query timeout"}]})

        assert await adapter.poll() == []

    @pytest.mark.asyncio
    async def test_unexpected_error_yields_empty_batch(self) -> None:
        adapter, _ = _adapter(RuntimeError("boom"))

        assert await adapter.poll() == []
