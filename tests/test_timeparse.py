"""Tests for time normalization helpers."""

from __future__ import annotations

from datetime import datetime, timezone
from zoneinfo import ZoneInfo

import pytest

from vonatinfo_api.models.roster import StopTime
from vonatinfo_api.services.feeds.timeparse import (
    delay_between,
    hhmmss_to_seconds,
    iso_to_seconds,
    local_date_compact,
    local_midnight_utc,
    roll_over_midnight,
    seconds_since_midnight,
)

TZ = ZoneInfo("Europe/Budapest")


class TestRollOverMidnight:
    def test_shifts_times_after_midnight(self) -> None:
        stops = [
            StopTime(station="Budapest-Keleti", scheduled_departure=85800),
            StopTime(station="Záhony", scheduled_arrival=2400),
        ]

        rolled = roll_over_midnight(stops, now_of_day=600)

        assert rolled[0].scheduled_departure == 85800
        assert rolled[-1].scheduled_arrival == 88800

    def test_leaves_short_schedule_alone(self) -> None:
        stops = [
            StopTime(station="A", scheduled_departure=36000),
            StopTime(station="B", scheduled_arrival=41400),
        ]

        assert roll_over_midnight(stops, now_of_day=600) == tuple(stops)

    def test_leaves_schedule_alone_once_departed(self) -> None:
        stops = [
            StopTime(station="A", scheduled_departure=3600),
            StopTime(station="B", scheduled_arrival=60000),
        ]

        assert roll_over_midnight(stops, now_of_day=7200) == tuple(stops)

    def test_shifts_intermediate_calls(self) -> None:
        stops = [
            StopTime(station="A", scheduled_departure=85800),
            StopTime(station="B", scheduled_arrival=86100, scheduled_departure=300),
            StopTime(station="C", scheduled_arrival=2400),
        ]

        rolled = roll_over_midnight(stops, now_of_day=600)

        assert [s.scheduled_arrival for s in rolled] == [None, 86100, 88800]
        assert rolled[1].scheduled_departure == 86700

    def test_single_stop_is_unchanged(self) -> None:
        stops = [StopTime(station="A", scheduled_arrival=100)]

        assert roll_over_midnight(stops, now_of_day=0) == tuple(stops)


class TestHhmmss:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [("000000", 0), ("103500", 38100), ("235959", 86399), ("01003000", 88200)],
    )
    def test_parses(self, value: str, expected: int) -> None:
        assert hhmmss_to_seconds(value) == expected

    def test_empty_is_none(self) -> None:
        assert hhmmss_to_seconds(None) is None
        assert hhmmss_to_seconds("") is None

    @pytest.mark.parametrize("value", ["1035", "10:35:00", "abcdef"])
    def test_rejects_malformed(self, value: str) -> None:
        with pytest.raises(ValueError):
            hhmmss_to_seconds(value)


class TestIsoAndClock:
    def test_iso_is_converted_to_local_time_of_day(self) -> None:
        # 08:40 UTC is 09:40 in Budapest in January
        assert iso_to_seconds("2026-01-15T08:40:00+00:00", TZ) == 34800

    def test_iso_honours_summer_time(self) -> None:
        assert iso_to_seconds("2026-07-15T08:40:00+00:00", TZ) == 38400

    def test_naive_datetime_is_utc(self) -> None:
        assert seconds_since_midnight(datetime(2026, 1, 15, 23, 30), TZ) == 1800

    def test_local_midnight_utc(self) -> None:
        now = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)

        assert local_midnight_utc(TZ, now) == datetime(2026, 1, 14, 23, 0, tzinfo=timezone.utc)

    def test_local_date_compact_uses_local_day(self) -> None:
        now = datetime(2026, 1, 15, 23, 30, tzinfo=timezone.utc)

        assert local_date_compact(TZ, now) == "20260116"


class TestDelayBetween:
    def test_plain_delay(self) -> None:
        assert delay_between(37800, 38100) == 300

    def test_early_running(self) -> None:
        assert delay_between(37800, 37740) == -60

    def test_delay_across_midnight(self) -> None:
        assert delay_between(86100, 300) == 600

    def test_missing_side(self) -> None:
        assert delay_between(None, 300) is None
        assert delay_between(300, None) is None
