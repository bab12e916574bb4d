"""Tests for roster snapshots and the JSON mirror."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import patch

import pytest

from vonatinfo_api.services.roster.publisher import (
    TIMETABLES_FILE,
    TRAINS_FILE,
    MirrorWriter,
    SnapshotPublisher,
)

from .fixtures.feed_payloads import make_trip


class TestSnapshotPublisher:
    def test_starts_empty(self) -> None:
        publisher = SnapshotPublisher()

        assert publisher.full_roster() == []
        assert publisher.light_roster() == []
        assert publisher.by_key("123") is None

    def test_reader_keeps_its_snapshot_across_publish(self) -> None:
        publisher = SnapshotPublisher()
        store = {"123": make_trip(key="123")}
        publisher.publish(store, published_at=1)
        held = publisher.current

        store["456"] = make_trip(key="456")
        publisher.publish(store, published_at=2)

        assert [t.trip_short_name for t in held.full_roster()] == ["123"]
        assert len(publisher.current) == 2

    def test_snapshot_is_read_only_copy(self) -> None:
        publisher = SnapshotPublisher()
        store = {"123": make_trip(key="123")}
        snapshot = publisher.publish(store, published_at=1)

        store.clear()

        assert snapshot.by_key("123") is not None
        with pytest.raises(TypeError):
            snapshot.trips["999"] = make_trip(key="999")  # type: ignore[index]

    def test_light_roster_projects_records(self) -> None:
        publisher = SnapshotPublisher()
        publisher.publish(
            {"123": make_trip(key="123", final_arrival=5000, lat=47.1, lon=19.2)},
            published_at=1,
        )

        [light] = publisher.light_roster()

        assert light.trip_short_name == "123"
        assert (light.lat, light.lon) == (47.1, 19.2)
        assert light.headsign == "Terminus"
        assert light.to_dict()["tripHeadsign"] == "Terminus"

    def test_by_key(self) -> None:
        publisher = SnapshotPublisher()
        trip = make_trip(key="123")
        publisher.publish({"123": trip}, published_at=1)

        assert publisher.by_key("123") is trip
        assert publisher.by_key("124") is None


class TestMirrorWriter:
    def test_writes_both_documents(self, tmp_path: Path) -> None:
        publisher = SnapshotPublisher()
        snapshot = publisher.publish({"123": make_trip(key="123", final_arrival=5000)}, 1)

        assert MirrorWriter(tmp_path / "public").write(snapshot) is True

        timetables = json.loads((tmp_path / "public" / TIMETABLES_FILE).read_text("utf-8"))
        trains = json.loads((tmp_path / "public" / TRAINS_FILE).read_text("utf-8"))
        [full] = timetables["data"]["vehiclePositions"]
        assert full["trip"]["tripShortName"] == "123"
        assert full["trip"]["finalArrival"] == 5000
        assert trains["data"][0]["tripShortName"] == "123"

    def test_leaves_no_temporary_files(self, tmp_path: Path) -> None:
        snapshot = SnapshotPublisher().publish({"123": make_trip(key="123")}, 1)

        MirrorWriter(tmp_path).write(snapshot)

        assert sorted(p.name for p in tmp_path.iterdir()) == [TIMETABLES_FILE, TRAINS_FILE]

    def test_failed_rename_keeps_previous_file(self, tmp_path: Path) -> None:
        writer = MirrorWriter(tmp_path)
        writer.write(SnapshotPublisher().publish({"123": make_trip(key="123")}, 1))

        with patch(
            "vonatinfo_api.services.roster.publisher.os.replace",
            side_effect=OSError("disk full"),
        ):
            ok = writer.write(SnapshotPublisher().publish({}, 2))

        assert ok is False
        timetables = json.loads((tmp_path / TIMETABLES_FILE).read_text("utf-8"))
        assert len(timetables["data"]["vehiclePositions"]) == 1
        assert sorted(p.name for p in tmp_path.iterdir()) == [TIMETABLES_FILE, TRAINS_FILE]
