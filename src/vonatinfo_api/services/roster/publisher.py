"""Immutable roster snapshots for readers, plus the on-disk JSON mirror."""

from __future__ import annotations

import json
import os
import tempfile
from collections.abc import Mapping
from contextlib import suppress
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any

from vonatinfo_api.logging import get_logger
from vonatinfo_api.models.roster import LightRecord, TripRecord

logger = get_logger(__name__)

TIMETABLES_FILE = "timetables.json"
TRAINS_FILE = "trains.json"


@dataclass(frozen=True)
class RosterSnapshot:
    """Read-only view of the roster as of one published cycle."""

    trips: Mapping[str, TripRecord] = field(default_factory=lambda: MappingProxyType({}))
    published_at: int = 0

    def __len__(self) -> int:
        return len(self.trips)

    def full_roster(self) -> list[TripRecord]:
        return list(self.trips.values())

    def light_roster(self) -> list[LightRecord]:
        return [trip.to_light() for trip in self.trips.values()]

    def by_key(self, trip_short_name: str) -> TripRecord | None:
        return self.trips.get(trip_short_name)


def timetables_document(snapshot: RosterSnapshot) -> dict[str, Any]:
    return {"data": {"vehiclePositions": [trip.to_dict() for trip in snapshot.full_roster()]}}


def trains_document(snapshot: RosterSnapshot) -> dict[str, Any]:
    return {"data": [light.to_dict() for light in snapshot.light_roster()]}


class SnapshotPublisher:
    """Holds the single current snapshot reference.

    ``publish`` copies the working store into a fresh snapshot and swaps the
    reference. A reader that obtained the previous snapshot keeps a
    consistent view of it.
    """

    def __init__(self) -> None:
        self._current = RosterSnapshot()

    @property
    def current(self) -> RosterSnapshot:
        return self._current

    def publish(self, store: Mapping[str, TripRecord], published_at: int) -> RosterSnapshot:
        snapshot = RosterSnapshot(
            trips=MappingProxyType(dict(store)),
            published_at=published_at,
        )
        self._current = snapshot
        return snapshot

    def full_roster(self) -> list[TripRecord]:
        return self._current.full_roster()

    def light_roster(self) -> list[LightRecord]:
        return self._current.light_roster()

    def by_key(self, trip_short_name: str) -> TripRecord | None:
        return self._current.by_key(trip_short_name)


class MirrorWriter:
    """Writes ``timetables.json`` and ``trains.json`` for static hosting.

    Each file is written to a temporary sibling and renamed into place, so
    a reader of the directory never sees a partial document.
    """

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)

    def write(self, snapshot: RosterSnapshot) -> bool:
        """Write both mirror files. Returns False if either write failed."""
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            self._write_atomic(TIMETABLES_FILE, timetables_document(snapshot))
            self._write_atomic(TRAINS_FILE, trains_document(snapshot))
        except OSError as exc:
            logger.error(
                "Mirror write failed",
                directory=str(self.directory),
                error=str(exc),
            )
            return False

        logger.debug(
            "Mirror written",
            directory=str(self.directory),
            trip_count=len(snapshot),
        )
        return True

    def _write_atomic(self, name: str, document: dict[str, Any]) -> None:
        fd, tmp_path = tempfile.mkstemp(dir=self.directory, prefix=f".{name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(document, fh, ensure_ascii=False)
            os.replace(tmp_path, self.directory / name)
        except BaseException:
            with suppress(FileNotFoundError):
                os.unlink(tmp_path)
            raise
