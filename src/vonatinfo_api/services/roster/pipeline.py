"""Single-writer merge, sweep and publish cycle shared by all feed workers."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable
from datetime import datetime, timezone
from typing import Any
from zoneinfo import ZoneInfo

from vonatinfo_api.config import get_settings
from vonatinfo_api.logging import get_logger
from vonatinfo_api.models.roster import CandidateRecord, MergeReport
from vonatinfo_api.services.feeds.timeparse import epoch_now, seconds_since_midnight
from vonatinfo_api.services.roster.publisher import MirrorWriter, RosterSnapshot, SnapshotPublisher
from vonatinfo_api.services.roster.reconciler import Reconciler
from vonatinfo_api.services.roster.sweeper import StalenessSweeper

logger = get_logger(__name__)


class RosterPipeline:
    """Owns the published roster and is its only writer.

    Every ``run_cycle`` copies the current snapshot into a working store,
    merges one batch, sweeps, publishes and mirrors, all under one lock.
    Readers go through :attr:`publisher` and never wait on the lock.
    """

    def __init__(
        self,
        *,
        tz: ZoneInfo,
        reconciler: Reconciler | None = None,
        sweeper: StalenessSweeper | None = None,
        publisher: SnapshotPublisher | None = None,
        mirror: MirrorWriter | None = None,
        clock: Callable[[], int] = epoch_now,
    ) -> None:
        self._tz = tz
        self.reconciler = reconciler or Reconciler()
        self.sweeper = sweeper or StalenessSweeper()
        self.publisher = publisher or SnapshotPublisher()
        self.mirror = mirror
        self._clock = clock
        self._lock = asyncio.Lock()
        self._cycle_count = 0

    @property
    def snapshot(self) -> RosterSnapshot:
        return self.publisher.current

    @property
    def cycle_count(self) -> int:
        return self._cycle_count

    async def run_cycle(
        self,
        candidates: Iterable[CandidateRecord],
        now: int | None = None,
        *,
        poll_id: str | None = None,
    ) -> dict[str, Any]:
        """Merge a batch and publish the result.

        An empty batch still sweeps and publishes, so a silent source does
        not keep its trips alive.

        Returns:
            Report dict with the merge counters, evicted keys and roster size.
        """
        async with self._lock:
            now = self._clock() if now is None else now
            now_of_day = seconds_since_midnight(
                datetime.fromtimestamp(now, tz=timezone.utc), self._tz
            )

            store = dict(self.publisher.current.trips)
            merge: MergeReport = self.reconciler.merge(store, candidates, now_of_day)
            evicted = self.sweeper.sweep(store, now, now_of_day)
            snapshot = self.publisher.publish(store, published_at=now)
            self._cycle_count += 1

            mirrored = None
            if self.mirror is not None:
                mirrored = await asyncio.to_thread(self.mirror.write, snapshot)

        logger.info(
            "Roster cycle complete",
            poll_id=poll_id,
            roster_size=len(snapshot),
            evicted_count=len(evicted),
            **merge.to_dict(),
        )
        return {
            "merge": merge.to_dict(),
            "evicted": evicted,
            "roster_size": len(snapshot),
            "mirrored": mirrored,
        }


def build_pipeline() -> RosterPipeline:
    """Build a pipeline from application settings."""
    settings = get_settings()
    mirror = MirrorWriter(settings.mirror_dir) if settings.mirror_enabled else None
    return RosterPipeline(
        tz=ZoneInfo(settings.timezone),
        sweeper=StalenessSweeper(
            cutoff_sec=settings.stale_cutoff_sec,
            grace_sec=settings.arrival_grace_sec,
        ),
        mirror=mirror,
    )


# Singleton instance for the app lifecycle
_pipeline_instance: RosterPipeline | None = None


def get_pipeline() -> RosterPipeline:
    """Get or create the singleton pipeline instance."""
    global _pipeline_instance
    if _pipeline_instance is None:
        _pipeline_instance = build_pipeline()
    return _pipeline_instance


def reset_pipeline() -> None:
    """Reset the singleton (for testing)."""
    global _pipeline_instance
    _pipeline_instance = None
