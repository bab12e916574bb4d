"""Per-source polling workers feeding the shared roster pipeline."""

from __future__ import annotations

import asyncio
import uuid
from contextlib import suppress
from datetime import datetime, timezone
from typing import Any
from zoneinfo import ZoneInfo

from vonatinfo_api.config import get_settings
from vonatinfo_api.logging import get_logger, poll_context
from vonatinfo_api.models.roster import CandidateRecord
from vonatinfo_api.services.feeds.base import FeedAdapter
from vonatinfo_api.services.feeds.fetcher import FeedFetcher
from vonatinfo_api.services.feeds.mav import MavAdapter
from vonatinfo_api.services.feeds.oebb import OebbAdapter
from vonatinfo_api.services.feeds.timetable import TimetableClient
from vonatinfo_api.services.roster.pipeline import RosterPipeline, get_pipeline

logger = get_logger(__name__)

STATUS_OK = "ok"
STATUS_EMPTY = "empty"
STATUS_TIMEOUT = "timeout"
STATUS_SKIPPED = "skipped"


class PollingWorker:
    """Polls one adapter on its interval and pushes each batch through the pipeline.

    Usage:
        worker = PollingWorker(adapter, pipeline)
        await worker.start()   # launches background task
        await worker.stop()    # cancels background task

        # Or run a single poll cycle:
        report = await worker.run_once()

    A tick that finds the previous cycle still in flight is skipped.
    """

    def __init__(
        self,
        adapter: FeedAdapter,
        pipeline: RosterPipeline,
        *,
        cycle_timeout_sec: float | None = None,
    ) -> None:
        self.adapter = adapter
        self._pipeline = pipeline
        self._poll_interval = adapter.interval_sec
        self._cycle_timeout = cycle_timeout_sec

        self._task: asyncio.Task[None] | None = None
        self._running = False
        self._in_cycle = False
        self._poll_count = 0
        self._skipped_count = 0
        self._last_poll_at: datetime | None = None
        self._last_report: dict[str, Any] | None = None

    @property
    def source(self) -> str:
        return self.adapter.source

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def poll_count(self) -> int:
        return self._poll_count

    @property
    def last_poll_at(self) -> datetime | None:
        return self._last_poll_at

    async def start(self) -> None:
        """Start the background polling loop."""
        if self._running:
            logger.warning("Worker already running, ignoring start request", source=self.source)
            return

        self._running = True
        self._task = asyncio.create_task(self._poll_loop())
        logger.info(
            "Feed worker started",
            source=self.source,
            poll_interval_sec=self._poll_interval,
        )

    async def stop(self) -> None:
        """Stop the background polling loop."""
        if not self._running:
            return

        self._running = False
        if self._task and not self._task.done():
            self._task.cancel()
            with suppress(asyncio.CancelledError):
                await self._task
        self._task = None
        logger.info("Feed worker stopped", source=self.source)

    async def run_once(self) -> dict[str, Any]:
        """Execute a single poll cycle: poll the adapter, then run the pipeline.

        Returns:
            Report dict for the cycle. Status is ``skipped`` when another
            cycle of this worker is still in flight.
        """
        poll_id = str(uuid.uuid4())[:8]

        if self._in_cycle:
            self._skipped_count += 1
            logger.warning("Previous cycle still running, skipping tick", source=self.source)
            return {"poll_id": poll_id, "source": self.source, "status": STATUS_SKIPPED}

        self._in_cycle = True
        try:
            with poll_context(self.source, poll_id):
                return await self._cycle(poll_id)
        finally:
            self._in_cycle = False

    async def get_status(self) -> dict[str, Any]:
        """Get current worker status for health/admin endpoints."""
        return {
            "source": self.source,
            "running": self._running,
            "authoritative": self.adapter.authoritative,
            "poll_count": self._poll_count,
            "skipped_count": self._skipped_count,
            "last_poll_at": self._last_poll_at.isoformat() if self._last_poll_at else None,
            "poll_interval_sec": self._poll_interval,
            "last_status": self._last_report["status"] if self._last_report else None,
        }

    async def _cycle(self, poll_id: str) -> dict[str, Any]:
        self._poll_count += 1
        self._last_poll_at = datetime.now(timezone.utc)

        logger.info(
            "Starting poll cycle",
            source=self.source,
            poll_id=poll_id,
            poll_count=self._poll_count,
        )

        report: dict[str, Any] = {
            "poll_id": poll_id,
            "source": self.source,
            "status": STATUS_OK,
            "started_at": self._last_poll_at.isoformat(),
        }

        candidates: list[CandidateRecord] = []
        try:
            candidates = await asyncio.wait_for(
                self.adapter.poll(poll_id), timeout=self._cycle_timeout
            )
        except asyncio.TimeoutError:
            report["status"] = STATUS_TIMEOUT
            logger.warning(
                "Feed poll timed out",
                source=self.source,
                poll_id=poll_id,
                timeout_sec=self._cycle_timeout,
            )
        else:
            if not candidates:
                report["status"] = STATUS_EMPTY

        report["candidate_count"] = len(candidates)

        cycle = await self._pipeline.run_cycle(candidates, poll_id=poll_id)
        report["merge"] = cycle["merge"]
        report["evicted"] = len(cycle["evicted"])
        report["roster_size"] = cycle["roster_size"]
        report["ended_at"] = datetime.now(timezone.utc).isoformat()

        self._last_report = report
        logger.info("Poll cycle complete", source=self.source, poll_id=poll_id, report=report)
        return report

    async def _poll_loop(self) -> None:
        """Tick on the adapter interval until stopped."""
        in_flight: asyncio.Task[dict[str, Any]] | None = None
        try:
            while self._running:
                if in_flight is not None and not in_flight.done():
                    self._skipped_count += 1
                    logger.warning(
                        "Previous cycle still running, skipping tick", source=self.source
                    )
                else:
                    in_flight = asyncio.create_task(self.run_once())
                    in_flight.add_done_callback(self._log_cycle_failure)

                try:
                    await asyncio.sleep(self._poll_interval)
                except asyncio.CancelledError:
                    break
        finally:
            if in_flight is not None and not in_flight.done():
                in_flight.cancel()
                with suppress(asyncio.CancelledError):
                    await in_flight

    def _log_cycle_failure(self, task: asyncio.Task[dict[str, Any]]) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Poll cycle failed unexpectedly", source=self.source, exc_info=exc)


def build_workers(pipeline: RosterPipeline | None = None) -> dict[str, PollingWorker]:
    """Create one worker per configured source, keyed by source name."""
    settings = get_settings()
    pipeline = pipeline or get_pipeline()
    tz = ZoneInfo(settings.timezone)
    fetcher = FeedFetcher(
        timeout_sec=settings.feed_fetch_timeout_sec,
        max_retries=settings.feed_max_retries,
        backoff_base=settings.feed_backoff_base,
    )

    adapters: list[FeedAdapter] = [
        MavAdapter(
            fetcher,
            tz=tz,
            interval_sec=settings.mav_poll_interval_sec,
            url=settings.mav_graphql_url,
            bbox=settings.mav_bbox,
        ),
        OebbAdapter(
            fetcher,
            tz=tz,
            interval_sec=settings.oebb_poll_interval_sec,
            url=settings.oebb_gate_url,
            aid=settings.oebb_aid,
            rect=settings.oebb_rect,
            category_filter=settings.oebb_category_filter,
            timetable=TimetableClient(fetcher, url=settings.mav_timetable_url, tz=tz),
        ),
    ]
    return {
        adapter.source: PollingWorker(
            adapter, pipeline, cycle_timeout_sec=settings.feed_cycle_timeout_sec
        )
        for adapter in adapters
    }


# Singleton instances for the app lifecycle
_workers: dict[str, PollingWorker] | None = None


def get_workers() -> dict[str, PollingWorker]:
    """Get or create the singleton worker set."""
    global _workers
    if _workers is None:
        _workers = build_workers()
    return _workers


def reset_workers() -> None:
    """Reset the singleton (for testing)."""
    global _workers
    _workers = None
