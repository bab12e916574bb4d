"""Admin routes for the feed polling workers."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from vonatinfo_api.logging import get_logger
from vonatinfo_api.services.feeds.worker import PollingWorker, get_workers
from vonatinfo_api.services.roster.pipeline import get_pipeline

logger = get_logger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


# --- Response schemas ---


class WorkerStatusResponse(BaseModel):
    """Status of one feed worker."""

    source: str
    running: bool
    authoritative: bool
    poll_count: int
    skipped_count: int
    last_poll_at: str | None = None
    poll_interval_sec: float
    last_status: str | None = None


class FeedsStatusResponse(BaseModel):
    """Status of every feed worker plus the published roster."""

    workers: list[WorkerStatusResponse]
    roster_size: int
    published_at: int
    cycle_count: int


class RunOnceResponse(BaseModel):
    """Report of one poll cycle."""

    poll_id: str
    source: str
    status: str
    started_at: str | None = None
    ended_at: str | None = None
    candidate_count: int = 0
    merge: dict[str, int] | None = None
    evicted: int = 0
    roster_size: int | None = None


async def _status() -> dict[str, Any]:
    pipeline = get_pipeline()
    snapshot = pipeline.snapshot
    return {
        "workers": [await worker.get_status() for worker in get_workers().values()],
        "roster_size": len(snapshot),
        "published_at": snapshot.published_at,
        "cycle_count": pipeline.cycle_count,
    }


def _worker(source: str) -> PollingWorker:
    worker = get_workers().get(source)
    if worker is None:
        raise HTTPException(status_code=404, detail=f"Unknown feed source: {source}")
    return worker


# TODO: Protect the admin router once an auth layer exists.
@router.get(
    "/feeds/status",
    response_model=FeedsStatusResponse,
    summary="Get feed worker status",
)
async def get_feeds_status() -> dict[str, Any]:
    return await _status()


@router.post(
    "/feeds/{source}/run-once",
    response_model=RunOnceResponse,
    summary="Trigger a single poll cycle for one source",
)
async def run_once(source: str) -> dict[str, Any]:
    """Poll one source immediately and push the batch through the pipeline."""
    worker = _worker(source)
    return await worker.run_once()


@router.post(
    "/feeds/start",
    response_model=FeedsStatusResponse,
    summary="Start all feed workers",
)
async def start_workers() -> dict[str, Any]:
    for worker in get_workers().values():
        await worker.start()
    return await _status()


@router.post(
    "/feeds/stop",
    response_model=FeedsStatusResponse,
    summary="Stop all feed workers",
)
async def stop_workers() -> dict[str, Any]:
    for worker in get_workers().values():
        await worker.stop()
    logger.info("Feed workers stopped via admin")
    return await _status()
