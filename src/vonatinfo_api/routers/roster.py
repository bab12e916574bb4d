"""Public roster endpoints served from the last published snapshot.

Endpoints
---------
GET  /api/timetables                    – full records of every tracked trip
POST /api/timetables                    – full record looked up by body
GET  /api/timetables/{trip_short_name}  – full record looked up by path
GET  /api/trains                        – light projection for the live map
"""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Body, HTTPException
from pydantic import BaseModel, ConfigDict, Field

from vonatinfo_api.logging import get_logger
from vonatinfo_api.services.roster.pipeline import get_pipeline
from vonatinfo_api.services.roster.publisher import timetables_document, trains_document

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["roster"])


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------


class TripLookupRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    trip_short_name: str | None = Field(default=None, alias="tripShortName")


class VehiclePositionsPayload(BaseModel):
    vehiclePositions: list[dict[str, Any]]


class TimetablesResponse(BaseModel):
    data: VehiclePositionsPayload


class TrainsResponse(BaseModel):
    data: list[dict[str, Any]]


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


def _full_record(trip_short_name: str) -> dict[str, Any]:
    trip = get_pipeline().publisher.by_key(trip_short_name)
    if trip is None:
        logger.debug("Trip lookup missed", trip_short_name=trip_short_name)
        raise HTTPException(status_code=404, detail=f"Train not found: {trip_short_name}")
    return trip.to_dict()


@router.get(
    "/timetables",
    response_model=TimetablesResponse,
    summary="Full roster",
)
async def get_timetables() -> dict[str, Any]:
    return timetables_document(get_pipeline().snapshot)


@router.post(
    "/timetables",
    summary="Look up one trip by short name",
    description="400 when `tripShortName` is missing, 404 when the trip is not tracked.",
)
async def lookup_timetable(
    body: Annotated[TripLookupRequest | None, Body()] = None,
) -> dict[str, Any]:
    name = body.trip_short_name.strip() if body and body.trip_short_name else ""
    if not name:
        raise HTTPException(status_code=400, detail="tripShortName is required")
    return _full_record(name)


@router.get(
    "/timetables/{trip_short_name}",
    summary="Get one trip by short name",
)
async def get_timetable(trip_short_name: str) -> dict[str, Any]:
    return _full_record(trip_short_name)


@router.get(
    "/trains",
    response_model=TrainsResponse,
    summary="Light roster for the live map",
)
async def get_trains() -> dict[str, Any]:
    return trains_document(get_pipeline().snapshot)
