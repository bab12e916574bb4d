"""Roster data model."""

from vonatinfo_api.models.roster import (
    CandidateRecord,
    LightRecord,
    MergeReport,
    StopTime,
    TripRecord,
    VehiclePosition,
)

__all__ = [
    "CandidateRecord",
    "LightRecord",
    "MergeReport",
    "StopTime",
    "TripRecord",
    "VehiclePosition",
]
