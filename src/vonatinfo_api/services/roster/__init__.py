"""Reconciled trip roster: merge, eviction and snapshot publishing."""

from vonatinfo_api.services.roster.pipeline import RosterPipeline
from vonatinfo_api.services.roster.publisher import MirrorWriter, RosterSnapshot, SnapshotPublisher
from vonatinfo_api.services.roster.reconciler import Reconciler
from vonatinfo_api.services.roster.sweeper import StalenessSweeper

__all__ = [
    "MirrorWriter",
    "Reconciler",
    "RosterPipeline",
    "RosterSnapshot",
    "SnapshotPublisher",
    "StalenessSweeper",
]
