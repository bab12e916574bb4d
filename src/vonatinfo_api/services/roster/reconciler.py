"""Merges normalized candidates from every source into one trip store."""

from __future__ import annotations

from collections.abc import Iterable, MutableMapping

from vonatinfo_api.logging import get_logger
from vonatinfo_api.models.roster import CandidateRecord, MergeReport, TripRecord

logger = get_logger(__name__)


class Reconciler:
    """Applies the cross-source precedence rule, one candidate at a time.

    For a key already in the store:

    * an authoritative candidate always replaces the existing record;
    * a candidate whose final arrival already passed is rejected while the
      existing record's final arrival is still ahead;
    * otherwise the candidate wins when it is newer, or when both final
      arrivals are known and the candidate's is not earlier.

    On replacement the stored observation time is the later of the two, so
    a replacement never makes a trip look older than it was.
    """

    def merge(
        self,
        store: MutableMapping[str, TripRecord],
        candidates: Iterable[CandidateRecord],
        now: int,
    ) -> MergeReport:
        """Merge ``candidates`` into ``store`` in place.

        Args:
            store: Working trip store keyed by trip short name.
            candidates: Normalized records from one adapter batch.
            now: Current seconds since local midnight.

        Returns:
            Per-outcome counters for the batch.
        """
        report = MergeReport()

        for candidate in candidates:
            key = candidate.key
            if not key:
                report.skipped += 1
                continue

            existing = store.get(key)
            incoming = candidate.trip

            if existing is None:
                store[key] = incoming
                report.inserted += 1
                continue

            if candidate.authoritative:
                store[key] = _newest(incoming, existing)
                report.overridden += 1
                continue

            final_new = incoming.final_arrival
            final_old = existing.final_arrival
            if final_new is not None and final_old is not None and final_new < now < final_old:
                report.rejected += 1
                logger.debug(
                    "Rejected finished trip candidate",
                    trip_short_name=key,
                    source=incoming.source,
                    final_new=final_new,
                    final_old=final_old,
                )
                continue

            if incoming.observed_at > existing.observed_at or (
                final_new is not None and final_old is not None and final_new >= final_old
            ):
                store[key] = _newest(incoming, existing)
                report.replaced += 1
            else:
                report.kept += 1

        return report


def _newest(incoming: TripRecord, existing: TripRecord) -> TripRecord:
    if existing.observed_at > incoming.observed_at:
        return incoming.with_observed_at(existing.observed_at)
    return incoming
