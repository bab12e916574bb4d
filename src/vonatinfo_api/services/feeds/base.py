"""Feed adapter contract shared by the upstream sources."""

from __future__ import annotations

import re
import uuid
from abc import ABC, abstractmethod
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any, ClassVar
from zoneinfo import ZoneInfo

from vonatinfo_api.logging import get_logger
from vonatinfo_api.models.roster import CandidateRecord, TripRecord
from vonatinfo_api.services.feeds.fetcher import FeedFetcher, FeedFetchError
from vonatinfo_api.services.feeds.geo import MotionTracker
from vonatinfo_api.services.feeds.timeparse import epoch_now, seconds_since_midnight

logger = get_logger(__name__)

_DIGITS = re.compile(r"\d+")


class FeedDecodeError(Exception):
    """Raised when a response body lacks the expected envelope."""


def format_trip_key(number: str, category: str = "") -> str:
    """Shared trip identity: ``"<number> <category>"``.

    The category is lower-cased and its whitespace collapsed, so the same
    train reported as ``Railjet Xpress`` and ``railjet xpress`` shares a key.
    """
    parts = [number.strip(), " ".join(category.lower().split())]
    return " ".join(part for part in parts if part)


def train_number(name: str | None) -> str:
    """First run of digits in a product or trip name, or ``""``."""
    if not name:
        return ""
    match = _DIGITS.search(name)
    return match.group(0) if match else ""


def normalize_trip_key(raw: str | None) -> str:
    """Re-format a provider trip short name onto the shared key space.

    The first all-digit token is the train number; the remaining tokens form
    the category. Names without any digits yield ``""`` and are treated as
    malformed.
    """
    if not raw:
        return ""
    tokens = raw.split()
    for index, token in enumerate(tokens):
        if token.isdigit():
            return format_trip_key(token, " ".join(tokens[:index] + tokens[index + 1 :]))
    number = train_number(raw)
    if not number:
        return ""
    return format_trip_key(number, _DIGITS.sub(" ", raw, count=1))


class FeedAdapter(ABC):
    """Polls one upstream provider and normalizes its payload.

    Subclasses implement :meth:`_fetch` and :meth:`_normalize`. :meth:`poll`
    never raises: any failure is logged and yields an empty batch, leaving
    the previously merged records of this source untouched.
    """

    source: ClassVar[str]
    authoritative: ClassVar[bool] = False

    def __init__(
        self,
        fetcher: FeedFetcher,
        *,
        tz: ZoneInfo,
        interval_sec: float,
        clock: Callable[[], int] = epoch_now,
    ) -> None:
        self._fetcher = fetcher
        self._tz = tz
        self._clock = clock
        self._motion = MotionTracker()
        self.interval_sec = interval_sec

    async def poll(self, poll_id: str | None = None) -> list[CandidateRecord]:
        poll_id = poll_id or str(uuid.uuid4())[:8]
        try:
            document = await self._fetch(poll_id)
            candidates = await self._normalize(document, poll_id)
        except (FeedFetchError, FeedDecodeError) as exc:
            logger.warning(
                "Feed poll failed",
                source=self.source,
                poll_id=poll_id,
                error=str(exc),
            )
            return []
        except Exception as exc:
            logger.error(
                "Unexpected feed poll error",
                source=self.source,
                poll_id=poll_id,
                exc_info=exc,
            )
            return []

        logger.info(
            "Feed polled",
            source=self.source,
            poll_id=poll_id,
            candidate_count=len(candidates),
        )
        return candidates

    def _now(self) -> tuple[int, int]:
        """Current (epoch seconds, seconds since local midnight)."""
        now = self._clock()
        moment = datetime.fromtimestamp(now, tz=timezone.utc)
        return now, seconds_since_midnight(moment, self._tz)

    def _candidate(self, trip: TripRecord) -> CandidateRecord:
        return CandidateRecord(trip=trip, authoritative=self.authoritative)

    @abstractmethod
    async def _fetch(self, poll_id: str) -> Any:
        raise NotImplementedError

    @abstractmethod
    async def _normalize(self, document: Any, poll_id: str) -> list[CandidateRecord]:
        raise NotImplementedError
