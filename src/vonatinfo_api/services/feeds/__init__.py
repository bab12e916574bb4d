"""Upstream position feeds: fetching, decoding and normalization per source."""

from vonatinfo_api.services.feeds.base import FeedAdapter, FeedDecodeError
from vonatinfo_api.services.feeds.fetcher import FeedFetcher, FeedFetchError
from vonatinfo_api.services.feeds.mav import MavAdapter
from vonatinfo_api.services.feeds.oebb import OebbAdapter
from vonatinfo_api.services.feeds.timetable import TimetableClient

__all__ = [
    "FeedAdapter",
    "FeedDecodeError",
    "FeedFetchError",
    "FeedFetcher",
    "MavAdapter",
    "OebbAdapter",
    "TimetableClient",
]
