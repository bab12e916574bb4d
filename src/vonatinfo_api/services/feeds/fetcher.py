"""JSON feed fetcher with bounded timeout and optional retry."""

from __future__ import annotations

import asyncio
import inspect
from typing import Any

import httpx

from vonatinfo_api.logging import get_logger

logger = get_logger(__name__)

DEFAULT_TIMEOUT_SEC = 10.0
DEFAULT_MAX_RETRIES = 1
DEFAULT_BACKOFF_BASE = 2.0

DEFAULT_HEADERS = {
    "User-Agent": "Mozilla/5.0",
    "Content-Type": "application/json",
}


class FeedFetchError(Exception):
    """Raised when an upstream request fails after all attempts."""


class FeedFetcher:
    """POSTs a JSON body to an upstream endpoint and returns the decoded reply."""

    def __init__(
        self,
        timeout_sec: float = DEFAULT_TIMEOUT_SEC,
        max_retries: int = DEFAULT_MAX_RETRIES,
        backoff_base: float = DEFAULT_BACKOFF_BASE,
    ) -> None:
        self.timeout_sec = timeout_sec
        self.max_retries = max_retries
        self.backoff_base = backoff_base

    async def post_json(
        self,
        url: str,
        payload: dict[str, Any],
        *,
        source: str,
        poll_id: str,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """POST ``payload`` and decode the JSON response.

        Args:
            url: Upstream endpoint.
            payload: JSON-serializable request body.
            source: Label for logging (e.g. "mav").
            poll_id: Correlation ID for this poll cycle.
            headers: Extra headers merged over the defaults.

        Returns:
            The decoded JSON document.

        Raises:
            FeedFetchError: On timeout, transport error, non-2xx status or a
                body that is empty or not JSON, once all attempts are used.
        """
        request_headers = {**DEFAULT_HEADERS, **(headers or {})}
        last_error: Exception | None = None

        for attempt in range(self.max_retries):
            try:
                logger.debug(
                    "Fetching feed",
                    source=source,
                    poll_id=poll_id,
                    attempt=attempt + 1,
                    max_retries=self.max_retries,
                )
                async with httpx.AsyncClient(
                    timeout=httpx.Timeout(self.timeout_sec),
                    follow_redirects=True,
                ) as client:
                    response = await client.post(url, json=payload, headers=request_headers)
                    raise_result = response.raise_for_status()
                    if inspect.isawaitable(raise_result):
                        await raise_result
                    content = response.content

                if not content:
                    msg = "Empty response body"
                    raise FeedFetchError(msg)

                try:
                    document = response.json()
                except ValueError as exc:
                    msg = "Response body is not JSON"
                    raise FeedFetchError(msg) from exc

                logger.debug(
                    "Feed downloaded",
                    source=source,
                    poll_id=poll_id,
                    size_bytes=len(content),
                )
                return document

            except (httpx.HTTPStatusError, httpx.RequestError, FeedFetchError) as exc:
                last_error = exc
                if attempt < self.max_retries - 1:
                    delay = self.backoff_base ** (attempt + 1)
                    logger.warning(
                        "Feed fetch failed, retrying",
                        source=source,
                        poll_id=poll_id,
                        attempt=attempt + 1,
                        delay_sec=delay,
                        error=str(exc),
                    )
                    await asyncio.sleep(delay)

        msg = f"Failed to fetch {source} after {self.max_retries} attempts"
        logger.warning(msg, source=source, poll_id=poll_id, error=str(last_error))
        raise FeedFetchError(msg) from last_error
