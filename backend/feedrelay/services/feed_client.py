"""Feed client - downloads and parses the polled RSS/Atom/RDF feed."""

import calendar
import logging
from datetime import UTC, datetime
from typing import Any

import feedparser
import httpx

from feedrelay.exceptions import FeedFetchError
from feedrelay.schemas.content import FeedEntry


class FeedClient:
    """Fetches a feed and returns its entries that carry a usable publish time."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        logger: logging.Logger | None = None,
    ):
        self.http = http_client
        self.logger = logger or logging.getLogger(__name__)

    @staticmethod
    def _published_at(entry: Any) -> datetime | None:
        # RDF feeds only carry dc:date, which feedparser exposes as "updated"
        parsed = entry.get("published_parsed") or entry.get("updated_parsed")
        if not parsed:
            return None
        try:
            return datetime.fromtimestamp(calendar.timegm(parsed), tz=UTC)
        except (OverflowError, TypeError, ValueError):
            return None

    def parse(self, document: bytes | str) -> list[FeedEntry]:
        """Parse a feed document, dropping entries without link or publish time."""
        feed = feedparser.parse(document)
        if feed.bozo and not feed.entries:
            raise FeedFetchError(f"failed to parse feed: {feed.get('bozo_exception')}")

        entries = []
        for entry in feed.entries:
            link = entry.get("link", "")
            published_at = self._published_at(entry)
            if not link or published_at is None:
                self.logger.debug("skipping feed entry without link or date: %r", link)
                continue
            entries.append(
                FeedEntry(
                    identity=link,
                    title=entry.get("title", ""),
                    published_at=published_at,
                )
            )
        return entries

    async def fetch(self, url: str) -> list[FeedEntry]:
        """Download and parse the feed at url."""
        try:
            response = await self.http.get(url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise FeedFetchError(f"failed to fetch feed from {url}: {e}") from e

        entries = self.parse(response.content)
        self.logger.info("fetched %d entries from %s", len(entries), url)
        return entries
