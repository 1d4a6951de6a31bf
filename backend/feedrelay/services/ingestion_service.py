"""Ingestion driver - stores new feed entries as items."""

import logging
from typing import Protocol

from feedrelay.exceptions import DuplicateIdentityError, FeedFetchError
from feedrelay.models import Item, ItemReason, ItemStatus
from feedrelay.schemas.content import FeedEntry
from feedrelay.schemas.report import StageName, StageOutcome, StageReport
from feedrelay.services.item_store import ItemStore
from feedrelay.services.stage_driver import StageDriver


class FeedSource(Protocol):
    async def fetch(self, url: str) -> list[FeedEntry]: ...


class IngestionService(StageDriver):
    """
    Adds feed entries the store has not seen yet.

    Entries published before the newest item already stored are history from
    before tracking started: they are stored as processed so they never run
    through the pipeline.
    """

    STAGE = StageName.INGESTION

    def __init__(
        self,
        store: ItemStore,
        feed: FeedSource,
        feed_url: str,
        timeout: float | None = None,
        logger: logging.Logger | None = None,
    ):
        super().__init__(store, timeout, logger)
        self.feed = feed
        self.feed_url = feed_url

    async def refresh(self, entries: list[FeedEntry]) -> int:
        """
        Insert unseen entries.

        Returns:
            Number of items inserted as unprocessed; backfilled and skipped
            entries are not counted
        """
        latest = await self.store.latest_published_at()
        added = 0
        seen: set[str] = set()

        for entry in entries:
            if entry.published_at is None:
                self.logger.debug("skipping %s: no publish time", entry.identity)
                continue
            if entry.identity in seen or await self.store.exists(entry.identity):
                continue
            seen.add(entry.identity)

            backfill = latest is not None and entry.published_at < latest
            item = Item(
                identity=entry.identity,
                title=entry.title,
                published_at=entry.published_at,
                status=ItemStatus.PROCESSED if backfill else ItemStatus.UNPROCESSED,
                reason=ItemReason.NONE,
            )
            try:
                await self.store.insert(item)
            except DuplicateIdentityError:
                continue

            if backfill:
                self.logger.debug("backfilled %s as processed", entry.identity)
            else:
                added += 1
        return added

    async def _run(self, deadline: float | None) -> StageReport:
        try:
            entries = await self._bounded(self.feed.fetch(self.feed_url), deadline)
        except (FeedFetchError, TimeoutError) as e:
            self.logger.error("failed to fetch feed %s: %s", self.feed_url, e)
            return self._report(StageOutcome.FAILED, error=e)

        added = await self.refresh(entries)
        self.logger.info("added %d new items", added)

        unprocessed = await self.store.count_by_status(ItemStatus.UNPROCESSED)
        self.logger.info("%d unprocessed items", unprocessed)
        return self._report(StageOutcome.ADVANCED, count=added)
