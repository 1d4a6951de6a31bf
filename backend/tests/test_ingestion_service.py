"""Tests for the ingestion driver."""

from feedrelay.exceptions import FeedFetchError
from feedrelay.models import ItemReason, ItemStatus
from feedrelay.schemas.content import FeedEntry
from feedrelay.schemas.report import StageName, StageOutcome
from feedrelay.services.ingestion_service import IngestionService

from .fakes import FakeFeed, at, make_item

FEED_URL = "https://www.example.go.jp/news.rdf"


def entry(identity: str, published: int | None) -> FeedEntry:
    return FeedEntry(
        identity=identity,
        title=f"Entry {identity}",
        published_at=at(published) if published is not None else None,
    )


class TestRefresh:
    """Tests for the backfill rule and deduplication."""

    async def test_empty_store_inserts_everything_unprocessed(self, store):
        ingestion = IngestionService(store, FakeFeed(), FEED_URL)

        added = await ingestion.refresh([entry("https://e/1", 10), entry("https://e/2", 5)])

        assert added == 2
        assert await store.count_by_status(ItemStatus.UNPROCESSED) == 2

    async def test_older_entries_backfilled_as_processed(self, store):
        """Entries older than the newest stored item are history, not new work."""
        await store.insert(make_item("https://e/latest", 10, status=ItemStatus.PROCESSED))
        ingestion = IngestionService(store, FakeFeed(), FEED_URL)

        added = await ingestion.refresh([entry("https://e/old", 5), entry("https://e/new", 15)])

        assert added == 1
        old = await store.get_by_identity("https://e/old")
        assert old.status == ItemStatus.PROCESSED
        assert old.reason == ItemReason.NONE
        new = await store.get_by_identity("https://e/new")
        assert new.status == ItemStatus.UNPROCESSED
        assert new.reason == ItemReason.NONE

    async def test_same_publish_time_is_not_backfilled(self, store):
        await store.insert(make_item("https://e/latest", 10))
        ingestion = IngestionService(store, FakeFeed(), FEED_URL)

        added = await ingestion.refresh([entry("https://e/same", 10)])

        assert added == 1
        same = await store.get_by_identity("https://e/same")
        assert same.status == ItemStatus.UNPROCESSED

    async def test_threshold_read_once_per_batch(self, store):
        """An entry inserted earlier in the batch does not move the backfill threshold."""
        await store.insert(make_item("https://e/latest", 10))
        ingestion = IngestionService(store, FakeFeed(), FEED_URL)

        added = await ingestion.refresh([entry("https://e/newer", 20), entry("https://e/mid", 15)])

        assert added == 2
        mid = await store.get_by_identity("https://e/mid")
        assert mid.status == ItemStatus.UNPROCESSED

    async def test_entries_without_publish_time_skipped(self, store):
        ingestion = IngestionService(store, FakeFeed(), FEED_URL)

        added = await ingestion.refresh([entry("https://e/undated", None), entry("https://e/1", 10)])

        assert added == 1
        assert not await store.exists("https://e/undated")

    async def test_known_entries_left_untouched(self, store):
        """Re-ingesting the same feed does not reset state."""
        await store.insert(make_item("https://e/1", 10, status=ItemStatus.PENDING))
        ingestion = IngestionService(store, FakeFeed(), FEED_URL)

        added = await ingestion.refresh([entry("https://e/1", 10)])

        assert added == 0
        item = await store.get_by_identity("https://e/1")
        assert item.status == ItemStatus.PENDING

    async def test_duplicates_within_batch(self, store):
        ingestion = IngestionService(store, FakeFeed(), FEED_URL)

        added = await ingestion.refresh([entry("https://e/1", 10), entry("https://e/1", 10)])

        assert added == 1
        assert await store.count_by_status(ItemStatus.UNPROCESSED) == 1

    async def test_refresh_is_idempotent(self, store):
        ingestion = IngestionService(store, FakeFeed(), FEED_URL)
        entries = [entry("https://e/1", 10), entry("https://e/2", 20)]

        assert await ingestion.refresh(entries) == 2
        assert await ingestion.refresh(entries) == 0
        assert await store.count_by_status(ItemStatus.UNPROCESSED) == 2


class TestRun:
    """Tests for a full ingestion invocation."""

    async def test_run_reports_added_count(self, store):
        feed = FakeFeed([entry("https://e/1", 10), entry("https://e/2", 20)])
        ingestion = IngestionService(store, feed, FEED_URL)

        report = await ingestion.run()

        assert feed.calls == [FEED_URL]
        assert report.stage == StageName.INGESTION
        assert report.outcome == StageOutcome.ADVANCED
        assert report.count == 2
        assert report.ok

    async def test_feed_failure_reported(self, store):
        ingestion = IngestionService(store, FakeFeed(error=FeedFetchError("boom")), FEED_URL)

        report = await ingestion.run()

        assert report.outcome == StageOutcome.FAILED
        assert report.error.type == "FeedFetchError"
        assert await store.count_by_status(ItemStatus.UNPROCESSED) == 0
