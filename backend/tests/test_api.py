"""Tests for the HTTP API."""

from fastapi.testclient import TestClient

from feedrelay.config import Settings
from feedrelay.db import create_engine, create_session_factory
from feedrelay.main import create_app
from feedrelay.schemas.content import FeedEntry
from feedrelay.schemas.summary import Verdict
from feedrelay.services.ingestion_service import IngestionService
from feedrelay.services.item_store import ItemStore
from feedrelay.services.pipeline import FeedRelayBot
from feedrelay.services.publishing_service import PublishingService
from feedrelay.services.screening_service import ScreeningService

from .fakes import FakeExtractor, FakeFeed, FakeGenerator, FakeJudge, FakeSink, at

FIRST = "https://www.example.go.jp/news/1.html"
SECOND = "https://www.example.go.jp/news/2.html"


def make_client(tmp_path, *verdicts: Verdict) -> TestClient:
    # The engine connects lazily, on the test client's event loop
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'api.db'}")
    store = ItemStore(create_session_factory(engine), max_deferred_retry_count=3)
    feed = FakeFeed(
        [
            FeedEntry(identity=FIRST, title="First", published_at=at(10)),
            FeedEntry(identity=SECOND, title="Second", published_at=at(20)),
        ]
    )
    sink = FakeSink()
    bot = FeedRelayBot(
        store=store,
        ingestion=IngestionService(store, feed, "https://www.example.go.jp/news.rdf"),
        screening=ScreeningService(store, FakeExtractor(), FakeJudge(*verdicts), sink),
        publishing=PublishingService(store, FakeExtractor(), FakeGenerator(), sink),
        engine=engine,
    )
    settings = Settings(app_name="feedrelay-test", environment="test")
    return TestClient(create_app(settings, bot=bot))


class TestHealth:
    def test_health(self, tmp_path):
        with make_client(tmp_path) as client:
            response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "app": "feedrelay-test"}


class TestPipeline:
    """Tests for the pipeline endpoints."""

    def test_update_screen_post(self, tmp_path):
        with make_client(tmp_path, Verdict.YES) as client:
            update = client.post("/api/v1/pipeline/update").json()
            screen = client.post("/api/v1/pipeline/screen").json()
            post = client.post("/api/v1/pipeline/post").json()
            stats = client.get("/api/v1/pipeline/stats").json()

        assert update["outcome"] == "advanced"
        assert update["count"] == 2
        assert screen == {
            "stage": "screening",
            "outcome": "advanced",
            "identity": FIRST,
            "status": "pending",
            "reason": "none",
            "retry_count": 0,
            "count": None,
            "error": None,
        }
        assert post["status"] == "processed"
        assert stats == {
            "counts": {"unprocessed": 1, "deferred": 0, "pending": 0, "processed": 1},
            "exhausted": 0,
        }

    def test_run_all(self, tmp_path):
        with make_client(tmp_path, Verdict.WAIT) as client:
            response = client.post("/api/v1/pipeline/run")

        assert response.status_code == 200
        assert [report["outcome"] for report in response.json()] == ["advanced", "deferred", "idle"]


class TestItems:
    """Tests for the item endpoints."""

    def test_list_and_filter(self, tmp_path):
        with make_client(tmp_path, Verdict.YES) as client:
            client.post("/api/v1/pipeline/update")
            client.post("/api/v1/pipeline/screen")

            everything = client.get("/api/v1/items").json()
            pending = client.get("/api/v1/items", params={"status": "pending"}).json()

        assert everything["total"] == 2
        assert [item["identity"] for item in everything["items"]] == [SECOND, FIRST]
        assert pending["total"] == 1
        assert pending["items"][0]["identity"] == FIRST

    def test_lookup(self, tmp_path):
        with make_client(tmp_path) as client:
            client.post("/api/v1/pipeline/update")
            found = client.get("/api/v1/items/lookup", params={"identity": SECOND})
            missing = client.get("/api/v1/items/lookup", params={"identity": "https://nowhere"})

        assert found.status_code == 200
        assert found.json()["title"] == "Second"
        assert found.json()["status"] == "unprocessed"
        assert missing.status_code == 404

    def test_invalid_status_filter(self, tmp_path):
        with make_client(tmp_path) as client:
            response = client.get("/api/v1/items", params={"status": "archived"})

        assert response.status_code == 422
