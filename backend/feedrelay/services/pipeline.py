"""Bot facade - builds the store, collaborators and drivers from settings."""

import logging
from types import TracebackType

import httpx
from sqlalchemy.ext.asyncio import AsyncEngine

from feedrelay.agents import LLMOracle, get_oracle
from feedrelay.config import Settings
from feedrelay.db import create_engine_from_settings, create_session_factory, init_db
from feedrelay.schemas.report import StageReport
from feedrelay.services.feed_client import FeedClient
from feedrelay.services.ingestion_service import IngestionService
from feedrelay.services.item_store import ItemStore
from feedrelay.services.mastodon_client import MastodonClient
from feedrelay.services.page_extractor import PageExtractor
from feedrelay.services.publishing_service import PublishingService
from feedrelay.services.screening_service import ScreeningService


class FeedRelayBot:
    """
    Owns one store and the three drivers that share it.

    Use as an async context manager so the engine and HTTP client are closed:

        async with FeedRelayBot.from_settings(settings) as bot:
            await bot.run_all()
    """

    def __init__(
        self,
        store: ItemStore,
        ingestion: IngestionService,
        screening: ScreeningService,
        publishing: PublishingService,
        engine: AsyncEngine | None = None,
        http_client: httpx.AsyncClient | None = None,
        oracle: LLMOracle | None = None,
        logger: logging.Logger | None = None,
    ):
        self.store = store
        self.ingestion = ingestion
        self.screening = screening
        self.publishing = publishing
        self.engine = engine
        self.http_client = http_client
        self.oracle = oracle
        self.logger = logger or logging.getLogger(__name__)

    @classmethod
    def from_settings(cls, settings: Settings, logger: logging.Logger | None = None) -> "FeedRelayBot":
        logger = logger or logging.getLogger("feedrelay")

        engine = create_engine_from_settings(settings)
        store = ItemStore(
            create_session_factory(engine),
            max_deferred_retry_count=settings.max_deferred_retry_count,
            logger=logger.getChild("store"),
        )
        http_client = httpx.AsyncClient(
            timeout=settings.http_timeout_seconds,
            follow_redirects=True,
            headers={"User-Agent": settings.user_agent},
        )
        extractor = PageExtractor(
            http_client,
            content_selector=settings.content_selector,
            page_encoding=settings.page_encoding,
            logger=logger.getChild("extractor"),
        )
        oracle = get_oracle(settings, http_client, logger=logger.getChild("oracle"))
        mastodon = MastodonClient(
            http_client,
            instance_url=settings.mastodon_instance_url,
            access_token=settings.mastodon_access_token,
            post_template=settings.post_template,
            not_valuable_post_template=settings.not_valuable_post_template,
            visibility=settings.mastodon_visibility,
            logger=logger.getChild("mastodon"),
        )
        timeout = settings.stage_timeout_seconds

        return cls(
            store=store,
            ingestion=IngestionService(
                store,
                FeedClient(http_client, logger=logger.getChild("feed")),
                settings.feed_url,
                timeout=timeout,
                logger=logger.getChild("ingestion"),
            ),
            screening=ScreeningService(
                store, extractor, oracle, mastodon, timeout=timeout, logger=logger.getChild("screening")
            ),
            publishing=PublishingService(
                store, extractor, oracle, mastodon, timeout=timeout, logger=logger.getChild("publishing")
            ),
            engine=engine,
            http_client=http_client,
            oracle=oracle,
            logger=logger,
        )

    async def start(self) -> None:
        """Create tables and indexes if they do not exist yet."""
        if self.engine is not None:
            await init_db(self.engine)

    async def close(self) -> None:
        if self.oracle is not None:
            await self.oracle.close()
        if self.http_client is not None:
            await self.http_client.aclose()
        if self.engine is not None:
            await self.engine.dispose()

    async def __aenter__(self) -> "FeedRelayBot":
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    async def refresh_feed_items(self) -> StageReport:
        return await self.ingestion.run()

    async def screen_item(self) -> StageReport:
        return await self.screening.run()

    async def post_summary(self) -> StageReport:
        return await self.publishing.run()

    async def run_all(self) -> list[StageReport]:
        """Ingest, screen one item, then publish one item."""
        return [
            await self.refresh_feed_items(),
            await self.screen_item(),
            await self.post_summary(),
        ]
