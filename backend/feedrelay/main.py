"""FastAPI application entry point."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from feedrelay.api.v1.router import api_router
from feedrelay.config import Settings, get_settings
from feedrelay.logging_config import configure_logging
from feedrelay.services.pipeline import FeedRelayBot


def create_app(settings: Settings | None = None, bot: FeedRelayBot | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Build the bot on startup and close it on shutdown."""
        logger = configure_logging(settings.log_level)
        logger.info("starting %s in %s mode", settings.app_name, settings.environment)

        app.state.bot = bot or FeedRelayBot.from_settings(settings, logger=logger)
        await app.state.bot.start()
        logger.info("item tables initialized")

        yield

        logger.info("shutting down")
        await app.state.bot.close()

    app = FastAPI(
        title=settings.app_name,
        description="Feed screening, summarization and publishing pipeline",
        version="0.1.0",
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        lifespan=lifespan,
    )

    # Include API router
    app.include_router(api_router, prefix=settings.api_v1_prefix)

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "healthy", "app": settings.app_name}

    return app


app = create_app()
