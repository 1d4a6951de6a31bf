"""Shared FastAPI dependencies."""

from fastapi import Request

from feedrelay.services.item_store import ItemStore
from feedrelay.services.pipeline import FeedRelayBot


def get_bot(request: Request) -> FeedRelayBot:
    """The bot built by the application lifespan."""
    return request.app.state.bot


def get_store(request: Request) -> ItemStore:
    return get_bot(request).store
