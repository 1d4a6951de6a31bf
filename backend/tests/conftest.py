"""Shared fixtures: a file-backed SQLite store per test."""

import pytest

from feedrelay.db import create_engine, create_session_factory, init_db
from feedrelay.services.item_store import ItemStore


@pytest.fixture
async def engine(tmp_path):
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'items.db'}")
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def store(session_factory) -> ItemStore:
    return ItemStore(session_factory, max_deferred_retry_count=3)
