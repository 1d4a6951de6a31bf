"""Database connections package."""

from feedrelay.db.session import (
    create_engine,
    create_engine_from_settings,
    create_session_factory,
    init_db,
)

__all__ = ["create_engine", "create_engine_from_settings", "create_session_factory", "init_db"]
