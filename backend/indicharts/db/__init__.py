"""Database layer (SQLite via SQLAlchemy + aiosqlite)."""

from indicharts.db.database import (
    AsyncSessionLocal,
    close_db,
    get_db,
    get_db_context,
    init_db,
)
from indicharts.db.models import Base, WatchlistItem

__all__ = [
    "Base",
    "WatchlistItem",
    "AsyncSessionLocal",
    "init_db",
    "close_db",
    "get_db",
    "get_db_context",
]
