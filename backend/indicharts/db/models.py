"""
SQLAlchemy models for the IndiCharts database.

Uses SQLite for local persistence of watchlist membership. Computed
indicator values are never stored.
"""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Index, Integer, String
from sqlalchemy.orm import DeclarativeBase


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


class WatchlistItem(Base):
    """
    One watchlist member.
    Display order is insertion order (created_at, then id).
    """
    __tablename__ = "watchlist_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    symbol = Column(String(32), nullable=False, unique=True)
    created_at = Column(DateTime, nullable=False, default=utc_now)

    __table_args__ = (
        Index("ix_watchlist_created_at", "created_at"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "symbol": self.symbol,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
