"""Watchlist membership storage."""

from indicharts.services.watchlist import repository

__all__ = ["repository"]
