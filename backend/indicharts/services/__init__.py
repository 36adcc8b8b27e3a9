"""
IndiCharts Services

Service layer containing all business logic: candle sources, indicator
engine, caches, loader, sorting, settings and watchlist membership.
"""

from indicharts.services.base import BaseService, ServiceError

__all__ = ["BaseService", "ServiceError"]
