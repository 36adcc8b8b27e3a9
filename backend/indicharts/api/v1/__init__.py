"""
API v1 Router

All API endpoints for the frontend.
"""

from fastapi import APIRouter

from indicharts.api.v1.endpoints import markets, settings, symbols, watchlist

router = APIRouter()

# Include all endpoint routers
router.include_router(markets.router, prefix="/markets", tags=["Markets"])
router.include_router(settings.router, prefix="/settings", tags=["Indicator Settings"])
router.include_router(watchlist.router, prefix="/watchlist", tags=["Watchlist"])
router.include_router(symbols.router, prefix="/symbols", tags=["Symbols"])
