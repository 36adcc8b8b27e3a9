"""
IndiCharts Backend

Indicator computation and lazy batch-loading engine behind the market-list
and watchlist views.
"""

__version__ = "0.1.0"
