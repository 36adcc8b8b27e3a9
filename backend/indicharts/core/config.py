"""
Application Configuration

All settings loaded from environment variables.
"""

from functools import lru_cache
from typing import Optional
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings from environment variables."""

    # Application
    app_name: str = "IndiCharts Backend"
    app_version: str = "0.1.0"
    debug: bool = False
    environment: str = "development"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    # SQLite (watchlist membership)
    sqlite_path: Optional[str] = None  # Defaults to ./data/indicharts.db

    # Redis (parameter store)
    redis_url: str = "redis://localhost:6379"

    # CORS (Frontend URL)
    allowed_origins: list[str] = ["http://localhost:3000"]

    # Quote service
    quote_service_url: str = "https://rsi-workers.vovan4ikukraine.workers.dev"
    quote_request_timeout: float = 20.0
    candle_source: str = "proxy"  # Options: proxy, yahoo

    # Loader pools
    full_pool_size: int = 3
    full_batch_delay_ms: int = 500
    value_pool_size: int = 5
    value_batch_delay_ms: int = 300

    # Retry policy
    max_attempts: int = 3
    backoff_base_ms: int = 1000

    # Indicator history
    history_points: int = 50
    period_buffer: int = 20

    # Watchlist
    max_watchlist_items: int = 30

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
