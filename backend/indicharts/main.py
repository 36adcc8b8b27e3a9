"""
IndiCharts Backend - FastAPI Application

Main entry point for the backend API.
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from indicharts.core.config import settings
from indicharts.api.v1 import router as api_v1_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    print(f"Starting {settings.app_name} v{settings.app_version}")
    print(f"Environment: {settings.environment}")
    print(f"Candle source: {settings.candle_source} ({settings.quote_service_url})")

    # Initialize SQLite database (watchlist membership)
    from indicharts.db.database import init_db, close_db
    await init_db()
    print("Database initialized")

    # Initialize Redis (parameter store)
    from indicharts.services.cache import init_redis, close_redis
    redis_client = await init_redis()
    if redis_client:
        print("Redis parameter store connected")
    else:
        print("Redis unavailable - settings kept in memory")

    # Build the candle source and restore both boards' settings
    from indicharts.services.data_ingestion import get_candle_source, close_candle_source
    from indicharts.services.board import get_market_board, get_watchlist_board, close_boards
    source = get_candle_source()
    print(f"Candle source ready: {source.name}")
    markets = await get_market_board()
    await get_watchlist_board()
    print(f"Markets board: {markets.coordinator.snapshot().fingerprint}")

    yield

    # Shutdown
    print("Shutting down...")
    await close_boards()
    await close_candle_source()
    await close_redis()
    await close_db()


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="""
    IndiCharts Indicator API

    ## Architecture
    - **Candle Source**: OHLC candles from the quote proxy or Yahoo Finance
    - **Indicator Engine**: RSI, Stochastic %K/%D, Williams %R (NumPy)
    - **Batch Loader**: bounded-concurrency fetches with retry/backoff
    - **Symbol Cache**: per-symbol results, invalidated on any parameter change
    - **Sort Engine**: value-based ordering of symbol groups

    ## Views
    - **Markets**: crypto, indexes, forex and commodities, loaded lazily
    - **Watchlist**: user symbols, loaded in full
    """,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS middleware
cors_origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]
# Add any additional origins from settings
if settings.allowed_origins:
    cors_origins.extend([o for o in settings.allowed_origins if o not in cors_origins])

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routes
app.include_router(api_v1_router, prefix="/api/v1")


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "app": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
        "candle_source": settings.candle_source,
    }


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "IndiCharts Backend API",
        "docs": "/docs",
        "health": "/health",
    }
