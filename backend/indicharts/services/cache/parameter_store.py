"""
Parameter store over Redis.

Persists named scalar settings (indicator period, levels, timeframe, sort
order) per view namespace. Last write wins; there are no transactions.

Keys:
- param:{namespace}_{type}_period        → int
- param:{namespace}_{type}_lower_level   → float
- param:{namespace}_{type}_upper_level   → float
- param:{namespace}_stoch_d_period       → int
- param:{namespace}_timeframe            → str
- param:{namespace}_sort_order           → str
- param:{namespace}_indicator            → str
"""

import logging
import math
from typing import Optional

import redis.asyncio as redis

from indicharts.core.config import settings

logger = logging.getLogger(__name__)

KEY_PREFIX = "param:"

# Global Redis connection pool
_redis_pool: Optional[redis.Redis] = None


async def init_redis() -> Optional[redis.Redis]:
    """
    Initialize Redis connection pool.
    Called on application startup.
    """
    global _redis_pool

    if _redis_pool is not None:
        return _redis_pool

    try:
        _redis_pool = redis.from_url(
            settings.redis_url,
            encoding="utf-8",
            decode_responses=True,
        )
        # Test connection
        await _redis_pool.ping()
        logger.info(f"Redis connected: {settings.redis_url}")
        return _redis_pool
    except Exception as e:
        logger.warning(f"Redis connection failed: {e}. Using in-memory fallback.")
        _redis_pool = None
        return None


async def close_redis() -> None:
    """Close Redis connection pool."""
    global _redis_pool
    if _redis_pool:
        await _redis_pool.aclose()
        _redis_pool = None
        logger.info("Redis connection closed")


def get_redis() -> Optional[redis.Redis]:
    """Get the Redis connection pool."""
    return _redis_pool


def param_key(namespace: str, *parts: str) -> str:
    """Build a setting name such as `markets_rsi_period`."""
    return "_".join((namespace, *parts))


class ParameterStore:
    """
    Named scalar settings backed by Redis, with an in-memory fallback.

    Values are stored as strings; typed getters return the default when a
    value is absent or does not parse.
    """

    def __init__(self, redis_client: Optional[redis.Redis] = None):
        self._redis = redis_client
        # Per instance, so separate stores (and tests) never share state
        self._memory: dict[str, str] = {}

    @property
    def redis(self) -> Optional[redis.Redis]:
        return self._redis or _redis_pool

    async def _get(self, name: str) -> Optional[str]:
        key = f"{KEY_PREFIX}{name}"

        if self.redis:
            try:
                return await self.redis.get(key)
            except Exception as e:
                logger.debug(f"Redis get {key} failed: {e}")

        # Fallback to memory
        return self._memory.get(key)

    async def _set(self, name: str, value: str) -> None:
        key = f"{KEY_PREFIX}{name}"

        if self.redis:
            try:
                await self.redis.set(key, value)
                return
            except Exception as e:
                logger.debug(f"Redis set {key} failed: {e}")

        # Fallback to memory
        self._memory[key] = value

    # ============ Typed accessors ============

    async def get_str(self, name: str, default: Optional[str] = None) -> Optional[str]:
        value = await self._get(name)
        return value if value is not None else default

    async def get_int(self, name: str, default: Optional[int] = None) -> Optional[int]:
        value = await self._get(name)
        if value is None:
            return default
        try:
            return int(float(value))
        except (ValueError, OverflowError):
            logger.warning(f"Ignoring non-integer setting {name}={value!r}")
            return default

    async def get_float(self, name: str, default: Optional[float] = None) -> Optional[float]:
        value = await self._get(name)
        if value is None:
            return default
        try:
            number = float(value)
        except ValueError:
            number = None
        if number is None or not math.isfinite(number):
            logger.warning(f"Ignoring non-numeric setting {name}={value!r}")
            return default
        return number

    async def set_str(self, name: str, value: str) -> None:
        await self._set(name, value)

    async def set_int(self, name: str, value: int) -> None:
        await self._set(name, str(int(value)))

    async def set_float(self, name: str, value: float) -> None:
        await self._set(name, repr(float(value)))

    async def delete(self, name: str) -> None:
        key = f"{KEY_PREFIX}{name}"
        if self.redis:
            try:
                await self.redis.delete(key)
            except Exception as e:
                logger.debug(f"Redis delete {key} failed: {e}")
        self._memory.pop(key, None)


# Singleton instance
_store_instance: Optional[ParameterStore] = None


def get_parameter_store() -> ParameterStore:
    """Get or create the parameter store."""
    global _store_instance
    if _store_instance is None:
        _store_instance = ParameterStore()
    return _store_instance
