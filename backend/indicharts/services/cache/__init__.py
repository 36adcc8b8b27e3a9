"""
Cache Layer

- SymbolCache: per-symbol indicator records and load state (in-process)
- ParameterStore: persisted view settings (Redis, in-memory fallback)
"""

from indicharts.services.cache.parameter_store import (
    ParameterStore,
    close_redis,
    get_parameter_store,
    get_redis,
    init_redis,
    param_key,
)
from indicharts.services.cache.symbol_cache import SymbolCache

__all__ = [
    "SymbolCache",
    "ParameterStore",
    "get_parameter_store",
    "init_redis",
    "close_redis",
    "get_redis",
    "param_key",
]
