# crm_core/cache/__init__.py
"""
Cache module for backend reads.
Keyed in-memory store with request coalescing, optimistic updates,
interval polling and revalidation on reconnect.
"""
from .store import (
    CacheStore,
    CacheEntry,
    CacheKey,
    OptimisticUpdate,
    cache_key,
)
from .scheduler import QueryOptions, RevalidationScheduler
from .connection import ConnectionMonitor, ConnectionState, ConnectionStatus

__all__ = [
    "CacheStore",
    "CacheEntry",
    "CacheKey",
    "OptimisticUpdate",
    "cache_key",
    "QueryOptions",
    "RevalidationScheduler",
    "ConnectionMonitor",
    "ConnectionState",
    "ConnectionStatus",
]
