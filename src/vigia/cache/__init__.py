"""Tiered entity cache for Vigia.

In-process fast layer in front of a durable cross-session store.
"""

from vigia.cache.durable import CacheEntry, CacheError, DurableBackend, ParquetEntityStore
from vigia.cache.tiered import TieredCache

__all__ = ["CacheEntry", "CacheError", "DurableBackend", "ParquetEntityStore", "TieredCache"]
