"""Two-level read-through / write-through entity cache.

    fast layer     in-process dict, valid for fast_ttl
    durable layer  DurableBackend, valid for durable_ttl (much longer)

Reads try the fast layer, then the durable layer. A valid durable hit is
promoted into the fast layer without touching the durable store again; the
promoted entry keeps its original written_at, and its fast window runs from
the promotion instant, capped by the durable window.

Durable failures (CacheError) never reach the caller. Reads degrade to a
miss and writes still land in the fast layer.

Usage:
    cache = TieredCache(ParquetEntityStore(settings.cache_dir))
    await cache.put(entity.id, entity)
    entity = await cache.get("deputado_204534")
"""

import logging
import time
from collections.abc import Callable

from vigia.cache.durable import CacheEntry, CacheError, DurableBackend
from vigia.cache.memory import FastSlot, MemoryLayer
from vigia.config import settings
from vigia.models import Entity


logger = logging.getLogger(__name__)


class TieredCache:
    """Fast + durable entity cache with independent TTLs.

    Args:
        durable: Cross-session backend, or None for a memory-only cache
        fast_ttl: Fast layer window in seconds (default: settings.fast_cache_ttl)
        durable_ttl: Durable window in seconds (default: settings.durable_cache_ttl)
        clock: Returns the current time in epoch seconds (default: time.time)
    """

    def __init__(
        self,
        durable: DurableBackend | None = None,
        fast_ttl: float | None = None,
        durable_ttl: float | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.durable = durable
        self.fast_ttl = fast_ttl if fast_ttl is not None else settings.fast_cache_ttl
        self.durable_ttl = durable_ttl if durable_ttl is not None else settings.durable_cache_ttl
        if self.durable_ttl <= self.fast_ttl:
            raise ValueError("durable_ttl must exceed fast_ttl")
        self.clock = clock
        self.fast = MemoryLayer()

    def _fast_valid(self, slot: FastSlot, now: float) -> bool:
        return (
            now - slot.cached_at < self.fast_ttl
            and now - slot.entry.written_at < self.durable_ttl
        )

    def _durable_valid(self, entry: CacheEntry, now: float) -> bool:
        return now - entry.written_at < self.durable_ttl

    async def get(self, key: str) -> Entity | None:
        """Fast layer, then durable layer. None on miss or expiry."""
        now = self.clock()
        slot = self.fast.get(key)
        if slot is not None and self._fast_valid(slot, now):
            return slot.entry.entity

        if self.durable is None:
            return None

        try:
            entry = await self.durable.get(key)
        except CacheError as e:
            logger.warning("Durable cache read failed for %s, treating as miss: %s", key, e)
            return None

        if entry is None or not self._durable_valid(entry, now):
            return None

        self.fast.set(entry, cached_at=now)
        logger.debug("Promoted %s from durable cache (age %.0fs)", key, now - entry.written_at)
        return entry.entity

    async def put(self, key: str, entity: Entity) -> None:
        """Write both layers stamped now. The fast write always happens."""
        now = self.clock()
        entry = CacheEntry(key=key, entity=entity, written_at=now)
        self.fast.set(entry, cached_at=now)

        if self.durable is None:
            return
        try:
            await self.durable.put(entry)
        except CacheError as e:
            logger.error("Durable cache write failed for %s: %s", key, e)

    async def get_all_valid(self) -> list[Entity]:
        """Every unexpired durable entry, used to paint before any fetch."""
        if self.durable is None:
            now = self.clock()
            return [s.entry.entity for s in self.fast.slots() if self._durable_valid(s.entry, now)]

        try:
            entries = await self.durable.get_all()
        except CacheError as e:
            logger.error("Durable cache listing failed: %s", e)
            return []

        now = self.clock()
        return [e.entity for e in entries if self._durable_valid(e, now)]

    def invalidate(self, key: str) -> None:
        """Drop the fast entry so the next read goes through the durable layer."""
        self.fast.pop(key)
