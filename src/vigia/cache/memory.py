"""In-process cache layer."""

from dataclasses import dataclass

from vigia.cache.durable import CacheEntry


@dataclass(frozen=True)
class FastSlot:
    """A cache entry plus the instant it entered this process's layer."""

    entry: CacheEntry
    cached_at: float


class MemoryLayer:
    """Plain dict keyed by entity key. Validity is judged by the caller."""

    def __init__(self) -> None:
        self._slots: dict[str, FastSlot] = {}

    def get(self, key: str) -> FastSlot | None:
        return self._slots.get(key)

    def set(self, entry: CacheEntry, cached_at: float) -> None:
        self._slots[entry.key] = FastSlot(entry=entry, cached_at=cached_at)

    def pop(self, key: str) -> None:
        self._slots.pop(key, None)

    def __contains__(self, key: str) -> bool:
        return key in self._slots

    def __len__(self) -> int:
        return len(self._slots)

    def slots(self) -> list[FastSlot]:
        return list(self._slots.values())
