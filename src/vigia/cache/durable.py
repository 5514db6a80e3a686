"""Durable entity cache: backend contract and Parquet implementation.

The tiered cache talks to its durable layer through the DurableBackend
protocol. Any store that survives a process restart can implement it; the
one shipped here keeps one Parquet file per entity key.

Storage structure:
    {cache_dir}/entities/{key}.parquet

Each file holds a single row with the columns key, written_at (epoch
seconds) and entity (the Entity serialized as JSON). Each write goes to
its own temporary file and is renamed into place, so a reader sees either
the previous entry or the new one. Concurrent writers are last-write-wins.

All I/O runs through asyncio.to_thread. Every failure is raised as
CacheError, which the tiered cache logs and treats as a miss.
"""

import asyncio
import logging
import os
import re
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, runtime_checkable

import pandas as pd
import pyarrow as pa
import pyarrow.parquet as pq
from pydantic import ValidationError

from vigia.models import Entity


logger = logging.getLogger(__name__)

_SAFE_KEY = re.compile(r"^[A-Za-z0-9_.-]+$")


class CacheError(Exception):
    """Durable store I/O or decoding failure."""


@dataclass(frozen=True)
class CacheEntry:
    """An entity with the time it was written (epoch seconds)."""

    key: str
    entity: Entity
    written_at: float


@runtime_checkable
class DurableBackend(Protocol):
    """Cross-session store. Implementations raise CacheError on I/O failure."""

    async def get(self, key: str) -> CacheEntry | None: ...

    async def put(self, entry: CacheEntry) -> None: ...

    async def get_all(self) -> list[CacheEntry]: ...


class ParquetEntityStore:
    """One Parquet file per cached entity.

    Args:
        base_path: Cache root. Entities live under ``{base_path}/entities``.
    """

    def __init__(self, base_path: str | Path = "data") -> None:
        self.root = Path(base_path) / "entities"

    def _path(self, key: str) -> Path:
        if not _SAFE_KEY.match(key):
            raise CacheError(f"Unsafe cache key: {key!r}")
        return self.root / f"{key}.parquet"

    @staticmethod
    def _decode(path: Path) -> CacheEntry:
        frame = pq.read_table(path).to_pandas()
        if frame.empty:
            raise CacheError(f"Empty cache file: {path}")
        row = frame.iloc[0]
        return CacheEntry(
            key=str(row["key"]),
            entity=Entity.model_validate_json(row["entity"]),
            written_at=float(row["written_at"]),
        )

    async def get(self, key: str) -> CacheEntry | None:
        path = self._path(key)

        def _read() -> CacheEntry | None:
            if not path.exists():
                return None
            return self._decode(path)

        try:
            return await asyncio.to_thread(_read)
        except CacheError:
            raise
        except (OSError, pa.ArrowException, ValidationError, KeyError) as e:
            raise CacheError(f"Failed to read cache entry {key}: {e}") from e

    async def put(self, entry: CacheEntry) -> None:
        path = self._path(entry.key)
        frame = pd.DataFrame(
            {
                "key": [entry.key],
                "written_at": [entry.written_at],
                "entity": [entry.entity.model_dump_json()],
            }
        )

        def _write() -> None:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f"{entry.key}.", suffix=".tmp")
            os.close(fd)
            try:
                pq.write_table(pa.Table.from_pandas(frame, preserve_index=False), tmp, compression="snappy")
                os.replace(tmp, path)
            except BaseException:
                Path(tmp).unlink(missing_ok=True)
                raise

        try:
            await asyncio.to_thread(_write)
        except (OSError, pa.ArrowException) as e:
            raise CacheError(f"Failed to write cache entry {entry.key}: {e}") from e

    async def get_all(self) -> list[CacheEntry]:
        """Every readable entry. Unreadable files are skipped with a warning."""

        def _read_all() -> list[CacheEntry]:
            if not self.root.exists():
                return []
            entries = []
            for path in sorted(self.root.glob("*.parquet")):
                try:
                    entries.append(self._decode(path))
                except (CacheError, OSError, pa.ArrowException, ValidationError, KeyError) as e:
                    logger.warning("Skipping unreadable cache file %s: %s", path, e)
            return entries

        try:
            return await asyncio.to_thread(_read_all)
        except OSError as e:
            raise CacheError(f"Failed to list cache entries: {e}") from e
