"""Two-tier fetch cache: bounded in-process LRU over a persistent store.

All cache operations catch store errors internally and degrade gracefully:
read failures return ``None`` (treated as cache miss by callers), write
failures are logged and ignored (fetched content is still returned).
Infrastructure errors never cross the Cache class boundary; they are logged
with ``exc_info=True`` so they remain observable via stderr.

Only successful results are ever cached. Entries older than the TTL are never
served: they are removed lazily on read, or by the periodic sweep.
"""

from __future__ import annotations

import asyncio
import contextlib
import hashlib
import os
import tempfile
from collections import OrderedDict
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol

import aiofiles
import aiofiles.os
import aiosqlite
import structlog

from shadcndocs.models.cache import CacheEntry
from shadcndocs.models.fetch import FetchResult, SourceStrategy

if TYPE_CHECKING:
    from shadcndocs.config import CacheSettings

log = structlog.get_logger()

# ValueError covers JSON decode errors, pydantic ValidationError and bad UTF-8
_STORE_ERRORS = (OSError, ValueError, aiosqlite.Error)

_FILE_PREFIX = "cache_"
_FILE_SUFFIX = ".json"


def cache_key(url: str) -> str:
    """128-bit hex key derived from the canonical URL."""
    return hashlib.sha256(url.encode("utf-8")).hexdigest()[:32]


class PersistentStore(Protocol):
    async def init(self) -> None: ...

    async def read(self, key: str) -> CacheEntry | None: ...

    async def write(self, key: str, entry: CacheEntry) -> None: ...

    async def delete(self, key: str) -> None: ...

    async def clear(self) -> int: ...

    async def sweep(self, ttl: timedelta) -> int: ...

    async def count(self) -> int: ...


# ----------------------------------------------------------------------
# File store: one JSON envelope per key
# ----------------------------------------------------------------------


class FileStore:
    """One ``cache_<key>.json`` file per entry under ``directory``.

    File I/O goes through aiofiles, one file per hop, so the sweep never
    stalls the event loop for longer than a single read or unlink. Writes land
    in a temp file that is then renamed over the target.
    """

    def __init__(self, directory: str | Path) -> None:
        self._dir = Path(directory).expanduser()

    @property
    def directory(self) -> Path:
        return self._dir

    def path_for(self, key: str) -> Path:
        return self._dir / f"{_FILE_PREFIX}{key}{_FILE_SUFFIX}"

    async def init(self) -> None:
        await aiofiles.os.makedirs(self._dir, exist_ok=True)

    async def read(self, key: str) -> CacheEntry | None:
        return await self._read_file(self.path_for(key))

    async def write(self, key: str, entry: CacheEntry) -> None:
        await self._write_file(self.path_for(key), entry.model_dump_json())

    async def delete(self, key: str) -> None:
        await self._remove(self.path_for(key))

    async def clear(self) -> int:
        removed = 0
        for path in await self._list_files():
            await self._remove(path)
            removed += 1
        return removed

    async def sweep(self, ttl: timedelta) -> int:
        now = datetime.now(UTC)
        removed = 0
        for path in await self._list_files():
            try:
                entry = await self._read_file(path)
            except (OSError, ValueError):
                log.info("cache_sweep_remove_unreadable", path=str(path))
            else:
                if entry is None or not entry.is_expired(ttl, now):
                    continue
            try:
                await self._remove(path)
            except OSError:
                log.warning("cache_sweep_unlink_error", path=str(path), exc_info=True)
                continue
            removed += 1
        return removed

    async def count(self) -> int:
        return len(await self._list_files())

    async def _list_files(self) -> list[Path]:
        try:
            names = await aiofiles.os.listdir(self._dir)
        except FileNotFoundError:
            return []
        return sorted(
            self._dir / name
            for name in names
            if name.startswith(_FILE_PREFIX) and name.endswith(_FILE_SUFFIX)
        )

    @staticmethod
    async def _read_file(path: Path) -> CacheEntry | None:
        try:
            async with aiofiles.open(path, encoding="utf-8") as fh:
                raw = await fh.read()
        except FileNotFoundError:
            return None
        return CacheEntry.model_validate_json(raw)

    @staticmethod
    async def _remove(path: Path) -> None:
        try:
            await aiofiles.os.remove(path)
        except FileNotFoundError:
            pass

    async def _write_file(self, path: Path, payload: str) -> None:
        await aiofiles.os.makedirs(self._dir, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self._dir, prefix=".tmp_", suffix=_FILE_SUFFIX)
        os.close(fd)
        try:
            async with aiofiles.open(tmp_name, "w", encoding="utf-8") as fh:
                await fh.write(payload)
            await aiofiles.os.replace(tmp_name, path)
        except Exception:
            with contextlib.suppress(OSError):
                await aiofiles.os.remove(tmp_name)
            raise


# ----------------------------------------------------------------------
# SQLite store
# ----------------------------------------------------------------------

_CREATE_FETCH_TABLE = """
CREATE TABLE IF NOT EXISTS fetch_cache (
    key        TEXT PRIMARY KEY,
    url        TEXT NOT NULL,
    data       TEXT NOT NULL,
    timestamp  TEXT NOT NULL
)
"""

_CREATE_FETCH_INDEX = "CREATE INDEX IF NOT EXISTS idx_fetch_timestamp ON fetch_cache(timestamp)"


class SqliteStore:
    """Single-table SQLite store sharing the file envelope shape."""

    def __init__(self, db: aiosqlite.Connection) -> None:
        self._db = db

    async def init(self) -> None:
        """Create tables and set WAL mode. Called once at startup."""
        await self._db.execute("PRAGMA journal_mode = WAL")
        await self._db.execute(_CREATE_FETCH_TABLE)
        await self._db.execute(_CREATE_FETCH_INDEX)
        await self._db.commit()

    async def read(self, key: str) -> CacheEntry | None:
        cursor = await self._db.execute(
            "SELECT url, data, timestamp FROM fetch_cache WHERE key = ?", (key,)
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return CacheEntry(
            url=row[0],
            data=FetchResult.model_validate_json(row[1]),
            timestamp=datetime.fromisoformat(row[2]),
        )

    async def write(self, key: str, entry: CacheEntry) -> None:
        await self._db.execute(
            "INSERT OR REPLACE INTO fetch_cache (key, url, data, timestamp) VALUES (?, ?, ?, ?)",
            (key, entry.url, entry.data.model_dump_json(), entry.timestamp.isoformat()),
        )
        await self._db.commit()

    async def delete(self, key: str) -> None:
        await self._db.execute("DELETE FROM fetch_cache WHERE key = ?", (key,))
        await self._db.commit()

    async def clear(self) -> int:
        cursor = await self._db.execute("DELETE FROM fetch_cache")
        await self._db.commit()
        return cursor.rowcount

    async def sweep(self, ttl: timedelta) -> int:
        cutoff = (datetime.now(UTC) - ttl).isoformat()
        cursor = await self._db.execute("DELETE FROM fetch_cache WHERE timestamp <= ?", (cutoff,))
        await self._db.commit()
        return cursor.rowcount

    async def count(self) -> int:
        cursor = await self._db.execute("SELECT COUNT(*) FROM fetch_cache")
        row = await cursor.fetchone()
        return row[0] if row else 0


# ----------------------------------------------------------------------
# Two-tier facade
# ----------------------------------------------------------------------


def _as_cached(result: FetchResult) -> FetchResult:
    return result.model_copy(deep=True, update={"source_strategy": SourceStrategy.CACHE})


class Cache:
    """Memory LRU in front of a ``PersistentStore``.

    The memory tier is guarded by one ``asyncio.Lock``; persistent I/O is
    never awaited while holding it. Evicting from memory leaves the
    persistent copy untouched.
    """

    def __init__(self, store: PersistentStore, ttl: timedelta, memory_size: int = 50) -> None:
        self._store = store
        self._ttl = ttl
        self._memory_size = memory_size
        self._memory: OrderedDict[str, CacheEntry] = OrderedDict()
        self._lock = asyncio.Lock()

    @classmethod
    def from_settings(cls, store: PersistentStore, settings: CacheSettings) -> Cache:
        return cls(store, ttl=timedelta(hours=settings.ttl_hours), memory_size=settings.memory_size)

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    async def init(self) -> None:
        """Prepare the persistent store. Non-fatal on failure."""
        try:
            await self._store.init()
        except _STORE_ERRORS:
            log.warning("cache_init_error", exc_info=True)

    async def get(self, url: str) -> FetchResult | None:
        """Return a fresh cached result, or ``None`` on miss or read failure."""
        key = cache_key(url)

        async with self._lock:
            entry = self._memory.get(key)
            if entry is not None:
                if entry.is_expired(self._ttl):
                    del self._memory[key]
                else:
                    self._memory.move_to_end(key)
                    log.debug("cache_hit", tier="memory", url=url)
                    return _as_cached(entry.data)

        try:
            entry = await self._store.read(key)
        except _STORE_ERRORS:
            log.warning("cache_read_error", url=url, exc_info=True)
            return None

        if entry is None or entry.url != url:
            log.debug("cache_miss", url=url)
            return None

        if entry.is_expired(self._ttl):
            log.debug("cache_expired", url=url, age_seconds=int(entry.age().total_seconds()))
            await self._delete_persistent(key, url)
            return None

        async with self._lock:
            self._remember(key, entry)
        log.debug("cache_hit", tier="persistent", url=url)
        return _as_cached(entry.data)

    async def put(self, url: str, result: FetchResult) -> None:
        """Store a successful result in both tiers. Non-fatal on failure."""
        if not result.success:
            log.debug("cache_put_skipped_failure", url=url)
            return

        key = cache_key(url)
        entry = CacheEntry(url=url, data=result.model_copy(deep=True), timestamp=datetime.now(UTC))
        async with self._lock:
            self._remember(key, entry)

        try:
            await self._store.write(key, entry)
        except _STORE_ERRORS:
            log.warning("cache_write_error", url=url, exc_info=True)

    async def clear(self) -> int:
        """Empty both tiers. Returns the number of persistent entries removed."""
        async with self._lock:
            self._memory.clear()
        try:
            removed = await self._store.clear()
        except _STORE_ERRORS:
            log.warning("cache_clear_error", exc_info=True)
            return 0
        log.info("cache_cleared", removed=removed)
        return removed

    async def sweep(self) -> int:
        """Drop every entry older than the TTL. Non-fatal on failure."""
        now = datetime.now(UTC)
        async with self._lock:
            expired = [k for k, e in self._memory.items() if e.is_expired(self._ttl, now)]
            for key in expired:
                del self._memory[key]

        try:
            removed = await self._store.sweep(self._ttl)
        except _STORE_ERRORS:
            log.warning("cache_sweep_error", exc_info=True)
            return 0
        log.info("cache_sweep_complete", memory_removed=len(expired), persistent_removed=removed)
        return removed

    async def stats(self) -> dict[str, Any]:
        async with self._lock:
            memory_entries = len(self._memory)
        try:
            persistent_entries = await self._store.count()
        except _STORE_ERRORS:
            log.warning("cache_stats_error", exc_info=True)
            persistent_entries = None
        return {
            "memory_entries": memory_entries,
            "memory_capacity": self._memory_size,
            "persistent_entries": persistent_entries,
            "ttl_hours": self._ttl.total_seconds() / 3600,
        }

    def _remember(self, key: str, entry: CacheEntry) -> None:
        """Insert into the memory tier. Caller must hold ``self._lock``."""
        self._memory[key] = entry
        self._memory.move_to_end(key)
        while len(self._memory) > self._memory_size:
            evicted, _ = self._memory.popitem(last=False)
            log.debug("cache_memory_evicted", key=evicted)

    async def _delete_persistent(self, key: str, url: str) -> None:
        try:
            await self._store.delete(key)
        except _STORE_ERRORS:
            log.warning("cache_delete_error", url=url, exc_info=True)


async def run_sweeper(cache: Cache, interval_seconds: float) -> None:
    """Sweep the cache on a fixed interval until cancelled."""
    while True:
        await asyncio.sleep(interval_seconds)
        await cache.sweep()
