"""Unit-specific fixtures (no I/O beyond tmp_path and in-memory SQLite)."""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING

import aiosqlite
import pytest

from shadcndocs.cache import Cache, FileStore, SqliteStore
from shadcndocs.models.fetch import ContentType, FetchResult, SourceStrategy

if TYPE_CHECKING:
    from pathlib import Path


@pytest.fixture()
def button_result() -> FetchResult:
    return FetchResult(
        success=True,
        content="# Button\n\nDisplays a button or a component that looks like a button.",
        content_type=ContentType.COMPONENT,
        source_strategy=SourceStrategy.DIRECT,
    )


@pytest.fixture()
def file_store(tmp_path: Path) -> FileStore:
    return FileStore(tmp_path / "pages")


@pytest.fixture()
async def cache(file_store: FileStore):
    """File-backed cache rooted in tmp_path."""
    c = Cache(file_store, ttl=timedelta(hours=72), memory_size=50)
    await c.init()
    yield c


@pytest.fixture()
async def sqlite_cache():
    """In-memory SQLite cache for unit tests."""
    async with aiosqlite.connect(":memory:") as db:
        c = Cache(SqliteStore(db), ttl=timedelta(hours=72))
        await c.init()
        yield c
