"""Integration test fixtures.

Provides Settings rooted in tmp_path and a fully wired AppState built by
``open_app_state``. HTTP is mocked per test with respx; the browser strategy
is disabled so no Chromium is needed.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from shadcndocs.config import Settings
from shadcndocs.runtime import open_app_state

if TYPE_CHECKING:
    from pathlib import Path


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    return Settings(
        cache={
            "directory": str(tmp_path / "pages"),
            "db_path": str(tmp_path / "db" / "cache.db"),
        },
        fetcher={"browser_enabled": False, "request_timeout_seconds": 5},
    )


@pytest.fixture()
async def app_state(settings: Settings):
    """Full AppState wired the same way the CLI wires it."""
    async with open_app_state(settings, start_sweeper=False) as state:
        yield state


@pytest.fixture()
def sqlite_settings(settings: Settings) -> Settings:
    return settings.model_copy(
        update={"cache": settings.cache.model_copy(update={"backend": "sqlite"})}
    )

