"""Wire settings into a running ``AppState`` and tear it down again."""

from __future__ import annotations

import asyncio
import contextlib
from contextlib import AsyncExitStack, asynccontextmanager
from pathlib import Path
from typing import TYPE_CHECKING

import aiosqlite
import structlog

from shadcndocs.browser import PlaywrightRenderer, is_playwright_available
from shadcndocs.cache import Cache, FileStore, PersistentStore, SqliteStore, run_sweeper
from shadcndocs.fetcher import Fetcher, build_http_client
from shadcndocs.orchestrator import DocFetcher
from shadcndocs.state import AppState
from shadcndocs.strategies import BrowserStrategy, DirectStrategy, HtmlStrategy

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from shadcndocs.config import Settings

log = structlog.get_logger()


async def _open_store(settings: Settings, stack: AsyncExitStack) -> PersistentStore:
    if settings.cache.backend == "sqlite":
        db_path = Path(settings.cache.db_path).expanduser()
        db_path.parent.mkdir(parents=True, exist_ok=True)
        db = await stack.enter_async_context(aiosqlite.connect(db_path))
        return SqliteStore(db)
    return FileStore(settings.cache.directory)


def _build_renderer(settings: Settings) -> PlaywrightRenderer | None:
    if not settings.fetcher.browser_enabled:
        log.info("browser_strategy_disabled", reason="config")
        return None
    if not is_playwright_available():
        log.info("browser_strategy_disabled", reason="playwright not installed")
        return None
    return PlaywrightRenderer(user_agent=settings.fetcher.user_agent)


@asynccontextmanager
async def open_app_state(
    settings: Settings, *, start_sweeper: bool = True
) -> AsyncIterator[AppState]:
    async with AsyncExitStack() as stack:
        client = await stack.enter_async_context(build_http_client(settings.fetcher))
        http = Fetcher(client, settings.fetcher)

        cache = Cache.from_settings(await _open_store(settings, stack), settings.cache)
        await cache.init()

        renderer = _build_renderer(settings)
        if renderer is not None:
            stack.push_async_callback(renderer.close)

        doc_fetcher = DocFetcher(
            [
                DirectStrategy(http),
                BrowserStrategy(renderer, settings.fetcher),
                HtmlStrategy(http),
            ],
            cache,
            site=settings.site,
            settings=settings.fetcher,
            http=http,
        )

        state = AppState(
            settings=settings,
            http_client=client,
            http=http,
            cache=cache,
            renderer=renderer,
            doc_fetcher=doc_fetcher,
        )

        if start_sweeper:
            interval = settings.cache.sweep_interval_minutes * 60
            state.sweeper = asyncio.create_task(run_sweeper(cache, interval))

        log.info(
            "app_state_ready",
            cache_backend=settings.cache.backend,
            browser=renderer is not None,
        )
        try:
            yield state
        finally:
            if state.sweeper is not None:
                state.sweeper.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await state.sweeper
