from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import httpx

    from shadcndocs.browser import PlaywrightRenderer
    from shadcndocs.cache import Cache
    from shadcndocs.config import Settings
    from shadcndocs.fetcher import Fetcher
    from shadcndocs.orchestrator import DocFetcher


@dataclass
class AppState:
    """Everything a running service holds, created once by ``open_app_state``."""

    settings: Settings
    http_client: httpx.AsyncClient | None = None
    http: Fetcher | None = None
    cache: Cache | None = None
    renderer: PlaywrightRenderer | None = None
    doc_fetcher: DocFetcher | None = None
    sweeper: asyncio.Task[None] | None = None
