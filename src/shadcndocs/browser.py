"""Headless Chromium rendering for script-rendered pages.

Playwright is an optional dependency (``pip install shadcndocs[browser]``
followed by ``playwright install chromium``). When it is not installed
``is_playwright_available()`` is False and the browser strategy stays inert.
"""

from __future__ import annotations

import asyncio
from importlib.util import find_spec
from typing import Any

import structlog

log = structlog.get_logger()


def is_playwright_available() -> bool:
    return find_spec("playwright") is not None


class BrowserRenderError(Exception):
    """Navigation or rendering failed inside the browser."""


class PlaywrightRenderer:
    """Reusable renderer; the browser is launched lazily on first use and shared."""

    def __init__(self, user_agent: str | None = None) -> None:
        self.user_agent = user_agent
        self._playwright: Any = None
        self._browser: Any = None
        self._lock = asyncio.Lock()

    async def __aenter__(self) -> PlaywrightRenderer:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def _ensure_browser(self) -> Any:
        if self._browser is not None:
            return self._browser

        from playwright.async_api import async_playwright

        async with self._lock:
            if self._browser is not None:
                return self._browser

            try:
                self._playwright = await async_playwright().start()
                self._browser = await self._playwright.chromium.launch(headless=True)
            except Exception as exc:
                if self._playwright is not None:
                    await self._playwright.stop()
                    self._playwright = None
                raise BrowserRenderError(
                    f"Failed to launch Chromium: {exc}. "
                    "Install it with: playwright install chromium"
                ) from exc
            log.info("browser_launched")
            return self._browser

    async def render(self, url: str, timeout_seconds: float) -> str:
        """Load ``url``, wait for network idle, and return the serialized DOM.

        Any Playwright failure, from launch to serialization, surfaces as
        ``BrowserRenderError``.
        """
        from playwright.async_api import Error as PlaywrightError

        try:
            return await self._render(url, timeout_seconds)
        except PlaywrightError as exc:
            raise BrowserRenderError(f"Rendering {url} failed: {exc}") from exc

    async def _render(self, url: str, timeout_seconds: float) -> str:
        browser = await self._ensure_browser()
        context_options: dict[str, Any] = {}
        if self.user_agent:
            context_options["user_agent"] = self.user_agent
        context = await browser.new_context(**context_options)
        try:
            page = await context.new_page()
            response = await page.goto(
                url, timeout=timeout_seconds * 1000, wait_until="networkidle"
            )
            if response is not None and not response.ok:
                raise BrowserRenderError(f"HTTP {response.status} rendering {url}")
            return await page.content()
        finally:
            await context.close()

    async def close(self) -> None:
        async with self._lock:
            if self._browser is not None:
                await self._browser.close()
                self._browser = None
            if self._playwright is not None:
                await self._playwright.stop()
                self._playwright = None
