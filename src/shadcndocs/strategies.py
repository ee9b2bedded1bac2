"""Fetch strategies and the policy that orders them.

Every strategy implements ``attempt(url, timeout) -> FetchResult | None``:

- ``None``: not applicable here (no ``.md`` twin, no browser); try the next
  strategy silently.
- ``FetchResult(success=False)``: applicable but failed; the orchestrator
  remembers the error and moves on.
- ``FetchResult(success=True)``: normalized content, ready to cache.

Order is cheap first, expensive only where static HTML is known to be
insufficient, and a universal scrape last.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

import structlog

from shadcndocs.browser import BrowserRenderError
from shadcndocs.errors import ShadcnDocsError
from shadcndocs.extractor import (
    build_html_result,
    build_markdown_result,
    infer_content_type,
    looks_like_html,
    url_path,
)
from shadcndocs.models.fetch import FetchResult, SourceStrategy

if TYPE_CHECKING:
    from shadcndocs.browser import PlaywrightRenderer
    from shadcndocs.config import FetcherSettings
    from shadcndocs.fetcher import Fetcher

log = structlog.get_logger()

# Sections of the site rendered client-side; static HTML there is an empty shell
SCRIPT_RENDERED_PREFIXES = ("/charts", "/themes", "/blocks", "/colors")


def is_script_rendered(url: str) -> bool:
    path = url_path(url).rstrip("/")
    return any(path == p or path.startswith(p + "/") for p in SCRIPT_RENDERED_PREFIXES)


def select_strategies(url: str) -> list[SourceStrategy]:
    """Ordered strategy tags for ``url``: direct, [browser,] html."""
    order = [SourceStrategy.DIRECT]
    if is_script_rendered(url):
        order.append(SourceStrategy.BROWSER)
    order.append(SourceStrategy.HTML)
    return order


class FetchStrategy(Protocol):
    tag: SourceStrategy

    def budget(self, timeout: float) -> float:
        """Hard wall-clock limit for one attempt given the HTTP timeout."""
        ...

    async def attempt(self, url: str, timeout: float) -> FetchResult | None: ...


class DirectStrategy:
    """Fetch the pre-rendered ``.md`` twin of a page and trust its format."""

    tag = SourceStrategy.DIRECT

    def __init__(self, fetcher: Fetcher) -> None:
        self._fetcher = fetcher

    @staticmethod
    def document_url(url: str) -> str:
        if url.endswith((".md", ".txt")):
            return url
        return f"{url.rstrip('/')}.md"

    def budget(self, timeout: float) -> float:
        return timeout

    async def attempt(self, url: str, timeout: float) -> FetchResult | None:
        doc_url = self.document_url(url)
        try:
            page = await self._fetcher.fetch(doc_url, timeout=timeout)
        except ShadcnDocsError as exc:
            log.debug("direct_not_available", url=doc_url, code=exc.code, reason=exc.message)
            return None

        if not page.text.strip() or looks_like_html(page.text):
            log.debug("direct_not_markdown", url=doc_url)
            return None

        return build_markdown_result(
            page.text, url, last_modified=page.headers.get("last-modified")
        )


class BrowserStrategy:
    """Render in headless Chromium, then run the HTML pipeline on the live DOM."""

    tag = SourceStrategy.BROWSER

    def __init__(self, renderer: PlaywrightRenderer | None, settings: FetcherSettings) -> None:
        self._renderer = renderer
        self._settings = settings

    @property
    def available(self) -> bool:
        return self._renderer is not None

    def navigation_timeout(self, timeout: float) -> float:
        return max(self._settings.browser_timeout_seconds, timeout)

    def budget(self, timeout: float) -> float:
        # Navigation limit plus room for launching the browser
        return self.navigation_timeout(timeout) + self._settings.browser_startup_seconds

    async def attempt(self, url: str, timeout: float) -> FetchResult | None:
        if self._renderer is None:
            log.debug("browser_unavailable", url=url)
            return None
        try:
            html = await self._renderer.render(url, self.navigation_timeout(timeout))
        except BrowserRenderError as exc:
            log.info("browser_render_failed", url=url, reason=str(exc))
            return None
        return build_html_result(html, url, source=self.tag)


class HtmlStrategy:
    """Plain GET, strip page chrome, convert the main region to Markdown."""

    tag = SourceStrategy.HTML

    def __init__(self, fetcher: Fetcher) -> None:
        self._fetcher = fetcher

    def budget(self, timeout: float) -> float:
        return timeout

    async def attempt(self, url: str, timeout: float) -> FetchResult | None:
        try:
            page = await self._fetcher.fetch(url, timeout=timeout)
        except ShadcnDocsError as exc:
            return FetchResult.failure(
                exc.message, self.tag, code=exc.code, content_type=infer_content_type(url)
            )
        return build_html_result(page.text, url, source=self.tag)
