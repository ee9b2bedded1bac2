"""Fetch orchestration: cache, strategy chain, write-through.

``DocFetcher.fetch`` walks a small state machine (not started, trying
strategy *i*, succeeded, exhausted) strictly sequentially. The first success
wins and is written to the cache; failures are never cached. The result is
always a complete ``FetchResult``: usable content, or one descriptive error.

The per-identifier wrappers build canonical URLs and apply presentation
cleanup (``strip_noise`` and caller notes) on top of ``fetch``.
"""

from __future__ import annotations

import asyncio
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

import structlog

from shadcndocs import blocks
from shadcndocs.config import FetcherSettings, SiteSettings
from shadcndocs.errors import ErrorCode, ShadcnDocsError
from shadcndocs.extractor import extract_code_blocks, infer_content_type, strip_noise
from shadcndocs.models.fetch import FetchOptions, FetchResult, SourceStrategy
from shadcndocs.strategies import select_strategies

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from shadcndocs.cache import Cache
    from shadcndocs.fetcher import Fetcher
    from shadcndocs.strategies import FetchStrategy

log = structlog.get_logger()

_SLUG_RE = re.compile(r"^[a-z0-9][a-z0-9-]*$")

SVELTE_NOTE = (
    "This is a Svelte component. Do not use React-specific props or patterns "
    "(such as 'asChild' or React.ReactNode); follow the Svelte examples shown."
)
BITS_UI_NOTE = (
    "Bits UI is the headless library underneath shadcn-svelte; use these "
    "primitives when building accessible custom components."
)

# Tried in order by find_doc()
DOC_PATH_CANDIDATES = (
    "/docs/{name}",
    "/docs/installation/{name}",
    "/docs/dark-mode/{name}",
    "/docs/migration/{name}",
)


def _validate_slug(value: str, what: str) -> str:
    slug = value.strip().lower()
    if not _SLUG_RE.match(slug):
        raise ShadcnDocsError(ErrorCode.INVALID_INPUT, f"Invalid {what} name: {value!r}")
    return slug


@dataclass
class _ChainProgress:
    current: SourceStrategy | None = None
    last_error: str | None = None
    last_code: ErrorCode | None = None

    def record(self, error: str, code: ErrorCode | None) -> None:
        self.last_error = error
        self.last_code = code


class DocFetcher:
    def __init__(
        self,
        strategies: Iterable[FetchStrategy],
        cache: Cache | None = None,
        *,
        site: SiteSettings | None = None,
        settings: FetcherSettings | None = None,
        http: Fetcher | None = None,
        selector: Callable[[str], list[SourceStrategy]] = select_strategies,
    ) -> None:
        self._strategies = {strategy.tag: strategy for strategy in strategies}
        self._cache = cache
        self._site = site or SiteSettings()
        self._settings = settings or FetcherSettings()
        self._http = http
        self._selector = selector

    @property
    def site(self) -> SiteSettings:
        return self._site

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    async def fetch(self, url: str, options: FetchOptions | None = None) -> FetchResult:
        """Return content for a canonical URL, from cache or the strategy chain."""
        options = options or FetchOptions()

        if options.use_cache and self._cache is not None:
            cached = await self._cache.get(url)
            if cached is not None:
                log.info("fetch_served_from_cache", url=url)
                return cached

        progress = _ChainProgress()
        try:
            async with asyncio.timeout(options.deadline):
                return await self._run_chain(url, options, progress)
        except TimeoutError:
            log.warning(
                "fetch_deadline_exceeded",
                url=url,
                deadline_seconds=options.deadline,
                strategy=progress.current,
            )
            return FetchResult.failure(
                f"Deadline of {options.deadline:g}s exceeded while fetching {url}",
                progress.current or SourceStrategy.DIRECT,
                code=ErrorCode.FETCH_TIMEOUT,
                content_type=infer_content_type(url),
            )

    async def _run_chain(
        self, url: str, options: FetchOptions, progress: _ChainProgress
    ) -> FetchResult:
        timeout = options.timeout or self._settings.request_timeout_seconds

        for tag in self._selector(url):
            strategy = self._strategies.get(tag)
            if strategy is None:
                log.debug("strategy_not_registered", url=url, strategy=tag)
                continue

            progress.current = tag
            budget = strategy.budget(timeout)
            try:
                async with asyncio.timeout(budget):
                    result = await strategy.attempt(url, timeout)
            except TimeoutError:
                log.warning("strategy_timeout", url=url, strategy=tag, budget_seconds=budget)
                progress.record(
                    f"{tag} strategy timed out after {budget:g}s", ErrorCode.FETCH_TIMEOUT
                )
                continue
            except Exception as exc:
                log.error("strategy_error", url=url, strategy=tag, exc_info=True)
                progress.record(
                    f"{tag} strategy raised {type(exc).__name__}: {exc}",
                    ErrorCode.PAGE_FETCH_FAILED,
                )
                continue

            if result is None:
                log.debug("strategy_not_applicable", url=url, strategy=tag)
                continue

            if result.success:
                log.info("strategy_succeeded", url=url, strategy=tag)
                if options.use_cache and self._cache is not None:
                    await self._cache.put(url, result)
                return result

            log.info(
                "strategy_failed",
                url=url,
                strategy=tag,
                code=result.error_code,
                error=result.error,
            )
            progress.record(result.error or f"{tag} strategy failed", result.error_code)

        log.warning("fetch_exhausted", url=url, last_error=progress.last_error)
        if progress.last_error is None:
            return FetchResult.failure(
                f"No strategy succeeded for {url}",
                progress.current or SourceStrategy.HTML,
                code=ErrorCode.ALL_STRATEGIES_FAILED,
                content_type=infer_content_type(url),
            )
        return FetchResult.failure(
            progress.last_error,
            progress.current or SourceStrategy.HTML,
            code=progress.last_code or ErrorCode.ALL_STRATEGIES_FAILED,
            content_type=infer_content_type(url),
        )

    # ------------------------------------------------------------------
    # Canonical URLs
    # ------------------------------------------------------------------

    def component_url(self, name: str) -> str:
        return f"{self._site.base_url}/docs/components/{_validate_slug(name, 'component')}"

    def doc_url(self, path: str) -> str:
        path = path.strip()
        if not path or ".." in path or "://" in path:
            raise ShadcnDocsError(ErrorCode.INVALID_INPUT, f"Invalid documentation path: {path!r}")
        return f"{self._site.base_url}/{path.lstrip('/')}"

    def install_url(self, framework: str | None = None) -> str:
        if framework is None:
            return f"{self._site.base_url}/docs/installation"
        return f"{self._site.base_url}/docs/installation/{_validate_slug(framework, 'framework')}"

    def bits_ui_url(self, name: str) -> str:
        slug = _validate_slug(name, "Bits UI component")
        return f"{self._site.bits_ui_base_url}/docs/components/{slug}/llms.txt"

    # ------------------------------------------------------------------
    # Wrappers used by the tool layer
    # ------------------------------------------------------------------

    async def fetch_by_canonical_url(
        self, url: str, options: FetchOptions | None = None
    ) -> FetchResult:
        url = url.strip()
        if not url.startswith(("http://", "https://")):
            raise ShadcnDocsError(ErrorCode.INVALID_INPUT, "url must use http or https scheme")
        return await self.fetch(url, options)

    async def fetch_component(self, name: str, options: FetchOptions | None = None) -> FetchResult:
        result = await self.fetch(self.component_url(name), options)
        return _present(result, SVELTE_NOTE)

    async def fetch_doc(self, path: str, options: FetchOptions | None = None) -> FetchResult:
        return _present(await self.fetch(self.doc_url(path), options))

    async def fetch_install_guide(
        self, framework: str | None = None, options: FetchOptions | None = None
    ) -> FetchResult:
        return _present(await self.fetch(self.install_url(framework), options))

    async def find_doc(self, name: str, options: FetchOptions | None = None) -> FetchResult:
        """Try the usual documentation locations for ``name``; first success wins."""
        slug = _validate_slug(name, "documentation")
        first, *rest = DOC_PATH_CANDIDATES
        result = await self.fetch_doc(first.format(name=slug), options)
        for template in rest:
            if result.success:
                break
            result = await self.fetch_doc(template.format(name=slug), options)
        return result

    async def fetch_bits_ui_component(
        self, name: str, options: FetchOptions | None = None
    ) -> FetchResult:
        result = await self.fetch(self.bits_ui_url(name), options)
        return _present(result, BITS_UI_NOTE)

    async def fetch_block_code(
        self,
        name: str,
        package_manager: str | None = None,
        options: FetchOptions | None = None,
    ) -> FetchResult:
        """Render a block's registry entry (all source files) as Markdown."""
        if self._http is None:
            raise RuntimeError("fetch_block_code requires an HTTP fetcher")
        options = options or FetchOptions()
        slug = _validate_slug(name, "block")
        url = blocks.block_api_url(self._site.base_url, slug)
        cache_url = f"{url}?pm={blocks.install_prefix(package_manager)}"

        if options.use_cache and self._cache is not None:
            cached = await self._cache.get(cache_url)
            if cached is not None:
                return cached

        timeout = options.timeout or self._settings.request_timeout_seconds
        result = await blocks.fetch_block_code(self._http, url, slug, package_manager, timeout)
        if result.success and options.use_cache and self._cache is not None:
            await self._cache.put(cache_url, result)
        return result

    async def check_connection(self) -> tuple[bool, str]:
        result = await self.fetch(
            f"{self._site.base_url}/docs", FetchOptions(use_cache=False, timeout=10)
        )
        if result.success:
            return True, f"Fetched documentation (source: {result.source_strategy})"
        return False, result.error or "Failed to fetch test URL"


def _present(result: FetchResult, note: str | None = None) -> FetchResult:
    """Apply noise stripping and caller notes to a successful result."""
    if not result.success or result.content is None:
        return result
    cleaned = strip_noise(result.content) or result.content
    notes = [*result.notes, note] if note and note not in result.notes else list(result.notes)
    return result.model_copy(
        update={"content": cleaned, "code_blocks": extract_code_blocks(cleaned), "notes": notes}
    )
