"""Enumerate available identifiers (components, doc sections, site URLs).

Discovery sits on top of the fetch primitives: the component index goes
through ``DocFetcher.fetch`` (and so through the cache), while the sitemap
and the Bits UI source list use the plain HTTP ``Fetcher``.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING
from urllib.parse import urljoin, urlparse

import structlog
from bs4 import BeautifulSoup, Tag

from shadcndocs.errors import ShadcnDocsError
from shadcndocs.models.discovery import ComponentInfo, DocSections

if TYPE_CHECKING:
    from shadcndocs.fetcher import Fetcher
    from shadcndocs.orchestrator import DocFetcher

log = structlog.get_logger()

BITS_UI_INDEX_URL = (
    "https://raw.githubusercontent.com/huntabyte/bits-ui/main/"
    "docs/src/lib/content/api-reference/index.ts"
)

_COMPONENT_LINK_RE = re.compile(
    r"\[([^\]]+)\]\((?:https?://[^/)\s]+)?/docs/components/([a-z0-9-]+)\)"
)
_COMPONENT_HREF_RE = re.compile(r"""href=["']/docs/components/([a-z0-9-]+)["']""")
_BITS_ARRAY_RE = re.compile(r"export const bits = \[\s*(.*?)\s*\] as const;", re.DOTALL)
_QUOTED_RE = re.compile(r"""["']([^"']+)["']""")

_DOC_SECTIONS = DocSections(
    installation=["sveltekit", "vite", "astro", "manual"],
    dark_mode=["svelte", "astro"],
    migration=["svelte-5", "tailwind-v4"],
    general=["cli", "theming", "components-json", "figma", "changelog", "about"],
)


async def discover_components(fetcher: DocFetcher) -> list[ComponentInfo]:
    """Component slugs linked from the components index page, sorted."""
    result = await fetcher.fetch(f"{fetcher.site.base_url}/docs/components")
    if not result.success or result.content is None:
        log.warning("component_discovery_failed", error=result.error)
        return []

    names = {match.group(2) for match in _COMPONENT_LINK_RE.finditer(result.content)}
    if not names and result.raw_html:
        names = set(_COMPONENT_HREF_RE.findall(result.raw_html))

    log.info("components_discovered", count=len(names))
    return [ComponentInfo(name=name) for name in sorted(names)]


def discover_docs() -> DocSections:
    return _DOC_SECTIONS.model_copy(deep=True)


async def discover_urls(
    http: Fetcher,
    base_url: str,
    *,
    search: str | None = None,
    limit: int = 100,
) -> list[str]:
    """Site URLs from the sitemap, else from same-site homepage links."""
    urls: list[str] = []
    try:
        page = await http.fetch(f"{base_url}/sitemap.xml")
        soup = BeautifulSoup(page.text, "html.parser")
        urls = [loc.get_text(strip=True) for loc in soup.find_all("loc")]
        log.debug("sitemap_parsed", count=len(urls))
    except ShadcnDocsError as exc:
        log.debug("sitemap_unavailable", reason=exc.message)

    if not urls:
        page = await http.fetch(base_url)
        soup = BeautifulSoup(page.text, "html.parser")
        host = urlparse(base_url).netloc
        for anchor in soup.find_all("a", href=True):
            if not isinstance(anchor, Tag):
                continue
            absolute = urljoin(f"{base_url}/", str(anchor["href"]))
            if urlparse(absolute).netloc == host:
                urls.append(absolute.split("#", 1)[0])

    if search:
        needle = search.lower()
        urls = [url for url in urls if needle in url.lower()]
    return list(dict.fromkeys(url for url in urls if url))[:limit]


async def discover_bits_ui_components(
    http: Fetcher, index_url: str = BITS_UI_INDEX_URL
) -> list[ComponentInfo]:
    """Bits UI component names from the ``bits`` array in the upstream source."""
    try:
        page = await http.fetch(index_url)
    except ShadcnDocsError as exc:
        log.warning("bits_ui_discovery_failed", error=exc.message)
        return []

    match = _BITS_ARRAY_RE.search(page.text)
    if match is None:
        log.warning("bits_ui_array_not_found", url=index_url)
        return []

    names = _QUOTED_RE.findall(match.group(1))
    return [ComponentInfo(name=name, category="bits-ui-component") for name in names]
