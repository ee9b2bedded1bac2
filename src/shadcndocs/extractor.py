"""HTML and Markdown normalization.

Everything here is pure: the same input always yields byte-identical output,
which the cache and the tests rely on. The strategies call
``build_markdown_result`` (direct documents) or ``build_html_result``
(HTML scraped or rendered by a browser); both return a complete
``FetchResult`` envelope.
"""

from __future__ import annotations

import re
from urllib.parse import urlparse

from bs4 import BeautifulSoup, Tag
from markdownify import ASTERISK, ATX, markdownify

from shadcndocs.errors import ErrorCode
from shadcndocs.models.fetch import (
    CodeBlock,
    ContentType,
    FetchResult,
    PageMetadata,
    SourceStrategy,
)

# Elements that never carry documentation content
_CHROME_SELECTOR = "nav, footer, aside, script, style, noscript, .navigation, .sidebar"

# Gallery-style landing pages (charts, blocks, themes) render one section per item
_SECTIONS_SELECTOR = "main > section, main > .container-wrapper"

_FALLBACK_REGIONS = ("main", "article", "body")

# Ordered: the first marker found in the URL path wins
_CONTENT_TYPE_MARKERS: tuple[tuple[re.Pattern[str], ContentType], ...] = (
    (re.compile(r"/docs/components/"), ContentType.COMPONENT),
    (re.compile(r"/docs(?:/|$)"), ContentType.DOC),
    (re.compile(r"/blocks(?:/|$)"), ContentType.BLOCK),
    (re.compile(r"/charts(?:/|$)"), ContentType.CHART),
    (re.compile(r"/themes(?:/|$)"), ContentType.THEME),
)

_TITLE_RE = re.compile(r"^#[ \t]+(.+?)[ \t]*#*[ \t]*$", re.MULTILINE)
_FENCE_RE = re.compile(r"^(`{3,}|~{3,})([^\n]*)\n(.*?)^\1[ \t]*$", re.MULTILINE | re.DOTALL)
_FENCE_TITLE_RE = re.compile(r"""title=["']([^"']+)["']""")
_LANGUAGE_CLASS_RE = re.compile(r"^(?:language|lang)-(.+)$")


# ----------------------------------------------------------------------
# Direct documents
# ----------------------------------------------------------------------


def unescape_markdown(text: str) -> str:
    """Repair the escaping found in the site's ``.md`` documents.

    ``\\"`` -> ``"``, ``\\'`` -> ``'``, ``&apos;`` -> ``'``. Clean text passes
    through unchanged, so applying this twice is the same as applying it once.
    """
    return text.replace('\\"', '"').replace("\\'", "'").replace("&apos;", "'")


def extract_title(markdown: str) -> str | None:
    match = _TITLE_RE.search(markdown)
    return match.group(1).strip() if match else None


def extract_summary(markdown: str) -> str | None:
    """First paragraph after the title, stripped of links and emphasis."""
    if not markdown:
        return None
    body = _TITLE_RE.sub("", markdown, count=1).strip()
    first = body.split("\n\n", 1)[0].strip()
    if not (10 < len(first) < 500) or first.startswith(("#", "```", "<")):
        return None
    first = re.sub(r"\[([^\]]+)\]\([^)]+\)", r"\1", first)
    return re.sub(r"[*_`]", "", first).strip() or None


def looks_like_html(text: str) -> bool:
    head = text.lstrip()[:100].lower()
    return head.startswith(("<!doctype html", "<html"))


def build_markdown_result(
    markdown: str,
    url: str,
    *,
    source: SourceStrategy = SourceStrategy.DIRECT,
    last_modified: str | None = None,
) -> FetchResult:
    content = unescape_markdown(markdown).strip()
    metadata = PageMetadata(
        title=extract_title(content),
        description=extract_summary(content),
        canonical_url=url,
        last_modified=last_modified,
    )
    return FetchResult(
        success=True,
        content=content,
        metadata=metadata,
        content_type=infer_content_type(url),
        source_strategy=source,
        code_blocks=extract_code_blocks(content),
    )


# ----------------------------------------------------------------------
# HTML documents
# ----------------------------------------------------------------------


def _meta_content(soup: BeautifulSoup, **attrs: str) -> str | None:
    tag = soup.find("meta", attrs=attrs)
    if not isinstance(tag, Tag):
        return None
    value = tag.get("content")
    if not isinstance(value, str):
        return None
    return value.strip() or None


def _element_text(soup: BeautifulSoup, name: str) -> str | None:
    tag = soup.find(name)
    if not isinstance(tag, Tag):
        return None
    return tag.get_text(" ", strip=True) or None


def extract_metadata(soup: BeautifulSoup) -> PageMetadata:
    """Read page metadata from the full document. Every field is optional."""
    title = (
        _meta_content(soup, property="og:title")
        or _element_text(soup, "title")
        or _element_text(soup, "h1")
    )
    description = _meta_content(soup, name="description") or _meta_content(
        soup, property="og:description"
    )
    keywords_raw = _meta_content(soup, name="keywords")
    keywords = [k.strip() for k in keywords_raw.split(",") if k.strip()] if keywords_raw else []

    canonical_url = None
    link = soup.find("link", rel="canonical")
    if isinstance(link, Tag) and isinstance(link.get("href"), str):
        canonical_url = link["href"]

    last_modified = (
        _meta_content(soup, property="article:modified_time")
        or _meta_content(soup, name="last-modified")
        or _meta_content(soup, **{"http-equiv": "last-modified"})
    )

    return PageMetadata(
        title=title,
        description=description,
        author=_meta_content(soup, name="author"),
        keywords=keywords,
        og_image=_meta_content(soup, property="og:image"),
        canonical_url=canonical_url,
        last_modified=last_modified,
    )


def strip_chrome(soup: BeautifulSoup) -> None:
    """Remove navigation, footers, sidebars and scripts in place."""
    for element in soup.select(_CHROME_SELECTOR):
        if not element.decomposed:
            element.decompose()


def select_content_region(soup: BeautifulSoup) -> str | None:
    """Return the HTML of the primary content region, or None if nothing has text.

    Gallery sections are concatenated first; otherwise the first of
    ``main``/``article``/``body`` that contains text is used.
    """
    sections = [s for s in soup.select(_SECTIONS_SELECTOR) if s.get_text(strip=True)]
    if sections:
        return "\n".join(str(s) for s in sections)

    for name in _FALLBACK_REGIONS:
        element = soup.find(name)
        if isinstance(element, Tag) and element.get_text(strip=True):
            return element.decode_contents()
    return None


def _code_language(element: Tag) -> str | None:
    candidates = [element]
    code = element.find("code")
    if isinstance(code, Tag):
        candidates.append(code)
    for candidate in candidates:
        data_language = candidate.get("data-language")
        if isinstance(data_language, str) and data_language:
            return data_language
        for cls in candidate.get("class") or []:
            match = _LANGUAGE_CLASS_RE.match(cls)
            if match:
                return match.group(1)
    return None


def html_to_markdown(html: str) -> str:
    """Structural HTML -> Markdown: ATX headings, inline links, fenced code."""
    markdown = markdownify(
        html,
        heading_style=ATX,
        bullets="-",
        strong_em_symbol=ASTERISK,
        code_language_callback=_code_language,
        strip=["script", "style"],
    )
    lines = [line.rstrip() for line in markdown.splitlines()]
    return re.sub(r"\n{3,}", "\n\n", "\n".join(lines)).strip()


def build_html_result(html: str, url: str, *, source: SourceStrategy) -> FetchResult:
    """Run the full HTML pipeline and return a success or an extraction failure."""
    content_type = infer_content_type(url)
    soup = BeautifulSoup(html, "html.parser")
    metadata = extract_metadata(soup)
    strip_chrome(soup)

    region = select_content_region(soup)
    if region is None:
        return FetchResult.failure(
            f"Could not find main content in HTML for {url}",
            source,
            code=ErrorCode.EXTRACTION_FAILED,
            content_type=content_type,
        )

    markdown = html_to_markdown(region)
    if not markdown:
        return FetchResult.failure(
            f"Main content of {url} converted to empty markdown",
            source,
            code=ErrorCode.EXTRACTION_FAILED,
            content_type=content_type,
        )

    if metadata.title is None:
        metadata.title = extract_title(markdown)

    return FetchResult(
        success=True,
        content=markdown,
        raw_html=region,
        metadata=metadata,
        content_type=content_type,
        source_strategy=source,
        code_blocks=extract_code_blocks(markdown),
    )


# ----------------------------------------------------------------------
# Markdown post-processing
# ----------------------------------------------------------------------


def extract_code_blocks(markdown: str) -> list[CodeBlock]:
    blocks: list[CodeBlock] = []
    for match in _FENCE_RE.finditer(markdown):
        info = match.group(2).strip()
        first = info.split()[0] if info else ""
        language = first if first and "=" not in first else None
        title_match = _FENCE_TITLE_RE.search(info)
        blocks.append(
            CodeBlock(
                language=language,
                code=match.group(3).rstrip("\n"),
                title=title_match.group(1) if title_match else None,
            )
        )
    return blocks


def url_path(url: str) -> str:
    """Path component of ``url``, or the raw string when it does not parse."""
    try:
        return urlparse(url).path or url
    except ValueError:
        return url


def infer_content_type(url: str) -> ContentType:
    path = url_path(url)
    for pattern, content_type in _CONTENT_TYPE_MARKERS:
        if pattern.search(path):
            return content_type
    return ContentType.UNKNOWN


_HEADING_START = r"^(?:#{1,6}|\\#{1,6})\s"

_NOISE_PATTERNS: tuple[tuple[re.Pattern[str], str], ...] = (
    # "On This Page" table of contents, up to the next heading
    (
        re.compile(
            r"^(?:#{1,6}|\\#{1,6})\s+On This Page\b.*?(?=" + _HEADING_START + r"|\Z)",
            re.MULTILINE | re.DOTALL | re.IGNORECASE,
        ),
        "",
    ),
    # CLI install one-liners
    (
        re.compile(
            r"^```(?:bash|sh|shell)?[ \t]*\n\s*(?:npx|pnpm dlx|yarn dlx|bun x) "
            r"shadcn-svelte@\S+ add[^\n]*\n\s*```[ \t]*$\n?",
            re.MULTILINE | re.IGNORECASE,
        ),
        "",
    ),
    # Previous / Next pager
    (re.compile(r"^[ \t]*\[Previous\]\([^)]*\)\s*\[Next\]\([^)]*\)[ \t]*$", re.MULTILINE), ""),
    # Footer link row
    (
        re.compile(r"\[Docs\]\([^)]*\)\s+\[API Reference\]\([^)]*\)\s+Component Source"),
        "",
    ),
    (re.compile(r"^[ \t]*Copy Page[ \t]*$", re.MULTILINE), ""),
)

_FIRST_H1_RE = re.compile(r"^(?:#|\\#)\s+[A-Z]", re.MULTILINE)

# Sidebar residue left at the top of an untitled page: three or more
# consecutive link-only list items before any other text
_LEADING_LINK_LIST_RE = re.compile(r"\A\s*(?:[*-] \[[^\]\n]+\]\([^)\n]+\)[ \t]*\n){3,}")


def strip_noise(markdown: str) -> str:
    """Best-effort removal of navigation residue from converted Markdown.

    Patterns are narrow and anchored; leaving some noise behind is acceptable,
    removing real content is not.
    """
    if not markdown:
        return markdown

    cleaned = markdown
    h1 = _FIRST_H1_RE.search(cleaned)
    if h1 is not None:
        cleaned = cleaned[h1.start() :]
    else:
        cleaned = _LEADING_LINK_LIST_RE.sub("", cleaned)

    for pattern, replacement in _NOISE_PATTERNS:
        cleaned = pattern.sub(replacement, cleaned)

    return re.sub(r"\n{3,}", "\n\n", cleaned).strip()
