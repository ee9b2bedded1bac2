"""Block source code from the site's registry API (``/api/block/<name>``)."""

from __future__ import annotations

import html
import re
from typing import TYPE_CHECKING, Any

import structlog

from shadcndocs.errors import ErrorCode, ShadcnDocsError
from shadcndocs.extractor import extract_code_blocks
from shadcndocs.models.fetch import ContentType, FetchResult, PageMetadata, SourceStrategy

if TYPE_CHECKING:
    from shadcndocs.fetcher import Fetcher

log = structlog.get_logger()

_INSTALL_PREFIXES = {
    "npm": "npx",
    "yarn": "yarn dlx",
    "pnpm": "pnpm dlx",
    "bun": "bun x",
}

_EXTENSION_LANGUAGES = (
    (".svelte", "svelte"),
    (".ts", "typescript"),
    (".js", "javascript"),
    (".css", "css"),
)

_PRE_CODE_RE = re.compile(r"<pre[^>]*>.*?<code[^>]*>(.*?)</code>.*?</pre>", re.DOTALL)
_TAG_RE = re.compile(r"</?span[^>]*>")


def block_api_url(base_url: str, name: str) -> str:
    return f"{base_url}/api/block/{name}"


def install_prefix(package_manager: str | None) -> str:
    return _INSTALL_PREFIXES.get(package_manager or "npm", "npx")


def language_for(filename: str) -> str:
    for suffix, language in _EXTENSION_LANGUAGES:
        if filename.endswith(suffix):
            return language
    return "typescript"


def highlighted_to_code(highlighted: str) -> str | None:
    """Recover plain source from a highlighted ``<pre><code>`` fragment."""
    match = _PRE_CODE_RE.search(highlighted)
    if match is None:
        return None
    code = _TAG_RE.sub("", match.group(1))
    return html.unescape(code).replace("\\n", "\n")


def render_block_markdown(data: dict[str, Any], name: str, package_manager: str | None) -> str:
    parts = [f"# {data.get('name') or name}", ""]
    if data.get("description"):
        parts += [f"**Description:** {data['description']}", ""]
    parts += [
        f"**Type:** {data.get('type')}",
        "",
        "**Installation:**",
        "```bash",
        f"{install_prefix(package_manager)} shadcn-svelte@latest add {name}",
        "```",
        "",
    ]

    for file in data.get("files") or []:
        filename = file.get("target") or file.get("path") or "unknown"
        parts += [f"## File: {filename}", "", f"**Type:** {file.get('type')}", ""]
        code = highlighted_to_code(file.get("highlightedContent") or "")
        if code is None:
            code = file.get("content")
        if code:
            parts += [f"```{language_for(filename)}", code.rstrip("\n"), "```", ""]

    return "\n".join(parts).strip()


async def fetch_block_code(
    http: Fetcher,
    url: str,
    name: str,
    package_manager: str | None,
    timeout: float,
) -> FetchResult:
    try:
        data = await http.fetch_json(url, timeout=timeout)
    except ShadcnDocsError as exc:
        log.info("block_fetch_failed", url=url, code=exc.code, error=exc.message)
        return FetchResult.failure(
            exc.message, SourceStrategy.DIRECT, code=exc.code, content_type=ContentType.BLOCK
        )

    if not isinstance(data, dict) or data.get("type") != "registry:block":
        kind = data.get("type") if isinstance(data, dict) else type(data).__name__
        return FetchResult.failure(
            f"Expected registry:block, got {kind}",
            SourceStrategy.DIRECT,
            code=ErrorCode.EXTRACTION_FAILED,
            content_type=ContentType.BLOCK,
        )

    markdown = render_block_markdown(data, name, package_manager)
    return FetchResult(
        success=True,
        content=markdown,
        metadata=PageMetadata(
            title=data.get("name") or name,
            description=data.get("description"),
            canonical_url=url,
        ),
        content_type=ContentType.BLOCK,
        source_strategy=SourceStrategy.DIRECT,
        code_blocks=extract_code_blocks(markdown),
    )
