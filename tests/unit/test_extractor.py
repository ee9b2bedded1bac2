"""Unit tests for shadcndocs.extractor."""

from __future__ import annotations

import pytest
from bs4 import BeautifulSoup

from shadcndocs.errors import ErrorCode
from shadcndocs.extractor import (
    build_html_result,
    build_markdown_result,
    extract_code_blocks,
    extract_metadata,
    extract_summary,
    extract_title,
    html_to_markdown,
    infer_content_type,
    looks_like_html,
    select_content_region,
    strip_chrome,
    strip_noise,
    unescape_markdown,
)
from shadcndocs.models.fetch import ContentType, SourceStrategy

BUTTON_URL = "https://www.shadcn-svelte.com/docs/components/button"

BUTTON_MD = """\
# Button

Displays a button or a component that looks like a button.

## Usage

```svelte title="example.svelte"
<Button variant=\\"outline\\">Button</Button>
```
"""

DOC_PAGE_HTML = """\
<!doctype html>
<html>
<head>
  <title>Button - shadcn-svelte</title>
  <meta property="og:title" content="Button">
  <meta name="description" content="Displays a button.">
  <meta name="keywords" content="svelte, button , ui">
  <meta name="author" content="huntabyte">
  <meta property="og:image" content="https://www.shadcn-svelte.com/og.png">
  <meta property="article:modified_time" content="2025-01-02T00:00:00Z">
  <link rel="canonical" href="https://www.shadcn-svelte.com/docs/components/button">
</head>
<body>
  <nav><a href="/docs">Docs</a><a href="/blocks">Blocks</a></nav>
  <aside class="sidebar"><a href="/docs/components/card">Card</a></aside>
  <main>
    <h1>Button</h1>
    <p>Displays a <strong>button</strong> or a <a href="/docs/components/link">link</a>.</p>
    <pre><code class="language-svelte">&lt;Button&gt;Click&lt;/Button&gt;</code></pre>
    <ul><li>Default</li><li>Outline</li></ul>
  </main>
  <footer>Built by huntabyte</footer>
  <script>console.log("tracking")</script>
</body>
</html>
"""


# ---------------------------------------------------------------------------
# Direct documents
# ---------------------------------------------------------------------------


class TestUnescapeMarkdown:
    def test_repairs_escapes(self) -> None:
        assert unescape_markdown('variant=\\"ghost\\"') == 'variant="ghost"'
        assert unescape_markdown("it\\'s") == "it's"
        assert unescape_markdown("don&apos;t") == "don't"

    def test_idempotent(self) -> None:
        once = unescape_markdown(BUTTON_MD)
        assert unescape_markdown(once) == once

    def test_clean_text_unchanged(self) -> None:
        assert unescape_markdown("plain text") == "plain text"


class TestTitleAndSummary:
    def test_first_h1(self) -> None:
        assert extract_title(BUTTON_MD) == "Button"

    def test_ignores_h2(self) -> None:
        assert extract_title("## Usage\n\ntext") is None

    def test_closing_hashes_trimmed(self) -> None:
        assert extract_title("# Dialog ##\n") == "Dialog"

    def test_summary_is_first_paragraph(self) -> None:
        assert extract_summary(BUTTON_MD) == (
            "Displays a button or a component that looks like a button."
        )

    def test_summary_strips_links(self) -> None:
        md = "# Card\n\nSee the [Button](/docs/components/button) docs for *details*."
        assert extract_summary(md) == "See the Button docs for details."

    def test_summary_none_for_code_first(self) -> None:
        assert extract_summary("# Card\n\n```svelte\n<Card />\n```") is None


class TestLooksLikeHtml:
    @pytest.mark.parametrize(
        "text",
        ["<!DOCTYPE html><html></html>", "  \n<html lang='en'>", "<!doctype html>"],
    )
    def test_html(self, text: str) -> None:
        assert looks_like_html(text) is True

    def test_markdown(self) -> None:
        assert looks_like_html(BUTTON_MD) is False


class TestBuildMarkdownResult:
    def test_success_envelope(self) -> None:
        result = build_markdown_result(BUTTON_MD, BUTTON_URL, last_modified="yesterday")
        assert result.success is True
        assert result.source_strategy == SourceStrategy.DIRECT
        assert result.content_type == ContentType.COMPONENT
        assert result.metadata.title == "Button"
        assert result.metadata.canonical_url == BUTTON_URL
        assert result.metadata.last_modified == "yesterday"
        assert result.error is None

    def test_escapes_repaired_in_content(self) -> None:
        result = build_markdown_result(BUTTON_MD, BUTTON_URL)
        assert result.content is not None
        assert 'variant="outline"' in result.content
        assert '\\"' not in result.content

    def test_code_blocks_extracted(self) -> None:
        result = build_markdown_result(BUTTON_MD, BUTTON_URL)
        assert len(result.code_blocks) == 1
        assert result.code_blocks[0].language == "svelte"
        assert result.code_blocks[0].title == "example.svelte"

    def test_normalization_is_idempotent(self) -> None:
        first = build_markdown_result(BUTTON_MD, BUTTON_URL)
        assert first.content is not None
        second = build_markdown_result(first.content, BUTTON_URL)
        assert second.content == first.content


# ---------------------------------------------------------------------------
# HTML documents
# ---------------------------------------------------------------------------


class TestExtractMetadata:
    def test_all_fields(self) -> None:
        meta = extract_metadata(BeautifulSoup(DOC_PAGE_HTML, "html.parser"))
        assert meta.title == "Button"
        assert meta.description == "Displays a button."
        assert meta.keywords == ["svelte", "button", "ui"]
        assert meta.author == "huntabyte"
        assert meta.og_image == "https://www.shadcn-svelte.com/og.png"
        assert meta.canonical_url == BUTTON_URL
        assert meta.last_modified == "2025-01-02T00:00:00Z"

    def test_title_falls_back_to_title_tag(self) -> None:
        soup = BeautifulSoup("<html><head><title>Card</title></head></html>", "html.parser")
        assert extract_metadata(soup).title == "Card"

    def test_title_falls_back_to_h1(self) -> None:
        soup = BeautifulSoup("<html><body><h1>Dialog</h1></body></html>", "html.parser")
        assert extract_metadata(soup).title == "Dialog"

    def test_missing_fields_are_none(self) -> None:
        meta = extract_metadata(BeautifulSoup("<html></html>", "html.parser"))
        assert meta.title is None
        assert meta.description is None
        assert meta.keywords == []


class TestContentRegion:
    def test_chrome_removed(self) -> None:
        soup = BeautifulSoup(DOC_PAGE_HTML, "html.parser")
        strip_chrome(soup)
        text = soup.get_text()
        assert "tracking" not in text
        assert "Built by huntabyte" not in text
        assert "Card" not in text

    def test_main_selected(self) -> None:
        soup = BeautifulSoup(DOC_PAGE_HTML, "html.parser")
        strip_chrome(soup)
        region = select_content_region(soup)
        assert region is not None
        assert "<h1>Button</h1>" in region
        assert "<main>" not in region

    def test_gallery_sections_concatenated(self) -> None:
        html = (
            "<main><div>header</div>"
            "<section><h2>Area Chart</h2></section>"
            "<section></section>"
            "<section><h2>Bar Chart</h2></section></main>"
        )
        region = select_content_region(BeautifulSoup(html, "html.parser"))
        assert region is not None
        assert "Area Chart" in region
        assert "Bar Chart" in region
        assert "header" not in region

    def test_article_when_no_main(self) -> None:
        html = "<body><article><p>Article text</p></article></body>"
        region = select_content_region(BeautifulSoup(html, "html.parser"))
        assert region == "<p>Article text</p>"

    def test_no_text_returns_none(self) -> None:
        soup = BeautifulSoup("<html><body><nav>Menu</nav></body></html>", "html.parser")
        strip_chrome(soup)
        assert select_content_region(soup) is None


class TestHtmlToMarkdown:
    def test_structure_preserved(self) -> None:
        md = html_to_markdown(
            '<h2>Usage</h2><p>Use <strong>bold</strong> and <a href="/docs">docs</a>.</p>'
            "<ul><li>One</li><li>Two</li></ul>"
        )
        assert "## Usage" in md
        assert "**bold**" in md
        assert "[docs](/docs)" in md
        assert "- One" in md
        assert "- Two" in md

    def test_fenced_code_with_language(self) -> None:
        md = html_to_markdown(
            '<pre><code class="language-svelte">&lt;Button /&gt;</code></pre>'
        )
        assert "```svelte" in md
        assert "<Button />" in md

    def test_data_language_attribute(self) -> None:
        md = html_to_markdown('<pre data-language="bash"><code>pnpm i</code></pre>')
        assert "```bash" in md

    def test_deterministic(self) -> None:
        html = DOC_PAGE_HTML
        assert html_to_markdown(html) == html_to_markdown(html)

    def test_no_runs_of_blank_lines(self) -> None:
        md = html_to_markdown("<p>a</p><br><br><br><p>b</p><div></div><div></div><p>c</p>")
        assert "\n\n\n" not in md


class TestBuildHtmlResult:
    def test_success(self) -> None:
        result = build_html_result(DOC_PAGE_HTML, BUTTON_URL, source=SourceStrategy.HTML)
        assert result.success is True
        assert result.source_strategy == SourceStrategy.HTML
        assert result.content_type == ContentType.COMPONENT
        assert result.metadata.title == "Button"
        assert result.raw_html is not None
        assert result.content is not None
        assert "# Button" in result.content
        assert "Built by huntabyte" not in result.content
        assert [b.language for b in result.code_blocks] == ["svelte"]

    def test_empty_page_is_extraction_failure(self) -> None:
        result = build_html_result(
            "<html><body><nav>Menu</nav></body></html>",
            "https://www.shadcn-svelte.com/charts",
            source=SourceStrategy.BROWSER,
        )
        assert result.success is False
        assert result.content is None
        assert result.error_code == ErrorCode.EXTRACTION_FAILED
        assert result.source_strategy == SourceStrategy.BROWSER
        assert result.content_type == ContentType.CHART

    def test_title_from_markdown_when_no_metadata(self) -> None:
        result = build_html_result(
            "<html><body><main><h1>Sheet</h1><p>Side panel.</p></main></body></html>",
            "https://www.shadcn-svelte.com/docs/components/sheet",
            source=SourceStrategy.HTML,
        )
        assert result.metadata.title == "Sheet"


# ---------------------------------------------------------------------------
# Markdown post-processing
# ---------------------------------------------------------------------------


class TestExtractCodeBlocks:
    def test_language_and_title(self) -> None:
        blocks = extract_code_blocks('```svelte title="button.svelte"\n<Button />\n```\n')
        assert len(blocks) == 1
        assert blocks[0].language == "svelte"
        assert blocks[0].title == "button.svelte"
        assert blocks[0].code == "<Button />"

    def test_no_info_string(self) -> None:
        blocks = extract_code_blocks("```\nplain\n```")
        assert blocks[0].language is None
        assert blocks[0].title is None

    def test_title_only(self) -> None:
        blocks = extract_code_blocks('```title="x.ts"\nconst a = 1;\n```')
        assert blocks[0].language is None
        assert blocks[0].title == "x.ts"

    def test_multiple_and_tilde_fences(self) -> None:
        md = "```ts\nlet a;\n```\n\ntext\n\n~~~bash\nnpm i\n~~~\n"
        blocks = extract_code_blocks(md)
        assert [(b.language, b.code) for b in blocks] == [("ts", "let a;"), ("bash", "npm i")]

    def test_nested_shorter_fence_kept_in_body(self) -> None:
        md = "````md\n```svelte\n<A />\n```\n````"
        blocks = extract_code_blocks(md)
        assert len(blocks) == 1
        assert blocks[0].language == "md"
        assert "```svelte" in blocks[0].code


class TestInferContentType:
    @pytest.mark.parametrize(
        ("url", "expected"),
        [
            (BUTTON_URL, ContentType.COMPONENT),
            ("https://bits-ui.com/docs/components/accordion/llms.txt", ContentType.COMPONENT),
            ("https://www.shadcn-svelte.com/docs/installation/sveltekit", ContentType.DOC),
            ("https://www.shadcn-svelte.com/docs", ContentType.DOC),
            ("https://www.shadcn-svelte.com/docs/components", ContentType.DOC),
            ("https://www.shadcn-svelte.com/blocks", ContentType.BLOCK),
            ("https://www.shadcn-svelte.com/blocks/sidebar", ContentType.BLOCK),
            ("https://www.shadcn-svelte.com/charts/area", ContentType.CHART),
            ("https://www.shadcn-svelte.com/themes", ContentType.THEME),
            ("https://www.shadcn-svelte.com/", ContentType.UNKNOWN),
            ("https://www.shadcn-svelte.com/colors", ContentType.UNKNOWN),
        ],
    )
    def test_inference(self, url: str, expected: ContentType) -> None:
        assert infer_content_type(url) == expected

    def test_marker_in_query_ignored(self) -> None:
        assert infer_content_type("https://example.com/?next=/docs/components/x") == (
            ContentType.UNKNOWN
        )


class TestStripNoise:
    def test_preamble_before_title_removed(self) -> None:
        md = "Skip to content\n\nMenu\n\n# Button\n\nBody text."
        assert strip_noise(md) == "# Button\n\nBody text."

    def test_on_this_page_section_removed(self) -> None:
        md = (
            "# Button\n\nIntro.\n\n## On This Page\n\n"
            "- [Installation](#installation)\n- [Usage](#usage)\n\n"
            "## Installation\n\nText."
        )
        cleaned = strip_noise(md)
        assert "On This Page" not in cleaned
        assert "## Installation\n\nText." in cleaned
        assert "Intro." in cleaned

    def test_cli_install_block_removed(self) -> None:
        md = (
            "# Button\n\n## Installation\n\n"
            "```bash\nnpx shadcn-svelte@latest add button\n```\n\n"
            "## Usage\n\n```svelte\n<Button>Click</Button>\n```"
        )
        cleaned = strip_noise(md)
        assert "shadcn-svelte@latest add" not in cleaned
        assert "## Installation" in cleaned
        assert "<Button>Click</Button>" in cleaned

    def test_pager_footer_and_copy_page_removed(self) -> None:
        md = (
            "# Card\n\nCopy Page\n\nBody.\n\n"
            "[Docs](https://bits-ui.com/docs) [API Reference](https://bits-ui.com/api) "
            "Component Source\n\n"
            "[Previous](/docs/components/button) [Next](/docs/components/checkbox)"
        )
        cleaned = strip_noise(md)
        assert cleaned == "# Card\n\nBody."

    def test_leading_link_list_removed_from_untitled_page(self) -> None:
        md = "- [Accordion](/a)\n- [Alert](/b)\n- [Badge](/c)\n\nBody.\n\n- [One](/x)\n"
        cleaned = strip_noise(md)
        assert "Accordion" not in cleaned
        assert cleaned == "Body.\n\n- [One](/x)"

    def test_link_lists_after_title_kept(self) -> None:
        md = (
            "# Card\n\nExamples:\n\n"
            "- [With Form](/docs/components/card#form)\n"
            "- [With Image](/docs/components/card#image)\n"
            "- [API Reference](https://bits-ui.com/docs/components/card)\n"
        )
        assert strip_noise(md) == md.strip()

    def test_two_item_leading_list_kept(self) -> None:
        md = "- [One](/x)\n- [Two](/y)\n\nBody."
        assert strip_noise(md) == md

    def test_escaped_title_accepted(self) -> None:
        assert strip_noise("nav\n\n\\# Button\n\nBody").startswith("\\# Button")

    def test_empty(self) -> None:
        assert strip_noise("") == ""

    def test_idempotent(self) -> None:
        md = "Menu\n\n# Button\n\nCopy Page\n\n## On This Page\n\n- [A](#a)\n\n## A\n\nText."
        once = strip_noise(md)
        assert strip_noise(once) == once
