from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, model_validator

from shadcndocs.errors import ErrorCode


class ContentType(StrEnum):
    COMPONENT = "component"
    DOC = "doc"
    BLOCK = "block"
    CHART = "chart"
    THEME = "theme"
    UNKNOWN = "unknown"


class SourceStrategy(StrEnum):
    CACHE = "cache"
    DIRECT = "direct"
    BROWSER = "browser"
    HTML = "html"


class PageMetadata(BaseModel):
    title: str | None = None
    description: str | None = None
    author: str | None = None
    keywords: list[str] = []
    og_image: str | None = None
    canonical_url: str | None = None
    last_modified: str | None = None


class CodeBlock(BaseModel):
    language: str | None = None
    code: str
    title: str | None = None


class FetchResult(BaseModel):
    """Uniform envelope returned by every strategy and by the orchestrator.

    Either fully usable content, or a failure carrying ``error`` and no
    content. Partial results cannot be constructed.
    """

    success: bool
    content: str | None = None  # Normalized markdown body
    raw_html: str | None = None  # Only set by strategies that parsed HTML
    metadata: PageMetadata = PageMetadata()
    content_type: ContentType = ContentType.UNKNOWN
    source_strategy: SourceStrategy
    code_blocks: list[CodeBlock] = []
    notes: list[str] = []
    error: str | None = None
    error_code: ErrorCode | None = None

    @model_validator(mode="after")
    def check_envelope(self) -> FetchResult:
        has_content = bool(self.content and self.content.strip())
        if self.success:
            if not has_content:
                raise ValueError("successful result must carry non-blank content")
            if self.error is not None:
                raise ValueError("successful result must not carry an error")
        else:
            if not self.error:
                raise ValueError("failed result must carry an error message")
            if self.content is not None:
                raise ValueError("failed result must not carry content")
        return self

    @property
    def markdown(self) -> str | None:
        """Legacy alias for ``content``."""
        return self.content

    @classmethod
    def failure(
        cls,
        error: str,
        source_strategy: SourceStrategy,
        *,
        code: ErrorCode = ErrorCode.PAGE_FETCH_FAILED,
        content_type: ContentType = ContentType.UNKNOWN,
    ) -> FetchResult:
        return cls(
            success=False,
            error=error,
            error_code=code,
            source_strategy=source_strategy,
            content_type=content_type,
        )


class FetchOptions(BaseModel):
    use_cache: bool = True
    timeout: float | None = None  # Per-strategy HTTP budget override (seconds)
    deadline: float | None = None  # Budget for the whole fetch() call (seconds)
