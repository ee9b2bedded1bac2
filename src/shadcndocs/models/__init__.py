from __future__ import annotations

from shadcndocs.models.cache import CacheEntry
from shadcndocs.models.discovery import ComponentInfo, DocSections
from shadcndocs.models.fetch import (
    CodeBlock,
    ContentType,
    FetchOptions,
    FetchResult,
    PageMetadata,
    SourceStrategy,
)

__all__ = [
    # fetch
    "CodeBlock",
    "ContentType",
    "FetchOptions",
    "FetchResult",
    "PageMetadata",
    "SourceStrategy",
    # cache
    "CacheEntry",
    # discovery
    "ComponentInfo",
    "DocSections",
]
