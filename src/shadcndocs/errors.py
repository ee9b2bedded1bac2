"""Error codes and the exception raised by the HTTP layer.

``ShadcnDocsError`` raised by the HTTP layer never escapes ``DocFetcher.fetch``:
strategies convert it into ``None`` (not applicable) or a failed
``FetchResult``, and callers only see the ``error``/``error_code`` pair on the
final result. The one exception is ``INVALID_INPUT``, raised by the
identifier wrappers before any fetching starts.
"""

from __future__ import annotations

from enum import StrEnum


class ErrorCode(StrEnum):
    INVALID_INPUT = "INVALID_INPUT"
    PAGE_NOT_FOUND = "PAGE_NOT_FOUND"
    PAGE_FETCH_FAILED = "PAGE_FETCH_FAILED"
    TOO_MANY_REDIRECTS = "TOO_MANY_REDIRECTS"
    FETCH_TIMEOUT = "FETCH_TIMEOUT"
    EXTRACTION_FAILED = "EXTRACTION_FAILED"
    BROWSER_FAILED = "BROWSER_FAILED"
    ALL_STRATEGIES_FAILED = "ALL_STRATEGIES_FAILED"


class ShadcnDocsError(Exception):
    """Structured error with a machine-readable code.

    ``recoverable`` tells the caller whether retrying the same request later
    could succeed (network blips, 5xx) or not (404, bad input).
    """

    def __init__(self, code: ErrorCode, message: str, recoverable: bool = False) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.recoverable = recoverable

    def __str__(self) -> str:
        return self.message
