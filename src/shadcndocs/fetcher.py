"""HTTP layer shared by the direct and HTML strategies and by discovery.

Redirects are followed manually so every hop is counted against
``max_redirects`` and logged. Transport failures are mapped onto
``ShadcnDocsError`` codes; nothing httpx-specific leaks past this module.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any
from urllib.parse import urljoin

import httpx
import structlog

from shadcndocs.config import FetcherSettings
from shadcndocs.errors import ErrorCode, ShadcnDocsError

if TYPE_CHECKING:
    from collections.abc import Mapping

log = structlog.get_logger()

_REDIRECT_CODES = frozenset({301, 302, 303, 307, 308})


def build_http_client(settings: FetcherSettings | None = None) -> httpx.AsyncClient:
    """Shared client: redirects handled by ``Fetcher``, UA set once."""
    settings = settings or FetcherSettings()
    return httpx.AsyncClient(
        follow_redirects=False,
        timeout=httpx.Timeout(settings.request_timeout_seconds),
        headers={"User-Agent": settings.user_agent},
    )


@dataclass(frozen=True)
class HttpPage:
    url: str  # Final URL after redirects
    status_code: int
    text: str
    headers: Mapping[str, str]

    @property
    def content_type(self) -> str:
        return self.headers.get("content-type", "")


class Fetcher:
    def __init__(self, client: httpx.AsyncClient, settings: FetcherSettings | None = None) -> None:
        self._client = client
        self._settings = settings or FetcherSettings()

    async def fetch(self, url: str, timeout: float | None = None) -> HttpPage:
        """GET ``url`` and return the 2xx page. Raises ``ShadcnDocsError`` otherwise."""
        budget = timeout if timeout is not None else self._settings.request_timeout_seconds
        current = url
        for _ in range(self._settings.max_redirects + 1):
            try:
                response = await self._client.get(current, timeout=budget)
            except httpx.TimeoutException as exc:
                raise ShadcnDocsError(
                    ErrorCode.FETCH_TIMEOUT,
                    f"Request to {current} timed out after {budget:g}s",
                    recoverable=True,
                ) from exc
            except httpx.HTTPError as exc:
                raise ShadcnDocsError(
                    ErrorCode.PAGE_FETCH_FAILED,
                    f"Network error fetching {current}: {exc}",
                    recoverable=True,
                ) from exc
            except (httpx.InvalidURL, ValueError) as exc:
                raise ShadcnDocsError(
                    ErrorCode.INVALID_INPUT, f"Invalid URL {current!r}: {exc}"
                ) from exc

            if response.status_code in _REDIRECT_CODES:
                location = response.headers.get("location")
                if not location:
                    raise ShadcnDocsError(
                        ErrorCode.PAGE_FETCH_FAILED,
                        f"Redirect from {current} without a Location header",
                    )
                target = urljoin(current, location)
                log.debug("http_redirect", source=current, target=target)
                current = target
                continue

            if response.status_code == 404:
                raise ShadcnDocsError(ErrorCode.PAGE_NOT_FOUND, f"HTTP 404: {current}")
            if not response.is_success:
                raise ShadcnDocsError(
                    ErrorCode.PAGE_FETCH_FAILED,
                    f"HTTP {response.status_code}: {response.reason_phrase or current}",
                    recoverable=response.status_code >= 500,
                )

            return HttpPage(
                url=current,
                status_code=response.status_code,
                text=response.text,
                headers=response.headers,
            )

        raise ShadcnDocsError(
            ErrorCode.TOO_MANY_REDIRECTS,
            f"More than {self._settings.max_redirects} redirects starting at {url}",
        )

    async def fetch_json(self, url: str, timeout: float | None = None) -> Any:
        page = await self.fetch(url, timeout=timeout)
        try:
            return json.loads(page.text)
        except ValueError as exc:
            raise ShadcnDocsError(
                ErrorCode.PAGE_FETCH_FAILED, f"Invalid JSON from {page.url}: {exc}"
            ) from exc
