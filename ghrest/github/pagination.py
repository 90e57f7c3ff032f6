"""GitHub API pagination utilities."""

import asyncio
import logging
import re
from collections.abc import AsyncIterator, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any
from urllib.parse import parse_qs, urlparse

from .exceptions import MalformedResponse

if TYPE_CHECKING:
    from .request import RequestDescriptor
    from .response import ApiResult

logger = logging.getLogger(__name__)

MAX_PER_PAGE = 100


class LinkHeader:
    """Parser for GitHub Link headers."""

    _LINK_PATTERN = re.compile(r'<([^>]+)>;\s*rel="([^"]+)"')

    def __init__(self, link_header: str | None = None):
        """Initialize Link header parser.

        Args:
            link_header: Raw Link header value from response
        """
        self.links: dict[str, str] = {}
        if link_header:
            self._parse(link_header)

    def _parse(self, link_header: str) -> None:
        # <url>; rel="next", <url>; rel="last"
        for match in self._LINK_PATTERN.finditer(link_header):
            url, rel = match.groups()
            for name in rel.split():
                self.links[name] = url

    @property
    def next_url(self) -> str | None:
        return self.links.get("next")

    @property
    def prev_url(self) -> str | None:
        return self.links.get("prev")

    @property
    def first_url(self) -> str | None:
        return self.links.get("first")

    @property
    def last_url(self) -> str | None:
        return self.links.get("last")

    @property
    def has_next(self) -> bool:
        return "next" in self.links

    def get_last_page_number(self) -> int | None:
        """Extract last page number from last URL."""
        if not self.last_url:
            return None

        try:
            params = parse_qs(urlparse(self.last_url).query)
            page = params.get("page", [None])[0]
            return int(page) if page else None
        except (ValueError, TypeError):
            return None


@dataclass(frozen=True)
class PageCursor:
    """Pointer to the next page of a list result."""

    url: str

    @classmethod
    def from_headers(cls, headers: Mapping[str, str]) -> "PageCursor | None":
        """Build a cursor from response headers, or None on the last page."""
        link = LinkHeader(headers.get("Link") or headers.get("link"))
        if link.next_url is None:
            return None
        return cls(link.next_url)


def page_items(result: "ApiResult", items_key: str | None = None) -> list[Any]:
    """Extract the list of records carried by one page.

    Args:
        result: Decoded page
        items_key: Key holding the list when GitHub wraps it in an object
            (``items`` for search, ``check_runs`` for checks)

    Raises:
        MalformedResponse: If the page does not hold a list
    """
    payload = result.payload
    if items_key is not None and isinstance(payload, dict):
        payload = payload.get(items_key)
    if payload is None and result.status_code == 204:
        return []
    if not isinstance(payload, list):
        raise MalformedResponse(
            f"Expected a list page, got {type(payload).__name__}",
            status_code=result.status_code,
        )
    return payload


class PagedResult:
    """Lazy, finite, single-use sequence over a multi-page list result.

    Items of the first page are yielded as-is; every following page is only
    requested when the consumer asks for more items. Iteration stops at the
    last page, after ``max_pages`` pages, on ``cancel()``, or when the
    optional ``cancel_event`` is set. Cancellation is checked between pages.
    """

    def __init__(
        self,
        client: Any,  # RestInvoker, untyped to avoid circular import
        descriptor: "RequestDescriptor",
        first: "ApiResult",
        items_key: str | None = None,
        max_pages: int | None = None,
        cancel_event: asyncio.Event | None = None,
    ):
        self.client = client
        self.descriptor = descriptor
        self.first = first
        self.items_key = items_key
        self.max_pages = max_pages
        self.cancel_event = cancel_event

        self.pages_fetched = 1
        self.last_result = first
        self._cancelled = False
        self._started = False

    @property
    def status_code(self) -> int:
        return self.first.status_code

    @property
    def total_pages(self) -> int | None:
        """Page count advertised by the first response, if any."""
        return LinkHeader(self.first.headers.get("Link")).get_last_page_number()

    @property
    def exhausted(self) -> bool:
        return self.last_result.cursor is None

    def cancel(self) -> None:
        """Stop fetching further pages."""
        self._cancelled = True

    def _should_stop(self) -> bool:
        if self._cancelled:
            return True
        if self.cancel_event is not None and self.cancel_event.is_set():
            logger.debug(f"Pagination of {self.descriptor.label} cancelled")
            return True
        return self.max_pages is not None and self.pages_fetched >= self.max_pages

    def __aiter__(self) -> AsyncIterator[Any]:
        if self._started:
            raise RuntimeError("PagedResult can only be iterated once")
        self._started = True
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[Any]:
        result = self.first
        while True:
            for item in page_items(result, self.items_key):
                yield item

            if result.cursor is None or self._should_stop():
                return

            result = await self.client.fetch_page(
                self.descriptor.for_cursor(result.cursor)
            )
            self.pages_fetched += 1
            self.last_result = result

    async def collect(self) -> list[Any]:
        """Collect all remaining items from all pages."""
        return [item async for item in self]
