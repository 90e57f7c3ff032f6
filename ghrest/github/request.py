"""Request descriptors for the GitHub REST API.

A ``RequestDescriptor`` captures one HTTP call before it is executed. It is
immutable: retries reuse it unchanged and every further page gets a new one
built from the page cursor.
"""

import copy
import json
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from enum import Enum
from types import MappingProxyType
from typing import Any
from urllib.parse import urlencode, urljoin

from .auth import AuthToken
from .pagination import PageCursor

DEFAULT_ACCEPT = "application/vnd.github+json"
JSON_CONTENT_TYPE = "application/json; charset=utf-8"


class HttpMethod(str, Enum):
    """HTTP verbs the invoker accepts."""

    GET = "GET"
    POST = "POST"
    PATCH = "PATCH"
    PUT = "PUT"
    DELETE = "DELETE"


class MediaType(str, Enum):
    """Alternate representations GitHub can return for a resource."""

    RAW = "raw"
    TEXT = "text"
    HTML = "html"
    FULL = "full"
    OBJECT = "object"

    def for_body(self) -> str:
        """Accept header for resources with markdown bodies (issues, comments)."""
        if self is MediaType.OBJECT:
            return DEFAULT_ACCEPT
        return f"application/vnd.github.{self.value}+json"

    def for_contents(self) -> str:
        """Accept header for the repository contents endpoints."""
        if self not in (MediaType.RAW, MediaType.HTML, MediaType.OBJECT):
            raise ValueError(f"Media type '{self.value}' is not valid for contents")
        return f"application/vnd.github.{self.value}"


def _query_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return ",".join(str(item) for item in value)
    return str(value)


@dataclass(frozen=True)
class RequestDescriptor:
    """A single HTTP call against the GitHub API."""

    method: HttpMethod
    path: str
    query: Mapping[str, str] = field(default_factory=dict)
    body: Any = None
    headers: Mapping[str, str] = field(default_factory=dict)
    auth_token: AuthToken | None = None
    operation: str | None = None

    def __post_init__(self) -> None:
        method = self.method
        if not isinstance(method, HttpMethod):
            try:
                method = HttpMethod(str(method).upper())
            except ValueError:
                raise ValueError(f"Unsupported HTTP method: {self.method!r}") from None

        if not self.path or not self.path.strip("/ "):
            raise ValueError("Request path must not be empty")

        if method is HttpMethod.GET and self.body is not None:
            raise ValueError("GET requests cannot carry a body")

        query = {
            str(key): _query_value(value)
            for key, value in self.query.items()
            if value is not None
        }

        object.__setattr__(self, "method", method)
        object.__setattr__(self, "query", MappingProxyType(query))
        object.__setattr__(self, "headers", MappingProxyType(dict(self.headers)))
        if isinstance(self.body, (dict, list)):
            object.__setattr__(self, "body", copy.deepcopy(self.body))

    @property
    def is_absolute(self) -> bool:
        """Whether ``path`` already is a full URL (page cursors are)."""
        return self.path.startswith(("http://", "https://"))

    def url(self, base_url: str) -> str:
        """Build the full request URL including the query string.

        Args:
            base_url: API root used for relative paths

        Returns:
            Absolute URL
        """
        if self.is_absolute:
            url = self.path
        else:
            url = urljoin(base_url.rstrip("/") + "/", self.path.lstrip("/"))

        if self.query:
            separator = "&" if "?" in url else "?"
            url = f"{url}{separator}{urlencode(list(self.query.items()))}"
        return url

    def serialize_body(self) -> tuple[bytes | None, str | None]:
        """Serialize the body to wire format.

        Returns:
            Tuple of encoded body and the content type to send with it
        """
        if self.body is None:
            return None, None
        if isinstance(self.body, bytes):
            return self.body, self.headers.get("Content-Type")
        if isinstance(self.body, str):
            return self.body.encode("utf-8"), self.headers.get("Content-Type")
        return json.dumps(self.body).encode("utf-8"), JSON_CONTENT_TYPE

    def for_cursor(self, cursor: PageCursor) -> "RequestDescriptor":
        """Descriptor for the page a cursor points at.

        The next link already carries every query parameter, so the query
        mapping is dropped.
        """
        return replace(self, path=cursor.url, query={})

    def with_auth(self, token: AuthToken | None) -> "RequestDescriptor":
        return replace(self, auth_token=token)

    def with_query(self, **params: Any) -> "RequestDescriptor":
        """Descriptor with extra query parameters appended after existing ones."""
        query = dict(self.query)
        query.update(params)
        return replace(self, query=query)

    @property
    def label(self) -> str:
        """Name used for logging and telemetry."""
        return self.operation or f"{self.method.value} {self.path}"
