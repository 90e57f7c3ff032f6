"""Normalized results of GitHub API calls."""

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from multidict import CIMultiDict, CIMultiDictProxy

from .exceptions import MalformedResponse
from .pagination import PageCursor
from .rate_limiting import RateLimitInfo


def is_json_content_type(content_type: str | None) -> bool:
    """Whether a response content type carries JSON (``+json`` included)."""
    if not content_type:
        return False
    media = content_type.split(";", 1)[0].strip().lower()
    return media == "application/json" or media.endswith("+json")


def decode_body(status: int, content_type: str | None, body: bytes) -> Any:
    """Decode a response body.

    JSON is decoded; any other media type is returned as the unmodified
    bytes so callers asking for raw or html representations get exactly what
    GitHub sent, including an empty file as ``b""``. No content (204, or an
    empty body without a media type or with a JSON one) decodes to None.

    Raises:
        MalformedResponse: If a JSON body cannot be decoded
    """
    if status == 204 or (not body and not content_type):
        return None
    if not is_json_content_type(content_type):
        return body
    if not body:
        return None
    try:
        return json.loads(body.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise MalformedResponse(
            f"Could not decode JSON response: {e}", status_code=status, body=body
        ) from e


def error_message(status: int, body: bytes) -> tuple[str, dict[str, Any]]:
    """Extract GitHub's error message and body without raising.

    Returns:
        Message (verbatim when GitHub sent one) and the decoded error body
    """
    data: dict[str, Any] = {}
    if body:
        try:
            decoded = json.loads(body.decode("utf-8"))
            if isinstance(decoded, dict):
                data = decoded
        except (UnicodeDecodeError, json.JSONDecodeError):
            data = {"message": body.decode("utf-8", errors="replace")}

    message = data.get("message") or f"HTTP {status}"
    return str(message), data


@dataclass(frozen=True)
class ApiResult:
    """Decoded payload of one response plus its metadata."""

    payload: Any
    status_code: int
    headers: Mapping[str, str] = field(default_factory=dict)
    rate_limit: RateLimitInfo | None = None
    cursor: PageCursor | None = None
    attempts: int = 1

    @classmethod
    def from_response(
        cls,
        status: int,
        headers: Mapping[str, str],
        body: bytes,
        attempts: int = 1,
    ) -> "ApiResult":
        """Normalize a raw successful response."""
        frozen_headers = CIMultiDictProxy(CIMultiDict(headers))
        payload = decode_body(status, frozen_headers.get("Content-Type"), body)
        return cls(
            payload=payload,
            status_code=status,
            headers=frozen_headers,
            rate_limit=RateLimitInfo.from_headers(frozen_headers),
            cursor=PageCursor.from_headers(frozen_headers),
            attempts=attempts,
        )

    @property
    def is_list(self) -> bool:
        return isinstance(self.payload, list)

    @property
    def has_next_page(self) -> bool:
        return self.cursor is not None

    @property
    def is_raw(self) -> bool:
        return isinstance(self.payload, bytes)

    def json(self) -> Any:
        """Payload, requiring it to be decoded JSON."""
        if self.is_raw:
            raise MalformedResponse(
                "Response is not JSON", status_code=self.status_code, body=self.payload
            )
        return self.payload
