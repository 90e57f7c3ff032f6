"""Repository contents."""

from typing import Any
from urllib.parse import quote

from ..context import GitHubContext
from ..github.exceptions import MalformedResponse
from ..github.request import HttpMethod, MediaType
from .models import Content


async def get_content(
    context: GitHubContext,
    path: str,
    repository: Any = None,
    *,
    ref: str | None = None,
    media_type: MediaType = MediaType.OBJECT,
) -> Content | list[Content] | bytes:
    """Get a file or directory from a repository.

    Args:
        context: Client context
        path: Path inside the repository, empty for the root
        repository: Repository reference, the default repository if None
        ref: Branch, tag or commit, the default branch if None
        media_type: ``RAW`` for the file bytes, ``HTML`` for rendered
            markup, ``OBJECT`` for the decoded record

    Returns:
        The bytes GitHub sent for ``RAW`` and ``HTML``; a ``Content`` for a
        file or a list of ``Content`` for a directory with ``OBJECT``

    Raises:
        ValueError: If the media type has no contents representation
        MalformedResponse: If the response does not match the media type
    """
    accept = media_type.for_contents()
    repo = context.repository(repository)
    result = await context.call(
        HttpMethod.GET,
        f"{repo.path}/contents/{quote(path.strip('/'))}",
        query={"ref": ref},
        headers={"Accept": accept},
        operation="get_content",
    )

    if media_type is not MediaType.OBJECT:
        if not result.is_raw:
            raise MalformedResponse(
                f"Expected {accept} content for {path}, got decoded JSON",
                status_code=result.status_code,
            )
        return result.payload

    payload = result.json()
    if isinstance(payload, list):
        return [Content.from_api(entry) for entry in payload]
    return Content.from_api(payload)
