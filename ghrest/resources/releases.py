"""Release operations."""

from collections.abc import AsyncIterator
from typing import Any
from urllib.parse import quote

from ..context import GitHubContext
from ..github.request import HttpMethod
from .models import Release


async def list_releases(
    context: GitHubContext,
    repository: Any = None,
    *,
    max_pages: int | None = None,
) -> AsyncIterator[Release]:
    """List releases, newest first."""
    repo = context.repository(repository)
    paged = await context.paginate(
        f"{repo.path}/releases", operation="list_releases", max_pages=max_pages
    )
    async for item in paged:
        yield Release.from_api(item)


async def get_release(
    context: GitHubContext, release_id: int, repository: Any = None
) -> Release:
    repo = context.repository(repository)
    result = await context.call(
        HttpMethod.GET, f"{repo.path}/releases/{release_id}", operation="get_release"
    )
    return Release.from_api(result.json())


async def get_latest_release(
    context: GitHubContext, repository: Any = None
) -> Release:
    """Latest published full release; drafts and prereleases are skipped."""
    repo = context.repository(repository)
    result = await context.call(
        HttpMethod.GET, f"{repo.path}/releases/latest", operation="get_latest_release"
    )
    return Release.from_api(result.json())


async def get_release_by_tag(
    context: GitHubContext, tag: str, repository: Any = None
) -> Release:
    repo = context.repository(repository)
    result = await context.call(
        HttpMethod.GET,
        f"{repo.path}/releases/tags/{quote(tag, safe='')}",
        operation="get_release_by_tag",
    )
    return Release.from_api(result.json())
