"""Pull request operations."""

from collections.abc import AsyncIterator
from typing import Any

from ..context import GitHubContext
from ..github.exceptions import GitHubValidationError
from ..github.request import HttpMethod, MediaType
from .models import PullRequest


async def get_pull_request(
    context: GitHubContext,
    number: int,
    repository: Any = None,
    *,
    media_type: MediaType = MediaType.OBJECT,
) -> PullRequest:
    repo = context.repository(repository)
    result = await context.call(
        HttpMethod.GET,
        f"{repo.path}/pulls/{number}",
        headers={"Accept": media_type.for_body()},
        operation="get_pull_request",
    )
    return PullRequest.from_api(result.json())


async def list_pull_requests(
    context: GitHubContext,
    repository: Any = None,
    *,
    state: str = "open",
    head: str | None = None,
    base: str | None = None,
    sort: str | None = None,
    direction: str | None = None,
    max_pages: int | None = None,
) -> AsyncIterator[PullRequest]:
    """List pull requests of a repository.

    Args:
        context: Client context
        repository: Repository reference, the default repository if None
        state: open, closed or all
        head: Filter by head as ``user:ref-name``
        base: Filter by base branch name
        sort: created, updated, popularity or long-running
        direction: asc or desc
        max_pages: Stop after this many pages
    """
    if state not in ("open", "closed", "all"):
        raise ValueError(f"Invalid pull request state: {state!r}")

    repo = context.repository(repository)
    query = {
        "state": state,
        "head": head,
        "base": base,
        "sort": sort,
        "direction": direction,
    }
    paged = await context.paginate(
        f"{repo.path}/pulls",
        query=query,
        operation="list_pull_requests",
        max_pages=max_pages,
    )
    async for item in paged:
        yield PullRequest.from_api(item)


async def create_pull_request(
    context: GitHubContext,
    title: str,
    head: str,
    base: str,
    repository: Any = None,
    *,
    body: str | None = None,
    draft: bool = False,
    maintainer_can_modify: bool = True,
) -> PullRequest:
    """Open a pull request from ``head`` into ``base``."""
    repo = context.repository(repository)
    payload: dict[str, Any] = {
        "title": title,
        "head": head,
        "base": base,
        "draft": draft,
        "maintainer_can_modify": maintainer_can_modify,
    }
    if body is not None:
        payload["body"] = body

    try:
        result = await context.call(
            HttpMethod.POST,
            f"{repo.path}/pulls",
            body=payload,
            operation="create_pull_request",
        )
    except GitHubValidationError as e:
        raise e.with_context(f"Creating pull request {head} -> {base} in {repo}")
    return PullRequest.from_api(result.json())
