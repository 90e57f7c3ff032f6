"""Repository operations."""

from collections.abc import AsyncIterator
from typing import Any

from ..context import GitHubContext
from ..github.request import HttpMethod
from .models import Repository


async def get_repository(context: GitHubContext, repository: Any = None) -> Repository:
    """Get a repository.

    Args:
        context: Client context
        repository: Any repository reference, the default repository if None
    """
    repo = context.repository(repository)
    result = await context.call(HttpMethod.GET, repo.path, operation="get_repository")
    return Repository.from_api(result.json())


async def list_repositories(
    context: GitHubContext,
    *,
    owner: str | None = None,
    organization: str | None = None,
    type: str | None = None,
    sort: str | None = None,
    direction: str | None = None,
    visibility: str | None = None,
    max_pages: int | None = None,
) -> AsyncIterator[Repository]:
    """List repositories of a user, an organization or the authenticated user.

    Args:
        context: Client context
        owner: User login whose public repositories to list
        organization: Organization login whose repositories to list
        type: Repository type filter (all, owner, member, public, private...)
        sort: Sort field (created, updated, pushed, full_name)
        direction: asc or desc
        visibility: all, public or private (authenticated user only)
        max_pages: Stop after this many pages
    """
    if owner and organization:
        raise ValueError("Pass either owner or organization, not both")

    if organization:
        path = f"orgs/{organization}/repos"
    elif owner:
        path = f"users/{owner}/repos"
    else:
        path = "user/repos"

    query = {
        "type": type,
        "sort": sort,
        "direction": direction,
        "visibility": visibility if not (owner or organization) else None,
    }
    paged = await context.paginate(
        path, query=query, operation="list_repositories", max_pages=max_pages
    )
    async for item in paged:
        yield Repository.from_api(item)


async def create_repository(
    context: GitHubContext,
    name: str,
    *,
    organization: str | None = None,
    description: str | None = None,
    private: bool = False,
    auto_init: bool = False,
    **fields: Any,
) -> Repository:
    """Create a repository for the authenticated user or an organization."""
    body: dict[str, Any] = {
        "name": name,
        "private": private,
        "auto_init": auto_init,
        **fields,
    }
    if description is not None:
        body["description"] = description

    path = f"orgs/{organization}/repos" if organization else "user/repos"
    result = await context.call(
        HttpMethod.POST, path, body=body, operation="create_repository"
    )
    return Repository.from_api(result.json())


async def update_repository(
    context: GitHubContext, repository: Any = None, **fields: Any
) -> Repository:
    """Update repository settings (description, visibility, default branch...)."""
    if not fields:
        raise ValueError("Nothing to update")
    repo = context.repository(repository)
    result = await context.call(
        HttpMethod.PATCH, repo.path, body=fields, operation="update_repository"
    )
    return Repository.from_api(result.json())


async def delete_repository(context: GitHubContext, repository: Any = None) -> bool:
    """Delete a repository after confirmation.

    Returns:
        True if the repository was deleted, False if not confirmed
    """
    repo = context.repository(repository)
    if not context.confirmed(f"Delete repository {repo}"):
        return False
    await context.call(HttpMethod.DELETE, repo.path, operation="delete_repository")
    return True
