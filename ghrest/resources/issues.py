"""Issue operations."""

from collections.abc import AsyncIterator
from datetime import datetime
from typing import Any

from ..context import GitHubContext
from ..github.request import HttpMethod, MediaType
from .models import Issue

LOCK_REASONS = ("off-topic", "too heated", "resolved", "spam")


def _accept(media_type: MediaType) -> dict[str, str]:
    return {"Accept": media_type.for_body()}


async def get_issue(
    context: GitHubContext,
    number: int,
    repository: Any = None,
    *,
    media_type: MediaType = MediaType.OBJECT,
) -> Issue:
    """Get one issue.

    Args:
        context: Client context
        number: Issue number
        repository: Repository reference, the default repository if None
        media_type: Body representation (raw, text, html, full)
    """
    repo = context.repository(repository)
    result = await context.call(
        HttpMethod.GET,
        f"{repo.path}/issues/{number}",
        headers=_accept(media_type),
        operation="get_issue",
    )
    return Issue.from_api(result.json())


async def list_issues(
    context: GitHubContext,
    repository: Any = None,
    *,
    state: str = "open",
    labels: list[str] | None = None,
    assignee: str | None = None,
    creator: str | None = None,
    since: datetime | None = None,
    sort: str | None = None,
    direction: str | None = None,
    media_type: MediaType = MediaType.OBJECT,
    include_pull_requests: bool = True,
    max_pages: int | None = None,
) -> AsyncIterator[Issue]:
    """List issues of a repository in server order."""
    if state not in ("open", "closed", "all"):
        raise ValueError(f"Invalid issue state: {state!r}")

    repo = context.repository(repository)
    query = {
        "state": state,
        "labels": labels,
        "assignee": assignee,
        "creator": creator,
        "since": since.isoformat() if since else None,
        "sort": sort,
        "direction": direction,
    }
    paged = await context.paginate(
        f"{repo.path}/issues",
        query=query,
        headers=_accept(media_type),
        operation="list_issues",
        max_pages=max_pages,
    )
    async for item in paged:
        issue = Issue.from_api(item)
        if include_pull_requests or not issue.is_pull_request:
            yield issue


async def create_issue(
    context: GitHubContext,
    title: str,
    repository: Any = None,
    *,
    body: str | None = None,
    labels: list[str] | None = None,
    assignees: list[str] | None = None,
    milestone: int | None = None,
) -> Issue:
    if not title.strip():
        raise ValueError("Issue title must not be empty")

    repo = context.repository(repository)
    payload: dict[str, Any] = {"title": title}
    if body is not None:
        payload["body"] = body
    if labels:
        payload["labels"] = labels
    if assignees:
        payload["assignees"] = assignees
    if milestone is not None:
        payload["milestone"] = milestone

    result = await context.call(
        HttpMethod.POST, f"{repo.path}/issues", body=payload, operation="create_issue"
    )
    return Issue.from_api(result.json())


async def update_issue(
    context: GitHubContext, number: int, repository: Any = None, **fields: Any
) -> Issue:
    """Update an issue (title, body, state, labels, assignees, milestone)."""
    if not fields:
        raise ValueError("Nothing to update")
    repo = context.repository(repository)
    result = await context.call(
        HttpMethod.PATCH,
        f"{repo.path}/issues/{number}",
        body=fields,
        operation="update_issue",
    )
    return Issue.from_api(result.json())


async def lock_issue(
    context: GitHubContext,
    number: int,
    repository: Any = None,
    *,
    reason: str | None = None,
) -> None:
    if reason is not None and reason not in LOCK_REASONS:
        raise ValueError(f"Invalid lock reason: {reason!r}")
    repo = context.repository(repository)
    await context.call(
        HttpMethod.PUT,
        f"{repo.path}/issues/{number}/lock",
        body={"lock_reason": reason} if reason else {},
        operation="lock_issue",
    )


async def unlock_issue(
    context: GitHubContext, number: int, repository: Any = None
) -> None:
    repo = context.repository(repository)
    await context.call(
        HttpMethod.DELETE, f"{repo.path}/issues/{number}/lock", operation="unlock_issue"
    )
