"""Label operations."""

from collections.abc import AsyncIterator
from typing import Any
from urllib.parse import quote

from ..context import GitHubContext
from ..github.request import HttpMethod
from .models import Label


def _label_path(repo_path: str, name: str) -> str:
    return f"{repo_path}/labels/{quote(name, safe='')}"


def _normalize_color(color: str) -> str:
    color = color.lstrip("#").lower()
    if len(color) != 6 or any(c not in "0123456789abcdef" for c in color):
        raise ValueError(f"Invalid label color: {color!r}")
    return color


async def get_label(context: GitHubContext, name: str, repository: Any = None) -> Label:
    repo = context.repository(repository)
    result = await context.call(
        HttpMethod.GET, _label_path(repo.path, name), operation="get_label"
    )
    return Label.from_api(result.json())


async def list_labels(
    context: GitHubContext,
    repository: Any = None,
    *,
    max_pages: int | None = None,
) -> AsyncIterator[Label]:
    repo = context.repository(repository)
    paged = await context.paginate(
        f"{repo.path}/labels", operation="list_labels", max_pages=max_pages
    )
    async for item in paged:
        yield Label.from_api(item)


async def create_label(
    context: GitHubContext,
    name: str,
    color: str,
    repository: Any = None,
    *,
    description: str | None = None,
) -> Label:
    """Create a label.

    Args:
        context: Client context
        name: Label name
        color: Hex color, with or without the leading ``#``
        repository: Repository reference, the default repository if None
        description: Optional short description
    """
    repo = context.repository(repository)
    body: dict[str, Any] = {"name": name, "color": _normalize_color(color)}
    if description is not None:
        body["description"] = description
    result = await context.call(
        HttpMethod.POST, f"{repo.path}/labels", body=body, operation="create_label"
    )
    return Label.from_api(result.json())


async def update_label(
    context: GitHubContext,
    name: str,
    repository: Any = None,
    *,
    new_name: str | None = None,
    color: str | None = None,
    description: str | None = None,
) -> Label:
    body: dict[str, Any] = {}
    if new_name is not None:
        body["new_name"] = new_name
    if color is not None:
        body["color"] = _normalize_color(color)
    if description is not None:
        body["description"] = description
    if not body:
        raise ValueError("Nothing to update")

    repo = context.repository(repository)
    result = await context.call(
        HttpMethod.PATCH,
        _label_path(repo.path, name),
        body=body,
        operation="update_label",
    )
    return Label.from_api(result.json())


async def delete_label(
    context: GitHubContext, name: str, repository: Any = None
) -> bool:
    """Delete a label after confirmation.

    Returns:
        True if the label was deleted, False if not confirmed
    """
    repo = context.repository(repository)
    if not context.confirmed(f"Delete label '{name}' from {repo}"):
        return False
    await context.call(
        HttpMethod.DELETE, _label_path(repo.path, name), operation="delete_label"
    )
    return True
