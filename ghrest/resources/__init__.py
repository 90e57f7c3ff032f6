"""Typed operations over GitHub resources.

Every operation takes a ``GitHubContext`` first. List operations are async
generators that fetch further pages only while the caller keeps iterating.
"""

from .contents import get_content
from .issues import (
    create_issue,
    get_issue,
    list_issues,
    lock_issue,
    unlock_issue,
    update_issue,
)
from .labels import create_label, delete_label, get_label, list_labels, update_label
from .models import (
    Content,
    GitHubRecord,
    Issue,
    Label,
    PullRequest,
    RateLimit,
    Release,
    Repository,
    User,
)
from .pulls import create_pull_request, get_pull_request, list_pull_requests
from .rate_limit import get_rate_limit
from .releases import get_latest_release, get_release, get_release_by_tag, list_releases
from .repositories import (
    create_repository,
    delete_repository,
    get_repository,
    list_repositories,
    update_repository,
)

__all__ = [
    "Content",
    "GitHubRecord",
    "Issue",
    "Label",
    "PullRequest",
    "RateLimit",
    "Release",
    "Repository",
    "User",
    "create_issue",
    "create_label",
    "create_pull_request",
    "create_repository",
    "delete_label",
    "delete_repository",
    "get_content",
    "get_issue",
    "get_label",
    "get_latest_release",
    "get_pull_request",
    "get_rate_limit",
    "get_release",
    "get_release_by_tag",
    "get_repository",
    "list_issues",
    "list_labels",
    "list_pull_requests",
    "list_releases",
    "list_repositories",
    "lock_issue",
    "unlock_issue",
    "update_issue",
    "update_label",
    "update_repository",
]
