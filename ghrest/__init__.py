"""Async GitHub REST client.

Example::

    from ghrest import GitHubContext, PersonalAccessTokenAuth
    from ghrest.resources import list_issues

    async with GitHubContext.from_settings(auth=PersonalAccessTokenAuth(token)) as ctx:
        async for issue in list_issues(ctx, "octocat/hello-world"):
            print(issue.number, issue.title)
"""

from .config import Settings, load_settings
from .confirmation import (
    ConfirmationPolicy,
    always_confirm,
    never_confirm,
    prompt_confirm,
)
from .context import GitHubContext
from .github import (
    ApiResult,
    GitHubError,
    HttpMethod,
    MalformedResponse,
    MediaType,
    PagedResult,
    PersonalAccessTokenAuth,
    RateLimitExceeded,
    RequestDescriptor,
    RequestFailed,
    RestInvoker,
    RestInvokerConfig,
    TransientFailure,
)
from .references import (
    RepositoryById,
    RepositoryByKey,
    RepositoryByUrl,
    RepositoryRef,
    resolve_repository,
)
from .telemetry import TelemetryEvent, TelemetrySink

__version__ = "0.1.0"

__all__ = [
    "ApiResult",
    "ConfirmationPolicy",
    "GitHubContext",
    "GitHubError",
    "HttpMethod",
    "MalformedResponse",
    "MediaType",
    "PagedResult",
    "PersonalAccessTokenAuth",
    "RateLimitExceeded",
    "RepositoryById",
    "RepositoryByKey",
    "RepositoryByUrl",
    "RepositoryRef",
    "RequestDescriptor",
    "RequestFailed",
    "RestInvoker",
    "RestInvokerConfig",
    "Settings",
    "TelemetryEvent",
    "TelemetrySink",
    "TransientFailure",
    "always_confirm",
    "load_settings",
    "never_confirm",
    "prompt_confirm",
    "resolve_repository",
]
