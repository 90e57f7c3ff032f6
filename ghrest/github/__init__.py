"""GitHub REST invocation package."""

from .auth import (
    AuthProvider,
    AuthToken,
    BasicAuth,
    GitHubAppAuth,
    PersonalAccessTokenAuth,
    TokenAuth,
)
from .exceptions import (
    GitHubAuthenticationError,
    GitHubConnectionError,
    GitHubError,
    GitHubNotFoundError,
    GitHubServerError,
    GitHubTimeoutError,
    GitHubValidationError,
    MalformedResponse,
    RateLimitExceeded,
    RequestFailed,
    TransientFailure,
)
from .invoker import RestInvoker, RestInvokerConfig
from .pagination import LinkHeader, PageCursor, PagedResult
from .rate_limiting import RateLimitInfo, RetryPolicy, RetryState
from .request import HttpMethod, MediaType, RequestDescriptor
from .response import ApiResult

__all__ = [
    "ApiResult",
    "AuthProvider",
    "AuthToken",
    "BasicAuth",
    "GitHubAppAuth",
    "GitHubAuthenticationError",
    "GitHubConnectionError",
    "GitHubError",
    "GitHubNotFoundError",
    "GitHubServerError",
    "GitHubTimeoutError",
    "GitHubValidationError",
    "HttpMethod",
    "LinkHeader",
    "MalformedResponse",
    "MediaType",
    "PageCursor",
    "PagedResult",
    "PersonalAccessTokenAuth",
    "RateLimitExceeded",
    "RateLimitInfo",
    "RequestDescriptor",
    "RequestFailed",
    "RestInvoker",
    "RestInvokerConfig",
    "RetryPolicy",
    "RetryState",
    "TokenAuth",
    "TransientFailure",
]
