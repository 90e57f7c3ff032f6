"""GitHub REST API exceptions.

Four terminal kinds reach callers of the invoker:

- ``RequestFailed``: 4xx other than rate limiting, never retried
- ``RateLimitExceeded``: waiting for the limit to reset would pass the ceiling
- ``TransientFailure``: 5xx or network errors after all attempts
- ``MalformedResponse``: body could not be decoded, never retried

The remaining classes are either ``RequestFailed`` specialisations or the
underlying causes wrapped by ``TransientFailure``.
"""

from typing import Any


class GitHubError(Exception):
    """Base exception for GitHub API errors."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_data: dict[str, Any] | None = None,
    ):
        """Initialize GitHub error.

        Args:
            message: Error message
            status_code: HTTP status code
            response_data: Response data from GitHub API
        """
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.response_data = response_data or {}
        self.context: list[str] = []

    def with_context(self, context: str) -> "GitHubError":
        """Attach caller context without replacing the original error.

        Args:
            context: Short description of what the caller was doing

        Returns:
            The same error, so it can be re-raised directly
        """
        self.context.append(context)
        return self

    def __str__(self) -> str:
        base = super().__str__()
        if not self.context:
            return base
        return f"{': '.join(reversed(self.context))}: {base}"


class RequestFailed(GitHubError):
    """Raised for client errors (4xx other than rate limiting)."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_data: dict[str, Any] | None = None,
    ):
        super().__init__(message, status_code, response_data)

    @property
    def errors(self) -> list[Any]:
        """Field level errors reported by GitHub (422 responses)."""
        errors = self.response_data.get("errors", [])
        return errors if isinstance(errors, list) else []

    @property
    def documentation_url(self) -> str | None:
        """Documentation link GitHub returns with most error bodies."""
        return self.response_data.get("documentation_url")


class GitHubAuthenticationError(RequestFailed):
    """Raised when authentication fails or access is forbidden."""

    pass


class GitHubNotFoundError(RequestFailed):
    """Raised when resource is not found."""

    pass


class GitHubValidationError(RequestFailed):
    """Raised when request validation fails."""

    pass


class RateLimitExceeded(GitHubError):
    """Raised when waiting for a rate limit reset would pass the ceiling."""

    def __init__(
        self,
        message: str,
        reset_time: int | None = None,
        remaining: int = 0,
        limit: int = 0,
        retry_after: float | None = None,
        status_code: int | None = 403,
    ):
        """Initialize rate limit error.

        Args:
            message: Error message
            reset_time: Unix timestamp when rate limit resets
            remaining: Remaining API calls
            limit: Total rate limit
            retry_after: Seconds GitHub asked us to wait, if it said so
            status_code: HTTP status code of the limiting response
        """
        super().__init__(message, status_code)
        self.reset_time = reset_time
        self.remaining = remaining
        self.limit = limit
        self.retry_after = retry_after


class GitHubServerError(GitHubError):
    """Raised when GitHub server returns 5xx error."""

    pass


class GitHubConnectionError(GitHubError):
    """Raised when connection to GitHub fails."""

    pass


class GitHubTimeoutError(GitHubError):
    """Raised when request times out."""

    pass


class TransientFailure(GitHubError):
    """Raised when retries on server or network errors are exhausted."""

    def __init__(self, message: str, last_error: GitHubError, attempts: int):
        """Initialize transient failure.

        Args:
            message: Error message
            last_error: The error from the final attempt
            attempts: Number of attempts made
        """
        super().__init__(message, last_error.status_code, last_error.response_data)
        self.last_error = last_error
        self.attempts = attempts


class MalformedResponse(GitHubError):
    """Raised when a response body cannot be decoded in the expected shape."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        body: bytes = b"",
    ):
        super().__init__(message, status_code)
        self.body = body
