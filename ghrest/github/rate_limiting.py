"""GitHub API rate limit detection and retry policy."""

import time
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime

from .exceptions import GitHubError

RATE_LIMIT_STATUSES = (403, 429)

# Floor for every rate limit wait
MIN_RATE_LIMIT_WAIT = 1.0


@dataclass(frozen=True)
class RateLimitInfo:
    """Rate limit information from GitHub API."""

    limit: int
    remaining: int
    reset: int
    used: int = 0
    resource: str = "core"

    @classmethod
    def from_headers(cls, headers: Mapping[str, str]) -> "RateLimitInfo | None":
        """Parse ``X-RateLimit-*`` headers.

        Returns:
            Rate limit info, or None when the headers are absent or invalid
        """
        if headers.get("X-RateLimit-Limit") is None:
            return None

        try:
            return cls(
                limit=int(headers.get("X-RateLimit-Limit", 5000)),
                remaining=int(headers.get("X-RateLimit-Remaining", 0)),
                reset=int(headers.get("X-RateLimit-Reset", 0)),
                used=int(headers.get("X-RateLimit-Used", 0)),
                resource=headers.get("X-RateLimit-Resource", "core"),
            )
        except (ValueError, TypeError):
            return None

    @property
    def reset_datetime(self) -> datetime:
        return datetime.fromtimestamp(self.reset)

    @property
    def seconds_until_reset(self) -> float:
        return max(0, self.reset - time.time())

    @property
    def is_exceeded(self) -> bool:
        return self.remaining <= 0

    @property
    def usage_percentage(self) -> float:
        if self.limit == 0:
            return 0.0
        return ((self.limit - self.remaining) / self.limit) * 100


def is_rate_limited(status: int, headers: Mapping[str, str], message: str) -> bool:
    """Tell a rate limit response apart from an ordinary 403.

    GitHub sends rate limit headers on every response, so a 403 only counts
    as rate limiting when the quota is spent, a ``Retry-After`` is present,
    the reset header comes without a remaining count, or the message says so.
    """
    if status not in RATE_LIMIT_STATUSES:
        return False
    if status == 429 or headers.get("Retry-After") is not None:
        return True
    remaining = headers.get("X-RateLimit-Remaining")
    if remaining is not None and remaining.strip() == "0":
        return True
    if remaining is None and headers.get("X-RateLimit-Reset") is not None:
        return True
    return "rate limit" in message.lower()


def parse_retry_after(headers: Mapping[str, str]) -> float | None:
    """Seconds from a ``Retry-After`` header, if present and numeric."""
    value = headers.get("Retry-After")
    if value is None:
        return None
    try:
        return max(0.0, float(value))
    except ValueError:
        return None


def rate_limit_wait(
    headers: Mapping[str, str], now: float | None = None, skew: float = 1.0
) -> float:
    """Seconds to wait before retrying a rate limited request.

    ``Retry-After`` wins over ``X-RateLimit-Reset``. The reset timestamp has
    one second resolution, so ``skew`` is added to land after it.

    Args:
        headers: Headers of the limiting response
        now: Current epoch time, defaults to ``time.time()``
        skew: Margin added to reset based waits

    Returns:
        Wait in seconds, at least MIN_RATE_LIMIT_WAIT so repeated limits
        always add up to the wait ceiling
    """
    retry_after = parse_retry_after(headers)
    if retry_after is not None:
        return max(retry_after, MIN_RATE_LIMIT_WAIT)

    reset = headers.get("X-RateLimit-Reset")
    if reset is None:
        # Secondary limits without hints: GitHub asks for at least a minute
        return 60.0

    try:
        reset_at = float(reset)
    except ValueError:
        return 60.0

    current = time.time() if now is None else now
    return max(max(0.0, reset_at - current) + skew, MIN_RATE_LIMIT_WAIT)


@dataclass
class RetryPolicy:
    """Retry limits shared by all invocations of one invoker."""

    max_attempts: int = 3
    backoff_base: float = 1.0
    backoff_factor: float = 2.0
    max_backoff: float = 30.0
    max_rate_limit_wait: float = 3600.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.max_rate_limit_wait < 0:
            raise ValueError("max_rate_limit_wait must not be negative")

    def backoff(self, attempt: int) -> float:
        """Delay after the given failed attempt (1-based)."""
        delay = self.backoff_base * self.backoff_factor ** max(0, attempt - 1)
        return min(delay, self.max_backoff)


@dataclass
class RetryState:
    """Mutable bookkeeping for one invocation."""

    max_attempts: int
    attempt_count: int = 0
    last_error: GitHubError | None = None
    next_delay: float = 0.0
    rate_limit_waited: float = 0.0
    rate_limit_retries: int = 0

    @property
    def exhausted(self) -> bool:
        """Whether the transient-error attempt budget is used up."""
        return self.attempt_count >= self.max_attempts

    def start_attempt(self) -> int:
        """Count a new attempt against the transient-error budget."""
        if self.exhausted:
            raise RuntimeError("Retry budget already exhausted")
        self.attempt_count += 1
        return self.attempt_count

    def record_failure(self, error: GitHubError, policy: RetryPolicy) -> None:
        self.last_error = error
        self.next_delay = policy.backoff(self.attempt_count)

    def record_rate_limit(self, error: GitHubError, wait: float) -> None:
        """Rate limit retries do not consume attempts."""
        self.last_error = error
        self.next_delay = wait
        self.rate_limit_waited += wait
        self.rate_limit_retries += 1
        self.attempt_count -= 1
