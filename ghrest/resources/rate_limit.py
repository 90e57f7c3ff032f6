"""Rate limit status."""

from ..context import GitHubContext
from ..github.request import HttpMethod
from .models import RateLimit


async def get_rate_limit(context: GitHubContext) -> RateLimit:
    """Current rate limit status of the credential.

    Calling this endpoint does not count against the core limit.
    """
    result = await context.call(
        HttpMethod.GET, "rate_limit", operation="get_rate_limit"
    )
    return RateLimit.from_api(result.json())
