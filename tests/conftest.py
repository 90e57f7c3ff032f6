"""
Test configuration and fixtures for the GitHub REST client tests.

Provides pytest fixtures shared by unit tests: a fake HTTP layer, an
invoker wired to a recording telemetry sink, and a client context with a
default repository.
"""

from collections.abc import AsyncGenerator, Generator

import pytest
import pytest_asyncio
from aioresponses import aioresponses

from ghrest.config.models import DefaultsConfig, RetryConfig, Settings
from ghrest.context import GitHubContext
from ghrest.github.auth import AuthToken
from ghrest.github.invoker import RestInvoker, RestInvokerConfig
from ghrest.github.rate_limiting import RetryPolicy
from ghrest.telemetry import MetricsTelemetrySink
from tests.fixtures.github_api import API


@pytest.fixture
def mock_api() -> Generator[aioresponses, None, None]:
    """
    Fake GitHub HTTP layer.

    Why: Unit tests must never reach the real API
    What: Patches aiohttp so registered URLs return canned responses
    How: Wraps aioresponses; unregistered URLs raise connection errors
    """
    with aioresponses() as m:
        yield m


@pytest.fixture
def telemetry() -> MetricsTelemetrySink:
    """Telemetry sink that keeps every event for assertions."""
    return MetricsTelemetrySink()


@pytest.fixture
def retry_policy() -> RetryPolicy:
    """Retry policy with the default budget and small delays."""
    return RetryPolicy(max_attempts=3, backoff_base=0.01, max_rate_limit_wait=3600)


@pytest_asyncio.fixture
async def invoker(
    retry_policy: RetryPolicy, telemetry: MetricsTelemetrySink
) -> AsyncGenerator[RestInvoker, None]:
    """Invoker pointed at the public API, closed after the test."""
    client = RestInvoker(
        config=RestInvokerConfig(base_url=API, retry=retry_policy),
        telemetry=telemetry,
    )
    yield client
    await client.close()


@pytest.fixture
def auth_token() -> AuthToken:
    return AuthToken(token="ghp_testtoken123", token_type="token")


@pytest.fixture
def settings() -> Settings:
    """Settings with a default repository and fast retries."""
    return Settings(
        defaults=DefaultsConfig(owner="octo", repository="hello"),
        retry=RetryConfig(max_attempts=3, backoff_base=0.01),
    )


@pytest_asyncio.fixture
async def context(
    settings: Settings, telemetry: MetricsTelemetrySink
) -> AsyncGenerator[GitHubContext, None]:
    """Client context for resource operation tests."""
    ctx = GitHubContext.from_settings(settings, telemetry=telemetry)
    yield ctx
    await ctx.close()

