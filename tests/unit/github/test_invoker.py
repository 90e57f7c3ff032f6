"""
Unit tests for the REST invoker.

Why: Ensure the single chokepoint for GitHub calls waits out rate limits,
     retries transient failures a bounded number of times, fails fast on
     client errors and exposes list results lazily.

What: Tests RestInvoker request construction, success decoding, pagination,
      rate limit waits, transient retries, error mapping and telemetry.

How: Uses aioresponses to fake the GitHub API and patches asyncio.sleep so
     retry and rate limit waits are recorded instead of slept.
"""

import asyncio
from typing import Any
from unittest.mock import AsyncMock, patch

import aiohttp
import pytest
from aioresponses import aioresponses

from ghrest.github.auth import AuthToken
from ghrest.github.exceptions import (
    GitHubAuthenticationError,
    GitHubConnectionError,
    GitHubNotFoundError,
    GitHubServerError,
    GitHubValidationError,
    MalformedResponse,
    RateLimitExceeded,
    RequestFailed,
    TransientFailure,
)
from ghrest.github.invoker import RestInvoker, RestInvokerConfig
from ghrest.github.pagination import PagedResult
from ghrest.github.rate_limiting import RetryPolicy
from ghrest.github.request import DEFAULT_ACCEPT, HttpMethod, RequestDescriptor
from ghrest.github.response import ApiResult
from ghrest.telemetry import MetricsTelemetrySink, TelemetryEvent, TelemetrySink
from tests.fixtures.github_api import (
    API,
    link_header,
    rate_limited_headers,
    request_count,
    sent_headers,
    sent_json,
)

REPO_URL = f"{API}/repos/octo/hello"
ISSUES_URL = f"{API}/repos/octo/hello/issues"


def get(path: str, **kwargs: Any) -> RequestDescriptor:
    return RequestDescriptor(method=HttpMethod.GET, path=path, **kwargs)


class FailingTelemetrySink(TelemetrySink):
    """Sink that always raises."""

    def record(self, event: TelemetryEvent) -> None:
        raise RuntimeError("telemetry backend down")


class TestRestInvokerConfig:
    """Test RestInvokerConfig data class."""

    def test_defaults(self) -> None:
        config = RestInvokerConfig()

        assert config.base_url == "https://api.github.com"
        assert config.timeout == 30
        assert config.per_page == 100
        assert config.max_concurrent_requests == 10
        assert config.retry.max_attempts == 3
        assert config.retry.max_rate_limit_wait == 3600.0


class TestRequestConstruction:
    """Test what goes on the wire."""

    async def test_default_headers_anonymous(
        self, invoker: RestInvoker, mock_api: aioresponses
    ) -> None:
        """
        Why: GitHub requires a User-Agent and versions the API by header.
        What: Tests the headers of an anonymous request.
        How: Inspects the recorded request headers.
        """
        mock_api.get(REPO_URL, payload={"id": 1})

        await invoker.invoke(get("repos/octo/hello"))

        headers = sent_headers(mock_api)
        assert headers["Accept"] == DEFAULT_ACCEPT
        assert headers["User-Agent"] == "ghrest/0.1"
        assert headers["X-GitHub-Api-Version"] == "2022-11-28"
        assert "Authorization" not in headers

    async def test_authorization_from_descriptor(
        self, invoker: RestInvoker, mock_api: aioresponses, auth_token: AuthToken
    ) -> None:
        mock_api.get(REPO_URL, payload={"id": 1})

        await invoker.invoke(get("repos/octo/hello", auth_token=auth_token))

        assert sent_headers(mock_api)["Authorization"] == "token ghp_testtoken123"

    async def test_descriptor_headers_override_defaults(
        self, invoker: RestInvoker, mock_api: aioresponses
    ) -> None:
        mock_api.get(f"{ISSUES_URL}/1", payload={"id": 1})

        await invoker.invoke(
            get(
                "repos/octo/hello/issues/1",
                headers={"Accept": "application/vnd.github.html+json"},
            )
        )

        headers = sent_headers(mock_api)
        assert headers["Accept"] == "application/vnd.github.html+json"

    async def test_json_body(
        self, invoker: RestInvoker, mock_api: aioresponses
    ) -> None:
        mock_api.post(ISSUES_URL, status=201, payload={"number": 7})
        descriptor = RequestDescriptor(
            method=HttpMethod.POST,
            path="repos/octo/hello/issues",
            body={"title": "Bug", "labels": ["bug"]},
        )

        result = await invoker.invoke(descriptor)

        assert isinstance(result, ApiResult)
        assert result.status_code == 201
        assert sent_json(mock_api) == {"title": "Bug", "labels": ["bug"]}
        assert sent_headers(mock_api)["Content-Type"].startswith("application/json")

    async def test_query_parameters(
        self, invoker: RestInvoker, mock_api: aioresponses
    ) -> None:
        mock_api.get(f"{ISSUES_URL}?state=closed&labels=bug", payload=[])

        result = await invoker.invoke(
            get(
                "repos/octo/hello/issues",
                query={"state": "closed", "labels": ["bug"]},
            )
        )

        assert isinstance(result, ApiResult)
        assert result.payload == []


class TestSuccessfulCalls:
    """Test decoding of successful responses."""

    async def test_single_resource(
        self, invoker: RestInvoker, mock_api: aioresponses
    ) -> None:
        mock_api.get(
            REPO_URL,
            payload={"id": 1, "full_name": "octo/hello"},
            headers={
                "X-RateLimit-Limit": "60",
                "X-RateLimit-Remaining": "58",
                "X-RateLimit-Reset": "1700000000",
            },
        )

        result = await invoker.invoke(get("repos/octo/hello"))

        assert isinstance(result, ApiResult)
        assert result.payload == {"id": 1, "full_name": "octo/hello"}
        assert result.attempts == 1
        assert result.rate_limit is not None
        assert result.rate_limit.remaining == 58

    async def test_authenticated_and_anonymous_same_shape(
        self, invoker: RestInvoker, mock_api: aioresponses, auth_token: AuthToken
    ) -> None:
        """
        Why: Credentials change what GitHub allows, not how results look.
        What: Tests that both calls return the same result type and keys.
        How: Issues the same GET with and without a token.
        """
        payload = {"id": 1, "full_name": "octo/hello", "private": False}
        mock_api.get(REPO_URL, payload=payload)
        mock_api.get(REPO_URL, payload=payload)

        anonymous = await invoker.invoke(get("repos/octo/hello"))
        authenticated = await invoker.invoke(
            get("repos/octo/hello", auth_token=auth_token)
        )

        assert type(anonymous) is type(authenticated)
        assert anonymous.payload.keys() == authenticated.payload.keys()

    async def test_repeated_get_is_idempotent(
        self, invoker: RestInvoker, mock_api: aioresponses
    ) -> None:
        mock_api.get(REPO_URL, payload={"id": 1}, repeat=True)
        descriptor = get("repos/octo/hello")

        first = await invoker.invoke(descriptor)
        second = await invoker.invoke(descriptor)

        assert first.payload == second.payload

    async def test_no_content(
        self, invoker: RestInvoker, mock_api: aioresponses
    ) -> None:
        mock_api.delete(f"{ISSUES_URL}/1/lock", status=204)

        result = await invoker.invoke(
            RequestDescriptor(
                method=HttpMethod.DELETE, path="repos/octo/hello/issues/1/lock"
            )
        )

        assert isinstance(result, ApiResult)
        assert result.status_code == 204
        assert result.payload is None

    async def test_raw_media_returns_bytes(
        self, invoker: RestInvoker, mock_api: aioresponses
    ) -> None:
        mock_api.get(
            f"{REPO_URL}/contents/README.md",
            body=b"# Hello\n",
            content_type="application/vnd.github.raw",
        )

        result = await invoker.invoke(get("repos/octo/hello/contents/README.md"))

        assert isinstance(result, ApiResult)
        assert result.payload == b"# Hello\n"
        assert result.is_raw

    async def test_malformed_json(
        self, invoker: RestInvoker, mock_api: aioresponses
    ) -> None:
        """
        Why: A corrupted body is never fixed by retrying.
        What: Tests that undecodable JSON raises MalformedResponse once.
        How: Serves a truncated JSON document with a JSON content type.
        """
        mock_api.get(REPO_URL, body=b'{"id": ', content_type="application/json")

        with pytest.raises(MalformedResponse):
            await invoker.invoke(get("repos/octo/hello"))

        assert request_count(mock_api) == 1

    async def test_concurrent_invocations(
        self, invoker: RestInvoker, mock_api: aioresponses
    ) -> None:
        for number in range(5):
            mock_api.get(f"{ISSUES_URL}/{number}", payload={"number": number})

        results = await asyncio.gather(
            *(invoker.invoke(get(f"repos/octo/hello/issues/{n}")) for n in range(5))
        )

        assert [result.payload["number"] for result in results] == list(range(5))


class TestPagination:
    """Test multi-page list results."""

    def register_pages(self, mock_api: aioresponses) -> None:
        page2 = f"{API}/repositories/1/issues?page=2"
        page3 = f"{API}/repositories/1/issues?page=3"
        mock_api.get(
            f"{ISSUES_URL}?per_page=100",
            payload=[{"number": 1}, {"number": 2}],
            headers={"Link": link_header(page2, page3)},
        )
        mock_api.get(
            page2,
            payload=[{"number": 3}, {"number": 4}],
            headers={"Link": link_header(page3, page3)},
        )
        mock_api.get(page3, payload=[{"number": 5}])

    async def test_invoke_returns_paged_result(
        self, invoker: RestInvoker, mock_api: aioresponses
    ) -> None:
        self.register_pages(mock_api)

        result = await invoker.invoke(
            get("repos/octo/hello/issues", query={"per_page": 100})
        )

        assert isinstance(result, PagedResult)
        assert result.total_pages == 3
        numbers = [item["number"] for item in await result.collect()]
        assert numbers == [1, 2, 3, 4, 5]
        assert request_count(mock_api) == 3

    async def test_paginate_adds_page_size(
        self, invoker: RestInvoker, mock_api: aioresponses
    ) -> None:
        """
        Why: Fewer, larger pages spend less of the rate limit.
        What: Tests that paginate asks for the maximum page size.
        How: Only the per_page=100 URL is registered for the first page.
        """
        self.register_pages(mock_api)

        paged = await invoker.paginate(get("repos/octo/hello/issues"))
        items = await paged.collect()

        assert len(items) == 5
        assert request_count(mock_api) == 3

    async def test_partial_consumption(
        self, invoker: RestInvoker, mock_api: aioresponses
    ) -> None:
        self.register_pages(mock_api)

        paged = await invoker.paginate(get("repos/octo/hello/issues"))
        async for item in paged:
            if item["number"] == 3:
                break

        assert request_count(mock_api) == 2

    async def test_single_page_list_is_plain_result(
        self, invoker: RestInvoker, mock_api: aioresponses
    ) -> None:
        mock_api.get(ISSUES_URL, payload=[{"number": 1}])

        result = await invoker.invoke(get("repos/octo/hello/issues"))

        assert isinstance(result, ApiResult)
        assert result.payload == [{"number": 1}]

    async def test_wrapped_list(
        self, invoker: RestInvoker, mock_api: aioresponses
    ) -> None:
        page2 = f"{API}/search/issues?q=bug&page=2"
        mock_api.get(
            f"{API}/search/issues?q=bug",
            payload={"total_count": 3, "items": [{"id": 1}, {"id": 2}]},
            headers={"Link": link_header(page2)},
        )
        mock_api.get(page2, payload={"total_count": 3, "items": [{"id": 3}]})

        result = await invoker.invoke(
            get("search/issues", query={"q": "bug"}), items_key="items"
        )

        assert isinstance(result, PagedResult)
        assert [item["id"] for item in await result.collect()] == [1, 2, 3]


class TestRateLimits:
    """Test rate limit waits."""

    async def test_waits_until_reset_then_succeeds(
        self, invoker: RestInvoker, mock_api: aioresponses
    ) -> None:
        """
        Why: A spent quota is temporary; the call should complete after reset.
        What: Tests a 403 with reset 2 s ahead followed by success.
        How: Records the sleep and checks it covers the reset.
        """
        mock_api.get(
            REPO_URL,
            status=403,
            payload={"message": "API rate limit exceeded for 1.2.3.4."},
            headers=rate_limited_headers(reset_in=2),
        )
        mock_api.get(REPO_URL, payload={"id": 1})

        with patch("asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            result = await invoker.invoke(get("repos/octo/hello"))

        assert result.payload == {"id": 1}
        mock_sleep.assert_awaited_once()
        assert mock_sleep.call_args[0][0] >= 2
        assert request_count(mock_api) == 2

    async def test_rate_limit_does_not_consume_attempts(
        self, mock_api: aioresponses
    ) -> None:
        invoker = RestInvoker(
            RestInvokerConfig(retry=RetryPolicy(max_attempts=1, backoff_base=0))
        )
        mock_api.get(REPO_URL, status=429, headers={"Retry-After": "1"})
        mock_api.get(REPO_URL, status=429, headers={"Retry-After": "1"})
        mock_api.get(REPO_URL, payload={"id": 1})

        try:
            with patch("asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
                result = await invoker.invoke(get("repos/octo/hello"))
        finally:
            await invoker.close()

        assert result.payload == {"id": 1}
        assert result.attempts == 3
        assert mock_sleep.await_count == 2

    async def test_retry_after_honoured(
        self, invoker: RestInvoker, mock_api: aioresponses
    ) -> None:
        mock_api.get(
            REPO_URL,
            status=403,
            payload={"message": "You have exceeded a secondary rate limit"},
            headers={"Retry-After": "5"},
        )
        mock_api.get(REPO_URL, payload={"id": 1})

        with patch("asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            await invoker.invoke(get("repos/octo/hello"))

        mock_sleep.assert_awaited_once_with(5.0)

    async def test_wait_ceiling(self, mock_api: aioresponses) -> None:
        """
        Why: Waiting an hour is not acceptable for every caller.
        What: Tests that a wait beyond the ceiling raises RateLimitExceeded.
        How: Configures a 10 s ceiling against a reset an hour away.
        """
        invoker = RestInvoker(
            RestInvokerConfig(retry=RetryPolicy(max_rate_limit_wait=10))
        )
        mock_api.get(
            REPO_URL,
            status=403,
            payload={"message": "API rate limit exceeded"},
            headers=rate_limited_headers(reset_in=3600),
        )

        try:
            with patch("asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
                with pytest.raises(RateLimitExceeded) as exc_info:
                    await invoker.invoke(get("repos/octo/hello"))
        finally:
            await invoker.close()

        mock_sleep.assert_not_awaited()
        assert exc_info.value.limit == 5000
        assert exc_info.value.reset_time is not None
        assert request_count(mock_api) == 1

    async def test_zero_retry_after_reaches_ceiling(
        self, mock_api: aioresponses
    ) -> None:
        """
        Why: A server answering 429 with Retry-After: 0 forever must not
             keep the call spinning.
        What: Tests that zero waits still add up to the ceiling.
        How: Repeats the same 429 with a 10 s ceiling and counts the sleeps.
        """
        invoker = RestInvoker(
            RestInvokerConfig(retry=RetryPolicy(max_rate_limit_wait=10))
        )
        mock_api.get(
            REPO_URL, status=429, headers={"Retry-After": "0"}, repeat=True
        )

        try:
            with patch("asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
                with pytest.raises(RateLimitExceeded):
                    await asyncio.wait_for(
                        invoker.invoke(get("repos/octo/hello")), timeout=5
                    )
        finally:
            await invoker.close()

        assert mock_sleep.await_count == 10
        assert all(call.args == (1.0,) for call in mock_sleep.await_args_list)
        assert request_count(mock_api) == 11

    async def test_forbidden_is_not_rate_limit(
        self, invoker: RestInvoker, mock_api: aioresponses
    ) -> None:
        mock_api.get(
            REPO_URL,
            status=403,
            payload={"message": "Resource not accessible by integration"},
            headers={"X-RateLimit-Remaining": "4999", "X-RateLimit-Reset": "1"},
        )

        with patch("asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            with pytest.raises(GitHubAuthenticationError):
                await invoker.invoke(get("repos/octo/hello"))

        mock_sleep.assert_not_awaited()


class TestTransientFailures:
    """Test retries on server and network errors."""

    async def test_gives_up_after_max_attempts(
        self, invoker: RestInvoker, mock_api: aioresponses
    ) -> None:
        """
        Why: Retrying forever on a broken server hides outages.
        What: Tests 502 three times then 200 with max_attempts=3.
        How: Expects TransientFailure and exactly three requests.
        """
        for _ in range(3):
            mock_api.get(REPO_URL, status=502, body=b"Bad Gateway")
        mock_api.get(REPO_URL, payload={"id": 1})

        with patch("asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            with pytest.raises(TransientFailure) as exc_info:
                await invoker.invoke(get("repos/octo/hello"))

        assert request_count(mock_api) == 3
        assert mock_sleep.await_count == 2
        assert exc_info.value.attempts == 3
        assert isinstance(exc_info.value.last_error, GitHubServerError)
        assert exc_info.value.status_code == 502

    async def test_recovers_after_server_error(
        self, invoker: RestInvoker, mock_api: aioresponses
    ) -> None:
        mock_api.get(REPO_URL, status=500, payload={"message": "Server Error"})
        mock_api.get(REPO_URL, payload={"id": 1})

        with patch("asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            result = await invoker.invoke(get("repos/octo/hello"))

        assert result.payload == {"id": 1}
        assert result.attempts == 2
        mock_sleep.assert_awaited_once()

    async def test_backoff_grows(self, mock_api: aioresponses) -> None:
        invoker = RestInvoker(
            RestInvokerConfig(
                retry=RetryPolicy(max_attempts=4, backoff_base=1.0, backoff_factor=2.0)
            )
        )
        for _ in range(4):
            mock_api.get(REPO_URL, status=503)

        try:
            with patch("asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
                with pytest.raises(TransientFailure):
                    await invoker.invoke(get("repos/octo/hello"))
        finally:
            await invoker.close()

        delays = [call.args[0] for call in mock_sleep.await_args_list]
        assert delays == [1.0, 2.0, 4.0]

    async def test_connection_errors_retried(
        self, invoker: RestInvoker, mock_api: aioresponses
    ) -> None:
        for _ in range(3):
            mock_api.get(REPO_URL, exception=aiohttp.ClientConnectionError("reset"))

        with patch("asyncio.sleep", new_callable=AsyncMock):
            with pytest.raises(TransientFailure) as exc_info:
                await invoker.invoke(get("repos/octo/hello"))

        assert isinstance(exc_info.value.last_error, GitHubConnectionError)

    async def test_timeouts_retried(
        self, invoker: RestInvoker, mock_api: aioresponses
    ) -> None:
        mock_api.get(REPO_URL, exception=asyncio.TimeoutError())
        mock_api.get(REPO_URL, payload={"id": 1})

        with patch("asyncio.sleep", new_callable=AsyncMock):
            result = await invoker.invoke(get("repos/octo/hello"))

        assert result.payload == {"id": 1}


class TestClientErrors:
    """Test fail-fast 4xx handling."""

    @pytest.mark.parametrize(
        ("status", "error_class"),
        [
            (400, RequestFailed),
            (401, GitHubAuthenticationError),
            (404, GitHubNotFoundError),
            (422, GitHubValidationError),
        ],
    )
    async def test_client_errors_not_retried(
        self,
        invoker: RestInvoker,
        mock_api: aioresponses,
        status: int,
        error_class: type[RequestFailed],
    ) -> None:
        mock_api.get(
            REPO_URL,
            status=status,
            payload={
                "message": "Nope",
                "documentation_url": "https://docs.github.com/rest",
            },
        )

        with patch("asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            with pytest.raises(error_class) as exc_info:
                await invoker.invoke(get("repos/octo/hello"))

        assert request_count(mock_api) == 1
        mock_sleep.assert_not_awaited()
        assert exc_info.value.status_code == status
        assert exc_info.value.message == "Nope"
        assert exc_info.value.documentation_url == "https://docs.github.com/rest"

    async def test_not_found_is_request_failed(
        self, invoker: RestInvoker, mock_api: aioresponses
    ) -> None:
        mock_api.get(REPO_URL, status=404, payload={"message": "Not Found"})

        with pytest.raises(RequestFailed):
            await invoker.invoke(get("repos/octo/hello"))

        assert request_count(mock_api) == 1


class TestTelemetry:
    """Test telemetry emission."""

    async def test_success_event(
        self,
        invoker: RestInvoker,
        mock_api: aioresponses,
        telemetry: MetricsTelemetrySink,
    ) -> None:
        mock_api.get(REPO_URL, payload={"id": 1})

        await invoker.invoke(get("repos/octo/hello", operation="get_repository"))

        event = telemetry.events[-1]
        assert event.operation == "get_repository"
        assert event.outcome == "success"
        assert event.status_code == 200
        assert event.attempts == 1
        assert event.succeeded

    async def test_failure_event(
        self,
        invoker: RestInvoker,
        mock_api: aioresponses,
        telemetry: MetricsTelemetrySink,
    ) -> None:
        mock_api.get(REPO_URL, status=404, payload={"message": "Not Found"})

        with pytest.raises(GitHubNotFoundError):
            await invoker.invoke(get("repos/octo/hello"))

        event = telemetry.events[-1]
        assert event.outcome == "GitHubNotFoundError"
        assert event.status_code == 404
        assert event.operation == "GET repos/octo/hello"

    async def test_sink_failure_ignored(self, mock_api: aioresponses) -> None:
        """
        Why: Telemetry must never break the call it observes.
        What: Tests a successful call with a sink that always raises.
        How: Wires FailingTelemetrySink into the invoker.
        """
        invoker = RestInvoker(telemetry=FailingTelemetrySink())
        mock_api.get(REPO_URL, payload={"id": 1})

        try:
            result = await invoker.invoke(get("repos/octo/hello"))
        finally:
            await invoker.close()

        assert result.payload == {"id": 1}

    async def test_one_event_per_page(
        self,
        invoker: RestInvoker,
        mock_api: aioresponses,
        telemetry: MetricsTelemetrySink,
    ) -> None:
        page2 = f"{API}/repositories/1/labels?page=2"
        mock_api.get(
            f"{REPO_URL}/labels?per_page=100",
            payload=[{"name": "bug"}],
            headers={"Link": link_header(page2)},
        )
        mock_api.get(page2, payload=[{"name": "docs"}])

        paged = await invoker.paginate(get("repos/octo/hello/labels"))
        await paged.collect()

        assert telemetry.get_summary()["invocations"] == 2
