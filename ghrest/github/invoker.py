"""Single chokepoint for GitHub REST calls.

``RestInvoker`` turns a ``RequestDescriptor`` into decoded data. It waits out
rate limits until the advertised reset (bounded by a ceiling), retries
server and network failures with exponential backoff, fails fast on other
client errors and exposes multi-page lists as lazy sequences.
"""

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Any

import aiohttp
from multidict import CIMultiDict, CIMultiDictProxy

from ..telemetry import (
    OUTCOME_SUCCESS,
    NullTelemetrySink,
    TelemetryEvent,
    TelemetrySink,
    emit_event,
)
from .exceptions import (
    GitHubAuthenticationError,
    GitHubConnectionError,
    GitHubError,
    GitHubNotFoundError,
    GitHubServerError,
    GitHubTimeoutError,
    GitHubValidationError,
    RateLimitExceeded,
    RequestFailed,
    TransientFailure,
)
from .pagination import MAX_PER_PAGE, PagedResult
from .rate_limiting import (
    RateLimitInfo,
    RetryPolicy,
    RetryState,
    is_rate_limited,
    parse_retry_after,
    rate_limit_wait,
)
from .request import DEFAULT_ACCEPT, HttpMethod, RequestDescriptor
from .response import ApiResult, error_message

logger = logging.getLogger(__name__)


@dataclass
class RestInvokerConfig:
    """Configuration for the REST invoker."""

    base_url: str = "https://api.github.com"
    timeout: int = 30
    user_agent: str = "ghrest/0.1"
    api_version: str | None = "2022-11-28"
    per_page: int = MAX_PER_PAGE
    proxy: str | None = None
    max_concurrent_requests: int = 10
    retry: RetryPolicy = field(default_factory=RetryPolicy)


@dataclass(frozen=True)
class _RawResponse:
    status: int
    headers: CIMultiDictProxy[str]
    body: bytes


class RestInvoker:
    """Async GitHub REST invoker.

    The invoker keeps no per-call state between invocations; credentials
    travel inside each descriptor, so one instance can serve many tasks.
    """

    def __init__(
        self,
        config: RestInvokerConfig | None = None,
        telemetry: TelemetrySink | None = None,
    ) -> None:
        """Initialize the invoker.

        Args:
            config: Invoker configuration
            telemetry: Sink receiving one event per invocation
        """
        self.config = config or RestInvokerConfig()
        self.telemetry = telemetry or NullTelemetrySink()

        # HTTP session will be initialized on first use
        self._session: aiohttp.ClientSession | None = None
        self._session_lock = asyncio.Lock()
        self._request_semaphore = asyncio.Semaphore(self.config.max_concurrent_requests)

    async def __aenter__(self) -> "RestInvoker":
        await self._ensure_session()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def _ensure_session(self) -> None:
        if self._session is None or self._session.closed:
            async with self._session_lock:
                if self._session is None or self._session.closed:
                    timeout = aiohttp.ClientTimeout(total=self.config.timeout)
                    connector = aiohttp.TCPConnector(limit=100, limit_per_host=30)
                    self._session = aiohttp.ClientSession(
                        timeout=timeout, connector=connector
                    )

    async def close(self) -> None:
        """Close HTTP session and cleanup resources."""
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None

    def _generate_correlation_id(self) -> str:
        return str(uuid.uuid4())[:8]

    async def invoke(
        self,
        descriptor: RequestDescriptor,
        *,
        items_key: str | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> ApiResult | PagedResult:
        """Execute a descriptor.

        Args:
            descriptor: Request to issue
            items_key: Key of the wrapped list for endpoints that page an
                object (search results, check runs)
            cancel_event: Stops fetching further pages once set

        Returns:
            ``PagedResult`` when the response is a list with a next page,
            otherwise the single ``ApiResult``

        Raises:
            RequestFailed: On 4xx responses other than rate limiting
            RateLimitExceeded: When the rate limit wait ceiling is reached
            TransientFailure: When server/network retries are exhausted
            MalformedResponse: When the body cannot be decoded
        """
        result = await self._execute(descriptor)

        list_shaped = result.is_list or (
            items_key is not None and isinstance(result.payload, dict)
        )
        if list_shaped and result.cursor is not None:
            return PagedResult(
                self,
                descriptor,
                result,
                items_key=items_key,
                cancel_event=cancel_event,
            )
        return result

    async def paginate(
        self,
        descriptor: RequestDescriptor,
        *,
        items_key: str | None = None,
        max_pages: int | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> PagedResult:
        """Execute a list descriptor and always return a lazy sequence.

        ``per_page`` is added to relative GET requests that do not set it.
        """
        if (
            descriptor.method is HttpMethod.GET
            and not descriptor.is_absolute
            and "per_page" not in descriptor.query
        ):
            descriptor = descriptor.with_query(
                per_page=min(self.config.per_page, MAX_PER_PAGE)
            )

        first = await self._execute(descriptor)
        return PagedResult(
            self,
            descriptor,
            first,
            items_key=items_key,
            max_pages=max_pages,
            cancel_event=cancel_event,
        )

    async def fetch_page(self, descriptor: RequestDescriptor) -> ApiResult:
        """Fetch one further page for a ``PagedResult``."""
        return await self._execute(descriptor)

    async def _execute(self, descriptor: RequestDescriptor) -> ApiResult:
        correlation_id = self._generate_correlation_id()
        state = RetryState(max_attempts=self.config.retry.max_attempts)
        started = time.monotonic()
        outcome = "error"
        status_code: int | None = None

        try:
            result = await self._execute_with_retry(descriptor, state, correlation_id)
            outcome = OUTCOME_SUCCESS
            status_code = result.status_code
            return result
        except GitHubError as e:
            outcome = type(e).__name__
            status_code = e.status_code
            raise
        finally:
            emit_event(
                self.telemetry,
                TelemetryEvent(
                    operation=descriptor.label,
                    method=descriptor.method.value,
                    path=descriptor.path,
                    duration=time.monotonic() - started,
                    outcome=outcome,
                    status_code=status_code,
                    attempts=state.attempt_count + state.rate_limit_retries,
                    rate_limit_waited=state.rate_limit_waited,
                    correlation_id=correlation_id,
                ),
            )

    async def _execute_with_retry(
        self,
        descriptor: RequestDescriptor,
        state: RetryState,
        correlation_id: str,
    ) -> ApiResult:
        while True:
            state.start_attempt()
            try:
                response = await self._send(descriptor, state, correlation_id)
            except (GitHubConnectionError, GitHubTimeoutError) as e:
                await self._backoff_or_fail(descriptor, state, e, correlation_id)
                continue

            if 200 <= response.status < 300:
                return ApiResult.from_response(
                    response.status,
                    response.headers,
                    response.body,
                    attempts=state.attempt_count + state.rate_limit_retries,
                )

            message, data = error_message(response.status, response.body)
            logger.warning(
                f"GitHub API error [{correlation_id}] {response.status}: {message}"
            )

            if is_rate_limited(response.status, response.headers, message):
                await self._wait_for_rate_limit(
                    state, response, message, correlation_id
                )
                continue

            if response.status >= 500:
                error = GitHubServerError(message, response.status, data)
                await self._backoff_or_fail(descriptor, state, error, correlation_id)
                continue

            raise self._client_error(response.status, message, data)

    async def _send(
        self,
        descriptor: RequestDescriptor,
        state: RetryState,
        correlation_id: str,
    ) -> _RawResponse:
        await self._ensure_session()
        if not self._session:
            raise GitHubConnectionError("Failed to initialize HTTP session")

        method = descriptor.method.value
        url = descriptor.url(self.config.base_url)
        data, content_type = descriptor.serialize_body()
        headers = self._build_headers(descriptor, content_type)

        logger.debug(
            f"GitHub API request [{correlation_id}] {method} {url} "
            f"(attempt {state.attempt_count}, "
            f"{'authenticated' if descriptor.auth_token else 'anonymous'})"
        )

        try:
            async with self._request_semaphore:
                start_time = time.monotonic()
                async with self._session.request(
                    method,
                    url,
                    data=data,
                    headers=headers,
                    proxy=self.config.proxy,
                ) as response:
                    body = await response.read()
                    logger.debug(
                        f"GitHub API response [{correlation_id}] {response.status} "
                        f"in {time.monotonic() - start_time:.2f}s"
                    )
                    return _RawResponse(
                        status=response.status,
                        headers=CIMultiDictProxy(CIMultiDict(response.headers)),
                        body=body,
                    )
        except TimeoutError as e:
            raise GitHubTimeoutError(f"Request timeout for {method} {url}") from e
        except aiohttp.ClientError as e:
            raise GitHubConnectionError(
                f"Connection error for {method} {url}: {e}"
            ) from e

    def _build_headers(
        self, descriptor: RequestDescriptor, content_type: str | None
    ) -> CIMultiDict[str]:
        headers: CIMultiDict[str] = CIMultiDict(
            {"Accept": DEFAULT_ACCEPT, "User-Agent": self.config.user_agent}
        )
        if self.config.api_version:
            headers["X-GitHub-Api-Version"] = self.config.api_version
        if content_type:
            headers["Content-Type"] = content_type
        headers.update(descriptor.headers)
        if descriptor.auth_token is not None:
            headers.update(descriptor.auth_token.to_header())
        return headers

    async def _backoff_or_fail(
        self,
        descriptor: RequestDescriptor,
        state: RetryState,
        error: GitHubError,
        correlation_id: str,
    ) -> None:
        state.record_failure(error, self.config.retry)
        if state.exhausted:
            raise TransientFailure(
                f"{descriptor.label} failed after {state.attempt_count} "
                f"attempts: {error}",
                last_error=error,
                attempts=state.attempt_count,
            ) from error

        logger.warning(
            f"Request [{correlation_id}] failed (attempt {state.attempt_count}/"
            f"{state.max_attempts}), retrying in {state.next_delay:.1f}s: {error}"
        )
        await asyncio.sleep(state.next_delay)

    async def _wait_for_rate_limit(
        self,
        state: RetryState,
        response: _RawResponse,
        message: str,
        correlation_id: str,
    ) -> None:
        wait = rate_limit_wait(response.headers)
        info = RateLimitInfo.from_headers(response.headers)
        ceiling = self.config.retry.max_rate_limit_wait

        error = RateLimitExceeded(
            message,
            reset_time=info.reset if info else None,
            remaining=info.remaining if info else 0,
            limit=info.limit if info else 0,
            retry_after=parse_retry_after(response.headers),
            status_code=response.status,
        )

        if state.rate_limit_waited + wait > ceiling:
            raise RateLimitExceeded(
                f"{message} (waiting {wait:.0f}s more would exceed the "
                f"{ceiling:.0f}s rate limit wait ceiling)",
                reset_time=error.reset_time,
                remaining=error.remaining,
                limit=error.limit,
                retry_after=error.retry_after,
                status_code=response.status,
            )

        state.record_rate_limit(error, wait)
        logger.warning(
            f"Rate limited [{correlation_id}], waiting {wait:.1f}s "
            f"before retrying: {message}"
        )
        await asyncio.sleep(wait)

    def _client_error(
        self, status: int, message: str, data: dict[str, Any]
    ) -> RequestFailed:
        if status in (401, 403):
            return GitHubAuthenticationError(message, status, data)
        if status == 404:
            return GitHubNotFoundError(message, status, data)
        if status == 422:
            return GitHubValidationError(message, status, data)
        return RequestFailed(message, status, data)
