"""Client context shared by all resource operations.

A ``GitHubContext`` bundles the invoker, the settings, the credential
provider and the confirmation policy. It is built once and passed to every
operation; none of its fields change after construction.
"""

import asyncio
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from .config.models import Settings
from .confirmation import ConfirmationPolicy, always_confirm
from .github.auth import AuthProvider, AuthToken
from .github.invoker import RestInvoker
from .github.pagination import PagedResult
from .github.request import HttpMethod, RequestDescriptor
from .github.response import ApiResult
from .references import ResolvedRepository, resolve_repository
from .telemetry import TelemetrySink

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GitHubContext:
    """Everything a resource operation needs to talk to GitHub."""

    invoker: RestInvoker
    settings: Settings = field(default_factory=Settings)
    auth: AuthProvider | None = None
    confirm: ConfirmationPolicy = always_confirm

    @classmethod
    def from_settings(
        cls,
        settings: Settings | None = None,
        auth: AuthProvider | None = None,
        telemetry: TelemetrySink | None = None,
        confirm: ConfirmationPolicy = always_confirm,
    ) -> "GitHubContext":
        """Build a context and its invoker from settings."""
        settings = settings or Settings()
        invoker = RestInvoker(
            config=settings.to_invoker_config(),
            telemetry=telemetry or settings.build_telemetry_sink(),
        )
        return cls(invoker=invoker, settings=settings, auth=auth, confirm=confirm)

    async def __aenter__(self) -> "GitHubContext":
        await self.invoker.__aenter__()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.invoker.close()

    async def close(self) -> None:
        await self.invoker.close()

    async def credential(self) -> AuthToken | None:
        """Current token from the credential provider, or None when anonymous."""
        if self.auth is None:
            return None
        return await self.auth.get_token()

    def repository(self, ref: Any = None) -> ResolvedRepository:
        """Resolve a repository reference, falling back to the defaults."""
        return resolve_repository(
            ref,
            default_owner=self.settings.defaults.owner,
            default_name=self.settings.defaults.repository,
        )

    def confirmed(self, action: str) -> bool:
        """Ask the confirmation policy about a destructive action."""
        if self.confirm(action):
            return True
        logger.info(f"Skipped: {action} (not confirmed)")
        return False

    async def request(
        self,
        method: HttpMethod | str,
        path: str,
        *,
        query: Mapping[str, Any] | None = None,
        body: Any = None,
        headers: Mapping[str, str] | None = None,
        operation: str | None = None,
    ) -> RequestDescriptor:
        """Build a descriptor carrying the current credential."""
        return RequestDescriptor(
            method=method,  # type: ignore[arg-type]
            path=path,
            query=dict(query or {}),
            body=body,
            headers=dict(headers or {}),
            auth_token=await self.credential(),
            operation=operation,
        )

    async def call(
        self,
        method: HttpMethod | str,
        path: str,
        *,
        query: Mapping[str, Any] | None = None,
        body: Any = None,
        headers: Mapping[str, str] | None = None,
        operation: str | None = None,
    ) -> ApiResult:
        """Issue a single-resource call and return its result."""
        descriptor = await self.request(
            method, path, query=query, body=body, headers=headers, operation=operation
        )
        result = await self.invoker.invoke(descriptor)
        if isinstance(result, PagedResult):
            return result.first
        return result

    async def paginate(
        self,
        path: str,
        *,
        query: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        operation: str | None = None,
        items_key: str | None = None,
        max_pages: int | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> PagedResult:
        """Issue a list call and return its lazy sequence of records."""
        descriptor = await self.request(
            HttpMethod.GET, path, query=query, headers=headers, operation=operation
        )
        return await self.invoker.paginate(
            descriptor,
            items_key=items_key,
            max_pages=max_pages,
            cancel_event=cancel_event,
        )
