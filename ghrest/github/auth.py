"""Credential providers for GitHub requests.

The invoker never stores credentials. Providers hand out an ``AuthToken``
per call and the token travels inside the request descriptor.
"""

import asyncio
import base64
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime

import aiohttp
import jwt

from .exceptions import GitHubAuthenticationError

# Refresh expiring tokens this many seconds early
EXPIRY_MARGIN = 60


@dataclass(frozen=True)
class AuthToken:
    """A credential ready to be sent, with its optional expiry (epoch seconds)."""

    token: str
    token_type: str = "Bearer"
    expires_at: int | None = None

    @property
    def is_expired(self) -> bool:
        if self.expires_at is None:
            return False
        return time.time() >= self.expires_at

    def expires_within(self, seconds: float) -> bool:
        if self.expires_at is None:
            return False
        return time.time() + seconds >= self.expires_at

    def to_header(self) -> dict[str, str]:
        return {"Authorization": f"{self.token_type} {self.token}"}

    def __repr__(self) -> str:
        return f"AuthToken(token_type={self.token_type!r}, token='***')"


class AuthProvider(ABC):
    """Source of credentials for the invoker."""

    @abstractmethod
    async def get_token(self) -> AuthToken:
        """Current token, refreshed first when it is about to expire."""
        pass

    async def refresh_token(self) -> AuthToken:
        return await self.get_token()

    async def validate_token(self) -> bool:
        """Whether a usable token is available without refreshing."""
        return True


class StaticTokenAuth(AuthProvider):
    """Provider for credentials that never change."""

    def __init__(self, token: AuthToken):
        self._token = token

    async def get_token(self) -> AuthToken:
        return self._token


class PersonalAccessTokenAuth(StaticTokenAuth):
    """Personal access token, sent with the ``token`` scheme."""

    def __init__(self, token: str):
        if not token:
            raise GitHubAuthenticationError("Personal Access Token is required")
        super().__init__(AuthToken(token=token, token_type="token"))  # nosec B106


class BasicAuth(StaticTokenAuth):
    """HTTP basic authentication with a user name and password or token."""

    def __init__(self, username: str, password: str):
        if not username:
            raise GitHubAuthenticationError("User name is required for basic auth")
        encoded = base64.b64encode(f"{username}:{password}".encode()).decode("ascii")
        self.username = username
        super().__init__(AuthToken(token=encoded, token_type="Basic"))  # nosec B106


class TokenAuth(StaticTokenAuth):
    """Pre-issued token with a configurable scheme (Bearer by default)."""

    DEFAULT_TOKEN_TYPE = "Bearer"  # nosec B105

    def __init__(self, token: str, token_type: str | None = None):
        super().__init__(
            AuthToken(token=token, token_type=token_type or self.DEFAULT_TOKEN_TYPE)
        )


class GitHubAppAuth(AuthProvider):
    """GitHub App authentication.

    Without an installation id the provider hands out app JWTs, which only
    work on ``/app`` endpoints. With one, the JWT is exchanged for an
    installation access token that is cached until shortly before it
    expires.
    """

    def __init__(
        self,
        app_id: str,
        private_key: str,
        installation_id: str | None = None,
        base_url: str = "https://api.github.com",
        timeout: float = 30.0,
    ):
        """Initialize GitHub App authentication.

        Args:
            app_id: GitHub App ID
            private_key: PEM private key used to sign the app JWT
            installation_id: Installation to act as, app JWTs only if None
            base_url: API root used for the token exchange
            timeout: Timeout of the token exchange request in seconds
        """
        self.app_id = app_id
        self.private_key = private_key
        self.installation_id = installation_id
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._current_token: AuthToken | None = None
        self._lock = asyncio.Lock()

    def _generate_jwt(self) -> str:
        now = int(time.time())
        payload = {
            "iat": now - 60,  # clock drift allowance
            "exp": now + 600,  # GitHub caps app JWTs at 10 minutes
            "iss": self.app_id,
        }

        try:
            token = jwt.encode(payload, self.private_key, algorithm="RS256")
            return token if isinstance(token, str) else token.decode("utf-8")
        except Exception as e:
            raise GitHubAuthenticationError(f"Failed to generate JWT: {e}") from e

    async def get_token(self) -> AuthToken:
        token = self._current_token
        if token and not token.expires_within(EXPIRY_MARGIN):
            return token

        async with self._lock:
            token = self._current_token
            if token and not token.expires_within(EXPIRY_MARGIN):
                return token
            return await self._refresh()

    async def refresh_token(self) -> AuthToken:
        async with self._lock:
            return await self._refresh()

    async def validate_token(self) -> bool:
        if not self._current_token:
            return False
        return not self._current_token.is_expired

    async def _refresh(self) -> AuthToken:
        app_jwt = self._generate_jwt()
        if self.installation_id is None:
            self._current_token = AuthToken(
                token=app_jwt,
                token_type="Bearer",  # nosec B106
                expires_at=int(time.time()) + 540,
            )
        else:
            self._current_token = await self._exchange(app_jwt)
        return self._current_token

    async def _exchange(self, app_jwt: str) -> AuthToken:
        """Trade an app JWT for an installation access token."""
        url = f"{self.base_url}/app/installations/{self.installation_id}/access_tokens"
        headers = {
            "Authorization": f"Bearer {app_jwt}",
            "Accept": "application/vnd.github+json",
        }
        timeout = aiohttp.ClientTimeout(total=self.timeout)
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.post(url, headers=headers) as response:
                    data = await response.json(content_type=None)
                    if response.status != 201:
                        message = (data or {}).get("message", f"HTTP {response.status}")
                        raise GitHubAuthenticationError(
                            f"Installation token exchange failed: {message}",
                            status_code=response.status,
                        )
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            raise GitHubAuthenticationError(
                f"Installation token exchange failed: {e}"
            ) from e

        if not isinstance(data, dict) or not data.get("token"):
            raise GitHubAuthenticationError(
                "Installation token exchange failed: response has no token",
                status_code=201,
            )

        return AuthToken(
            token=data["token"],
            token_type="token",  # nosec B106
            expires_at=_parse_timestamp(data.get("expires_at")),
        )


def _parse_timestamp(value: str | None) -> int | None:
    if not value:
        return None
    return int(datetime.fromisoformat(value.replace("Z", "+00:00")).timestamp())
