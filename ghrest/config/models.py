"""Pydantic configuration models.

Settings are read once and never mutated; every model is frozen. String
values may reference environment variables as ``${VAR_NAME}`` or
``${VAR_NAME:default}``.

The hierarchy:
- Settings: root
- ApiConfig: host, timeouts, page size, proxy
- RetryConfig: transient retry budget and rate limit wait ceiling
- TelemetryConfig, DefaultsConfig, LoggingConfig
"""

import os
import re
from enum import Enum
from typing import Any
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..github.invoker import RestInvokerConfig
from ..github.pagination import MAX_PER_PAGE
from ..github.rate_limiting import RetryPolicy
from ..telemetry import LoggingTelemetrySink, NullTelemetrySink, TelemetrySink

_ENV_PATTERN = re.compile(r"\$\{([^}:]+)(?::([^}]*))?\}")


class LogLevel(str, Enum):
    """Supported logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class BaseConfigModel(BaseModel):
    """Base configuration model with environment variable substitution."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    @model_validator(mode="before")
    @classmethod
    def substitute_env_vars(cls, values: Any) -> Any:
        """Substitute environment variables in string values.

        Raises:
            ValueError: If a required environment variable is missing
        """

        def replacer(match: re.Match[str]) -> str:
            var_name = match.group(1)
            default_value = match.group(2)

            env_value = os.getenv(var_name)
            if env_value is not None:
                return env_value
            if default_value is not None:
                return default_value
            raise ValueError(f"Required environment variable '{var_name}' not found")

        def substitute_value(value: Any) -> Any:
            if isinstance(value, str):
                return _ENV_PATTERN.sub(replacer, value)
            elif isinstance(value, dict):
                return {k: substitute_value(v) for k, v in value.items()}
            elif isinstance(value, list):
                return [substitute_value(item) for item in value]
            return value

        if not isinstance(values, dict):
            return values
        return {key: substitute_value(value) for key, value in values.items()}


class ApiConfig(BaseConfigModel):
    """GitHub API endpoint settings."""

    base_url: str = Field(
        default="https://api.github.com", description="REST API root URL"
    )

    timeout: int = Field(
        default=30, ge=1, le=600, description="Total request timeout in seconds"
    )

    user_agent: str = Field(default="ghrest/0.1", description="User-Agent header")

    api_version: str | None = Field(
        default="2022-11-28", description="X-GitHub-Api-Version header value"
    )

    per_page: int = Field(
        default=MAX_PER_PAGE,
        ge=1,
        le=MAX_PER_PAGE,
        description="Default page size for list endpoints",
    )

    proxy: str | None = Field(default=None, description="HTTP(S) proxy URL")

    max_concurrent_requests: int = Field(
        default=10, ge=1, le=100, description="In-flight request limit"
    )

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        parsed = urlparse(v)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError(f"Invalid API base URL: {v!r}")
        return v.rstrip("/")

    @field_validator("proxy")
    @classmethod
    def validate_proxy(cls, v: str | None) -> str | None:
        if not v:
            return None
        if not urlparse(v).netloc:
            raise ValueError(f"Invalid proxy URL: {v!r}")
        return v


class RetryConfig(BaseConfigModel):
    """Retry behaviour for transient failures and rate limits."""

    max_attempts: int = Field(
        default=3, ge=1, le=20, description="Attempts for 5xx and network errors"
    )

    backoff_base: float = Field(
        default=1.0, ge=0, description="First backoff delay in seconds"
    )

    backoff_factor: float = Field(
        default=2.0, ge=1.0, description="Multiplier between consecutive delays"
    )

    max_backoff: float = Field(
        default=30.0, ge=0, description="Upper bound of a single backoff delay"
    )

    max_rate_limit_wait: float = Field(
        default=3600.0,
        ge=0,
        description="Total seconds one invocation may wait on rate limits",
    )

    def to_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_attempts=self.max_attempts,
            backoff_base=self.backoff_base,
            backoff_factor=self.backoff_factor,
            max_backoff=self.max_backoff,
            max_rate_limit_wait=self.max_rate_limit_wait,
        )


class TelemetryConfig(BaseConfigModel):
    """Telemetry opt-out and routing."""

    disabled: bool = Field(default=False, description="Opt out of telemetry")

    log_events: bool = Field(
        default=True, description="Write telemetry events to the log"
    )


class DefaultsConfig(BaseConfigModel):
    """Defaults used when a call does not name its repository."""

    owner: str | None = Field(default=None, description="Default owner login")

    repository: str | None = Field(default=None, description="Default repository")


class LoggingConfig(BaseConfigModel):
    """Logging setup."""

    level: LogLevel = Field(default=LogLevel.INFO, description="Root log level")

    format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="logging format string",
    )


class Settings(BaseConfigModel):
    """Root configuration."""

    api: ApiConfig = Field(default_factory=ApiConfig)

    retry: RetryConfig = Field(default_factory=RetryConfig)

    telemetry: TelemetryConfig = Field(default_factory=TelemetryConfig)

    defaults: DefaultsConfig = Field(default_factory=DefaultsConfig)

    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @model_validator(mode="after")
    def validate_defaults(self) -> "Settings":
        """A default repository is meaningless without its owner."""
        if self.defaults.repository and not self.defaults.owner:
            raise ValueError("defaults.repository requires defaults.owner")
        return self

    def to_invoker_config(self) -> RestInvokerConfig:
        return RestInvokerConfig(
            base_url=self.api.base_url,
            timeout=self.api.timeout,
            user_agent=self.api.user_agent,
            api_version=self.api.api_version,
            per_page=self.api.per_page,
            proxy=self.api.proxy,
            max_concurrent_requests=self.api.max_concurrent_requests,
            retry=self.retry.to_policy(),
        )

    def build_telemetry_sink(self) -> TelemetrySink:
        if self.telemetry.disabled or not self.telemetry.log_events:
            return NullTelemetrySink()
        return LoggingTelemetrySink()
