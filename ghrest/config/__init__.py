"""Configuration for the GitHub REST client.

Settings come from YAML files with environment variable substitution and
are validated by Pydantic models. Example::

    from ghrest.config import load_settings

    settings = load_settings("ghrest.yaml")
    invoker_config = settings.to_invoker_config()
"""

from .exceptions import (
    ConfigurationError,
    ConfigurationFileError,
    ConfigurationValidationError,
)
from .loader import ConfigurationLoader, load_settings
from .models import (
    ApiConfig,
    DefaultsConfig,
    LoggingConfig,
    LogLevel,
    RetryConfig,
    Settings,
    TelemetryConfig,
)
from .utils import configure_logging, get_config_summary, mask_sensitive_values

__all__ = [
    "ApiConfig",
    "ConfigurationError",
    "ConfigurationFileError",
    "ConfigurationLoader",
    "ConfigurationValidationError",
    "DefaultsConfig",
    "LogLevel",
    "LoggingConfig",
    "RetryConfig",
    "Settings",
    "TelemetryConfig",
    "configure_logging",
    "get_config_summary",
    "load_settings",
    "mask_sensitive_values",
]
