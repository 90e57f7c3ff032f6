"""Configuration helpers: logging setup and safe summaries."""

import copy
import logging
from typing import Any

from .models import LoggingConfig, Settings

SENSITIVE_PATTERNS = (
    "password",
    "token",
    "secret",
    "credential",
    "private_key",
    "authorization",
)


def configure_logging(config: LoggingConfig | None = None) -> None:
    """Apply the logging configuration to the root logger."""
    config = config or LoggingConfig()
    logging.basicConfig(
        level=getattr(logging, config.level.value),
        format=config.format,
    )
    # aiohttp logs every connection at DEBUG, which drowns request logs
    if config.level.value != "DEBUG":
        logging.getLogger("aiohttp").setLevel(logging.WARNING)


def mask_sensitive_values(config_dict: dict[str, Any]) -> dict[str, Any]:
    """Mask sensitive values in a configuration dictionary for logging."""
    masked_config = copy.deepcopy(config_dict)

    def mask_recursive(obj: Any, path: str = "") -> Any:
        if isinstance(obj, dict):
            return {
                k: mask_recursive(v, f"{path}.{k}" if path else k)
                for k, v in obj.items()
            }
        elif isinstance(obj, list):
            return [mask_recursive(item, f"{path}[{i}]") for i, item in enumerate(obj)]
        elif isinstance(obj, str):
            field_name = path.split(".")[-1].lower()
            if (
                any(pattern in field_name for pattern in SENSITIVE_PATTERNS)
                and obj.strip()
                and not obj.startswith("${")
            ):
                return f"{'*' * min(len(obj), 8)}..."
        return obj

    return mask_recursive(masked_config)  # type: ignore[no-any-return]


def get_config_summary(settings: Settings) -> dict[str, Any]:
    """Summary of the active settings, safe to log."""
    summary = {
        "api": {
            "base_url": settings.api.base_url,
            "per_page": settings.api.per_page,
            "proxy": settings.api.proxy,
        },
        "retry": {
            "max_attempts": settings.retry.max_attempts,
            "max_rate_limit_wait": settings.retry.max_rate_limit_wait,
        },
        "telemetry_disabled": settings.telemetry.disabled,
        "defaults": {
            "owner": settings.defaults.owner,
            "repository": settings.defaults.repository,
        },
        "log_level": settings.logging.level.value,
    }
    return mask_sensitive_values(summary)
