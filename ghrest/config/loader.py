"""Configuration loading.

Settings are loaded from a YAML file or a dictionary, validated, and handed
back to the caller. Nothing is kept in module state: the caller owns the
returned ``Settings`` and passes it to the client context.

The loading hierarchy is:
1. Default values from Pydantic models
2. Configuration file (YAML)
3. Environment variables referenced from the file
"""

import logging
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from .exceptions import ConfigurationFileError, ConfigurationValidationError
from .models import Settings

logger = logging.getLogger(__name__)

CONFIG_PATH_ENV = "GHREST_CONFIG_PATH"
DEFAULT_CONFIG_FILENAME = "ghrest.yaml"


class ConfigurationLoader:
    """Loads ``Settings`` from the supported sources."""

    def __init__(self) -> None:
        self._config_file_path: Path | None = None

    @property
    def config_file_path(self) -> Path | None:
        """Path of the file loaded last, if any."""
        return self._config_file_path

    def load_from_file(self, config_path: str | Path) -> Settings:
        """Load settings from a YAML file.

        Args:
            config_path: Path to the YAML configuration file

        Returns:
            Validated settings

        Raises:
            ConfigurationFileError: If file cannot be read or parsed
            ConfigurationValidationError: If configuration validation fails
        """
        config_path = Path(config_path)

        if not config_path.exists():
            raise ConfigurationFileError(
                f"Configuration file not found: {config_path}", str(config_path)
            )

        if not config_path.is_file():
            raise ConfigurationFileError(
                f"Configuration path is not a file: {config_path}", str(config_path)
            )

        try:
            with open(config_path, encoding="utf-8") as f:
                config_data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationFileError(
                f"Failed to parse YAML configuration: {e}", str(config_path)
            ) from e
        except OSError as e:
            raise ConfigurationFileError(
                f"Failed to read configuration file: {e}", str(config_path)
            ) from e

        if config_data is None:
            config_data = {}
        if not isinstance(config_data, dict):
            raise ConfigurationFileError(
                "Configuration file must contain a mapping", str(config_path)
            )

        settings = self.load_from_dict(config_data)
        self._config_file_path = config_path.resolve()
        logger.debug(f"Loaded configuration from {self._config_file_path}")
        return settings

    def load_from_dict(self, config_data: dict[str, Any]) -> Settings:
        """Load settings from a dictionary.

        Raises:
            ConfigurationValidationError: If configuration validation fails
        """
        try:
            return Settings(**config_data)
        except ValidationError as e:
            raise ConfigurationValidationError.from_pydantic(e) from e
        except ValueError as e:
            raise ConfigurationValidationError(
                f"Configuration validation failed: {e}"
            ) from e

    def find_config_file(
        self, filename: str = DEFAULT_CONFIG_FILENAME
    ) -> Path | None:
        """Find configuration file in standard locations.

        Search order:
        1. Current working directory
        2. GHREST_CONFIG_PATH environment variable (file or directory)
        3. ~/.ghrest/
        """
        search_paths = [Path.cwd() / filename]

        env_path_str = os.getenv(CONFIG_PATH_ENV)
        if env_path_str:
            env_path = Path(env_path_str)
            search_paths.append(env_path if env_path.is_file() else env_path / filename)

        search_paths.append(Path.home() / ".ghrest" / filename)

        for path in search_paths:
            if path.exists() and path.is_file():
                return path

        return None

    def auto_load(self, filename: str = DEFAULT_CONFIG_FILENAME) -> Settings:
        """Load from the first file found, or defaults when there is none."""
        config_path = self.find_config_file(filename)
        if config_path is None:
            logger.debug("No configuration file found, using defaults")
            return Settings()
        return self.load_from_file(config_path)


def load_settings(config_path: str | Path | None = None) -> Settings:
    """Load settings from an explicit path or by auto-discovery.

    Raises:
        ConfigurationError: If configuration cannot be loaded or is invalid
    """
    loader = ConfigurationLoader()
    if config_path:
        return loader.load_from_file(config_path)
    return loader.auto_load()
