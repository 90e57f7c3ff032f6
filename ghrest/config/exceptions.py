"""Errors raised while loading settings."""

from typing import Any

from pydantic import ValidationError


class ConfigurationError(Exception):
    """Settings could not be loaded."""


class ConfigurationFileError(ConfigurationError):
    """The configuration file is missing, unreadable or not a YAML mapping."""

    def __init__(self, message: str, file_path: str | None = None):
        super().__init__(message)
        self.file_path = file_path


class ConfigurationValidationError(ConfigurationError):
    """Settings values failed validation."""

    def __init__(self, message: str, validation_errors: list[Any] | None = None):
        super().__init__(message)
        self.validation_errors = validation_errors or []

    @property
    def fields(self) -> list[str]:
        """Dotted locations of the invalid values, e.g. ``api.timeout``."""
        return [
            ".".join(str(part) for part in error.get("loc", ()))
            for error in self.validation_errors
        ]

    @classmethod
    def from_pydantic(cls, error: ValidationError) -> "ConfigurationValidationError":
        errors = error.errors()
        summary = "; ".join(
            f"{'.'.join(str(part) for part in e['loc']) or '<root>'}: {e['msg']}"
            for e in errors
        )
        return cls(f"Configuration validation failed: {summary}", errors)
