"""Configuration specific exceptions."""

from __future__ import annotations


class ConfigError(Exception):
    """Base class for configuration errors."""


class ConfigValidationError(ConfigError):
    """Raised when a submitted configuration document is rejected."""

    def __init__(self, errors: list[str]) -> None:
        self.errors = list(errors)
        super().__init__("; ".join(self.errors) or "invalid configuration")


class ConfigPersistError(ConfigError):
    """Raised when the configuration file could not be written."""
