"""Application configuration document and its manager."""

from .exceptions import ConfigError, ConfigPersistError, ConfigValidationError
from .models import AppConfig, FeatureFlags, normalize_extension
from .service import ConfigManager, validate_config

__all__ = [
    "AppConfig",
    "FeatureFlags",
    "ConfigManager",
    "validate_config",
    "normalize_extension",
    "ConfigError",
    "ConfigPersistError",
    "ConfigValidationError",
]
