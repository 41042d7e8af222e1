"""Application configuration helpers."""

from __future__ import annotations

from .database import DatabaseConfig, get_database_config
from .env import env_flag, require_env_vars
from .errors import (
    ConfigurationError,
    InvalidConfigurationValueError,
    MissingConfigurationError,
)
from .logging import configure_logging, log_level_from_env

__all__ = [
    "ConfigurationError",
    "DatabaseConfig",
    "InvalidConfigurationValueError",
    "MissingConfigurationError",
    "configure_logging",
    "env_flag",
    "get_database_config",
    "log_level_from_env",
    "require_env_vars",
]
