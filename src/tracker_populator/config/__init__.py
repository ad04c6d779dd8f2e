"""Application configuration helpers."""

from __future__ import annotations

from .env import credential_pair, optional_env_var, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError, MissingDirectoryError
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy
from .logging import configure_logging
from .populator import DirectoryConfig, PopulatorOptions
from .tracker import TrackerConfig, api_root, ensure_trailing_slash, get_tracker_config

__all__ = [
    "ConfigurationError",
    "DirectoryConfig",
    "MissingConfigurationError",
    "MissingDirectoryError",
    "PopulatorOptions",
    "RateLimit",
    "ResilienceConfig",
    "RetryPolicy",
    "TrackerConfig",
    "api_root",
    "configure_logging",
    "credential_pair",
    "ensure_trailing_slash",
    "get_tracker_config",
    "optional_env_var",
    "require_env_vars",
]
