"""Configuration error definitions."""

from __future__ import annotations


class ConfigurationError(RuntimeError):
    """Raised when settings for a run are invalid or incomplete."""


class MissingConfigurationError(ConfigurationError):
    """Raised when a required environment variable is absent or blank."""


class MissingDirectoryError(ConfigurationError):
    """Raised when a csv, done or fail directory does not exist."""

    def __init__(self, path: object) -> None:
        super().__init__(f"Directory does not exist: {path}")
        self.path = path
