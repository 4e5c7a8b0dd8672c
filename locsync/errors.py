"""Exception types raised by locsync components.

Inner components raise; only ``locsync.cli.main`` turns these into an exit status.
"""
from typing import Optional


class LocalizationError(Exception):
    """Base class for every fatal locsync error."""


class ConfigError(LocalizationError):
    """Bad or missing configuration (YAML settings, override file, CLI arguments)."""


class ValidationError(LocalizationError):
    """Invalid run input detected before any resource file is touched."""


class ProviderError(LocalizationError):
    """The translation provider failed to return a translation."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body

    def __str__(self) -> str:
        message = super().__str__()
        if self.status_code is not None:
            message = f"{message} (HTTP {self.status_code})"
        if self.body:
            message = f"{message}: {self.body}"
        return message


class AuthError(ProviderError):
    """Authentication against the translation provider failed."""
