"""Errors raised while resolving the two database configurations."""

from __future__ import annotations


class ConfigurationError(RuntimeError):
    """Source or target database settings are unusable; the run cannot start."""


class MissingConfigurationError(ConfigurationError):
    """One or more required settings are absent or blank."""


class UnsupportedProviderError(ConfigurationError):
    """The declared provider is not one of the supported database backends."""

    def __init__(self, provider: str) -> None:
        super().__init__(f"Database provider '{provider}' is not supported")
        self.provider = provider
