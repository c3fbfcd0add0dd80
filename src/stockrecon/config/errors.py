"""Errors raised while loading configuration."""

from __future__ import annotations


class ConfigurationError(RuntimeError):
    """An environment value is present but unusable."""


class MissingConfigurationError(ConfigurationError):
    """A required environment variable is unset or blank."""
