"""Exception hierarchy for dotboot."""

from __future__ import annotations


class DotbootError(RuntimeError):
    """Raised when dotboot encounters an unrecoverable state."""


class ConfigError(DotbootError):
    """Raised when a configuration file cannot be parsed or validated."""


class PreflightError(DotbootError):
    """Raised when a required toolchain is missing and must be installed first."""


class BrewfileError(DotbootError):
    """Raised when the Brewfile manifest contains an unsupported line."""


class LinkError(DotbootError):
    """Raised when a managed link cannot be deployed."""
