"""Core package for the dotboot project."""

from .cli import app, run
from .config import Config, LinkStrategyName, PluginSpec, load_config
from .context import RunContext
from .errors import BrewfileError, ConfigError, DotbootError, LinkError, PreflightError
from .installer import Installer, RunReport
from .models import (
    BrewfileEntry,
    BrewfileKind,
    IdentityOutcome,
    LinkAction,
    LinkResult,
    PluginAction,
    PluginResult,
    ThemeAction,
    ThemeResult,
)

__all__ = [
    "Config",
    "LinkStrategyName",
    "PluginSpec",
    "load_config",
    "RunContext",
    "Installer",
    "RunReport",
    "DotbootError",
    "ConfigError",
    "PreflightError",
    "BrewfileError",
    "LinkError",
    "BrewfileEntry",
    "BrewfileKind",
    "IdentityOutcome",
    "LinkAction",
    "LinkResult",
    "PluginAction",
    "PluginResult",
    "ThemeAction",
    "ThemeResult",
    "app",
    "run",
]
