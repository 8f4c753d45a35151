"""Shared models and enums for dotboot."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path


class BrewfileKind(str, Enum):
    """Install directives understood in the Brewfile."""

    FORMULA = "brew"
    CASK = "cask"


@dataclass(frozen=True, slots=True)
class BrewfileEntry:
    """A single package or application declared in the Brewfile."""

    kind: BrewfileKind
    name: str
    comment: str | None = None


class LinkAction(str, Enum):
    """Outcome of deploying a single managed link."""

    LINKED = "linked"
    BACKED_UP = "backed_up"
    REPLACED = "replaced"
    UNCHANGED = "unchanged"
    STOWED = "stowed"


@dataclass(frozen=True, slots=True)
class LinkResult:
    """Result emitted when deploying a link or a stow package."""

    source: Path
    destination: Path
    action: LinkAction
    backup: Path | None = None


class LinkState(str, Enum):
    """States reported by ``dotboot status``."""

    LINKED = "linked"
    MISSING = "missing"
    CONFLICT = "conflict"
    FOREIGN = "foreign"


@dataclass(frozen=True, slots=True)
class LinkStatus:
    source: Path
    destination: Path
    state: LinkState
    details: str | None = None


class PluginAction(str, Enum):
    """Outcome of installing a shell plugin."""

    BUILTIN = "builtin"
    PRESENT = "present"
    CLONED = "cloned"
    UNKNOWN = "unknown"


@dataclass(frozen=True, slots=True)
class PluginResult:
    name: str
    action: PluginAction
    path: Path | None = None


class ThemeAction(str, Enum):
    """Outcome of copying one theme asset."""

    COPIED = "copied"
    MISSING = "missing"


@dataclass(frozen=True, slots=True)
class ThemeResult:
    source: Path
    destination: Path
    action: ThemeAction


class IdentityOutcome(str, Enum):
    """Terminal states of the identity configurator."""

    CREATED = "created"
    UPDATED = "updated"
    KEPT = "kept"
