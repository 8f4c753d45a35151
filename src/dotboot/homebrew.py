"""Homebrew installation, activation and Brewfile application."""

from __future__ import annotations

import logging
import os
import re
from typing import Mapping

from .brewfile import load_brewfile
from .context import RunContext
from .filesystem import append_line_once
from .models import BrewfileEntry

logger = logging.getLogger(__name__)

_ASSIGN_RE = re.compile(
    r"""^\s*(?:export\s+)?(?P<key>[A-Za-z_][A-Za-z0-9_]*)=(?P<value>"[^"]*"|'[^']*'|[^;\s]*)"""
)
# ${NAME}, ${NAME+:$NAME}, ${NAME:-default} and $NAME
_REF_RE = re.compile(r"\$\{(?P<name>\w+)(?P<op>\+:\$\w+|:-[^}]*)?\}|\$(?P<bare>\w+)")


def brew_installed(ctx: RunContext) -> bool:
    brew = ctx.config.homebrew.brew
    return brew.is_file() and os.access(brew, os.X_OK)


def ensure_homebrew(ctx: RunContext) -> bool:
    """Install Homebrew when missing. Returns ``True`` if it was installed."""

    homebrew = ctx.config.homebrew
    ctx.console.print("Checking Homebrew installation...")
    if brew_installed(ctx):
        ctx.console.print("[green]Homebrew already installed.[/green]")
        return False

    ctx.console.print("Installing Homebrew...")
    script = ctx.run(["curl", "-fsSL", homebrew.install_url]).stdout
    ctx.run(["/bin/bash", "-c", script], capture=False)

    if append_line_once(homebrew.profile, homebrew.shellenv_line):
        ctx.console.print(f"Added Homebrew to {homebrew.profile}")
    return True


def _expand_refs(value: str, env: Mapping[str, str]) -> str:
    def substitute(match: re.Match[str]) -> str:
        name = match.group("name") or match.group("bare")
        current = env.get(name)
        op = match.group("op")
        if op is None:
            return current or ""
        if op.startswith("+"):
            return f":{current}" if current is not None else ""
        return current if current else op[2:]

    return _REF_RE.sub(substitute, value)


def parse_shellenv(output: str, env: Mapping[str, str]) -> dict[str, str]:
    """Extract variable assignments from ``brew shellenv`` output.

    References to existing variables (``${PATH+:$PATH}``) are expanded
    against ``env``; lines that are not plain assignments are ignored.
    """

    values: dict[str, str] = {}
    for line in output.splitlines():
        match = _ASSIGN_RE.match(line)
        if match is None:
            continue
        raw_value = match.group("value")
        if raw_value.startswith("'"):
            values[match.group("key")] = raw_value[1:-1]
            continue
        if raw_value.startswith('"'):
            raw_value = raw_value[1:-1]
        values[match.group("key")] = _expand_refs(raw_value, {**env, **values})
    return values


def activate(ctx: RunContext) -> dict[str, str]:
    """Load ``brew shellenv`` into the run environment.

    A freshly installed Homebrew is not on the ``PATH`` of the running
    process, so this happens on every run.
    """

    result = ctx.run([str(ctx.config.homebrew.brew), "shellenv"])
    exports = parse_shellenv(result.stdout, ctx.env)
    ctx.env.update(exports)
    logger.debug("Activated Homebrew environment: %s", exports)
    return exports


def update(ctx: RunContext) -> None:
    ctx.console.print("Updating Homebrew...")
    ctx.run(["brew", "update"], capture=False)


def bundle(ctx: RunContext) -> list[BrewfileEntry]:
    """Apply the whole Brewfile in a single ``brew bundle`` call."""

    homebrew = ctx.config.homebrew
    entries = load_brewfile(homebrew.brewfile)
    ctx.console.print(f"Installing {len(entries)} entries from {homebrew.brewfile}...")

    argv = ["brew", "bundle", "--file", str(homebrew.brewfile)]
    if homebrew.no_lock:
        argv.append("--no-lock")
    ctx.run(argv, cwd=ctx.config.settings.dotfiles_dir, capture=False)
    return entries


def configure_lfs(ctx: RunContext) -> bool:
    if not ctx.config.homebrew.lfs:
        return False
    ctx.console.print("Configuring Git LFS...")
    ctx.run(["git", "lfs", "install"], capture=False)
    return True


def install_packages(ctx: RunContext) -> list[BrewfileEntry]:
    ensure_homebrew(ctx)
    activate(ctx)
    if ctx.config.homebrew.update:
        update(ctx)
    entries = bundle(ctx)
    configure_lfs(ctx)
    return entries
