"""Toolchain preflight and self-relocation into the canonical checkout."""

from __future__ import annotations

import logging

from .context import RunContext
from .errors import PreflightError
from .filesystem import ensure_parent, remove_path

logger = logging.getLogger(__name__)

REMEDIATION = (
    "Xcode Command Line Tools are being installed. "
    "Complete the installation dialog, then run dotboot again."
)


def toolchain_present(ctx: RunContext) -> bool:
    """Probe for the Xcode Command Line Tools."""

    result = ctx.run(["xcode-select", "-p"], check=False)
    return result.ok


def check_toolchain(ctx: RunContext) -> bool:
    """Ensure the native toolchain exists.

    Returns ``False`` when the probe was skipped. Raises ``PreflightError``
    after kicking off the (asynchronous, GUI driven) installer.
    """

    if ctx.skip_preflight:
        logger.info("Skipping toolchain preflight")
        return False

    ctx.console.print("Checking for Xcode Command Line Tools...")
    if toolchain_present(ctx):
        ctx.console.print("[green]Xcode Command Line Tools are installed.[/green]")
        return True

    ctx.console.print("[yellow]Xcode Command Line Tools not found. Installing...[/yellow]")
    ctx.run(["xcode-select", "--install"], check=False, capture=False)
    raise PreflightError(REMEDIATION)


def running_from_checkout(ctx: RunContext) -> bool:
    """Return ``True`` if we are executing inside the canonical checkout."""

    settings = ctx.config.settings
    return ctx.cwd.name == settings.checkout_name and (settings.dotfiles_dir / ".git").is_dir()


def relocate(ctx: RunContext) -> RunContext:
    """Fetch a fresh checkout and return a context that runs from it.

    Any partial checkout at the canonical path is discarded first. The
    returned context has the preflight disabled, so the relaunch performs the
    toolchain probe at most once per run.
    """

    settings = ctx.config.settings
    target = settings.dotfiles_dir

    ctx.console.print(f"Cloning dotfiles repository to {target}...")
    remove_path(target)
    ensure_parent(target)
    ctx.run(["git", "clone", settings.repo_url, str(target)], cwd=target.parent, capture=False)

    env = dict(ctx.env)
    env[settings.installing_env_var] = "true"
    ctx.console.print("Repository cloned. Continuing from local copy...")
    return ctx.evolve(cwd=target, env=env, skip_preflight=True, relocated=True)


def ensure_checkout(ctx: RunContext) -> RunContext:
    if running_from_checkout(ctx):
        ctx.console.print(f"Running from local repository: {ctx.config.settings.dotfiles_dir}")
        return ctx
    return relocate(ctx)
