"""Link manager: materialise managed dotfiles in the home directory."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Protocol, Sequence

from .config import LinkSpec, LinkStrategyName
from .context import RunContext
from .errors import LinkError
from .filesystem import create_symlink, is_real_entry, lexists, symlink_points_to
from .models import LinkAction, LinkResult, LinkState, LinkStatus

logger = logging.getLogger(__name__)


class LinkStrategy(Protocol):
    name: LinkStrategyName

    def deploy(self, ctx: RunContext) -> list[LinkResult]: ...


def backup_real_entry(ctx: RunContext, destination: Path) -> Path | None:
    """Move a real file or directory at ``destination`` into the backup dir."""

    if not is_real_entry(destination):
        return None
    moved_to = ctx.ensure_backup().preserve(destination)
    ctx.console.print(f"Backing up existing {destination} -> {moved_to}")
    return moved_to


def deploy_symlink(ctx: RunContext, spec: LinkSpec) -> LinkResult:
    source, destination = spec.source, spec.destination
    if not lexists(source):
        raise LinkError(f"Managed file '{source}' does not exist in the checkout")

    if symlink_points_to(destination, source):
        return LinkResult(source=source, destination=destination, action=LinkAction.UNCHANGED)

    backup_path = backup_real_entry(ctx, destination)
    if backup_path is not None:
        action = LinkAction.BACKED_UP
    elif destination.is_symlink():
        action = LinkAction.REPLACED
        ctx.console.print(f"Removing old symlink {destination}")
        destination.unlink()
    else:
        action = LinkAction.LINKED

    ctx.console.print(f"Symlinking {source} -> {destination}")
    create_symlink(destination, source)
    return LinkResult(source=source, destination=destination, action=action, backup=backup_path)


class SymlinkStrategy:
    """One symlink per configured file, backing up real files first."""

    name = LinkStrategyName.SYMLINK

    def __init__(self, specs: Sequence[LinkSpec] | None = None) -> None:
        self._specs = specs

    def deploy(self, ctx: RunContext) -> list[LinkResult]:
        specs = self._specs if self._specs is not None else ctx.config.links.symlinks
        ctx.console.print("Creating symlinks...")
        return [deploy_symlink(ctx, spec) for spec in specs]


class StowStrategy:
    """Delegate to GNU stow once per package after backing up known conflicts."""

    name = LinkStrategyName.STOW

    def deploy(self, ctx: RunContext) -> list[LinkResult]:
        links = ctx.config.links
        dotfiles_dir = ctx.config.settings.dotfiles_dir
        results: list[LinkResult] = []

        ctx.console.print("Deploying dotfiles with GNU stow...")
        for conflict in links.stow_conflicts:
            backup_path = backup_real_entry(ctx, conflict)
            if backup_path is not None:
                results.append(
                    LinkResult(
                        source=conflict,
                        destination=conflict,
                        action=LinkAction.BACKED_UP,
                        backup=backup_path,
                    )
                )

        for package in links.stow_packages:
            package_dir = dotfiles_dir / package
            if not package_dir.is_dir():
                raise LinkError(f"Stow package '{package}' does not exist in '{dotfiles_dir}'")
            ctx.run(["stow", "-d", str(dotfiles_dir), "-t", str(ctx.home), package], cwd=dotfiles_dir)
            results.append(LinkResult(source=package_dir, destination=ctx.home, action=LinkAction.STOWED))

        return results


def strategy_for(name: LinkStrategyName) -> LinkStrategy:
    if name is LinkStrategyName.SYMLINK:
        return SymlinkStrategy()
    return StowStrategy()


def deploy_links(ctx: RunContext, strategy: LinkStrategyName | None = None) -> list[LinkResult]:
    chosen = strategy_for(strategy or ctx.config.settings.link_strategy)
    logger.info("Deploying links with the %s strategy", chosen.name.value)
    return chosen.deploy(ctx)


def link_status(ctx: RunContext) -> list[LinkStatus]:
    report: list[LinkStatus] = []
    for spec in ctx.config.links.symlinks:
        destination = spec.destination
        if symlink_points_to(destination, spec.source):
            state, details = LinkState.LINKED, None
        elif destination.is_symlink():
            state, details = LinkState.FOREIGN, "Symlink points elsewhere"
        elif destination.exists():
            state, details = LinkState.CONFLICT, "Real file will be backed up on the next run"
        else:
            state, details = LinkState.MISSING, None
        report.append(LinkStatus(source=spec.source, destination=destination, state=state, details=details))
    return report
