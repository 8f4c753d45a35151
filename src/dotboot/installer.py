"""High level orchestration of a full bootstrap run."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable

from .config import LinkStrategyName, load_config
from .context import RunContext
from .homebrew import install_packages
from .identity import Prompter, configure_identity
from .links import deploy_links
from .models import BrewfileEntry, IdentityOutcome, LinkResult, PluginResult, ThemeResult
from .preflight import check_toolchain, ensure_checkout
from .shell import install_shell
from .themes import fetch_themes

logger = logging.getLogger(__name__)


@dataclass
class RunReport:
    """What a run did, stage by stage."""

    context: RunContext
    completed: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    packages: list[BrewfileEntry] = field(default_factory=list)
    plugins: list[PluginResult] = field(default_factory=list)
    links: list[LinkResult] = field(default_factory=list)
    themes: list[ThemeResult] = field(default_factory=list)
    identity: IdentityOutcome | None = None

    @property
    def backup_dir(self) -> Path | None:
        backup = self.context.backup
        return backup.path if backup is not None else None


class Installer:
    """Runs the bootstrap stages in order, stopping at the first failure."""

    def __init__(
        self,
        ctx: RunContext,
        *,
        config_path: Path | None = None,
        skip: Iterable[str] = (),
        strategy: LinkStrategyName | None = None,
        prompter: Prompter | None = None,
    ) -> None:
        self.ctx = ctx
        self.config_path = config_path
        self.skip = set(skip)
        self.strategy = strategy
        self.prompter = prompter

    def run(self) -> RunReport:
        settings = self.ctx.config.settings
        self.ctx.console.print("[bold]=== dotboot installer ===[/bold]")
        self.ctx.console.print(f"Dotfiles location: {settings.dotfiles_dir}")

        check_toolchain(self.ctx)
        ctx = ensure_checkout(self.ctx)
        if ctx.relocated and self.config_path is None:
            # The fresh checkout may ship its own dotboot.toml.
            ctx = ctx.evolve(config=load_config(search_dir=ctx.cwd))
        self.ctx = ctx

        report = RunReport(context=ctx, completed=["preflight", "bootstrap"])
        backup = ctx.ensure_backup()
        ctx.console.print(f"Backup directory:  {backup.path}")

        skip = self.skip | set(ctx.config.settings.skip)
        stages: list[tuple[str, Callable[[RunReport], None]]] = [
            ("packages", self._packages),
            ("shell", self._shell),
            ("links", self._links),
            ("themes", self._themes),
            ("identity", self._identity),
        ]
        for name, stage in stages:
            if name in skip:
                logger.info("Skipping stage %s", name)
                report.skipped.append(name)
                continue
            ctx.console.rule(name)
            stage(report)
            report.completed.append(name)

        return report

    def _packages(self, report: RunReport) -> None:
        report.packages = install_packages(self.ctx)

    def _shell(self, report: RunReport) -> None:
        report.plugins = install_shell(self.ctx)

    def _links(self, report: RunReport) -> None:
        report.links = deploy_links(self.ctx, self.strategy)

    def _themes(self, report: RunReport) -> None:
        report.themes = fetch_themes(self.ctx)

    def _identity(self, report: RunReport) -> None:
        report.identity = configure_identity(self.ctx, self.prompter)
