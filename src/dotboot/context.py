"""Run-scoped state threaded through every installer stage."""

from __future__ import annotations

import dataclasses
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping

from rich.console import Console

from .backup import BackupDir
from .command import CommandResult, CommandRunner
from .config import Config


@dataclass
class RunContext:
    """Everything a stage may read or mutate during a single run.

    ``env`` starts as a copy of the process environment and is extended by
    stages (for example Homebrew activation) so that later commands see the
    updated ``PATH`` without touching ``os.environ``.
    """

    config: Config
    home: Path
    cwd: Path
    env: dict[str, str]
    runner: CommandRunner = field(default_factory=CommandRunner)
    console: Console = field(default_factory=Console)
    skip_preflight: bool = False
    relocated: bool = False
    backup: BackupDir | None = None

    @classmethod
    def create(
        cls,
        config: Config,
        *,
        runner: CommandRunner | None = None,
        console: Console | None = None,
        env: Mapping[str, str] | None = None,
        cwd: Path | None = None,
        skip_preflight: bool = False,
    ) -> "RunContext":
        environ = dict(os.environ if env is None else env)
        flag = environ.get(config.settings.installing_env_var, "")
        return cls(
            config=config,
            home=Path.home(),
            cwd=cwd or Path.cwd(),
            env=environ,
            runner=runner or CommandRunner(),
            console=console or Console(),
            skip_preflight=skip_preflight or flag.lower() == "true",
        )

    def evolve(self, **changes: object) -> "RunContext":
        return dataclasses.replace(self, **changes)

    def ensure_backup(self) -> BackupDir:
        """Return the run's backup directory, creating it on first use."""

        if self.backup is None:
            self.backup = BackupDir.create(self.config.settings.backup_root, home=self.home)
        return self.backup

    def run(
        self,
        argv: list[str],
        *,
        cwd: Path | None = None,
        check: bool = True,
        capture: bool = True,
    ) -> CommandResult:
        return self.runner.run(argv, cwd=cwd or self.cwd, env=self.env, check=check, capture=capture)
