"""Subprocess execution with consistent logging."""

from __future__ import annotations

import logging
import shlex
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Sequence

from .errors import DotbootError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CommandResult:
    argv: tuple[str, ...]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class CommandError(DotbootError):
    """Raised when an external command exits with a non-zero status."""

    def __init__(self, result: CommandResult) -> None:
        self.result = result
        message = f"Command failed ({result.returncode}): {format_argv(result.argv)}"
        if result.stderr.strip():
            message = f"{message}\n{result.stderr.strip()}"
        super().__init__(message)


def format_argv(argv: Sequence[str]) -> str:
    return " ".join(shlex.quote(arg) for arg in argv)


class CommandRunner:
    """Runs external tools on behalf of the installer stages.

    ``capture=False`` lets the tool write straight to the terminal, which is
    what long-running installers such as ``brew bundle`` need.
    """

    def run(
        self,
        argv: Sequence[str],
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
        check: bool = True,
        capture: bool = True,
    ) -> CommandResult:
        argv_tuple = tuple(str(arg) for arg in argv)
        logger.info("CMD %s", format_argv(argv_tuple))

        try:
            completed = subprocess.run(
                argv_tuple,
                cwd=cwd,
                env=dict(env) if env is not None else None,
                text=True,
                stdout=subprocess.PIPE if capture else None,
                stderr=subprocess.PIPE if capture else None,
            )
        except FileNotFoundError as exc:
            raise DotbootError(f"Executable '{argv_tuple[0]}' was not found on PATH") from exc

        result = CommandResult(
            argv=argv_tuple,
            returncode=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
        )
        if result.stdout:
            logger.debug("STDOUT %s", result.stdout.strip())
        if result.stderr:
            logger.debug("STDERR %s", result.stderr.strip())

        if check and not result.ok:
            raise CommandError(result)
        return result
