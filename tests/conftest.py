from __future__ import annotations

import tomllib
from pathlib import Path
from typing import Callable, Sequence

import pytest
from rich.console import Console

from dotboot.command import CommandError, CommandResult, CommandRunner
from dotboot.config import build_config
from dotboot.context import RunContext


class FakeRunner(CommandRunner):
    """Records argv instead of spawning processes."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, ...]] = []
        self._handlers: list[tuple[tuple[str, ...], Callable[[tuple[str, ...]], CommandResult | None]]] = []

    def on(
        self,
        *prefix: str,
        returncode: int = 0,
        stdout: str = "",
        effect: Callable[[tuple[str, ...]], None] | None = None,
    ) -> None:
        def handler(argv: tuple[str, ...]) -> CommandResult:
            if effect is not None:
                effect(argv)
            return CommandResult(argv=argv, returncode=returncode, stdout=stdout)

        self._handlers.insert(0, (tuple(prefix), handler))

    def run(self, argv: Sequence[str], *, cwd=None, env=None, check=True, capture=True) -> CommandResult:  # noqa: ANN001
        argv_tuple = tuple(str(arg) for arg in argv)
        self.calls.append(argv_tuple)

        result = CommandResult(argv=argv_tuple, returncode=0)
        for prefix, handler in self._handlers:
            if argv_tuple[: len(prefix)] == prefix:
                result = handler(argv_tuple) or result
                break

        if check and not result.ok:
            raise CommandError(result)
        return result

    def commands(self, program: str) -> list[tuple[str, ...]]:
        return [call for call in self.calls if call and call[0] == program]


def git_clone_effect(argv: tuple[str, ...]) -> None:
    """Simulate ``git clone <url> <target>`` by creating the target checkout."""

    target = Path(argv[-1])
    (target / ".git").mkdir(parents=True, exist_ok=True)


@pytest.fixture
def fake_home(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Path:
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("USERPROFILE", str(home))
    monkeypatch.delenv("ZSH_CUSTOM", raising=False)
    monkeypatch.delenv("DOTFILES_INSTALLING", raising=False)
    return home


@pytest.fixture
def runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def make_ctx(fake_home: Path, runner: FakeRunner, tmp_path: Path) -> Callable[..., RunContext]:
    """Build a ``RunContext`` from an optional TOML body.

    The checkout defaults to ``<home>/.dotfiles`` and the working directory
    to the checkout, so the bootstrap check passes unless a test says otherwise.
    """

    def factory(body: str = "", *, cwd: Path | None = None, env: dict[str, str] | None = None) -> RunContext:
        config = build_config(tomllib.loads(body), base_dir=tmp_path)
        return RunContext(
            config=config,
            home=fake_home,
            cwd=cwd or config.settings.dotfiles_dir,
            env=dict(env or {"PATH": "/usr/bin:/bin"}),
            runner=runner,
            console=Console(record=True, width=200),
        )

    return factory


def populate_checkout(root: Path) -> Path:
    """Lay out a checkout with the default managed files."""

    (root / ".git").mkdir(parents=True)
    (root / "zsh").mkdir()
    (root / "zsh" / ".zshrc").write_text("plugins=(\n  git\n  zsh-autosuggestions\n  zsh-syntax-highlighting\n)\n")
    (root / "zsh" / ".zprofile").write_text("export EDITOR=vim\n")
    (root / "git").mkdir()
    (root / "git" / ".gitconfig").write_text("[include]\n    path = ~/.gitconfig.local\n")
    (root / "ghostty").mkdir()
    (root / "ghostty" / "config").write_text("theme = blue-psl-10k\n")
    (root / "Brewfile").write_text('brew "git"  # version control\ncask "ghostty"  # terminal\n')
    return root


@pytest.fixture
def dotfiles(fake_home: Path) -> Path:
    """A checkout at ``~/.dotfiles`` with the default managed files."""

    return populate_checkout(fake_home / ".dotfiles")
