from __future__ import annotations

from pathlib import Path

import pytest

from dotboot.command import CommandError
from dotboot.errors import BrewfileError
from dotboot.homebrew import activate, bundle, ensure_homebrew, install_packages, parse_shellenv

from .conftest import FakeRunner

SHELLENV = """\
export HOMEBREW_PREFIX="/opt/homebrew";
export HOMEBREW_CELLAR="/opt/homebrew/Cellar";
export HOMEBREW_REPOSITORY="/opt/homebrew";
fpath[1,0]="/opt/homebrew/share/zsh/site-functions";
PATH="/opt/homebrew/bin:/opt/homebrew/sbin${PATH+:$PATH}"; export PATH;
[ -z "${MANPATH-}" ] || export MANPATH=":${MANPATH#:}";
export INFOPATH="/opt/homebrew/share/info:${INFOPATH:-}";
"""


def _install_fake_brew(tmp_path: Path) -> Path:
    prefix = tmp_path / "homebrew"
    brew = prefix / "bin" / "brew"
    brew.parent.mkdir(parents=True)
    brew.write_text("#!/bin/sh\n")
    brew.chmod(0o755)
    return prefix


def test_parse_shellenv_expands_path() -> None:
    values = parse_shellenv(SHELLENV, {"PATH": "/usr/bin:/bin"})

    assert values["HOMEBREW_PREFIX"] == "/opt/homebrew"
    assert values["PATH"] == "/opt/homebrew/bin:/opt/homebrew/sbin:/usr/bin:/bin"
    assert values["INFOPATH"] == "/opt/homebrew/share/info:"
    assert "fpath" not in values
    assert "MANPATH" not in values


def test_existing_homebrew_is_left_alone(make_ctx, runner: FakeRunner, tmp_path: Path, fake_home: Path) -> None:
    prefix = _install_fake_brew(tmp_path)
    ctx = make_ctx(f'[homebrew]\nprefix = "{prefix}"\n')

    assert ensure_homebrew(ctx) is False
    assert runner.calls == []
    assert not (fake_home / ".zprofile").exists()


def test_missing_homebrew_is_installed_and_profile_updated(
    make_ctx, runner: FakeRunner, tmp_path: Path, fake_home: Path
) -> None:
    runner.on("curl", stdout="echo installing brew\n")
    prefix = tmp_path / "not-installed"
    ctx = make_ctx(f'[homebrew]\nprefix = "{prefix}"\n')
    profile = fake_home / ".zprofile"
    profile.write_text("export EDITOR=vim\n")

    assert ensure_homebrew(ctx) is True
    assert runner.calls == [
        ("curl", "-fsSL", ctx.config.homebrew.install_url),
        ("/bin/bash", "-c", "echo installing brew\n"),
    ]

    line = f'eval "$({prefix}/bin/brew shellenv)"'
    assert profile.read_text() == f"export EDITOR=vim\n\n{line}\n"

    # A second install attempt must not duplicate the activation line.
    ensure_homebrew(ctx)
    assert profile.read_text().count(line) == 1


def test_activate_updates_run_environment(make_ctx, runner: FakeRunner) -> None:
    runner.on("/opt/homebrew/bin/brew", "shellenv", stdout=SHELLENV)
    ctx = make_ctx()

    activate(ctx)

    assert ctx.env["PATH"].startswith("/opt/homebrew/bin:")
    assert ctx.env["HOMEBREW_PREFIX"] == "/opt/homebrew"


def test_bundle_uses_brewfile_and_no_lock(make_ctx, runner: FakeRunner, dotfiles: Path) -> None:
    ctx = make_ctx("[homebrew]\nno_lock = true\n")

    entries = bundle(ctx)

    assert [entry.name for entry in entries] == ["git", "ghostty"]
    assert runner.calls == [("brew", "bundle", "--file", str(dotfiles / "Brewfile"), "--no-lock")]


def test_malformed_brewfile_fails_before_brew_runs(make_ctx, runner: FakeRunner, dotfiles: Path) -> None:
    (dotfiles / "Brewfile").write_text('tap "homebrew/cask-fonts"\n')
    ctx = make_ctx()

    with pytest.raises(BrewfileError):
        bundle(ctx)
    assert runner.calls == []


def test_install_packages_sequence(make_ctx, runner: FakeRunner, tmp_path: Path, dotfiles: Path) -> None:
    prefix = _install_fake_brew(tmp_path)
    ctx = make_ctx(f'[homebrew]\nprefix = "{prefix}"\n')

    install_packages(ctx)

    assert runner.calls == [
        (str(prefix / "bin" / "brew"), "shellenv"),
        ("brew", "update"),
        ("brew", "bundle", "--file", str(dotfiles / "Brewfile")),
        ("git", "lfs", "install"),
    ]


def test_bundle_failure_is_fatal(make_ctx, runner: FakeRunner, tmp_path: Path, dotfiles: Path) -> None:
    prefix = _install_fake_brew(tmp_path)
    runner.on("brew", "bundle", returncode=1)
    ctx = make_ctx(f'[homebrew]\nprefix = "{prefix}"\nlfs = false\n')

    with pytest.raises(CommandError):
        install_packages(ctx)
    assert ("git", "lfs", "install") not in runner.calls
