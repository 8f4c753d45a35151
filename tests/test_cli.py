from __future__ import annotations

import tomllib
from pathlib import Path

import pytest
from typer.testing import CliRunner

from dotboot.cli import app
from dotboot.config import DEFAULT_CONFIG_FILENAME, load_config

from .conftest import FakeRunner

cli_runner = CliRunner()


def _write_config(directory: Path, body: str) -> Path:
    config_path = directory / DEFAULT_CONFIG_FILENAME
    config_path.write_text(body)
    return config_path


def _use_context(monkeypatch: pytest.MonkeyPatch, ctx) -> None:  # noqa: ANN001
    monkeypatch.setattr("dotboot.cli._build_context", lambda *_args, **_kwargs: ctx)


def test_cli_init_writes_loadable_config(tmp_path: Path, fake_home: Path) -> None:
    config_path = tmp_path / "dotboot.toml"

    result = cli_runner.invoke(app, ["init", "--config", str(config_path), "--strategy", "symlink"])

    assert result.exit_code == 0
    data = tomllib.loads(config_path.read_text())
    assert data["settings"]["link_strategy"] == "symlink"
    assert data["shell"]["plugins"][0] == {"name": "git"}

    config = load_config(config_path)
    assert [spec.name for spec in config.shell.plugins] == ["git", "zsh-autosuggestions", "zsh-syntax-highlighting"]

    again = cli_runner.invoke(app, ["init", "--config", str(config_path)])
    assert again.exit_code == 1
    assert "already exists" in again.stdout


def test_cli_missing_config_hint(tmp_path: Path, fake_home: Path) -> None:
    result = cli_runner.invoke(app, ["status", "--config", str(tmp_path / "missing.toml")])

    assert result.exit_code == 1
    assert "dotboot init" in result.stdout


def test_cli_brewfile_lists_entries(tmp_path: Path, fake_home: Path, dotfiles: Path) -> None:
    config_path = _write_config(tmp_path, f'[settings]\ndotfiles_dir = "{dotfiles}"\n')

    result = cli_runner.invoke(app, ["brewfile", "--config", str(config_path)])

    assert result.exit_code == 0
    assert "ghostty" in result.stdout
    assert "cask" in result.stdout


def test_cli_link_and_status(tmp_path: Path, fake_home: Path, dotfiles: Path) -> None:
    config_path = _write_config(tmp_path, '[settings]\nlink_strategy = "symlink"\n')

    before = cli_runner.invoke(app, ["status", "--config", str(config_path)])
    assert "dotboot link" in before.stdout

    linked = cli_runner.invoke(app, ["link", "--config", str(config_path)])
    assert linked.exit_code == 0
    assert (fake_home / ".zshrc").is_symlink()

    after = cli_runner.invoke(app, ["status", "--config", str(config_path)])
    assert after.exit_code == 0
    assert "not deployed" not in after.stdout


def test_cli_identity_prompts(tmp_path: Path, fake_home: Path) -> None:
    config_path = _write_config(tmp_path, "")

    result = cli_runner.invoke(
        app,
        ["identity", "--config", str(config_path)],
        input="Alice\nalice@example.com\n\n",
    )

    assert result.exit_code == 0
    assert "created" in result.stdout
    assert (fake_home / ".gitconfig.local").read_text() == "[user]\n    name = Alice\n    email = alice@example.com\n"


def test_cli_preflight_failure_exit_code(
    monkeypatch: pytest.MonkeyPatch, make_ctx, runner: FakeRunner, dotfiles: Path
) -> None:
    runner.on("xcode-select", "-p", returncode=2)
    _use_context(monkeypatch, make_ctx())

    result = cli_runner.invoke(app, ["install"])

    assert result.exit_code == 2
    assert "Xcode Command Line Tools are being installed" in result.stdout


def test_cli_command_failure(monkeypatch: pytest.MonkeyPatch, make_ctx, runner: FakeRunner, dotfiles: Path) -> None:
    runner.on("stow", returncode=1)
    _use_context(monkeypatch, make_ctx())

    result = cli_runner.invoke(app, ["link"])

    assert result.exit_code == 1
    assert "Command failed (1): stow" in result.stdout


def test_cli_rejects_unknown_skip(fake_home: Path) -> None:
    result = cli_runner.invoke(app, ["install", "--skip", "bootstrap"])

    assert result.exit_code != 0


def test_cli_interrupt_exit_code(monkeypatch: pytest.MonkeyPatch, make_ctx) -> None:
    def interrupted(self):  # noqa: ANN001
        raise KeyboardInterrupt

    _use_context(monkeypatch, make_ctx())
    monkeypatch.setattr("dotboot.cli.Installer.run", interrupted)

    result = cli_runner.invoke(app, ["install"])

    assert result.exit_code == 130
    assert "Interrupted" in result.stdout
