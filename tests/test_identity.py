from __future__ import annotations

import os
import shutil
from pathlib import Path

import pytest

from dotboot.command import CommandRunner
from dotboot.context import RunContext
from dotboot.identity import Identity, configure_identity, read_identity, render_identity
from dotboot.models import IdentityOutcome

from .conftest import FakeRunner

requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git is not installed")


def _with_git(ctx: RunContext) -> RunContext:
    return ctx.evolve(runner=CommandRunner(), env=dict(os.environ))


class ScriptedPrompter:
    def __init__(self, answers: list[str], confirm: bool = False) -> None:
        self.answers = list(answers)
        self.confirm_answer = confirm
        self.asked: list[str] = []
        self.confirmed: list[str] = []

    def ask(self, text: str) -> str:
        self.asked.append(text)
        return self.answers.pop(0)

    def confirm(self, text: str) -> bool:
        self.confirmed.append(text)
        return self.confirm_answer


def test_render_without_signing_key() -> None:
    text = render_identity(Identity(name="Alice", email="alice@example.com"))

    assert text == "[user]\n    name = Alice\n    email = alice@example.com\n"
    assert "sign" not in text


def test_render_with_signing_key_enables_signing() -> None:
    text = render_identity(Identity(name="Alice", email="alice@example.com", signingkey="ssh-ed25519 AAAAC3"))

    assert "    signingkey = ssh-ed25519 AAAAC3\n" in text
    assert "[gpg]\n    format = ssh\n" in text
    assert "[commit]\n    gpgsign = true\n" in text


def test_read_identity_asks_git_for_each_field(make_ctx, runner: FakeRunner, fake_home: Path) -> None:
    path = fake_home / ".gitconfig.local"
    path.write_text("[user]\n")
    runner.on("git", "config", "-f", str(path), "user.name", stdout="Alice\n")
    runner.on("git", "config", "-f", str(path), "user.email", stdout="alice@example.com\n")
    runner.on("git", "config", "-f", str(path), "user.signingkey", returncode=1)

    assert read_identity(make_ctx(), path) == Identity(name="Alice", email="alice@example.com")
    assert runner.commands("git") == [
        ("git", "config", "-f", str(path), "user.name"),
        ("git", "config", "-f", str(path), "user.email"),
        ("git", "config", "-f", str(path), "user.signingkey"),
    ]


def test_read_identity_missing_file(make_ctx, runner: FakeRunner, fake_home: Path) -> None:
    assert read_identity(make_ctx(), fake_home / "missing") is None
    assert runner.calls == []


@requires_git
def test_read_identity_only_looks_at_user_section(make_ctx, fake_home: Path) -> None:
    path = fake_home / ".gitconfig.local"
    path.write_text(
        "[core]\n    name = not-me\n[user]\n\tname = Alice\n\temail = alice@example.com\n# comment\n"
    )

    assert read_identity(_with_git(make_ctx()), path) == Identity(name="Alice", email="alice@example.com")


@requires_git
def test_read_identity_handles_quoting_and_inline_comments(make_ctx, fake_home: Path) -> None:
    path = fake_home / ".gitconfig.local"
    path.write_text(
        '[user]\n'
        '\tname = "Alice \\"Al\\" Smith" ; nickname included\n'
        "\temail = alice@example.com # work address\n"
        '\tsigningkey = "ssh-ed25519 AAAAC3 alice"\n'
    )

    assert read_identity(_with_git(make_ctx()), path) == Identity(
        name='Alice "Al" Smith',
        email="alice@example.com",
        signingkey="ssh-ed25519 AAAAC3 alice",
    )


def test_absent_file_is_created(make_ctx, fake_home: Path) -> None:
    ctx = make_ctx()
    prompter = ScriptedPrompter(["Alice", "alice@example.com", ""])

    outcome = configure_identity(ctx, prompter)

    assert outcome is IdentityOutcome.CREATED
    assert prompter.confirmed == []
    assert (fake_home / ".gitconfig.local").read_text() == "[user]\n    name = Alice\n    email = alice@example.com\n"


@requires_git
def test_signing_key_on_creation(make_ctx, fake_home: Path) -> None:
    ctx = _with_git(make_ctx())

    configure_identity(ctx, ScriptedPrompter(["Alice", "alice@example.com", "ssh-ed25519 AAAAC3"]))

    identity = read_identity(ctx, fake_home / ".gitconfig.local")
    assert identity == Identity(name="Alice", email="alice@example.com", signingkey="ssh-ed25519 AAAAC3")
    assert "gpgsign = true" in (fake_home / ".gitconfig.local").read_text()


@requires_git
def test_existing_file_kept_when_declined(make_ctx, fake_home: Path) -> None:
    path = fake_home / ".gitconfig.local"
    path.write_text("[user]\n    name = Alice\n    email = alice@example.com\n    signingkey = ssh-ed25519 KEY\n")
    before = path.read_text()
    ctx = _with_git(make_ctx())
    prompter = ScriptedPrompter([], confirm=False)

    outcome = configure_identity(ctx, prompter)

    assert outcome is IdentityOutcome.KEPT
    assert path.read_text() == before
    assert prompter.asked == []
    output = ctx.console.export_text()
    assert "Name:  Alice" in output
    assert "Signing key: ssh-ed25519 KEY" in output
    assert "No changes made" in output


def test_existing_file_rewritten_wholesale(make_ctx, fake_home: Path) -> None:
    path = fake_home / ".gitconfig.local"
    path.write_text(render_identity(Identity("Alice", "alice@example.com", "ssh-ed25519 OLD")))
    ctx = make_ctx()

    outcome = configure_identity(ctx, ScriptedPrompter(["Bob", "bob@example.com", ""], confirm=True))

    assert outcome is IdentityOutcome.UPDATED
    assert path.read_text() == "[user]\n    name = Bob\n    email = bob@example.com\n"


@requires_git
def test_blank_values_are_accepted(make_ctx, fake_home: Path) -> None:
    ctx = _with_git(make_ctx())

    outcome = configure_identity(ctx, ScriptedPrompter(["", "", ""]))

    assert outcome is IdentityOutcome.CREATED
    assert read_identity(ctx, fake_home / ".gitconfig.local") == Identity(name="", email="")
