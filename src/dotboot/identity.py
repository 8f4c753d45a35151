"""Per-machine Git identity stored outside the managed tree.

The managed ``.gitconfig`` includes ``~/.gitconfig.local``; this module owns
that file. It only ever contains the ``[user]`` identity and, when a signing
key is configured, the two settings that switch on SSH commit signing.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

import typer

from .context import RunContext
from .models import IdentityOutcome


@dataclass(frozen=True, slots=True)
class Identity:
    name: str
    email: str
    signingkey: str | None = None


class Prompter(Protocol):
    def ask(self, text: str) -> str: ...

    def confirm(self, text: str) -> bool: ...


class TyperPrompter:
    """Interactive prompts on the controlling terminal."""

    def ask(self, text: str) -> str:
        return typer.prompt(text, default="", show_default=False).strip()

    def confirm(self, text: str) -> bool:
        return typer.confirm(text, default=False)


def _git_config_value(ctx: RunContext, path: Path, key: str) -> str:
    result = ctx.run(["git", "config", "-f", str(path), key], cwd=path.parent, check=False)
    # git exits 1 when the key is unset.
    return result.stdout.strip() if result.ok else ""


def read_identity(ctx: RunContext, path: Path) -> Identity | None:
    """Read the ``[user]`` identity from ``path``; ``None`` if the file is absent."""

    if not path.exists():
        return None

    return Identity(
        name=_git_config_value(ctx, path, "user.name"),
        email=_git_config_value(ctx, path, "user.email"),
        signingkey=_git_config_value(ctx, path, "user.signingkey") or None,
    )


def render_identity(identity: Identity) -> str:
    lines = [
        "[user]",
        f"    name = {identity.name}",
        f"    email = {identity.email}",
    ]
    if identity.signingkey:
        lines.extend(
            [
                f"    signingkey = {identity.signingkey}",
                "[gpg]",
                "    format = ssh",
                "[commit]",
                "    gpgsign = true",
            ]
        )
    return "\n".join(lines) + "\n"


def write_identity(path: Path, identity: Identity) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(render_identity(identity))


def _prompt_identity(prompter: Prompter, *, fresh: bool) -> Identity:
    prefix = "" if fresh else "New "
    name = prompter.ask(f"{prefix}Git user.name (for commits)")
    email = prompter.ask(f"{prefix}Git user.email (for commits)")
    signingkey = prompter.ask(f"{prefix}SSH public key for commit signing (leave blank to skip)")
    return Identity(name=name, email=email, signingkey=signingkey or None)


def configure_identity(ctx: RunContext, prompter: Prompter | None = None) -> IdentityOutcome:
    prompter = prompter or TyperPrompter()
    path = ctx.config.identity.path
    console = ctx.console

    console.print("Setting up Git user configuration...")
    current = read_identity(ctx, path)

    if current is None:
        console.print(f"Creating {path} for user-specific settings...")
        identity = _prompt_identity(prompter, fresh=True)
        write_identity(path, identity)
        console.print(f"Git user.name set to: {identity.name}")
        console.print(f"Git user.email set to: {identity.email}")
        if identity.signingkey:
            console.print("Commit signing enabled with SSH key")
        return IdentityOutcome.CREATED

    console.print(f"{path} already exists")
    console.print("Current Git settings:")
    console.print(f"  Name:  {current.name or '<not set>'}")
    console.print(f"  Email: {current.email or '<not set>'}")
    console.print(f"  Signing key: {current.signingkey or '<none>'}")

    if not prompter.confirm("Change all three fields now?"):
        console.print(f"No changes made. Edit {path} to update later.")
        return IdentityOutcome.KEPT

    write_identity(path, _prompt_identity(prompter, fresh=False))
    console.print(f"Updated {path}")
    return IdentityOutcome.UPDATED
