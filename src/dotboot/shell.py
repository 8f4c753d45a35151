"""Oh My Zsh installation and plugin management."""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Iterable, Sequence

from .config import KNOWN_PLUGIN_REPOSITORIES, PluginSpec
from .context import RunContext
from .models import PluginAction, PluginResult

logger = logging.getLogger(__name__)

_PLUGINS_START_RE = re.compile(r"^plugins=\(")
_PLUGINS_BLOCK_RE = re.compile(r"^plugins=\([^)]*\)", re.MULTILINE)


def ensure_oh_my_zsh(ctx: RunContext) -> bool:
    """Run the unattended Oh My Zsh installer if it is missing."""

    shell = ctx.config.shell
    ctx.console.print("Installing Oh My Zsh...")
    if shell.omz_dir.is_dir():
        ctx.console.print("[green]Oh My Zsh already installed.[/green]")
        return False

    script = ctx.run(["curl", "-fsSL", shell.install_url]).stdout
    ctx.run(["sh", "-c", script, "", "--unattended"], capture=False)
    return True


def scrape_plugins(text: str) -> list[str]:
    """Return plugin names from the ``plugins=( ... )`` array in ``.zshrc``.

    This is a textual scrape: the array must start at the beginning of a
    line. Both single-line and multi-line arrays are handled and ``#``
    comments are dropped.
    """

    names: list[str] = []
    inside = False
    for raw_line in text.splitlines():
        line = raw_line.split("#", 1)[0]
        if not inside:
            if not _PLUGINS_START_RE.match(line):
                continue
            inside = True
            line = line.split("(", 1)[1]

        closing = ")" in line
        if closing:
            line = line.split(")", 1)[0]
        names.extend(token for token in re.split(r"[\s,]+", line) if token)
        if closing:
            break

    return names


def render_plugins_block(names: Sequence[str]) -> str:
    body = "".join(f"  {name}\n" for name in names)
    return f"plugins=(\n{body})"


def sync_zshrc(path: Path, names: Sequence[str]) -> bool:
    """Rewrite the plugin array in ``path`` to match ``names``.

    Returns ``True`` if the file changed. A missing array is appended.
    """

    block = render_plugins_block(names)
    text = path.read_text() if path.exists() else ""

    if _PLUGINS_BLOCK_RE.search(text):
        updated = _PLUGINS_BLOCK_RE.sub(lambda _match: block, text, count=1)
    else:
        separator = "" if not text or text.endswith("\n") else "\n"
        updated = f"{text}{separator}{block}\n"

    if updated == text:
        return False
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(updated)
    return True


def declared_plugins(ctx: RunContext) -> list[PluginSpec]:
    """Plugins from the configuration, or scraped from the managed ``.zshrc``."""

    shell = ctx.config.shell
    if shell.plugins:
        return list(shell.plugins)

    if not shell.zshrc.exists():
        logger.info("No plugin declaration and no managed zshrc at %s", shell.zshrc)
        return []

    return [
        PluginSpec(name=name, repository=KNOWN_PLUGIN_REPOSITORIES.get(name))
        for name in scrape_plugins(shell.zshrc.read_text())
    ]


def custom_dir(ctx: RunContext) -> Path:
    override = ctx.env.get("ZSH_CUSTOM")
    if override:
        return Path(override).expanduser()
    return ctx.config.shell.omz_dir / "custom"


def install_plugins(ctx: RunContext, plugins: Iterable[PluginSpec] | None = None) -> list[PluginResult]:
    shell = ctx.config.shell
    specs = declared_plugins(ctx) if plugins is None else list(plugins)
    plugin_root = custom_dir(ctx) / "plugins"
    results: list[PluginResult] = []

    ctx.console.print("Installing Oh My Zsh plugins...")
    for spec in specs:
        builtin = shell.omz_dir / "plugins" / spec.name
        if builtin.is_dir():
            results.append(PluginResult(spec.name, PluginAction.BUILTIN, builtin))
            continue

        if spec.repository is None:
            logger.debug("No repository known for plugin '%s'; assuming built-in", spec.name)
            results.append(PluginResult(spec.name, PluginAction.UNKNOWN))
            continue

        target = plugin_root / spec.name
        if target.is_dir():
            ctx.console.print(f"{spec.name} already installed")
            results.append(PluginResult(spec.name, PluginAction.PRESENT, target))
            continue

        ctx.console.print(f"Installing {spec.name}...")
        target.parent.mkdir(parents=True, exist_ok=True)
        ctx.run(["git", "clone", spec.repository, str(target)], capture=False)
        results.append(PluginResult(spec.name, PluginAction.CLONED, target))

    return results


def install_shell(ctx: RunContext) -> list[PluginResult]:
    ensure_oh_my_zsh(ctx)
    return install_plugins(ctx)
