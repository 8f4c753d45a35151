"""Fetch the external theme repository and install its assets."""

from __future__ import annotations

import logging

from .context import RunContext
from .filesystem import copy_file, remove_path
from .models import ThemeAction, ThemeResult

logger = logging.getLogger(__name__)


def update_cache(ctx: RunContext) -> bool:
    """Fast-forward the cached clone, or clone it afresh.

    Returns ``True`` when a fresh clone was made. A cache directory without
    ``.git`` is treated as corrupt and discarded.
    """

    themes = ctx.config.themes
    cache = themes.cache_dir

    if (cache / ".git").is_dir():
        ctx.console.print("Updating theme repository...")
        ctx.run(["git", "-C", str(cache), "pull", "--ff-only"], capture=False)
        return False

    ctx.console.print("Cloning theme repository...")
    remove_path(cache)
    cache.parent.mkdir(parents=True, exist_ok=True)
    ctx.run(["git", "clone", themes.repo_url, str(cache)], cwd=cache.parent, capture=False)
    return True


def install_assets(ctx: RunContext) -> list[ThemeResult]:
    themes = ctx.config.themes
    results: list[ThemeResult] = []

    for asset in themes.assets:
        source = themes.cache_dir / asset.source
        destination = asset.target_dir / source.name
        if not source.is_file():
            ctx.console.print(
                f"[yellow]Warning: {asset.source} not found in the theme repository; skipping.[/yellow]"
            )
            logger.warning("Theme asset %s missing from %s", asset.source, themes.cache_dir)
            results.append(ThemeResult(source=source, destination=destination, action=ThemeAction.MISSING))
            continue

        copy_file(source, asset.target_dir)
        results.append(ThemeResult(source=source, destination=destination, action=ThemeAction.COPIED))

    return results


def fetch_themes(ctx: RunContext) -> list[ThemeResult]:
    ctx.console.print("Setting up themes...")
    for directory in ctx.config.themes.directories:
        directory.mkdir(parents=True, exist_ok=True)

    update_cache(ctx)
    return install_assets(ctx)
