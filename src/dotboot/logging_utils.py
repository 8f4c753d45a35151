"""Logging setup for the dotboot CLI."""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

_CONFIGURED_ATTR = "_dotboot_configured"


def configure_logging(verbose: bool = False, *, console: Console | None = None) -> None:
    """Route log records through rich, once per process.

    Warnings and errors are always shown; ``verbose`` adds every command we
    run and its captured output.
    """

    level = logging.DEBUG if verbose else logging.WARNING
    root = logging.getLogger()
    root.setLevel(level)

    if getattr(root, _CONFIGURED_ATTR, False):
        return

    handler = RichHandler(console=console, show_path=False, markup=False, rich_tracebacks=True)
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    root.addHandler(handler)
    setattr(root, _CONFIGURED_ATTR, True)
