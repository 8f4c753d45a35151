"""Filesystem helpers for dotboot."""

from __future__ import annotations

import os
import shutil
from pathlib import Path


def ensure_parent(path: Path) -> None:
    """Ensure the parent directory exists."""

    path.parent.mkdir(parents=True, exist_ok=True)


def lexists(path: Path) -> bool:
    """Return ``True`` for existing paths, dangling symlinks included."""

    return path.exists() or path.is_symlink()


def is_real_entry(path: Path) -> bool:
    """Return ``True`` if ``path`` holds data of its own (not a symlink)."""

    return path.exists() and not path.is_symlink()


def symlink_points_to(link: Path, target: Path) -> bool:
    """Return ``True`` if ``link`` is a symlink resolving to ``target``."""

    if not link.is_symlink():
        return False
    current = Path(os.readlink(link))
    current_resolved = (link.parent / current).resolve(strict=False)
    target_resolved = target.resolve(strict=False)
    return current_resolved == target_resolved


def create_symlink(link: Path, target: Path) -> None:
    """Create ``link`` pointing at the absolute ``target``.

    Any symlink already at ``link`` is replaced. Real files are never removed
    here; callers must move them out of the way first.
    """

    if link.is_symlink():
        link.unlink()
    ensure_parent(link)
    link.symlink_to(target)


def remove_path(path: Path) -> None:
    """Delete ``path`` whether it is a file, directory, or symlink."""

    if not lexists(path):
        return
    if path.is_symlink() or path.is_file():
        path.unlink()
        return
    shutil.rmtree(path)


def copy_file(source: Path, target_dir: Path) -> Path:
    """Copy ``source`` into ``target_dir`` preserving metadata."""

    target_dir.mkdir(parents=True, exist_ok=True)
    destination = target_dir / source.name
    if destination.is_symlink():
        destination.unlink()
    shutil.copy2(source, destination)
    return destination


def append_line_once(path: Path, line: str) -> bool:
    """Append ``line`` to ``path`` unless the file already contains it.

    A blank separator line is written before the new line. Returns ``True``
    if the file was changed.
    """

    existing = path.read_text() if path.exists() else ""
    if line in existing:
        return False

    ensure_parent(path)
    with path.open("a") as handle:
        if existing and not existing.endswith("\n"):
            handle.write("\n")
        handle.write("\n")
        handle.write(f"{line}\n")
    return True
