"""Per-run backup directory for files displaced by the link manager."""

from __future__ import annotations

import shutil
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from .filesystem import ensure_parent, lexists

BACKUP_PREFIX = ".dotfiles-backup-"
TIMESTAMP_FORMAT = "%Y%m%d-%H%M%S"


@dataclass(frozen=True, slots=True)
class BackupDir:
    """A timestamped directory receiving every real file we would overwrite.

    Entries under ``home`` keep their home-relative layout so that two files
    sharing a basename (``~/.zshrc`` and ``~/.config/zsh/.zshrc``) never
    collide. The directory is never cleaned up automatically.
    """

    path: Path
    home: Path

    @classmethod
    def create(cls, root: Path, *, home: Path, now: datetime | None = None) -> "BackupDir":
        stamp = (now or datetime.now()).strftime(TIMESTAMP_FORMAT)
        path = root / f"{BACKUP_PREFIX}{stamp}"
        path.mkdir(parents=True, exist_ok=True)
        return cls(path=path, home=home)

    def destination_for(self, original: Path) -> Path:
        try:
            relative = original.relative_to(self.home)
        except ValueError:
            relative = Path(original.name)

        candidate = self.path / relative
        counter = 1
        while lexists(candidate):
            counter += 1
            candidate = candidate.with_name(f"{relative.name}.{counter}")
        return candidate

    def preserve(self, original: Path) -> Path:
        """Move ``original`` into the backup directory and return its new path."""

        destination = self.destination_for(original)
        ensure_parent(destination)
        shutil.move(str(original), str(destination))
        return destination

    def entries(self) -> list[Path]:
        if not self.path.exists():
            return []
        return sorted(item for item in self.path.rglob("*") if item.is_file() or item.is_symlink())
