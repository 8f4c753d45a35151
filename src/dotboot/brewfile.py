"""Reading and writing the declarative Brewfile manifest."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Iterable

from .errors import BrewfileError
from .models import BrewfileEntry, BrewfileKind

_ENTRY_RE = re.compile(
    r"""^(?P<kind>\w+)\s+(?P<quote>["'])(?P<name>[^"']+)(?P=quote)\s*(?:\#\s*(?P<comment>.*))?$"""
)


def parse_brewfile(text: str) -> list[BrewfileEntry]:
    """Parse Brewfile ``text`` into ordered entries.

    Only ``brew`` and ``cask`` directives are accepted. Blank lines and
    comment-only lines are ignored; duplicates are kept as declared.
    """

    entries: list[BrewfileEntry] = []
    for lineno, raw_line in enumerate(text.splitlines(), start=1):
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue

        match = _ENTRY_RE.match(line)
        if match is None:
            raise BrewfileError(f"Line {lineno}: cannot parse '{line}'")

        try:
            kind = BrewfileKind(match.group("kind"))
        except ValueError:
            raise BrewfileError(
                f"Line {lineno}: unsupported directive '{match.group('kind')}' (expected 'brew' or 'cask')"
            ) from None

        comment = match.group("comment")
        entries.append(
            BrewfileEntry(
                kind=kind,
                name=match.group("name").strip(),
                comment=comment.strip() if comment and comment.strip() else None,
            )
        )

    return entries


def load_brewfile(path: Path) -> list[BrewfileEntry]:
    if not path.exists():
        raise BrewfileError(f"Brewfile '{path}' does not exist")
    return parse_brewfile(path.read_text())


def render_brewfile(entries: Iterable[BrewfileEntry]) -> str:
    lines = []
    for entry in entries:
        line = f'{entry.kind.value} "{entry.name}"'
        if entry.comment:
            line = f"{line}  # {entry.comment}"
        lines.append(line)
    return "\n".join(lines) + "\n" if lines else ""
