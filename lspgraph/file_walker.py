"""File walking utilities."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable


DEFAULT_EXCLUDES = {
    ".venv",
    "__pycache__",
    ".git",
    ".hg",
    ".svn",
    ".lspgraph",
    "node_modules",
    "build",
    "bin",
    "obj",
}


def iter_source_files(
    root: str | Path,
    extensions: Iterable[str],
    excludes: Iterable[str] | None = None,
) -> list[str]:
    root_path = Path(root)
    suffixes = set(extensions)
    exclude_set = set(excludes or DEFAULT_EXCLUDES)
    matches: list[str] = []

    for path in root_path.rglob("*"):
        if path.suffix not in suffixes or not path.is_file():
            continue
        if any(part in exclude_set for part in path.relative_to(root_path).parts):
            continue
        matches.append(str(path))

    return sorted(matches)
