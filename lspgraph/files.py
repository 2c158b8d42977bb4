"""Project file access used for hashing, tokenizing, and classification."""

from __future__ import annotations

from pathlib import Path, PurePosixPath
from typing import Iterable, Protocol

from .models import Range


class FileContentProvider(Protocol):
    project_root: Path

    def read(self, relative_path: str) -> str: ...

    def read_lines(self, relative_path: str) -> list[str]: ...

    def read_range(self, relative_path: str, span: Range) -> str: ...

    def exists(self, relative_path: str) -> bool: ...

    def is_file(self, relative_path: str) -> bool: ...


class LocalFileHandler:
    def __init__(self, project_root: str | Path) -> None:
        self.project_root = Path(project_root).resolve()
        self._cache: dict[str, str] = {}

    def absolute(self, relative_path: str) -> Path:
        path = Path(relative_path)
        if path.is_absolute():
            return path
        return self.project_root / path

    def relativize(self, path: str | Path) -> str | None:
        candidate = Path(path)
        if not candidate.is_absolute():
            parts = PurePosixPath(candidate.as_posix()).parts
            if ".." in parts:
                return None
            return PurePosixPath(*parts).as_posix() if parts else ""
        try:
            relative = candidate.resolve().relative_to(self.project_root)
        except ValueError:
            return None
        return relative.as_posix()

    def read(self, relative_path: str) -> str:
        cached = self._cache.get(relative_path)
        if cached is None:
            raw = self.absolute(relative_path).read_text(encoding="utf-8", errors="replace")
            cached = raw.replace("\r\n", "\n")
            self._cache[relative_path] = cached
        return cached

    def read_lines(self, relative_path: str) -> list[str]:
        return self.read(relative_path).split("\n")

    def read_range(self, relative_path: str, span: Range) -> str:
        return slice_text(self.read_lines(relative_path), span)

    def exists(self, relative_path: str) -> bool:
        return self.absolute(relative_path).exists()

    def is_file(self, relative_path: str) -> bool:
        return bool(relative_path) and self.absolute(relative_path).is_file()

    def invalidate(self, relative_paths: Iterable[str] | None = None) -> None:
        if relative_paths is None:
            self._cache.clear()
            return
        for path in relative_paths:
            self._cache.pop(path, None)


def slice_text(lines: list[str], span: Range) -> str:
    start, end = span.start, span.end
    if start.line >= len(lines) or end < start:
        return ""
    if start.line == end.line:
        return lines[start.line][start.column : end.column]
    chunk = [lines[start.line][start.column :]]
    chunk.extend(lines[start.line + 1 : end.line])
    if end.line < len(lines):
        chunk.append(lines[end.line][: end.column])
    return "\n".join(chunk)


def file_extent(lines: list[str]) -> Range:
    if not lines:
        return Range.empty()
    return Range.of(0, 0, len(lines) - 1, len(lines[-1]))
