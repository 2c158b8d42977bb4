from __future__ import annotations

from pathlib import Path
from tempfile import TemporaryDirectory

from lspgraph.file_walker import iter_source_files


def test_iter_source_files_filters_by_extension():
    with TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        (root / "A.kt").write_text("class A", encoding="utf-8")
        (root / "b.txt").write_text("nope", encoding="utf-8")
        sub = root / "sub"
        sub.mkdir()
        (sub / "C.cs").write_text("class C {}", encoding="utf-8")

        matches = iter_source_files(root, [".kt", ".cs"])
        names = [Path(path).name for path in matches]

        assert names == ["A.kt", "C.cs"]


def test_iter_source_files_skips_excluded_directories():
    with TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        for folder in ("node_modules", "build", ".lspgraph", "src"):
            (root / folder).mkdir()
            (root / folder / "index.ts").write_text("export {}", encoding="utf-8")

        matches = iter_source_files(root, [".ts"])

        assert [Path(path).parent.name for path in matches] == ["src"]
        assert iter_source_files(root, [".ts"], excludes={"src"}) != matches
