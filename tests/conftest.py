from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

import pytest

from lspgraph.client import ServiceError
from lspgraph.graph import Graph
from lspgraph.models import Node, NodeType, Range, SymbolKind
from lspgraph.parser import LspGraphParser
from lspgraph.progress import ServiceReporter
from lspgraph.protocol import (
    DEFINITION,
    DOCUMENT_SYMBOLS,
    PROGRESS_UPDATE,
    REFERENCES,
    Command,
)


WORD = re.compile(r"[A-Za-z_@$][A-Za-z_0-9$]*")


@dataclass(frozen=True)
class Declared:
    name: str
    kind: SymbolKind
    start_line: int
    end_line: int


class FakeLanguageService:
    """Answers symbol, definition, and reference queries from declared outlines.

    Definitions resolve by the word under the cursor: every declared symbol
    with that name is a definition, `external` maps words to a location
    outside the project, and `silent` words resolve to nothing.
    """

    def __init__(self, root: Path) -> None:
        self.root = root.resolve()
        self.outlines: dict[str, list[Declared]] = {}
        self.external: dict[str, str] = {}
        self.silent: set[str] = set()
        self.fail_batches_over: int | None = None
        self.batches: list[list[Command]] = []
        self.notifications: list[Command] = []
        self.closed = False

    def write(self, relative_path: str, text: str, *symbols: tuple) -> Path:
        path = self.root / relative_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        self.outlines[relative_path] = [Declared(*symbol) for symbol in symbols]
        return path

    def remove(self, relative_path: str) -> None:
        (self.root / relative_path).unlink()
        self.outlines.pop(relative_path, None)

    @property
    def progress(self) -> list[int]:
        return [
            item.arguments[0] for item in self.notifications if item.command == PROGRESS_UPDATE
        ]

    def send(self, commands: Sequence[Command]) -> list:
        commands = list(commands)
        self.batches.append(commands)
        if self.fail_batches_over is not None and len(commands) > self.fail_batches_over:
            raise ServiceError(503, "overloaded")
        return [self._answer(command) for command in commands]

    def notify(self, command: Command) -> None:
        self.notifications.append(command)

    def close(self) -> None:
        self.closed = True

    def _answer(self, command: Command):
        if command.command == DOCUMENT_SYMBOLS:
            relative = self._relative(command.arguments[0])
            return {
                "documentSymbols": [
                    {
                        "name": declared.name,
                        "detail": "",
                        "kind": int(declared.kind),
                        "range": self._full(relative, declared).to_dict(),
                        "selectionRange": self._selection(relative, declared).to_dict(),
                        "children": [],
                    }
                    for declared in self.outlines.get(relative, [])
                ]
            }
        location = command.arguments[0]
        relative = self._relative(location["filePath"])
        start = Range.from_dict(location["range"]).start
        word = self._word_at(relative, start.line, start.column)
        if command.command == DEFINITION:
            return {"locations": self._definitions(word)}
        if command.command == REFERENCES:
            return {"locations": self._references(word)}
        return None

    def _relative(self, path: str) -> str:
        return Path(path).resolve().relative_to(self.root).as_posix()

    def _lines(self, relative: str) -> list[str]:
        return (self.root / relative).read_text(encoding="utf-8").split("\n")

    def _selection(self, relative: str, declared: Declared) -> Range:
        line = self._lines(relative)[declared.start_line]
        column = _find_word(line, declared.name)
        return Range.of(
            declared.start_line, column, declared.start_line, column + len(declared.name)
        )

    def _full(self, relative: str, declared: Declared) -> Range:
        lines = self._lines(relative)
        return Range.of(declared.start_line, 0, declared.end_line, len(lines[declared.end_line]))

    def _word_at(self, relative: str, line: int, column: int) -> str:
        for match in WORD.finditer(self._lines(relative)[line]):
            if match.start() <= column < match.end():
                return match.group(0)
        return ""

    def _definitions(self, word: str) -> list[dict]:
        if not word or word in self.silent:
            return []
        if word in self.external:
            return [
                {
                    "filePath": self.external[word],
                    "range": Range.of(0, 0, 0, len(word)).to_dict(),
                }
            ]
        found = []
        for relative, declared in self.outlines.items():
            for symbol in declared:
                if symbol.name == word:
                    found.append(
                        {
                            "filePath": str(self.root / relative),
                            "range": self._selection(relative, symbol).to_dict(),
                        }
                    )
        return found

    def _references(self, word: str) -> list[dict]:
        found = []
        for relative in self.outlines:
            for line_no, line in enumerate(self._lines(relative)):
                for match in WORD.finditer(line):
                    if match.group(0) == word:
                        found.append(
                            {
                                "filePath": str(self.root / relative),
                                "range": Range.of(
                                    line_no, match.start(), line_no, match.end()
                                ).to_dict(),
                            }
                        )
        return found


def _find_word(line: str, name: str) -> int:
    for match in WORD.finditer(line):
        if match.group(0) == name:
            return match.start()
    return max(line.find(name), 0)


def node_named(graph: Graph, name: str, node_type: NodeType | None = None) -> Node:
    matches = [
        node
        for node in graph.nodes.values()
        if node.simple_name == name and (node_type is None or node.node_type is node_type)
    ]
    assert len(matches) == 1, f"expected one node named {name}, found {len(matches)}"
    return matches[0]


@pytest.fixture
def service(tmp_path: Path) -> FakeLanguageService:
    return FakeLanguageService(tmp_path)


@pytest.fixture
def parser(service: FakeLanguageService) -> LspGraphParser:
    return LspGraphParser(service.root, service, reporter=ServiceReporter(service))
