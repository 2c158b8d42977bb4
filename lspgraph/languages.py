"""Per-language adapters: tokenizing, symbol conversion, and framework hooks."""

from __future__ import annotations

import keyword
import re
from pathlib import PurePosixPath
from typing import TYPE_CHECKING, Iterable, Mapping

from .models import (
    DEFAULT_PACKAGE,
    GRAPH_KINDS,
    Connection,
    ConnectionType,
    Node,
    NodeType,
    Position,
    PotentialSymbol,
    Range,
    SymbolKind,
)

if TYPE_CHECKING:
    from .graph import GraphBuilder
    from .identity import NodeIdentityBuilder


WORD_PATTERN = re.compile(r"[A-Za-z_][A-Za-z_0-9]*")


class LanguageAdapter:
    name = "generic"
    extensions: tuple[str, ...] = ()
    word_pattern = WORD_PATTERN
    reserved_words: frozenset[str] = frozenset()
    body_open_tokens: tuple[str, ...] = ("{",)
    import_pattern = re.compile(r"^\s*(?:import|using|from|require)\b.*$", re.MULTILINE)

    def tokenize(self, code: str, origin: Position = Position(0, 0)) -> list[PotentialSymbol]:
        tokens: list[PotentialSymbol] = []
        for line_no, line in enumerate(code.split("\n")):
            for match in self.word_pattern.finditer(line):
                word = match.group(0)
                if word in self.reserved_words:
                    continue
                start = Position(line_no, match.start()).shifted(origin)
                end = Position(line_no, match.end()).shifted(origin)
                tokens.append(PotentialSymbol(self.rename_token(word), start, end))
        return tokens

    def rename_token(self, word: str) -> str:
        return word

    def clean_name(self, name: str) -> str:
        return name

    def convert_symbol(self, name: str, kind: SymbolKind | None) -> tuple[str, NodeType] | None:
        if kind is None or kind not in GRAPH_KINDS or kind is SymbolKind.FILE:
            return None
        node_type = kind.node_type()
        cleaned = self.clean_name(name)
        if node_type is None or not cleaned:
            return None
        return cleaned, node_type

    def add_hardcoded_symbols(
        self,
        relative_path: str,
        builder: GraphBuilder,
        identity: NodeIdentityBuilder,
        default_package: str = DEFAULT_PACKAGE,
    ) -> Node:
        file_range = identity.file_range(relative_path)
        node = identity.build(
            PurePosixPath(relative_path).stem,
            NodeType.FILE,
            relative_path,
            file_range,
            name_range=Range(file_range.start, file_range.start),
            defining_node_name=default_package,
            defining_node_simple_name=default_package,
        )
        builder.add_node(node)
        return node

    def special_outbound(self, node: Node, nodes: Mapping[str, Node]) -> list[Connection]:
        return []

    def special_inbound(self, node: Node, nodes: Mapping[str, Node]) -> list[Connection]:
        return []

    def imports(self, code: str) -> tuple[str, ...]:
        return tuple(match.group(0).strip() for match in self.import_pattern.finditer(code))


class KotlinAdapter(LanguageAdapter):
    name = "kotlin"
    extensions = (".kt", ".kts")
    reserved_words = frozenset(
        {
            "fun", "class", "val", "var", "object", "interface", "if", "else",
            "for", "while", "do", "when", "return", "try", "catch", "finally",
            "throw", "is", "in", "as", "this", "super", "true", "false", "null",
            "break", "continue", "typeof", "import", "package",
        }
    )

    def clean_name(self, name: str) -> str:
        return name.replace(".", "")


class CSharpAdapter(LanguageAdapter):
    name = "csharp"
    extensions = (".cs",)
    word_pattern = re.compile(r"[A-Za-z_@][A-Za-z_0-9]*")
    reserved_words = frozenset(
        {
            "abstract", "as", "base", "bool", "break", "case", "catch", "class",
            "const", "continue", "default", "do", "else", "enum", "false",
            "finally", "for", "foreach", "if", "in", "int", "interface",
            "internal", "is", "namespace", "new", "null", "object", "override",
            "private", "protected", "public", "readonly", "return", "sealed",
            "static", "string", "struct", "this", "throw", "true", "try",
            "using", "var", "virtual", "void", "while", "async", "await",
        }
    )
    mediator_tokens = {"Send": "Mediatr.Send()", "Publish": "Mediatr.Publish()"}
    handler_name = "Handle"

    def rename_token(self, word: str) -> str:
        return self.mediator_tokens.get(word, word)

    def clean_name(self, name: str) -> str:
        name = name.split("(", 1)[0].strip()
        if name == ".ctor":
            return "constructor"
        return name.replace(".", "")

    def add_hardcoded_symbols(
        self,
        relative_path: str,
        builder: GraphBuilder,
        identity: NodeIdentityBuilder,
        default_package: str = DEFAULT_PACKAGE,
    ) -> Node:
        for mediator_id in self.mediator_tokens.values():
            builder.ensure_node(
                Node(
                    id=mediator_id,
                    simple_name=mediator_id,
                    node_type=NodeType.FUNCTION,
                    file_path="",
                    code_location=Range.empty(),
                    name_location=Range.empty(),
                    defining_node_name=default_package,
                )
            )
        return super().add_hardcoded_symbols(relative_path, builder, identity, default_package)

    def special_outbound(self, node: Node, nodes: Mapping[str, Node]) -> list[Connection]:
        if not node.is_synthetic or node.id not in self.mediator_tokens.values():
            return []
        return [
            edge
            for handler in self._handlers(nodes.values())
            for edge in self._pair(node.id, handler)
        ]

    def special_inbound(self, node: Node, nodes: Mapping[str, Node]) -> list[Connection]:
        if not self._is_handler(node):
            return []
        return [
            edge
            for mediator_id in self.mediator_tokens.values()
            if mediator_id in nodes
            for edge in self._pair(mediator_id, node)
        ]

    def _handlers(self, nodes: Iterable[Node]) -> list[Node]:
        return [node for node in nodes if self._is_handler(node)]

    def _is_handler(self, node: Node) -> bool:
        return (
            node.node_type is NodeType.FUNCTION
            and node.simple_name == self.handler_name
            and node.file_path.endswith(self.extensions)
        )

    @staticmethod
    def _pair(mediator_id: str, handler: Node) -> list[Connection]:
        return [
            Connection(
                handler.id,
                mediator_id,
                ConnectionType.OVERRIDES,
                handler.file_path,
                handler.name_location,
            ),
            Connection(
                mediator_id,
                handler.id,
                ConnectionType.USES,
                handler.file_path,
                handler.name_location,
            ),
        ]


class PythonAdapter(LanguageAdapter):
    name = "python"
    extensions = (".py",)
    reserved_words = frozenset(keyword.kwlist) | {"self", "cls"}
    body_open_tokens = (":",)
    import_pattern = re.compile(r"^\s*(?:import|from)\s.*$", re.MULTILINE)


class TypeScriptAdapter(LanguageAdapter):
    name = "typescript"
    extensions = (".ts", ".tsx", ".js", ".jsx")
    word_pattern = re.compile(r"[A-Za-z_$][A-Za-z_0-9$]*")
    reserved_words = frozenset(
        {
            "break", "case", "catch", "class", "const", "continue", "default",
            "delete", "do", "else", "export", "extends", "false", "finally",
            "for", "function", "if", "implements", "import", "in", "instanceof",
            "interface", "let", "new", "null", "return", "super", "switch",
            "this", "throw", "true", "try", "typeof", "var", "void", "while",
            "async", "await", "from", "undefined",
        }
    )


DEFAULT_ADAPTERS: tuple[LanguageAdapter, ...] = (
    KotlinAdapter(),
    CSharpAdapter(),
    PythonAdapter(),
    TypeScriptAdapter(),
)


class LanguageRegistry:
    def __init__(self, adapters: Iterable[LanguageAdapter] = DEFAULT_ADAPTERS) -> None:
        self.adapters = tuple(adapters)
        self._by_extension = {
            extension: adapter for adapter in self.adapters for extension in adapter.extensions
        }

    @property
    def extensions(self) -> tuple[str, ...]:
        return tuple(self._by_extension)

    def for_path(self, relative_path: str) -> LanguageAdapter | None:
        return self._by_extension.get(PurePosixPath(relative_path).suffix)

    def for_node(self, node: Node) -> tuple[LanguageAdapter, ...]:
        if node.is_synthetic:
            return self.adapters
        adapter = self.for_path(node.file_path)
        return (adapter,) if adapter else ()


def body_start(code: str, origin: Position, tokens: tuple[str, ...]) -> Position | None:
    """Position of the first body-opening token outside parentheses, if any."""
    depth = 0
    line, column = origin.line, origin.column
    for char in code:
        if char == "\n":
            if depth == 0 and "\n" in tokens:
                return Position(line, column)
            line += 1
            column = 0
            continue
        if char == "(":
            depth += 1
        elif char == ")":
            depth = max(depth - 1, 0)
        elif depth == 0 and char in tokens:
            return Position(line, column)
        column += 1
    return None
