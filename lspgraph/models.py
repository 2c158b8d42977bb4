"""Data models for graph nodes, connections, and source positions."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any


DEFAULT_PACKAGE = "<global>"


@dataclass(frozen=True, order=True)
class Position:
    line: int
    column: int = 0

    def shifted(self, origin: Position) -> Position:
        # Positions relative to a snippet only carry the column offset on the first line.
        if self.line == 0:
            return Position(origin.line, origin.column + self.column)
        return Position(origin.line + self.line, self.column)


@dataclass(frozen=True)
class Range:
    start: Position
    end: Position

    @classmethod
    def of(cls, start_line: int, start_column: int, end_line: int, end_column: int) -> Range:
        return cls(Position(start_line, start_column), Position(end_line, end_column))

    @classmethod
    def empty(cls) -> Range:
        return cls.of(0, 0, 0, 0)

    def contains(self, other: Range) -> bool:
        return self.start <= other.start and other.end <= self.end

    def contains_lines(self, other: Range) -> bool:
        return self.start.line <= other.start.line and other.end.line <= self.end.line

    def clamp(self, bounds: Range) -> Range:
        start = min(max(self.start, bounds.start), bounds.end)
        end = max(min(self.end, bounds.end), start)
        return Range(start, end)

    def to_dict(self) -> dict[str, int]:
        return {
            "startLine": self.start.line,
            "startCharacter": self.start.column,
            "endLine": self.end.line,
            "endCharacter": self.end.column,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Range:
        return cls.of(
            int(data["startLine"]),
            int(data["startCharacter"]),
            int(data["endLine"]),
            int(data["endCharacter"]),
        )


@dataclass(frozen=True)
class Location:
    file_path: str
    range: Range

    def to_dict(self) -> dict[str, Any]:
        return {"filePath": self.file_path, "range": self.range.to_dict()}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Location:
        return cls(str(data["filePath"]), Range.from_dict(data["range"]))


class NodeType(str, Enum):
    FILE = "File"
    PACKAGE = "Package"
    CLASS = "Class"
    FUNCTION = "Function"
    PROPERTY = "Property"
    ALIAS = "Alias"


class ConnectionType(str, Enum):
    DEFINES = "defines"
    USES = "uses"
    INHERITS_FROM = "inherits-from"
    OVERRIDES = "overrides"
    INVOKED_BY = "invoked-by"


class SymbolKind(IntEnum):
    FILE = 0
    MODULE = 1
    NAMESPACE = 2
    PACKAGE = 3
    CLASS = 4
    METHOD = 5
    PROPERTY = 6
    FIELD = 7
    CONSTRUCTOR = 8
    ENUM = 9
    INTERFACE = 10
    FUNCTION = 11
    VARIABLE = 12
    CONSTANT = 13
    STRING = 14
    NUMBER = 15
    BOOLEAN = 16
    ARRAY = 17
    OBJECT = 18
    KEY = 19
    NULL = 20
    ENUM_MEMBER = 21
    STRUCT = 22
    EVENT = 23
    OPERATOR = 24
    TYPE_PARAMETER = 25

    def node_type(self) -> NodeType | None:
        return _KIND_NODE_TYPES.get(self)


_KIND_NODE_TYPES = {
    SymbolKind.FILE: NodeType.FILE,
    SymbolKind.METHOD: NodeType.FUNCTION,
    SymbolKind.CONSTRUCTOR: NodeType.FUNCTION,
    SymbolKind.FUNCTION: NodeType.FUNCTION,
    SymbolKind.CLASS: NodeType.CLASS,
    SymbolKind.STRUCT: NodeType.CLASS,
    SymbolKind.INTERFACE: NodeType.CLASS,
    SymbolKind.OBJECT: NodeType.CLASS,
    SymbolKind.VARIABLE: NodeType.PROPERTY,
    SymbolKind.PROPERTY: NodeType.PROPERTY,
    SymbolKind.FIELD: NodeType.PROPERTY,
}

GRAPH_KINDS = frozenset(_KIND_NODE_TYPES)


@dataclass(frozen=True)
class Qualified:
    pass


@dataclass(frozen=True)
class Dangling:
    context: str | None = None
    imports: tuple[str, ...] = ()


NodeState = Qualified | Dangling


@dataclass(frozen=True)
class Node:
    id: str
    simple_name: str
    node_type: NodeType
    file_path: str
    code_location: Range
    name_location: Range
    code_hash: str = ""
    defining_node_name: str = ""
    node_signature: str = ""
    description: str = ""
    inbound_connection_version: str = ""
    outbound_connection_version: str = ""
    state: NodeState = field(default_factory=Qualified)

    @property
    def is_dangling(self) -> bool:
        return isinstance(self.state, Dangling)

    @property
    def is_synthetic(self) -> bool:
        return not self.file_path

    def to_dict(self) -> dict[str, Any]:
        if isinstance(self.state, Dangling):
            state = {
                "kind": "dangling",
                "context": self.state.context,
                "imports": list(self.state.imports),
            }
        else:
            state = {"kind": "qualified"}
        return {
            "id": self.id,
            "simple_name": self.simple_name,
            "node_type": self.node_type.value,
            "file_path": self.file_path,
            "code_location": self.code_location.to_dict(),
            "name_location": self.name_location.to_dict(),
            "code_hash": self.code_hash,
            "defining_node_name": self.defining_node_name,
            "node_signature": self.node_signature,
            "description": self.description,
            "inbound_connection_version": self.inbound_connection_version,
            "outbound_connection_version": self.outbound_connection_version,
            "state": state,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Node:
        raw_state = data.get("state") or {}
        state: NodeState
        if raw_state.get("kind") == "dangling":
            state = Dangling(raw_state.get("context"), tuple(raw_state.get("imports") or ()))
        else:
            state = Qualified()
        return cls(
            id=data["id"],
            simple_name=data["simple_name"],
            node_type=NodeType(data["node_type"]),
            file_path=data.get("file_path") or "",
            code_location=Range.from_dict(data["code_location"]),
            name_location=Range.from_dict(data["name_location"]),
            code_hash=data.get("code_hash") or "",
            defining_node_name=data.get("defining_node_name") or "",
            node_signature=data.get("node_signature") or "",
            description=data.get("description") or "",
            inbound_connection_version=data.get("inbound_connection_version") or "",
            outbound_connection_version=data.get("outbound_connection_version") or "",
            state=state,
        )


@dataclass(frozen=True)
class Connection:
    source: str
    target: str
    connection_type: ConnectionType
    file_path: str = ""
    location: Range | None = None

    def key(self) -> tuple[str, str, ConnectionType]:
        return (self.source, self.target, self.connection_type)

    def remapped(self, mapping: dict[str, str]) -> Connection:
        return Connection(
            mapping.get(self.source, self.source),
            mapping.get(self.target, self.target),
            self.connection_type,
            self.file_path,
            self.location,
        )


@dataclass(frozen=True)
class PotentialSymbol:
    name: str
    start: Position
    end: Position

    @property
    def range(self) -> Range:
        return Range(self.start, self.end)
