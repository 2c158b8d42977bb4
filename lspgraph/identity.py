"""Content-addressed node construction."""

from __future__ import annotations

from dataclasses import replace
from typing import Iterable

from .files import FileContentProvider, file_extent, slice_text
from .hashing import LocalitySensitiveHasher, path_hash
from .models import Node, NodeType, Position, Range


def node_id(file_path: str, code_hash: str, parent_key: str, simple_name: str) -> str:
    return f"{path_hash(file_path)}.{code_hash}.{parent_key}.{simple_name}"


def placeholder_parent_key(node_type: NodeType, position: Position) -> str:
    return f"{node_type.value}.{position.line}:{position.column}"


class NodeIdentityBuilder:
    def __init__(self, files: FileContentProvider, hasher: LocalitySensitiveHasher) -> None:
        self.files = files
        self.hasher = hasher

    def file_range(self, relative_path: str) -> Range:
        return file_extent(self.files.read_lines(relative_path))

    def build(
        self,
        simple_name: str,
        node_type: NodeType,
        relative_path: str,
        full_range: Range,
        name_range: Range | None = None,
        defining_node_name: str = "",
        defining_node_simple_name: str = "",
    ) -> Node:
        lines = self.files.read_lines(relative_path)
        bounds = file_extent(lines)
        code_range = full_range.clamp(bounds)
        if name_range is None:
            name_range = _find_name(lines, simple_name, code_range) or code_range
        else:
            name_range = name_range.clamp(bounds)

        code_hash = self.hasher.hash(slice_text(lines, code_range))
        parent_key = defining_node_simple_name or placeholder_parent_key(
            node_type, name_range.start
        )
        return Node(
            id=node_id(relative_path, code_hash, parent_key, simple_name),
            simple_name=simple_name,
            node_type=node_type,
            file_path=relative_path,
            code_location=code_range,
            name_location=name_range,
            code_hash=code_hash,
            defining_node_name=defining_node_name,
            node_signature=_signature(lines, simple_name, code_range),
        )

    def rehash(self, node: Node, children: Iterable[Node]) -> Node:
        """Hash the node's own text, eliding nested children down to their signatures."""
        lines = self.files.read_lines(node.file_path)
        pieces: list[str] = []
        cursor = node.code_location.start
        nested = sorted(
            (child for child in children if node.code_location.contains(child.code_location)),
            key=lambda child: child.code_location.start,
        )
        for child in nested:
            if child.code_location.start < cursor:
                continue
            pieces.append(slice_text(lines, Range(cursor, child.code_location.start)))
            pieces.append(child.node_signature or child.simple_name)
            cursor = child.code_location.end
        pieces.append(slice_text(lines, Range(cursor, node.code_location.end)))
        return replace(node, code_hash=self.hasher.hash("".join(pieces)))

    def with_parent(self, node: Node, parent_simple_name: str) -> Node:
        return replace(
            node,
            id=node_id(node.file_path, node.code_hash, parent_simple_name, node.simple_name),
        )


def _find_name(lines: list[str], name: str, code_range: Range) -> Range | None:
    if not name:
        return None
    last = min(code_range.end.line, len(lines) - 1)
    for line_no in range(code_range.start.line, last + 1):
        offset = code_range.start.column if line_no == code_range.start.line else 0
        column = lines[line_no].find(name, offset)
        if column != -1:
            return Range.of(line_no, column, line_no, column + len(name))
    return None


def _signature(lines: list[str], name: str, code_range: Range) -> str:
    last = min(code_range.end.line, len(lines) - 1)
    for line_no in range(code_range.start.line, last + 1):
        if name in lines[line_no]:
            return lines[line_no].strip()
    return name
