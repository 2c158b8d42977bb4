"""Enclosing-range resolution of locations to graph nodes."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from .models import Node, NodeType, Range


class ResolutionKind(str, Enum):
    RESOLVED = "resolved"
    GLOBAL = "global"
    UNRESOLVED = "unresolved"


@dataclass(frozen=True)
class Resolution:
    kind: ResolutionKind
    node_id: str | None = None

    @classmethod
    def resolved(cls, node_id: str) -> Resolution:
        return cls(ResolutionKind.RESOLVED, node_id)

    @property
    def is_resolved(self) -> bool:
        return self.kind is ResolutionKind.RESOLVED

    def node_id_or(self, default: str) -> str:
        return self.node_id if self.node_id is not None else default


GLOBAL = Resolution(ResolutionKind.GLOBAL)
UNRESOLVED = Resolution(ResolutionKind.UNRESOLVED)


def find_enclosing(
    candidates: Iterable[Node],
    target: Range,
    exclude_id: str = "",
    by_lines: bool = False,
) -> Resolution:
    """Return the innermost candidate whose code range contains `target`.

    Containing candidates are folded by strict narrowing: a candidate replaces
    the current best only when its span lies inside the best's span.
    """
    pool = [node for node in candidates if node.id != exclude_id]
    if not pool:
        return UNRESOLVED

    best: Node | None = None
    for node in pool:
        span = node.code_location
        inside = span.contains_lines(target) if by_lines else span.contains(target)
        if not inside:
            continue
        if best is None or best.code_location.contains(span):
            best = node

    if best is None:
        return GLOBAL
    return Resolution.resolved(best.id)


def find_named(
    candidates: Iterable[Node],
    name: str,
    target: Range,
    exclude_id: str = "",
    tolerance: int = 1,
) -> Resolution:
    pool = list(candidates)
    line = target.start.line
    named = sorted(
        (node for node in pool if node.simple_name == name and node.id != exclude_id),
        # Declarations outrank the file node that shares their name.
        key=lambda node: (
            abs(node.name_location.start.line - line),
            node.node_type is NodeType.FILE,
        ),
    )
    for node in named:
        if (
            abs(node.name_location.start.line - line) <= tolerance
            or abs(node.code_location.start.line - line) <= tolerance
        ):
            return Resolution.resolved(node.id)
    return find_enclosing(pool, target, exclude_id=exclude_id, by_lines=True)
