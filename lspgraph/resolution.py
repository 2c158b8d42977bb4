"""Qualification of dangling reference placeholders."""

from __future__ import annotations

import logging
import re
from collections import defaultdict
from dataclasses import dataclass
from pathlib import PurePosixPath

from .graph import GraphBuilder
from .models import Connection, ConnectionType, Dangling, Node, NodeType


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolutionReport:
    resolved: int
    dropped: int
    iterations: int


class _Lookup:
    def __init__(self, builder: GraphBuilder) -> None:
        self.nodes = builder.nodes
        self.by_name: dict[str, list[Node]] = defaultdict(list)
        self.children: dict[str, dict[str, list[Node]]] = defaultdict(lambda: defaultdict(list))
        for node in builder.nodes.values():
            if node.is_dangling:
                continue
            self.by_name[node.simple_name].append(node)
            self.children[node.defining_node_name][node.simple_name].append(node)

    def in_context(self, name: str, context: str | None) -> Node | None:
        seen: set[str] = set()
        while context and context not in seen:
            seen.add(context)
            scope = self.children.get(context)
            if scope and scope.get(name):
                return scope[name][0]
            definer = self.nodes.get(context)
            context = definer.defining_node_name if definer else None
        return None

    def in_imports(self, name: str, imports: tuple[str, ...]) -> Node | None:
        word = re.compile(rf"\b{re.escape(name)}\b")
        for candidate in self.by_name.get(name, ()):
            if not candidate.file_path:
                continue
            stem = re.compile(rf"\b{re.escape(PurePosixPath(candidate.file_path).stem)}\b")
            definer = self.nodes.get(candidate.defining_node_name)
            top_level = definer is None or definer.node_type in (NodeType.FILE, NodeType.PACKAGE)
            for line in imports:
                if stem.search(line) or (top_level and word.search(line)):
                    return candidate
        return None


def _alias_target(name: str, imports: tuple[str, ...]) -> str | None:
    escaped = re.escape(name)
    patterns = (
        re.compile(rf"([A-Za-z_][\w.]*)\s+as\s+{escaped}\b"),
        re.compile(rf"using\s+{escaped}\s*=\s*([A-Za-z_][\w.]*)"),
    )
    for line in imports:
        for pattern in patterns:
            match = pattern.search(line)
            if match:
                return match.group(1).rsplit(".", 1)[-1]
    return None


def qualify_dangling_nodes(builder: GraphBuilder, max_iterations: int = 10) -> ResolutionReport:
    """Resolve placeholders through their lexical context, then imports, then aliases.

    Each round only retries placeholders that were re-queued under an alias
    name. Placeholders still pending after `max_iterations` rounds, or after
    a round without progress, are removed without producing an edge.
    """
    lookup = _Lookup(builder)
    pending = [node.id for node in builder.nodes.values() if node.is_dangling]
    names: dict[str, str] = {}
    tried_names: dict[str, set[str]] = defaultdict(set)
    unresolved: list[str] = []
    resolved = 0
    iterations = 0

    while pending and iterations < max_iterations:
        iterations += 1
        attempted: set[str] = set()
        requeued: list[str] = []
        for placeholder_id in pending:
            if placeholder_id in attempted:
                continue
            attempted.add(placeholder_id)
            node = builder.nodes[placeholder_id]
            state = node.state
            if not isinstance(state, Dangling):
                continue
            name = names.get(placeholder_id, node.simple_name)
            tried_names[placeholder_id].add(name)

            target = lookup.in_context(name, state.context) or lookup.in_imports(
                name, state.imports
            )
            if target is not None and state.context and target.id != state.context:
                builder.add_connection(
                    Connection(
                        state.context,
                        target.id,
                        ConnectionType.USES,
                        node.file_path,
                        node.name_location,
                    )
                )
                builder.remove_nodes([placeholder_id])
                resolved += 1
                continue

            alias = _alias_target(name, state.imports)
            if alias and alias not in tried_names[placeholder_id]:
                names[placeholder_id] = alias
                requeued.append(placeholder_id)
            else:
                unresolved.append(placeholder_id)
        pending = requeued

    dropped = unresolved + pending
    builder.remove_nodes(dropped)
    if resolved or dropped:
        logger.info(
            "Qualified %d dangling references, dropped %d after %d iterations",
            resolved,
            len(dropped),
            iterations,
        )
    return ResolutionReport(resolved=resolved, dropped=len(dropped), iterations=iterations)
