"""Description-preserving merge of a reparsed graph with its predecessor."""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import replace
from typing import Collection

from .graph import Graph, GraphBuilder
from .models import Node, NodeType


logger = logging.getLogger(__name__)

OUTDATED_MARKER = "[OUTDATED]\n"

_SignatureKey = tuple[str, str, str, NodeType]


def _signature_key(node: Node) -> _SignatureKey:
    return (node.file_path, node.node_signature, node.simple_name, node.node_type)


class DescriptionMerger:
    """Carries descriptions from old nodes to their reparsed counterparts.

    Nodes are matched by file and declaration signature rather than id. When
    the matched code changed, the description is kept but flagged with
    `OUTDATED_MARKER`.
    """

    def merge(
        self,
        new_graph: Graph,
        old_graph: Graph,
        paths: Collection[str] | None = None,
    ) -> Graph:
        scope = set(paths) if paths is not None else None
        previous: dict[_SignatureKey, list[Node]] = defaultdict(list)
        for node in old_graph.nodes.values():
            if node.description and (scope is None or node.file_path in scope):
                previous[_signature_key(node)].append(node)

        builder = GraphBuilder.from_graph(new_graph)
        carried = 0
        for node in new_graph.nodes.values():
            if scope is not None and node.file_path not in scope:
                continue
            candidates = previous.get(_signature_key(node))
            if not candidates:
                continue
            match = _best_match(node, candidates)
            candidates.remove(match)
            builder.add_node(replace(node, description=_carry(match, node)))
            carried += 1

        dropped = builder.drop_orphan_connections()
        if carried or dropped:
            logger.info(
                "Carried %d descriptions, dropped %d stale connections", carried, len(dropped)
            )
        return builder.build()


def _best_match(node: Node, candidates: list[Node]) -> Node:
    return min(
        candidates,
        key=lambda old: (
            old.code_hash != node.code_hash,
            abs(old.code_location.start.line - node.code_location.start.line),
        ),
    )


def _carry(old: Node, new: Node) -> str:
    if old.code_hash == new.code_hash or old.description.startswith(OUTDATED_MARKER):
        return old.description
    return OUTDATED_MARKER + old.description
