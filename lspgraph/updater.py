"""Incremental add, delete, and reparse of files against an existing graph."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable

from .graph import Graph, GraphBuilder, validate_graph
from .merging import DescriptionMerger
from .parser import LspGraphParser


logger = logging.getLogger(__name__)


class GraphUpdater:
    def __init__(self, parser: LspGraphParser, merger: DescriptionMerger | None = None) -> None:
        self.parser = parser
        self.merger = merger or DescriptionMerger()

    def add_files(self, paths: Iterable[str | Path], graph: Graph) -> Graph:
        relative = self.parser.relative_paths(paths)
        self.parser.files.invalidate(relative)
        logger.info("Adding %d files", len(relative))
        return self.parser.parse_files(relative, initial=graph)

    def delete_files(self, paths: Iterable[str | Path], graph: Graph) -> Graph:
        relative = set(self.parser.relative_paths(paths))
        builder = GraphBuilder.from_graph(graph)
        removed = [node.id for node in builder.nodes.values() if node.file_path in relative]
        builder.remove_nodes(removed)
        logger.info("Deleted %d nodes from %d files", len(removed), len(relative))
        return builder.build()

    def reparse_files(self, paths: Iterable[str | Path], graph: Graph) -> Graph:
        relative = self.parser.relative_paths(paths)
        scope = set(relative)
        self.parser.files.invalidate(relative)

        # Keep edges into the reparsed files so unchanged nodes get them back;
        # edges found while reading these files are rediscovered.
        builder = GraphBuilder.from_graph(graph)
        builder.remove_nodes(
            [node.id for node in builder.nodes.values() if node.file_path in scope],
            drop_connections=False,
        )
        builder.connections = {
            item for item in builder.connections if item.file_path not in scope
        }
        existing = [path for path in relative if self.parser.files.exists(path)]
        parsed = self.parser.parse_files(existing, initial=builder.build(), validate=False)
        logger.info("Reparsed %d files", len(existing))
        merged = self.merger.merge(parsed, graph, scope)
        validate_graph(merged)
        return merged
