"""Orchestration of the extraction and discovery passes over a set of files."""

from __future__ import annotations

import logging
from dataclasses import replace
from pathlib import Path
from typing import Iterable, Sequence

from .client import ServiceClient
from .config import ParserConfig
from .connections import ConnectionDiscoveryPass, link_overrides
from .extraction import SymbolExtractionPass
from .file_walker import iter_source_files
from .files import LocalFileHandler
from .graph import Graph, GraphBuilder, validate_graph
from .hashing import LocalitySensitiveHasher
from .identity import NodeIdentityBuilder
from .languages import LanguageRegistry
from .progress import AnalysisBudget, LoggingReporter, ProgressReporter
from .resolution import qualify_dangling_nodes


logger = logging.getLogger(__name__)


class LspGraphParser:
    def __init__(
        self,
        project_root: str | Path,
        client: ServiceClient,
        files: LocalFileHandler | None = None,
        languages: LanguageRegistry | None = None,
        config: ParserConfig | None = None,
        reporter: ProgressReporter | None = None,
        hasher: LocalitySensitiveHasher | None = None,
    ) -> None:
        self.project_root = Path(project_root).resolve()
        self.client = client
        self.files = files or LocalFileHandler(self.project_root)
        self.languages = languages or LanguageRegistry()
        self.config = config or ParserConfig()
        self.reporter = reporter or LoggingReporter()
        self.identity = NodeIdentityBuilder(self.files, hasher or self.config.make_hasher())

    def parse_project(
        self, roots: Iterable[str | Path] | None = None, max_files: int | None = None
    ) -> Graph:
        paths: list[str] = []
        for root in roots or (self.project_root,):
            paths.extend(iter_source_files(root, self.languages.extensions))
        if max_files is not None:
            paths = paths[:max_files]
        return self.parse_files(paths)

    def parse_files(
        self,
        paths: Sequence[str | Path],
        initial: Graph | None = None,
        validate: bool = True,
    ) -> Graph:
        builder = GraphBuilder.from_graph(initial) if initial is not None else GraphBuilder()
        budget = AnalysisBudget(limit=self.config.line_limit)
        relative = self.relative_paths(paths)

        extraction = SymbolExtractionPass(
            self.client,
            self.files,
            self.languages,
            self.identity,
            self.reporter,
            budget,
            self.config,
        )
        parsed = extraction.extract(relative, builder)
        extraction.assign_parents(builder, parsed)
        extraction.renormalize_ids(builder, parsed)

        if budget.exhausted:
            logger.warning(
                "Analysed %d lines (limit %d); skipping connection discovery",
                budget.lines_analysed,
                budget.limit,
            )
        else:
            self._discover(builder, parsed)

        self.reporter.progress(100)
        graph = builder.build()
        if validate:
            validate_graph(graph)
        return graph

    def relative_paths(self, paths: Iterable[str | Path]) -> list[str]:
        relative: list[str] = []
        for path in paths:
            converted = self.files.relativize(path)
            if converted is None:
                logger.warning("Ignoring %s outside project root %s", path, self.project_root)
                continue
            relative.append(converted)
        return relative

    def _discover(self, builder: GraphBuilder, parsed: list[str]) -> None:
        wanted = set(parsed)
        node_ids = [node.id for node in builder.nodes.values() if node.file_path in wanted]
        discovery = ConnectionDiscoveryPass(
            self.client, self.files, self.languages, self.reporter, self.config
        )
        if self.config.bulk_discovery:
            discovery.outbound_for_files(parsed, builder)
        else:
            discovery.outbound_for_nodes(node_ids, builder)
        if self.config.inbound_references:
            discovery.inbound_for_nodes(node_ids, builder)
        discovery.apply_special_connections(node_ids, builder)
        link_overrides(builder)
        qualify_dangling_nodes(builder, self.config.max_resolution_iterations)

        version = self.config.connection_version
        for node_id in node_ids:
            node = builder.nodes.get(node_id)
            if node is None:
                continue
            builder.add_node(
                replace(
                    node,
                    outbound_connection_version=version,
                    inbound_connection_version=version,
                )
            )
