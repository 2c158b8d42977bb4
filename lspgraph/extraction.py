"""Symbol extraction: outlines to nodes, local parenting, and id renormalization."""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import replace
from functools import partial
from pathlib import PurePosixPath
from typing import Iterable, Sequence

from .batch import BatchProcessor
from .client import ServiceClient
from .config import ParserConfig
from .files import LocalFileHandler
from .graph import GraphBuilder, default_package_node
from .identity import NodeIdentityBuilder
from .languages import LanguageAdapter, LanguageRegistry
from .models import Node, NodeType, Range, SymbolKind
from .progress import AnalysisBudget, ProgressPhase, ProgressReporter
from .protocol import (
    DocumentSymbolResponse,
    Response,
    SymbolInformationResponse,
    document_symbols,
)
from .ranges import find_enclosing


logger = logging.getLogger(__name__)

_STRUCTURAL_TYPES = (NodeType.FILE, NodeType.PACKAGE)


class SymbolExtractionPass:
    def __init__(
        self,
        client: ServiceClient,
        files: LocalFileHandler,
        languages: LanguageRegistry,
        identity: NodeIdentityBuilder,
        reporter: ProgressReporter,
        budget: AnalysisBudget,
        config: ParserConfig,
    ) -> None:
        self.client = client
        self.files = files
        self.languages = languages
        self.identity = identity
        self.reporter = reporter
        self.budget = budget
        self.config = config

    def extract(self, paths: Sequence[str], builder: GraphBuilder) -> list[str]:
        """Create nodes for every graph-worthy symbol and return the paths parsed."""
        builder.ensure_node(default_package_node(self.config.default_package))
        parsed: list[str] = []
        unsupported: set[str] = set()
        symbol_counts: dict[str, int] = defaultdict(int)
        phase = ProgressPhase(self.reporter, 0, 30)

        with BatchProcessor(
            self.client,
            max_batch_size=self.config.symbol_batch_size,
            retry_chunk_size=self.config.retry_chunk_size,
        ) as processor:
            for idx, path in enumerate(paths, start=1):
                extension = PurePosixPath(path).suffix
                adapter = self.languages.for_path(path)
                if adapter is None:
                    unsupported.add(extension or path)
                    continue
                try:
                    lines = self.files.read_lines(path)
                    adapter.add_hardcoded_symbols(
                        path, builder, self.identity, self.config.default_package
                    )
                except OSError as exc:
                    logger.error("Failed to read %s: %s", path, exc)
                    self.reporter.error(f"Failed to parse {path}: {exc}")
                    continue

                self.budget.add(len(lines))
                symbol_counts.setdefault(extension, 0)
                parsed.append(path)
                processor.enqueue(
                    document_symbols(str(self.files.absolute(path))),
                    partial(self._on_symbols, path, adapter, builder, symbol_counts),
                )
                if idx % 100 == 0:
                    logger.info("Requested symbols for %d/%d files", idx, len(paths))
                phase.update(idx, len(paths))

        if unsupported:
            self.reporter.warning(
                "No language adapter for file extensions: " + ", ".join(sorted(unsupported))
            )
        silent = sorted(ext for ext, count in symbol_counts.items() if count == 0)
        if silent:
            self.reporter.warning(
                "The language service returned no symbols for: " + ", ".join(silent)
            )
        logger.info("Extracted symbols from %d files", len(parsed))
        return parsed

    def _on_symbols(
        self,
        path: str,
        adapter: LanguageAdapter,
        builder: GraphBuilder,
        symbol_counts: dict[str, int],
        response: Response,
    ) -> None:
        if isinstance(response, DocumentSymbolResponse):
            entries = [
                (symbol.name, symbol.kind, symbol.range, symbol.selection_range)
                for root in response.symbols
                for symbol in root.flatten()
            ]
        elif isinstance(response, SymbolInformationResponse):
            entries = [
                (symbol.name, symbol.kind, symbol.location.range, None)
                for symbol in response.symbols
            ]
        else:
            logger.debug("Ignoring %s for %s", type(response).__name__, path)
            return

        for name, kind, full_range, name_range in entries:
            node = self._build_node(path, adapter, name, kind, full_range, name_range)
            if node is None:
                continue
            builder.add_node(node)
            symbol_counts[PurePosixPath(path).suffix] += 1

    def _build_node(
        self,
        path: str,
        adapter: LanguageAdapter,
        name: str,
        kind: SymbolKind | None,
        full_range: Range,
        name_range: Range | None,
    ) -> Node | None:
        converted = adapter.convert_symbol(name, kind)
        if converted is None:
            return None
        simple_name, node_type = converted
        if name_range is not None and simple_name != name:
            # The selection range spans the raw name; rescan for the cleaned one.
            name_range = None
        return self.identity.build(simple_name, node_type, path, full_range, name_range)

    def assign_parents(self, builder: GraphBuilder, paths: Iterable[str]) -> None:
        """Parent every node to the innermost other node in its file containing its name."""
        paths = list(paths)
        phase = ProgressPhase(self.reporter, 30, 55)
        for idx, path in enumerate(paths, start=1):
            candidates = builder.nodes_in_file(path)
            for node in candidates:
                if node.node_type in _STRUCTURAL_TYPES:
                    continue
                resolution = find_enclosing(candidates, node.name_location, exclude_id=node.id)
                parent = resolution.node_id_or(self.config.default_package)
                builder.add_node(replace(node, defining_node_name=parent))
            phase.update(idx, len(paths))

    def renormalize_ids(self, builder: GraphBuilder, paths: Iterable[str]) -> dict[str, str]:
        """Rehash each node without its children and recompute ids from the parent's name."""
        wanted = set(paths)
        nodes = [node for node in builder.nodes.values() if node.file_path in wanted]
        children: dict[str, list[Node]] = defaultdict(list)
        for node in nodes:
            children[node.defining_node_name].append(node)

        mapping: dict[str, str] = {}
        renamed: dict[str, Node] = {}
        for node in nodes:
            definer = builder.nodes.get(node.defining_node_name)
            parent_name = definer.simple_name if definer else node.defining_node_name
            rebuilt = self.identity.with_parent(
                self.identity.rehash(node, children.get(node.id, ())), parent_name
            )
            mapping[node.id] = rebuilt.id
            renamed[node.id] = rebuilt

        for old_id in renamed:
            builder.nodes.pop(old_id, None)
        for node in renamed.values():
            if node.id in builder.nodes:
                logger.debug("Identical symbols collapse into node %s", node.id)
            builder.add_node(
                replace(
                    node,
                    defining_node_name=mapping.get(
                        node.defining_node_name, node.defining_node_name
                    ),
                )
            )
        builder.remap({old: new for old, new in mapping.items() if old != new})
        return mapping
