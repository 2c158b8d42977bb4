"""Connection discovery: definition and reference queries turned into typed edges."""

from __future__ import annotations

import logging
from collections import defaultdict
from functools import partial
from pathlib import PurePosixPath
from typing import Iterable, Sequence
from urllib.parse import unquote, urlparse

from .batch import BatchProcessor
from .client import ServiceClient
from .config import ParserConfig
from .files import LocalFileHandler
from .graph import GraphBuilder
from .languages import LanguageAdapter, LanguageRegistry, body_start
from .models import (
    Connection,
    ConnectionType,
    Dangling,
    Location,
    Node,
    NodeType,
    Position,
    PotentialSymbol,
)
from .progress import ProgressPhase, ProgressReporter
from .protocol import Response, definition, references, response_locations
from .ranges import find_enclosing, find_named


logger = logging.getLogger(__name__)

_STRUCTURAL_TYPES = (NodeType.FILE, NodeType.PACKAGE)


class _NodeIndex:
    def __init__(self, nodes: Iterable[Node]) -> None:
        self.by_file: dict[str, list[Node]] = defaultdict(list)
        self.by_name: dict[str, list[Node]] = defaultdict(list)
        for node in nodes:
            if node.is_dangling:
                continue
            self.by_file[node.file_path].append(node)
            self.by_name[node.simple_name].append(node)

    def in_file(self, file_path: str) -> list[Node]:
        return self.by_file.get(file_path, [])

    def named(self, name: str) -> list[Node]:
        return self.by_name.get(name, [])


class ConnectionDiscoveryPass:
    def __init__(
        self,
        client: ServiceClient,
        files: LocalFileHandler,
        languages: LanguageRegistry,
        reporter: ProgressReporter,
        config: ParserConfig,
    ) -> None:
        self.client = client
        self.files = files
        self.languages = languages
        self.reporter = reporter
        self.config = config

    def outbound_for_files(self, paths: Sequence[str], builder: GraphBuilder) -> None:
        """Query every token of each file; the innermost node at the token is the source."""
        index = _NodeIndex(builder.nodes.values())
        phase = ProgressPhase(self.reporter, 55, 99)
        with self._processor() as processor:
            for idx, path in enumerate(paths, start=1):
                adapter = self.languages.for_path(path)
                if adapter is None:
                    continue
                try:
                    code = self.files.read(path)
                except OSError as exc:
                    logger.error("Skipping connections for %s: %s", path, exc)
                    self.reporter.error(f"Failed to read {path}: {exc}")
                    continue
                candidates = index.in_file(path)
                imports = adapter.imports(code)
                for token in adapter.tokenize(code):
                    origin = find_enclosing(candidates, token.range)
                    if not origin.is_resolved:
                        continue
                    self._query_definition(
                        processor, builder, index, adapter, path, origin.node_id, token, imports
                    )
                if idx % 100 == 0:
                    logger.info("Queried connections for %d/%d files", idx, len(paths))
                phase.update(idx, len(paths))

    def outbound_for_nodes(self, node_ids: Iterable[str], builder: GraphBuilder) -> None:
        """Query the tokens of each node's own text; nested children answer for theirs."""
        index = _NodeIndex(builder.nodes.values())
        node_ids = list(node_ids)
        phase = ProgressPhase(self.reporter, 55, 99)
        with self._processor() as processor:
            for idx, node_id in enumerate(node_ids, start=1):
                phase.update(idx, len(node_ids))
                node = builder.nodes.get(node_id)
                if node is None or node.is_synthetic or node.is_dangling:
                    continue
                adapter = self.languages.for_path(node.file_path)
                if adapter is None:
                    continue
                try:
                    code = self.files.read_range(node.file_path, node.code_location)
                    imports = adapter.imports(self.files.read(node.file_path))
                except OSError as exc:
                    logger.error("Skipping connections for %s: %s", node_id, exc)
                    self.reporter.error(f"Failed to read {node.file_path}: {exc}")
                    continue
                candidates = index.in_file(node.file_path)
                for token in adapter.tokenize(code, origin=node.code_location.start):
                    if find_enclosing(candidates, token.range).node_id != node_id:
                        continue
                    self._query_definition(
                        processor, builder, index, adapter, node.file_path, node_id, token, imports
                    )

    def inbound_for_nodes(self, node_ids: Iterable[str], builder: GraphBuilder) -> None:
        index = _NodeIndex(builder.nodes.values())
        with self._processor() as processor:
            for node_id in node_ids:
                node = builder.nodes.get(node_id)
                if node is None or node.is_dangling or node.node_type in _STRUCTURAL_TYPES:
                    continue
                if not self.files.is_file(node.file_path):
                    continue
                processor.enqueue(
                    references(str(self.files.absolute(node.file_path)), node.name_location),
                    partial(self._on_references, builder, index, node_id),
                )

    def apply_special_connections(self, node_ids: Iterable[str], builder: GraphBuilder) -> None:
        wanted = set(node_ids)
        targets = [
            node for node in builder.nodes.values() if node.id in wanted or node.is_synthetic
        ]
        for node in targets:
            for adapter in self.languages.for_node(node):
                builder.add_connections(adapter.special_outbound(node, builder.nodes))
                builder.add_connections(adapter.special_inbound(node, builder.nodes))

    def classify(
        self,
        source: Node,
        target: Node,
        position: Position,
        adapter: LanguageAdapter | None = None,
    ) -> ConnectionType:
        """Class-to-class references in the source's header are inheritance."""
        if source.node_type is not NodeType.CLASS or target.node_type is not NodeType.CLASS:
            return ConnectionType.USES
        adapter = adapter or self.languages.for_path(source.file_path)
        tokens = adapter.body_open_tokens if adapter else ("{",)
        try:
            code = self.files.read_range(source.file_path, source.code_location)
        except OSError:
            return ConnectionType.USES
        origin = source.code_location.start
        # Without a body the header ends with its first line outside parentheses.
        opening = body_start(code, origin, tokens) or body_start(code, origin, ("\n",))
        if opening is not None and position < opening:
            return ConnectionType.INHERITS_FROM
        return ConnectionType.USES

    def _processor(self) -> BatchProcessor:
        return BatchProcessor(
            self.client,
            max_batch_size=self.config.connection_batch_size,
            retry_chunk_size=self.config.retry_chunk_size,
        )

    def _query_definition(
        self,
        processor: BatchProcessor,
        builder: GraphBuilder,
        index: _NodeIndex,
        adapter: LanguageAdapter,
        path: str,
        source_id: str,
        token: PotentialSymbol,
        imports: tuple[str, ...],
    ) -> None:
        processor.enqueue(
            definition(str(self.files.absolute(path)), token.start),
            partial(self._on_definition, builder, index, adapter, path, source_id, token, imports),
        )

    def _on_definition(
        self,
        builder: GraphBuilder,
        index: _NodeIndex,
        adapter: LanguageAdapter,
        path: str,
        source_id: str,
        token: PotentialSymbol,
        imports: tuple[str, ...],
        response: Response,
    ) -> None:
        source = builder.nodes.get(source_id)
        if source is None:
            return
        locations = response_locations(response)
        if not locations:
            self._record_dangling(builder, index, path, source_id, token, imports)
            return
        for location in locations:
            target_id = self._resolve_target(builder, index, location, token.name)
            if target_id is None or target_id in (source_id, self.config.default_package):
                continue
            connection_type = self.classify(source, builder.nodes[target_id], token.start, adapter)
            builder.add_connection(
                Connection(source_id, target_id, connection_type, path, token.range)
            )

    def _on_references(
        self,
        builder: GraphBuilder,
        index: _NodeIndex,
        node_id: str,
        response: Response,
    ) -> None:
        node = builder.nodes.get(node_id)
        if node is None:
            return
        for location in response_locations(response):
            relative = self.files.relativize(_strip_uri(location.file_path))
            if relative is None or self._is_external(relative):
                continue
            caller = find_enclosing(index.in_file(relative), location.range)
            if not caller.is_resolved or caller.node_id in (node_id, self.config.default_package):
                continue
            source = builder.nodes[caller.node_id]
            connection_type = self.classify(source, node, location.range.start)
            builder.add_connection(
                Connection(caller.node_id, node_id, connection_type, relative, location.range)
            )

    def _resolve_target(
        self,
        builder: GraphBuilder,
        index: _NodeIndex,
        location: Location,
        name: str,
    ) -> str | None:
        raw_path = _strip_uri(location.file_path)
        relative = self.files.relativize(raw_path)
        if relative is None or self._is_external(relative):
            return self._external_match(builder, index, name, raw_path)

        resolution = find_named(index.in_file(relative), name, location.range)
        if not resolution.is_resolved:
            return None
        callee = builder.nodes.get(resolution.node_id)
        if callee is None:
            return None
        # A definition well below the matched node's start is a local inside it.
        line = location.range.start.line - 1
        if callee.code_location.start.line < line and callee.name_location.start.line < line:
            return None
        return callee.id

    def _is_external(self, relative: str) -> bool:
        parts = PurePosixPath(relative).parts
        return any(marker in parts for marker in self.config.external_markers)

    def _external_match(
        self, builder: GraphBuilder, index: _NodeIndex, name: str, raw_path: str
    ) -> str | None:
        if name in builder.nodes:
            return name
        file_name = PurePosixPath(raw_path.replace("\\", "/")).name
        for node in index.named(name):
            if node.file_path and PurePosixPath(node.file_path).name == file_name:
                return node.id
        return None

    def _record_dangling(
        self,
        builder: GraphBuilder,
        index: _NodeIndex,
        path: str,
        source_id: str,
        token: PotentialSymbol,
        imports: tuple[str, ...],
    ) -> None:
        if not self.config.create_dangling:
            return
        if not any(node.id != source_id for node in index.named(token.name)):
            return
        builder.ensure_node(
            Node(
                id=f"dangling:{source_id}:{token.name}",
                simple_name=token.name,
                node_type=NodeType.ALIAS,
                file_path=path,
                code_location=token.range,
                name_location=token.range,
                defining_node_name=source_id,
                state=Dangling(source_id, imports),
            )
        )


def link_overrides(builder: GraphBuilder) -> int:
    """Functions redefined by a subclass override the base class's function."""
    methods: dict[str, dict[str, list[Node]]] = defaultdict(lambda: defaultdict(list))
    for node in builder.nodes.values():
        if node.node_type is NodeType.FUNCTION and not node.is_dangling:
            methods[node.defining_node_name][node.simple_name].append(node)

    added = 0
    inherits = [
        item for item in builder.connections if item.connection_type is ConnectionType.INHERITS_FROM
    ]
    for edge in inherits:
        base = methods.get(edge.target)
        derived = methods.get(edge.source)
        if not base or not derived:
            continue
        for name, overriding in derived.items():
            if name == "constructor" or name not in base:
                continue
            for method in overriding:
                for overridden in base[name]:
                    builder.add_connection(
                        Connection(
                            method.id,
                            overridden.id,
                            ConnectionType.OVERRIDES,
                            method.file_path,
                            method.name_location,
                        )
                    )
                    added += 1
    return added


def _strip_uri(path: str) -> str:
    if path.startswith("file://"):
        return unquote(urlparse(path).path)
    if path.startswith("file:"):
        return path[len("file:") :]
    return path
