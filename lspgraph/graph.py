"""Immutable graph view, its connection index, and the mutable builder."""

from __future__ import annotations

import logging
from dataclasses import replace
from types import MappingProxyType
from typing import Iterable, Iterator, Mapping

import networkx as nx

from .models import (
    DEFAULT_PACKAGE,
    Connection,
    ConnectionType,
    Node,
    NodeType,
    Range,
)


logger = logging.getLogger(__name__)


def default_package_node(name: str = DEFAULT_PACKAGE) -> Node:
    return Node(
        id=name,
        simple_name=name,
        node_type=NodeType.PACKAGE,
        file_path="",
        code_location=Range.empty(),
        name_location=Range.empty(),
    )


class ConnectionIndex:
    """Connections keyed by themselves in a multi-digraph, so duplicates collapse."""

    def __init__(self, connections: Iterable[Connection] = ()) -> None:
        self._graph = nx.MultiDiGraph()
        for connection in connections:
            self._graph.add_edge(connection.source, connection.target, key=connection)

    def __len__(self) -> int:
        return self._graph.number_of_edges()

    def __iter__(self) -> Iterator[Connection]:
        return iter(self.all())

    def __contains__(self, connection: object) -> bool:
        if not isinstance(connection, Connection):
            return False
        return self._graph.has_edge(connection.source, connection.target, key=connection)

    def all(self) -> list[Connection]:
        return [key for _, _, key in self._graph.edges(keys=True)]

    def from_node(
        self, node_id: str, connection_type: ConnectionType | None = None
    ) -> list[Connection]:
        if node_id not in self._graph:
            return []
        return _filter(
            (key for _, _, key in self._graph.out_edges(node_id, keys=True)), connection_type
        )

    def to_node(
        self, node_id: str, connection_type: ConnectionType | None = None
    ) -> list[Connection]:
        if node_id not in self._graph:
            return []
        return _filter(
            (key for _, _, key in self._graph.in_edges(node_id, keys=True)), connection_type
        )

    def of_type(self, connection_type: ConnectionType) -> list[Connection]:
        return _filter(self.all(), connection_type)

    def between(
        self, source: str, target: str, connection_type: ConnectionType | None = None
    ) -> list[Connection]:
        edges = self._graph.get_edge_data(source, target) or {}
        return _filter(edges.keys(), connection_type)


def _filter(
    connections: Iterable[Connection], connection_type: ConnectionType | None
) -> list[Connection]:
    if connection_type is None:
        return list(connections)
    return [item for item in connections if item.connection_type is connection_type]


class Graph:
    def __init__(self, nodes: Mapping[str, Node], connections: Iterable[Connection]) -> None:
        self._nodes = dict(nodes)
        self.nodes: Mapping[str, Node] = MappingProxyType(self._nodes)
        self.connections = ConnectionIndex(connections)

    def get(self, node_id: str) -> Node | None:
        return self._nodes.get(node_id)

    def nodes_in_file(self, file_path: str) -> list[Node]:
        return [node for node in self._nodes.values() if node.file_path == file_path]

    def definer(self, node_id: str) -> Node | None:
        node = self._nodes.get(node_id)
        if node is None:
            return None
        return self._nodes.get(node.defining_node_name)

    def children(self, node_id: str) -> list[Node]:
        return [
            self._nodes[item.target]
            for item in self.connections.from_node(node_id, ConnectionType.DEFINES)
            if item.target in self._nodes
        ]

    def to_networkx(self) -> nx.MultiDiGraph:
        graph = nx.MultiDiGraph()
        for node_id, node in self._nodes.items():
            graph.add_node(node_id, **node.to_dict())
        for idx, connection in enumerate(self.connections.all()):
            graph.add_edge(
                connection.source,
                connection.target,
                key=idx,
                type=connection.connection_type.value,
                file_path=connection.file_path,
                location=connection.location.to_dict() if connection.location else None,
            )
        return graph

    @classmethod
    def from_networkx(cls, graph: nx.MultiDiGraph) -> Graph:
        nodes = {}
        for node_id, data in graph.nodes(data=True):
            nodes[node_id] = Node.from_dict({**data, "id": node_id})
        connections = []
        for source, target, data in graph.edges(data=True):
            location = data.get("location")
            connections.append(
                Connection(
                    source,
                    target,
                    ConnectionType(data["type"]),
                    data.get("file_path") or "",
                    Range.from_dict(location) if location else None,
                )
            )
        return cls(nodes, connections)


class GraphBuilder:
    """Mutable node map and connection set; `build()` snapshots it into a Graph.

    Defines connections are not stored; they are derived from each node's
    `defining_node_name` when the graph is built.
    """

    def __init__(self) -> None:
        self.nodes: dict[str, Node] = {}
        self.connections: set[Connection] = set()

    @classmethod
    def from_graph(cls, graph: Graph) -> GraphBuilder:
        builder = cls()
        builder.nodes.update(graph.nodes)
        builder.connections.update(
            item
            for item in graph.connections.all()
            if item.connection_type is not ConnectionType.DEFINES
        )
        return builder

    def add_node(self, node: Node) -> None:
        self.nodes[node.id] = node

    def ensure_node(self, node: Node) -> Node:
        return self.nodes.setdefault(node.id, node)

    def add_connection(self, connection: Connection) -> None:
        self.connections.add(connection)

    def add_connections(self, connections: Iterable[Connection]) -> None:
        self.connections.update(connections)

    def describe(self, node_id: str, description: str) -> None:
        self.nodes[node_id] = replace(self.nodes[node_id], description=description)

    def nodes_in_file(self, file_path: str) -> list[Node]:
        return [node for node in self.nodes.values() if node.file_path == file_path]

    def remove_nodes(self, node_ids: Iterable[str], drop_connections: bool = True) -> None:
        removed = set(node_ids)
        for node_id in removed:
            self.nodes.pop(node_id, None)
        if drop_connections:
            self.connections = {
                item
                for item in self.connections
                if item.source not in removed and item.target not in removed
            }

    def remap(self, mapping: dict[str, str]) -> None:
        if mapping:
            self.connections = {item.remapped(mapping) for item in self.connections}

    def drop_orphan_connections(self) -> list[Connection]:
        orphans = [
            item
            for item in self.connections
            if item.source not in self.nodes or item.target not in self.nodes
        ]
        self.connections.difference_update(orphans)
        return orphans

    def build(self) -> Graph:
        defines = [
            Connection(
                node.defining_node_name,
                node.id,
                ConnectionType.DEFINES,
                node.file_path,
                node.name_location,
            )
            for node in self.nodes.values()
            if node.defining_node_name in self.nodes and node.defining_node_name != node.id
        ]
        return Graph(self.nodes, [*self.connections, *defines])


def validate_graph(graph: Graph) -> list[Connection]:
    broken = [
        item
        for item in graph.connections.all()
        if item.source not in graph.nodes or item.target not in graph.nodes
    ]
    for item in broken:
        logger.error(
            "Connection %s -[%s]-> %s references a missing node",
            item.source,
            item.connection_type.value,
            item.target,
        )
    return broken
