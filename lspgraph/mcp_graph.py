"""Graph query helpers for MCP tools."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path, PurePosixPath
from typing import Iterable

import networkx as nx

from .graph import Graph


@dataclass(frozen=True)
class GraphSnapshot:
    generated_at: str
    node_count: int
    edge_count: int
    graph_path: str | None


class GraphService:
    def __init__(self, graph: Graph, graph_json_path: str | None = None) -> None:
        self.graph = graph
        self.graph_json_path = graph_json_path
        self.nx_graph = graph.to_networkx()
        self.generated_at = datetime.now(timezone.utc).isoformat()
        self._exact_index: dict[str, dict[str, list[str]]] = {
            "id": {},
            "name": {},
            "path": {},
        }
        self._build_indexes()

    @classmethod
    def from_json(cls, path: str | Path) -> GraphService:
        from .storage import load_graph

        return cls(load_graph(path), graph_json_path=str(path))

    def snapshot(self) -> GraphSnapshot:
        return GraphSnapshot(
            generated_at=self.generated_at,
            node_count=len(self.graph.nodes),
            edge_count=len(self.graph.connections),
            graph_path=self.graph_json_path,
        )

    def metadata(self) -> dict:
        snap = self.snapshot()
        return {
            "generated_at": snap.generated_at,
            "node_count": snap.node_count,
            "edge_count": snap.edge_count,
            "graph_path": snap.graph_path,
        }

    def search(
        self,
        query: str,
        node_types: list[str] | None = None,
        limit: int = 20,
    ) -> dict:
        q = query.lower()
        matches = []
        for node in self.graph.nodes.values():
            if node_types and node.node_type.value not in node_types:
                continue
            haystacks = (node.id, node.simple_name, node.file_path, node.node_signature)
            if any(q in haystack.lower() for haystack in haystacks if haystack):
                matches.append(self._node_view(node.id))
                if len(matches) >= limit:
                    break
        return {"query": query, "matches": matches}

    def node_details(self, query: str) -> dict:
        seed_ids = self._resolve_seed_nodes(query, limit=5)
        details = []
        for node_id in seed_ids:
            view = self._node_view(node_id)
            view["children"] = [child.id for child in self.graph.children(node_id)]
            view["outgoing"] = self._connection_views(self.graph.connections.from_node(node_id))
            view["incoming"] = self._connection_views(self.graph.connections.to_node(node_id))
            details.append(view)
        return {"query": query, "nodes": details}

    def get_dependencies(
        self,
        query: str,
        direction: str = "both",
        hops: int = 1,
        edge_types: list[str] | None = None,
        limit: int = 200,
    ) -> dict:
        seed_ids = self._resolve_seed_nodes(query, limit=5)
        nodes, edges = self._bfs(
            seed_ids,
            direction=direction,
            hops=hops,
            edge_types=set(edge_types) if edge_types else None,
            limit=limit,
        )
        return {
            "query": query,
            "matched": [self._node_view(node_id) for node_id in seed_ids],
            "direction": direction,
            "hops": hops,
            "nodes": [self._node_view(node_id) for node_id in nodes],
            "edges": edges,
        }

    def impact_analysis(
        self,
        query: str,
        hops: int = 2,
        edge_types: list[str] | None = None,
        limit: int = 200,
    ) -> dict:
        result = self.get_dependencies(
            query, direction="incoming", hops=hops, edge_types=edge_types, limit=limit
        )
        result.pop("direction")
        return result

    def graph_path(
        self,
        source: str,
        target: str,
        edge_types: list[str] | None = None,
        directed: bool = False,
    ) -> dict:
        source_ids = self._resolve_seed_nodes(source, limit=1)
        target_ids = self._resolve_seed_nodes(target, limit=1)
        result = {"source": source, "target": target, "path": [], "edges": []}
        if not source_ids or not target_ids:
            return {**result, "error": "Source or target not found"}

        graph = self._edge_filtered_graph(edge_types)
        if not directed:
            graph = graph.to_undirected()
        try:
            path = nx.shortest_path(graph, source_ids[0], target_ids[0])
        except nx.NetworkXNoPath:
            return {**result, "error": "No path found"}

        edges = []
        for idx in range(len(path) - 1):
            edges.extend(self._edges_between(path[idx], path[idx + 1], directed))
        return {
            **result,
            "path": [self._node_view(node_id) for node_id in path],
            "edges": edges,
        }

    def stats(self, edge_types: list[str] | None = None, limit: int = 10) -> dict:
        node_counts: dict[str, int] = {}
        file_counts: dict[str, int] = {}
        for node in self.graph.nodes.values():
            node_type = node.node_type.value
            node_counts[node_type] = node_counts.get(node_type, 0) + 1
            if node.file_path:
                group = str(PurePosixPath(node.file_path).parent)
                file_counts[group] = file_counts.get(group, 0) + 1

        edge_counts: dict[str, int] = {}
        for connection in self.graph.connections.all():
            edge_type = connection.connection_type.value
            edge_counts[edge_type] = edge_counts.get(edge_type, 0) + 1

        graph = self._edge_filtered_graph(edge_types)
        hubs = sorted(graph.degree(), key=lambda item: item[1], reverse=True)[:limit]
        directories = sorted(file_counts.items(), key=lambda item: item[1], reverse=True)[:limit]

        return {
            "node_counts": node_counts,
            "edge_counts": edge_counts,
            "top_hubs": [{**self._node_view(node_id), "degree": degree} for node_id, degree in hubs],
            "directory_breakdown": [
                {"directory": directory, "count": count} for directory, count in directories
            ],
            "clusters": _cluster_sizes(graph, limit=limit),
        }

    def _build_indexes(self) -> None:
        for node in self.graph.nodes.values():
            self._index_exact("id", node.id, node.id)
            self._index_exact("name", node.simple_name, node.id)
            if node.file_path:
                self._index_exact("path", node.file_path, node.id)

    def _index_exact(self, key: str, value: str, node_id: str) -> None:
        self._exact_index[key].setdefault(value.lower(), []).append(node_id)

    def _resolve_seed_nodes(self, query: str, limit: int) -> list[str]:
        query_lower = query.lower()
        for key in ("id", "name", "path"):
            bucket = self._exact_index[key].get(query_lower)
            if bucket:
                return bucket[:limit]
        return [match["id"] for match in self.search(query, limit=limit)["matches"]]

    def _node_view(self, node_id: str) -> dict:
        node = self.graph.get(node_id)
        if node is None:
            return {"id": node_id}
        return {
            "id": node_id,
            "type": node.node_type.value,
            "name": node.simple_name,
            "path": node.file_path or None,
            "signature": node.node_signature,
            "description": node.description,
            "defined_by": node.defining_node_name,
            "line": node.code_location.start.line,
        }

    @staticmethod
    def _connection_views(connections: Iterable) -> list[dict]:
        return [
            {
                "source": item.source,
                "target": item.target,
                "type": item.connection_type.value,
                "path": item.file_path or None,
            }
            for item in connections
        ]

    def _edges_between(self, source: str, target: str, directed: bool) -> list[dict]:
        found = self.graph.connections.between(source, target)
        if not directed:
            found = found + self.graph.connections.between(target, source)
        return self._connection_views(found)

    def _edge_filtered_graph(self, edge_types: list[str] | None) -> nx.MultiDiGraph:
        if not edge_types:
            return self.nx_graph
        allowed = set(edge_types)
        graph = nx.MultiDiGraph()
        graph.add_nodes_from(self.nx_graph.nodes(data=True))
        graph.add_edges_from(
            (u, v, key, data)
            for u, v, key, data in self.nx_graph.edges(keys=True, data=True)
            if data.get("type") in allowed
        )
        return graph

    def _bfs(
        self,
        seed_ids: Iterable[str],
        direction: str,
        hops: int,
        edge_types: set[str] | None,
        limit: int,
    ) -> tuple[list[str], list[dict]]:
        seeds = list(seed_ids)
        if not seeds:
            return [], []
        visited = set(seeds)
        frontier = set(seeds)
        edges: list[dict] = []
        seen_edges: set[tuple[str, str, str]] = set()

        for _ in range(max(hops, 1)):
            if not frontier:
                break
            next_frontier = set()
            for node_id in frontier:
                steps = []
                if direction in ("outgoing", "both"):
                    steps.extend(self.graph.connections.from_node(node_id))
                if direction in ("incoming", "both"):
                    steps.extend(self.graph.connections.to_node(node_id))
                for item in steps:
                    if edge_types is not None and item.connection_type.value not in edge_types:
                        continue
                    key = (item.source, item.target, item.connection_type.value)
                    if key not in seen_edges:
                        seen_edges.add(key)
                        edges.extend(self._connection_views([item]))
                    neighbor = item.target if item.source == node_id else item.source
                    if neighbor not in visited and len(visited) < limit:
                        visited.add(neighbor)
                        next_frontier.add(neighbor)
            frontier = next_frontier

        return list(visited), edges


def _cluster_sizes(graph: nx.MultiDiGraph, limit: int = 10) -> list[dict]:
    if graph.number_of_nodes() == 0:
        return []
    clusters = sorted(
        (len(component) for component in nx.weakly_connected_components(graph)),
        reverse=True,
    )
    return [{"cluster": idx + 1, "size": size} for idx, size in enumerate(clusters[:limit])]
