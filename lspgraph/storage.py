"""JSON serialization helpers for knowledge graphs."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from networkx.readwrite import json_graph

from .graph import Graph


def graph_to_json(graph: Graph) -> dict[str, Any]:
    return json_graph.node_link_data(graph.to_networkx())


def graph_from_json(data: dict[str, Any]) -> Graph:
    return Graph.from_networkx(json_graph.node_link_graph(data, directed=True, multigraph=True))


def save_graph(graph: Graph, path: str | Path) -> None:
    Path(path).write_text(json.dumps(graph_to_json(graph), indent=2), encoding="utf-8")


def load_graph(path: str | Path) -> Graph:
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    return graph_from_json(data)
