from __future__ import annotations

import json

from lspgraph.config import ParserConfig
from lspgraph.models import ConnectionType, SymbolKind
from lspgraph.pipeline import build_graph_from_root
from lspgraph.storage import load_graph


def _write_project(service):
    service.write(
        "src/Foo.kt",
        "open class Foo {\n    fun greet() = 1\n}\n",
        ("Foo", SymbolKind.CLASS, 0, 2),
        ("greet", SymbolKind.METHOD, 1, 1),
    )
    service.write(
        "src/Bar.kt",
        "class Bar : Foo {\n    fun run() = greet()\n}\n",
        ("Bar", SymbolKind.CLASS, 0, 2),
        ("run", SymbolKind.METHOD, 1, 1),
    )


def test_build_graph_from_root_saves_json(service):
    _write_project(service)
    out_path = service.root / "graph.json"

    graph = build_graph_from_root(service.root, out_path, client=service, config=ParserConfig())

    assert out_path.exists()
    data = json.loads(out_path.read_text(encoding="utf-8"))
    assert len(data["nodes"]) == len(graph.nodes)
    loaded = load_graph(out_path)
    assert loaded.connections.of_type(ConnectionType.INHERITS_FROM)
    assert loaded.connections.of_type(ConnectionType.USES)


def test_max_files_limits_the_parse(service):
    _write_project(service)

    graph = build_graph_from_root(service.root, client=service, max_files=1, config=ParserConfig())

    assert {node.file_path for node in graph.nodes.values() if node.file_path} == {"src/Bar.kt"}


def test_client_created_for_the_build_is_closed(service, monkeypatch):
    _write_project(service)
    monkeypatch.setattr(
        "lspgraph.pipeline.create_service_client", lambda root, service_url=None: service
    )

    graph = build_graph_from_root(service.root, config=ParserConfig())

    assert graph.nodes
    assert service.closed
