from __future__ import annotations

from conftest import node_named

from lspgraph.graph import Graph, GraphBuilder
from lspgraph.merging import OUTDATED_MARKER, DescriptionMerger
from lspgraph.models import Connection, ConnectionType, NodeType, SymbolKind
from lspgraph.updater import GraphUpdater


CALC = """class Calc {
    fun f(): Int {
        return 1
    }
    fun g() = 2
}
"""
MAIN = "fun main() = Calc().g()\n"


def _write_calc(service, text=CALC):
    service.write(
        "Calc.kt",
        text,
        ("Calc", SymbolKind.CLASS, 0, 5),
        ("f", SymbolKind.METHOD, 1, 3),
        ("g", SymbolKind.METHOD, 4, 4),
    )


def _write_main(service):
    service.write("Main.kt", MAIN, ("main", SymbolKind.FUNCTION, 0, 0))


def _ids(graph) -> dict[str, str]:
    return {
        node.simple_name: node.id
        for node in graph.nodes.values()
        if node.node_type is not NodeType.FILE
    }


def test_reparsing_unchanged_files_is_idempotent(service, parser):
    _write_calc(service)
    _write_main(service)
    graph = parser.parse_project()

    again = GraphUpdater(parser).reparse_files(["Calc.kt"], graph)

    assert dict(again.nodes) == dict(graph.nodes)
    assert set(again.connections.all()) == set(graph.connections.all())


def test_body_edit_only_changes_the_edited_node(service, parser):
    _write_calc(service)
    _write_main(service)
    graph = parser.parse_project()
    before = _ids(graph)

    _write_calc(service, CALC.replace("return 1", "return 2"))
    updated = GraphUpdater(parser).reparse_files(["Calc.kt"], graph)
    after = _ids(updated)

    assert after["f"] != before["f"]
    assert {name: after[name] for name in ("Calc", "g", "main")} == {
        name: before[name] for name in ("Calc", "g", "main")
    }
    assert updated.connections.between(before["main"], before["g"], ConnectionType.USES)
    assert before["f"] not in updated.nodes


def test_descriptions_survive_and_edits_mark_them_outdated(service, parser):
    _write_calc(service)
    graph = parser.parse_project()
    builder = GraphBuilder.from_graph(graph)
    builder.describe(node_named(graph, "f").id, "Returns a constant.")
    builder.describe(node_named(graph, "g").id, "Returns two.")
    graph = builder.build()

    _write_calc(service, CALC.replace("return 1", "return 2"))
    updated = GraphUpdater(parser).reparse_files(["Calc.kt"], graph)

    assert node_named(updated, "g").description == "Returns two."
    assert node_named(updated, "f").description == OUTDATED_MARKER + "Returns a constant."


def test_outdated_marker_is_not_repeated(service, parser):
    _write_calc(service)
    graph = parser.parse_project()
    builder = GraphBuilder.from_graph(graph)
    builder.describe(node_named(graph, "f").id, OUTDATED_MARKER + "Old text.")
    graph = builder.build()

    _write_calc(service, CALC.replace("return 1", "return 3"))
    updated = GraphUpdater(parser).reparse_files(["Calc.kt"], graph)

    assert node_named(updated, "f").description == OUTDATED_MARKER + "Old text."


def test_merge_keeps_descriptions_outside_the_reparsed_files(service, parser):
    _write_calc(service)
    _write_main(service)
    graph = parser.parse_project()
    builder = GraphBuilder.from_graph(graph)
    builder.describe(node_named(graph, "main").id, "Entry point.")
    graph = builder.build()

    merged = DescriptionMerger().merge(graph, graph, ["Calc.kt"])

    assert node_named(merged, "main").description == "Entry point."


def test_merge_drops_connections_to_missing_nodes(service, parser):
    _write_calc(service)
    _write_main(service)
    graph = parser.parse_project()
    main_id = node_named(graph, "main").id
    stale = Connection(main_id, "gone", ConnectionType.USES)

    merged = DescriptionMerger().merge(
        Graph(graph.nodes, [*graph.connections.all(), stale]), graph, ["Main.kt"]
    )

    assert not merged.connections.between(main_id, "gone")
    assert set(merged.connections.all()) == set(graph.connections.all())


def test_adding_then_deleting_a_file_restores_the_graph(service, parser):
    _write_calc(service)
    graph = parser.parse_project()
    _write_main(service)
    updater = GraphUpdater(parser)

    added = updater.add_files(["Main.kt"], graph)
    main = node_named(added, "main")
    restored = updater.delete_files(["Main.kt"], added)

    assert added.connections.from_node(main.id, ConnectionType.USES)
    assert dict(restored.nodes) == dict(graph.nodes)
    assert set(restored.connections.all()) == set(graph.connections.all())


def test_reparsing_a_deleted_file_removes_its_nodes(service, parser):
    _write_calc(service)
    _write_main(service)
    graph = parser.parse_project()
    main_id = node_named(graph, "main").id

    service.remove("Main.kt")
    updated = GraphUpdater(parser).reparse_files(["Main.kt"], graph)

    assert main_id not in updated.nodes
    assert not updated.connections.from_node(main_id)
    assert node_named(updated, "g")
