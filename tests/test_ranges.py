from __future__ import annotations

from lspgraph.models import Node, NodeType, Position, Range
from lspgraph.ranges import GLOBAL, UNRESOLVED, find_enclosing, find_named


def _node(node_id: str, start: int, end: int, name: str | None = None, name_line: int | None = None) -> Node:
    name_line = start if name_line is None else name_line
    return Node(
        id=node_id,
        simple_name=name or node_id,
        node_type=NodeType.CLASS,
        file_path="sample.kt",
        code_location=Range.of(start, 0, end, 1),
        name_location=Range.of(name_line, 6, name_line, 9),
    )


def test_innermost_node_wins_regardless_of_order():
    outer = _node("A", 0, 10)
    inner = _node("B", 2, 4)
    target = Range.of(3, 2, 3, 5)

    assert find_enclosing([outer, inner], target).node_id == "B"
    assert find_enclosing([inner, outer], target).node_id == "B"


def test_excluded_node_is_skipped():
    outer = _node("A", 0, 10)
    inner = _node("B", 2, 4)

    result = find_enclosing([outer, inner], Range.of(3, 0, 3, 1), exclude_id="B")

    assert result.node_id == "A"


def test_no_containing_candidate_is_global():
    result = find_enclosing([_node("A", 0, 2)], Range.of(5, 0, 5, 3))

    assert result == GLOBAL
    assert not result.is_resolved
    assert result.node_id_or("<global>") == "<global>"


def test_no_candidates_is_unresolved():
    assert find_enclosing([], Range.of(0, 0, 0, 1)) == UNRESOLVED
    assert find_enclosing([_node("A", 0, 2)], Range.of(1, 0, 1, 1), exclude_id="A") == UNRESOLVED


def test_equal_length_spans_prefer_the_one_inside_the_best():
    first = _node("first", 0, 5)
    second = _node("second", 1, 6)

    result = find_enclosing([first, second], Range.of(2, 0, 2, 1))

    assert result.node_id == "first"


def test_line_granular_containment():
    node = Node(
        id="f",
        simple_name="f",
        node_type=NodeType.FUNCTION,
        file_path="sample.kt",
        code_location=Range.of(2, 4, 4, 1),
        name_location=Range.of(2, 8, 2, 9),
    )
    target = Range.of(2, 0, 2, 2)

    assert not find_enclosing([node], target).is_resolved
    assert find_enclosing([node], target, by_lines=True).node_id == "f"


def test_named_match_within_tolerance():
    outer = _node("outer", 0, 20, name="Outer")
    first = _node("first", 3, 5, name="run")
    second = _node("second", 10, 12, name="run")

    result = find_named([outer, first, second], "run", Range.of(11, 6, 11, 9))

    assert result.node_id == "second"


def test_named_match_outside_tolerance_falls_back_to_range():
    outer = _node("outer", 0, 20, name="Outer")
    helper = _node("helper", 3, 5, name="run")

    result = find_named([outer, helper], "run", Range.of(9, 0, 9, 3))

    assert result.node_id == "outer"


def test_named_match_accepts_code_start_when_name_line_is_far():
    outer = _node("outer", 0, 30, name="Outer")
    near_name = _node("near_name", 12, 14, name="run", name_line=12)
    annotated = _node("annotated", 9, 20, name="run", name_line=16)

    result = find_named([outer, near_name, annotated], "run", Range.of(8, 0, 8, 3))

    assert result.node_id == "annotated"


def test_position_shift_only_offsets_first_line_columns():
    origin = Position(10, 4)

    assert Position(0, 2).shifted(origin) == Position(10, 6)
    assert Position(2, 2).shifted(origin) == Position(12, 2)


def test_range_clamp_to_bounds():
    bounds = Range.of(0, 0, 3, 0)

    assert Range.of(1, 0, 9, 4).clamp(bounds) == Range.of(1, 0, 3, 0)
    assert Range.of(7, 0, 9, 4).clamp(bounds) == Range.of(3, 0, 3, 0)
