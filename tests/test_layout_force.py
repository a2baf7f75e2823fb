from __future__ import annotations

import math

import pytest

from conftest import doc

from docmap.config import EngineConfig, ForceConfig
from docmap.layout import LayoutEngine
from docmap.layout.force import Body, ForceSimulation, QuadTree, force_layout
from docmap.layout.geometry import bounds_of, boxes_overlap, sizes_of
from docmap.models import GraphEdge, GraphSnapshot, LayoutAlgorithm, Position


def _dist(a: Position, b: Position) -> float:
    return math.hypot(a.x - b.x, a.y - b.y)


def test_empty_snapshot_lays_out_to_nothing(make_snapshot) -> None:
    engine = LayoutEngine()

    assert engine.layout(make_snapshot([]), LayoutAlgorithm.FORCE) == {}
    assert engine.layout(make_snapshot([]), LayoutAlgorithm.HIERARCHICAL) == {}


def test_single_node_sits_at_origin(make_snapshot) -> None:
    positions = LayoutEngine().layout(make_snapshot(["only.md"]), LayoutAlgorithm.FORCE)

    assert positions == {"only.md": Position(0.0, 0.0)}


def test_force_layout_is_deterministic(make_snapshot) -> None:
    snapshot = make_snapshot(
        ["a", "b", "c", "d", "e"],
        [("a", "b"), ("b", "c"), ("c", "a"), ("c", "d"), ("d", "e")],
    )
    engine = LayoutEngine()

    assert engine.layout(snapshot, "force") == engine.layout(snapshot, "force")


def test_force_layout_positions_are_finite_and_distinct(make_snapshot) -> None:
    ids = [f"n{i}" for i in range(12)]
    links = [(ids[i], ids[(i + 1) % len(ids)]) for i in range(len(ids))]
    positions = LayoutEngine().layout(make_snapshot(ids, links), LayoutAlgorithm.FORCE)

    assert set(positions) == set(ids)
    assert all(math.isfinite(p.x) and math.isfinite(p.y) for p in positions.values())
    pairs = [(a, b) for i, a in enumerate(ids) for b in ids[i + 1 :]]
    assert min(_dist(positions[a], positions[b]) for a, b in pairs) > 1.0


def test_linked_nodes_end_closer_than_unlinked(make_snapshot) -> None:
    snapshot = make_snapshot(["hub", "a", "b", "c", "far"], [("hub", "a"), ("hub", "b"), ("hub", "c"), ("c", "far")])
    positions = LayoutEngine().layout(snapshot, LayoutAlgorithm.FORCE)

    assert _dist(positions["hub"], positions["a"]) < _dist(positions["a"], positions["far"])


def test_disconnected_components_do_not_overlap(make_snapshot) -> None:
    snapshot = make_snapshot(["a", "b", "c", "x", "y", "lonely"], [("a", "b"), ("b", "c"), ("x", "y")])
    positions = LayoutEngine().layout(snapshot, LayoutAlgorithm.FORCE)
    sizes = sizes_of(snapshot.nodes)

    groups = [["a", "b", "c"], ["x", "y"], ["lonely"]]
    boxes = [bounds_of({n: positions[n] for n in g}, sizes) for g in groups]
    for i, first in enumerate(boxes):
        for second in boxes[i + 1 :]:
            assert not boxes_overlap(
                first.center, (first.width, first.height), second.center, (second.width, second.height)
            )


def test_simulation_stops_within_iteration_cap() -> None:
    config = ForceConfig(iterations=25)
    sim = ForceSimulation(["a", "b", "c"], [GraphEdge("a", "b")], {}, config)
    sim.run()

    assert 1 <= sim.iterations_run <= 25


def test_initial_positions_seed_the_simulation() -> None:
    config = ForceConfig(iterations=1)
    start = {"a": Position(1000, 0), "b": Position(-1000, 0)}
    positions = force_layout(["a", "b"], [], {}, config, initial=start)

    assert positions["a"].x > positions["b"].x


def test_pinned_bodies_do_not_move() -> None:
    config = ForceConfig(iterations=50)
    start = {"a": Position(0, 0), "b": Position(10, 0)}
    sim = ForceSimulation(["a", "b"], [GraphEdge("a", "b")], {}, config, initial=start, pinned=["a"])
    positions = sim.run()

    assert positions["a"] == Position(0, 0)


def test_quadtree_aggregates_charge_and_answers_range_queries() -> None:
    bodies = [Body(f"b{i}", i, float(i * 10), float(i * 10), 1.0, -2.0) for i in range(8)]
    tree = QuadTree(bodies)

    assert tree.root.charge == pytest.approx(-16.0)
    assert tree.root.cx == pytest.approx(35.0)
    assert sorted(b.id for b in tree.query(0, 0, 15)) == ["b0", "b1"]


def test_quadtree_handles_coincident_bodies() -> None:
    bodies = [Body(f"b{i}", i, 5.0, 5.0, 1.0, -1.0) for i in range(4)]
    tree = QuadTree(bodies)

    assert len(tree.query(5, 5, 0.1)) == 4


def test_engine_respects_configured_default() -> None:
    config = EngineConfig(default_algorithm="hierarchical")
    engine = LayoutEngine(config)

    snapshot = GraphSnapshot.build([doc("a"), doc("b")], [GraphEdge("a", "b")])
    positions = engine.layout(snapshot)

    assert positions["a"].y < positions["b"].y
    assert positions["a"].x == positions["b"].x
