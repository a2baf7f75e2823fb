from __future__ import annotations

import math

from conftest import doc, ext

from docmap.config import FocusedConfig
from docmap.layout import LayoutEngine
from docmap.layout.focused import mindmap_layout, node_height, radial_layout, resolve_focus_node
from docmap.models import EdgeKind, GraphEdge, GraphSnapshot, LayoutAlgorithm


def _nodes():
    return [
        doc("notes/index.md", title="Index"),
        doc("notes/alpha.md", title="Alpha"),
        doc("notes/beta.md", title="Beta"),
        doc("notes/deep.md", title="Deep"),
        ext("ext:example.com", "example.com", "https://example.com/a"),
    ]


def _edges():
    return [
        GraphEdge("notes/index.md", "notes/alpha.md"),
        GraphEdge("notes/index.md", "notes/beta.md"),
        GraphEdge("notes/beta.md", "notes/deep.md"),
        GraphEdge("notes/alpha.md", "ext:example.com", EdgeKind.EXTERNAL),
    ]


def test_resolve_focus_tries_path_variations() -> None:
    nodes = _nodes()

    assert resolve_focus_node(nodes, "notes/beta.md") == "notes/beta.md"
    assert resolve_focus_node(nodes, "/notes/beta.md") == "notes/beta.md"
    assert resolve_focus_node(nodes, "beta.md") == "notes/beta.md"
    assert resolve_focus_node(nodes, "BETA") == "notes/beta.md"
    assert resolve_focus_node(nodes, "missing.md") == "notes/index.md"
    assert resolve_focus_node(nodes, None) == "notes/index.md"
    assert resolve_focus_node([ext("ext:x", "x")], "x") is None


def test_node_height_grows_with_description() -> None:
    config = FocusedConfig()
    short = doc("a.md", description="tiny")
    long = doc("b.md", description="word " * 40)

    assert node_height(doc("c.md"), config.preview_char_limit) < node_height(short, config.preview_char_limit)
    assert node_height(short, config.preview_char_limit) < node_height(long, config.preview_char_limit)


def test_mindmap_puts_focus_at_origin_and_depths_in_columns() -> None:
    config = FocusedConfig()
    positions = mindmap_layout(_nodes(), _edges(), config, focus_id="notes/index.md")

    assert (positions["notes/index.md"].x, positions["notes/index.md"].y) == (0.0, 0.0)
    # Depth one splits alphabetically: Alpha left, Beta right
    assert positions["notes/alpha.md"].x == -config.horizontal_spacing
    assert positions["notes/beta.md"].x == config.horizontal_spacing
    assert abs(positions["notes/deep.md"].x) == 2 * config.horizontal_spacing
    # External links sit in a row below everything else
    documents = [p for nid, p in positions.items() if not nid.startswith("ext:")]
    assert positions["ext:example.com"].y > max(p.y for p in documents)


def test_radial_places_depths_on_rings() -> None:
    config = FocusedConfig()
    positions = radial_layout(_nodes(), _edges(), config, focus_id="notes/index.md")

    def radius(node_id: str) -> float:
        p = positions[node_id]
        return math.hypot(p.x, p.y)

    assert radius("notes/index.md") == 0.0
    assert math.isclose(radius("notes/alpha.md"), config.radial_base_radius)
    assert math.isclose(radius("notes/deep.md"), config.radial_base_radius + config.radial_ring_spacing)
    assert radius("ext:example.com") > radius("notes/deep.md")


def test_engine_keeps_focus_component_at_origin() -> None:
    snapshot = GraphSnapshot.build(
        [doc("other.md"), doc("x.md"), *_nodes()],
        [GraphEdge("other.md", "x.md"), *_edges()],
    )
    positions = LayoutEngine().layout(snapshot, LayoutAlgorithm.RADIAL, focus="beta.md")

    assert (positions["notes/beta.md"].x, positions["notes/beta.md"].y) == (0.0, 0.0)
    assert set(positions) == snapshot.node_ids
