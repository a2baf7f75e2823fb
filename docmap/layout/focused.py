"""Focus-centred layouts: mind map columns and radial rings.

Both place a focus document at the origin and arrange every other node by
its hop distance from it. Documents are alphabetised by title within each
depth; external-link nodes are kept apart (a bottom row for the mind map, an
outer ring for the radial layout).
"""

from __future__ import annotations

import math
from functools import lru_cache
from typing import Iterable

from ..config import FocusedConfig
from ..graph import LinkGraph
from ..models import NODE_SIZES, GraphEdge, GraphNode, NodeKind, Position

NODE_HEIGHT_BASE = 78.0
DESC_LINE_HEIGHT = 14.0
CHARS_PER_LINE = 35
DESC_PADDING = 20.0
MAX_DESC_LINES = 15
EXTERNAL_ROW_GAP = 20.0


@lru_cache(maxsize=1024)
def _height_for_length(length: int, char_limit: int) -> float:
    truncated = min(length, char_limit)
    lines = max(1, min(math.ceil(truncated / CHARS_PER_LINE), MAX_DESC_LINES))
    return NODE_HEIGHT_BASE + lines * DESC_LINE_HEIGHT + DESC_PADDING


def node_height(node: GraphNode, char_limit: int) -> float:
    """Card height for a document, grown by its description preview."""
    if node.kind == NodeKind.EXTERNAL_LINK:
        return NODE_SIZES[NodeKind.EXTERNAL_LINK][1]
    preview = node.data.get("description") or node.data.get("content_preview")
    if not preview:
        return NODE_HEIGHT_BASE
    return _height_for_length(len(str(preview)), char_limit)


def _file_path(node: GraphNode) -> str:
    return str(node.data.get("file_path") or node.id)


def _basename(path: str) -> str:
    return path.rstrip("/").split("/")[-1]


def resolve_focus_node(nodes: Iterable[GraphNode], focus_path: str | None) -> str | None:
    """Find the document matching `focus_path`, falling back to the first document.

    Tries, in order: identity, file path (as given, without leading slashes,
    bare filename), then a case-insensitive filename match ignoring `.md`.
    """
    documents = [n for n in nodes if n.kind == NodeKind.DOCUMENT]
    if not documents:
        return None
    if not focus_path:
        return documents[0].id

    variations = [focus_path, focus_path.lstrip("/"), _basename(focus_path)]

    by_id = {n.id: n for n in documents}
    for variation in variations:
        if variation in by_id:
            return variation

    by_path: dict[str, GraphNode] = {}
    for n in documents:
        path = _file_path(n)
        by_path.setdefault(path, n)
        by_path.setdefault(_basename(path), n)
    for variation in variations:
        if variation in by_path:
            return by_path[variation].id

    target = _basename(focus_path).lower()
    target_stem = target.removesuffix(".md")
    for n in documents:
        name = _basename(_file_path(n)).lower()
        if name == target or name.removesuffix(".md") == target_stem:
            return n.id

    return documents[0].id


def _depth_groups(
    nodes: list[GraphNode], edges: Iterable[GraphEdge], center_id: str
) -> tuple[dict[int, list[GraphNode]], list[GraphNode]]:
    graph = LinkGraph.from_edges((n.id for n in nodes), edges)
    depths = graph.bfs_depths(center_id)

    by_depth: dict[int, list[GraphNode]] = {}
    externals: list[GraphNode] = []
    for node in nodes:
        if node.id == center_id:
            continue
        if node.kind == NodeKind.EXTERNAL_LINK:
            externals.append(node)
            continue
        by_depth.setdefault(depths.get(node.id, 1), []).append(node)

    for group in by_depth.values():
        group.sort(key=lambda n: n.title.casefold())
    externals.sort(key=lambda n: str(n.data.get("domain") or n.id).casefold())
    return by_depth, externals


def _pick_center(nodes: list[GraphNode], focus_id: str | None) -> str | None:
    ids = {n.id for n in nodes}
    if focus_id in ids:
        return focus_id
    return resolve_focus_node(nodes, None) or (nodes[0].id if nodes else None)


def mindmap_layout(
    nodes: list[GraphNode],
    edges: Iterable[GraphEdge],
    config: FocusedConfig,
    *,
    focus_id: str | None = None,
) -> dict[str, Position]:
    """Left/right columns branching out from the focus, one column pair per depth."""
    center_id = _pick_center(nodes, focus_id)
    if center_id is None:
        return {}

    positions: dict[str, Position] = {center_id: Position(0.0, 0.0)}
    by_depth, externals = _depth_groups(nodes, edges, center_id)

    for depth in sorted(by_depth):
        group = by_depth[depth]
        midpoint = math.ceil(len(group) / 2)
        for side, column in ((-1, group[:midpoint]), (1, group[midpoint:])):
            if not column:
                continue
            x = side * config.horizontal_spacing * depth
            heights = [node_height(n, config.preview_char_limit) for n in column]
            total = sum(heights) + max(0, len(column) - 1) * config.vertical_gap
            cursor = -total / 2
            for node, h in zip(column, heights):
                positions[node.id] = Position(x, cursor + h / 2)
                cursor += h + config.vertical_gap

    if externals:
        width = NODE_SIZES[NodeKind.EXTERNAL_LINK][0]
        lowest = max(abs(p.y) for p in positions.values())
        y = lowest + config.external_cluster_offset
        step = width + EXTERNAL_ROW_GAP
        start = -(len(externals) * step) / 2 + width / 2
        for i, node in enumerate(externals):
            positions[node.id] = Position(start + i * step, y)

    return positions


def radial_layout(
    nodes: list[GraphNode],
    edges: Iterable[GraphEdge],
    config: FocusedConfig,
    *,
    focus_id: str | None = None,
) -> dict[str, Position]:
    """Concentric rings around the focus, one ring per depth, starting at the top."""
    center_id = _pick_center(nodes, focus_id)
    if center_id is None:
        return {}

    positions: dict[str, Position] = {center_id: Position(0.0, 0.0)}
    by_depth, externals = _depth_groups(nodes, edges, center_id)

    max_radius = 0.0
    for depth in sorted(by_depth):
        group = by_depth[depth]
        radius = config.radial_base_radius + (depth - 1) * config.radial_ring_spacing
        max_radius = max(max_radius, radius)
        _place_on_ring(group, radius, positions)

    if externals:
        radius = max(max_radius, config.radial_base_radius) + config.radial_external_offset
        _place_on_ring(externals, radius, positions)

    return positions


def _place_on_ring(ring: list[GraphNode], radius: float, positions: dict[str, Position]) -> None:
    step = 2 * math.pi / len(ring)
    start = -math.pi / 2
    for i, node in enumerate(ring):
        angle = start + i * step
        positions[node.id] = Position(radius * math.cos(angle), radius * math.sin(angle))
