"""Layout algorithms and the engine that dispatches between them."""

from __future__ import annotations

import logging
from typing import Mapping

from ..config import EngineConfig
from ..graph import LinkGraph
from ..models import GraphNode, GraphSnapshot, LayoutAlgorithm, Position
from .focused import mindmap_layout, radial_layout, resolve_focus_node
from .force import ForceSimulation, QuadTree, force_layout
from .geometry import Bounds, bounds_of, centroid, sizes_of, tile_components
from .hierarchical import assign_ranks, count_crossings, hierarchical_layout

logger = logging.getLogger(__name__)

LAYOUT_LABELS: dict[LayoutAlgorithm, tuple[str, str]] = {
    LayoutAlgorithm.FORCE: ("Force", "Physics simulation"),
    LayoutAlgorithm.HIERARCHICAL: ("Hierarchical", "Layered ranks"),
    LayoutAlgorithm.MINDMAP: ("Mind Map", "Tree columns"),
    LayoutAlgorithm.RADIAL: ("Radial", "Concentric rings"),
}


class LayoutEngine:
    """Computes positions for a snapshot from scratch.

    Pure with respect to the position store: it neither reads nor writes
    cached positions. Each connected component is laid out on its own and
    the results are tiled so components never overlap.
    """

    def __init__(self, config: EngineConfig | None = None) -> None:
        self.config = config or EngineConfig()

    def layout(
        self,
        snapshot: GraphSnapshot,
        algorithm: LayoutAlgorithm | str | None = None,
        *,
        focus: str | None = None,
        initial: Mapping[str, Position] | None = None,
    ) -> dict[str, Position]:
        """Return a position for every node of `snapshot`.

        `focus` is a document path for the focus-centred algorithms.
        `initial` seeds the force simulation (ignored by the other algorithms).
        """
        algorithm = LayoutAlgorithm(algorithm or self.config.default_algorithm)
        if not snapshot.nodes:
            return {}

        nodes_by_id = {n.id: n for n in snapshot.nodes}
        sizes = sizes_of(snapshot.nodes)
        graph = LinkGraph.from_snapshot(snapshot)
        components = graph.connected_components()

        focus_id = None
        if algorithm in (LayoutAlgorithm.MINDMAP, LayoutAlgorithm.RADIAL):
            focus_id = resolve_focus_node(snapshot.nodes, focus)
            # The focus component is laid out first so it keeps the origin
            components.sort(key=lambda ms: focus_id not in ms)

        layouts: list[dict[str, Position]] = []
        for members in components:
            member_set = set(members)
            edges = [e for e in snapshot.edges if e.source in member_set and e.target in member_set]

            if algorithm == LayoutAlgorithm.FORCE:
                positions = force_layout(members, edges, sizes, self.config.force, initial=initial)
            elif algorithm == LayoutAlgorithm.HIERARCHICAL:
                positions = hierarchical_layout(members, edges, sizes, self.config.hierarchical).positions
            else:
                component_nodes = [nodes_by_id[m] for m in members]
                fn = mindmap_layout if algorithm == LayoutAlgorithm.MINDMAP else radial_layout
                positions = fn(component_nodes, edges, self.config.focused, focus_id=focus_id)
            layouts.append(positions)

        merged = tile_components(layouts, sizes, gap=self.config.component_gap)
        logger.debug(
            "Laid out %d nodes in %d components with %s",
            len(merged),
            len(components),
            algorithm.value,
        )
        return merged

    def apply(
        self,
        snapshot: GraphSnapshot,
        algorithm: LayoutAlgorithm | str | None = None,
        *,
        focus: str | None = None,
    ) -> list[GraphNode]:
        """Snapshot nodes with freshly computed positions."""
        positions = self.layout(snapshot, algorithm, focus=focus)
        return [n.with_position(positions.get(n.id, n.position)) for n in snapshot.nodes]


__all__ = [
    "LAYOUT_LABELS",
    "Bounds",
    "ForceSimulation",
    "LayoutAlgorithm",
    "LayoutEngine",
    "QuadTree",
    "assign_ranks",
    "bounds_of",
    "centroid",
    "count_crossings",
    "force_layout",
    "hierarchical_layout",
    "mindmap_layout",
    "radial_layout",
    "resolve_focus_node",
    "tile_components",
]
