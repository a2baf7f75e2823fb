"""Placement of nodes that have no position from any restoration tier."""

from __future__ import annotations

import logging
import math
import random
from typing import Iterable, Mapping, Sequence

from .config import PlacementConfig
from .graph import LinkGraph
from .layout.geometry import centroid
from .models import GraphEdge, GraphNode, Position

logger = logging.getLogger(__name__)


def place_new_nodes(
    new_nodes: Sequence[GraphNode],
    positioned: Mapping[str, Position],
    edges: Iterable[GraphEdge],
    config: PlacementConfig | None = None,
    rng: random.Random | None = None,
) -> list[GraphNode]:
    """Give each new node a position near its already-positioned neighbours.

    A node with positioned neighbours lands at their centroid, pushed out by a
    random offset of one to two node separations so it does not sit on top of
    them. A node with none lands near the viewport centre. Nodes are placed in
    input order and count as positioned for the nodes after them.
    """
    config = config or PlacementConfig()
    rng = rng or random.Random(config.seed)

    graph = LinkGraph.from_edges([*positioned, *(n.id for n in new_nodes)], edges)
    known = dict(positioned)
    viewport = Position(config.viewport_x, config.viewport_y)

    placed: list[GraphNode] = []
    for node in new_nodes:
        anchors = [known[nid] for nid in sorted(graph.neighbors_undirected(node.id)) if nid in known]
        angle = rng.random() * 2 * math.pi

        if anchors:
            center = centroid(anchors)
            radius = config.node_separation * (1 + rng.random())
        else:
            center = viewport
            radius = config.node_separation * rng.random()

        pos = center.offset(radius * math.cos(angle), radius * math.sin(angle))
        known[node.id] = pos
        placed.append(node.with_position(pos))

    if placed:
        logger.debug("Placed %d new nodes near their neighbours", len(placed))
    return placed
