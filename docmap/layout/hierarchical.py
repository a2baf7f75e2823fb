"""Layered (Sugiyama-style) layout for document graphs with a root/leaf structure.

Phases:
  1. Cycle breaking (back edges from a depth-first traversal are ignored)
  2. Rank assignment (longest path from a source)
  3. Virtual node insertion for edges spanning several ranks
  4. Crossing reduction (barycentre sweeps, top-down then bottom-up)
  5. Coordinate assignment (rank -> one axis, order -> the other)
"""

from __future__ import annotations

import heapq
import logging
from dataclasses import dataclass, field
from typing import Iterable, Mapping

from ..config import HierarchicalConfig
from ..graph import LinkGraph
from ..models import GraphEdge, Position
from .geometry import Size

logger = logging.getLogger(__name__)

VIRTUAL_PREFIX = "\x00virtual:"


def is_virtual(node_id: str) -> bool:
    return node_id.startswith(VIRTUAL_PREFIX)


def acyclic_edges(graph: LinkGraph) -> list[tuple[str, str]]:
    """Edges of `graph` minus self loops and DFS back edges, in node order."""
    back = graph.back_edges()
    kept: list[tuple[str, str]] = []
    for src in graph.nodes:
        for dst in sorted(graph.edges[src]):
            if src == dst or (src, dst) in back:
                continue
            kept.append((src, dst))
    return kept


def assign_ranks(node_ids: Iterable[str], edges: Iterable[GraphEdge]) -> dict[str, int]:
    """Rank = length of the longest path reaching the node from any source."""
    graph = LinkGraph.from_edges(node_ids, edges)
    order = {n: i for i, n in enumerate(graph.nodes)}
    dag = acyclic_edges(graph)

    succ: dict[str, list[str]] = {n: [] for n in graph.nodes}
    in_degree = {n: 0 for n in graph.nodes}
    for src, dst in dag:
        succ[src].append(dst)
        in_degree[dst] += 1

    ranks = {n: 0 for n in graph.nodes}
    heap = [(order[n], n) for n in graph.nodes if in_degree[n] == 0]
    heapq.heapify(heap)
    while heap:
        _, node = heapq.heappop(heap)
        for dst in succ[node]:
            ranks[dst] = max(ranks[dst], ranks[node] + 1)
            in_degree[dst] -= 1
            if in_degree[dst] == 0:
                heapq.heappush(heap, (order[dst], dst))

    return ranks


@dataclass
class LayeredGraph:
    """Ranked graph with virtual nodes, ready for ordering."""

    layers: list[list[str]] = field(default_factory=list)
    down: dict[str, list[str]] = field(default_factory=dict)  # node -> neighbours one rank below
    up: dict[str, list[str]] = field(default_factory=dict)  # node -> neighbours one rank above

    @classmethod
    def build(cls, node_ids: list[str], dag: list[tuple[str, str]], ranks: Mapping[str, int]) -> "LayeredGraph":
        depth = max(ranks.values(), default=-1) + 1
        lg = cls(layers=[[] for _ in range(depth)])
        for n in node_ids:
            lg._add(n, ranks[n])

        for src, dst in dag:
            span = ranks[dst] - ranks[src]
            prev = src
            for step in range(1, span):
                virtual = f"{VIRTUAL_PREFIX}{src}->{dst}#{step}"
                lg._add(virtual, ranks[src] + step)
                lg._link(prev, virtual)
                prev = virtual
            lg._link(prev, dst)
        return lg

    def _add(self, node_id: str, rank: int) -> None:
        self.layers[rank].append(node_id)
        self.down.setdefault(node_id, [])
        self.up.setdefault(node_id, [])

    def _link(self, upper: str, lower: str) -> None:
        self.down[upper].append(lower)
        self.up[lower].append(upper)


def count_crossings(layers: list[list[str]], down: Mapping[str, list[str]]) -> int:
    """Count pairwise edge crossings between each pair of adjacent layers."""
    total = 0
    for upper, lower in zip(layers, layers[1:]):
        lower_pos = {n: i for i, n in enumerate(lower)}
        segments = [
            (i, lower_pos[dst])
            for i, src in enumerate(upper)
            for dst in down.get(src, [])
            if dst in lower_pos
        ]
        for a in range(len(segments)):
            u1, v1 = segments[a]
            for b in range(a + 1, len(segments)):
                u2, v2 = segments[b]
                if (u1 - u2) * (v1 - v2) < 0:
                    total += 1
    return total


def _reorder(layer: list[str], neighbours: Mapping[str, list[str]], ref_pos: Mapping[str, int]) -> list[str]:
    keyed = []
    for i, node in enumerate(layer):
        linked = [ref_pos[n] for n in neighbours.get(node, []) if n in ref_pos]
        bary = sum(linked) / len(linked) if linked else float(i)
        keyed.append((bary, i, node))
    keyed.sort()
    return [node for _, _, node in keyed]


def order_layers(lg: LayeredGraph, passes: int) -> list[list[str]]:
    """Barycentre sweeps; returns the ordering with the fewest crossings seen."""
    layers = [list(layer) for layer in lg.layers]
    best = [list(layer) for layer in layers]
    best_crossings = count_crossings(best, lg.down)

    for _ in range(passes):
        if best_crossings == 0:
            break
        for r in range(1, len(layers)):
            ref = {n: i for i, n in enumerate(layers[r - 1])}
            layers[r] = _reorder(layers[r], lg.up, ref)
        for r in range(len(layers) - 2, -1, -1):
            ref = {n: i for i, n in enumerate(layers[r + 1])}
            layers[r] = _reorder(layers[r], lg.down, ref)

        crossings = count_crossings(layers, lg.down)
        if crossings < best_crossings:
            best_crossings = crossings
            best = [list(layer) for layer in layers]

    return best


@dataclass
class HierarchicalResult:
    positions: dict[str, Position]
    ranks: dict[str, int]
    layers: list[list[str]]  # real nodes only, in final order
    crossings: int


def hierarchical_layout(
    node_ids: list[str],
    edges: Iterable[GraphEdge],
    sizes: Mapping[str, Size],
    config: HierarchicalConfig,
) -> HierarchicalResult:
    """Lay out one component as a layered DAG."""
    if not node_ids:
        return HierarchicalResult({}, {}, [], 0)

    edges = list(edges)
    graph = LinkGraph.from_edges(node_ids, edges)
    ranks = assign_ranks(node_ids, edges)
    lg = LayeredGraph.build(graph.nodes, acyclic_edges(graph), ranks)
    ordered = order_layers(lg, config.crossing_passes)
    crossings = count_crossings(ordered, lg.down)

    horizontal = config.rank_direction == "TB"

    def along(node_id: str) -> float:
        # Extent of a node along its layer
        if is_virtual(node_id):
            return 0.0
        w, h = sizes.get(node_id, (0.0, 0.0))
        return w if horizontal else h

    def across(node_id: str) -> float:
        w, h = sizes.get(node_id, (0.0, 0.0))
        return h if horizontal else w

    rank_step = max((across(n) for n in node_ids), default=0.0) + config.rank_separation

    positions: dict[str, Position] = {}
    for r, layer in enumerate(ordered):
        total = sum(along(n) for n in layer) + config.node_separation * max(0, len(layer) - 1)
        cursor = -total / 2
        for node_id in layer:
            extent = along(node_id)
            mid = cursor + extent / 2
            cursor += extent + config.node_separation
            if is_virtual(node_id):
                continue
            depth = r * rank_step
            positions[node_id] = Position(mid, depth) if horizontal else Position(depth, mid)

    real_layers = [[n for n in layer if not is_virtual(n)] for layer in ordered]
    logger.debug("Hierarchical layout: %d ranks, %d crossings", len(ordered), crossings)
    return HierarchicalResult(positions, ranks, real_layers, crossings)
