"""Lifecycle of one open graph view.

A `GraphSession` turns each incoming snapshot into a rendered node list:
it picks every node's starting position by restoration tier, diffs the
result against what was on screen, animates the delta and writes positions
back to the shared `PositionStore`.

Restoration tiers, highest first:

1. explicit cache: the store holds positions for this graph
2. carryover: not the first load and a previous node list exists
3. fresh layout: run the layout engine

Nodes the chosen tier cannot position are placed next to their neighbours.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from enum import IntEnum
from pathlib import Path
from typing import Callable, Mapping, Sequence

from .animation import AnimationController, FrameScheduler
from .config import EngineConfig
from .differ import DiffResult, diff_nodes
from .layout import LayoutEngine
from .layout.focused import resolve_focus_node
from .models import (
    EdgeKind,
    GraphNode,
    GraphSnapshot,
    LayoutAlgorithm,
    Position,
    ScanProgress,
    StyledEdge,
)
from .placement import place_new_nodes
from .search import SearchIndex
from .store import PositionStore, graph_id_for

logger = logging.getLogger(__name__)

HIGHLIGHT_Z_INDEX = 1000


class RestoreTier(IntEnum):
    EXPLICIT = 1
    CARRYOVER = 2
    FRESH = 3


@dataclass(frozen=True)
class RebuildResult:
    tier: RestoreTier
    diff: DiffResult
    animated: bool = False
    placed: int = 0  # nodes positioned by neighbour placement


class GraphSession:
    """Owns the rendered node list of one graph between open and close."""

    def __init__(
        self,
        root_path: str | Path,
        *,
        store: PositionStore,
        scheduler: FrameScheduler,
        config: EngineConfig | None = None,
        engine: LayoutEngine | None = None,
        on_render: Callable[[list[GraphNode]], None] | None = None,
        rng: random.Random | None = None,
        focus_path: str | None = None,
    ) -> None:
        self.graph_id = graph_id_for(root_path)
        self.store = store
        self.config = config or EngineConfig()
        self.engine = engine or LayoutEngine(self.config)
        self.animator = AnimationController(scheduler, self._apply_frame, self.config.animation)
        self.search = SearchIndex()
        self.algorithm = self.config.algorithm
        self.focus_path = focus_path
        self.on_render = on_render
        self.rng = rng or random.Random(self.config.placement.seed)

        self.snapshot = GraphSnapshot()
        self.rendered: list[GraphNode] = []
        self.previous_nodes: list[GraphNode] | None = None
        self.first_load = True
        self.pending_focus: str | None = None
        self.selected_node_id: str | None = None
        self.search_query = ""
        self.progress: ScanProgress | None = None

    # -- views ------------------------------------------------------------

    @property
    def nodes(self) -> list[GraphNode]:
        """Nodes on screen, stripped of animation and search attributes."""
        return [n.bare() for n in self.rendered]

    @property
    def positions(self) -> dict[str, Position]:
        return {n.id: n.position for n in self.rendered}

    def displayed_nodes(self) -> list[GraphNode]:
        """Nodes as the renderer should draw them, search flags included."""
        return self.search.classify(self.rendered, self.search_query)

    def styled_edges(self) -> list[StyledEdge]:
        selected = self.selected_node_id
        styled: list[StyledEdge] = []
        for edge in self.snapshot.edges:
            highlighted = selected is not None and selected in (edge.source, edge.target)
            styled.append(
                StyledEdge(
                    edge,
                    highlighted=highlighted,
                    animated=edge.kind == EdgeKind.EXTERNAL,
                    z_index=HIGHLIGHT_Z_INDEX if highlighted else 0,
                )
            )
        return styled

    # -- rebuilds ---------------------------------------------------------

    def rebuild(self, snapshot: GraphSnapshot) -> RebuildResult:
        """Render a new snapshot, animating whatever changed since the last one."""
        snapshot = snapshot.with_nodes(snapshot.nodes)

        if self.animator.is_animating:
            self.animator.cancel()
            previous = self.nodes
        else:
            previous = list(self.previous_nodes or [])

        tier, nodes, placed = self._resolve(snapshot, previous)
        diff = diff_nodes(previous, nodes)
        self.snapshot = snapshot

        if self.first_load:
            self.first_load = False
            self.previous_nodes = nodes
            self._apply_frame(nodes)
            if nodes:
                self.store.save(self.graph_id, nodes)
                self.pending_focus = resolve_focus_node(nodes, self.focus_path)
            logger.info("Initial load of %s: %d nodes (tier %d)", self.graph_id, len(nodes), tier)
            return RebuildResult(tier, diff, animated=False, placed=placed)

        self.previous_nodes = nodes
        logger.debug(
            "Rebuild of %s: +%d -%d =%d (tier %d)",
            self.graph_id,
            len(diff.added),
            len(diff.removed),
            len(diff.unchanged),
            tier,
        )

        if not diff.has_changes:
            self._apply_frame(nodes)
            return RebuildResult(tier, diff, animated=False, placed=placed)

        remaining = [n for n in nodes if n.id in diff.unchanged_ids]

        def finish() -> None:
            self._finish(nodes)

        def enter() -> None:
            self.animator.animate_entering(diff.added, remaining, on_complete=finish)

        if diff.removed:
            # Additions start only once the exiting nodes are gone
            self.animator.animate_exiting(diff.removed, remaining, on_complete=enter)
        else:
            enter()
        return RebuildResult(tier, diff, animated=True, placed=placed)

    def load_more(self, snapshot: GraphSnapshot) -> RebuildResult:
        """Lay out a larger page of the graph from scratch and save it."""
        self.animator.cancel()
        snapshot = snapshot.with_nodes(n.bare() for n in snapshot.nodes)
        previous = list(self.previous_nodes or [])
        nodes = self.engine.apply(snapshot, self.algorithm, focus=self.focus_path)
        self.snapshot = snapshot
        self.first_load = False
        self._finish(nodes)
        logger.info(
            "Loaded %d of %d documents for %s",
            snapshot.loaded_documents,
            snapshot.total_documents,
            self.graph_id,
        )
        return RebuildResult(RestoreTier.FRESH, diff_nodes(previous, nodes))

    def _resolve(
        self, snapshot: GraphSnapshot, previous: Sequence[GraphNode]
    ) -> tuple[RestoreTier, list[GraphNode], int]:
        resolved: dict[str, Position]
        if self.store.has_saved(self.graph_id):
            tier = RestoreTier.EXPLICIT
            # restore hands back nodes without an entry untouched
            restored = self.store.restore(self.graph_id, snapshot.nodes)
            resolved = {r.id: r.position for n, r in zip(snapshot.nodes, restored) if r is not n}
        elif not self.first_load and previous:
            tier = RestoreTier.CARRYOVER
            carried = {n.id: n.position for n in previous}
            resolved = {n.id: carried[n.id] for n in snapshot.nodes if n.id in carried}
        else:
            tier = RestoreTier.FRESH
            resolved = self.engine.layout(snapshot, self.algorithm, focus=self.focus_path)

        unresolved = [n for n in snapshot.nodes if n.id not in resolved]
        placed = place_new_nodes(unresolved, resolved, snapshot.edges, self.config.placement, self.rng)
        positions = {**resolved, **{n.id: n.position for n in placed}}

        nodes = [n.bare().with_position(positions[n.id]) for n in snapshot.nodes]
        return tier, nodes, len(placed)

    # -- user events ------------------------------------------------------

    def on_drag_stop(self, positions: Mapping[str, Position]) -> None:
        """Record dragged positions and save every node.

        A running animation is jumped to its end state first, so the drag
        lands on the node list the animation was heading for.
        """
        settled = self._settled_nodes()
        self.animator.cancel()
        nodes = [n.with_position(positions[n.id]) if n.id in positions else n for n in settled]
        self._finish(nodes)

    def set_layout(self, algorithm: LayoutAlgorithm | str) -> None:
        """Switch algorithm, moving every node to its new position."""
        self.algorithm = LayoutAlgorithm(algorithm)
        settled = self._settled_nodes()
        displayed = self.nodes
        self.animator.cancel()

        if not settled:
            if displayed:
                self._apply_frame([])
            return

        target = self.engine.apply(self.snapshot.with_nodes(settled), self.algorithm, focus=self.focus_path)
        self.previous_nodes = target
        logger.info("Switching %s to %s layout", self.graph_id, self.algorithm.value)

        def finish() -> None:
            self._finish(target)

        # Nodes still fading out are dropped, nodes not yet shown start in place
        self.animator.animate_transition(displayed, target, on_complete=finish)

    def toggle_layout(self) -> LayoutAlgorithm:
        if self.algorithm == LayoutAlgorithm.FORCE:
            self.set_layout(LayoutAlgorithm.HIERARCHICAL)
        else:
            self.set_layout(LayoutAlgorithm.FORCE)
        return self.algorithm

    def set_search_query(self, query: str) -> int:
        """Re-render with new search flags. Returns the number of matches."""
        self.search_query = query
        self._emit()
        return self.search.count_matches(self.rendered, query)

    def select_node(self, node_id: str | None) -> None:
        self.selected_node_id = node_id

    def handle_progress(self, progress: ScanProgress) -> float:
        self.progress = progress
        logger.debug(
            "%s %d/%d %s",
            progress.phase,
            progress.current,
            progress.total,
            progress.current_file or "",
        )
        return progress.fraction

    def consume_focus(self) -> str | None:
        """Focus node to pre-select after the initial layout, once."""
        focus = self.pending_focus
        self.pending_focus = None
        if focus is not None:
            self.selected_node_id = focus
        return focus

    def close(self) -> None:
        """Tear the view down. Cached positions stay in the store."""
        self.animator.cancel()
        self.previous_nodes = None
        self.first_load = True
        self.pending_focus = None
        self.selected_node_id = None
        self.search_query = ""
        self.progress = None
        self.snapshot = GraphSnapshot()
        self.rendered = []

    # -- rendering --------------------------------------------------------

    def _settled_nodes(self) -> list[GraphNode]:
        """Nodes as they stand once any running animation has completed."""
        if self.animator.is_animating and self.previous_nodes is not None:
            return list(self.previous_nodes)
        return self.nodes

    def _finish(self, nodes: list[GraphNode]) -> None:
        self.previous_nodes = nodes
        self._apply_frame(nodes)
        self.store.save(self.graph_id, nodes)

    def _apply_frame(self, nodes: list[GraphNode]) -> None:
        self.rendered = list(nodes)
        self._emit()

    def _emit(self) -> None:
        if self.on_render is not None:
            self.on_render(self.displayed_nodes())
