"""Data models for document graph snapshots."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Iterable, Literal

logger = logging.getLogger(__name__)


class NodeKind(str, Enum):
    """Kinds of nodes in a document graph."""

    DOCUMENT = "document"
    EXTERNAL_LINK = "externalLink"


class EdgeKind(str, Enum):
    """Kinds of edges in a document graph."""

    INTERNAL = "internal"  # document -> document
    EXTERNAL = "external"  # document -> aggregated external-link node


class LayoutAlgorithm(str, Enum):
    """Layout algorithms the engine can run."""

    FORCE = "force"
    HIERARCHICAL = "hierarchical"
    MINDMAP = "mindmap"
    RADIAL = "radial"


# Fixed size class per node kind: (width, height)
NODE_SIZES: dict[NodeKind, tuple[float, float]] = {
    NodeKind.DOCUMENT: (280.0, 120.0),
    NodeKind.EXTERNAL_LINK: (150.0, 38.0),
}


@dataclass(frozen=True)
class Position:
    """A point on the (unbounded) layout plane."""

    x: float = 0.0
    y: float = 0.0

    def offset(self, dx: float, dy: float) -> "Position":
        return Position(self.x + dx, self.y + dy)

    def to_dict(self) -> dict[str, float]:
        return {"x": self.x, "y": self.y}


@dataclass
class GraphNode:
    """A document or aggregated external-link node.

    `data` is an opaque payload (title, file_path, description, domain, urls, ...)
    that layout, diff and animation never inspect.
    """

    id: str
    kind: NodeKind = NodeKind.DOCUMENT
    position: Position = field(default_factory=Position)
    data: dict[str, Any] = field(default_factory=dict)

    # Transient display attributes, never persisted
    opacity: float = 1.0
    scale: float = 1.0
    search_active: bool = False
    search_match: bool = True

    @property
    def width(self) -> float:
        return NODE_SIZES[self.kind][0]

    @property
    def height(self) -> float:
        return NODE_SIZES[self.kind][1]

    @property
    def title(self) -> str:
        """Display title, falling back to the identity."""
        return str(self.data.get("title") or self.id)

    @property
    def is_document(self) -> bool:
        return self.kind == NodeKind.DOCUMENT

    def with_position(self, position: Position) -> "GraphNode":
        return replace(self, position=position)

    def bare(self) -> "GraphNode":
        """Copy with all transient display attributes reset."""
        return replace(self, opacity=1.0, scale=1.0, search_active=False, search_match=True)


@dataclass(frozen=True)
class GraphEdge:
    """Directed link between two node identities."""

    source: str
    target: str
    kind: EdgeKind = EdgeKind.INTERNAL


@dataclass(frozen=True)
class StyledEdge:
    """An edge tagged with highlight emphasis for the rendering collaborator."""

    edge: GraphEdge
    highlighted: bool = False  # touches the selected node
    animated: bool = False  # external edges are drawn animated
    z_index: int = 0


@dataclass(frozen=True)
class ScanProgress:
    """Progress report streamed by the document collaborator during long scans."""

    phase: Literal["scanning", "parsing"]
    current: int
    total: int
    current_file: str | None = None

    @property
    def fraction(self) -> float:
        if self.total <= 0:
            return 0.0
        return min(1.0, self.current / self.total)


@dataclass(frozen=True)
class GraphSnapshot:
    """Node and edge set produced by one scan. Immutable once built."""

    nodes: tuple[GraphNode, ...] = ()
    edges: tuple[GraphEdge, ...] = ()

    # Pagination counters from the document collaborator
    total_documents: int = 0
    loaded_documents: int = 0
    has_more: bool = False

    @classmethod
    def build(
        cls,
        nodes: Iterable[GraphNode],
        edges: Iterable[GraphEdge] = (),
        *,
        total_documents: int | None = None,
        loaded_documents: int | None = None,
        has_more: bool = False,
    ) -> "GraphSnapshot":
        """Build a snapshot, dropping duplicate identities and dangling edges."""
        unique: dict[str, GraphNode] = {}
        for node in nodes:
            if node.id in unique:
                logger.debug("Dropping duplicate node identity %s", node.id)
                continue
            unique[node.id] = node

        kept: list[GraphEdge] = []
        seen: set[GraphEdge] = set()
        for edge in edges:
            if edge.source not in unique or edge.target not in unique:
                logger.debug("Dropping edge %s -> %s (missing endpoint)", edge.source, edge.target)
                continue
            if edge in seen:
                continue
            seen.add(edge)
            kept.append(edge)

        doc_count = sum(1 for n in unique.values() if n.is_document)
        return cls(
            nodes=tuple(unique.values()),
            edges=tuple(kept),
            total_documents=doc_count if total_documents is None else total_documents,
            loaded_documents=doc_count if loaded_documents is None else loaded_documents,
            has_more=has_more,
        )

    @property
    def node_ids(self) -> set[str]:
        return {n.id for n in self.nodes}

    def get(self, node_id: str) -> GraphNode | None:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def with_nodes(self, nodes: Iterable[GraphNode]) -> "GraphSnapshot":
        """Same edges and counters over a replacement node list."""
        return GraphSnapshot.build(
            nodes,
            self.edges,
            total_documents=self.total_documents,
            loaded_documents=self.loaded_documents,
            has_more=self.has_more,
        )

    def neighborhood(self, focus_id: str, max_depth: int) -> "GraphSnapshot":
        """Sub-snapshot of nodes within `max_depth` undirected hops of `focus_id`."""
        from .graph import LinkGraph

        graph = LinkGraph.from_snapshot(self)
        depths = graph.bfs_depths(focus_id, max_depth=max_depth)
        return GraphSnapshot.build(
            [n for n in self.nodes if n.id in depths],
            self.edges,
            total_documents=self.total_documents,
            loaded_documents=self.loaded_documents,
            has_more=self.has_more,
        )
