"""Read graph snapshots from JSON and write positions back out."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Iterable, Mapping

from .models import EdgeKind, GraphEdge, GraphNode, GraphSnapshot, NodeKind, Position

logger = logging.getLogger(__name__)


def _parse_kind(enum_cls: type, raw: Any, where: str, default: Any) -> Any:
    if raw is None:
        return default
    try:
        return enum_cls(raw)
    except ValueError:
        choices = ", ".join(k.value for k in enum_cls)
        raise ValueError(f"{where}: unknown kind {raw!r} (expected one of: {choices})") from None


def _parse_position(raw: Any, where: str) -> Position:
    if raw is None:
        return Position()
    if not isinstance(raw, dict):
        raise ValueError(f"{where}: position must be an object with x and y")
    try:
        return Position(float(raw.get("x", 0.0)), float(raw.get("y", 0.0)))
    except (TypeError, ValueError):
        raise ValueError(f"{where}: position coordinates must be numbers") from None


def node_from_dict(raw: Any, index: int) -> GraphNode:
    where = f"nodes[{index}]"
    if not isinstance(raw, dict):
        raise ValueError(f"{where} must be an object")
    node_id = raw.get("id")
    if not isinstance(node_id, str) or not node_id:
        raise ValueError(f"{where}: id must be a non-empty string")

    data = raw.get("data") or {}
    if not isinstance(data, dict):
        raise ValueError(f"{where}: data must be an object")

    return GraphNode(
        id=node_id,
        kind=_parse_kind(NodeKind, raw.get("kind"), where, NodeKind.DOCUMENT),
        position=_parse_position(raw.get("position"), where),
        data=dict(data),
    )


def edge_from_dict(raw: Any, index: int) -> GraphEdge:
    where = f"edges[{index}]"
    if not isinstance(raw, dict):
        raise ValueError(f"{where} must be an object")
    source, target = raw.get("source"), raw.get("target")
    if not isinstance(source, str) or not isinstance(target, str):
        raise ValueError(f"{where}: source and target must be strings")
    return GraphEdge(source, target, _parse_kind(EdgeKind, raw.get("kind"), where, EdgeKind.INTERNAL))


def snapshot_from_dict(data: Any) -> GraphSnapshot:
    """Build a snapshot from parsed JSON. Dangling edges are dropped, not rejected."""
    if not isinstance(data, dict):
        raise ValueError("Snapshot must be a JSON object")

    raw_nodes = data.get("nodes", [])
    raw_edges = data.get("edges", [])
    if not isinstance(raw_nodes, list) or not isinstance(raw_edges, list):
        raise ValueError("Snapshot 'nodes' and 'edges' must be arrays")

    nodes = [node_from_dict(raw, i) for i, raw in enumerate(raw_nodes)]
    edges = [edge_from_dict(raw, i) for i, raw in enumerate(raw_edges)]

    return GraphSnapshot.build(
        nodes,
        edges,
        total_documents=data.get("total_documents"),
        loaded_documents=data.get("loaded_documents"),
        has_more=bool(data.get("has_more", False)),
    )


def load_snapshot(path: Path) -> GraphSnapshot:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ValueError(f"Failed to parse {path.name}: {e}") from e

    snapshot = snapshot_from_dict(data)
    logger.debug("Loaded %d nodes and %d edges from %s", len(snapshot.nodes), len(snapshot.edges), path)
    return snapshot


def positions_to_dict(positions: Mapping[str, Position]) -> dict[str, dict[str, float]]:
    return {node_id: {"x": round(pos.x, 2), "y": round(pos.y, 2)} for node_id, pos in positions.items()}


def nodes_to_dict(nodes: Iterable[GraphNode]) -> list[dict[str, Any]]:
    return [
        {
            "id": n.id,
            "kind": n.kind.value,
            "position": {"x": round(n.position.x, 2), "y": round(n.position.y, 2)},
            "data": n.data,
        }
        for n in nodes
    ]
