"""Position cache keyed by graph identity.

One store lives for the whole process and is handed to every session by
reference. Entries are created on first save, overwritten on later saves and
never expired: they are dropped only by `clear` / `clear_all`. Entries for
nodes that have left the graph are simply unused until the node reappears.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Iterable, Mapping

from .models import GraphNode, Position

logger = logging.getLogger(__name__)

STORE_FORMAT_VERSION = 1


def graph_id_for(root_path: str | Path) -> str:
    """Graph identity for a document root: its resolved POSIX path."""
    return Path(root_path).expanduser().resolve().as_posix()


class PositionStore:
    """Mapping of graph_id -> node_id -> Position."""

    def __init__(self) -> None:
        self._graphs: dict[str, dict[str, Position]] = {}

    def save(self, graph_id: str, nodes: Iterable[GraphNode]) -> None:
        """Record the position of every node. Display attributes are never stored."""
        self.save_positions(graph_id, {n.id: n.position for n in nodes})

    def save_positions(self, graph_id: str, positions: Mapping[str, Position]) -> None:
        entries = self._graphs.setdefault(graph_id, {})
        for node_id, pos in positions.items():
            entries[node_id] = Position(float(pos.x), float(pos.y))
        logger.debug("Saved %d positions for %s", len(positions), graph_id)

    def restore(self, graph_id: str, nodes: Iterable[GraphNode]) -> list[GraphNode]:
        """Nodes with their stored positions; nodes without an entry are returned as given."""
        entries = self._graphs.get(graph_id, {})
        return [n.with_position(entries[n.id]) if n.id in entries else n for n in nodes]

    def has_saved(self, graph_id: str) -> bool:
        return bool(self._graphs.get(graph_id))

    def get(self, graph_id: str, node_id: str) -> Position | None:
        return self._graphs.get(graph_id, {}).get(node_id)

    def positions(self, graph_id: str) -> dict[str, Position]:
        return dict(self._graphs.get(graph_id, {}))

    def graph_ids(self) -> list[str]:
        return sorted(self._graphs)

    def clear(self, graph_id: str) -> None:
        """Forget every cached position of one graph."""
        self._graphs.pop(graph_id, None)

    def clear_all(self) -> None:
        self._graphs.clear()

    def to_dict(self) -> dict:
        return {
            "version": STORE_FORMAT_VERSION,
            "graphs": {
                graph_id: {node_id: pos.to_dict() for node_id, pos in sorted(entries.items())}
                for graph_id, entries in sorted(self._graphs.items())
            },
        }

    def dump(self, path: Path) -> None:
        """Write the store as JSON so explicit positions survive a restart."""
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(self.to_dict(), indent=2, sort_keys=True) + "\n", encoding="utf-8")

    @classmethod
    def load(cls, path: Path) -> "PositionStore":
        """Read a store written by `dump`. A missing file yields an empty store."""
        store = cls()
        if not path.exists():
            return store

        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ValueError(f"Failed to parse position store {path}: {e}") from e

        if not isinstance(data, dict) or not isinstance(data.get("graphs"), dict):
            raise ValueError(f"Position store {path} is missing 'graphs'")

        for graph_id, entries in data["graphs"].items():
            if not isinstance(entries, dict):
                continue
            positions: dict[str, Position] = {}
            for node_id, raw in entries.items():
                try:
                    positions[node_id] = Position(float(raw["x"]), float(raw["y"]))
                except (KeyError, TypeError, ValueError):
                    logger.warning("Skipping malformed position for %s in %s", node_id, graph_id)
            if positions:
                store._graphs[graph_id] = positions

        return store
